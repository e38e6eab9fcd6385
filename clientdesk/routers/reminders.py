"""
Reminder job triggers
"""

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_reminders
from ..reminders import ReminderEngine

router = APIRouter()


@router.get("")
def list_jobs(request: Request):
    """Scheduled jobs with their next and last run"""
    return {"jobs": request.app.state.scheduler.describe()}


@router.post("/{job}/run")
async def run_job(job: str, reminders: ReminderEngine = Depends(get_reminders)):
    result = await reminders.run(job)
    return {"message": f"Reminder job {job} completed", "job": job, "result": result}
