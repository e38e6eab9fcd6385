"""
Calendar Events Endpoints
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_repos
from ..events import (
    calendar_events,
    calendar_stats,
    overdue_events,
    today_events,
    upcoming_deadlines,
)
from ..models import as_utc
from ..repositories import Repositories

router = APIRouter()


@router.get("")
def list_events(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    repos: Repositories = Depends(get_repos),
):
    """Project deadlines as calendar events"""
    events = calendar_events(
        repos.projects.all(),
        repos.clients.all(),
        repos.clock.now(),
        start=as_utc(start) if start else None,
        end=as_utc(end) if end else None,
    )
    return {"events": events}


@router.get("/upcoming")
def upcoming(
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
    repos: Repositories = Depends(get_repos),
):
    events = upcoming_deadlines(
        repos.projects.all(), repos.clients.all(), repos.clock.now(), days, limit
    )
    return {"upcomingEvents": events}


@router.get("/overdue")
def overdue(repos: Repositories = Depends(get_repos)):
    events = overdue_events(repos.projects.all(), repos.clients.all(), repos.clock.now())
    return {"overdueEvents": events}


@router.get("/today")
def today(repos: Repositories = Depends(get_repos)):
    events = today_events(repos.projects.all(), repos.clients.all(), repos.clock.now())
    return {"todayEvents": events}


@router.get("/stats")
def stats(repos: Repositories = Depends(get_repos)):
    return calendar_stats(repos.projects.all(), repos.clock.now())
