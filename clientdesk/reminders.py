"""Scheduled reminder jobs.

Each job scans the current collections, creates one in-app notification per
qualifying entity and hands it to the dispatcher. Runs are not deduplicated:
running a job twice produces two notifications per entity.
"""

import logging
from datetime import timedelta
from typing import Optional

from .clock import Clock
from .config import RemindersConfig
from .dispatcher import NotificationDispatcher
from .errors import NotFoundError
from .invoicing import days_between
from .models import (
    Client,
    InvoiceStatus,
    Notification,
    NotificationType,
    Priority,
    ProjectStatus,
)
from .repositories import Repositories
from .scheduler import Schedule, Scheduler
from .schemas import NotificationCreate

logger = logging.getLogger(__name__)

# Job name -> ReminderEngine method, shared by the CLI, API and scheduler
JOBS = {
    "deadlines": "check_upcoming_deadlines",
    "overdue": "check_overdue_projects",
    "invoices": "send_invoice_reminders",
    "cleanup": "cleanup_old_notifications",
}

# Nearest window first
WINDOW_PRIORITIES = [Priority.URGENT, Priority.HIGH, Priority.MEDIUM, Priority.LOW]

_OPEN_PROJECT = (ProjectStatus.PENDING, ProjectStatus.IN_PROGRESS)
_CLOSED_PROJECT = (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)


def plural_days(n: int) -> str:
    return f"{n} day{'s' if n != 1 else ''}"


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class ReminderEngine:
    def __init__(
        self,
        repos: Repositories,
        dispatcher: NotificationDispatcher,
        clock: Clock,
        config: RemindersConfig,
    ):
        self.repos = repos
        self.dispatcher = dispatcher
        self.clock = clock
        self.config = config

    async def notify(self, data: NotificationCreate, client: Optional[Client]) -> Notification:
        """Create the in-app notification, then deliver it to external channels."""
        notification = self.repos.notifications.create(data)
        deliveries = await self.dispatcher.dispatch(notification, client)
        if deliveries:
            notification = self.repos.notifications.record_delivery(
                notification.id, deliveries
            )
        return notification

    async def check_upcoming_deadlines(self) -> dict:
        now = self.clock.now()
        projects = [p for p in self.repos.projects.all() if p.status in _OPEN_PROJECT]
        clients = {c.id: c for c in self.repos.clients.all()}
        sent = failed = 0

        for index, days in enumerate(sorted(self.config.deadline_windows)):
            priority = WINDOW_PRIORITIES[min(index, len(WINDOW_PRIORITIES) - 1)]
            lower = now + timedelta(days=max(days - 1, 0))
            upper = now + timedelta(days=days)
            for project in projects:
                if project.end_date is None or not lower <= project.end_date <= upper:
                    continue
                try:
                    await self.notify(
                        NotificationCreate(
                            type=NotificationType.DEADLINE_REMINDER,
                            title=f"Deadline Reminder: {plural_days(days)} remaining",
                            message=_clip(
                                f'Project "{project.title}" deadline is approaching '
                                f"in {plural_days(days)}",
                                500,
                            ),
                            client_id=project.client_id,
                            project_id=project.id,
                            priority=priority,
                            metadata={"daysUntil": days, "project": project.title},
                        ),
                        clients.get(project.client_id),
                    )
                    sent += 1
                except Exception as e:
                    logger.error(f"Deadline reminder for project {project.id} failed: {e}")
                    failed += 1

        logger.info(f"Deadline reminders sent: {sent} projects")
        return {"notified": sent, "failed": failed}

    async def check_overdue_projects(self) -> dict:
        now = self.clock.now()
        clients = {c.id: c for c in self.repos.clients.all()}
        overdue = [
            p
            for p in self.repos.projects.all()
            if p.end_date is not None and p.end_date < now and p.status not in _CLOSED_PROJECT
        ]
        sent = failed = 0
        for project in overdue:
            days = days_between(project.end_date, now)
            try:
                await self.notify(
                    NotificationCreate(
                        type=NotificationType.SYSTEM_ALERT,
                        title=f"Project Overdue: {plural_days(days)}",
                        message=_clip(
                            f'Project "{project.title}" is {plural_days(days)} overdue', 500
                        ),
                        client_id=project.client_id,
                        project_id=project.id,
                        priority=Priority.URGENT,
                        metadata={"daysOverdue": days, "project": project.title},
                    ),
                    clients.get(project.client_id),
                )
                sent += 1
            except Exception as e:
                logger.error(f"Overdue alert for project {project.id} failed: {e}")
                failed += 1

        logger.info(f"Overdue project alerts created: {sent} projects")
        return {"notified": sent, "failed": failed}

    async def send_invoice_reminders(self) -> dict:
        now = self.clock.now()
        since = now - timedelta(days=self.config.invoice_lookback_days)
        clients = {c.id: c for c in self.repos.clients.all()}
        due = [
            i
            for i in self.repos.invoices.all()
            if i.status == InvoiceStatus.SENT
            and i.due_date is not None
            and i.due_date < now
            # Very old invoices are not chased again
            and i.created_at is not None
            and i.created_at >= since
        ]
        sent = failed = 0
        for invoice in due:
            days = days_between(invoice.due_date, now)
            try:
                await self.notify(
                    NotificationCreate(
                        type=NotificationType.SYSTEM_ALERT,
                        title=f"Invoice Overdue: {plural_days(days)}",
                        message=f"Invoice {invoice.invoice_number} is {plural_days(days)} overdue",
                        client_id=invoice.client_id,
                        invoice_id=invoice.id,
                        priority=Priority.HIGH,
                        metadata={
                            "invoiceNumber": invoice.invoice_number,
                            "total": invoice.total,
                            "daysOverdue": days,
                        },
                    ),
                    clients.get(invoice.client_id),
                )
                self.repos.invoices.record_reminder(invoice.id)
                sent += 1
            except Exception as e:
                logger.error(f"Invoice reminder for {invoice.invoice_number} failed: {e}")
                failed += 1

        logger.info(f"Invoice reminders sent: {sent} invoices")
        return {"notified": sent, "failed": failed}

    async def cleanup_old_notifications(self) -> dict:
        removed = self.repos.notifications.purge()
        logger.info(f"Cleaned up {removed} old notifications")
        return {"removed": removed}

    async def run(self, job: str) -> dict:
        """Run one job by name, as the manual triggers do."""
        if job not in JOBS:
            raise NotFoundError(f"Unknown reminder job: {job}")
        logger.info(f"Manually triggering {job}")
        return await getattr(self, JOBS[job])()

    def register(self, scheduler: Scheduler) -> None:
        schedules = {
            "deadlines": self.config.deadlines,
            "overdue": self.config.overdue_projects,
            "invoices": self.config.invoice_reminders,
            "cleanup": self.config.cleanup,
        }
        for name, method in JOBS.items():
            scheduler.add(name, Schedule.from_config(schedules[name]), getattr(self, method))
