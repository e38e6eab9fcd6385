"""Calendar events derived from project end dates."""

from datetime import datetime, timedelta
from typing import Optional

from .invoicing import days_between
from .models import Client, Priority, Project, ProjectStatus
from .stats import project_is_overdue

STATUS_COLORS = {
    ProjectStatus.COMPLETED: "#10b981",
    ProjectStatus.IN_PROGRESS: "#f59e0b",
    ProjectStatus.PENDING: "#6366f1",
    ProjectStatus.CANCELLED: "#6b7280",
    ProjectStatus.ON_HOLD: "#8b5cf6",
}
OVERDUE_COLOR = "#ef4444"

PRIORITY_BORDERS = {
    Priority.URGENT: "#dc2626",
    Priority.HIGH: "#ea580c",
}

TEXT_COLOR = "#ffffff"

_OPEN_PROJECT = (ProjectStatus.PENDING, ProjectStatus.IN_PROGRESS)


def _event(project: Project, client: Optional[Client], now: datetime) -> dict:
    overdue = project_is_overdue(project, now)
    color = OVERDUE_COLOR if overdue else STATUS_COLORS.get(project.status, "#6366f1")
    return {
        "id": project.id,
        "title": project.title,
        "start": project.end_date.isoformat(),
        "end": project.end_date.isoformat(),
        "allDay": True,
        "backgroundColor": color,
        "borderColor": PRIORITY_BORDERS.get(project.priority, color),
        "textColor": TEXT_COLOR,
        "extendedProps": {
            "projectId": project.id,
            "clientId": project.client_id,
            "clientName": client.name if client else "Unknown Client",
            "status": project.status.value,
            "priority": project.priority.value,
            "progress": project.progress,
            "budget": project.budget,
            "isOverdue": overdue,
        },
    }


def calendar_events(
    projects: list[Project],
    clients: list[Client],
    now: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[dict]:
    """One all-day event per project end date within [start, end]."""
    by_id = {c.id: c for c in clients}
    events = []
    for project in projects:
        if project.end_date is None:
            continue
        if start is not None and project.end_date < start:
            continue
        if end is not None and project.end_date > end:
            continue
        events.append(_event(project, by_id.get(project.client_id), now))
    return sorted(events, key=lambda e: e["start"])


def upcoming_deadlines(
    projects: list[Project],
    clients: list[Client],
    now: datetime,
    days: int = 30,
    limit: int = 10,
) -> list[dict]:
    """Pending or in-progress projects due between now and now + days, soonest first."""
    horizon = now + timedelta(days=days)
    by_id = {c.id: c for c in clients}
    due = [
        p
        for p in projects
        if p.end_date is not None
        and now <= p.end_date <= horizon
        and p.status in _OPEN_PROJECT
    ]
    due.sort(key=lambda p: p.end_date)
    return [
        {
            **_summary(p, by_id.get(p.client_id)),
            # Partial days count as a whole day left
            "daysUntilDeadline": days_between(now, p.end_date),
        }
        for p in due[:limit]
    ]


def _summary(project: Project, client: Optional[Client]) -> dict:
    return {
        "id": project.id,
        "title": project.title,
        "deadline": project.end_date.isoformat() if project.end_date else None,
        "status": project.status.value,
        "priority": project.priority.value,
        "client": {
            "id": project.client_id,
            "name": client.name if client else "Unknown Client",
            "company": client.company if client else "",
        },
    }


def overdue_events(projects: list[Project], clients: list[Client], now: datetime) -> list[dict]:
    by_id = {c.id: c for c in clients}
    overdue = sorted(
        (p for p in projects if project_is_overdue(p, now)), key=lambda p: p.end_date
    )
    return [
        {
            **_summary(p, by_id.get(p.client_id)),
            "daysOverdue": days_between(p.end_date, now),
        }
        for p in overdue
    ]


def today_events(projects: list[Project], clients: list[Client], now: datetime) -> list[dict]:
    by_id = {c.id: c for c in clients}
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    due = sorted(
        (p for p in projects if p.end_date is not None and start <= p.end_date < end),
        key=lambda p: p.end_date,
    )
    return [_summary(p, by_id.get(p.client_id)) for p in due]


def calendar_stats(projects: list[Project], now: datetime) -> dict:
    """Deadline counts for today, this week (from Monday), this month."""
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = day - timedelta(days=day.weekday())
    month = day.replace(day=1)
    next_month = (month + timedelta(days=32)).replace(day=1)
    ends = [p.end_date for p in projects if p.end_date is not None]

    def _between(start: datetime, end: datetime) -> int:
        return sum(1 for d in ends if start <= d < end)

    open_projects = [
        p for p in projects
        if p.end_date is not None and p.status not in (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)
    ]
    return {
        "today": _between(day, day + timedelta(days=1)),
        "thisWeek": _between(week, week + timedelta(days=7)),
        "thisMonth": _between(month, next_month),
        "overdue": sum(1 for p in projects if project_is_overdue(p, now)),
        "upcoming": sum(
            1 for p in open_projects if now <= p.end_date <= now + timedelta(days=7)
        ),
    }
