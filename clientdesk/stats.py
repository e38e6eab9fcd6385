"""Read-only aggregates for the dashboard.

Everything is recomputed from the current collections on every call.
"""

from datetime import datetime

from .invoicing import is_overdue, money
from .models import (
    Client,
    ClientStatus,
    Invoice,
    InvoiceStatus,
    Project,
    ProjectStatus,
)
from .repositories import Repositories, newest_first

RECENT_LIMIT = 5

_CLOSED_PROJECT = (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)


def project_is_overdue(project: Project, now: datetime) -> bool:
    return (
        project.end_date is not None
        and project.end_date < now
        and project.status not in _CLOSED_PROJECT
    )


def client_overview(clients: list[Client]) -> dict:
    top = sorted(clients, key=lambda c: c.total_revenue, reverse=True)[:RECENT_LIMIT]
    return {
        "total": len(clients),
        "active": sum(1 for c in clients if c.status == ClientStatus.ACTIVE),
        "inactive": sum(1 for c in clients if c.status == ClientStatus.INACTIVE),
        "prospects": sum(1 for c in clients if c.status == ClientStatus.PROSPECT),
        "topClients": [c.to_record() for c in top],
        "recentClients": [c.to_record() for c in newest_first(clients)[:RECENT_LIMIT]],
    }


def project_overview(projects: list[Project], now: datetime) -> dict:
    by_status = {s.value: 0 for s in ProjectStatus}
    for p in projects:
        by_status[p.status.value] += 1
    avg_progress = (
        round(sum(p.progress for p in projects) / len(projects)) if projects else 0
    )
    return {
        "total": len(projects),
        "byStatus": by_status,
        "active": by_status[ProjectStatus.PENDING.value]
        + by_status[ProjectStatus.IN_PROGRESS.value],
        "completed": by_status[ProjectStatus.COMPLETED.value],
        "overdue": sum(1 for p in projects if project_is_overdue(p, now)),
        "totalBudget": sum(p.budget for p in projects),
        "avgProgress": avg_progress,
        "recentProjects": [p.to_record() for p in newest_first(projects)[:RECENT_LIMIT]],
    }


def invoice_overview(invoices: list[Invoice], now: datetime) -> dict:
    by_status = {s.value: 0 for s in InvoiceStatus}
    for i in invoices:
        by_status[i.status.value] += 1
    revenue = sum(i.total for i in invoices if i.status == InvoiceStatus.PAID)
    pending = sum(
        i.total
        for i in invoices
        if i.status in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
    )
    return {
        "total": len(invoices),
        "draft": by_status[InvoiceStatus.DRAFT.value],
        "sent": by_status[InvoiceStatus.SENT.value],
        "paid": by_status[InvoiceStatus.PAID.value],
        "cancelled": by_status[InvoiceStatus.CANCELLED.value],
        "overdue": sum(1 for i in invoices if is_overdue(i, now)),
        "totalRevenue": float(money(revenue)),
        "pendingAmount": float(money(pending)),
        "recentInvoices": [i.to_record() for i in newest_first(invoices)[:RECENT_LIMIT]],
    }


def dashboard_overview(repos: Repositories, now: datetime) -> dict:
    return {
        "clients": client_overview(repos.clients.all()),
        "projects": project_overview(repos.projects.all(), now),
        "invoices": invoice_overview(repos.invoices.all(), now),
        "unreadNotifications": repos.notifications.unread_count(),
        "generatedAt": now.isoformat(),
    }
