"""Entity repositories over the flat-file store.

Each repository validates references and keeps derived counters. Composite
operations (e.g. create a project, then bump the client's ``totalProjects``)
are separate writes with no rollback: if the second write fails the first one
stays, and ``ClientRepository.update_stats`` can be used to recompute.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from .auth.passwords import hash_password, verify_password
from .clock import Clock, SystemClock
from .errors import ConflictError, NotFoundError, ValidationError
from .invoicing import (
    check_transition,
    compute_totals,
    is_overdue,
    next_invoice_number,
    price_items,
    validate_items,
)
from .models import (
    Client,
    DeliveryRecord,
    Invoice,
    InvoiceStatus,
    Notification,
    NotificationStatus,
    Project,
    ProjectStatus,
    User,
)
from .schemas import (
    ClientCreate,
    ClientUpdate,
    InvoiceCreate,
    InvoiceUpdate,
    NotificationCreate,
    ProjectCreate,
    ProjectUpdate,
)
from .storage import JSONFileStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def paginate(items: list, page: int, limit: int, total_key: str) -> tuple[list, dict]:
    """Slice a list and build the pagination block the frontend expects."""
    page = max(page, 1)
    limit = max(limit, 1)
    total = len(items)
    total_pages = math.ceil(total / limit)
    start = (page - 1) * limit
    return items[start : start + limit], {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def newest_first(records: list) -> list:
    return sorted(records, key=lambda r: r.created_at or _EPOCH, reverse=True)


def _contains(needle: str, *haystacks: Optional[str]) -> bool:
    needle = needle.lower()
    return any(needle in (h or "").lower() for h in haystacks)


class ClientRepository:
    collection = "clients"

    def __init__(self, store: JSONFileStore, clock: Clock):
        self.store = store
        self.clock = clock

    def all(self) -> list[Client]:
        return [Client.model_validate(r) for r in self.store.get_all(self.collection)]

    def find(self, client_id: Optional[str]) -> Optional[Client]:
        if not client_id:
            return None
        record = self.store.find_by_id(self.collection, client_id)
        return Client.model_validate(record) if record else None

    def get(self, client_id: str) -> Client:
        client = self.find(client_id)
        if client is None:
            raise NotFoundError("Client not found")
        return client

    def search(
        self, search: str = "", status: Optional[str] = None
    ) -> list[Client]:
        clients = self.all()
        if search:
            clients = [c for c in clients if _contains(search, c.name, c.email, c.company)]
        if status:
            clients = [c for c in clients if c.status == status]
        return newest_first(clients)

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        # Exact, case-sensitive match
        return any(
            c.email == email and c.id != exclude_id for c in self.all()
        )

    def create(self, data: ClientCreate) -> Client:
        if self._email_taken(data.email):
            raise ConflictError("Client with this email already exists")
        now = self.clock.now()
        client = Client(
            **data.model_dump(),
            total_projects=0,
            total_revenue=0.0,
            created_at=now,
            updated_at=now,
        )
        record = self.store.create(self.collection, client.to_record())
        logger.info(f"Created client {record['id']} ({client.email})")
        return Client.model_validate(record)

    def update(self, client_id: str, data: ClientUpdate) -> Client:
        client = self.get(client_id)
        changes = data.model_dump(exclude_unset=True)
        # name, email and status cannot be blanked
        for key in ("name", "email", "status"):
            if not changes.get(key):
                changes.pop(key, None)
        for key in ("company", "phone", "whatsapp", "address", "notes"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        new_email = changes.get("email")
        if new_email and new_email != client.email and self._email_taken(new_email, client_id):
            raise ConflictError("Client with this email already exists")

        updated = client.model_copy(update={**changes, "updated_at": self.clock.now()})
        record = self.store.update(self.collection, client_id, updated.to_record())
        return Client.model_validate(record)

    def delete(self, client_id: str) -> None:
        # Projects and invoices of the client are left in place
        if not self.store.delete(self.collection, client_id):
            raise NotFoundError("Client not found")
        logger.info(f"Deleted client {client_id}")

    def _adjust_project_count(self, client_id: str, delta: int) -> Optional[Client]:
        # Read-modify-write of the whole clients collection
        records = self.store.get_all(self.collection)
        for record in records:
            if record.get("id") == client_id:
                record["totalProjects"] = max(0, (record.get("totalProjects") or 0) + delta)
                self.store.write_all(self.collection, records)
                return Client.model_validate(record)
        logger.warning(f"Client {client_id} vanished before counter update")
        return None

    def increment_projects(self, client_id: str) -> Optional[Client]:
        return self._adjust_project_count(client_id, 1)

    def decrement_projects(self, client_id: str) -> Optional[Client]:
        """Never goes below zero."""
        return self._adjust_project_count(client_id, -1)

    def update_stats(self, client_id: str, projects: list[Project]) -> Optional[Client]:
        """Recompute totalProjects and totalRevenue from the given projects."""
        own = [p for p in projects if p.client_id == client_id]
        revenue = sum(p.budget for p in own if p.status == ProjectStatus.COMPLETED)
        record = self.store.update(
            self.collection,
            client_id,
            {
                "totalProjects": len(own),
                "totalRevenue": revenue,
                "updatedAt": self.clock.now().isoformat(),
            },
        )
        return Client.model_validate(record) if record else None


class ProjectRepository:
    collection = "projects"

    def __init__(self, store: JSONFileStore, clients: ClientRepository, clock: Clock):
        self.store = store
        self.clients = clients
        self.clock = clock

    def all(self) -> list[Project]:
        return [Project.model_validate(r) for r in self.store.get_all(self.collection)]

    def find(self, project_id: Optional[str]) -> Optional[Project]:
        if not project_id:
            return None
        record = self.store.find_by_id(self.collection, project_id)
        return Project.model_validate(record) if record else None

    def get(self, project_id: str) -> Project:
        project = self.find(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    def enrich(self, project: Project, clients: dict[str, Client]) -> dict:
        client = clients.get(project.client_id)
        return {
            **project.to_record(),
            "clientName": client.name if client else "Unknown Client",
            "clientCompany": client.company if client else "",
        }

    def search(
        self,
        search: str = "",
        status: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> list[dict]:
        clients = {c.id: c for c in self.clients.all()}
        rows = [self.enrich(p, clients) for p in newest_first(self.all())]
        if search:
            rows = [
                r for r in rows
                if _contains(search, r["title"], r["description"], r["clientName"])
            ]
        if status:
            rows = [r for r in rows if r["status"] == status]
        if client_id:
            rows = [r for r in rows if r["clientId"] == client_id]
        return rows

    def create(self, data: ProjectCreate) -> Project:
        client = self.clients.get(data.client_id)
        now = self.clock.now()
        project = Project(
            **data.model_dump(),
            created_at=now,
            updated_at=now,
        )
        if project.start_date is None:
            project.start_date = now
        if project.status == ProjectStatus.COMPLETED:
            project.completed_date = now
        record = self.store.create(self.collection, project.to_record())
        created = Project.model_validate(record)
        logger.info(f"Created project {created.id} for client {client.id}")

        # Second, independent write
        self.clients.increment_projects(client.id)
        if created.status == ProjectStatus.COMPLETED:
            self.clients.update_stats(client.id, self.all())
        return created

    def update(self, project_id: str, data: ProjectUpdate) -> Project:
        project = self.get(project_id)
        changes = data.model_dump(exclude_unset=True)
        for key in ("title", "client_id", "start_date", "status", "priority"):
            if not changes.get(key):
                changes.pop(key, None)
        for key in ("description", "budget", "progress", "tags", "milestones"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        new_client_id = changes.get("client_id")
        if new_client_id and new_client_id != project.client_id:
            self.clients.get(new_client_id)

        updated = Project.model_validate({**project.model_dump(), **changes})
        now = self.clock.now()
        if (
            updated.status == ProjectStatus.COMPLETED
            and project.status != ProjectStatus.COMPLETED
            and project.completed_date is None
        ):
            updated.completed_date = now
        updated.updated_at = now
        record = self.store.update(self.collection, project_id, updated.to_record())
        saved = Project.model_validate(record)

        projects = self.all()
        for client_id in {project.client_id, saved.client_id}:
            self.clients.update_stats(client_id, projects)
        return saved

    def delete(self, project_id: str) -> None:
        project = self.get(project_id)
        self.store.delete(self.collection, project_id)
        self.clients.decrement_projects(project.client_id)
        logger.info(f"Deleted project {project_id}")


class InvoiceRepository:
    collection = "invoices"

    def __init__(
        self,
        store: JSONFileStore,
        clients: ClientRepository,
        projects: ProjectRepository,
        clock: Clock,
        payment_terms_days: int = 30,
    ):
        self.store = store
        self.clients = clients
        self.projects = projects
        self.clock = clock
        self.payment_terms_days = payment_terms_days

    def all(self) -> list[Invoice]:
        return [Invoice.model_validate(r) for r in self.store.get_all(self.collection)]

    def get(self, invoice_id: str) -> Invoice:
        record = self.store.find_by_id(self.collection, invoice_id)
        if record is None:
            raise NotFoundError("Invoice not found")
        return Invoice.model_validate(record)

    def enrich(
        self,
        invoice: Invoice,
        clients: dict[str, Client],
        projects: dict[str, Project],
        detailed: bool = False,
    ) -> dict:
        client = clients.get(invoice.client_id)
        project = projects.get(invoice.project_id) if invoice.project_id else None
        overdue = is_overdue(invoice, self.clock.now())
        row = {
            **invoice.to_record(),
            "clientName": client.name if client else "Unknown Client",
            "clientCompany": client.company if client else "",
            "projectTitle": project.title if project else "No Project",
            "isOverdue": overdue,
            "displayStatus": InvoiceStatus.OVERDUE.value if overdue else invoice.status.value,
        }
        if detailed:
            row["clientEmail"] = client.email if client else ""
            row["clientAddress"] = client.address if client else ""
        return row

    def detail(self, invoice_id: str) -> dict:
        invoice = self.get(invoice_id)
        client = self.clients.find(invoice.client_id)
        project = self.projects.find(invoice.project_id)
        return self.enrich(
            invoice,
            {client.id: client} if client else {},
            {project.id: project} if project else {},
            detailed=True,
        )

    def search(
        self,
        search: str = "",
        status: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> list[dict]:
        clients = {c.id: c for c in self.clients.all()}
        projects = {p.id: p for p in self.projects.all()}
        rows = [self.enrich(i, clients, projects) for i in newest_first(self.all())]
        if search:
            rows = [
                r for r in rows
                if _contains(search, r["invoiceNumber"], r["clientName"], r["projectTitle"])
            ]
        if status:
            rows = [r for r in rows if r["status"] == status]
        if client_id:
            rows = [r for r in rows if r["clientId"] == client_id]
        return rows

    def create(self, data: InvoiceCreate) -> Invoice:
        items = validate_items(data.items)
        self.clients.get(data.client_id)
        if data.project_id:
            self.projects.get(data.project_id)

        totals = compute_totals(items, data.discount, data.tax)
        now = self.clock.now()
        invoice = Invoice(
            invoice_number=next_invoice_number(self.store.get_all(self.collection)),
            client_id=data.client_id,
            project_id=data.project_id or None,
            items=price_items(items),
            discount=data.discount,
            tax=data.tax,
            status=InvoiceStatus.DRAFT,
            due_date=data.due_date or now + timedelta(days=self.payment_terms_days),
            notes=data.notes,
            paid_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        record = {**invoice.to_record(), **totals.as_record()}
        created = Invoice.model_validate(self.store.create(self.collection, record))
        logger.info(f"Created invoice {created.invoice_number} total={created.total}")
        return created

    def update(self, invoice_id: str, data: InvoiceUpdate) -> Invoice:
        invoice = self.get(invoice_id)
        changes = data.model_dump(exclude_unset=True)
        if "items" in changes and changes["items"] is None:
            raise ValidationError("At least one item is required")
        changes = {
            k: v for k, v in changes.items() if v is not None or k == "project_id"
        }
        # clientId cannot be blanked
        if not changes.get("client_id"):
            changes.pop("client_id", None)

        new_client = changes.get("client_id")
        if new_client and new_client != invoice.client_id:
            self.clients.get(new_client)
        new_project = changes.get("project_id")
        if new_project and new_project != invoice.project_id:
            self.projects.get(new_project)

        updated = Invoice.model_validate({**invoice.model_dump(), **changes})
        updated.updated_at = self.clock.now()
        record = updated.to_record()
        if {"items", "discount", "tax"} & changes.keys():
            totals = compute_totals(updated.items, updated.discount, updated.tax)
            record["items"] = [
                i.model_dump(mode="json", by_alias=True) for i in price_items(updated.items)
            ]
            record.update(totals.as_record())
        saved = self.store.update(self.collection, invoice_id, record)
        return Invoice.model_validate(saved)

    def change_status(self, invoice_id: str, status: InvoiceStatus) -> Invoice:
        """Status-only mutation; totals stay as they were."""
        invoice = self.get(invoice_id)
        check_transition(invoice.status, status)
        now = self.clock.now()
        changes: dict[str, Any] = {
            "status": InvoiceStatus(status).value,
            "updatedAt": now.isoformat(),
        }
        if status == InvoiceStatus.SENT:
            changes["sentDate"] = now.isoformat()
        elif status == InvoiceStatus.PAID:
            changes["paidDate"] = now.isoformat()
        record = self.store.update(self.collection, invoice_id, changes)
        logger.info(
            f"Invoice {invoice.invoice_number}: {invoice.status.value} -> {changes['status']}"
        )
        return Invoice.model_validate(record)

    def delete(self, invoice_id: str) -> None:
        invoice = self.get(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT:
            raise ConflictError("Only draft invoices can be deleted")
        self.store.delete(self.collection, invoice_id)
        logger.info(f"Deleted invoice {invoice.invoice_number}")

    def record_reminder(self, invoice_id: str) -> Optional[Invoice]:
        invoice = self.get(invoice_id)
        now = self.clock.now().isoformat()
        record = self.store.update(
            self.collection,
            invoice_id,
            {
                "remindersSent": invoice.reminders_sent + 1,
                "lastReminderDate": now,
                "updatedAt": now,
            },
        )
        return Invoice.model_validate(record) if record else None


class NotificationRepository:
    collection = "notifications"

    def __init__(
        self,
        store: JSONFileStore,
        clock: Clock,
        ttl_days: int = 30,
        retention_days: int = 90,
    ):
        self.store = store
        self.clock = clock
        self.ttl_days = ttl_days
        self.retention_days = retention_days

    def all(self) -> list[Notification]:
        return [
            Notification.model_validate(r) for r in self.store.get_all(self.collection)
        ]

    def get(self, notification_id: str) -> Notification:
        record = self.store.find_by_id(self.collection, notification_id)
        if record is None:
            raise NotFoundError("Notification not found")
        return Notification.model_validate(record)

    def search(self, status: Optional[str] = None, type: Optional[str] = None) -> list[Notification]:
        notifications = newest_first(self.all())
        if status:
            notifications = [n for n in notifications if n.status == status]
        if type:
            notifications = [n for n in notifications if n.type == type]
        return notifications

    def unread_count(self) -> int:
        return sum(1 for n in self.all() if n.status == NotificationStatus.UNREAD)

    def create(self, data: NotificationCreate, user_id: Optional[str] = None) -> Notification:
        now = self.clock.now()
        notification = Notification(
            **data.model_dump(),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=self.ttl_days),
        )
        notification.channels["inApp"] = DeliveryRecord(
            attempted=True, succeeded=True, timestamp=now
        )
        record = self.store.create(self.collection, notification.to_record())
        return Notification.model_validate(record)

    def record_delivery(
        self, notification_id: str, deliveries: dict[str, DeliveryRecord]
    ) -> Notification:
        notification = self.get(notification_id)
        channels = {**notification.channels, **deliveries}
        record = self.store.update(
            self.collection,
            notification_id,
            {
                "channels": {
                    name: d.model_dump(mode="json", by_alias=True)
                    for name, d in channels.items()
                }
            },
        )
        return Notification.model_validate(record)

    def mark_read(self, notification_id: str) -> Notification:
        notification = self.get(notification_id)
        if notification.status != NotificationStatus.UNREAD:
            return notification
        now = self.clock.now().isoformat()
        record = self.store.update(
            self.collection,
            notification_id,
            {"status": NotificationStatus.READ.value, "readAt": now, "updatedAt": now},
        )
        return Notification.model_validate(record)

    def mark_all_read(self) -> int:
        records = self.store.get_all(self.collection)
        now = self.clock.now().isoformat()
        changed = 0
        for record in records:
            if record.get("status") == NotificationStatus.UNREAD.value:
                record.update(status=NotificationStatus.READ.value, readAt=now, updatedAt=now)
                changed += 1
        if changed:
            self.store.write_all(self.collection, records)
        return changed

    def archive(self, notification_id: str) -> Notification:
        self.get(notification_id)
        now = self.clock.now().isoformat()
        record = self.store.update(
            self.collection,
            notification_id,
            {"status": NotificationStatus.ARCHIVED.value, "archivedAt": now, "updatedAt": now},
        )
        return Notification.model_validate(record)

    def delete(self, notification_id: str) -> None:
        if not self.store.delete(self.collection, notification_id):
            raise NotFoundError("Notification not found")

    def purge(self) -> int:
        """Drop expired notifications and old read/archived ones."""
        now = self.clock.now()
        cutoff = now - timedelta(days=self.retention_days)
        keep, dropped = [], 0
        for record in self.store.get_all(self.collection):
            notification = Notification.model_validate(record)
            expired = notification.expires_at is not None and notification.expires_at < now
            stale = (
                notification.created_at is not None
                and notification.created_at < cutoff
                and notification.status != NotificationStatus.UNREAD
            )
            if expired or stale:
                dropped += 1
            else:
                keep.append(record)
        if dropped:
            self.store.write_all(self.collection, keep)
        return dropped

    def stats(self) -> dict:
        notifications = self.all()
        by_type: dict[str, int] = {}
        by_priority: dict[str, int] = {}
        for n in notifications:
            by_type[n.type.value] = by_type.get(n.type.value, 0) + 1
            by_priority[n.priority.value] = by_priority.get(n.priority.value, 0) + 1
        return {
            "total": len(notifications),
            "unread": sum(1 for n in notifications if n.status == NotificationStatus.UNREAD),
            "read": sum(1 for n in notifications if n.status == NotificationStatus.READ),
            "archived": sum(1 for n in notifications if n.status == NotificationStatus.ARCHIVED),
            "byType": by_type,
            "byPriority": by_priority,
        }


class UserRepository:
    collection = "users"

    def __init__(self, store: JSONFileStore, clock: Clock):
        self.store = store
        self.clock = clock

    def find_by_email(self, email: str) -> Optional[User]:
        record = next(
            (r for r in self.store.get_all(self.collection) if r.get("email") == email),
            None,
        )
        return User.model_validate(record) if record else None

    def get(self, user_id: str) -> Optional[User]:
        record = self.store.find_by_id(self.collection, user_id)
        return User.model_validate(record) if record else None

    def create(self, name: str, email: str, password: str, role: str = "admin") -> User:
        if self.find_by_email(email):
            raise ConflictError("User already exists")
        now = self.clock.now()
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            created_at=now,
            updated_at=now,
        )
        return User.model_validate(self.store.create(self.collection, user.to_record()))

    def authenticate(self, email: str, password: str) -> Optional[User]:
        user = self.find_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def update_last_login(self, user_id: str) -> None:
        self.store.update(
            self.collection, user_id, {"lastLogin": self.clock.now().isoformat()}
        )


@dataclass
class Repositories:
    """Everything a request handler or reminder job needs, built once per app."""

    store: JSONFileStore
    clock: Clock
    clients: ClientRepository
    projects: ProjectRepository
    invoices: InvoiceRepository
    notifications: NotificationRepository
    users: UserRepository


def build_repositories(
    store: JSONFileStore,
    clock: Optional[Clock] = None,
    ttl_days: int = 30,
    retention_days: int = 90,
) -> Repositories:
    clock = clock or SystemClock()
    clients = ClientRepository(store, clock)
    projects = ProjectRepository(store, clients, clock)
    return Repositories(
        store=store,
        clock=clock,
        clients=clients,
        projects=projects,
        invoices=InvoiceRepository(store, clients, projects, clock),
        notifications=NotificationRepository(store, clock, ttl_days, retention_days),
        users=UserRepository(store, clock),
    )
