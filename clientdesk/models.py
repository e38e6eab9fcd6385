"""Pydantic models for persisted records.

Records are stored and served in camelCase; Python code uses snake_case
attribute names. All datetimes are normalised to timezone-aware UTC.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Record(CamelModel):
    """A stored entity with id and timestamps."""

    id: str = ""
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Enums ---


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PROSPECT = "prospect"


class ProjectStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on-hold"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class InvoiceStatus(str, Enum):
    """Stored invoice states. OVERDUE is accepted for legacy records only."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_COMPLETED = "project_completed"
    DEADLINE_REMINDER = "deadline_reminder"
    INVOICE_GENERATED = "invoice_generated"
    INVOICE_SENT = "invoice_sent"
    PAYMENT_RECEIVED = "payment_received"
    CLIENT_ADDED = "client_added"
    SYSTEM_ALERT = "system_alert"


class NotificationStatus(str, Enum):
    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"


# --- Clients ---


class Client(Record):
    name: str
    email: str
    company: str = ""
    phone: str = ""
    whatsapp: str = ""
    address: str = ""
    notes: str = ""
    status: ClientStatus = ClientStatus.ACTIVE
    total_projects: int = 0
    total_revenue: float = 0.0


# --- Projects ---


class Milestone(CamelModel):
    title: str
    due_date: Optional[UTCDateTime] = None
    completed: bool = False
    completed_date: Optional[UTCDateTime] = None


class Project(Record):
    title: str
    client_id: str
    description: str = ""
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = Field(
        default=None,
        validation_alias=AliasChoices("endDate", "deadline", "end_date"),
        serialization_alias="endDate",
    )
    budget: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("budget", "amount"),
        serialization_alias="budget",
    )
    status: ProjectStatus = ProjectStatus.PENDING
    priority: Priority = Priority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = []
    milestones: list[Milestone] = []
    completed_date: Optional[UTCDateTime] = None
    total_hours: float = 0.0

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, tags: list[str]) -> list[str]:
        return list(dict.fromkeys(tags))


# --- Invoices ---


class InvoiceItem(CamelModel):
    description: str = ""
    quantity: float = Field(..., gt=0)
    rate: float = Field(..., ge=0)
    amount: float = 0.0


class Invoice(Record):
    invoice_number: str
    client_id: str
    project_id: Optional[str] = None
    items: list[InvoiceItem]
    subtotal: float = 0.0
    discount: float = Field(default=0.0, ge=0, le=100)
    discount_amount: float = 0.0
    tax: float = Field(default=0.0, ge=0, le=100)
    tax_amount: float = 0.0
    total: float = 0.0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    due_date: Optional[UTCDateTime] = None
    notes: str = ""
    paid_amount: float = 0.0
    sent_date: Optional[UTCDateTime] = None
    paid_date: Optional[UTCDateTime] = None
    reminders_sent: int = 0
    last_reminder_date: Optional[UTCDateTime] = None


# --- Notifications ---


class DeliveryRecord(CamelModel):
    """Outcome of handing a notification to one channel."""

    attempted: bool = False
    succeeded: bool = False
    timestamp: Optional[UTCDateTime] = None
    error: Optional[str] = None


def _in_app_delivered() -> dict[str, DeliveryRecord]:
    return {
        "inApp": DeliveryRecord(attempted=True, succeeded=True, timestamp=utcnow())
    }


class Notification(Record):
    type: NotificationType
    title: str = Field(..., max_length=100)
    message: str = Field(..., max_length=500)
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    invoice_id: Optional[str] = None
    user_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: NotificationStatus = NotificationStatus.UNREAD
    channels: dict[str, DeliveryRecord] = Field(default_factory=_in_app_delivered)
    metadata: dict[str, Any] = {}
    read_at: Optional[UTCDateTime] = None
    archived_at: Optional[UTCDateTime] = None
    expires_at: Optional[UTCDateTime] = None


# --- Users ---


class User(Record):
    name: str
    email: str
    password_hash: str = ""
    role: str = "admin"
    is_active: bool = True
    last_login: Optional[UTCDateTime] = None

    def public(self) -> dict:
        data = self.to_record()
        data.pop("passwordHash", None)
        return data
