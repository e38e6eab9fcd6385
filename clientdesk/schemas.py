"""Request bodies validated at the HTTP boundary."""

from typing import Any, Optional

from pydantic import AliasChoices, Field

from .models import (
    CamelModel,
    ClientStatus,
    InvoiceItem,
    InvoiceStatus,
    Milestone,
    NotificationType,
    Priority,
    ProjectStatus,
    UTCDateTime,
)


# --- Auth ---


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# --- Clients ---


class ClientCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    company: str = ""
    phone: str = ""
    whatsapp: str = ""
    address: str = ""
    notes: str = ""
    status: ClientStatus = ClientStatus.ACTIVE


class ClientUpdate(CamelModel):
    """Partial edit. Derived counters are deliberately absent."""

    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[ClientStatus] = None


# --- Projects ---


class ProjectCreate(CamelModel):
    title: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    description: str = ""
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = Field(
        default=None, validation_alias=AliasChoices("endDate", "deadline", "end_date")
    )
    budget: float = Field(
        default=0.0, ge=0, validation_alias=AliasChoices("budget", "amount")
    )
    status: ProjectStatus = ProjectStatus.PENDING
    priority: Priority = Priority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = []
    milestones: list[Milestone] = []


class ProjectUpdate(CamelModel):
    title: Optional[str] = None
    client_id: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = Field(
        default=None, validation_alias=AliasChoices("endDate", "deadline", "end_date")
    )
    budget: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("budget", "amount")
    )
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    tags: Optional[list[str]] = None
    milestones: Optional[list[Milestone]] = None


# --- Invoices ---


class InvoiceCreate(CamelModel):
    client_id: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    items: list[InvoiceItem] = []
    due_date: Optional[UTCDateTime] = None
    notes: str = ""
    discount: float = Field(default=0.0, ge=0, le=100)
    tax: float = Field(default=0.0, ge=0, le=100)


class InvoiceUpdate(CamelModel):
    """Full-field edit. Status changes go through InvoiceStatusUpdate."""

    client_id: Optional[str] = None
    project_id: Optional[str] = None
    items: Optional[list[InvoiceItem]] = None
    due_date: Optional[UTCDateTime] = None
    notes: Optional[str] = None
    discount: Optional[float] = Field(default=None, ge=0, le=100)
    tax: Optional[float] = Field(default=None, ge=0, le=100)
    paid_amount: Optional[float] = Field(default=None, ge=0)


class InvoiceStatusUpdate(CamelModel):
    status: InvoiceStatus


# --- Notifications ---


class NotificationCreate(CamelModel):
    type: NotificationType = NotificationType.SYSTEM_ALERT
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=500)
    client_id: Optional[str] = None
    project_id: Optional[str] = None
    invoice_id: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    metadata: dict[str, Any] = {}
