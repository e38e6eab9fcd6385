"""Tests for entity repositories: references, counters and invoice lifecycle."""

from datetime import datetime, timedelta, timezone

import pytest

from clientdesk.errors import ConflictError, NotFoundError, ValidationError
from clientdesk.models import InvoiceItem, InvoiceStatus, NotificationStatus, ProjectStatus
from clientdesk.repositories import paginate
from clientdesk.schemas import (
    ClientCreate,
    ClientUpdate,
    InvoiceCreate,
    InvoiceUpdate,
    NotificationCreate,
    ProjectCreate,
    ProjectUpdate,
)

# Matches the FixedClock instant in conftest
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _project(client_id, **kwargs):
    return ProjectCreate(title=kwargs.pop("title", "Website"), client_id=client_id, **kwargs)


def _invoice(client_id, **kwargs):
    items = kwargs.pop("items", [InvoiceItem(description="Dev", quantity=2, rate=50)])
    return InvoiceCreate(client_id=client_id, items=items, **kwargs)


# --- Clients ---


class TestClients:

    def test_create_baseline(self, acme):
        assert acme.id
        assert acme.total_projects == 0
        assert acme.total_revenue == 0
        assert acme.status == "active"
        assert acme.created_at == NOW

    def test_duplicate_email_conflict(self, repos, acme):
        with pytest.raises(ConflictError, match="already exists"):
            repos.clients.create(ClientCreate(name="Other", email="billing@acme.test"))
        assert len(repos.clients.all()) == 1

    def test_email_match_is_case_sensitive(self, repos, acme):
        repos.clients.create(ClientCreate(name="Other", email="Billing@Acme.test"))
        assert len(repos.clients.all()) == 2

    def test_update_rechecks_email(self, repos, acme):
        other = repos.clients.create(ClientCreate(name="Other", email="o@other.test"))
        with pytest.raises(ConflictError):
            repos.clients.update(other.id, ClientUpdate(email="billing@acme.test"))

    def test_update_ignores_blank_required_fields(self, repos, acme):
        updated = repos.clients.update(acme.id, ClientUpdate(name="", phone="555"))
        assert updated.name == "Acme Corp"
        assert updated.phone == "555"

    def test_get_unknown(self, repos):
        with pytest.raises(NotFoundError):
            repos.clients.get("missing")

    def test_search(self, repos, acme):
        repos.clients.create(ClientCreate(name="Globex", email="g@globex.test"))
        assert [c.name for c in repos.clients.search("ACME")] == ["Acme Corp"]
        assert len(repos.clients.search(status="active")) == 2


# --- Projects and client counters ---


class TestProjects:

    def test_create_increments_counter(self, repos, acme):
        repos.projects.create(_project(acme.id))
        repos.projects.create(_project(acme.id, title="App"))
        assert repos.clients.get(acme.id).total_projects == 2

    def test_unknown_client_mutates_nothing(self, repos, acme):
        with pytest.raises(NotFoundError):
            repos.projects.create(_project("missing"))
        assert repos.projects.all() == []
        assert repos.clients.get(acme.id).total_projects == 0

    def test_delete_decrements_with_floor(self, repos, acme):
        project = repos.projects.create(_project(acme.id))
        repos.store.update("clients", acme.id, {"totalProjects": 0})
        repos.projects.delete(project.id)
        assert repos.clients.get(acme.id).total_projects == 0

    def test_update_stats_revenue_from_completed(self, repos, acme):
        repos.projects.create(_project(acme.id, budget=600, status="completed"))
        second = repos.projects.create(_project(acme.id, title="App", budget=400))
        repos.projects.create(_project(acme.id, title="Infra", budget=999, status="in-progress"))
        repos.projects.update(second.id, ProjectUpdate(status=ProjectStatus.COMPLETED))

        client = repos.clients.update_stats(acme.id, repos.projects.all())
        assert client.total_revenue == 1000
        assert client.total_projects == 3

    def test_completed_date_set_once(self, repos, acme, clock):
        project = repos.projects.create(_project(acme.id))
        done = repos.projects.update(project.id, ProjectUpdate(status=ProjectStatus.COMPLETED))
        assert done.completed_date == NOW

        clock.advance(days=2)
        again = repos.projects.update(project.id, ProjectUpdate(progress=100))
        assert again.completed_date == NOW

    def test_deadline_alias(self, repos, acme):
        due = NOW + timedelta(days=5)
        project = repos.projects.create(
            ProjectCreate.model_validate(
                {"title": "Alias", "clientId": acme.id, "deadline": due.isoformat(), "amount": 250}
            )
        )
        assert project.end_date == due
        assert project.budget == 250
        assert "endDate" in project.to_record()

    def test_move_to_unknown_client(self, repos, acme):
        project = repos.projects.create(_project(acme.id))
        with pytest.raises(NotFoundError):
            repos.projects.update(project.id, ProjectUpdate(client_id="missing"))

    def test_listing_enriched(self, repos, acme):
        repos.projects.create(_project(acme.id))
        rows = repos.projects.search()
        assert rows[0]["clientName"] == "Acme Corp"
        assert rows[0]["clientCompany"] == "Acme"


# --- Invoices ---


class TestInvoices:

    def test_create_computes_totals(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id, discount=10, tax=8))
        assert invoice.invoice_number == "INV-0001"
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.subtotal == 100
        assert invoice.discount_amount == 10
        assert invoice.tax_amount == 7.2
        assert invoice.total == 97.2
        assert invoice.items[0].amount == 100
        assert invoice.paid_amount == 0
        assert invoice.due_date == NOW + timedelta(days=30)

    def test_numbers_are_sequential(self, repos, acme):
        repos.invoices.create(_invoice(acme.id))
        assert repos.invoices.create(_invoice(acme.id)).invoice_number == "INV-0002"

    def test_requires_items(self, repos, acme):
        with pytest.raises(ValidationError):
            repos.invoices.create(_invoice(acme.id, items=[]))

    def test_unknown_client_or_project(self, repos, acme):
        with pytest.raises(NotFoundError):
            repos.invoices.create(_invoice("missing"))
        with pytest.raises(NotFoundError):
            repos.invoices.create(_invoice(acme.id, project_id="missing"))
        assert repos.invoices.all() == []

    def test_send_then_delete_rejected(self, repos, acme, clock):
        invoice = repos.invoices.create(_invoice(acme.id))
        sent = repos.invoices.change_status(invoice.id, InvoiceStatus.SENT)
        assert sent.status == InvoiceStatus.SENT
        assert sent.sent_date == NOW
        assert sent.total == invoice.total

        with pytest.raises(ConflictError, match="draft"):
            repos.invoices.delete(invoice.id)
        assert repos.invoices.get(invoice.id).status == InvoiceStatus.SENT

    def test_draft_delete(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        repos.invoices.delete(invoice.id)
        with pytest.raises(NotFoundError):
            repos.invoices.get(invoice.id)

    def test_invalid_transition(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        repos.invoices.change_status(invoice.id, InvoiceStatus.SENT)
        repos.invoices.change_status(invoice.id, InvoiceStatus.PAID)
        with pytest.raises(ConflictError):
            repos.invoices.change_status(invoice.id, InvoiceStatus.DRAFT)

    def test_update_recomputes_totals(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        updated = repos.invoices.update(
            invoice.id,
            InvoiceUpdate(items=[InvoiceItem(description="More", quantity=4, rate=25)], tax=20),
        )
        assert updated.subtotal == 100
        assert updated.tax_amount == 20
        assert updated.total == 120

    def test_update_keeps_client_when_blank(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        saved = repos.invoices.update(invoice.id, InvoiceUpdate(client_id="", notes="Net 14"))
        assert saved.client_id == acme.id
        assert saved.notes == "Net 14"
        assert repos.invoices.detail(invoice.id)["clientName"] == "Acme Corp"

    def test_update_to_unknown_client(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        with pytest.raises(NotFoundError):
            repos.invoices.update(invoice.id, InvoiceUpdate(client_id="missing"))
        assert repos.invoices.get(invoice.id).client_id == acme.id

    def test_update_rejects_empty_items(self, repos, acme):
        invoice = repos.invoices.create(_invoice(acme.id))
        with pytest.raises(ValidationError):
            repos.invoices.update(invoice.id, InvoiceUpdate(items=[]))

    def test_overdue_is_derived(self, repos, acme, clock):
        invoice = repos.invoices.create(_invoice(acme.id, due_date=NOW + timedelta(days=1)))
        repos.invoices.change_status(invoice.id, InvoiceStatus.SENT)
        clock.advance(days=2)
        detail = repos.invoices.detail(invoice.id)
        assert detail["isOverdue"] is True
        assert detail["displayStatus"] == "overdue"
        assert detail["status"] == "sent"
        assert detail["clientEmail"] == "billing@acme.test"
        assert detail["projectTitle"] == "No Project"


# --- Notifications ---


class TestNotifications:

    def _create(self, repos, title="Hello"):
        return repos.notifications.create(NotificationCreate(title=title, message="World"))

    def test_create_sets_expiry_and_in_app(self, repos):
        notification = self._create(repos)
        assert notification.status == NotificationStatus.UNREAD
        assert notification.expires_at == NOW + timedelta(days=30)
        assert notification.channels["inApp"].succeeded is True

    def test_mark_read_and_all(self, repos):
        first = self._create(repos)
        self._create(repos, "Second")
        assert repos.notifications.mark_read(first.id).read_at == NOW
        assert repos.notifications.unread_count() == 1
        assert repos.notifications.mark_all_read() == 1
        assert repos.notifications.unread_count() == 0

    def test_purge_old_read(self, repos, clock):
        old = self._create(repos, "Old")
        repos.notifications.mark_read(old.id)
        clock.advance(days=91)
        fresh = self._create(repos, "Fresh")

        assert repos.notifications.purge() == 1
        assert [n.id for n in repos.notifications.all()] == [fresh.id]

    def test_delete_unknown(self, repos):
        with pytest.raises(NotFoundError):
            repos.notifications.delete("missing")


# --- Users ---


class TestUsers:

    def test_register_and_authenticate(self, repos):
        user = repos.users.create("Admin", "admin@x.test", "secret1")
        assert user.password_hash != "secret1"
        assert "passwordHash" not in user.public()
        assert repos.users.authenticate("admin@x.test", "secret1").id == user.id
        assert repos.users.authenticate("admin@x.test", "wrong") is None

    def test_duplicate_user(self, repos):
        repos.users.create("Admin", "admin@x.test", "secret1")
        with pytest.raises(ConflictError, match="User already exists"):
            repos.users.create("Again", "admin@x.test", "secret2")


def test_paginate():
    rows, meta = paginate(list(range(25)), page=3, limit=10, total_key="totalClients")
    assert rows == [20, 21, 22, 23, 24]
    assert meta == {
        "currentPage": 3,
        "totalPages": 3,
        "totalClients": 25,
        "hasNext": False,
        "hasPrev": True,
    }
