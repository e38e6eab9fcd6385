"""Tests for channel adapters and the notification dispatcher."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from clientdesk.adapters import NotificationAdapter
from clientdesk.config import EmailConfig, ServiceConfig, WhatsAppConfig
from clientdesk.dispatcher import NotificationDispatcher
from clientdesk.errors import DeliveryError
from clientdesk.models import Client, Notification, NotificationType, Priority


@pytest.fixture
def notification():
    return Notification(
        id="n1",
        type=NotificationType.DEADLINE_REMINDER,
        title="Deadline Reminder: 1 day remaining",
        message='Project "Website" deadline is approaching in 1 day',
        priority=Priority.URGENT,
        metadata={"project": "Website", "daysUntil": 1},
    )


@pytest.fixture
def customer():
    return Client(id="c1", name="Acme Corp", email="billing@acme.test", whatsapp="+43 (660) 123-4567")


def _mock_http(mock_client, response):
    http = MagicMock(post=AsyncMock(return_value=response), get=AsyncMock(return_value=response))
    mock_client.return_value.__aenter__ = AsyncMock(return_value=http)
    mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
    return http


# --- Adapter Tests (mocked) ---


class TestWhatsAppAdapter:
    def _adapter(self):
        from clientdesk.adapters.whatsapp_adapter import WhatsAppAdapter

        return WhatsAppAdapter(
            WhatsAppConfig(enabled=True, account_sid="AC1", auth_token="t", from_number="+14155238886")
        )

    def test_disabled_without_credentials(self):
        from clientdesk.adapters.whatsapp_adapter import WhatsAppAdapter

        adapter = WhatsAppAdapter(WhatsAppConfig(enabled=True))
        assert adapter.is_enabled is False

    def test_implements_protocol(self):
        assert isinstance(self._adapter(), NotificationAdapter)

    def test_recipient_is_cleaned(self, customer):
        assert self._adapter().recipient_for(customer) == "+436601234567"

    def test_no_number_no_recipient(self):
        client = Client(name="NoPhone", email="x@y.test")
        assert self._adapter().recipient_for(client) is None

    def test_message_capped(self, notification, customer):
        long = notification.model_copy(update={"message": "x" * 500})
        msg = self._adapter()._build_message(long, customer)
        assert len(msg) <= 1600
        assert msg.startswith("🚨 *Deadline Reminder")

    @pytest.mark.asyncio
    async def test_send_success(self, notification, customer):
        resp = MagicMock(status_code=201)
        resp.json.return_value = {"sid": "SM123"}
        with patch("clientdesk.adapters.whatsapp_adapter.httpx.AsyncClient") as mock_client:
            http = _mock_http(mock_client, resp)
            assert await self._adapter().send(notification, customer) is True

        data = http.post.call_args.kwargs["data"]
        assert data["To"] == "whatsapp:+436601234567"
        assert data["From"] == "whatsapp:+14155238886"

    @pytest.mark.asyncio
    async def test_send_rejected(self, notification, customer):
        resp = MagicMock(status_code=400, text="bad")
        resp.json.return_value = {"message": "Invalid To number"}
        with patch("clientdesk.adapters.whatsapp_adapter.httpx.AsyncClient") as mock_client:
            _mock_http(mock_client, resp)
            with pytest.raises(DeliveryError, match="Invalid To number"):
                await self._adapter().send(notification, customer)


class TestEmailAdapter:
    def _adapter(self):
        from clientdesk.adapters.email_adapter import EmailAdapter

        return EmailAdapter(
            EmailConfig(enabled=True, client_id="id", client_secret="s", refresh_token="r")
        )

    def test_disabled_without_token(self):
        from clientdesk.adapters.email_adapter import EmailAdapter

        assert EmailAdapter(EmailConfig(enabled=True)).is_enabled is False

    def test_render_template(self, notification, customer):
        html = self._adapter().render(notification, customer)
        assert "Deadline Reminder: 1 day remaining" in html
        assert "Dear Acme Corp" in html
        assert "Website" in html

    @pytest.mark.asyncio
    async def test_send_success(self, notification, customer):
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"access_token": "tok"}
        with patch("clientdesk.adapters.email_adapter.httpx.AsyncClient") as mock_client:
            http = _mock_http(mock_client, resp)
            assert await self._adapter().send(notification, customer) is True

        # token refresh + message send
        assert http.post.await_count == 2
        assert http.post.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}


# --- Dispatcher Tests ---


class TestDispatcher:
    def test_no_channels_when_disabled(self):
        d = NotificationDispatcher(ServiceConfig())
        assert d.enabled_channels == []

    def test_enabled_from_config(self):
        config = ServiceConfig(
            notification={
                "channels": {"email": {"enabled": True, "client_id": "id", "refresh_token": "r"}}
            }
        )
        assert NotificationDispatcher(config).enabled_channels == ["email"]

    @pytest.mark.asyncio
    async def test_failure_isolated(self, notification, customer, adapter_factory, clock):
        broken = adapter_factory("email", send=AsyncMock(side_effect=RuntimeError("boom")))
        working = adapter_factory("whatsapp")
        d = NotificationDispatcher(ServiceConfig(), clock, adapters=[broken, working])

        results = await d.dispatch(notification, customer)

        assert results["email"].attempted is True
        assert results["email"].succeeded is False
        assert results["email"].error == "boom"
        assert results["whatsapp"].succeeded is True
        working.send.assert_awaited_once_with(notification, customer)

    @pytest.mark.asyncio
    async def test_missing_recipient_not_attempted(self, notification, customer, adapter_factory):
        silent = adapter_factory("whatsapp", recipient=None)
        d = NotificationDispatcher(ServiceConfig(), adapters=[silent])

        results = await d.dispatch(notification, customer)

        assert results["whatsapp"].attempted is False
        silent.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_adapters(self, notification, customer):
        d = NotificationDispatcher(ServiceConfig(), adapters=[])
        assert await d.dispatch(notification, customer) == {}

    @pytest.mark.asyncio
    async def test_health_check_isolated(self, adapter_factory):
        bad = adapter_factory("email")
        bad.health_check = AsyncMock(side_effect=RuntimeError("down"))
        d = NotificationDispatcher(ServiceConfig(), adapters=[bad, adapter_factory("whatsapp")])
        assert await d.health_check() == {"email": False, "whatsapp": True}
