"""Notification dispatcher - orchestrates multi-channel delivery.

Handles:
- Channel discovery and initialization
- Per-client recipient resolution
- Error isolation (one channel failure doesn't block others)

The in-app record is written by the repository before dispatch, so a failing
channel can never lose the notification itself.
"""

import asyncio
import logging
from typing import Optional

from .adapters import NotificationAdapter
from .adapters.email_adapter import EmailAdapter
from .adapters.whatsapp_adapter import WhatsAppAdapter
from .clock import Clock, SystemClock
from .config import ServiceConfig
from .models import Client, DeliveryRecord, Notification

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Orchestrates notification delivery across all configured channels."""

    def __init__(
        self,
        config: ServiceConfig,
        clock: Optional[Clock] = None,
        adapters: Optional[list[NotificationAdapter]] = None,
    ):
        self.config = config
        self.clock = clock or SystemClock()
        self.adapters: list[NotificationAdapter] = (
            adapters if adapters is not None else self._init_adapters()
        )

    def _init_adapters(self) -> list[NotificationAdapter]:
        """Initialize all configured and enabled adapters."""
        channels = self.config.notification.channels
        adapters: list[NotificationAdapter] = []

        email = EmailAdapter(channels.email)
        if email.is_enabled:
            adapters.append(email)

        whatsapp = WhatsAppAdapter(channels.whatsapp)
        if whatsapp.is_enabled:
            adapters.append(whatsapp)

        logger.info(
            f"Initialized {len(adapters)} notification channels: "
            f"{[a.channel_name for a in adapters]}"
        )
        return adapters

    async def dispatch(
        self, notification: Notification, client: Optional[Client]
    ) -> dict[str, DeliveryRecord]:
        """Send a notification to every enabled channel the client can receive.

        Returns:
            Dict mapping channel_name -> DeliveryRecord
        """
        if not self.adapters:
            return {}

        results: dict[str, DeliveryRecord] = {}

        async def _send_safe(adapter: NotificationAdapter) -> tuple[str, DeliveryRecord]:
            name = adapter.channel_name
            if adapter.recipient_for(client) is None:
                return name, DeliveryRecord(attempted=False)
            try:
                success = await adapter.send(notification, client)
                return name, DeliveryRecord(
                    attempted=True, succeeded=bool(success), timestamp=self.clock.now()
                )
            except Exception as e:
                logger.error(f"Channel {name} failed: {e}", exc_info=True)
                return name, DeliveryRecord(
                    attempted=True,
                    succeeded=False,
                    timestamp=self.clock.now(),
                    error=str(e),
                )

        tasks = [_send_safe(adapter) for adapter in self.adapters]
        for coro in asyncio.as_completed(tasks):
            name, record = await coro
            results[name] = record
            if record.succeeded:
                logger.info(f"{name}: sent ({notification.title})")
            elif record.attempted:
                logger.warning(f"{name}: failed ({record.error})")

        return results

    async def health_check(self) -> dict[str, bool]:
        """Check health of all configured channels."""
        results = {}
        for adapter in self.adapters:
            try:
                results[adapter.channel_name] = await adapter.health_check()
            except Exception:
                results[adapter.channel_name] = False
        return results

    @property
    def enabled_channels(self) -> list[str]:
        return [a.channel_name for a in self.adapters]
