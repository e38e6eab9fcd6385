"""Base adapter protocol for notification channels."""

from typing import Optional, Protocol, runtime_checkable

from ..models import Client, Notification


@runtime_checkable
class NotificationAdapter(Protocol):
    """Protocol for notification channel adapters."""

    @property
    def channel_name(self) -> str:
        """Key under which deliveries are recorded on the notification."""
        ...

    @property
    def is_enabled(self) -> bool:
        """Whether this channel is configured and enabled."""
        ...

    def recipient_for(self, client: Optional[Client]) -> Optional[str]:
        """Address for this channel, or None when the client has none."""
        ...

    async def send(self, notification: Notification, client: Client) -> bool:
        """Send notification. Raises on provider errors."""
        ...

    async def health_check(self) -> bool:
        """Verify channel connectivity. Returns True if healthy."""
        ...
