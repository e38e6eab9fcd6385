"""WhatsApp notification adapter via Twilio API.

Sends concise text messages to the client's WhatsApp number.
Uses Twilio WhatsApp Business API (or Sandbox for testing).
"""

import logging
import re
from typing import Optional

import httpx

from ..config import WhatsAppConfig
from ..errors import DeliveryError
from ..models import Client, Notification, Priority

logger = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"

MAX_MESSAGE_LENGTH = 1600

PRIORITY_EMOJI = {
    Priority.URGENT: "🚨",
    Priority.HIGH: "⚠️",
    Priority.MEDIUM: "🔔",
    Priority.LOW: "ℹ️",
}


def clean_number(number: str) -> str:
    """Keep digits and the leading plus sign."""
    return re.sub(r"[^\d+]", "", number or "")


class WhatsAppAdapter:
    """Twilio WhatsApp adapter."""

    channel_name = "whatsapp"

    def __init__(self, config: WhatsAppConfig):
        self.config = config

    @property
    def is_enabled(self) -> bool:
        return (
            self.config.enabled
            and bool(self.config.account_sid)
            and bool(self.config.auth_token)
            and bool(self.config.from_number)
        )

    def recipient_for(self, client: Optional[Client]) -> Optional[str]:
        if client is None:
            return None
        return clean_number(client.whatsapp) or None

    async def send(self, notification: Notification, client: Client) -> bool:
        """Send WhatsApp message via Twilio."""
        message = self._build_message(notification, client)
        url = f"{TWILIO_API}/Accounts/{self.config.account_sid}/Messages.json"

        async with httpx.AsyncClient() as http:
            resp = await http.post(
                url,
                auth=(self.config.account_sid, self.config.auth_token),
                data={
                    "From": f"whatsapp:{self.config.from_number}",
                    "To": f"whatsapp:{self.recipient_for(client)}",
                    "Body": message,
                },
            )
            data = resp.json()

        if resp.status_code in (200, 201):
            logger.info(f"WhatsApp sent, SID: {data.get('sid', 'unknown')}")
            return True
        raise DeliveryError(f"WhatsApp failed: {data.get('message', resp.text)}")

    async def health_check(self) -> bool:
        """Verify Twilio credentials."""
        if not self.is_enabled:
            return False
        try:
            async with httpx.AsyncClient() as http:
                resp = await http.get(
                    f"{TWILIO_API}/Accounts/{self.config.account_sid}.json",
                    auth=(self.config.account_sid, self.config.auth_token),
                )
                return resp.status_code == 200
        except Exception:
            return False

    def _build_message(self, notification: Notification, client: Client) -> str:
        """Build concise WhatsApp message (<= 1600 chars)."""
        emoji = PRIORITY_EMOJI.get(notification.priority, "🔔")
        lines = [
            f"{emoji} *{notification.title}*",
            "",
            f"Hi {client.name},",
            notification.message,
        ]
        text = "\n".join(lines)
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 3] + "..."
        return text
