"""Email notification adapter using Gmail API.

Uses the lightweight OAuth refresh token flow over httpx, no google client
libraries needed.

Environment variables (via config overrides):
  CONFIG__NOTIFICATION__CHANNELS__EMAIL__CLIENT_ID,
  CONFIG__NOTIFICATION__CHANNELS__EMAIL__CLIENT_SECRET,
  CONFIG__NOTIFICATION__CHANNELS__EMAIL__REFRESH_TOKEN
"""

import base64
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional

import httpx
from jinja2 import Environment, FileSystemLoader

from ..config import EmailConfig
from ..models import Client, Notification, Priority

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
GMAIL_PROFILE_URL = "https://gmail.googleapis.com/gmail/v1/users/me/profile"

ACCENTS = {
    Priority.URGENT: "#dc2626",
    Priority.HIGH: "#f59e0b",
    Priority.MEDIUM: "#6366f1",
    Priority.LOW: "#10b981",
}


class EmailAdapter:
    """Gmail API adapter for email notifications."""

    channel_name = "email"

    def __init__(self, config: EmailConfig):
        self.config = config
        self._access_token: Optional[str] = None
        self._jinja = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    @property
    def is_enabled(self) -> bool:
        return (
            self.config.enabled
            and bool(self.config.client_id)
            and bool(self.config.refresh_token)
        )

    def recipient_for(self, client: Optional[Client]) -> Optional[str]:
        if client is None or not client.email:
            return None
        return client.email

    async def _get_access_token(self) -> str:
        """Get OAuth access token via refresh token."""
        if self._access_token:
            return self._access_token

        async with httpx.AsyncClient() as http:
            resp = await http.post(
                OAUTH_TOKEN_URL,
                data={
                    "client_id": self.config.client_id,
                    "client_secret": self.config.client_secret,
                    "refresh_token": self.config.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            resp.raise_for_status()
            self._access_token = resp.json()["access_token"]
            return self._access_token

    def render(self, notification: Notification, client: Client) -> str:
        details = [
            (key.replace("_", " ").title(), value)
            for key, value in notification.metadata.items()
            if isinstance(value, (str, int, float))
        ]
        template = self._jinja.get_template("notification.html")
        return template.render(
            title=notification.title,
            message=notification.message,
            client_name=client.name,
            sender_name=self.config.sender_name,
            accent=ACCENTS.get(notification.priority, "#6366f1"),
            details=details,
            timestamp=(
                notification.created_at.strftime("%d.%m.%Y %H:%M")
                if notification.created_at
                else ""
            ),
        )

    async def send(self, notification: Notification, client: Client) -> bool:
        """Send HTML email with plain text fallback."""
        recipient = self.recipient_for(client)
        token = await self._get_access_token()

        try:
            html_content = self.render(notification, client)
        except Exception as e:
            logger.warning(f"Template render failed, using plain: {e}")
            html_content = None

        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"[{self.config.sender_name}] {notification.title}"
        msg["From"] = "me"
        msg["To"] = recipient
        msg.attach(MIMEText(notification.message, "plain", "utf-8"))
        if html_content:
            msg.attach(MIMEText(html_content, "html", "utf-8"))

        raw = base64.urlsafe_b64encode(msg.as_bytes()).decode()

        async with httpx.AsyncClient() as http:
            resp = await http.post(
                GMAIL_SEND_URL,
                headers={"Authorization": f"Bearer {token}"},
                json={"raw": raw},
            )
            resp.raise_for_status()
        logger.info(f"Email sent to {recipient}")
        return True

    async def health_check(self) -> bool:
        try:
            token = await self._get_access_token()
            async with httpx.AsyncClient() as http:
                resp = await http.get(
                    GMAIL_PROFILE_URL,
                    headers={"Authorization": f"Bearer {token}"},
                )
                return resp.status_code == 200
        except Exception:
            return False
