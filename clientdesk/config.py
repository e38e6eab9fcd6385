"""Configuration management for storage, auth, channels and reminder jobs.

Loads from YAML config file with environment variable overrides.
Pattern: CONFIG__{SECTION}__{KEY} overrides nested YAML keys.
Example: CONFIG__NOTIFICATION__CHANNELS__WHATSAPP__ENABLED=true
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


# --- Storage / Auth / API ---


class StorageConfig(BaseModel):
    data_dir: str = ""  # from env: DATA_DIR, falls back to ./db


class AuthConfig(BaseModel):
    jwt_secret: str = ""  # from env: JWT_SECRET
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60
    min_password_length: int = 6


class ApiConfig(BaseModel):
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    default_page_size: int = Field(default=10, ge=1, le=500)


# --- Channel Configs ---


class EmailConfig(BaseModel):
    enabled: bool = False
    sender_name: str = "ClientDesk"
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""


class WhatsAppConfig(BaseModel):
    enabled: bool = False
    provider: str = "twilio"
    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""  # Twilio sandbox or WhatsApp Business number


class ChannelsConfig(BaseModel):
    email: EmailConfig = EmailConfig()
    whatsapp: WhatsAppConfig = WhatsAppConfig()


class NotificationConfig(BaseModel):
    channels: ChannelsConfig = ChannelsConfig()


# --- Reminder jobs ---


class ScheduleConfig(BaseModel):
    hour: int = Field(default=9, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    weekday: Optional[int] = Field(default=None, ge=0, le=6)  # Monday == 0
    day: Optional[int] = Field(default=None, ge=1, le=28)


class RemindersConfig(BaseModel):
    enabled: bool = True
    poll_seconds: int = Field(default=60, ge=1)
    deadline_windows: list[int] = [1, 3, 7]
    invoice_lookback_days: int = 30
    notification_ttl_days: int = 30
    retention_days: int = 90
    deadlines: ScheduleConfig = ScheduleConfig(hour=9)
    overdue_projects: ScheduleConfig = ScheduleConfig(hour=10, weekday=0)
    invoice_reminders: ScheduleConfig = ScheduleConfig(hour=9, day=1)
    cleanup: ScheduleConfig = ScheduleConfig(hour=2)


# --- Service Config ---


class ServiceConfig(BaseModel):
    storage: StorageConfig = StorageConfig()
    auth: AuthConfig = AuthConfig()
    api: ApiConfig = ApiConfig()
    notification: NotificationConfig = NotificationConfig()
    reminders: RemindersConfig = RemindersConfig()
    log_level: str = "INFO"


def _apply_env_overrides(config_dict: dict, prefix: str = "CONFIG") -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: CONFIG__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        # Type coercion for common cases
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


def load_config(
    config_path: Optional[str] = None,
) -> ServiceConfig:
    """Load configuration from YAML file with env overrides.

    Priority: CONFIG__ overrides > JWT_SECRET / DATA_DIR / LOG_LEVEL
    > YAML file > defaults
    """
    config_dict = {}

    # 1. Load YAML if exists
    if config_path is None:
        config_path = os.getenv("CONFIG_PATH", "config/clientdesk.yml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    # 2. Secrets and paths from dedicated env vars
    auth = config_dict.setdefault("auth", {})
    storage = config_dict.setdefault("storage", {})
    if os.getenv("JWT_SECRET"):
        auth["jwt_secret"] = os.environ["JWT_SECRET"]
    if os.getenv("DATA_DIR"):
        storage["data_dir"] = os.environ["DATA_DIR"]
    if os.getenv("LOG_LEVEL"):
        config_dict["log_level"] = os.environ["LOG_LEVEL"]

    # 3. Apply env overrides
    config_dict = _apply_env_overrides(config_dict)

    if not auth.get("jwt_secret"):
        auth["jwt_secret"] = "change-me-in-production"
    if not storage.get("data_dir"):
        storage["data_dir"] = "db"

    return ServiceConfig(**config_dict)
