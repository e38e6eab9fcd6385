"""FastAPI dependencies resolving per-app state built by create_app()."""

from fastapi import Request

from .config import ServiceConfig
from .dispatcher import NotificationDispatcher
from .reminders import ReminderEngine
from .repositories import Repositories


def get_config(request: Request) -> ServiceConfig:
    return request.app.state.config


def get_repos(request: Request) -> Repositories:
    return request.app.state.repos


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_reminders(request: Request) -> ReminderEngine:
    return request.app.state.reminders


def page_size(request: Request) -> int:
    return request.app.state.config.api.default_page_size
