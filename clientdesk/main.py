"""ClientDesk API.

FastAPI application providing REST API for:
- Clients, projects and invoices over a flat-file store
- In-app notifications with Email and WhatsApp delivery
- Scheduled reminder jobs (deadlines, overdue projects, unpaid invoices, cleanup)
- Dashboard and calendar views
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .auth.jwt import get_current_user
from .clock import Clock, SystemClock
from .config import ServiceConfig, load_config
from .dispatcher import NotificationDispatcher
from .errors import register_error_handlers
from .reminders import ReminderEngine
from .repositories import build_repositories
from .routers import (
    auth,
    clients,
    dashboard,
    events,
    health,
    invoices,
    notifications,
    projects,
    reminders,
)
from .scheduler import Scheduler
from .storage import JSONFileStore

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reminder scheduler for the lifetime of the app."""
    config: ServiceConfig = app.state.config
    if config.reminders.enabled:
        app.state.scheduler.start(config.reminders.poll_seconds)
    logger.info(
        f"Service started. Data dir: {config.storage.data_dir}, "
        f"channels: {app.state.dispatcher.enabled_channels}"
    )
    yield
    await app.state.scheduler.stop()
    logger.info("Service shutdown.")


def create_app(
    config: Optional[ServiceConfig] = None,
    store: Optional[JSONFileStore] = None,
    clock: Optional[Clock] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    config = config or load_config()
    clock = clock or SystemClock()
    store = store or JSONFileStore(config.storage.data_dir)
    configure_logging(config.log_level)

    repos = build_repositories(
        store,
        clock,
        ttl_days=config.reminders.notification_ttl_days,
        retention_days=config.reminders.retention_days,
    )
    dispatcher = dispatcher or NotificationDispatcher(config, clock)
    engine = ReminderEngine(repos, dispatcher, clock, config.reminders)
    scheduler = Scheduler(clock)
    engine.register(scheduler)

    app = FastAPI(
        title="ClientDesk API",
        description="Client, project and invoice management",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.repos = repos
    app.state.dispatcher = dispatcher
    app.state.reminders = engine
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    protected = [Depends(get_current_user)]
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(
        clients.router, prefix="/api/clients", tags=["Clients"], dependencies=protected
    )
    app.include_router(
        projects.router, prefix="/api/projects", tags=["Projects"], dependencies=protected
    )
    app.include_router(
        invoices.router, prefix="/api/invoices", tags=["Invoices"], dependencies=protected
    )
    app.include_router(
        notifications.router,
        prefix="/api/notifications",
        tags=["Notifications"],
        dependencies=protected,
    )
    app.include_router(
        events.router, prefix="/api/events", tags=["Events"], dependencies=protected
    )
    app.include_router(
        dashboard.router, prefix="/api/dashboard", tags=["Dashboard"], dependencies=protected
    )
    app.include_router(
        reminders.router, prefix="/api/reminders", tags=["Reminders"], dependencies=protected
    )

    @app.get("/")
    async def root():
        return {
            "name": "ClientDesk API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health",
        }

    return app
