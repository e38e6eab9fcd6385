"""
Health Check Endpoint
"""

import os

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ..dependencies import get_dispatcher, get_repos
from ..dispatcher import NotificationDispatcher
from ..repositories import Repositories

router = APIRouter()


@router.get("/health")
async def health_check(
    repos: Repositories = Depends(get_repos),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Health check endpoint"""
    try:
        storage = await run_in_threadpool(repos.store.describe)
        storage_status = "healthy"
    except OSError as e:
        storage = {}
        storage_status = f"unhealthy: {e}"

    channels = await dispatcher.health_check()
    if storage_status != "healthy":
        status = "unhealthy"
    elif all(channels.values()):
        status = "healthy"
    else:
        status = "degraded"

    return {
        "status": status,
        "storage": storage_status,
        "collections": storage.get("collections", {}),
        "channels": channels,
        "version": "1.0.0",
        "environment": os.getenv("ENVIRONMENT", "development"),
    }
