"""
Notifications API Endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.jwt import get_current_user
from ..dependencies import get_repos, page_size
from ..models import NotificationStatus, NotificationType, User
from ..repositories import Repositories, paginate
from ..schemas import NotificationCreate

router = APIRouter()


@router.get("")
def list_notifications(
    status: Optional[NotificationStatus] = None,
    type: Optional[NotificationType] = None,
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=500),
    repos: Repositories = Depends(get_repos),
    default_limit: int = Depends(page_size),
):
    notifications = repos.notifications.search(status, type)
    rows, pagination = paginate(
        notifications, page, limit or default_limit, "totalNotifications"
    )
    return {
        "notifications": [n.to_record() for n in rows],
        "pagination": pagination,
        "unreadCount": repos.notifications.unread_count(),
    }


@router.get("/unread-count")
def unread_count(repos: Repositories = Depends(get_repos)):
    return {"unreadCount": repos.notifications.unread_count()}


@router.get("/stats")
def notification_stats(repos: Repositories = Depends(get_repos)):
    return repos.notifications.stats()


@router.put("/mark-all-read")
def mark_all_read(repos: Repositories = Depends(get_repos)):
    changed = repos.notifications.mark_all_read()
    return {"message": "All notifications marked as read", "updated": changed}


@router.put("/{notification_id}/read")
def mark_read(notification_id: str, repos: Repositories = Depends(get_repos)):
    notification = repos.notifications.mark_read(notification_id)
    return {"message": "Notification marked as read", "notification": notification.to_record()}


@router.put("/{notification_id}/archive")
def archive(notification_id: str, repos: Repositories = Depends(get_repos)):
    notification = repos.notifications.archive(notification_id)
    return {"message": "Notification archived", "notification": notification.to_record()}


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, repos: Repositories = Depends(get_repos)):
    repos.notifications.delete(notification_id)
    return {"message": "Notification deleted successfully"}


@router.post("", status_code=201)
def create_notification(
    body: NotificationCreate,
    repos: Repositories = Depends(get_repos),
    current_user: User = Depends(get_current_user),
):
    """Manual in-app notification"""
    notification = repos.notifications.create(body, user_id=current_user.id)
    return {"message": "Notification created successfully", "notification": notification.to_record()}
