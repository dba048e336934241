"""
api/routes_notifications.py — Notification Feed API Endpoints

Endpoints:
    GET /api/notifications                 → Page of own notifications
    GET /api/notifications/unread-count    → Number of unread
    PUT /api/notifications/mark-all-read   → Mark everything read
    PUT /api/notifications/{id}/read       → Mark one read
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import get_current_user
from db.models import User
from db.session import get_db
from modules import notifications

router = APIRouter()


@router.get("/")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notifications.get_user_notifications(db, user.id, page, limit)


@router.get("/unread-count")
async def unread_count(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"count": await notifications.get_unread_count(db, user.id)}


@router.put("/mark-all-read")
async def mark_all_read(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await notifications.mark_all_as_read(db, user.id)
    return {"message": "All notifications marked as read"}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await notifications.mark_as_read(db, notification_id, user.id)
    return notifications.notification_to_dict(notification)
