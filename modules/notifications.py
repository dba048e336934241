"""
modules/notifications.py — Notification Service
================================================
The only writer of notifications.

Two ways in:
    create_notification(db, ...)        → caller's session, errors propagate
    notify(...) / notify_many(...)      → own session per write, best effort

Best-effort writes are for side effects of another operation (a new
registration, a new event): their failures are logged and dropped so the
primary operation never sees them. A dropped notification is gone; there
is no retry.
"""

import asyncio
import logging
import math
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from core.errors import NotFound
from core.realtime import connections
from db.models import Notification

logger = logging.getLogger("jataayu.modules.notifications")

NOTIFICATION_TYPES = ("info", "success", "warning", "error")


def notification_to_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "recipient": n.recipient_id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "read": n.read,
        "link": n.link,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


async def create_notification(
    db: AsyncSession,
    recipient_id: str,
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None,
) -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    notification = Notification(
        recipient_id=recipient_id,
        title=title,
        message=message,
        type=type,
        link=link,
    )
    db.add(notification)
    await db.commit()

    await connections.push(recipient_id, {
        "event": "notification",
        "notification": notification_to_dict(notification),
    })
    return notification


async def get_user_notifications(
    db: AsyncSession,
    recipient_id: str,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """One page of a user's notifications, newest first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == recipient_id)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    notifications = result.scalars().all()

    total = await db.scalar(
        select(func.count()).select_from(Notification)
        .where(Notification.recipient_id == recipient_id)
    )
    return {
        "notifications": [notification_to_dict(n) for n in notifications],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }


async def mark_as_read(db: AsyncSession, notification_id: str, recipient_id: str) -> Notification:
    # Someone else's notification looks exactly like a missing one
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == recipient_id,
        )
    )
    notification = result.scalars().first()
    if not notification:
        raise NotFound("Notification not found")

    notification.read = True
    await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, recipient_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.recipient_id == recipient_id, Notification.read == False)  # noqa: E712
        .values(read=True)
    )
    await db.commit()
    return result.rowcount


async def get_unread_count(db: AsyncSession, recipient_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(Notification).where(
            Notification.recipient_id == recipient_id,
            Notification.read == False,  # noqa: E712
        )
    )


# ── Best-effort delivery ──────────────────────────────────────────────────────
async def notify(
    session_factory: async_sessionmaker,
    recipient_id: str,
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None,
) -> Optional[Notification]:
    """Write one notification in its own session. Returns None on failure."""
    try:
        async with session_factory() as session:
            return await create_notification(session, recipient_id, title, message, type, link)
    except Exception as exc:
        logger.warning(f"Notification to {recipient_id} dropped: {exc}")
        return None


async def notify_many(
    session_factory: async_sessionmaker,
    recipient_ids: Iterable[str],
    title: str,
    message: str,
    type: str = "info",
    link: Optional[str] = None,
    concurrency: int = None,
) -> int:
    """
    Fan out one notification per recipient.
    Writes run concurrently, at most `concurrency` at a time, in no
    particular order. Returns how many were delivered.
    """
    recipients = list(recipient_ids)
    if not recipients:
        return 0

    gate = asyncio.Semaphore(concurrency or settings.NOTIFICATION_FANOUT_CONCURRENCY)

    async def _one(recipient_id: str):
        async with gate:
            return await notify(session_factory, recipient_id, title, message, type, link)

    results = await asyncio.gather(*(_one(r) for r in recipients))
    delivered = sum(1 for r in results if r is not None)
    if delivered < len(recipients):
        logger.warning(f"Fan-out '{title}': {delivered}/{len(recipients)} delivered")
    else:
        logger.info(f"Fan-out '{title}': {delivered} delivered")
    return delivered
