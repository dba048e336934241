"""
modules/events.py — Events Module
==================================
Create, browse, update and delete events with their attachments.

Attachments:
    images   image/*               → storage folder events/images  (resource "image")
    reports  PDF / Word documents  → storage folder events/reports (resource "raw")

Flow (create):
    validate → upload files → save event → commit
    then, after the response: announce_event() notifies every other user
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from core.access import require_owner_or_admin
from core.errors import Forbidden, NotFound, ValidationError
from core.storage import release, storage
from db.models import Event, EventRegistration, User
from modules.notifications import notify_many
from modules.registrations import registration_to_dict

logger = logging.getLogger("jataayu.modules.events")

REPORT_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
REQUIRED_FIELDS = ("title", "description", "location", "district")


def event_to_dict(e: Event, creator: Optional[dict] = None) -> dict:
    return {
        "id": e.id,
        "title": e.title,
        "description": e.description,
        "location": e.location,
        "district": e.district,
        "date": e.date.isoformat() if e.date else None,
        "time": e.time,
        "images": list(e.images or []),
        "reports": list(e.reports or []),
        "created_by": creator or e.created_by,
        "shared_with": list(e.shared_with or []),
        "created_at": e.created_at.isoformat() if e.created_at else None,
    }


# ── Create ────────────────────────────────────────────────────────────────────
async def create_event(
    db: AsyncSession,
    creator: User,
    fields: dict,
    images: List[UploadFile] = (),
    reports: List[UploadFile] = (),
) -> Event:
    fields = _clean_fields(fields, partial=False)
    image_files = await _read_uploads(images, "images", settings.MAX_EVENT_IMAGES)
    report_files = await _read_uploads(reports, "reports", settings.MAX_EVENT_REPORTS)

    image_refs, report_refs = await _store_all(image_files, report_files)

    event = Event(
        **fields,
        images=image_refs,
        reports=report_refs,
        created_by=creator.id,
        shared_with=[],
    )
    db.add(event)
    try:
        await db.commit()
    except Exception:
        await release(_refs_of(image_refs, report_refs))
        raise

    logger.info(f"Event {event.id} created by {creator.id} "
                f"({len(image_refs)} images, {len(report_refs)} reports)")
    return event


async def announce_event(
    session_factory: async_sessionmaker,
    event_id: str,
    title: str,
    district: str,
    creator_id: str,
) -> int:
    """Tell every user except the creator about a new event. Best effort."""
    try:
        async with session_factory() as session:
            result = await session.execute(select(User.id).where(User.id != creator_id))
            recipients = result.scalars().all()
    except Exception as exc:
        logger.warning(f"Announcement for event {event_id} skipped: {exc}")
        return 0

    return await notify_many(
        session_factory,
        recipients,
        "New Event Created",
        f'A new event "{title}" has been created in {district}',
        "info",
        f"/events/{event_id}",
    )


# ── Read ──────────────────────────────────────────────────────────────────────
async def list_events(
    db: AsyncSession,
    type: str = "all",
    page: int = 1,
    limit: int = 10,
    search: str = "",
) -> dict:
    """
    Browse events.
    type: all | upcoming (date >= now, soonest first) | past (date < now, latest first)
    """
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Event.title.ilike(pattern), Event.description.ilike(pattern)))
    now = datetime.utcnow()
    if type == "upcoming":
        conditions.append(Event.date >= now)
    elif type == "past":
        conditions.append(Event.date < now)

    order = Event.date.asc() if type == "upcoming" else Event.date.desc()
    result = await db.execute(
        select(Event).where(*conditions).order_by(order)
        .offset((page - 1) * limit).limit(limit)
    )
    events = result.scalars().all()
    total = await db.scalar(select(func.count()).select_from(Event).where(*conditions))

    creators = await _creators(db, events)
    return {
        "events": [event_to_dict(e, creators.get(e.created_by)) for e in events],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }


async def list_my_events(db: AsyncSession, user: User, page: int = 1, limit: int = 10) -> dict:
    result = await db.execute(
        select(Event).where(Event.created_by == user.id)
        .order_by(Event.date.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    events = result.scalars().all()
    total = await db.scalar(
        select(func.count()).select_from(Event).where(Event.created_by == user.id)
    )

    by_event = {e.id: [] for e in events}
    if by_event:
        regs = await db.execute(
            select(EventRegistration)
            .where(EventRegistration.event_id.in_(by_event))
            .order_by(EventRegistration.created_at.desc())
        )
        for r in regs.scalars().all():
            by_event[r.event_id].append(registration_to_dict(r))

    owner = {"id": user.id, "name": user.name, "email": user.email}
    items = []
    for e in events:
        data = event_to_dict(e, owner)
        data["registration_count"] = len(by_event[e.id])
        data["registrations"] = by_event[e.id]
        items.append(data)

    return {"events": items, "total_pages": math.ceil(total / limit), "current_page": page}


async def get_event(db: AsyncSession, event_id: str, viewer: Optional[User] = None) -> dict:
    """One event. Its creator also gets the registrations."""
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    creators = await _creators(db, [event])
    data = event_to_dict(event, creators.get(event.created_by))
    if viewer is not None and viewer.id == event.created_by:
        regs = await db.execute(
            select(EventRegistration)
            .where(EventRegistration.event_id == event.id)
            .order_by(EventRegistration.created_at.desc())
        )
        data["registrations"] = [registration_to_dict(r) for r in regs.scalars().all()]
    return data


async def get_districts(db: AsyncSession) -> list:
    result = await db.execute(select(Event.district).distinct().order_by(Event.district))
    return list(result.scalars().all())


# ── Update / delete ───────────────────────────────────────────────────────────
async def update_event(
    db: AsyncSession,
    event_id: str,
    user: User,
    fields: dict,
    keep_images: Optional[List[str]] = None,
    keep_reports: Optional[List[str]] = None,
    new_images: List[UploadFile] = (),
    new_reports: List[UploadFile] = (),
) -> Event:
    """
    Update an event. keep_images / keep_reports are the public_ids to
    retain; attachments not listed are released from storage. Passing
    None keeps every existing attachment of that kind.
    """
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    require_owner_or_admin(event.created_by, user)

    fields = _clean_fields(fields, partial=True)
    image_files = await _read_uploads(new_images, "images", settings.MAX_EVENT_IMAGES)
    report_files = await _read_uploads(new_reports, "reports", settings.MAX_EVENT_REPORTS)

    kept_images, removed_images = _partition(event.images, keep_images)
    kept_reports, removed_reports = _partition(event.reports, keep_reports)

    image_refs, report_refs = await _store_all(image_files, report_files)

    for name, value in fields.items():
        setattr(event, name, value)
    event.images = kept_images + image_refs
    event.reports = kept_reports + report_refs
    try:
        await db.commit()
    except Exception:
        await release(_refs_of(image_refs, report_refs))
        raise

    await release(_refs_of(removed_images, removed_reports))
    logger.info(f"Event {event.id} updated by {user.id}")
    return event


async def delete_event(db: AsyncSession, event_id: str, user: User):
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    require_owner_or_admin(event.created_by, user)

    attachments = _refs_of(event.images, event.reports)
    await db.execute(delete(EventRegistration).where(EventRegistration.event_id == event.id))
    await db.delete(event)
    await db.commit()

    await release(attachments)
    logger.info(f"Event {event_id} deleted by {user.id}")


async def share_event(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    event_id: str,
    user: User,
    user_ids: list,
) -> Event:
    """Let other users see this event's registration list."""
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    if event.created_by != user.id:
        raise Forbidden("Not authorized")

    if user_ids:
        merged = list(event.shared_with or [])
        merged.extend(u for u in dict.fromkeys(user_ids) if u not in merged)
        event.shared_with = merged
        await db.commit()

        await notify_many(
            session_factory,
            dict.fromkeys(user_ids),
            "Event Registrations Shared",
            f'Registrations for "{event.title}" have been shared with you',
            "info",
            f"/event-registrations/{event.id}",
        )
    return event


# ── Helpers ───────────────────────────────────────────────────────────────────
def _clean_fields(fields: dict, partial: bool) -> dict:
    """Strip text fields, check required ones, normalize the date to naive UTC."""
    cleaned, errors = {}, []
    for name, value in fields.items():
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        cleaned[name] = value

    for name in REQUIRED_FIELDS:
        if name in cleaned and cleaned[name] == "":
            errors.append({"field": name, "msg": f"{name.capitalize()} is required"})
        elif name not in cleaned and not partial:
            errors.append({"field": name, "msg": f"{name.capitalize()} is required"})
    if "date" not in cleaned and not partial:
        errors.append({"field": "date", "msg": "Valid date is required"})
    if errors:
        raise ValidationError(errors)

    date = cleaned.get("date")
    if date is not None and date.tzinfo is not None:
        cleaned["date"] = date.astimezone(timezone.utc).replace(tzinfo=None)
    if cleaned.get("time") == "":
        cleaned["time"] = None
    return cleaned


async def _read_uploads(files, kind: str, max_count: int) -> list:
    """Read and check uploads up front so nothing is stored for a bad request."""
    files = [f for f in (files or []) if f is not None and f.filename]
    if len(files) > max_count:
        raise ValidationError.single(kind, f"At most {max_count} {kind} are allowed")

    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    loaded = []
    for f in files:
        content_type = f.content_type or ""
        if kind == "images" and not content_type.startswith("image/"):
            raise ValidationError.single(kind, "Only image files are allowed for images")
        if kind == "reports" and content_type not in REPORT_MIME_TYPES:
            raise ValidationError.single(kind, "Only PDF and Word documents are allowed for reports")
        data = await f.read()
        if len(data) > max_bytes:
            raise ValidationError.single(kind, f"{f.filename} exceeds {settings.MAX_UPLOAD_SIZE_MB}MB")
        loaded.append((f.filename, content_type, data))
    return loaded


async def _store_all(image_files: list, report_files: list):
    """Upload everything concurrently; on any failure release what did upload."""
    jobs = [
        storage.upload(data, name, ctype, "events/images", "image")
        for name, ctype, data in image_files
    ] + [
        storage.upload(data, name, ctype, "events/reports", "raw")
        for name, ctype, data in report_files
    ]
    results = await asyncio.gather(*jobs, return_exceptions=True)

    failures = [r for r in results if isinstance(r, Exception)]
    if failures:
        kinds = ["image"] * len(image_files) + ["raw"] * len(report_files)
        await release([
            (r["public_id"], kind)
            for r, kind in zip(results, kinds)
            if not isinstance(r, Exception)
        ])
        raise failures[0]

    image_refs = [
        {"url": ref["url"], "public_id": ref["public_id"]}
        for ref in results[:len(image_files)]
    ]
    report_refs = [
        {
            "filename": name,
            "size": len(data),
            "mimetype": ctype,
            "url": ref["url"],
            "public_id": ref["public_id"],
        }
        for (name, ctype, data), ref in zip(report_files, results[len(image_files):])
    ]
    return image_refs, report_refs


def _partition(current: list, keep: Optional[List[str]]):
    current = list(current or [])
    if keep is None:
        return current, []
    kept = [ref for ref in current if ref.get("public_id") in keep]
    removed = [ref for ref in current if ref.get("public_id") not in keep]
    return kept, removed


def _refs_of(images: list, reports: list) -> list:
    return (
        [(ref["public_id"], "image") for ref in images or []]
        + [(ref["public_id"], "raw") for ref in reports or []]
    )


async def _creators(db: AsyncSession, events) -> dict:
    ids = {e.created_by for e in events}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {u.id: {"id": u.id, "name": u.name, "email": u.email} for u in result.scalars().all()}
