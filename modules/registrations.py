"""
modules/registrations.py — Event Registration Module
=====================================================
Public sign-ups for events, and what the event's creator can do with them.

Flow (register):
    find event → save registration (pending) → commit → notify creator

Visibility:
    list_for_event     creator, or a user in event.shared_with
    get_registration   creator, or a user in registration.shared_with
    share / status     creator only
"""

import enum
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import Forbidden, NotFound, ValidationError
from db.models import Event, EventRegistration, User
from modules.notifications import notify, notify_many

logger = logging.getLogger("jataayu.modules.registrations")


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


REGISTRANT_FIELDS = (
    "name", "email", "phone", "age", "gender",
    "address", "district", "taluka", "village",
)


def registration_to_dict(r: EventRegistration) -> dict:
    data = {field: getattr(r, field) for field in REGISTRANT_FIELDS}
    data.update({
        "id": r.id,
        "event": r.event_id,
        "status": r.status,
        "shared_with": list(r.shared_with or []),
        "created_at": r.created_at.isoformat() if r.created_at else None,
    })
    return data


async def register_for_event(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    event_id: str,
    registrant: dict,
) -> EventRegistration:
    """
    Save a registration and tell the event's creator about it.
    `registrant` is already validated (see api/routes_registrations.py).
    """
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    registration = EventRegistration(
        event_id=event.id,
        status=RegistrationStatus.PENDING.value,
        shared_with=[],
        **{field: registrant[field] for field in REGISTRANT_FIELDS},
    )
    db.add(registration)
    await db.commit()
    logger.info(f"Registration {registration.id} saved for event {event.id}")

    # Not part of the registration: if this fails the registration stands
    await notify(
        session_factory,
        event.created_by,
        "New Event Registration",
        f'{registration.name} has registered for your event "{event.title}"',
        "info",
        f"/event-registrations/{event.id}",
    )
    return registration


async def list_for_event(db: AsyncSession, event_id: str, requester: User) -> list:
    event = await db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    if event.created_by != requester.id and requester.id not in (event.shared_with or []):
        logger.warning(f"Registration list DENIED: {requester.id} → event {event_id}")
        raise Forbidden("Not authorized")

    result = await db.execute(
        select(EventRegistration)
        .where(EventRegistration.event_id == event_id)
        .order_by(EventRegistration.created_at.desc())
    )
    return result.scalars().all()


async def get_registration(db: AsyncSession, registration_id: str, requester: User) -> EventRegistration:
    registration, event = await _load_with_event(db, registration_id)
    if event.created_by != requester.id and requester.id not in (registration.shared_with or []):
        raise Forbidden("Not authorized")
    return registration


async def share_registration(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    registration_id: str,
    requester: User,
    user_ids: list,
) -> EventRegistration:
    """
    Grant users read access to a registration.
    Every supplied id is notified on every call, including ids that
    already had access.
    """
    registration, event = await _load_with_event(db, registration_id)
    _require_creator(event, requester)

    if user_ids:
        merged = list(registration.shared_with or [])
        for user_id in user_ids:
            if user_id not in merged:
                merged.append(user_id)
        registration.shared_with = merged
        await db.commit()

        await notify_many(
            session_factory,
            dict.fromkeys(user_ids),
            "Event Registration Shared",
            f'Event registration for "{event.title}" has been shared with you',
            "info",
            f"/event-registrations/{event.id}",
        )
    return registration


async def update_status(
    db: AsyncSession,
    session_factory: async_sessionmaker,
    registration_id: str,
    requester: User,
    new_status: str,
) -> EventRegistration:
    """
    Change a registration's status and announce the transition.
    Registrants have no account, so the announcement goes to the users
    the registration is shared with.
    """
    try:
        new_status = RegistrationStatus(new_status).value
    except ValueError:
        allowed = ", ".join(s.value for s in RegistrationStatus)
        raise ValidationError.single("status", f"Status must be one of: {allowed}")

    registration, event = await _load_with_event(db, registration_id)
    _require_creator(event, requester)

    old_status = registration.status
    registration.status = new_status
    await db.commit()
    logger.info(f"Registration {registration.id}: {old_status} → {new_status}")

    await notify_many(
        session_factory,
        list(registration.shared_with or []),
        "Registration Status Updated",
        f'Registration of {registration.name} for "{event.title}" '
        f"has been updated from {old_status} to {new_status}",
        "info",
        f"/event-registrations/{event.id}",
    )
    return registration


# ── Helpers ───────────────────────────────────────────────────────────────────
async def _load_with_event(db: AsyncSession, registration_id: str):
    registration = await db.get(EventRegistration, registration_id)
    if not registration:
        raise NotFound("Registration not found")
    event = await db.get(Event, registration.event_id)
    if not event:
        raise NotFound("Event not found")
    return registration, event


def _require_creator(event: Event, requester: User):
    if event.created_by != requester.id:
        logger.warning(f"Registration change DENIED: {requester.id} is not creator of {event.id}")
        raise Forbidden("Not authorized")
