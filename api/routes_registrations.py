"""
api/routes_registrations.py — Event Registration API Endpoints

Endpoints:
    POST /api/event-registrations                     → Register for an event (public)
    GET  /api/event-registrations/event/{event_id}    → Registrations of an event
    GET  /api/event-registrations/{id}                → One registration
    POST /api/event-registrations/share/{id}          → Share with other users
    PUT  /api/event-registrations/{id}/status         → Change status
"""

from typing import List, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.access import get_current_user
from core.roles import NonEmptyStr
from db.models import User
from db.session import get_db, get_session_factory
from modules import registrations
from modules.registrations import registration_to_dict

router = APIRouter()


class RegistrationCreate(BaseModel):
    event: NonEmptyStr
    name: NonEmptyStr
    email: EmailStr
    phone: NonEmptyStr
    age: int = Field(..., ge=1)
    gender: Literal["male", "female", "other"]
    address: NonEmptyStr
    district: NonEmptyStr
    taluka: NonEmptyStr
    village: NonEmptyStr


class ShareRequest(BaseModel):
    user_ids: List[str] = Field(default_factory=list)


class StatusUpdate(BaseModel):
    status: registrations.RegistrationStatus


@router.post("/")
async def register(
    body: RegistrationCreate,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    registration = await registrations.register_for_event(
        db, session_factory, body.event, body.model_dump(exclude={"event"}),
    )
    return registration_to_dict(registration)


@router.get("/event/{event_id}")
async def list_for_event(
    event_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    regs = await registrations.list_for_event(db, event_id, user)
    return [registration_to_dict(r) for r in regs]


@router.get("/{registration_id}")
async def get_registration(
    registration_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return registration_to_dict(await registrations.get_registration(db, registration_id, user))


@router.post("/share/{registration_id}")
async def share(
    registration_id: str,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    registration = await registrations.share_registration(
        db, session_factory, registration_id, user, body.user_ids,
    )
    return registration_to_dict(registration)


@router.put("/{registration_id}/status")
async def update_status(
    registration_id: str,
    body: StatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    registration = await registrations.update_status(
        db, session_factory, registration_id, user, body.status.value,
    )
    return registration_to_dict(registration)
