"""
api/routes_events.py — Events API Endpoints
============================================
Create / update take multipart forms so attachments can ride along.

Endpoints:
    POST   /api/events                 → Create (officers, officials, admin)
    GET    /api/events                 → Browse: type=all|upcoming|past, page, limit, search
    GET    /api/events/my-events       → Own events with registrations
    GET    /api/events/districts       → Districts that have events
    GET    /api/events/{id}            → One event (+ registrations for its creator)
    PUT    /api/events/{id}            → Update (creator or admin)
    DELETE /api/events/{id}            → Delete (creator or admin)
    POST   /api/events/{id}/share      → Share registration list with users
"""

import json
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.access import check_role, get_current_user, get_optional_user
from core.errors import ValidationError
from core.roles import EVENT_MANAGERS
from db.models import User
from db.session import get_db, get_session_factory
from modules import events
from modules.events import event_to_dict

router = APIRouter()

event_manager = check_role(*EVENT_MANAGERS)


class ShareRequest(BaseModel):
    user_ids: List[str] = Field(default_factory=list)


@router.post("/", status_code=201)
async def create_event(
    background: BackgroundTasks,
    title: str = Form(...),
    description: str = Form(...),
    location: str = Form(...),
    district: str = Form(...),
    date: datetime = Form(...),
    time: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    reports: Optional[List[UploadFile]] = File(None),
    user: User = Depends(event_manager),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    fields = dict(title=title, description=description, location=location,
                  district=district, date=date, time=time)
    event = await events.create_event(db, user, fields, images or [], reports or [])

    # Runs after the response is sent; its outcome never reaches the caller
    background.add_task(
        events.announce_event, session_factory, event.id, event.title, event.district, user.id,
    )
    return event_to_dict(event)


@router.get("/")
async def list_events(
    type: Literal["all", "upcoming", "past"] = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str = "",
    db: AsyncSession = Depends(get_db),
):
    return await events.list_events(db, type, page, limit, search)


@router.get("/my-events")
async def my_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await events.list_my_events(db, user, page, limit)


@router.get("/districts")
async def districts(db: AsyncSession = Depends(get_db)):
    return await events.get_districts(db)


@router.get("/{event_id}")
async def get_event(
    event_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await events.get_event(db, event_id, viewer)


@router.put("/{event_id}")
async def update_event(
    event_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    district: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    time: Optional[str] = Form(None),
    existing_images: Optional[str] = Form(None),     # JSON list of public_ids to keep
    existing_reports: Optional[str] = Form(None),    # JSON list of public_ids to keep
    images: Optional[List[UploadFile]] = File(None),
    reports: Optional[List[UploadFile]] = File(None),
    user: User = Depends(event_manager),
    db: AsyncSession = Depends(get_db),
):
    fields = dict(title=title, description=description, location=location,
                  district=district, date=date, time=time)
    event = await events.update_event(
        db, event_id, user, fields,
        keep_images=_id_list("existing_images", existing_images),
        keep_reports=_id_list("existing_reports", existing_reports),
        new_images=images or [],
        new_reports=reports or [],
    )
    return event_to_dict(event)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    user: User = Depends(event_manager),
    db: AsyncSession = Depends(get_db),
):
    await events.delete_event(db, event_id, user)
    return {"message": "Event deleted"}


@router.post("/{event_id}/share")
async def share_event(
    event_id: str,
    body: ShareRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    event = await events.share_event(db, session_factory, event_id, user, body.user_ids)
    return event_to_dict(event)


def _id_list(field: str, raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError.single(field, "Must be a JSON list of ids")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError.single(field, "Must be a JSON list of ids")
    return value
