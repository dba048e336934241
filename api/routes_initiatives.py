"""
api/routes_initiatives.py — Initiatives API Endpoints

Endpoints:
    GET    /api/initiatives          → List (category, sub_category, limit)
    GET    /api/initiatives/{id}     → One initiative
    POST   /api/initiatives          → Create (admin or official member)
    PUT    /api/initiatives/{id}     → Update (admin or official member)
    DELETE /api/initiatives/{id}     → Delete (admin or official member)

list_items and existing_files are JSON-encoded form fields.
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import is_admin
from core.errors import ValidationError
from db.models import User
from db.session import get_db
from modules import initiatives
from modules.initiatives import Category, initiative_to_dict

router = APIRouter()


@router.get("/")
async def list_initiatives(
    category: Optional[Category] = None,
    sub_category: Optional[str] = None,
    limit: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    items = await initiatives.list_initiatives(
        db, category.value if category else None, sub_category, limit,
    )
    return [initiative_to_dict(i) for i in items]


@router.get("/{initiative_id}")
async def get_initiative(initiative_id: str, db: AsyncSession = Depends(get_db)):
    return initiative_to_dict(await initiatives.get_initiative(db, initiative_id))


@router.post("/", status_code=201)
async def create_initiative(
    category: str = Form(...),
    sub_category: str = Form(...),
    title: str = Form(...),
    description: str = Form(...),
    content: str = Form(...),
    list_items: str = Form("[]"),
    files: Optional[List[UploadFile]] = File(None),
    user: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    fields = dict(category=category, sub_category=sub_category, title=title,
                  description=description, content=content)
    initiative = await initiatives.create_initiative(
        db, user, fields, _string_list("list_items", list_items), files or [],
    )
    return initiative_to_dict(initiative)


@router.put("/{initiative_id}")
async def update_initiative(
    initiative_id: str,
    category: Optional[str] = Form(None),
    sub_category: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    list_items: Optional[str] = Form(None),
    existing_files: Optional[str] = Form(None),     # JSON list of stored paths to keep
    files: Optional[List[UploadFile]] = File(None),
    user: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    fields = dict(category=category, sub_category=sub_category, title=title,
                  description=description, content=content)
    initiative = await initiatives.update_initiative(
        db, initiative_id, fields,
        list_items=_string_list("list_items", list_items) if list_items is not None else None,
        keep_paths=_string_list("existing_files", existing_files) if existing_files is not None else None,
        files=files or [],
    )
    return initiative_to_dict(initiative)


@router.delete("/{initiative_id}")
async def delete_initiative(
    initiative_id: str,
    user: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    await initiatives.delete_initiative(db, initiative_id)
    return {"message": "Initiative deleted"}


def _string_list(field: str, raw: str) -> List[str]:
    try:
        value = json.loads(raw or "[]")
    except json.JSONDecodeError:
        raise ValidationError.single(field, "Must be a JSON list of strings")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError.single(field, "Must be a JSON list of strings")
    return value
