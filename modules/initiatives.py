"""
modules/initiatives.py — Initiatives Module
============================================
Content pages grouped by category, each with images, videos, documents
and audio. Uploaded files are sorted into those four buckets by mime type.
"""

import enum
import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.errors import NotFound, ValidationError
from core.storage import release, storage
from db.models import Initiative, User

logger = logging.getLogger("jataayu.modules.initiatives")


class Category(str, enum.Enum):
    REHABILITATION = "rehabilitation"
    OUTREACH = "outreach"
    EDUCATION = "education"
    POLICY = "policy"


ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "video/mp4",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "audio/aac",
}
BUCKETS = ("images", "videos", "documents", "audio")


def bucket_for(mimetype: str) -> str:
    if mimetype.startswith("image/"):
        return "images"
    if mimetype.startswith("video/"):
        return "videos"
    if mimetype.startswith("audio/"):
        return "audio"
    return "documents"


def initiative_to_dict(i: Initiative) -> dict:
    data = {
        "id": i.id,
        "category": i.category,
        "sub_category": i.sub_category,
        "title": i.title,
        "description": i.description,
        "content": i.content,
        "list_items": list(i.list_items or []),
        "created_by": i.created_by,
        "created_at": i.created_at.isoformat() if i.created_at else None,
        "updated_at": i.updated_at.isoformat() if i.updated_at else None,
    }
    for bucket in BUCKETS:
        data[bucket] = list(getattr(i, bucket) or [])
    return data


async def list_initiatives(
    db: AsyncSession,
    category: Optional[str] = None,
    sub_category: Optional[str] = None,
    limit: int = 0,
) -> list:
    query = select(Initiative).order_by(Initiative.created_at.desc())
    if category:
        query = query.where(Initiative.category == category)
    if sub_category:
        query = query.where(Initiative.sub_category == sub_category)
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    initiatives = result.scalars().all()
    logger.debug(f"{len(initiatives)} initiatives for category={category} sub_category={sub_category}")
    return initiatives


async def get_initiative(db: AsyncSession, initiative_id: str) -> Initiative:
    initiative = await db.get(Initiative, initiative_id)
    if not initiative:
        raise NotFound("Initiative not found")
    return initiative


async def create_initiative(
    db: AsyncSession,
    user: User,
    fields: dict,
    list_items: List[str],
    files: List[UploadFile] = (),
) -> Initiative:
    fields = _clean_fields(fields, partial=False)
    stored = await _store_files(files)

    initiative = Initiative(**fields, list_items=list_items, created_by=user.id)
    for bucket in BUCKETS:
        setattr(initiative, bucket, stored[bucket])
    db.add(initiative)
    try:
        await db.commit()
    except Exception:
        await release(_refs_of(stored))
        raise

    logger.info(f"Initiative {initiative.id} created by {user.id}")
    return initiative


async def update_initiative(
    db: AsyncSession,
    initiative_id: str,
    fields: dict,
    list_items: Optional[List[str]] = None,
    keep_paths: Optional[List[str]] = None,
    files: List[UploadFile] = (),
) -> Initiative:
    """
    Update an initiative. keep_paths lists the stored file paths to retain
    (across all buckets); anything else is released. None keeps everything.
    """
    initiative = await get_initiative(db, initiative_id)
    fields = _clean_fields(fields, partial=True)
    stored = await _store_files(files)

    removed = []
    for bucket in BUCKETS:
        current = list(getattr(initiative, bucket) or [])
        if keep_paths is None:
            kept = current
        else:
            kept = [f for f in current if f.get("path") in keep_paths]
            removed.extend(f for f in current if f.get("path") not in keep_paths)
        setattr(initiative, bucket, kept + stored[bucket])

    for name, value in fields.items():
        setattr(initiative, name, value)
    if list_items is not None:
        initiative.list_items = list_items
    try:
        await db.commit()
    except Exception:
        await release(_refs_of(stored))
        raise

    await release([(f["path"], _resource_type(f["mimetype"])) for f in removed])
    logger.info(f"Initiative {initiative.id} updated ({len(removed)} files released)")
    return initiative


async def delete_initiative(db: AsyncSession, initiative_id: str):
    initiative = await get_initiative(db, initiative_id)
    files = {bucket: list(getattr(initiative, bucket) or []) for bucket in BUCKETS}
    await db.delete(initiative)
    await db.commit()
    await release(_refs_of(files))
    logger.info(f"Initiative {initiative_id} deleted")


# ── Helpers ───────────────────────────────────────────────────────────────────
def _clean_fields(fields: dict, partial: bool) -> dict:
    cleaned, errors = {}, []
    for name in ("category", "sub_category", "title", "description", "content"):
        value = fields.get(name)
        if value is None:
            if not partial:
                errors.append({"field": name, "msg": f"{name} is required"})
            continue
        value = value.strip()
        if not value:
            errors.append({"field": name, "msg": f"{name} is required"})
        cleaned[name] = value

    category = cleaned.get("category")
    if category and category not in {c.value for c in Category}:
        errors.append({"field": "category", "msg": f"Unknown category: {category}"})
    if errors:
        raise ValidationError(errors)
    return cleaned


async def _store_files(files) -> dict:
    """Check every file first, then upload them one by one into their buckets."""
    files = [f for f in (files or []) if f is not None and f.filename]
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    loaded = []
    for f in files:
        if f.content_type not in ALLOWED_MIME_TYPES:
            raise ValidationError.single("files", f"Invalid file type: {f.content_type}")
        data = await f.read()
        if len(data) > max_bytes:
            raise ValidationError.single("files", f"{f.filename} exceeds {settings.MAX_UPLOAD_SIZE_MB}MB")
        loaded.append((f.filename, f.content_type, data))

    stored = {bucket: [] for bucket in BUCKETS}
    try:
        for name, ctype, data in loaded:
            ref = await storage.upload(data, name, ctype, "initiatives", _resource_type(ctype))
            stored[bucket_for(ctype)].append({
                "filename": name,
                "path": ref["public_id"],
                "url": ref["url"],
                "mimetype": ctype,
                "size": len(data),
            })
    except Exception:
        await release(_refs_of(stored))
        raise
    return stored


def _resource_type(mimetype: str) -> str:
    if mimetype.startswith("image/"):
        return "image"
    if mimetype.startswith(("video/", "audio/")):
        return "video"
    return "raw"


def _refs_of(buckets: dict) -> list:
    return [
        (f["path"], _resource_type(f["mimetype"]))
        for bucket in BUCKETS
        for f in buckets.get(bucket, [])
    ]
