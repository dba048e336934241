"""
core/storage.py — Object Storage Backend
=========================================
Abstraction layer over 2 possible backends for uploaded files:
  1. "local"      — files under UPLOAD_DIR, served by main.py at /uploads (start here)
  2. "cloudinary" — Cloudinary media storage via the cloudinary SDK

Set STORAGE_BACKEND in .env to switch.
All modules call: from core.storage import storage, release

Every backend returns a reference dict from upload():
    {"url": <public URL>, "public_id": <id to delete by>}
"""

import asyncio
import logging
import secrets
import time
from pathlib import Path

from config import settings

logger = logging.getLogger("jataayu.storage")


# ── Local disk (default, works with zero setup) ───────────────────────────────
class LocalStorage:
    """
    Writes files below a root directory.
    public_id is the path relative to the root, e.g. "events/images/1712-42.png".
    """

    def __init__(self, root: str, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def connect(self):
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"LocalStorage: ready at {self.root.resolve()}")

    async def disconnect(self):
        logger.info("LocalStorage: closed")

    async def ping(self) -> str:
        return "ok — local disk" if self.root.is_dir() else "upload directory missing"

    def _path_for(self, public_id: str) -> Path:
        root = self.root.resolve()
        path = (root / public_id).resolve()
        if root not in path.parents:
            raise ValueError(f"Refusing path outside upload root: {public_id}")
        return path

    async def upload(self, data: bytes, filename: str, content_type: str,
                     folder: str, resource_type: str = "auto") -> dict:
        suffix = Path(filename or "").suffix
        name = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{suffix}"
        public_id = f"{folder}/{name}"
        path = self._path_for(public_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info(f"Stored {filename!r} as {public_id} ({len(data)} bytes)")
        return {"url": f"{self.url_prefix}/{public_id}", "public_id": public_id}

    async def delete(self, public_id: str, resource_type: str = "image"):
        path = self._path_for(public_id)
        await asyncio.to_thread(path.unlink)
        logger.info(f"Deleted {public_id}")


# ── Cloudinary ────────────────────────────────────────────────────────────────
class CloudinaryStorage:
    """
    Uploads to Cloudinary.
    Requires: CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET in .env
    """

    def __init__(self):
        self._uploader = None

    async def connect(self):
        try:
            import cloudinary
            import cloudinary.uploader
        except ImportError:
            raise ImportError("cloudinary not installed. Run: pip install 'jataayu-backend[cloudinary]'")
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True,
        )
        self._uploader = cloudinary.uploader
        logger.info(f"Cloudinary configured for cloud '{settings.CLOUDINARY_CLOUD_NAME}'")

    async def disconnect(self):
        self._uploader = None

    async def ping(self) -> str:
        return "ok — cloudinary" if self._uploader else "disconnected"

    async def upload(self, data: bytes, filename: str, content_type: str,
                     folder: str, resource_type: str = "auto") -> dict:
        if not self._uploader:
            raise RuntimeError("Cloudinary storage not connected")
        result = await asyncio.to_thread(
            self._uploader.upload,
            data,
            folder=folder,
            resource_type=resource_type,
            filename_override=filename,
            use_filename=True,
            unique_filename=True,
        )
        return {"url": result["secure_url"], "public_id": result["public_id"]}

    async def delete(self, public_id: str, resource_type: str = "image"):
        if not self._uploader:
            raise RuntimeError("Cloudinary storage not connected")
        await asyncio.to_thread(self._uploader.destroy, public_id, resource_type=resource_type)


async def release(refs: list):
    """
    Best-effort delete of stored files.
    refs = [(public_id, resource_type), ...]. Failures are logged, never raised.
    """
    if not refs:
        return
    results = await asyncio.gather(
        *(storage.delete(public_id, resource_type) for public_id, resource_type in refs),
        return_exceptions=True,
    )
    for (public_id, _), result in zip(refs, results):
        if isinstance(result, Exception):
            logger.warning(f"Could not release {public_id}: {result}")


# ── Factory: picks the right backend from .env ────────────────────────────────
def _create_storage():
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "cloudinary":
        logger.info("Using Cloudinary storage backend")
        return CloudinaryStorage()
    logger.info("Using local disk storage backend")
    return LocalStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)


# Singleton, import this everywhere:  from core.storage import storage
storage = _create_storage()
