"""Profile image storage on the local upload directory."""

from __future__ import annotations

import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..core import config
from .errors import InvalidUpload, UploadFailed

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads/"
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


@dataclass
class ImageUpload:
    content: bytes
    content_type: str
    filename: str = ""


def validate_image(upload: ImageUpload) -> None:
    if not (upload.content_type or "").startswith("image/"):
        raise InvalidUpload("Only image files are allowed")
    if not upload.content:
        raise InvalidUpload("File upload error: File is empty")
    if len(upload.content) > config.MAX_UPLOAD_BYTES:
        raise InvalidUpload("File upload error: File too large")


def _extension_for(upload: ImageUpload) -> str:
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if ext in ALLOWED_IMAGE_EXTENSIONS:
        return ext
    guessed = (mimetypes.guess_extension(upload.content_type) or "").lower()
    if guessed in ALLOWED_IMAGE_EXTENSIONS:
        return guessed
    return ".jpg"


def store_image(upload: ImageUpload) -> str:
    """Persist an uploaded image and return the URL it is served from."""

    validate_image(upload)
    upload_dir = Path(config.UPLOAD_DIR)
    filename = f"profile_{uuid.uuid4().hex}{_extension_for(upload)}"
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        (upload_dir / filename).write_bytes(upload.content)
    except OSError as exc:
        logger.error("Profile picture upload failed: %s", exc)
        raise UploadFailed() from exc
    logger.info("Stored profile picture %s (%d bytes)", filename, len(upload.content))
    return f"{UPLOAD_URL_PREFIX}{filename}"


def public_id_from_url(url: Optional[str]) -> Optional[str]:
    """Return the stored file name for URLs this service hosts, else None."""

    if not url or UPLOAD_URL_PREFIX not in url:
        return None
    name = url.rsplit("/", 1)[-1].split("?", 1)[0]
    if not name or name in (".", ".."):
        return None
    return name


def resolve_upload(name: str) -> Optional[Path]:
    upload_dir = Path(config.UPLOAD_DIR).resolve()
    path = (upload_dir / name).resolve()
    if path.parent != upload_dir or not path.is_file():
        return None
    return path


def delete_image(url: Optional[str]) -> bool:
    """Best-effort removal of a hosted image; failures are logged, not raised."""

    name = public_id_from_url(url)
    if not name:
        return False
    path = resolve_upload(name)
    if path is None:
        return False
    try:
        path.unlink()
    except OSError as exc:
        logger.warning("Error deleting profile picture %s: %s", name, exc)
        return False
    logger.info("Deleted profile picture %s", name)
    return True


__all__ = [
    "ALLOWED_IMAGE_EXTENSIONS",
    "ImageUpload",
    "UPLOAD_URL_PREFIX",
    "delete_image",
    "public_id_from_url",
    "resolve_upload",
    "store_image",
    "validate_image",
]
