"""Storage helpers for user-uploaded media (product images)."""

from __future__ import annotations

import io
import logging
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image

from ..config import settings

_LOGGER = logging.getLogger("storefront.media")

ALLOWED_IMAGE_EXT = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
UPLOAD_SUBDIR = "products"


def _media_root(root: Optional[Path] = None) -> Path:
    return Path(root or settings.MEDIA_ROOT).resolve()


def validate_image(payload: bytes, filename: str, max_bytes: Optional[int] = None) -> str:
    """Check an upload and return its normalized extension.

    Raises ValueError when the file is empty, too large, carries an
    unsupported extension or is not a decodable image.
    """
    max_bytes = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if not filename or "/" in filename or "\\" in filename or len(filename) > 200:
        raise ValueError("invalid filename")
    if not payload:
        raise ValueError("empty file")
    if len(payload) > max_bytes:
        raise ValueError("file too large")
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_IMAGE_EXT:
        raise ValueError(f"unsupported image type {ext or '(none)'}")
    try:
        Image.open(io.BytesIO(payload)).verify()
    except Exception:
        raise ValueError("upload is not a valid image")
    return ".jpg" if ext == ".jpeg" else ext


def save_upload(payload: bytes, filename: str, root: Optional[Path] = None) -> str:
    """Validate and store an image; return its path relative to MEDIA_ROOT."""
    ext = validate_image(payload, filename)
    base = _media_root(root)
    target_dir = base / UPLOAD_SUBDIR
    target_dir.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4().hex}{ext}"
    (target_dir / name).write_bytes(payload)
    rel = f"{UPLOAD_SUBDIR}/{name}"
    _LOGGER.info("media_saved %s (%d bytes)", rel, len(payload))
    return rel


def delete_media(rel_path: Optional[str], root: Optional[Path] = None) -> bool:
    """Remove a stored media file. Returns True when a file was deleted."""
    if not rel_path:
        return False
    base = _media_root(root)
    target = (base / rel_path).resolve()
    if base not in target.parents:
        raise ValueError("media path escapes MEDIA_ROOT")
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    _LOGGER.info("media_deleted %s", rel_path)
    return True
