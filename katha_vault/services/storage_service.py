"""Local upload store for story covers and user avatars.

Files land under ``KATHA_UPLOAD_DIR/<folder>/`` with a random name and are
served back by the public uploads blueprint at ``KATHA_UPLOAD_BASE_URL``.
"""
from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Dict, Optional

from werkzeug.datastructures import FileStorage

from katha_vault import config as app_config
from katha_vault.services.errors import ValidationError, require_subject
from katha_vault.utils.identity import Identity
from katha_vault.utils.logging import get_logger

LOG = get_logger("storage_service")

ALLOWED_EXT = {"jpg", "jpeg", "png", "webp", "gif"}
ALLOWED_FOLDERS = {"covers", "avatars"}
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def upload_root() -> Path:
    return Path(app_config.upload_dir())


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def _stream_size(file_storage: FileStorage) -> int:
    file_storage.stream.seek(0, os.SEEK_END)
    size = file_storage.stream.tell()
    file_storage.stream.seek(0)
    return size


def _validate_upload(file_storage: Optional[FileStorage]) -> str:
    if not file_storage or not file_storage.filename:
        raise ValidationError("file_required")
    ext = _extension(file_storage.filename)
    if ext not in ALLOWED_EXT:
        raise ValidationError("unsupported_file_type")
    size = _stream_size(file_storage)
    if size <= 0:
        raise ValidationError("file_required")
    if size > MAX_UPLOAD_BYTES:
        raise ValidationError("file_too_large")
    return ext


def resolve_upload_path(relative: str) -> Optional[Path]:
    """Map a public relative path to a file inside the upload root, or None."""
    base = upload_root().resolve()
    target = (base / relative).resolve()
    if not str(target).startswith(str(base) + os.sep):
        return None
    return target


def _store(file_storage: Optional[FileStorage], parts: list) -> Dict[str, str]:
    ext = _validate_upload(file_storage)
    name = f"{uuid.uuid4().hex}.{ext}"
    relative = "/".join(parts + [name])
    target = resolve_upload_path(relative)
    if target is None:
        raise ValidationError("unsupported_folder")
    target.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    file_storage.save(str(target))  # type: ignore[union-attr]
    url = f"{app_config.upload_base_url()}/{relative}"
    LOG.info("Upload stored path=%s", relative)
    return {"path": relative, "url": url}


def upload_file(file_storage: Optional[FileStorage], folder: str) -> Dict[str, str]:
    if folder not in ALLOWED_FOLDERS:
        raise ValidationError("unsupported_folder")
    return _store(file_storage, [folder])


def upload_avatar(caller: Optional[Identity], user_id: str, file_storage: Optional[FileStorage]) -> Dict[str, str]:
    require_subject(caller, user_id)
    if "/" in user_id or "\\" in user_id or user_id in (".", ".."):
        raise ValidationError("unsupported_folder")
    return _store(file_storage, ["avatars", user_id])


__all__ = [
    "ALLOWED_EXT",
    "ALLOWED_FOLDERS",
    "MAX_UPLOAD_BYTES",
    "upload_root",
    "resolve_upload_path",
    "upload_file",
    "upload_avatar",
]
