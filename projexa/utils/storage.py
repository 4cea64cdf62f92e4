"""
Submission file storage.

Files live under settings.upload_dir as
    {student_id}/{project_id}/{phase_id}_{timestamp}.pdf
and the database keeps only that relative path. Reading a file from a
browser goes through a signed link: a short-lived JWT that carries the
relative path, so no other auth header is needed to open it.
"""

import os
import time
import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from projexa.core.config import get_settings

logger = logging.getLogger(__name__)

FILE_TOKEN_SCOPE = "file"


def _upload_root() -> str:
    return os.path.abspath(get_settings().upload_dir)


def resolve_path(relative_path: str) -> str:
    """Absolute path of a stored file. Refuses paths outside the upload root."""
    root = _upload_root()
    full_path = os.path.abspath(os.path.join(root, relative_path))
    if os.path.commonpath([root, full_path]) != root:
        raise ValueError(f"Path escapes upload directory: {relative_path}")
    return full_path


def save_submission_file(student_id: int, project_id: int, phase_id: int, content: bytes) -> str:
    """Write a submission PDF and return its relative path."""
    relative_path = f"{student_id}/{project_id}/{phase_id}_{int(time.time() * 1000)}.pdf"
    full_path = resolve_path(relative_path)
    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    with open(full_path, "wb") as f:
        f.write(content)
    logger.info("Stored submission file %s (%d bytes)", relative_path, len(content))
    return relative_path


def delete_submission_file(relative_path: str) -> bool:
    try:
        full_path = resolve_path(relative_path)
    except ValueError:
        return False
    if os.path.exists(full_path):
        os.remove(full_path)
        return True
    return False


def create_file_token(relative_path: str, expires_minutes: Optional[int] = None) -> str:
    """Create a signed, expiring token for one stored file."""
    settings = get_settings()
    minutes = expires_minutes or settings.file_url_expire_minutes
    payload = {
        "path": relative_path,
        "scope": FILE_TOKEN_SCOPE,
        "exp": datetime.utcnow() + timedelta(minutes=minutes)
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_file_token(token: str) -> Optional[str]:
    """Return the relative path a file token grants, or None if invalid/expired."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("scope") != FILE_TOKEN_SCOPE:
        return None
    return payload.get("path")
