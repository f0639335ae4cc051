# agencycrm/services/storage.py
from __future__ import annotations

import logging
import os
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ValidationFailed
from ..models import OrphanedFile

log = logging.getLogger("agencycrm.storage")

_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    filename: str
    original_name: str
    path: str
    url: str
    size: int
    mime_type: Optional[str]


def _unique_name(original: str) -> str:
    ext = os.path.splitext(original or "")[1].lower()
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


class LocalFileStorage:
    """Files live under ``upload_dir`` and are served at ``/uploads/<name>``."""

    def __init__(self, root: str | None = None, max_bytes: int | None = None):
        self.root = os.path.abspath(root or settings.upload_dir)
        self.max_bytes = int(max_bytes if max_bytes is not None else settings.max_upload_mb * 1024 * 1024)

    def save(self, upload: UploadFile, *, image_only: bool = False) -> StoredFile:
        if image_only and not (upload.content_type or "").startswith("image/"):
            raise ValidationFailed("file", "Only image files are accepted")

        os.makedirs(self.root, exist_ok=True)
        name = _unique_name(upload.filename or "")
        path = os.path.join(self.root, name)

        size = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = upload.file.read(_CHUNK)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise ValidationFailed("file", f"File exceeds {settings.max_upload_mb} MB")
                    out.write(chunk)
        except Exception:
            self._remove_quietly(path)
            raise

        if size == 0:
            self._remove_quietly(path)
            raise ValidationFailed("file", "No file uploaded")

        return StoredFile(
            filename=name,
            original_name=upload.filename or name,
            path=path,
            url=f"/uploads/{name}",
            size=size,
            mime_type=upload.content_type,
        )

    def discard(self, stored: StoredFile) -> None:
        """Undo a save whose database insert failed."""
        self._remove_quietly(stored.path)

    def _remove_quietly(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError:
            log.exception("upload_cleanup_failed", extra={"file_path": path})

    def path_for(self, filename: str) -> str:
        return os.path.join(self.root, filename)

    def delete(self, db: Session, path: str) -> bool:
        """
        Called after the owning row is already committed away. A failure is
        recorded in orphaned_files instead of being raised.
        """
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            log.warning("file_delete_failed", extra={"file_path": path})
            db.add(OrphanedFile(path=path, reason=str(e)))
            db.commit()
            return False


def purge_orphans(db: Session, limit: int = 500) -> dict[str, int]:
    rows = list(db.scalars(select(OrphanedFile).order_by(OrphanedFile.id).limit(limit)).all())
    removed = 0
    failed = 0
    for row in rows:
        try:
            os.remove(row.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            row.attempts = int(row.attempts or 0) + 1
            row.last_attempt_at = datetime.now()
            row.reason = str(e)
            failed += 1
            continue
        db.delete(row)
        removed += 1
    db.commit()
    return {"checked": len(rows), "removed": removed, "failed": failed}


def get_storage() -> LocalFileStorage:
    return LocalFileStorage()
