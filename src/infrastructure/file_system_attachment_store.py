"""Filesystem-backed attachment store.

Bytes live under ``<root>/<key>`` and each object has a JSON sidecar
``<root>/<key>.json`` holding its AttachmentRecord. Keys are content
addressed: ``uploads/<user>/<sha256[:16]>-<sanitized filename>``, so
uploading the same bytes under the same name twice yields the same key.
"""

import asyncio
import hashlib
import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from domain.exceptions import AttachmentRejectedError
from domain.models.attachment import AttachmentRecord
from domain.repositories.attachment_store import AttachmentStore

if TYPE_CHECKING:
    from neuroglia.hosting.web import WebApplicationBuilder

logger = logging.getLogger(__name__)

KEY_PREFIX = "uploads"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("_", filename) or "file"


def build_key(data: bytes, filename: str, user_id: str) -> str:
    digest = hashlib.sha256(data).hexdigest()[:16]
    return f"{KEY_PREFIX}/{sanitize_filename(user_id)}/{digest}-{sanitize_filename(filename)}"


class FileSystemAttachmentStore(AttachmentStore):
    """Stores attachments on the local filesystem."""

    def __init__(
        self,
        root_dir: str | Path,
        public_url: str,
        max_size: int,
        allowed_types: list[str],
    ) -> None:
        """
        Args:
            root_dir: Directory holding the stored objects
            public_url: Base URL the objects are served from (``<public_url>/<key>``)
            max_size: Maximum accepted size in bytes
            allowed_types: Accepted MIME types
        """
        self._root = Path(root_dir)
        self._public_url = public_url.rstrip("/")
        self._max_size = max_size
        self._allowed_types = set(allowed_types)

    async def upload_async(self, data: bytes, filename: str, mime_type: str, user_id: str) -> AttachmentRecord:
        if mime_type not in self._allowed_types:
            raise AttachmentRejectedError(f"File type {mime_type} is not allowed")
        if len(data) > self._max_size:
            raise AttachmentRejectedError(f"File exceeds the maximum size of {self._max_size // (1024 * 1024)}MB")
        if not data:
            raise AttachmentRejectedError("File is empty")

        key = build_key(data, filename, user_id)
        record = AttachmentRecord(
            key=key,
            url=f"{self._public_url}/{key}",
            filename=filename,
            mime_type=mime_type,
            size=len(data),
            user_id=user_id,
        )
        await asyncio.to_thread(self._write, key, data, record)
        logger.info(f"Stored attachment {key} ({mime_type}, {len(data)} bytes)")
        return record

    async def get_async(self, key: str) -> AttachmentRecord | None:
        path = self._record_path(key)
        if path is None:
            return None
        return await asyncio.to_thread(self._read_record, path)

    async def read_async(self, key: str) -> bytes:
        record = await self.get_async(key)
        if record is None or record.is_deleted:
            raise FileNotFoundError(key)
        return await asyncio.to_thread(self._object_path(key).read_bytes)

    async def delete_async(self, key: str) -> bool:
        record = await self.get_async(key)
        if record is None:
            return False
        record.is_deleted = True
        await asyncio.to_thread(self._mark_deleted, key, record)
        logger.info(f"Deleted attachment {key}")
        return True

    def _object_path(self, key: str) -> Path:
        return self._root / key

    def _record_path(self, key: str) -> Path | None:
        parts = key.split("/")
        if len(parts) != 3 or parts[0] != KEY_PREFIX or any(p in ("", ".", "..") for p in parts):
            return None
        return self._root / f"{key}.json"

    def _write(self, key: str, data: bytes, record: AttachmentRecord) -> None:
        path = self._object_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        (self._root / f"{key}.json").write_text(json.dumps(record.to_dict()))

    @staticmethod
    def _read_record(path: Path) -> AttachmentRecord | None:
        if not path.exists():
            return None
        return AttachmentRecord.from_dict(json.loads(path.read_text()))

    def _mark_deleted(self, key: str, record: AttachmentRecord) -> None:
        self._object_path(key).unlink(missing_ok=True)
        (self._root / f"{key}.json").write_text(json.dumps(record.to_dict()))

    @staticmethod
    def configure(builder: "WebApplicationBuilder") -> "FileSystemAttachmentStore":
        """Register the store as the AttachmentStore singleton."""
        from application.settings import app_settings

        store = FileSystemAttachmentStore(
            root_dir=app_settings.attachments_dir,
            public_url=app_settings.attachments_public_url,
            max_size=app_settings.attachments_max_size,
            allowed_types=app_settings.attachments_allowed_types,
        )
        builder.services.add_singleton(AttachmentStore, singleton=store)
        logger.info(f"✅ Configured FileSystemAttachmentStore at {app_settings.attachments_dir}")
        return store
