"""Attachment models: request-side descriptors and stored attachment records."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class Attachment:
    """An attachment referenced by a prompt submission.

    Attributes:
        type: Either "image" or "file"
        url: Where the attachment bytes can be fetched
        mime_type: Media type of the attachment
        filename: Original file name, for file attachments
    """

    type: str
    url: str
    mime_type: str
    filename: str | None = None

    @property
    def is_image(self) -> bool:
        return self.type == "image"


@dataclass
class AttachmentRecord:
    """Metadata for an uploaded attachment held by the attachment store."""

    key: str
    url: str
    filename: str
    mime_type: str
    size: int
    user_id: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    is_deleted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "url": self.url,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size": self.size,
            "user_id": self.user_id,
            "uploaded_at": self.uploaded_at.isoformat(),
            "is_deleted": self.is_deleted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttachmentRecord":
        return cls(
            key=data["key"],
            url=data["url"],
            filename=data["filename"],
            mime_type=data["mime_type"],
            size=data["size"],
            user_id=data["user_id"],
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
            is_deleted=data.get("is_deleted", False),
        )
