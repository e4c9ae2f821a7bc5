"""Abstract attachment store for uploaded binary objects."""

from abc import ABC, abstractmethod

from domain.models.attachment import AttachmentRecord


class AttachmentStore(ABC):
    """Stores uploaded attachment bytes and their metadata records.

    Implementation: FileSystemAttachmentStore
    """

    @abstractmethod
    async def upload_async(self, data: bytes, filename: str, mime_type: str, user_id: str) -> AttachmentRecord:
        """Store bytes and return the record with a durable URL and content-addressed key."""
        pass

    @abstractmethod
    async def get_async(self, key: str) -> AttachmentRecord | None:
        """Get the record for a key, or None if it does not exist."""
        pass

    @abstractmethod
    async def read_async(self, key: str) -> bytes:
        """Read the stored bytes for a key."""
        pass

    @abstractmethod
    async def delete_async(self, key: str) -> bool:
        """Mark the record deleted. Returns False when the key is unknown."""
        pass
