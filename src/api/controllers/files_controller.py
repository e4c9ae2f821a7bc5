"""Files API controller for prompt attachments."""

import logging
from typing import Any

from classy_fastapi.decorators import delete, get, post
from fastapi import Depends, File, HTTPException, Response, UploadFile, status
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase

from api.dependencies import get_current_user
from domain.exceptions import AttachmentRejectedError
from domain.repositories.attachment_store import AttachmentStore

logger = logging.getLogger(__name__)


class FilesController(ControllerBase):
    """Controller for uploading, serving and deleting attachments.

    Uploads and deletes require a bearer token. Reads are open so that model
    providers can fetch attachment URLs referenced in prompts; keys are
    content addressed and not enumerable.
    """

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)
        self._store: AttachmentStore | None = None

    @property
    def store(self) -> AttachmentStore:
        """Lazy-load the AttachmentStore from the DI container."""
        if self._store is None:
            self._store = self.service_provider.get_required_service(AttachmentStore)
        return self._store

    @post("/")
    async def upload(self, file: UploadFile = File(...), user: dict = Depends(get_current_user)) -> dict[str, Any]:
        """
        Upload an attachment.

        **Output:** `{key, url, filename, mimeType, size}`; use `url` in a prompt's attachments.
        """
        data = await file.read()
        try:
            record = await self.store.upload_async(
                data=data,
                filename=file.filename or "file",
                mime_type=file.content_type or "application/octet-stream",
                user_id=user["user_id"],
            )
        except AttachmentRejectedError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
        return {
            "key": record.key,
            "url": record.url,
            "filename": record.filename,
            "mimeType": record.mime_type,
            "size": record.size,
        }

    @get("/{key:path}")
    async def download(self, key: str) -> Response:
        """Return the attachment bytes."""
        record = await self.store.get_async(key)
        if record is None or record.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Attachment not found: {key}")
        data = await self.store.read_async(key)
        return Response(
            content=data,
            media_type=record.mime_type,
            headers={"Content-Disposition": f'inline; filename="{record.filename}"'},
        )

    @delete("/{key:path}")
    async def remove(self, key: str, user: dict = Depends(get_current_user)) -> dict[str, bool]:
        """Delete one of the caller's attachments."""
        record = await self.store.get_async(key)
        if record is None or record.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Attachment not found: {key}")
        if record.user_id != user["user_id"]:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You don't have access to this attachment")
        await self.store.delete_async(key)
        return {"deleted": True}
