"""Tests for the Files API controller backed by a filesystem store."""

from io import BytesIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from api.controllers.files_controller import FilesController
from infrastructure.file_system_attachment_store import FileSystemAttachmentStore

ALICE = {"user_id": "alice", "roles": ["user"]}
BOB = {"user_id": "bob", "roles": ["user"]}


def upload_file(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


class TestFilesController:
    """Test upload, download and delete."""

    @pytest.fixture
    def controller(self, tmp_path: Path) -> FilesController:
        store = FileSystemAttachmentStore(tmp_path, "http://localhost:8060/api/files", max_size=1024, allowed_types=["text/plain"])
        service_provider = MagicMock()
        service_provider.get_required_service.return_value = store
        return FilesController(service_provider=service_provider, mapper=MagicMock(), mediator=MagicMock())

    @pytest.mark.asyncio
    async def test_upload_then_download(self, controller: FilesController) -> None:
        uploaded = await controller.upload(upload_file(b"meeting notes", "notes.txt", "text/plain"), user=ALICE)

        response = await controller.download(uploaded["key"])

        assert uploaded["mimeType"] == "text/plain"
        assert uploaded["size"] == 13
        assert uploaded["url"].endswith(uploaded["key"])
        assert response.body == b"meeting notes"
        assert response.media_type == "text/plain"
        assert 'filename="notes.txt"' in response.headers["content-disposition"]

    @pytest.mark.asyncio
    async def test_rejected_upload_is_bad_request(self, controller: FilesController) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await controller.upload(upload_file(b"\x00\x01", "blob.bin", "application/octet-stream"), user=ALICE)

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_key_not_found(self, controller: FilesController) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await controller.download("uploads/alice/missing.txt")

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_only_owner_can_delete(self, controller: FilesController) -> None:
        uploaded = await controller.upload(upload_file(b"private", "secret.txt", "text/plain"), user=ALICE)

        with pytest.raises(HTTPException) as exc_info:
            await controller.remove(uploaded["key"], user=BOB)
        assert exc_info.value.status_code == 403

        assert await controller.remove(uploaded["key"], user=ALICE) == {"deleted": True}
        with pytest.raises(HTTPException) as exc_info:
            await controller.download(uploaded["key"])
        assert exc_info.value.status_code == 404
