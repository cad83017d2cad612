"""Tests for the Google Drive upload client and Drive-backed resources."""

import json

import httpx
import pytest

from bizops.services.drive import DriveClient, DriveUploadError
from bizops.services.resource_service import ResourceService


def drive_transport(calls: list, upload_status: int = 200, share_status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if "/upload/" in request.url.path:
            if upload_status != 200:
                return httpx.Response(upload_status, text="quota exceeded")
            return httpx.Response(
                200,
                json={
                    "id": "drive-123",
                    "webViewLink": "https://drive.example/view/drive-123",
                    "webContentLink": "https://drive.example/dl/drive-123",
                },
            )
        return httpx.Response(share_status, json={"id": "perm"})

    return httpx.MockTransport(handler)


class TestDriveClient:
    async def test_upload_then_share(self):
        calls: list[httpx.Request] = []
        client = DriveClient("token-abc", transport=drive_transport(calls))

        uploaded = await client.upload("deck.pdf", b"%PDF-1.4", "application/pdf")

        assert uploaded.drive_id == "drive-123"
        assert uploaded.link.endswith("/view/drive-123")
        assert uploaded.download_link.endswith("/dl/drive-123")

        upload, share = calls
        assert upload.url.params["uploadType"] == "multipart"
        assert upload.headers["Authorization"] == "Bearer token-abc"
        assert b"deck.pdf" in upload.content
        assert share.url.path.endswith("/drive-123/permissions")
        assert json.loads(share.content) == {"role": "reader", "type": "anyone"}

    async def test_upload_failure(self):
        client = DriveClient("t", transport=drive_transport([], upload_status=403))
        with pytest.raises(DriveUploadError, match="403"):
            await client.upload("a.txt", b"x", "text/plain")

    async def test_sharing_failure_still_returns_file(self):
        client = DriveClient("t", transport=drive_transport([], share_status=500))
        uploaded = await client.upload("a.txt", b"x", "text/plain")
        assert uploaded.drive_id == "drive-123"


class TestUploadFile:
    async def test_stores_drive_file_node(self, db):
        client = DriveClient("t", transport=drive_transport([]))
        node = await ResourceService(db).upload_file(client, "docs", "a.txt", b"x", "text/plain")
        assert node.kind == "FILE"
        assert node.file_type == "DRIVE_FILE"
        assert node.drive_id == "drive-123"
