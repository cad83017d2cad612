"""Google Drive upload client for the training resource library.

The caller supplies a user OAuth access token; the file is uploaded with
a multipart request and then shared as "anyone with the link can read".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx

from bizops.config import get_settings

logger = logging.getLogger(__name__)

UPLOAD_FIELDS = "id,webViewLink,webContentLink"


class DriveUploadError(Exception):
    """Drive rejected the upload or could not be reached."""


@dataclass(frozen=True)
class DriveFile:
    drive_id: str
    name: str
    link: str
    download_link: str


class DriveClient:
    """Thin async wrapper over the Drive v3 files API.

    Args:
        access_token: OAuth bearer token with the ``drive.file`` scope.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        access_token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._upload_url = settings.drive_upload_url
        self._api_url = settings.drive_api_url
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._transport = transport

    async def upload(self, name: str, content: bytes, mime_type: str) -> DriveFile:
        """Upload ``content`` and make it publicly readable.

        Raises:
            DriveUploadError: If the upload request fails.
        """
        metadata = json.dumps({"name": name, "mimeType": mime_type})
        files = {
            "metadata": ("metadata", metadata, "application/json; charset=UTF-8"),
            "file": (name, content, mime_type or "application/octet-stream"),
        }
        async with httpx.AsyncClient(timeout=60.0, transport=self._transport) as client:
            try:
                response = await client.post(
                    self._upload_url,
                    params={"uploadType": "multipart", "fields": UPLOAD_FIELDS},
                    headers=self._headers,
                    files=files,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise DriveUploadError(
                    f"Upload failed: {exc.response.status_code} {exc.response.text}"
                ) from exc
            except httpx.HTTPError as exc:
                raise DriveUploadError(f"Upload failed: {exc}") from exc

            data = response.json()
            drive_id = data["id"]
            try:
                permission = await client.post(
                    f"{self._api_url}/{drive_id}/permissions",
                    headers=self._headers,
                    json={"role": "reader", "type": "anyone"},
                )
                permission.raise_for_status()
            except httpx.HTTPError:
                logger.warning("Uploaded %s but could not share it publicly", drive_id, exc_info=True)

        logger.info("Uploaded %s to Drive as %s", name, drive_id)
        return DriveFile(
            drive_id=drive_id,
            name=name,
            link=data.get("webViewLink", ""),
            download_link=data.get("webContentLink", ""),
        )
