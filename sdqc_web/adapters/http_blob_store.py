from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests
from werkzeug.utils import secure_filename

from sdqc_web.domain.errors import StorageError
from sdqc_web.domain.models import StoredBlob, format_mb
from sdqc_web.repositories.blob_repository import BlobStore, check_upload, http_get_bytes

logger = logging.getLogger(__name__)


@dataclass
class HttpBlobStore(BlobStore):
    """
    Adapter for a hosted blob store with a Vercel-Blob style REST API:
    `PUT {api_url}/{pathname}` with a bearer token, answered by JSON that
    carries the public `url`.
    """
    api_url: str
    token: str
    max_bytes: int
    allowed_content_types: tuple[str, ...] = ("application/pdf",)
    add_random_suffix: bool = True
    timeout_seconds: float = 30.0

    def put(self, data: bytes, filename: str, content_type: str = "application/pdf") -> StoredBlob:
        check_upload(data, content_type, max_bytes=self.max_bytes, allowed_content_types=self.allowed_content_types)
        if not self.token:
            raise StorageError("Blob store token is not configured.")

        pathname = secure_filename(filename or "") or "document.pdf"
        headers = {
            "authorization": f"Bearer {self.token}",
            "x-content-type": content_type,
            "x-add-random-suffix": "1" if self.add_random_suffix else "0",
        }
        try:
            resp = requests.put(
                f"{self.api_url.rstrip('/')}/{quote(pathname)}",
                data=data,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise StorageError(f"Upload failed: {e}") from e

        if not resp.ok:
            raise StorageError(f"Upload failed: {_error_message(resp)}")

        try:
            body = resp.json()
        except ValueError as e:
            raise StorageError("Upload failed: blob store returned a non-JSON response.") from e

        url = (body.get("url") or "").strip() if isinstance(body, dict) else ""
        if not url:
            raise StorageError("Upload failed: blob store response has no url.")

        logger.info("Stored blob %s (%s)", body.get("pathname") or pathname, format_mb(len(data)))
        return StoredBlob(
            url=url,
            pathname=body.get("pathname") or pathname,
            size=len(data),
            content_type=body.get("contentType") or content_type,
        )

    def fetch(self, url: str, *, max_bytes: Optional[int] = None) -> bytes:
        return http_get_bytes(url, self.timeout_seconds, max_bytes=max_bytes or self.max_bytes)


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str) and err:
        return err
    return f"HTTP {resp.status_code}"
