from __future__ import annotations

import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from werkzeug.utils import secure_filename

from sdqc_web.domain.errors import SizeLimitError, StorageError
from sdqc_web.domain.models import StoredBlob, format_mb

BLOB_ROUTE_PREFIX = "/blobs/"


class BlobStore:
    """Strategy interface for staging large uploads outside the request body."""
    max_bytes: int

    def put(self, data: bytes, filename: str, content_type: str = "application/pdf") -> StoredBlob:
        raise NotImplementedError

    def fetch(self, url: str, *, max_bytes: Optional[int] = None) -> bytes:
        raise NotImplementedError


def check_upload(data: bytes, content_type: str, *, max_bytes: int, allowed_content_types: tuple[str, ...]) -> None:
    if content_type not in allowed_content_types:
        raise StorageError(f"Content type {content_type!r} is not allowed. Allowed: {', '.join(allowed_content_types)}.")
    if len(data) > max_bytes:
        raise StorageError(f"File is {format_mb(len(data))}, above the {format_mb(max_bytes)} upload limit.")


def suffixed_name(filename: str, add_random_suffix: bool = True) -> str:
    name = secure_filename(filename or "") or "document.pdf"
    if not add_random_suffix:
        return name
    stem, dot, ext = name.rpartition(".")
    if not dot:
        stem, ext = name, ""
    suffix = secrets.token_urlsafe(12).replace("_", "").replace("-", "")[:16]
    return f"{stem}-{suffix}.{ext}" if ext else f"{stem}-{suffix}"


FETCH_CHUNK_BYTES = 64 * 1024


def http_get_bytes(
    url: str,
    timeout: float,
    *,
    headers: Optional[dict] = None,
    max_bytes: Optional[int] = None,
) -> bytes:
    """GET `url` into memory, giving up as soon as the body passes `max_bytes`."""
    too_large = f"Stored PDF is larger than the {format_mb(max_bytes or 0)} limit."
    try:
        with requests.get(url, timeout=timeout, headers=headers, stream=True) as resp:
            if resp.status_code != 200:
                raise StorageError(f"Failed to fetch PDF from storage (HTTP {resp.status_code}).")

            declared = resp.headers.get("Content-Length")
            if max_bytes is not None and declared and declared.isdigit() and int(declared) > max_bytes:
                raise SizeLimitError(too_large)

            buf = bytearray()
            for chunk in resp.iter_content(chunk_size=FETCH_CHUNK_BYTES):
                buf.extend(chunk)
                if max_bytes is not None and len(buf) > max_bytes:
                    raise SizeLimitError(too_large)
            return bytes(buf)
    except requests.RequestException as e:
        raise StorageError(f"Failed to fetch PDF from storage: {e}") from e


@dataclass
class FilesystemBlobStore(BlobStore):
    """
    Repository pattern: stores blobs as files under `root` and serves them
    at `{public_base_url}/blobs/<pathname>`.
    """
    root: Path
    public_base_url: str
    max_bytes: int
    allowed_content_types: tuple[str, ...] = ("application/pdf",)
    add_random_suffix: bool = True
    fetch_timeout_seconds: float = 30.0

    def _url_for(self, pathname: str) -> str:
        return f"{self.public_base_url.rstrip('/')}{BLOB_ROUTE_PREFIX}{pathname}"

    def path_for(self, pathname: str) -> Optional[Path]:
        """Resolved file for `pathname`, or None if it would escape `root`."""
        root = self.root.resolve()
        full = (root / pathname).resolve()
        if root not in full.parents:
            return None
        return full

    def put(self, data: bytes, filename: str, content_type: str = "application/pdf") -> StoredBlob:
        check_upload(data, content_type, max_bytes=self.max_bytes, allowed_content_types=self.allowed_content_types)

        pathname = suffixed_name(filename, self.add_random_suffix)
        full = self.path_for(pathname)
        if full is None:
            raise StorageError("Invalid blob name.")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            full.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to store upload: {e}") from e

        return StoredBlob(url=self._url_for(pathname), pathname=pathname, size=len(data), content_type=content_type)

    def owns(self, url: str) -> bool:
        return url.startswith(self._url_for(""))

    def fetch(self, url: str, *, max_bytes: Optional[int] = None) -> bytes:
        if not self.owns(url):
            return http_get_bytes(url, self.fetch_timeout_seconds, max_bytes=max_bytes or self.max_bytes)

        pathname = url[len(self._url_for("")):].split("?", 1)[0]
        full = self.path_for(pathname)
        if full is None or not full.is_file():
            raise StorageError("Failed to fetch PDF from storage: blob not found.")
        limit = max_bytes or self.max_bytes
        if full.stat().st_size > limit:
            raise SizeLimitError(f"Stored PDF is larger than the {format_mb(limit)} limit.")
        try:
            return full.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to fetch PDF from storage: {e}") from e
