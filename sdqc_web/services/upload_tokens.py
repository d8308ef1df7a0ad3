from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from sdqc_web.domain.errors import ValidationError

TOKEN_SALT = "sdqc-upload-token"


@dataclass(frozen=True)
class UploadGrant:
    pathname: str
    allowed_content_types: tuple[str, ...]
    maximum_size_in_bytes: int
    add_random_suffix: bool


@dataclass
class UploadTokenIssuer:
    """
    Issues short-lived signed tokens that let a browser upload straight to
    the blob store. The grant (content types, size ceiling, pathname) travels
    inside the signed payload, so the write endpoint trusts only the token.
    """
    secret_key: str
    max_bytes: int
    ttl_seconds: int = 3600
    allowed_content_types: tuple[str, ...] = ("application/pdf",)
    add_random_suffix: bool = True

    def _serializer(self) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(self.secret_key, salt=TOKEN_SALT)

    def issue(self, intent: Any, *, upload_url: str) -> dict[str, Any]:
        if not isinstance(intent, dict):
            raise ValidationError("Upload intent must be a JSON object.")
        # Also accept the {"type": ..., "payload": {...}} envelope used by blob client libraries
        if isinstance(intent.get("payload"), dict):
            intent = intent["payload"]

        pathname = (intent.get("pathname") or "").strip()
        if not pathname:
            raise ValidationError("Upload intent is missing a pathname.")

        content_type = (intent.get("contentType") or "application/pdf").strip()
        if content_type not in self.allowed_content_types:
            raise ValidationError(f"Content type {content_type!r} is not allowed.")

        token = self._serializer().dumps({
            "pathname": pathname,
            "allowedContentTypes": list(self.allowed_content_types),
            "maximumSizeInBytes": self.max_bytes,
            "addRandomSuffix": self.add_random_suffix,
        })
        return {
            "type": "blob.generate-client-token",
            "clientToken": token,
            "uploadUrl": upload_url,
            "allowedContentTypes": list(self.allowed_content_types),
            "maximumSizeInBytes": self.max_bytes,
            "addRandomSuffix": self.add_random_suffix,
            "validUntil": int((time.time() + self.ttl_seconds) * 1000),
        }

    def verify(self, token: str, pathname: str) -> UploadGrant:
        try:
            payload = self._serializer().loads(token or "", max_age=self.ttl_seconds)
        except SignatureExpired as e:
            raise ValidationError("Upload token has expired. Please request a new one.") from e
        except BadSignature as e:
            raise ValidationError("Upload token is invalid.") from e

        if payload.get("pathname") != pathname:
            raise ValidationError("Upload token was issued for a different file.")

        return UploadGrant(
            pathname=payload["pathname"],
            allowed_content_types=tuple(payload.get("allowedContentTypes") or ()),
            maximum_size_in_bytes=int(payload.get("maximumSizeInBytes") or 0),
            add_random_suffix=bool(payload.get("addRandomSuffix", True)),
        )
