from __future__ import annotations

from typing import Optional


COMPRESS_REMEDIATION = (
    "Please compress the PDF (reduce image quality to 150 DPI) and try again. "
    "In Preview: File → Export → Quartz Filter → Reduce File Size."
)


class QcError(Exception):
    """
    Base for every failure that may cross the request boundary.
    `message` is safe to show to the user; `status_code` is the HTTP status.
    """
    status_code = 500

    def __init__(self, message: str, *, remediation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    @property
    def user_message(self) -> str:
        if self.remediation and self.remediation not in self.message:
            return f"{self.message} {self.remediation}"
        return self.message


class ValidationError(QcError):
    status_code = 400


class MalformedInputError(QcError):
    """The PDF could not be parsed for compression."""
    status_code = 400


class SizeLimitError(QcError):
    status_code = 413

    def __init__(self, message: str, *, remediation: str = COMPRESS_REMEDIATION):
        super().__init__(message, remediation=remediation)


class StorageError(QcError):
    status_code = 500


class UpstreamBillingError(QcError):
    status_code = 402

    def __init__(self, message: str = "Anthropic API credit balance is too low.", *, remediation: Optional[str] = None):
        super().__init__(message, remediation=remediation or "Please add credits at console.anthropic.com.")


class UnparsableResponseError(QcError):
    status_code = 500

    def __init__(self, message: str, *, raw_prefix: str = ""):
        super().__init__(message)
        self.raw_prefix = raw_prefix


class UnclassifiedError(QcError):
    status_code = 500
