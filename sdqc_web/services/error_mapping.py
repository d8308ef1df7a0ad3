from __future__ import annotations

from typing import Any, Optional

import anthropic

from sdqc_web.domain.errors import (
    COMPRESS_REMEDIATION,
    QcError,
    SizeLimitError,
    UnclassifiedError,
    UpstreamBillingError,
    ValidationError,
)

BILLING_ERROR_TYPES = {"billing_error"}
SIZE_ERROR_TYPES = {"request_too_large"}

BILLING_MARKERS = ("credit balance", "billing")
PDF_REJECTED_MARKERS = ("could not process pdf", "invalid_request_error")
SIZE_MARKERS = ("request too large", "request_too_large", "too large", "error code: 413")


def provider_error_type(exc: BaseException) -> Optional[str]:
    """The structured `error.type` of an Anthropic API error body, if any."""
    body: Any = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and isinstance(err.get("type"), str):
            return err["type"]
        if isinstance(body.get("type"), str) and body["type"] != "error":
            return body["type"]
    return None


def _billing() -> UpstreamBillingError:
    return UpstreamBillingError()


def _pdf_rejected() -> ValidationError:
    return ValidationError("PDF too large or complex to process.", remediation=COMPRESS_REMEDIATION)


def _too_large() -> SizeLimitError:
    return SizeLimitError("The PDF is too large for the model to accept.")


def classify_error(exc: BaseException) -> QcError:
    """
    Map any failure into the user-facing taxonomy.

    Structured provider signals (status code, error type) are checked first;
    substring matching on the message is the last resort.
    """
    if isinstance(exc, QcError):
        return exc

    if isinstance(exc, anthropic.APITimeoutError):
        return UnclassifiedError("Analysis timed out. Please try again, or compress the PDF first.")

    if isinstance(exc, anthropic.APIStatusError):
        err_type = provider_error_type(exc)
        if exc.status_code == 402 or err_type in BILLING_ERROR_TYPES:
            return _billing()
        if exc.status_code == 413 or err_type in SIZE_ERROR_TYPES:
            return _too_large()

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if any(m in lowered for m in BILLING_MARKERS):
        return _billing()
    if any(m in lowered for m in PDF_REJECTED_MARKERS):
        return _pdf_rejected()
    if any(m in lowered for m in SIZE_MARKERS):
        return _too_large()

    return UnclassifiedError(message)
