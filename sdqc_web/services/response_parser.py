from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Optional

from sdqc_web.domain.errors import UnparsableResponseError
from sdqc_web.domain.models import AnalysisResult

logger = logging.getLogger(__name__)

RAW_PREFIX_CHARS = 200


def _closing_brace(text: str, start: int) -> Optional[int]:
    """Index of the `}` balancing the `{` at `start`, or None if unbalanced."""
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def iter_balanced_objects(text: str) -> Iterator[str]:
    """
    Yield balanced `{...}` spans of `text` in order of their opening brace.

    Braces inside double-quoted strings do not count, so a `}` inside a quoted
    note cannot close the object early. Every opening brace is tried, so an
    unbalanced or non-JSON brace in surrounding prose only costs one candidate.
    """
    pos = text.find("{")
    while pos >= 0:
        end = _closing_brace(text, pos)
        if end is not None:
            yield text[pos:end + 1]
        pos = text.find("{", pos + 1)


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Return the first JSON object found in a model reply, or None.

    Order: a reply that already starts with `{` is decoded directly; only if
    that fails are the balanced spans tried one by one.
    """
    stripped = (text or "").strip()
    if not stripped:
        return None

    if stripped.startswith("{"):
        try:
            value = json.loads(stripped)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return value

    for span in iter_balanced_objects(stripped):
        try:
            value = json.loads(span)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value

    return None


def parse_analysis(text: str) -> AnalysisResult:
    raw = extract_json_object(text)
    if raw is None:
        prefix = (text or "").strip()[:RAW_PREFIX_CHARS]
        logger.warning("Unparsable model response (%d chars)", len(text or ""))
        detail = f" Response began: {prefix!r}" if prefix else " The response was empty."
        raise UnparsableResponseError(
            "Could not parse JSON from the model response." + detail,
            raw_prefix=prefix,
        )
    return AnalysisResult.from_dict(raw)
