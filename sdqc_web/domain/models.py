######## models.py
########

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from sdqc_web.domain.errors import UnparsableResponseError, ValidationError

OVERALL_STATUSES = ("pass", "warning", "fail")
ITEM_STATUSES = ("pass", "warning", "fail", "pending", "skipped")

# wire key -> attribute name
LIST_FIELDS = (
    ("criticalIssues", "critical_issues"),
    ("warnings", "warnings"),
    ("passed", "passed"),
    ("manualReview", "manual_review"),
)

CONTEXT_FIELDS = (
    ("isBacklit", "is_backlit"),
    ("hasCutouts", "has_cutouts"),
    ("hasCorners", "has_corners"),
    ("hasLogos", "has_logos"),
)


def format_mb(size_bytes: int) -> str:
    """Base-1024 megabytes, one decimal place."""
    return f"{size_bytes / (1024 * 1024):.1f}MB"


class RequestState(str, enum.Enum):
    IDLE = "idle"
    SIZING = "sizing"
    COMPRESSING = "compressing"
    UPLOADING = "uploading"
    REQUESTING = "requesting"
    PARSING = "parsing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.DONE, RequestState.ERROR)


@dataclass(frozen=True)
class UploadedDocument:
    data: bytes
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def size_display(self) -> str:
        return format_mb(self.size)

    def looks_like_pdf(self) -> bool:
        return self.data[:1024].lstrip().startswith(b"%PDF-")


@dataclass(frozen=True)
class ProjectContext:
    is_backlit: bool = False
    has_cutouts: bool = False
    has_corners: bool = False
    has_logos: bool = False

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "ProjectContext":
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ValidationError("projectType must be an object with four booleans.")

        flags: dict[str, bool] = {}
        for wire_key, attr in CONTEXT_FIELDS:
            value = raw.get(wire_key)
            if value is None:
                value = False
            if not isinstance(value, bool):
                raise ValidationError(f"projectType.{wire_key} must be true or false (got {value!r}).")
            flags[attr] = value
        return cls(**flags)

    @classmethod
    def from_json(cls, text: Optional[str]) -> "ProjectContext":
        text = (text or "").strip()
        if not text:
            return cls()
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise ValidationError("projectType is not valid JSON.") from e
        return cls.from_dict(raw)

    def to_dict(self) -> dict[str, bool]:
        return {
            "isBacklit": self.is_backlit,
            "hasCutouts": self.has_cutouts,
            "hasCorners": self.has_corners,
            "hasLogos": self.has_logos,
        }


@dataclass(frozen=True)
class CheckItem:
    id: str
    label: str
    status: str
    notes: str = ""
    page: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Any, *, where: str) -> "CheckItem":
        if not isinstance(raw, dict):
            raise UnparsableResponseError(f"Malformed check item in {where}: expected an object.")

        item_id = raw.get("id")
        label = raw.get("label")
        status = raw.get("status")
        if item_id is None or not isinstance(item_id, (str, int)):
            raise UnparsableResponseError(f"Malformed check item in {where}: missing id.")
        if not isinstance(label, str):
            raise UnparsableResponseError(f"Malformed check item in {where}: missing label.")
        if status not in ITEM_STATUSES:
            raise UnparsableResponseError(f"Malformed check item in {where}: bad status {status!r}.")

        notes = raw.get("notes", "")
        if notes is None:
            notes = ""
        if not isinstance(notes, str):
            raise UnparsableResponseError(f"Malformed check item in {where}: notes must be text.")

        page = raw.get("page")
        if page is not None and (isinstance(page, bool) or not isinstance(page, int)):
            raise UnparsableResponseError(f"Malformed check item in {where}: page must be a number.")

        return cls(id=str(item_id), label=label, status=status, notes=notes, page=page)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "label": self.label, "status": self.status, "notes": self.notes}
        if self.page is not None:
            d["page"] = self.page
        return d


@dataclass(frozen=True)
class ExtractedInfo:
    project_name: Optional[str] = None
    location: Optional[str] = None
    version: Optional[str] = None
    drawn_by: Optional[str] = None
    page_count: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Any, *, page_count: Any = None) -> "ExtractedInfo":
        raw = raw or {}
        if not isinstance(raw, dict):
            raise UnparsableResponseError("Malformed extractedInfo: expected an object.")

        def _text(key: str) -> Optional[str]:
            v = raw.get(key)
            if v is None:
                return None
            if not isinstance(v, (str, int, float)) or isinstance(v, bool):
                raise UnparsableResponseError(f"Malformed extractedInfo.{key}.")
            return str(v)

        count = raw.get("pageCount", page_count)
        if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
            raise UnparsableResponseError("Malformed pageCount: expected a number.")

        return cls(
            project_name=_text("projectName"),
            location=_text("location"),
            version=_text("version"),
            drawn_by=_text("drawnBy"),
            page_count=count,
        )

    def is_empty(self) -> bool:
        return all(v is None for v in (self.project_name, self.location, self.version, self.drawn_by, self.page_count))

    def to_dict(self) -> dict[str, Any]:
        pairs = (
            ("projectName", self.project_name),
            ("location", self.location),
            ("version", self.version),
            ("drawnBy", self.drawn_by),
            ("pageCount", self.page_count),
        )
        return {k: v for k, v in pairs if v is not None}


@dataclass(frozen=True)
class AnalysisResult:
    overall_status: str                 # "pass" | "warning" | "fail"
    summary: str
    critical_issues: tuple[CheckItem, ...] = ()
    warnings: tuple[CheckItem, ...] = ()
    passed: tuple[CheckItem, ...] = ()
    manual_review: tuple[CheckItem, ...] = ()
    project_type: Optional[ProjectContext] = None
    extracted_info: Optional[ExtractedInfo] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "AnalysisResult":
        """
        Validate the model's decoded JSON.
        Absent list fields become empty; anything else malformed is rejected.
        """
        if not isinstance(raw, dict):
            raise UnparsableResponseError("Model response is not a JSON object.")

        overall = raw.get("overallStatus")
        if overall not in OVERALL_STATUSES:
            raise UnparsableResponseError(f"Model response has no valid overallStatus (got {overall!r}).")

        summary = raw.get("summary")
        if not isinstance(summary, str):
            raise UnparsableResponseError("Model response has no summary.")

        lists: dict[str, tuple[CheckItem, ...]] = {}
        for wire_key, attr in LIST_FIELDS:
            items = raw.get(wire_key)
            if items is None:
                lists[attr] = ()
                continue
            if not isinstance(items, list):
                raise UnparsableResponseError(f"Model response field {wire_key} is not a list.")
            lists[attr] = tuple(CheckItem.from_dict(it, where=wire_key) for it in items)

        project_type = None
        if raw.get("projectType") is not None:
            if not isinstance(raw["projectType"], dict):
                raise UnparsableResponseError("Malformed projectType: expected an object.")
            try:
                project_type = ProjectContext.from_dict(raw["projectType"])
            except ValidationError as e:
                raise UnparsableResponseError(f"Malformed projectType: {e.message}") from e

        info = ExtractedInfo.from_dict(raw.get("extractedInfo"), page_count=raw.get("pageCount"))

        return cls(
            overall_status=overall,
            summary=summary,
            project_type=project_type,
            extracted_info=None if info.is_empty() else info,
            **lists,
        )

    @property
    def counts(self) -> dict[str, int]:
        return {attr: len(getattr(self, attr)) for _, attr in LIST_FIELDS}

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"overallStatus": self.overall_status, "summary": self.summary}
        for wire_key, attr in LIST_FIELDS:
            d[wire_key] = [it.to_dict() for it in getattr(self, attr)]
        if self.project_type is not None:
            d["projectType"] = self.project_type.to_dict()
        if self.extracted_info is not None:
            d["extractedInfo"] = self.extracted_info.to_dict()
        return d


@dataclass(frozen=True)
class CompressionResult:
    data: bytes
    original_size: int
    compressed_size: int
    page_count: int

    @property
    def reduced(self) -> bool:
        return self.compressed_size < self.original_size

    def describe(self) -> str:
        return f"Compressed from {format_mb(self.original_size)} to {format_mb(self.compressed_size)}"


@dataclass(frozen=True)
class StoredBlob:
    url: str
    pathname: str
    size: int
    content_type: str = "application/pdf"

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "filename": self.pathname, "size": self.size}


@dataclass
class RunRecord:
    """What one orchestrated run did, for logs and the results page."""
    filename: str
    original_size: int
    final_size: int = 0
    compression: Optional[CompressionResult] = None
    blob: Optional[StoredBlob] = None
    notes: list[str] = field(default_factory=list)
