from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import pytest

from sdqc_web.domain.errors import SizeLimitError, StorageError, UnparsableResponseError, ValidationError
from sdqc_web.domain.models import ProjectContext, UploadedDocument
from sdqc_web.repositories.blob_repository import FilesystemBlobStore
from sdqc_web.services.analysis_service import AnalysisService
from sdqc_web.services.prompt_builder import CLOSING_REMINDER

MB = 1024 * 1024

EXAMPLE_REPLY = json.dumps({
    "overallStatus": "pass",
    "summary": "Looks complete.",
    "criticalIssues": [],
    "warnings": [],
    "passed": [{"id": "1", "label": "Title block", "status": "pass", "notes": "ok"}],
})


# -----------------------------
# Test doubles
# -----------------------------
class FakeLlm:
    def __init__(self, reply: str = EXAMPLE_REPLY, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    def complete_document(self, pdf_bytes: bytes, instruction: str, *, timeout: Optional[float] = None) -> str:
        self.calls.append({"pdf_bytes": pdf_bytes, "instruction": instruction, "timeout": timeout})
        if self.error:
            raise self.error
        return self.reply


# -----------------------------
# Helpers
# -----------------------------
def make_service(tmp_path: Path, llm: FakeLlm, max_document_bytes: int = 32 * MB) -> AnalysisService:
    store = FilesystemBlobStore(root=tmp_path / "blobs", public_base_url="http://localhost", max_bytes=50 * MB)
    return AnalysisService(
        llm=llm,
        blob_store=store,
        max_document_bytes=max_document_bytes,
        timeout_seconds=60,
        blob_timeout_seconds=120,
    )


def test_analyze_sends_document_and_instruction(tmp_path: Path):
    llm = FakeLlm()
    service = make_service(tmp_path, llm)
    doc = UploadedDocument(data=b"%PDF-1.7 drawing", filename="a.pdf")

    result = service.analyze(doc, ProjectContext(is_backlit=True))

    assert result.overall_status == "pass"
    assert len(result.passed) == 1
    assert len(llm.calls) == 1
    call = llm.calls[0]
    assert call["pdf_bytes"] == b"%PDF-1.7 drawing"
    assert "BACKLIT wall" in call["instruction"]
    assert call["instruction"].endswith(CLOSING_REMINDER)
    assert call["timeout"] == 60


def test_oversized_document_never_reaches_model(tmp_path: Path):
    llm = FakeLlm()
    service = make_service(tmp_path, llm, max_document_bytes=10)
    with pytest.raises(SizeLimitError) as info:
        service.analyze(UploadedDocument(data=b"%PDF" + b"0" * 20, filename="big.pdf"), ProjectContext())
    assert llm.calls == []
    assert info.value.status_code == 413
    assert info.value.remediation


def test_empty_document_is_validation_error(tmp_path: Path):
    with pytest.raises(ValidationError):
        make_service(tmp_path, FakeLlm()).analyze(UploadedDocument(data=b"", filename="a.pdf"), ProjectContext())


def test_prose_reply_is_unparsable(tmp_path: Path):
    service = make_service(tmp_path, FakeLlm(reply="I reviewed the drawing and it looks fine."))
    with pytest.raises(UnparsableResponseError) as info:
        service.analyze(UploadedDocument(data=b"%PDF", filename="a.pdf"), ProjectContext())
    assert info.value.raw_prefix.startswith("I reviewed the drawing")


def test_analyze_url_fetches_from_store_with_longer_timeout(tmp_path: Path):
    llm = FakeLlm()
    service = make_service(tmp_path, llm)
    blob = service.blob_store.put(b"%PDF-1.7 staged", "staged.pdf")

    result = service.analyze_url(blob.url, "staged.pdf", ProjectContext())

    assert result.overall_status == "pass"
    assert llm.calls[0]["pdf_bytes"] == b"%PDF-1.7 staged"
    assert llm.calls[0]["timeout"] == 120


def test_analyze_url_requires_url(tmp_path: Path):
    with pytest.raises(ValidationError, match="No blob URL"):
        make_service(tmp_path, FakeLlm()).analyze_url("  ", "a.pdf", ProjectContext())


def test_analyze_url_missing_blob_is_storage_error(tmp_path: Path):
    llm = FakeLlm()
    with pytest.raises(StorageError):
        make_service(tmp_path, llm).analyze_url("http://localhost/blobs/missing.pdf", "a.pdf", ProjectContext())
    assert llm.calls == []
