from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sdqc_web.adapters.anthropic_llm import LlmClient
from sdqc_web.domain.errors import SizeLimitError, ValidationError
from sdqc_web.domain.models import AnalysisResult, ProjectContext, UploadedDocument, format_mb
from sdqc_web.repositories.blob_repository import BlobStore
from sdqc_web.services.prompt_builder import build_instruction
from sdqc_web.services.response_parser import parse_analysis

logger = logging.getLogger(__name__)


@dataclass
class AnalysisService:
    """
    Service layer: one document in, one validated checklist out.
    Builds the instruction, calls the model once, parses the reply.
    """
    llm: LlmClient
    blob_store: BlobStore
    max_document_bytes: int
    timeout_seconds: float = 60.0
    blob_timeout_seconds: float = 120.0

    def check_size(self, size: int) -> None:
        if size > self.max_document_bytes:
            raise SizeLimitError(
                f"PDF is {format_mb(size)}; the maximum the model accepts is {format_mb(self.max_document_bytes)}."
            )

    def request(
        self,
        document: UploadedDocument,
        context: ProjectContext,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        if not document.data:
            raise ValidationError("No PDF file provided.")
        self.check_size(document.size)

        logger.info("Analyzing %s (%s)", document.filename, document.size_display)
        return self.llm.complete_document(
            document.data,
            build_instruction(context),
            timeout=timeout or self.timeout_seconds,
        )

    def parse(self, text: str) -> AnalysisResult:
        result = parse_analysis(text)
        logger.info("Parsed result: status=%s counts=%s", result.overall_status, result.counts)
        return result

    def analyze(self, document: UploadedDocument, context: ProjectContext) -> AnalysisResult:
        return self.parse(self.request(document, context))

    def fetch_document(self, url: str, filename: str) -> UploadedDocument:
        if not (url or "").strip():
            raise ValidationError("No blob URL provided.")
        data = self.blob_store.fetch(url, max_bytes=self.max_document_bytes)
        return UploadedDocument(data=data, filename=filename or "document.pdf")

    def analyze_url(self, url: str, filename: str, context: ProjectContext) -> AnalysisResult:
        document = self.fetch_document(url, filename)
        return self.parse(self.request(document, context, timeout=self.blob_timeout_seconds))
