from __future__ import annotations

import logging
from typing import Callable, Optional

from sdqc_web.domain.errors import MalformedInputError, QcError, ValidationError
from sdqc_web.domain.models import (
    AnalysisResult,
    ProjectContext,
    RequestState,
    RunRecord,
    UploadedDocument,
    format_mb,
)
from sdqc_web.repositories.blob_repository import BlobStore
from sdqc_web.services.analysis_service import AnalysisService
from sdqc_web.services.compression import PdfCompressor
from sdqc_web.services.error_mapping import classify_error
from sdqc_web.services.progress import ProgressTicker

logger = logging.getLogger(__name__)

COMPRESS_EXTERNALLY = (
    "Please compress the PDF with an external tool (for example Preview: File → Export → "
    "Quartz Filter → Reduce File Size, or an online PDF compressor) and upload it again."
)


class RequestOrchestrator:
    """
    Runs one analysis: size check → optional compression → optional blob
    upload → model call → parse. Strictly sequential; one instance per run.

    States: idle → sizing → (compressing)? → (uploading)? → requesting →
    parsing → done, or error from any step. done/error are terminal until
    reset() is called.
    """

    def __init__(
        self,
        analysis_service: AnalysisService,
        compressor: PdfCompressor,
        blob_store: BlobStore,
        *,
        inline_max_bytes: int,
        max_document_bytes: int,
        ticker_factory: Callable[[], ProgressTicker] = ProgressTicker,
    ):
        self.analysis_service = analysis_service
        self.compressor = compressor
        self.blob_store = blob_store
        self.inline_max_bytes = inline_max_bytes
        self.max_document_bytes = max_document_bytes
        self._ticker_factory = ticker_factory
        self._ticker: Optional[ProgressTicker] = None

        self.state = RequestState.IDLE
        self.history: list[RequestState] = [RequestState.IDLE]
        self.record: Optional[RunRecord] = None
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[QcError] = None
        self._final_progress = 0

    @property
    def progress(self) -> int:
        if self._ticker is not None:
            return self._ticker.percent
        return self._final_progress

    @property
    def phase(self) -> str:
        return self._ticker.label if self._ticker is not None else ""

    def _enter(self, state: RequestState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def reset(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
        self._ticker = None
        self.state = RequestState.IDLE
        self.history = [RequestState.IDLE]
        self.record = None
        self.result = None
        self.error = None
        self._final_progress = 0

    def run(self, document: UploadedDocument, context: ProjectContext) -> AnalysisResult:
        if self.state is not RequestState.IDLE:
            raise RuntimeError(f"Run already finished with state {self.state.value!r}; call reset() first.")

        self._ticker = self._ticker_factory()
        self._ticker.start()
        try:
            result = self._run_steps(document, context)
        except Exception as e:
            self.error = classify_error(e)
            logger.info("Run failed in state %s: %s", self.state.value, self.error.message)
            self._enter(RequestState.ERROR)
            if self.error is e:
                raise
            raise self.error from e
        finally:
            self._ticker.cancel()

        self._ticker.complete()
        self.result = result
        self._enter(RequestState.DONE)
        return result

    def _run_steps(self, document: UploadedDocument, context: ProjectContext) -> AnalysisResult:
        self._enter(RequestState.SIZING)
        if not document.data:
            raise ValidationError("Please upload a PDF file.")
        if not document.looks_like_pdf():
            raise ValidationError("Please upload a PDF file.")

        self.record = RunRecord(filename=document.filename, original_size=document.size)

        if self.compressor.should_compress(document.size):
            self._enter(RequestState.COMPRESSING)
            try:
                compressed = self.compressor.compress(document.data)
            except MalformedInputError as e:
                raise ValidationError(
                    f"{document.filename} is {document.size_display} and could not be compressed here: {e.message}",
                    remediation=COMPRESS_EXTERNALLY,
                ) from e
            self.record.compression = compressed
            if compressed.reduced:
                document = UploadedDocument(data=compressed.data, filename=document.filename)
                self.record.notes.append(compressed.describe())
            else:
                self.record.notes.append("Compression did not reduce the file; using the original.")

        self.record.final_size = document.size
        # Raises SizeLimitError before any upload or model call
        self.analysis_service.check_size(document.size)

        if document.size > self.inline_max_bytes:
            self._enter(RequestState.UPLOADING)
            blob = self.blob_store.put(document.data, document.filename)
            self.record.blob = blob
            self.record.notes.append(f"Staged {format_mb(blob.size)} upload in blob storage.")

            self._enter(RequestState.REQUESTING)
            staged = self.analysis_service.fetch_document(blob.url, document.filename)
            text = self.analysis_service.request(
                staged, context, timeout=self.analysis_service.blob_timeout_seconds
            )
        else:
            self._enter(RequestState.REQUESTING)
            text = self.analysis_service.request(document, context)

        self._enter(RequestState.PARSING)
        return self.analysis_service.parse(text)
