#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app and dependencies.
# •	Dependency Injection (manual): settings are read once and passed into service constructors.
# •	Service Layer: AnalysisService (one model call) and RequestOrchestrator (one full run).
# •	Repository: FilesystemBlobStore encapsulates blob files on disk.
# •	Strategy: BlobStore lets the filesystem and hosted HTTP stores swap.
# •	Adapter: AnthropicLlmClient wraps the model provider SDK.
######################################################################
# Runtime request flow
# •	GET /            upload page with the four project questions
# •	POST /run        RequestOrchestrator: size → compress? → upload? → analyze → results page
# •	POST /upload     server-mediated blob upload
# •	POST /upload-token + PUT /blobs/upload   direct upload with a signed short-lived token
# •	POST /analyze    JSON API: multipart (inline) or {blobUrl, filename, projectType}
######################################################################
from __future__ import annotations

import logging
import secrets
from typing import Optional

from flask import Flask

from sdqc_web.adapters.anthropic_llm import AnthropicLlmClient, LlmClient
from sdqc_web.adapters.http_blob_store import HttpBlobStore
from sdqc_web.config.ini_config import AppSettings, IniConfig
from sdqc_web.repositories.blob_repository import BlobStore, FilesystemBlobStore
from sdqc_web.services.analysis_service import AnalysisService
from sdqc_web.services.compression import PdfCompressor
from sdqc_web.services.orchestrator import RequestOrchestrator
from sdqc_web.services.progress import ProgressTicker
from sdqc_web.services.upload_tokens import UploadTokenIssuer
from sdqc_web.web.routes import create_blueprint

# Headroom for multipart framing on top of the largest accepted upload
REQUEST_OVERHEAD_BYTES = 1024 * 1024

logger = logging.getLogger(__name__)


def _log_progress(percent: int, label: str) -> None:
    logger.debug("Progress %d%% %s", percent, label)


def build_blob_store(settings: AppSettings) -> BlobStore:
    if settings.blob_backend == "http":
        return HttpBlobStore(
            api_url=settings.blob_api_url,
            token=settings.blob_token,
            max_bytes=settings.upload_max_bytes,
            timeout_seconds=settings.fetch_timeout_seconds,
        )
    return FilesystemBlobStore(
        root=settings.blob_storage_dir,
        public_base_url=settings.blob_public_base_url,
        max_bytes=settings.upload_max_bytes,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    llm: Optional[LlmClient] = None,
    blob_store: Optional[BlobStore] = None,
) -> Flask:
    if settings is None:
        settings = IniConfig.from_env_or_default().load_settings()

    if llm is None:
        llm = AnthropicLlmClient(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.max_tokens,
            timeout_seconds=settings.timeout_seconds,
        )
    if blob_store is None:
        blob_store = build_blob_store(settings)

    analysis_service = AnalysisService(
        llm=llm,
        blob_store=blob_store,
        max_document_bytes=settings.max_document_bytes,
        timeout_seconds=settings.timeout_seconds,
        blob_timeout_seconds=settings.blob_timeout_seconds,
    )
    compressor = PdfCompressor(threshold_bytes=settings.compress_threshold_bytes)

    # No secret configured: tokens only live as long as this process
    secret_key = settings.secret_key or secrets.token_hex(32)

    token_issuer = UploadTokenIssuer(
        secret_key=secret_key,
        max_bytes=settings.upload_max_bytes,
        ttl_seconds=settings.token_ttl_seconds,
    )

    def orchestrator_factory() -> RequestOrchestrator:
        return RequestOrchestrator(
            analysis_service,
            compressor,
            blob_store,
            inline_max_bytes=settings.inline_max_bytes,
            max_document_bytes=settings.max_document_bytes,
            ticker_factory=lambda: ProgressTicker(
                interval_seconds=settings.progress_interval_seconds,
                on_tick=_log_progress,
            ),
        )

    app = Flask(__name__)
    app.config["SECRET_KEY"] = secret_key
    app.config["MAX_CONTENT_LENGTH"] = settings.upload_max_bytes + REQUEST_OVERHEAD_BYTES
    app.register_blueprint(create_blueprint(
        analysis_service,
        blob_store,
        token_issuer,
        orchestrator_factory,
        inline_max_bytes=settings.inline_max_bytes,
        progress_interval_seconds=settings.progress_interval_seconds,
    ))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    return app
