## routes.py
from __future__ import annotations

from typing import Callable, Optional

from flask import Blueprint, abort, current_app, jsonify, render_template, request, send_file, url_for
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from sdqc_web.domain.errors import COMPRESS_REMEDIATION, QcError, SizeLimitError, StorageError, ValidationError
from sdqc_web.domain.models import ProjectContext, UploadedDocument, format_mb
from sdqc_web.repositories.blob_repository import BlobStore, FilesystemBlobStore
from sdqc_web.services.analysis_service import AnalysisService
from sdqc_web.services.error_mapping import classify_error
from sdqc_web.services.orchestrator import RequestOrchestrator
from sdqc_web.services.progress import PROGRESS_STEPS
from sdqc_web.services.upload_tokens import UploadTokenIssuer

QUESTIONS = (
    ("isBacklit", "Is this a backlit wall?", "LEDs behind the panels"),
    ("hasCutouts", "Does it have cutouts?", "TV openings, pass-throughs"),
    ("hasCorners", "Inside or outside corners?", "Wall wraps around"),
    ("hasLogos", "Logos or inlays?", "Custom engravings"),
)

PDF_MIME_TYPES = {"application/pdf", "application/x-pdf"}


def _is_pdf_upload(f: FileStorage) -> bool:
    return (f.mimetype or "").lower() in PDF_MIME_TYPES or (f.filename or "").lower().endswith(".pdf")


def _read_pdf_field(field: str = "pdf") -> UploadedDocument:
    f: Optional[FileStorage] = request.files.get(field)
    if f is None or not (f.filename or "").strip():
        raise ValidationError("No PDF file provided.")
    if not _is_pdf_upload(f):
        raise ValidationError("Please upload a PDF file.")
    return UploadedDocument(data=f.read(), filename=f.filename)


def _bearer_token() -> str:
    auth = (request.headers.get("Authorization") or "").strip()
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""


def _error_response(exc: BaseException):
    err = classify_error(exc)
    if err is exc:
        current_app.logger.warning("%s: %s", err.__class__.__name__, err.message)
    else:
        current_app.logger.exception("Unexpected failure, reported as %s", err.__class__.__name__)
    return jsonify(error=err.user_message), err.status_code


def create_blueprint(
    analysis_service: AnalysisService,
    blob_store: BlobStore,
    token_issuer: UploadTokenIssuer,
    orchestrator_factory: Callable[[], RequestOrchestrator],
    *,
    inline_max_bytes: int,
    progress_interval_seconds: float = 1.2,
) -> Blueprint:
    bp = Blueprint("web", __name__)

    def render_index(answers: dict, error: Optional[str] = None, status: int = 200):
        return render_template(
            "index.html",
            questions=QUESTIONS,
            answers=answers,
            error=error,
            progress_steps=[{"percent": s.percent, "label": s.label} for s in PROGRESS_STEPS],
            progress_interval_ms=int(progress_interval_seconds * 1000),
        ), status

    @bp.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        err = SizeLimitError("Upload is larger than this server accepts.")
        return jsonify(error=err.user_message), err.status_code

    @bp.get("/")
    def index():
        return render_index({})

    @bp.get("/healthz")
    def healthz():
        return jsonify(ok=True)

    @bp.post("/run")
    def run_analysis():
        answers: dict = {}
        orchestrator = orchestrator_factory()
        try:
            answers = {key: request.form.get(key) in ("on", "true", "1") for key, _, _ in QUESTIONS}
            document = _read_pdf_field()
            result = orchestrator.run(document, ProjectContext.from_dict(answers))
        except RequestEntityTooLarge:
            err = SizeLimitError(
                f"Upload is larger than the {format_mb(current_app.config['MAX_CONTENT_LENGTH'])} this server accepts."
            )
            current_app.logger.warning("Run rejected: %s", err.message)
            return render_index(answers, err.user_message, err.status_code)
        except Exception as e:
            err = classify_error(e)
            cause = err.__cause__ if err is e else e
            if cause is not None and not isinstance(cause, QcError):
                current_app.logger.error("Run failed: %s", err.message, exc_info=cause)
            else:
                current_app.logger.warning("Run failed: %s", err.message)
            return render_index(answers, err.user_message, err.status_code)

        record = orchestrator.record
        current_app.logger.info(
            "Run %s status=%s size=%s",
            record.filename if record else "?",
            result.overall_status,
            format_mb(record.final_size) if record else "?",
        )
        return render_template("results.html", result=result, record=record, answers=answers)

    @bp.post("/upload")
    def upload():
        try:
            document = _read_pdf_field()
            blob = blob_store.put(document.data, document.filename)
        except QcError as e:
            return _error_response(e)
        current_app.logger.info("Upload completed: %s", blob.url)
        return jsonify(blob.to_dict())

    @bp.post("/upload-token")
    def upload_token():
        try:
            payload = token_issuer.issue(
                request.get_json(silent=True),
                upload_url=url_for("web.direct_upload", _external=True),
            )
        except QcError as e:
            return _error_response(e)
        return jsonify(payload)

    @bp.put("/blobs/upload")
    def direct_upload():
        pathname = (request.args.get("pathname") or "").strip()
        try:
            grant = token_issuer.verify(_bearer_token(), pathname)
            content_type = (request.mimetype or "").lower()
            if content_type not in grant.allowed_content_types:
                raise StorageError(f"Content type {content_type or 'unknown'!r} is not allowed.")
            if request.content_length is not None and request.content_length > grant.maximum_size_in_bytes:
                raise StorageError(f"File exceeds the {format_mb(grant.maximum_size_in_bytes)} upload limit.")
            data = request.get_data()
            if len(data) > grant.maximum_size_in_bytes:
                raise StorageError(f"File exceeds the {format_mb(grant.maximum_size_in_bytes)} upload limit.")
            blob = blob_store.put(data, grant.pathname, content_type)
        except QcError as e:
            return _error_response(e)
        current_app.logger.info("Upload completed: %s", blob.url)
        return jsonify(blob.to_dict())

    @bp.get("/blobs/<path:pathname>")
    def read_blob(pathname: str):
        if not isinstance(blob_store, FilesystemBlobStore):
            abort(404)
        full = blob_store.path_for(pathname)
        if full is None:
            abort(403)
        if not full.exists() or not full.is_file():
            abort(404)
        return send_file(full, mimetype="application/pdf")

    @bp.post("/analyze")
    def analyze():
        if request.is_json:
            return analyze_blob()

        try:
            document = _read_pdf_field()
            if document.size > inline_max_bytes:
                raise SizeLimitError(
                    f"File is {document.size_display}; direct analysis accepts up to {format_mb(inline_max_bytes)}.",
                    remediation=COMPRESS_REMEDIATION + " Larger files are uploaded to storage first.",
                )
            context = ProjectContext.from_json(request.form.get("projectType"))
            result = analysis_service.analyze(document, context)
        except HTTPException:
            raise
        except Exception as e:
            return _error_response(e)

        current_app.logger.info("Analyzed %s status=%s", document.filename, result.overall_status)
        return jsonify(success=True, filename=document.filename or "document.pdf", results=result.to_dict())

    def analyze_blob():
        body = request.get_json(silent=True)
        try:
            if not isinstance(body, dict):
                raise ValidationError("Request body must be a JSON object.")
            blob_url = (body.get("blobUrl") or "").strip()
            filename = (body.get("filename") or "").strip() or "document.pdf"
            raw_context = body.get("projectType")
            if isinstance(raw_context, str):
                context = ProjectContext.from_json(raw_context)
            else:
                context = ProjectContext.from_dict(raw_context)
            result = analysis_service.analyze_url(blob_url, filename, context)
        except HTTPException:
            raise
        except Exception as e:
            return _error_response(e)

        current_app.logger.info("Analyzed %s from blob status=%s", filename, result.overall_status)
        return jsonify(success=True, filename=filename, results=result.to_dict())

    return bp
