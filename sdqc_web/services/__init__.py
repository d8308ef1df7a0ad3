from .analysis_service import AnalysisService
from .compression import PdfCompressor
from .orchestrator import RequestOrchestrator
from .progress import ProgressTicker
from .upload_tokens import UploadTokenIssuer

__all__ = [
    "AnalysisService",
    "PdfCompressor",
    "RequestOrchestrator",
    "ProgressTicker",
    "UploadTokenIssuer",
]
