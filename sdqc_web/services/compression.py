from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from pypdf import PdfReader, PdfWriter

from sdqc_web.domain.errors import MalformedInputError
from sdqc_web.domain.models import CompressionResult

logger = logging.getLogger(__name__)

CLEARED_METADATA_FIELDS = ("/Title", "/Author", "/Subject", "/Keywords", "/Producer", "/Creator")


@dataclass(frozen=True)
class PdfCompressor:
    """
    Shrinks a PDF before upload: clears the document info fields,
    recompresses page content streams and merges identical objects.
    Pages and their content are left alone.
    """
    threshold_bytes: int

    def should_compress(self, size: int) -> bool:
        return size > self.threshold_bytes

    def compress(self, data: bytes) -> CompressionResult:
        try:
            reader = PdfReader(io.BytesIO(data), strict=False)
            if reader.is_encrypted:
                raise MalformedInputError("The PDF is encrypted and cannot be compressed here.")
            page_count = len(reader.pages)
            if page_count == 0:
                raise MalformedInputError("The PDF has no pages.")
            writer = PdfWriter(clone_from=reader)
        except MalformedInputError:
            raise
        except Exception as e:
            raise MalformedInputError(f"The file could not be read as a PDF: {e}") from e

        writer.add_metadata({key: "" for key in CLEARED_METADATA_FIELDS})

        for page in writer.pages:
            page.compress_content_streams()
        writer.compress_identical_objects(remove_identicals=True, remove_orphans=True)

        buf = io.BytesIO()
        writer.write(buf)
        out = buf.getvalue()

        result = CompressionResult(
            data=out,
            original_size=len(data),
            compressed_size=len(out),
            page_count=page_count,
        )
        logger.info("%s (%d pages)", result.describe(), page_count)
        return result
