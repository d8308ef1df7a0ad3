from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import anthropic

from sdqc_web.domain.errors import UnclassifiedError
from sdqc_web.domain.models import format_mb

logger = logging.getLogger(__name__)


class LlmClient:
    """Port: send one PDF plus an instruction, get the model's reply text."""
    def complete_document(self, pdf_bytes: bytes, instruction: str, *, timeout: Optional[float] = None) -> str:
        raise NotImplementedError


def first_text_block(content: Any) -> Optional[str]:
    for block in content or []:
        if getattr(block, "type", None) == "text":
            return getattr(block, "text", "") or ""
    return None


@dataclass
class AnthropicLlmClient(LlmClient):
    """
    Adapter over the Anthropic Messages API.
    No retries: a failed call is reported and the user resubmits.
    """
    api_key: str
    model: str
    max_tokens: int = 4096
    timeout_seconds: float = 60.0
    _client: Optional[anthropic.Anthropic] = field(default=None, init=False, repr=False)

    def _get_client(self) -> anthropic.Anthropic:
        if not self.api_key:
            raise UnclassifiedError("The model provider is not configured: ANTHROPIC_API_KEY is not set.")
        if self._client is None:
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=self.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def complete_document(self, pdf_bytes: bytes, instruction: str, *, timeout: Optional[float] = None) -> str:
        client = self._get_client()
        data = base64.standard_b64encode(pdf_bytes).decode("ascii")

        message_content = [
            {
                "type": "document",
                "source": {
                    "type": "base64",
                    "media_type": "application/pdf",
                    "data": data,
                },
            },
            {"type": "text", "text": instruction},
        ]

        logger.info("Sending %s PDF to %s", format_mb(len(pdf_bytes)), self.model)
        resp = client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": message_content}],
            timeout=timeout or self.timeout_seconds,
        )

        text = first_text_block(resp.content)
        if text is None:
            raise UnclassifiedError("No text response from the model.")

        usage = getattr(resp, "usage", None)
        if usage is not None:
            logger.info("Model usage: input=%s output=%s", getattr(usage, "input_tokens", "?"), getattr(usage, "output_tokens", "?"))
        return text
