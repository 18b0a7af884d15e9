"""TLDR summarizer.

Sends the prompt prefix plus the document text to a generateContent endpoint
in a single POST and returns the first candidate's text. Failures never raise:
they come back as a sentinel string plus an error kind.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from tldrgen.config import TLDRSettings
from tldrgen.models import GenerateContentRequest, GenerateContentResponse

log = structlog.get_logger()

TLDR_PREFIX = "###### TLDR: \n"

NO_RESPONSE_TEXT = "No valid response from Gemini"
REQUEST_FAILED_TEXT = "Error querying Gemini"

# Error kinds carried on SummaryResult
ERROR_NO_RESPONSE = "no_response"
ERROR_REQUEST_FAILED = "request_failed"


@dataclass(frozen=True)
class SummaryResult:
    """Summary text, or a sentinel string when error is set."""

    text: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def format_tldr(summary: str) -> str:
    """Prepend the level-6 TLDR heading to a summary."""
    return TLDR_PREFIX + summary


def build_prompt(prefix: str, document_text: str) -> str:
    return prefix + document_text


def _error_fields(e: Exception) -> dict[str, str]:
    """Log fields for a failed request; the body for status errors."""
    if isinstance(e, httpx.HTTPStatusError):
        detail = e.response.text or str(e)
    else:
        detail = str(e)
    return {"error_type": type(e).__name__, "error": detail}


class GeminiSummarizer:
    """Summarizer using the Gemini generateContent REST API.

    Settings are read through settings_provider on every call so edits to the
    key, endpoint or prompt apply to the next request. With no timeout set
    the request waits for the model as long as it takes.
    """

    def __init__(
        self,
        settings_provider: Callable[[], TLDRSettings],
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.settings_provider = settings_provider
        self.client = client
        self.timeout = timeout

    async def summarize(self, document_text: str) -> SummaryResult:
        """Summarize a document.

        Args:
            document_text: Full raw document text.

        Returns:
            SummaryResult with the model text, or a sentinel on failure.
        """
        settings = self.settings_provider()
        prompt = build_prompt(settings.prompt, document_text)
        return await self.query(settings.endpoint + settings.key, prompt)

    async def query(self, url: str, prompt: str) -> SummaryResult:
        """POST one generateContent request and extract the answer."""
        body = GenerateContentRequest.from_prompt(prompt).model_dump(exclude_none=True)

        log.debug("summarize_request", prompt_length=len(prompt))

        try:
            response = await self._post(url, body)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.error("summarize_request_failed", **_error_fields(e))
            return SummaryResult(REQUEST_FAILED_TEXT, ERROR_REQUEST_FAILED)

        try:
            parsed = GenerateContentResponse.model_validate(response.json())
        except (json.JSONDecodeError, ValueError, ValidationError):
            parsed = GenerateContentResponse()

        text = parsed.first_text()
        if not text:
            log.warning("summarize_no_valid_response", status_code=response.status_code)
            return SummaryResult(NO_RESPONSE_TEXT, ERROR_NO_RESPONSE)

        log.info("summarize_success", summary_length=len(text))
        return SummaryResult(text)

    async def _post(self, url: str, body: dict) -> httpx.Response:
        if self.client is not None:
            return await self.client.post(url, json=body)
        async with self.make_client() as client:
            return await client.post(url, json=body)

    def make_client(self, **kwargs) -> httpx.AsyncClient:
        """Client for one request: configured timeout, redirects followed."""
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, **kwargs)
