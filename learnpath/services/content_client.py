"""Client for the external content-generation service (Gemini REST API).

The service is treated as opaque: we send a prompt, get back free-form
text that should contain a JSON document, possibly wrapped in Markdown
code fences.  Callers strip the fences with ``strip_code_fences`` and
decide for themselves what a parse failure means.

No retries are attempted.  A missing key or a non-OK answer is raised to
the caller as MissingCredential / UpstreamError.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Protocol

import httpx

from learnpath.core.config import SETTINGS, Settings
from learnpath.core.errors import MissingCredential, UpstreamError
from learnpath.core.metrics import CONTENT_LATENCY, CONTENT_REQUESTS

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


class ContentClient(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        operation: str,
        generation_config: dict[str, Any] | None = None,
    ) -> str: ...


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = _FENCE_OPEN.sub("", text, count=1)
    text = _FENCE_CLOSE.sub("", text, count=1)
    return text.strip()


class GeminiClient:
    """Calls ``models/{model}:generateContent`` and returns the reply text."""

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> GeminiClient:
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.gemini_timeout_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def generate(
        self,
        prompt: str,
        *,
        operation: str,
        generation_config: dict[str, Any] | None = None,
    ) -> str:
        if not self._api_key:
            CONTENT_REQUESTS.labels(operation=operation, outcome="no_credential").inc()
            raise MissingCredential("Gemini API key not configured")

        url = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config or {"temperature": 0.7},
        }

        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as exc:
            CONTENT_REQUESTS.labels(operation=operation, outcome="transport_error").inc()
            logger.error("Gemini request failed operation=%s: %s", operation, exc)
            raise UpstreamError(f"Gemini API request failed: {exc}") from None
        finally:
            CONTENT_LATENCY.labels(operation=operation).observe(time.monotonic() - start)

        if resp.is_error:
            CONTENT_REQUESTS.labels(operation=operation, outcome="http_error").inc()
            logger.error(
                "Gemini API error operation=%s status=%d body=%s",
                operation,
                resp.status_code,
                resp.text,
            )
            raise UpstreamError(
                f"Gemini API error: {resp.status_code} {resp.reason_phrase} - {resp.text}"
            )

        CONTENT_REQUESTS.labels(operation=operation, outcome="ok").inc()
        return _extract_text(resp)


def _extract_text(resp: httpx.Response) -> str:
    """Pull candidates[0].content.parts[0].text; empty string when absent."""
    try:
        data = resp.json()
        return data["candidates"][0]["content"]["parts"][0]["text"] or ""
    except (ValueError, KeyError, IndexError, TypeError):
        logger.warning("Gemini reply had no candidate text")
        return ""


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

content_client: ContentClient = GeminiClient.from_settings(SETTINGS)


def get_content_client() -> ContentClient:
    """FastAPI dependency; tests swap it via app.dependency_overrides."""
    return content_client
