"""Async client for an OpenAI-compatible chat completion endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from .config import DEFAULT_BASE_URL, DEFAULT_MODEL, BridgeSettings

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Lo siento, no pude generar respuesta."


# -----------------------------
# Results
# -----------------------------

@dataclass(frozen=True)
class CompletionReply:
    text: str


@dataclass(frozen=True)
class CompletionFailure:
    error: str


CompletionResult = Union[CompletionReply, CompletionFailure]


def extract_reply_text(data: Any) -> str:
    """Return ``choices[0].message.content`` or FALLBACK_REPLY if absent/empty."""
    if not isinstance(data, dict):
        return FALLBACK_REPLY
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return FALLBACK_REPLY
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content:
        return FALLBACK_REPLY
    return content


def _describe_failure(exc: Exception) -> str:
    # Surface what the upstream said, if it said anything.
    if isinstance(exc, httpx.HTTPStatusError):
        body = exc.response.text[:500]
        return f"HTTP {exc.response.status_code}: {body}"
    return f"{type(exc).__name__}: {exc}"


# -----------------------------
# Client
# -----------------------------

class CompletionClient:
    """Thin wrapper around ``POST /chat/completions`` with a pooled httpx client.

    ``complete`` never raises; every failure comes back as CompletionFailure.
    """

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = httpx.Timeout(timeout)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def complete(self, messages: List[Dict[str, Any]]) -> CompletionResult:
        """Send one chat completion request and return the reply text."""
        payload = {"model": self.model, "messages": messages}
        try:
            resp = await self._client().post("chat/completions", json=payload)
            resp.raise_for_status()
            return CompletionReply(text=extract_reply_text(resp.json()))
        except Exception as e:
            detail = _describe_failure(e)
            logger.error("Completion request failed (model=%s): %s", self.model, detail)
            return CompletionFailure(error=detail)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None


# -----------------------------
# Convenience factory
# -----------------------------

def create_from_settings(settings: BridgeSettings) -> CompletionClient:
    """Create a CompletionClient from loaded settings."""
    if not settings.api_key:
        logger.warning("No completion API key configured; upstream calls will likely be rejected.")
    return CompletionClient(
        api_key=settings.api_key,
        base_url=settings.base_url,
        model=settings.model,
        timeout=settings.timeout,
    )
