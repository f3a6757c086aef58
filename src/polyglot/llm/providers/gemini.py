"""Google Gemini adapter (``generateContent`` REST API)."""

from __future__ import annotations

__all__ = ["DEFAULT_GEMINI_MODEL", "GEMINI_MODELS", "GeminiModel"]

from collections.abc import AsyncIterator, Sequence
from typing import Any

import structlog

from polyglot.core.errors import PolyglotError
from polyglot.core.types import (
    ChatMessage,
    ChatRole,
    GenerateOptions,
    LLMResponse,
    ModelConfig,
    TokenUsage,
)
from polyglot.llm.http import HttpClient
from polyglot.llm.providers.base import build_parameters, translate_error, validate_model

logger = structlog.get_logger(__name__)

VENDOR = "gemini"
LABEL = "Gemini"

GEMINI_MODELS: tuple[str, ...] = ("gemini-1.5-pro", "gemini-1.5-flash", "gemini-1.0-pro")
DEFAULT_GEMINI_MODEL = "gemini-1.5-pro"
_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
_GENERATE_SUFFIX = ":generateContent"
_STREAM_SUFFIX = ":streamGenerateContent?alt=sse"


def _to_contents(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Gemini calls the assistant ``model`` and wraps text in ``parts``."""
    return [
        {
            "role": "model" if message.role == ChatRole.ASSISTANT else str(message.role),
            "parts": [{"text": message.content}],
        }
        for message in messages
    ]


def _candidate_text(data: dict[str, Any]) -> str | None:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return None
    return parts[0].get("text") or None


class GeminiModel:
    """Adapter for Gemini models, authenticated with ``x-goog-api-key``."""

    def __init__(self, config: ModelConfig, *, http_client: HttpClient | None = None) -> None:
        self.config = config
        self.current_model = validate_model(
            LABEL, config.model or DEFAULT_GEMINI_MODEL, GEMINI_MODELS
        )
        self._http = http_client or HttpClient()
        logger.info("gemini_model_initialized", model=self.current_model)

    def set_model(self, model: str) -> None:
        self.current_model = validate_model(LABEL, model, GEMINI_MODELS)
        logger.info("gemini_model_switched", model=self.current_model)

    @property
    def url(self) -> str:
        return self.config.api_url or f"{_GEMINI_BASE_URL}/{self.current_model}{_GENERATE_SUFFIX}"

    @property
    def stream_url(self) -> str:
        """Streaming endpoint.

        A configured ``api_url`` ending in ``:generateContent`` is switched to
        its ``:streamGenerateContent?alt=sse`` twin; any other configured URL
        is used as-is for both calls.
        """
        api_url = self.config.api_url
        if api_url:
            if api_url.endswith(_GENERATE_SUFFIX):
                return api_url.removesuffix(_GENERATE_SUFFIX) + _STREAM_SUFFIX
            return api_url
        return f"{_GEMINI_BASE_URL}/{self.current_model}{_STREAM_SUFFIX}"

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.config.api_key}

    def _body(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"contents": _to_contents(messages)}
        body.update(build_parameters(self.config, options))
        return body

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        logger.info("gemini_generating_response", model=self.current_model)
        try:
            data = await self._http.post(self.url, self._body(messages, options), self._headers())
            content = data["candidates"][0]["content"]["parts"][0]["text"]
            usage = None
            metadata = data.get("usageMetadata")
            if metadata:
                usage = TokenUsage(
                    prompt_tokens=metadata.get("promptTokenCount", 0),
                    completion_tokens=metadata.get("candidatesTokenCount", 0),
                    total_tokens=metadata.get("totalTokenCount", 0),
                )
        except PolyglotError:
            raise
        except Exception as exc:
            raise translate_error(
                exc, vendor=VENDOR, label=LABEL, model=self.current_model
            ) from exc
        logger.info("gemini_response_received", model=self.current_model)
        return LLMResponse(content=content, usage=usage)

    async def generate_streaming_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        logger.info("gemini_stream_started", model=self.current_model)
        try:
            async for event in self._http.post_stream(
                self.stream_url, self._body(messages, options), self._headers()
            ):
                text = _candidate_text(event)
                if text:
                    yield text
        except PolyglotError:
            raise
        except Exception as exc:
            raise translate_error(
                exc, vendor=VENDOR, label=LABEL, model=self.current_model
            ) from exc
        logger.info("gemini_stream_completed", model=self.current_model)

    async def close(self) -> None:
        await self._http.close()
