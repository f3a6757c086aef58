"""Mistral adapter (OpenAI-compatible chat completions)."""

from __future__ import annotations

__all__ = ["DEFAULT_MISTRAL_MODEL", "MISTRAL_MODELS", "MistralModel"]

from collections.abc import AsyncIterator, Sequence
from typing import Any

import structlog

from polyglot.core.errors import PolyglotError
from polyglot.core.types import ChatMessage, GenerateOptions, LLMResponse, ModelConfig
from polyglot.llm.http import HttpClient
from polyglot.llm.providers.base import (
    build_parameters,
    chat_completion_delta,
    parse_chat_completion,
    to_wire_messages,
    translate_error,
    validate_model,
)

logger = structlog.get_logger(__name__)

VENDOR = "mistral"
LABEL = "Mistral"

MISTRAL_MODELS: tuple[str, ...] = (
    "open-mistral-nemo",
    "mistral-small-latest",
    "mistral-medium-latest",
    "mistral-large-latest",
    "codestral-latest",
)
DEFAULT_MISTRAL_MODEL = "open-mistral-nemo"
DEFAULT_MISTRAL_URL = "https://api.mistral.ai/v1/chat/completions"


class MistralModel:
    """Adapter for the Mistral platform API."""

    def __init__(self, config: ModelConfig, *, http_client: HttpClient | None = None) -> None:
        self.config = config
        self.current_model = validate_model(
            LABEL, config.model or DEFAULT_MISTRAL_MODEL, MISTRAL_MODELS
        )
        self._http = http_client or HttpClient()
        logger.info("mistral_model_initialized", model=self.current_model)

    def set_model(self, model: str) -> None:
        self.current_model = validate_model(LABEL, model, MISTRAL_MODELS)
        logger.info("mistral_model_switched", model=self.current_model)

    @property
    def url(self) -> str:
        return self.config.api_url or DEFAULT_MISTRAL_URL

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def _body(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None,
        *,
        stream: bool = False,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.current_model,
            "messages": to_wire_messages(messages),
        }
        if stream:
            body["stream"] = True
        body.update(build_parameters(self.config, options))
        return body

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        logger.info("mistral_generating_response", model=self.current_model)
        try:
            data = await self._http.post(self.url, self._body(messages, options), self._headers())
            response = parse_chat_completion(data)
        except PolyglotError:
            raise
        except Exception as exc:
            raise translate_error(
                exc, vendor=VENDOR, label=LABEL, model=self.current_model
            ) from exc
        logger.info("mistral_response_received", model=self.current_model)
        return response

    async def generate_streaming_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        logger.info("mistral_stream_started", model=self.current_model)
        try:
            async for event in self._http.post_stream(
                self.url, self._body(messages, options, stream=True), self._headers()
            ):
                text = chat_completion_delta(event)
                if text:
                    yield text
        except PolyglotError:
            raise
        except Exception as exc:
            raise translate_error(
                exc, vendor=VENDOR, label=LABEL, model=self.current_model
            ) from exc
        logger.info("mistral_stream_completed", model=self.current_model)

    async def close(self) -> None:
        await self._http.close()
