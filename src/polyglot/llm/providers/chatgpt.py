"""OpenAI chat completions adapter backed by the OpenAI SDK."""

from __future__ import annotations

__all__ = ["DEFAULT_GPT_MODEL", "GPT_MODELS", "ChatGPTModel"]

from collections.abc import AsyncIterator, Sequence
from typing import Any

import structlog
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from polyglot.core.errors import NetworkError, PolyglotError, ProviderAPIError
from polyglot.core.types import ChatMessage, GenerateOptions, LLMResponse, ModelConfig, TokenUsage
from polyglot.llm.providers.base import (
    build_parameters,
    error_for_status,
    log_provider_error,
    to_wire_messages,
    validate_model,
)

logger = structlog.get_logger(__name__)

VENDOR = "chatgpt"
LABEL = "ChatGPT"

GPT_MODELS: tuple[str, ...] = ("gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo")
DEFAULT_GPT_MODEL = "gpt-4o"

# Keyword arguments accepted by ``chat.completions.create``; anything else
# travels in ``extra_body``.
_SDK_PARAMETERS = frozenset(
    {
        "temperature",
        "max_tokens",
        "top_p",
        "frequency_penalty",
        "presence_penalty",
        "stop",
        "n",
        "seed",
        "user",
        "logit_bias",
        "response_format",
        "tools",
        "tool_choice",
    }
)

_COMPLETIONS_SUFFIX = "/chat/completions"


def _base_url(api_url: str | None) -> str | None:
    """Turn a full ``.../chat/completions`` endpoint into an SDK base URL."""
    if api_url is None:
        return None
    url = api_url.rstrip("/")
    if url.endswith(_COMPLETIONS_SUFFIX):
        url = url[: -len(_COMPLETIONS_SUFFIX)]
    return url


class ChatGPTModel:
    """Adapter for the OpenAI chat completions API.

    The SDK's own retries are disabled; retrying is left to the orchestrator.
    """

    def __init__(
        self,
        config: ModelConfig,
        *,
        client: AsyncOpenAI | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialise the adapter.

        Args:
            config: API key, optional endpoint override, model, and defaults.
            client: Optional pre-built ``AsyncOpenAI`` client.
            timeout_seconds: Request timeout when creating a new client.

        Raises:
            InvalidModelError: If the configured model is not supported.
        """
        self.config = config
        self.current_model = validate_model(LABEL, config.model or DEFAULT_GPT_MODEL, GPT_MODELS)
        self._client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=_base_url(config.api_url),
            timeout=timeout_seconds,
            max_retries=0,
        )
        logger.info("chatgpt_model_initialized", model=self.current_model)

    def set_model(self, model: str) -> None:
        self.current_model = validate_model(LABEL, model, GPT_MODELS)
        logger.info("chatgpt_model_switched", model=self.current_model)

    def _request_kwargs(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None,
    ) -> dict[str, Any]:
        params = build_parameters(self.config, options)
        kwargs: dict[str, Any] = {
            "model": self.current_model,
            "messages": to_wire_messages(messages),
        }
        extra = {}
        for key, value in params.items():
            if key in _SDK_PARAMETERS:
                kwargs[key] = value
            else:
                extra[key] = value
        if extra:
            kwargs["extra_body"] = extra
        return kwargs

    def _translate(self, exc: Exception) -> PolyglotError:
        if isinstance(exc, APIStatusError):
            error = error_for_status(
                exc.status_code,
                f"{LABEL} API error: {exc.message}",
                vendor=VENDOR,
                model=self.current_model,
                retry_after=exc.response.headers.get("retry-after"),
            )
        elif isinstance(exc, APIConnectionError):
            error = NetworkError(
                f"{LABEL} API network error: {exc}", vendor=VENDOR, model=self.current_model
            )
        else:
            error = ProviderAPIError(
                f"{LABEL} API error: {exc}", vendor=VENDOR, model=self.current_model
            )
        log_provider_error(error)
        return error

    async def generate_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Raises:
            ProviderError: Classified by HTTP status; see ``providers.base``.
        """
        logger.info("chatgpt_generating_response", model=self.current_model)
        try:
            response = await self._client.chat.completions.create(
                **self._request_kwargs(messages, options)
            )
            content = response.choices[0].message.content or ""
            usage = None
            if response.usage:
                usage = TokenUsage(
                    prompt_tokens=response.usage.prompt_tokens,
                    completion_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens,
                )
        except PolyglotError:
            raise
        except Exception as exc:
            raise self._translate(exc) from exc

        logger.info("chatgpt_response_received", model=self.current_model)
        return LLMResponse(content=content, usage=usage)

    async def generate_streaming_response(
        self,
        messages: Sequence[ChatMessage],
        options: GenerateOptions | None = None,
    ) -> AsyncIterator[str]:
        """Yield content deltas of a streamed chat completion."""
        logger.info("chatgpt_stream_started", model=self.current_model)
        try:
            stream = await self._client.chat.completions.create(
                **self._request_kwargs(messages, options), stream=True
            )
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except PolyglotError:
            raise
        except Exception as exc:
            raise self._translate(exc) from exc
        logger.info("chatgpt_stream_completed", model=self.current_model)

    async def close(self) -> None:
        await self._client.close()
