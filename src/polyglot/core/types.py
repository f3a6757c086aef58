"""Shared type definitions for the Polyglot client."""

from __future__ import annotations

__all__ = [
    "ChatMessage",
    "ChatRole",
    "GenerateOptions",
    "LLMResponse",
    "ModelConfig",
    "TokenUsage",
    "coerce_options",
]

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# --- Chat Messages ---


class ChatRole(StrEnum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A single turn of a conversation. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str


# --- Generation Options ---


class GenerateOptions(BaseModel):
    """Provider-tunable generation parameters.

    The common knobs are typed fields. Any other keyword is kept as an
    extra field and forwarded to the provider verbatim.
    """

    model_config = ConfigDict(extra="allow")

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the options as a wire dict, dropping unset fields."""
        return self.model_dump(exclude_none=True)


def coerce_options(options: GenerateOptions | dict[str, Any] | None) -> GenerateOptions | None:
    """Accept options as a model, a plain dict, or ``None``."""
    if options is None or isinstance(options, GenerateOptions):
        return options
    return GenerateOptions.model_validate(options)


# --- Responses ---


class TokenUsage(BaseModel):
    """Token accounting reported by a provider."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Canonical response returned by every provider adapter."""

    model_config = ConfigDict(frozen=True)

    content: str
    usage: TokenUsage | None = None


# --- Provider Configuration ---


class ModelConfig(BaseModel):
    """Credentials and defaults for one provider adapter."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    api_url: str | None = None
    model: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
