"""Provider adapters: one class per vendor plus the shared capability protocols."""

from polyglot.llm.providers.base import LLMModel, StreamingLLMModel, SwitchableModel
from polyglot.llm.providers.chatgpt import ChatGPTModel
from polyglot.llm.providers.claude import ClaudeModel
from polyglot.llm.providers.gemini import GeminiModel
from polyglot.llm.providers.mistral import MistralModel

__all__ = [
    "ChatGPTModel",
    "ClaudeModel",
    "GeminiModel",
    "LLMModel",
    "MistralModel",
    "StreamingLLMModel",
    "SwitchableModel",
]
