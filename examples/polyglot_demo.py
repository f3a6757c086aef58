"""Demonstration of the Polyglot client.

This script shows how to:
1. Register a provider with a rate limiter
2. Add a plugin and a middleware
3. Generate a response (and hit the cache on the second call)
4. Stream a response
5. Switch models and read token usage

It runs offline with ``MockLLMModel``. Set ``POLYGLOT_ANTHROPIC__API_KEY``
(or another provider key) to also query a real provider.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from polyglot import (
    ChatMessage,
    ChatRole,
    LLMResponse,
    LoggerPlugin,
    MockLLMModel,
    Polyglot,
    TokenBucketRateLimiter,
    create_polyglot,
)
from polyglot.core.middleware import NextHandler
from polyglot.observability import LogFormat, LoggingConfig, configure_polyglot_logging


async def shout(messages: Sequence[ChatMessage], next_handler: NextHandler) -> LLMResponse:
    """Middleware that upper-cases every reply."""
    response = await next_handler(messages)
    return response.model_copy(update={"content": response.content.upper()})


async def main() -> None:
    """Run the demonstration."""
    configure_polyglot_logging(LoggingConfig(level="WARNING", format=LogFormat.CONSOLE))

    print("=" * 70)
    print("Polyglot Demonstration")
    print("=" * 70)
    print()

    # Step 1: Register a provider
    print("1. Registering the mock provider...")
    polyglot = Polyglot()
    mock = MockLLMModel()
    mock.add_response("quantum", "Quantum computers use qubits.")
    polyglot.add_model("mock", mock, TokenBucketRateLimiter(max_tokens=1_000, refill_rate=100))
    print(f"   Registered: {polyglot.registered_models}")
    print()

    # Step 2: Plugins and middleware
    print("2. Adding LoggerPlugin and an upper-casing middleware...")
    polyglot.add_plugin(LoggerPlugin())
    polyglot.use(shout)
    print()

    # Step 3: Generate (twice, second call is served from the cache)
    messages = [ChatMessage(role=ChatRole.USER, content="Explain quantum computing briefly.")]
    print("3. Generating a response...")
    print(f"   Estimated prompt tokens: {polyglot.estimate_message_tokens(messages)}")
    response = await polyglot.generate_response("mock", messages)
    print(f"   Reply: {response.content}")
    await polyglot.generate_response("mock", messages)
    print(f"   Provider calls after two requests: {mock.call_count}")
    print()

    # Step 4: Stream
    print("4. Streaming a response...")
    print("   ", end="")
    async for chunk in polyglot.generate_streaming_response("mock", messages):
        print(chunk, end="", flush=True)
    print()
    print()

    # Step 5: Switch models and read usage
    print("5. Switching model and reading usage...")
    polyglot.change_model("mock", "mock-large")
    print(f"   Current model: {mock.current_model}")
    print(f"   Total token usage: {polyglot.get_total_token_usage()}")
    print()

    # Optional: real providers configured through the environment
    configured = create_polyglot()
    if configured.registered_models:
        provider = configured.registered_models[0]
        print(f"6. Querying configured provider {provider!r}...")
        reply = await configured.generate_response(provider, messages)
        print(f"   Reply: {reply.content}")
    await configured.close()

    print("=" * 70)
    print("Demonstration complete")
    print("=" * 70)


if __name__ == "__main__":
    asyncio.run(main())
