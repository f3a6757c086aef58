"""Polyglot command-line client.

Sends one prompt to a configured provider and prints the reply, either in
full or streamed chunk by chunk.
"""

from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys

import structlog

from polyglot.config.settings import PolyglotSettings
from polyglot.core.errors import PolyglotError
from polyglot.core.polyglot import Polyglot
from polyglot.core.types import ChatMessage, ChatRole, GenerateOptions
from polyglot.factory import create_polyglot
from polyglot.llm.mock import MockLLMModel
from polyglot.observability.logging_config import (
    LogFormat,
    LoggingConfig,
    configure_polyglot_logging,
)
from polyglot.plugins.logger import LoggerPlugin

logger = structlog.get_logger()

MOCK_PROVIDER = "mock"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Parsed arguments namespace.
    """
    try:
        from importlib.metadata import version as _pkg_version

        _version = _pkg_version("polyglot-llm")
    except Exception:
        _version = "0.0.0-dev"

    parser = argparse.ArgumentParser(
        prog="polyglot",
        description="Send a prompt to any configured LLM provider",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_version}",
    )
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        help="Registered provider name (default: first configured)",
    )
    parser.add_argument(
        "--system",
        type=str,
        default=None,
        help="Optional system message sent before the prompt",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Switch the provider to this model before sending",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=None,
        help="Sampling temperature",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=None,
        help="Maximum completion tokens",
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Stream the reply chunk by chunk",
    )
    parser.add_argument(
        "--mock-llm",
        action="store_true",
        help="Use MockLLMModel instead of a real provider",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (.env)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: from settings)",
    )
    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> PolyglotSettings:
    if args.config:
        if not pathlib.Path(args.config).exists():
            logger.warning("config_file_not_found", path=args.config)
        return PolyglotSettings(_env_file=args.config)
    return PolyglotSettings()


def _configure_logging(settings: PolyglotSettings, level: str | None) -> None:
    """Send structlog output to stderr so stdout carries only the reply."""
    configure_polyglot_logging(
        LoggingConfig(
            level=level or settings.log.level,
            format=LogFormat(settings.log.format),
            output="stderr",
        )
    )


def _register_demo_responses(mock: MockLLMModel) -> None:
    """Prime the mock with a few canned replies."""
    mock.add_response("hello", "Hello! How can I help you today?")
    mock.add_response("quantum", "Quantum computers use qubits, which can hold superpositions.")
    mock.set_default_response("This is a mock reply from Polyglot.")


def _create_polyglot(args: argparse.Namespace, settings: PolyglotSettings) -> Polyglot:
    """Create the orchestrator based on CLI flags."""
    if args.mock_llm:
        polyglot = Polyglot(
            max_attempts=settings.retry.max_attempts,
            retry_backoff_seconds=settings.retry.backoff_seconds,
        )
        mock = MockLLMModel()
        _register_demo_responses(mock)
        polyglot.add_model(MOCK_PROVIDER, mock)
    else:
        polyglot = create_polyglot(settings)
    polyglot.add_plugin(LoggerPlugin())
    return polyglot


def _build_messages(args: argparse.Namespace) -> list[ChatMessage]:
    messages = []
    if args.system:
        messages.append(ChatMessage(role=ChatRole.SYSTEM, content=args.system))
    messages.append(ChatMessage(role=ChatRole.USER, content=args.prompt))
    return messages


async def run(args: argparse.Namespace, polyglot: Polyglot) -> int:
    """Send the prompt and print the reply.

    Returns:
        Process exit code.
    """
    provider = args.provider
    if provider is None:
        if not polyglot.registered_models:
            print("No providers configured; set POLYGLOT_<PROVIDER>__API_KEY", file=sys.stderr)
            return 2
        provider = polyglot.registered_models[0]

    options = GenerateOptions(temperature=args.temperature, max_tokens=args.max_tokens)
    messages = _build_messages(args)

    try:
        if args.model:
            polyglot.change_model(provider, args.model)
        if args.stream:
            async for chunk in polyglot.generate_streaming_response(provider, messages, options):
                print(chunk, end="", flush=True)
            print()
        else:
            response = await polyglot.generate_response(provider, messages, options)
            print(response.content)
            logger.info("total_token_usage", total=polyglot.get_total_token_usage())
    except PolyglotError as exc:
        logger.error("request_failed", provider=provider, code=exc.code, error=exc.message)
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await polyglot.close()
    return 0


def cli(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    settings = _load_settings(args)
    _configure_logging(settings, args.log_level)
    try:
        polyglot = _create_polyglot(args, settings)
    except PolyglotError as exc:
        logger.error("polyglot_setup_failed", code=exc.code, error=exc.message)
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        sys.exit(1)
    sys.exit(asyncio.run(run(args, polyglot)))


if __name__ == "__main__":
    cli()
