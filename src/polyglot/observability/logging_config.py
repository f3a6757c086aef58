"""Structured logging configuration.

Every Polyglot module logs through ``structlog.get_logger(__name__)`` with
snake_case event names and keyword context. ``configure_polyglot_logging``
installs the processor chain: timestamp, level, static context, optional
filtering, and a JSON or console renderer.
"""

from __future__ import annotations

__all__ = [
    "LogFilter",
    "LogFormat",
    "LoggingConfig",
    "configure_polyglot_logging",
]

import logging
import sys
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel, ConfigDict, Field


class LogFormat(StrEnum):
    """Supported log output formats."""

    JSON = "json"
    CONSOLE = "console"


class LogFilter:
    """structlog processor that drops events by provider or level.

    An event must satisfy every configured criterion to pass.
    """

    _LEVELS: ClassVar[dict[str, int]] = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    def __init__(self) -> None:
        self._providers: set[str] | None = None
        self._min_level: int | None = None

    def by_provider(self, provider: str) -> LogFilter:
        """Only pass events whose ``provider`` is *provider* (repeatable)."""
        if self._providers is None:
            self._providers = set()
        self._providers.add(provider)
        return self

    def by_level(self, min_level: str) -> LogFilter:
        """Only pass events at or above *min_level*.

        Raises:
            ValueError: If *min_level* is not a known level name.
        """
        key = min_level.lower()
        if key not in self._LEVELS:
            msg = f"Unknown log level: {min_level!r}"
            raise ValueError(msg)
        self._min_level = self._LEVELS[key]
        return self

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        if self._providers is not None and event_dict.get("provider") not in self._providers:
            raise structlog.DropEvent
        if self._min_level is not None:
            level = self._LEVELS.get(method_name.lower(), logging.DEBUG)
            if level < self._min_level:
                raise structlog.DropEvent
        return event_dict


class LoggingConfig(BaseModel):
    """Settings for ``configure_polyglot_logging``.

    Attributes:
        level: Minimum level (e.g. ``"INFO"``).
        format: Renderer to use.
        output: ``"stdout"`` or ``"stderr"``.
        context: Key-value pairs added to every event.
        log_filter: Optional :class:`LogFilter`.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    format: LogFormat = LogFormat.JSON
    output: str = "stdout"
    context: dict[str, str] = Field(default_factory=dict)
    log_filter: LogFilter | None = None

    def add_context(self, key: str, value: str) -> LoggingConfig:
        """Add a key-value pair injected into every event. Returns self."""
        self.context[key] = value
        return self


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict["timestamp"] = datetime.now(tz=UTC).isoformat()
    return event_dict


def _add_log_level(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict["level"] = method_name
    return event_dict


def _make_context_injector(context: dict[str, str]) -> structlog.types.Processor:
    """Return a processor that adds *context* without overriding event keys."""

    def _inject(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return _inject


def _build_processor_chain(config: LoggingConfig) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [_add_timestamp, _add_log_level]
    if config.context:
        processors.append(_make_context_injector(dict(config.context)))
    if config.log_filter is not None:
        processors.append(config.log_filter)
    if config.format == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_polyglot_logging(config: LoggingConfig | None = None) -> LoggingConfig:
    """Install the structlog configuration described by *config*.

    Args:
        config: Logging settings; defaults to JSON on stdout at INFO.

    Returns:
        The configuration that was applied.
    """
    if config is None:
        config = LoggingConfig()

    level = getattr(logging, config.level.upper(), logging.INFO)
    stream = sys.stderr if config.output == "stderr" else sys.stdout

    logging.basicConfig(format="%(message)s", stream=stream, level=level, force=True)

    structlog.configure(
        processors=_build_processor_chain(config),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
    return config
