"""Tests for the Polyglot command-line client."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog

from polyglot.config.settings import PolyglotSettings
from polyglot.core.errors import ProviderAPIError
from polyglot.core.polyglot import Polyglot
from polyglot.llm.mock import MockLLMModel
from polyglot.main import (
    MOCK_PROVIDER,
    _build_messages,
    _create_polyglot,
    _register_demo_responses,
    cli,
    parse_args,
    run,
)
from polyglot.observability.logging_config import LoggingConfig, configure_polyglot_logging
from polyglot.plugins.logger import LoggerPlugin


@pytest.fixture(autouse=True)
def _logs_to_stderr() -> Iterator[None]:
    """Keep stdout for the reply, as the CLI does."""
    configure_polyglot_logging(LoggingConfig(level="DEBUG", output="stderr"))
    yield
    structlog.reset_defaults()


def _mock_polyglot() -> tuple[Polyglot, MockLLMModel]:
    polyglot = Polyglot(retry_backoff_seconds=0.0)
    mock = MockLLMModel()
    _register_demo_responses(mock)
    polyglot.add_model(MOCK_PROVIDER, mock)
    return polyglot, mock


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        args = parse_args(["hi"])
        assert args.prompt == "hi"
        assert args.provider is None
        assert args.system is None
        assert args.model is None
        assert args.temperature is None
        assert args.max_tokens is None
        assert args.stream is False
        assert args.mock_llm is False
        assert args.config is None
        assert args.log_level is None

    def test_all_flags(self) -> None:
        args = parse_args(
            [
                "hi",
                "--provider", "claude",
                "--system", "be brief",
                "--model", "claude-3-haiku-20240307",
                "--temperature", "0.5",
                "--max-tokens", "64",
                "--stream",
                "--mock-llm",
                "--config", "/path/to/.env",
                "--log-level", "DEBUG",
            ]
        )
        assert args.provider == "claude"
        assert args.system == "be brief"
        assert args.model == "claude-3-haiku-20240307"
        assert args.temperature == 0.5
        assert args.max_tokens == 64
        assert args.stream is True
        assert args.mock_llm is True
        assert args.config == "/path/to/.env"
        assert args.log_level == "DEBUG"

    def test_prompt_is_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["hi", "--log-level", "LOUD"])


class TestBuildMessages:
    def test_prompt_only(self) -> None:
        messages = _build_messages(parse_args(["hi"]))
        assert [(str(m.role), m.content) for m in messages] == [("user", "hi")]

    def test_with_system(self) -> None:
        messages = _build_messages(parse_args(["hi", "--system", "be brief"]))
        assert [str(m.role) for m in messages] == ["system", "user"]


class TestCreatePolyglot:
    def test_mock_llm_registers_mock(self) -> None:
        settings = PolyglotSettings(_env_file=None)
        polyglot = _create_polyglot(parse_args(["hi", "--mock-llm"]), settings)
        assert polyglot.registered_models == [MOCK_PROVIDER]
        assert any(isinstance(p, LoggerPlugin) for p in polyglot._plugins)

    def test_without_mock_uses_settings(self) -> None:
        settings = PolyglotSettings(_env_file=None)
        polyglot = _create_polyglot(parse_args(["hi"]), settings)
        assert polyglot.registered_models == []


class TestRun:
    @pytest.mark.asyncio
    async def test_prints_reply(self, capsys: pytest.CaptureFixture[str]) -> None:
        polyglot, mock = _mock_polyglot()
        code = await run(parse_args(["hello there", "--temperature", "0.2"]), polyglot)
        assert code == 0
        assert capsys.readouterr().out == "Hello! How can I help you today?\n"
        options = mock.options_history[-1]
        assert options is not None
        assert options.to_payload() == {"temperature": 0.2}

    @pytest.mark.asyncio
    async def test_streams_reply(self, capsys: pytest.CaptureFixture[str]) -> None:
        polyglot, _ = _mock_polyglot()
        code = await run(parse_args(["quantum?", "--stream"]), polyglot)
        assert code == 0
        assert capsys.readouterr().out == (
            "Quantum computers use qubits, which can hold superpositions.\n"
        )

    @pytest.mark.asyncio
    async def test_switches_model(self) -> None:
        polyglot, mock = _mock_polyglot()
        await run(parse_args(["hi", "--model", "mock-large"]), polyglot)
        assert mock.current_model == "mock-large"

    @pytest.mark.asyncio
    async def test_error_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        polyglot, mock = _mock_polyglot()
        mock.queue_errors(ProviderAPIError("bad request", vendor="mock", status_code=400))
        code = await run(parse_args(["hi"]), polyglot)
        assert code == 1
        assert "MOCK_API_ERROR: bad request" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_unknown_provider(self, capsys: pytest.CaptureFixture[str]) -> None:
        polyglot, _ = _mock_polyglot()
        code = await run(parse_args(["hi", "--provider", "nope"]), polyglot)
        assert code == 1
        assert "MODEL_NOT_FOUND" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_no_providers(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = await run(parse_args(["hi"]), Polyglot())
        assert code == 2
        assert "No providers configured" in capsys.readouterr().err


class TestCli:
    def test_mock_round_trip(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli(["hello", "--mock-llm", "--log-level", "ERROR"])
        assert exc_info.value.code == 0
        assert "Hello! How can I help you today?" in capsys.readouterr().out

    def test_invalid_configured_model(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("POLYGLOT_ANTHROPIC__API_KEY", "sk-test")
        monkeypatch.setenv("POLYGLOT_ANTHROPIC__MODEL", "gpt-4o")
        with pytest.raises(SystemExit) as exc_info:
            cli(["hello", "--log-level", "ERROR"])
        assert exc_info.value.code == 1
        assert "INVALID_MODEL: Invalid Claude model: gpt-4o" in capsys.readouterr().err
