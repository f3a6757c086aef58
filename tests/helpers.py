"""Shared test helpers for Polyglot tests."""

from __future__ import annotations

import json
from typing import Any

import httpx


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    """httpx handler that records requests and replays queued responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            return httpx.Response(500, json={"error": "no response queued"})
        return self.responses.pop(0)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last_request.content)


def sse_body(*events: str) -> bytes:
    """Encode ``data:`` lines as a server-sent-event body."""
    return "".join(f"data: {event}\n\n" for event in events).encode()
