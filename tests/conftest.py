"""Shared fixtures for reclaim tests."""

import threading
from typing import Callable

import pytest

from reclaim.models import ProbeError, ProbeResult


class FakeRunner:
    """Probe runner that records calls and answers from a handler.

    The handler receives the argv and returns a ProbeResult, a string (treated
    as successful output) or None (treated as an execution failure).
    """

    def __init__(self, handler: Callable[[list[str]], object] | None = None) -> None:
        self.handler = handler or (lambda command: "")
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def __call__(self, command: list[str], timeout: float, max_output_bytes: int) -> ProbeResult:
        with self._lock:
            self.calls.append(list(command))
        answer = self.handler(command)
        if isinstance(answer, ProbeResult):
            return answer
        if answer is None:
            return ProbeResult.failure(command, ProbeError.EXECUTION_FAILED, "boom")
        return ProbeResult.success(command, str(answer))

    def calls_to(self, program: str) -> list[list[str]]:
        return [c for c in self.calls if c and c[0] == program]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def make_runner():
    """Build a FakeRunner around a handler."""
    return FakeRunner
