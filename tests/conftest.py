from __future__ import annotations

import subprocess
from typing import Any, Callable, List, Optional, Sequence

import pytest


class FakeRunner:
    """Stand-in for ``subprocess.run`` that records every command line."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self._responses: List[Any] = []

    def respond(
        self,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        raises: Optional[BaseException] = None,
    ) -> "FakeRunner":
        self._responses.append(raises or (returncode, stdout, stderr))
        return self

    def __call__(self, cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        if not self._responses:
            raise AssertionError(f"Unexpected process spawn: {cmd}")
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, BaseException):
            raise response
        returncode, stdout, stderr = response
        return subprocess.CompletedProcess(list(cmd), returncode, stdout, stderr)


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner


@pytest.fixture
def no_spawn(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    def _fail(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("a process was spawned")

    monkeypatch.setattr(subprocess, "run", _fail)
    return _fail
