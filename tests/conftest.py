# tests/conftest.py
from __future__ import annotations

import io
from typing import Any, Callable, List

import pytest
from rich.console import Console

from detector_pipeline.utils.pipeline_config import DEFAULTS, EffectiveConfig, resolve_config


class RecordingExecutor:
    """Stands in for subprocess: records each argument vector and returns a scripted exit status."""

    def __init__(self, returncodes: Callable[[List[str]], int] | None = None) -> None:
        self.calls: List[List[str]] = []
        self._returncodes = returncodes or (lambda command: 0)

    def __call__(self, command: List[str]) -> int:
        self.calls.append(list(command))
        return self._returncodes(command)


@pytest.fixture
def make_config() -> Callable[..., EffectiveConfig]:
    def _make(**overrides: Any) -> EffectiveConfig:
        return resolve_config(DEFAULTS, {}, overrides)

    return _make


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def make_executor() -> Callable[..., RecordingExecutor]:
    return RecordingExecutor


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)
