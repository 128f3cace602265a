"""
Pytest fixtures and configuration for the ThinkGate test suite.
"""

import os
from pathlib import Path
from typing import Callable, List

import pytest

# Ensure thinkgate package is importable
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from thinkgate.config import ThinkGateConfig, reset_config
from thinkgate.controller import IterationController
from thinkgate.evidence import EvidenceDraft, EvidenceStore
from thinkgate.gate import ActionGate


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Sleep replacement that only records the requested pauses."""

    def __init__(self):
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Isolate every test from THINKGATE_* variables and the cached config."""
    for key in list(os.environ):
        if key.startswith("THINKGATE_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> ThinkGateConfig:
    return ThinkGateConfig()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def store(config, clock, sleeper) -> EvidenceStore:
    return EvidenceStore(config=config, clock=clock, sleep=sleeper)


@pytest.fixture
def gate(store, config, clock) -> ActionGate:
    return ActionGate(store, config=config, clock=clock)


@pytest.fixture
def controller(store, gate, config, sleeper) -> IterationController:
    return IterationController(store, gate, config=config, sleep=sleeper)


@pytest.fixture
def fill_store() -> Callable[..., None]:
    """Add ``count`` entries of the given action and confidence to a store."""
    def _fill(target: EvidenceStore, count: int, confidence: float, action_kind: str = "read_file") -> None:
        for index in range(count):
            target.add_entry(EvidenceDraft(
                action_kind=action_kind,
                query=f"file_{index}.py",
                result=f"contents of file {index}",
                confidence=confidence,
                file_path=f"file_{index}.py",
            ))
    return _fill


@pytest.fixture
def evidence_file(tmp_path) -> Path:
    """Recorded observations with one repeated read."""
    path = tmp_path / "evidence.json"
    path.write_text(
        """[
  {"action": "list_files", "params": {"path": "src"}, "result": "src/\\n  auth.py\\n  routes.py"},
  {"action": "read_file", "params": {"path": "pyproject.toml"}, "result": "[project]\\nname = 'app'"},
  {"action": "search_files", "params": {"regex": "login"}, "result": "auth.py: def login()"},
  {"action": "read_file", "params": {"path": "src/auth.py"}, "result": "def login(user):\\n    return token"},
  {"action": "read_file", "params": {"path": "src/auth.py"}, "result": "served from cache"}
]""",
        encoding="utf-8",
    )
    return path
