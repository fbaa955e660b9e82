"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

_ENV_VARS = [
    "WEBHOOK_BRIDGE_CONFIG",
    "DEEPSEEK_API_KEY",
    "DEEPSEEK_BASE_URL",
    "DEEPSEEK_MODEL",
    "WEBHOOK_SECRET",
    "HOST",
    "PORT",
]


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """The shipped config/default.yaml."""
    return project_root / "config" / "default.yaml"


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Ensure tests run with a clean environment (no leftover vars, no .env)."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("WEBHOOK_BRIDGE__"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


def _make_payload(query: str = "Hola", history=None, session: str = "projects/p/agent/sessions/s1"):
    """Build a minimal platform webhook request."""
    contexts = []
    if history is not None:
        contexts.append(
            {
                "name": f"{session}/contexts/deepseek_session",
                "lifespanCount": 19,
                "parameters": {"history": history},
            }
        )
    return {
        "session": session,
        "queryResult": {"queryText": query, "outputContexts": contexts},
    }


def _make_history(n: int):
    """n alternating user/assistant turns, oldest first."""
    roles = ("user", "assistant")
    return [{"role": roles[i % 2], "content": f"m{i}"} for i in range(n)]


@pytest.fixture
def make_payload():
    return _make_payload


@pytest.fixture
def make_history():
    return _make_history
