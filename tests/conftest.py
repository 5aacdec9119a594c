"""Test configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_on_path() -> None:
    """Add the project root to sys.path so ``import testx`` works uninstalled."""
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


_ensure_project_on_path()

from testx.settings import get_settings  # noqa: E402

TESTX_ENV = [
    "TESTX_DECORATOR",
    "TESTX_DEFAULT_SETUP",
    "TESTX_INNER_SUFFIX",
    "TESTX_RESULT_NAME",
    "TESTX_STRICT_ENTRIES",
    "TESTX_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for key in TESTX_ENV:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def rewrite_settings():
    return get_settings().rewrite
