"""Root pytest configuration for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from qscripts.config import reset_config
from qscripts.languages.base import LanguageRegistry
from tests.utils import FakeLanguage

pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Keep user-level config and state out of the tests."""
    config_home = tmp_path_factory.mktemp("xdg")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("QSCRIPTS_LOG", raising=False)
    monkeypatch.delenv("QSCRIPTS_INTERVAL", raising=False)
    reset_config()
    yield config_home
    reset_config()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Resolved temporary directory (symlink-free, so paths compare equal)."""
    return tmp_path.resolve()


@pytest.fixture
def fake_language() -> FakeLanguage:
    return FakeLanguage()


@pytest.fixture
def registry(fake_language: FakeLanguage) -> LanguageRegistry:
    registry = LanguageRegistry()
    registry.register(fake_language)
    return registry
