"""
Pytest fixtures for zanai tests.
"""

import itertools
import os
from datetime import UTC, datetime, timedelta

import pytest

from zanai.core.config import ConfigManager, reset_config_manager
from zanai.core.store import MessageStore


@pytest.fixture(autouse=True)
def _clean_env():
    """Prevent environment variable pollution between tests."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Point the global config manager at a temp dir, never ~/.zanai."""
    for name in ("ZANAI_TOKEN", "ZANAI_API_URL", "ZANAI_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ZANAI_CONFIG_DIR", str(tmp_path / "config"))
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def config_mgr(tmp_path):
    """A ConfigManager backed by the same temp dir as the global one."""
    return ConfigManager(base_dir=tmp_path / "config")


@pytest.fixture
def clock():
    """A deterministic clock advancing one second per call."""
    start = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def store(clock):
    """An empty message store with a deterministic clock."""
    return MessageStore(clock=clock)


@pytest.fixture
def sample_history():
    """History payload as returned by the login endpoint."""
    return [
        {"from": "user", "text": "Hi there", "time": "2024-04-30T09:00:00.000Z"},
        {"from": "ai", "text": "Hello! How can I help?", "time": "2024-04-30T09:00:02.000Z"},
        {"from": "user", "text": "Tell me a joke", "time": "2024-04-30T09:01:00.000Z"},
    ]
