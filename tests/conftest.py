"""Pytest configuration and shared fixtures."""

import logging
import os
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Isolate each test from STRIKE_* env vars and cached settings."""
    from src.settings import get_settings

    for key in list(os.environ):
        if key.startswith("STRIKE_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo configure_logging() side effects on the root logger."""
    from src.logging_config.config import DEFAULT_LOGGING_CONFIG, set_active_config

    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level

    yield

    root.handlers[:] = original_handlers
    root.setLevel(original_level)
    set_active_config(DEFAULT_LOGGING_CONFIG)
