"""Root conftest — shared test configuration."""

import os

import pytest

from binder_planner.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Tests never see a developer's BINDER_* environment or a cached Settings."""
    for name in list(os.environ):
        if name.startswith("BINDER_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
