"""Pytest configuration for shared package tests."""

from collections.abc import Generator

import pytest

from shared.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Drop cached settings so environment patches take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
