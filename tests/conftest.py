"""Shared fixtures for dosmaps tests."""

from pathlib import Path

import pytest

from dosmaps.formats import FormatRegistry
from dosmaps.settings import AppSettings


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    """Settings stored in a throwaway INI file."""
    return AppSettings(profile="test", path=tmp_path / "settings.ini")


@pytest.fixture
def registry() -> FormatRegistry:
    """Registry with every built-in format and no settings."""
    return FormatRegistry.default()
