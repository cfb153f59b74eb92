"""Tests for QSettings-backed configuration."""

import logging
from pathlib import Path

import pytest

from dosmaps.settings import AppSettings, ConfigError, ConfigVersion


class TestSettingsInitialization:
    """Test settings initialization and defaults."""

    def test_defaults(self, settings: AppSettings) -> None:
        """Test a fresh profile starts with the documented defaults."""
        assert settings.console_logging is True
        assert settings.console_log_level == "INFO"
        assert settings.console_use_colors is True
        assert settings.file_logging is False
        assert settings.log_file_path == "logs/dosmaps.csv"
        assert settings.formats.force_open is False
        assert settings.formats.default_format == ""
        assert settings.formats.check_supplementals is True

    def test_version_recorded(self, settings: AppSettings) -> None:
        assert settings.version == ConfigVersion.CURRENT.value

    def test_ini_file_used(self, settings: AppSettings, tmp_path: Path) -> None:
        settings.sync()
        assert Path(settings.get_settings_file_path()) == tmp_path / "settings.ini"
        assert (tmp_path / "settings.ini").exists()

    def test_directory_path_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            AppSettings(path=tmp_path)


class TestSettingsPersistence:
    """Test values survive reopening and stay within their profile."""

    def test_values_persist(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.ini"
        first = AppSettings(profile="alpha", path=path)
        first.console_log_level = "debug"
        first.file_logging = True
        first.formats.default_format = "map-ddave"
        first.formats.force_open = True
        first.sync()

        second = AppSettings(profile="alpha", path=path)
        assert second.console_log_level == "DEBUG"
        assert second.file_logging is True
        assert second.formats.default_format == "map-ddave"
        assert second.formats.force_open is True

    def test_profiles_are_separate(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.ini"
        first = AppSettings(profile="alpha", path=path)
        first.formats.default_format = "map-cosmo"
        first.sync()
        assert AppSettings(profile="beta", path=path).formats.default_format == ""

    def test_unknown_version_is_migrated(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.ini"
        first = AppSettings(path=path)
        first.settings.setValue("app/version", "0.9")
        first.sync()
        assert AppSettings(path=path).version == ConfigVersion.CURRENT.value


class TestSettingsValidation:
    """Test level checks and configuration validation."""

    def test_invalid_level_kept(self, settings: AppSettings, caplog: pytest.LogCaptureFixture) -> None:
        """Test an unknown level name is ignored with a warning."""
        settings.console_log_level = "WARNING"
        with caplog.at_level(logging.WARNING):
            settings.console_log_level = "LOUD"
        assert settings.console_log_level == "WARNING"
        assert "Invalid console log level" in caplog.text

    def test_level_number(self, settings: AppSettings) -> None:
        settings.console_log_level = " error "
        assert settings.logging.console_level_number == logging.ERROR

    def test_default_is_valid(self, settings: AppSettings) -> None:
        result = settings.validate()
        assert result.is_valid
        assert result.errors == []

    def test_unknown_default_format(self, settings: AppSettings) -> None:
        settings.formats.default_format = "map-nope"
        result = settings.validate()
        assert not result.is_valid
        assert "map-nope" in result.errors[0]

    def test_force_open_warns(self, settings: AppSettings) -> None:
        settings.formats.force_open = True
        result = settings.validate()
        assert result.is_valid
        assert result.warnings
