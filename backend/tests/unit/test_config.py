"""Tests for engine settings."""

import pytest

from ghg_engine.core.config import Settings, get_settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.factor_cache_ttl_seconds == 3600
    assert settings.default_reporting_standard == "GHG_PROTOCOL"
    assert settings.default_grid_region == "US Average"
    assert "DE" in settings.country_level_grid_region_codes
    assert "US" not in settings.country_level_grid_region_codes


def test_country_codes_from_csv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNTRY_LEVEL_GRID_REGIONS", " de, fr ,,nl ")

    assert Settings().country_level_grid_region_codes == ["DE", "FR", "NL"]


def test_country_codes_from_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNTRY_LEVEL_GRID_REGIONS", '["se", "NO"]')

    assert Settings().country_level_grid_region_codes == ["SE", "NO"]


def test_empty_country_codes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNTRY_LEVEL_GRID_REGIONS", "")

    assert Settings().country_level_grid_region_codes == []


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()


def test_invalid_standard_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEFAULT_REPORTING_STANDARD", "MADE_UP")

    with pytest.raises(ValueError):
        Settings()


def test_unused_environment_keys_are_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROJECT_NAME", "Something Else")
    monkeypatch.setenv("VERSION", "9.9.9")

    settings = Settings()

    assert "project_name" not in Settings.model_fields
    assert "version" not in Settings.model_fields
    assert not hasattr(settings, "project_name")
