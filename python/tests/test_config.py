"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from folio.config import Environment, Settings, clear_settings_cache, get_settings


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "FOLIO_ENV": "test",
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "service-key",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettingsDefaults:
    def test_defaults(self):
        s = _make_settings()
        assert s.folio_env == Environment.TEST
        assert s.epub_bucket == "epubs"
        assert s.manifest_bucket == "readium-manifests"
        assert s.max_epub_bytes == 50 * 1024 * 1024
        assert s.storage_timeout_s == 60

    def test_overrides_accepted(self):
        s = _make_settings(EPUB_BUCKET="uploads", MAX_EPUB_BYTES=1024, STORAGE_TIMEOUT_S=5)
        assert s.epub_bucket == "uploads"
        assert s.max_epub_bytes == 1024
        assert s.storage_timeout_s == 5

    @pytest.mark.parametrize("name", ["MAX_EPUB_BYTES", "STORAGE_TIMEOUT_S"])
    def test_non_positive_limits_rejected(self, name: str):
        with pytest.raises(ValidationError, match=name):
            _make_settings(**{name: 0})

    def test_invalid_environment_rejected(self):
        with pytest.raises(ValidationError):
            _make_settings(FOLIO_ENV="production-ish")


class TestStorageConfigured:
    def test_configured_when_both_present(self):
        s = _make_settings()
        assert s.storage_configured is True
        assert s.missing_storage_settings == []

    def test_missing_values_reported(self):
        s = Settings(FOLIO_ENV="test")
        assert s.storage_configured is False
        assert s.missing_storage_settings == ["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"]

    def test_missing_key_only(self):
        s = Settings(SUPABASE_URL="https://project.supabase.co")
        assert s.missing_storage_settings == ["SUPABASE_SERVICE_ROLE_KEY"]


class TestGetSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MANIFEST_BUCKET", "published")
        clear_settings_cache()

        assert get_settings().manifest_bucket == "published"

    def test_cached_until_cleared(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("EPUB_BUCKET", "changed")
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings().epub_bucket == "changed"
