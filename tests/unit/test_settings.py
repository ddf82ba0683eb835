# =============================================================================
# tests/unit/test_settings.py
# Unit Tests for Settings Loading
# =============================================================================

from pathlib import Path

import pytest

from dentrack_core.config import load_settings
from dentrack_core.config.settings import DEFAULT_CACHE_PATH
from dentrack_core.errors import ConfigurationError


SECRETS = {
    "supabase": {
        "url": "https://demo.supabase.co",
        "key": "anon-key",
        "redirect_url": "com.denttrack.app://auth-callback",
    },
}


class TestLoadSettings:
    def test_secrets_take_precedence(self):
        settings = load_settings(
            secrets=SECRETS,
            environ={"SUPABASE_URL": "https://other.supabase.co", "SUPABASE_KEY": "other"},
        )

        assert settings.remote_enabled
        assert settings.supabase.url == "https://demo.supabase.co"
        assert settings.supabase.redirect_url == "com.denttrack.app://auth-callback"
        assert settings.supabase.oauth_provider == "google"

    def test_environment_fallback(self):
        settings = load_settings(secrets={}, environ={
            "SUPABASE_URL": "https://env.supabase.co",
            "SUPABASE_KEY": "env-key",
            "DENTRACK_CACHE_PATH": "/tmp/dentrack-test.db",
            "DENTRACK_LOG_LEVEL": "debug",
            "DENTRACK_LOG_TO_FILE": "false",
        })

        assert settings.supabase.key == "env-key"
        assert settings.cache_path == Path("/tmp/dentrack-test.db")
        assert settings.log_level == "DEBUG"
        assert settings.log_to_file is False

    def test_missing_credentials_mean_guest_only(self):
        settings = load_settings(secrets={}, environ={})

        assert settings.supabase is None
        assert not settings.remote_enabled
        assert settings.cache_path == DEFAULT_CACHE_PATH
        assert settings.log_to_file is True

    def test_partial_credentials_disable_sync(self, caplog):
        settings = load_settings(secrets={}, environ={"SUPABASE_URL": "https://env.supabase.co"})

        assert settings.supabase is None
        assert "Incomplete Supabase credentials" in caplog.text

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError):
            load_settings(secrets={"supabase": {"url": "demo.supabase.co", "key": "k"}}, environ={})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError):
            load_settings(secrets={}, environ={"DENTRACK_LOG_LEVEL": "LOUD"})

    def test_key_hidden_from_repr(self):
        settings = load_settings(secrets=SECRETS, environ={})
        assert "anon-key" not in repr(settings.supabase)

    def test_reads_streamlit_secrets_by_default(self, mock_streamlit):
        mock_streamlit.secrets = SECRETS

        settings = load_settings(environ={})

        assert settings.supabase.url == "https://demo.supabase.co"

    def test_unrelated_top_level_secrets_are_ignored(self, mock_streamlit):
        mock_streamlit.secrets = {"GEMINI_API_KEY": "abc", **SECRETS}

        settings = load_settings(environ={})

        assert settings.remote_enabled
        assert settings.supabase.key == "anon-key"

    def test_scalar_section_is_ignored(self, caplog):
        settings = load_settings(secrets={"supabase": "not-a-table"}, environ={
            "SUPABASE_URL": "https://env.supabase.co",
            "SUPABASE_KEY": "env-key",
        })

        assert settings.supabase.url == "https://env.supabase.co"
        assert "expected a [supabase] table" in caplog.text
