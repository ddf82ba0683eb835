# =============================================================================
# dentrack_core/config/settings.py
# Application Settings from Streamlit Secrets and Environment
# =============================================================================
"""
Settings loader.

Lookup order for every value:
1. ``.streamlit/secrets.toml`` (``[supabase]`` and ``[dentrack]`` tables)
2. Environment variables (``.env`` is loaded through python-dotenv)
3. Built-in defaults

Missing Supabase credentials are not an error: the app runs guest-only and
every remote call is skipped.

Expected secrets layout:
    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"
    redirect_url = "com.denttrack.app://auth-callback"
    oauth_provider = "google"

    [dentrack]
    cache_path = "local_data/dentrack.db"
    log_level = "INFO"
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import streamlit as st
from dotenv import load_dotenv

from dentrack_core.auth.provider import DEFAULT_OAUTH_PROVIDER
from dentrack_core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Capacitor application id; native builds receive the OAuth redirect on this scheme
APP_ID = "com.denttrack.app"

DEFAULT_CACHE_PATH = Path("local_data") / "dentrack.db"
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SupabaseSettings:
    """Credentials and OAuth options for the Supabase project."""
    url: str
    key: str
    redirect_url: Optional[str] = None
    oauth_provider: str = DEFAULT_OAUTH_PROVIDER

    def __repr__(self) -> str:
        # Keep the API key out of logs
        return (
            f"SupabaseSettings(url={self.url!r}, key='***', "
            f"redirect_url={self.redirect_url!r}, oauth_provider={self.oauth_provider!r})"
        )


@dataclass(frozen=True)
class AppSettings:
    supabase: Optional[SupabaseSettings] = None
    cache_path: Path = DEFAULT_CACHE_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    log_to_file: bool = True

    @property
    def remote_enabled(self) -> bool:
        return self.supabase is not None


SECRET_SECTIONS = ("supabase", "dentrack")


def _streamlit_secrets() -> Mapping[str, Any]:
    """
    The DentTrack sections of Streamlit secrets as plain dicts.

    Other top-level secrets (API keys of unrelated features) are left alone;
    {} when no secrets file exists.
    """
    try:
        sections = {name: st.secrets.get(name) for name in SECRET_SECTIONS}
    except Exception as e:
        logger.debug(f"Streamlit secrets unavailable: {e}")
        return {}
    return {name: dict(section) for name, section in sections.items() if isinstance(section, Mapping)}


def _section(secrets: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = secrets.get(name)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        logger.warning(f"Ignoring secrets entry {name!r}: expected a [{name}] table")
        return {}
    return section


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def load_settings(
    secrets: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppSettings:
    """
    Build ``AppSettings`` from secrets, environment and defaults.

    Args:
        secrets: Secrets mapping; read from ``st.secrets`` when None
        environ: Environment mapping; ``os.environ`` (after ``load_dotenv``)
            when None

    Raises:
        ConfigurationError: a value is present but invalid
    """
    if environ is None:
        load_dotenv()
        environ = os.environ
    if secrets is None:
        secrets = _streamlit_secrets()

    supabase_secrets = _section(secrets, "supabase")
    app_secrets = _section(secrets, "dentrack")

    url = _first(supabase_secrets.get("url"), environ.get("SUPABASE_URL"))
    key = _first(supabase_secrets.get("key"), environ.get("SUPABASE_KEY"))

    supabase = None
    if url and key:
        if not url.startswith(("https://", "http://")):
            raise ConfigurationError(
                f"Supabase URL must be an http(s) URL, got {url!r}",
                config_key="supabase.url",
                expected_type="url",
            )
        supabase = SupabaseSettings(
            url=url,
            key=key,
            redirect_url=_first(
                supabase_secrets.get("redirect_url"), environ.get("DENTRACK_REDIRECT_URL")
            ),
            oauth_provider=_first(
                supabase_secrets.get("oauth_provider"), environ.get("DENTRACK_OAUTH_PROVIDER")
            ) or DEFAULT_OAUTH_PROVIDER,
        )
    elif url or key:
        logger.warning("Incomplete Supabase credentials (need url and key); cloud sync disabled")
    else:
        logger.info("No Supabase credentials configured; running guest-only")

    log_level = (
        _first(app_secrets.get("log_level"), environ.get("DENTRACK_LOG_LEVEL")) or DEFAULT_LOG_LEVEL
    ).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level {log_level!r}",
            config_key="DENTRACK_LOG_LEVEL",
            expected_type=" | ".join(sorted(_LOG_LEVELS)),
        )

    cache_path = _first(app_secrets.get("cache_path"), environ.get("DENTRACK_CACHE_PATH"))
    log_to_file = _first(
        str(app_secrets["log_to_file"]) if "log_to_file" in app_secrets else None,
        environ.get("DENTRACK_LOG_TO_FILE"),
    )

    return AppSettings(
        supabase=supabase,
        cache_path=Path(cache_path) if cache_path else DEFAULT_CACHE_PATH,
        log_level=log_level,
        log_to_file=(log_to_file or "true").lower() not in _FALSE_VALUES,
    )
