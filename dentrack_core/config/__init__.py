# =============================================================================
# dentrack_core/config/__init__.py
# Configuration
# =============================================================================

from .settings import (
    APP_ID,
    AppSettings,
    SupabaseSettings,
    load_settings,
)

__all__ = ["APP_ID", "AppSettings", "SupabaseSettings", "load_settings"]
