"""
Authentication module for DentTrack.
Session state machine over Supabase Auth OAuth (web redirect or deep link).
"""

from .provider import (
    AuthProvider,
    AuthUser,
    SupabaseAuthProvider,
    DEFAULT_OAUTH_PROVIDER,
)
from .session_manager import (
    SessionManager,
    parse_callback_url,
)

__all__ = [
    "AuthProvider",
    "AuthUser",
    "SupabaseAuthProvider",
    "DEFAULT_OAUTH_PROVIDER",
    "SessionManager",
    "parse_callback_url",
]
