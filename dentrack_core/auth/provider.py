# =============================================================================
# dentrack_core/auth/provider.py
# Authentication Provider Backed by Supabase Auth
# =============================================================================
"""
Thin async adapter over ``supabase.AsyncClient.auth``.

The session manager only talks to the ``AuthProvider`` protocol, so tests
can pass a fake and other identity backends can be plugged in.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Protocol
import logging

logger = logging.getLogger(__name__)

DEFAULT_OAUTH_PROVIDER = "google"


@dataclass(frozen=True)
class AuthUser:
    """Identity returned by the provider once a session exists."""
    user_id: str
    email: Optional[str] = None


class AuthProvider(Protocol):
    """What the session manager needs from an identity backend."""

    async def restore_session(self) -> Optional[AuthUser]:
        """Return the persisted user, or None when there is no usable session."""
        ...

    async def start_oauth(self, redirect_to: Optional[str]) -> str:
        """Begin an OAuth flow; returns the URL the user must open."""
        ...

    async def complete_oauth(self, access_token: str, refresh_token: str) -> AuthUser:
        """Establish a session from tokens delivered by the redirect."""
        ...

    async def exchange_code(self, auth_code: str) -> AuthUser:
        """Establish a session from a PKCE authorization code."""
        ...

    async def sign_out(self) -> None:
        ...


def _user_from(payload: Any) -> Optional[AuthUser]:
    """Pull (id, email) out of a gotrue Session/AuthResponse/User object."""
    if payload is None:
        return None
    user = getattr(payload, "user", payload)
    user_id = getattr(user, "id", None)
    if not user_id:
        return None
    return AuthUser(user_id=str(user_id), email=getattr(user, "email", None))


class SupabaseAuthProvider:
    """
    ``AuthProvider`` over Supabase Auth.

    Usage:
        client = await acreate_client(url, key)
        provider = SupabaseAuthProvider(client, oauth_provider="google")
    """

    def __init__(self, client, oauth_provider: str = DEFAULT_OAUTH_PROVIDER):
        self.client = client
        self.oauth_provider = oauth_provider

    async def restore_session(self) -> Optional[AuthUser]:
        session = await self.client.auth.get_session()
        return _user_from(session)

    async def start_oauth(self, redirect_to: Optional[str]) -> str:
        credentials = {"provider": self.oauth_provider}
        if redirect_to:
            credentials["options"] = {"redirect_to": redirect_to}
        response = await self.client.auth.sign_in_with_oauth(credentials)
        url = getattr(response, "url", None)
        if not url:
            raise RuntimeError("Auth provider returned no redirect URL")
        return url

    async def complete_oauth(self, access_token: str, refresh_token: str) -> AuthUser:
        response = await self.client.auth.set_session(access_token, refresh_token)
        user = _user_from(response)
        if user is None:
            raise RuntimeError("Auth provider returned no user for the supplied tokens")
        return user

    async def exchange_code(self, auth_code: str) -> AuthUser:
        response = await self.client.auth.exchange_code_for_session({"auth_code": auth_code})
        user = _user_from(response)
        if user is None:
            raise RuntimeError("Auth provider returned no user for the authorization code")
        return user

    async def sign_out(self) -> None:
        await self.client.auth.sign_out()
