# =============================================================================
# dentrack_core/auth/session_manager.py
# Session State Machine (Guest / Authenticating / Authenticated)
# =============================================================================
"""
SessionManager - tracks whether a user is signed in and announces changes.

States:
    UNAUTHENTICATED --sign_in()--> AUTHENTICATING --callback--> AUTHENTICATED
    AUTHENTICATING --sign_in()--> AUTHENTICATING (abandoned attempt restarted)
    AUTHENTICATED --sign_out()--> UNAUTHENTICATED

The OAuth flow finishes outside the process (browser redirect or deep link).
The redirect is fed back through ``handle_callback(url)``; a duplicate
delivery is ignored, so listeners see exactly one SIGNED_IN per session.
Any failure on the way returns the state to UNAUTHENTICATED and raises
``SignInError`` to the caller.
"""

from __future__ import annotations
import asyncio
import inspect
from typing import Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit
import logging

from dentrack_core.auth.provider import AuthProvider, AuthUser
from dentrack_core.errors import SignInError
from dentrack_core.models import Session, SessionEvent, SessionStatus

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionEvent, Session], Union[None, Awaitable[None]]]


def parse_callback_url(url: str) -> Dict[str, str]:
    """
    Extract auth parameters from a redirect / deep-link URL.

    Implicit-flow tokens arrive in the fragment
    (``app://cb#access_token=..&refresh_token=..``); PKCE codes and errors
    arrive in the query string. Fragment values win on conflict.
    """
    parts = urlsplit(url)
    params: Dict[str, str] = {}
    for section in (parts.query, parts.fragment):
        for key, values in parse_qs(section).items():
            if values:
                params[key] = values[0]
    return params


class SessionManager:
    """
    Explicit session state machine over an ``AuthProvider``.

    Usage:
        manager = SessionManager(provider, redirect_url="com.denttrack.app://auth")
        manager.register_listener(coordinator.on_session_event)
        await manager.initialize()
        url = await manager.sign_in()      # open url in a browser
        ...
        await manager.handle_callback(deep_link_url)
    """

    def __init__(self, provider: Optional[AuthProvider], redirect_url: Optional[str] = None):
        """
        Args:
            provider: Identity backend; None means remote accounts are not
                configured and sign-in always fails
            redirect_url: Where the OAuth provider sends the user back
        """
        self._provider = provider
        self.redirect_url = redirect_url
        self._session = Session.unauthenticated()
        self._listeners: List[SessionListener] = []
        self._lock = asyncio.Lock()
        self._completed = asyncio.Event()
        self._last_error: Optional[SignInError] = None
        self._initialized = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def session(self) -> Session:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id

    @property
    def is_configured(self) -> bool:
        """False when no identity backend is available (guest-only install)."""
        return self._provider is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> Session:
        """Restore a persisted session without user interaction."""
        if self._initialized:
            return self._session
        self._initialized = True

        if self._provider is None:
            logger.info("No auth provider configured; running in guest mode")
            return self._session

        try:
            user = await self._provider.restore_session()
        except Exception as e:
            logger.warning(f"Session restore failed, continuing as guest: {e}")
            user = None

        if user is None:
            logger.info("No stored session; running in guest mode")
            return self._session

        async with self._lock:
            if self._session.is_authenticated:
                return self._session
            session = self._establish(user)
        await self._notify(SessionEvent.SIGNED_IN, session)
        return session

    async def sign_in(self) -> str:
        """
        Start the OAuth redirect flow.

        Calling it again while a previous attempt is still AUTHENTICATING
        (the browser was closed and no callback will come) restarts the flow.

        Returns:
            URL the UI must open (full-page redirect on web, external
            browser on device)

        Raises:
            SignInError: already signed in, no provider configured, or
                the provider refused to start the flow
        """
        async with self._lock:
            if self._session.is_authenticated:
                raise SignInError("Already signed in", reason="invalid_state")
            if self._provider is None:
                raise SignInError(
                    "Cloud sync is not configured", reason="not_configured", recoverable=False
                )
            if self._session.status is SessionStatus.AUTHENTICATING:
                logger.info("Restarting sign-in; previous attempt abandoned")

            self._session = Session.authenticating()
            self._completed.clear()
            self._last_error = None
            try:
                url = await self._provider.start_oauth(self.redirect_url)
            except Exception as e:
                error = SignInError(f"Could not start sign-in: {e}", reason="provider_error")
                session = self._fail(error)
            else:
                error = None

        if error is not None:
            await self._notify(SessionEvent.SIGN_IN_FAILED, session)
            raise error

        logger.info("Sign-in started; waiting for redirect")
        return url

    async def handle_callback(self, url: str) -> bool:
        """
        Complete sign-in from the redirect / deep-link URL.

        Returns:
            True if this call established the session, False if the session
            already existed (duplicate delivery)

        Raises:
            SignInError: the URL carries an error, no usable credentials,
                or the provider rejected them
        """
        params = parse_callback_url(url)

        if "error" in params or "error_description" in params:
            reason = "cancelled" if params.get("error") == "access_denied" else "provider_error"
            error = SignInError(
                params.get("error_description") or params.get("error") or "Sign-in failed",
                reason=reason,
            )
            return await self._reject(error)

        if params.get("access_token") and params.get("refresh_token"):
            return await self.complete_sign_in(params["access_token"], params["refresh_token"])
        if params.get("code"):
            return await self._complete(lambda: self._provider.exchange_code(params["code"]))

        return await self._reject(
            SignInError("Callback URL carried no credentials", reason="invalid_callback")
        )

    async def complete_sign_in(self, access_token: str, refresh_token: str) -> bool:
        """Complete sign-in from tokens already extracted by the caller."""
        return await self._complete(
            lambda: self._provider.complete_oauth(access_token, refresh_token)
        )

    async def _complete(self, establish: Callable[[], Awaitable[AuthUser]]) -> bool:
        async with self._lock:
            if self._session.is_authenticated:
                logger.debug("Ignoring duplicate sign-in callback")
                return False
            if self._provider is None:
                error = SignInError(
                    "Cloud sync is not configured", reason="not_configured", recoverable=False
                )
                session = self._fail(error)
            else:
                try:
                    user = await establish()
                except Exception as e:
                    error = SignInError(f"Could not complete sign-in: {e}", reason="provider_error")
                    session = self._fail(error)
                else:
                    error = None
                    session = self._establish(user)

        if error is not None:
            await self._notify(SessionEvent.SIGN_IN_FAILED, session)
            raise error
        await self._notify(SessionEvent.SIGNED_IN, session)
        return True

    async def _reject(self, error: SignInError) -> bool:
        """Fail the pending sign-in with ``error``; a no-op once signed in."""
        async with self._lock:
            if self._session.is_authenticated:
                return False
            session = self._fail(error)
        await self._notify(SessionEvent.SIGN_IN_FAILED, session)
        raise error

    async def wait_for_callback(self, timeout: float = 300.0) -> Session:
        """
        Wait for the redirect to complete the sign-in started by ``sign_in``.

        Raises:
            SignInError: the flow failed, was cancelled, or timed out
        """
        if self._session.is_authenticated:
            return self._session
        if self._session.status is not SessionStatus.AUTHENTICATING:
            raise self._last_error or SignInError("No sign-in in progress", reason="invalid_state")

        try:
            await asyncio.wait_for(self._completed.wait(), timeout)
        except asyncio.TimeoutError:
            if self._session.status is SessionStatus.AUTHENTICATING:
                await self._reject(
                    SignInError(f"Sign-in not completed within {timeout:.0f}s", reason="timeout")
                )

        if self._session.is_authenticated:
            return self._session
        raise self._last_error or SignInError("Sign-in failed", reason="failed")

    async def cancel_sign_in(self) -> None:
        """Abandon an in-progress sign-in (user closed the browser)."""
        async with self._lock:
            if self._session.status is not SessionStatus.AUTHENTICATING:
                return
            session = self._fail(SignInError("Sign-in cancelled", reason="cancelled"))
        await self._notify(SessionEvent.SIGN_IN_FAILED, session)

    async def sign_out(self) -> None:
        """
        Clear the session. Local data is not touched here; provider errors are
        logged and the local session is cleared anyway.
        """
        if self._session.status is SessionStatus.AUTHENTICATING:
            await self.cancel_sign_in()
            return

        async with self._lock:
            if not self._session.is_authenticated:
                logger.debug("sign_out called without a session")
                return

            try:
                await self._provider.sign_out()
            except Exception as e:
                logger.warning(f"Remote sign-out failed, clearing local session anyway: {e}")

            previous = self._session
            self._session = Session.unauthenticated()
            session = self._session
        logger.info(f"Signed out user {previous.user_id}")
        await self._notify(SessionEvent.SIGNED_OUT, session)

    # =========================================================================
    # TRANSITIONS
    # =========================================================================
    # Called with the lock held; the caller notifies listeners after
    # releasing it, so a listener may call back into the manager.

    def _establish(self, user: AuthUser) -> Session:
        self._session = Session.authenticated(user.user_id, user.email)
        self._completed.set()
        logger.info(f"Signed in as {user.email or user.user_id}")
        return self._session

    def _fail(self, error: SignInError) -> Session:
        self._session = Session.unauthenticated()
        self._last_error = error
        self._completed.set()
        logger.warning(f"Sign-in failed ({error.reason}): {error.message}")
        return self._session

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def register_listener(self, listener: SessionListener) -> None:
        """Register a (sync or async) callback for session transitions."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unregister_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _notify(self, event: SessionEvent, session: Session) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in session listener: {e}")
