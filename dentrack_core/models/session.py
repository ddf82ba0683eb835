# =============================================================================
# dentrack_core/models/session.py
# Authentication Session States
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionStatus(Enum):
    """Authentication lifecycle states."""
    UNAUTHENTICATED = "unauthenticated"  # Guest mode
    AUTHENTICATING = "authenticating"    # OAuth redirect in progress
    AUTHENTICATED = "authenticated"      # Remote account available


class SessionEvent(Enum):
    """Transitions observable by session listeners."""
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    SIGN_IN_FAILED = "sign_in_failed"


@dataclass(frozen=True)
class Session:
    """
    Tagged session value.

    Only AUTHENTICATED sessions carry a user id; build instances through
    the constructors below.
    """
    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    user_id: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def unauthenticated(cls) -> Session:
        return cls(SessionStatus.UNAUTHENTICATED)

    @classmethod
    def authenticating(cls) -> Session:
        return cls(SessionStatus.AUTHENTICATING)

    @classmethod
    def authenticated(cls, user_id: str, email: Optional[str] = None) -> Session:
        if not user_id:
            raise ValueError("Authenticated session requires a user id")
        return cls(SessionStatus.AUTHENTICATED, user_id=user_id, email=email)

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def is_guest(self) -> bool:
        return self.status is not SessionStatus.AUTHENTICATED
