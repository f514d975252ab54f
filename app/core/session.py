"""Session state and the FastAPI dependencies built on top of it.

A :class:`Session` tracks who is acting (nobody, a guest, or a signed-in
user) and whether generated insights may be persisted. Sessions are plain
objects passed explicitly to the orchestration layer; the web layer keeps
one per browser inside a signed cookie.
"""
from __future__ import annotations

import logging
import secrets
from enum import Enum
from typing import Any, Optional

from fastapi import Cookie, Depends, HTTPException, status

from app.core.cookies import SESSION_COOKIE_NAME, load_session_payload

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    ANONYMOUS = "anonymous"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


class InvalidTransition(Exception):
    """Raised when an event is not allowed from the current session mode."""


class Session:
    """Per-client session state machine.

    Transitions:

    * anonymous -> authenticated (sign-in) or guest (enable guest)
    * guest -> authenticated (sign-in) or anonymous (sign-out)
    * authenticated -> anonymous (sign-out)

    Only authenticated sessions may write snapshots.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        principal_id: Optional[int] = None,
        mode: SessionMode = SessionMode.ANONYMOUS,
    ) -> None:
        if (mode is SessionMode.AUTHENTICATED) != (principal_id is not None):
            raise ValueError("principal_id must be set exactly when the session is authenticated")
        self.session_id = session_id or secrets.token_hex(8)
        self.principal_id = principal_id
        self.mode = mode

    def __repr__(self) -> str:
        return f"Session(session_id={self.session_id!r}, principal_id={self.principal_id!r}, mode={self.mode.value!r})"

    @property
    def is_guest(self) -> bool:
        return self.mode is SessionMode.GUEST

    @property
    def is_authenticated(self) -> bool:
        return self.mode is SessionMode.AUTHENTICATED

    @property
    def can_persist(self) -> bool:
        """Return True when generated results may be stored for this session."""
        return self.is_authenticated

    def sign_in(self, principal_id: int) -> None:
        """Move to the authenticated state; clears guest mode."""
        previous = self.mode
        self.principal_id = principal_id
        self.mode = SessionMode.AUTHENTICATED
        logger.debug("Session %s: %s -> authenticated", self.session_id, previous.value)

    def enable_guest(self) -> None:
        if self.is_authenticated:
            raise InvalidTransition("Sign out before switching to guest mode.")
        self.mode = SessionMode.GUEST
        logger.debug("Session %s: guest mode enabled, results will not be saved", self.session_id)

    def sign_out(self) -> None:
        """Return to anonymous. Signing out an anonymous session is a no-op."""
        if self.mode is SessionMode.ANONYMOUS:
            return
        previous = self.mode
        self.principal_id = None
        self.mode = SessionMode.ANONYMOUS
        logger.debug("Session %s: %s -> anonymous", self.session_id, previous.value)

    def on_identity_changed(self, principal_id: Optional[int]) -> None:
        """Listener for identity provider notifications."""
        if principal_id is None:
            self.sign_out()
        else:
            self.sign_in(principal_id)

    def to_payload(self) -> dict[str, Any]:
        return {
            "sid": self.session_id,
            "uid": self.principal_id,
            "mode": self.mode.value,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Session":
        return cls(
            session_id=payload.get("sid"),
            principal_id=payload.get("uid"),
            mode=SessionMode(payload.get("mode", SessionMode.ANONYMOUS.value)),
        )


async def get_session(
    session_value: Optional[str] = Cookie(None, alias=SESSION_COOKIE_NAME),
) -> Session:
    """Return the session stored in the cookie, or a fresh anonymous one."""
    payload = load_session_payload(session_value)
    if payload is None:
        return Session()
    try:
        return Session.from_payload(payload)
    except ValueError:
        logger.warning("Discarding inconsistent session cookie")
        return Session()


async def require_authenticated(session: Session = Depends(get_session)) -> Session:
    """Dependency for endpoints that read persisted snapshots."""
    if not session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session


__all__ = [
    "InvalidTransition",
    "Session",
    "SessionMode",
    "get_session",
    "require_authenticated",
]
