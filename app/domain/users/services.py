"""Email/password identity provider backed by the users table."""
from __future__ import annotations

import logging
from typing import Callable, Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[int]], None]

# bcrypt only looks at the first 72 bytes of the secret.
_BCRYPT_MAX_BYTES = 72


class IdentityError(Exception):
    """Base class for sign-up and sign-in failures."""


class EmailAlreadyRegistered(IdentityError):
    pass


class InvalidCredentials(IdentityError):
    pass


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class IdentityProvider:
    """Sign users up, in and out, and notify subscribers when identity changes.

    Subscribers receive the new principal id, or ``None`` after sign-out.
    One provider is created per request so listeners never leak between
    clients.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db
        self._listeners: list[IdentityListener] = []
        self.current_user: User | None = None

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, principal_id: Optional[int]) -> None:
        for listener in list(self._listeners):
            listener(principal_id)

    async def sign_up(self, email: str, password: str) -> User:
        email = _normalize_email(email)
        existing = await self._find_by_email(email)
        if existing is not None:
            raise EmailAlreadyRegistered(email)

        user = User(email=email, password_hash=hash_password(password))
        self._db.add(user)
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            # Concurrent sign-up with the same email won the race.
            raise EmailAlreadyRegistered(email) from None
        await self._db.refresh(user)

        logger.info("Registered user id=%s", user.id)
        self.current_user = user
        self._notify(user.id)
        return user

    async def sign_in(self, email: str, password: str) -> User:
        user = await self._find_by_email(_normalize_email(email))
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        self.current_user = user
        self._notify(user.id)
        return user

    def sign_out(self) -> None:
        self.current_user = None
        self._notify(None)

    async def get_user(self, user_id: int) -> User | None:
        return await self._db.get(User, user_id)

    async def _find_by_email(self, email: str) -> User | None:
        result = await self._db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


__all__ = [
    "EmailAlreadyRegistered",
    "IdentityError",
    "IdentityProvider",
    "InvalidCredentials",
    "hash_password",
    "verify_password",
]
