"""Utilities for working with HTTP cookies."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Response
from itsdangerous import BadSignature, URLSafeSerializer

from app.core.config import settings

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "finsight_session"
_serializer = URLSafeSerializer(settings.SECRET_KEY, salt="session-cookie")


def dump_session_payload(payload: dict[str, Any]) -> str:
    """Sign the session payload for storage in a cookie."""
    return _serializer.dumps(payload)


def load_session_payload(raw_value: str | None) -> dict[str, Any] | None:
    """Return the decoded payload, or None for a missing or tampered cookie."""
    if not raw_value:
        return None
    try:
        data = _serializer.loads(raw_value)
    except BadSignature:
        logger.warning("Rejected session cookie with invalid signature")
        return None
    if not isinstance(data, dict):
        return None
    return data


def set_session_cookie(response: Response, payload: dict[str, Any]) -> None:
    """Set the session cookie with secure defaults."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=dump_session_payload(payload),
        httponly=True,
        samesite="lax",
        secure=settings.ENV.lower() == "production",
    )
