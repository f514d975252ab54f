"""Pydantic schemas for sign-up and sign-in payloads."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Credentials(BaseModel):
    """Email and password pair sent to the identity endpoints."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class SessionOut(BaseModel):
    """Public view of the caller's session."""

    mode: str
    user_id: int | None = None
    email: str | None = None
    saves_results: bool
