"""Shared FastAPI dependencies for the JSON routes."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.domain.users.services import IdentityProvider


async def get_identity_provider(db: AsyncSession = Depends(get_db)) -> IdentityProvider:
    """One provider per request, so identity listeners stay request-local."""
    return IdentityProvider(db)


async def get_generation_credential(
    user_key: Optional[str] = Header(None, alias="X-OpenAI-Key"),
) -> str:
    """Prefer a user-supplied key; fall back to the configured one."""
    if user_key and user_key.strip():
        return user_key.strip()
    return settings.OPENAI_API_KEY
