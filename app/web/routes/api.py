"""JSON API router."""
from __future__ import annotations

from fastapi import APIRouter

from app.web.routes import api_chat
from app.web.routes import api_insights

router = APIRouter()

router.include_router(api_insights.router, prefix="/insights", tags=["insights"])
router.include_router(api_chat.router, tags=["chat"])
