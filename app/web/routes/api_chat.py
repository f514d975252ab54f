"""Financial literacy chat backed by the generation endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.domain.insights.schemas import ChatAnswer, ChatQuestion
from app.services.llm_client import MissingCredential, answer_financial_question
from app.web.dependencies import get_generation_credential

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat", response_model=ChatAnswer)
async def ask_question(
    payload: ChatQuestion,
    credential: str = Depends(get_generation_credential),
):
    """Answer a question. Answers are never stored, whatever the session mode."""
    try:
        answer = await answer_financial_question(payload.question, credential)
    except MissingCredential as exc:
        logger.info("Chat skipped: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service is currently unavailable.",
        ) from exc
    return ChatAnswer(answer=answer)
