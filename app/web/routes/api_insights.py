"""Routes for AI-generated financial insights."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cookies import set_session_cookie
from app.core.database import get_db
from app.core.session import Session, get_session, require_authenticated
from app.domain.insights.repository import Snapshot, SnapshotRepository, StorageUnavailable
from app.domain.insights.schemas import (
    BudgetRequest,
    GenerationOut,
    InsightKind,
    InsightRequest,
    InvestmentRequest,
    ScoreRequest,
    SnapshotOut,
)
from app.domain.insights.services import GenerationFailed, GenerationInProgress, generate_insight
from app.web.dependencies import get_generation_credential

logger = logging.getLogger(__name__)

GENERATION_FAILED_MESSAGE = "Could not generate the insight right now. Please try again."
SERVICE_UNAVAILABLE_MESSAGE = "AI service is currently unavailable."

router = APIRouter()


def _snapshot_out(snapshot: Snapshot) -> SnapshotOut:
    return SnapshotOut(
        id=snapshot.id,
        kind=snapshot.kind,
        created_at=snapshot.created_at,
        inputs=snapshot.inputs,
        result=snapshot.result.model_dump(mode="json"),
    )


async def _generate(
    kind: InsightKind,
    payload: InsightRequest,
    *,
    db: AsyncSession,
    response: Response,
    session: Session,
    credential: str,
) -> GenerationOut:
    # Pin anonymous callers to one session id so in-flight claims apply to them.
    set_session_cookie(response, session.to_payload())
    try:
        generated = await generate_insight(db, session, kind, payload, credential=credential)
    except GenerationInProgress as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except GenerationFailed as exc:
        if exc.reason == "missing_credential":
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=SERVICE_UNAVAILABLE_MESSAGE,
            ) from exc
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=GENERATION_FAILED_MESSAGE,
        ) from exc
    except StorageUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The insight was generated but could not be saved. Please try again.",
        ) from exc

    return GenerationOut(
        kind=generated.kind,
        result=generated.result.model_dump(mode="json"),
        saved=generated.saved,
        snapshot_id=generated.snapshot_id,
    )


@router.post("/budget", response_model=GenerationOut)
async def generate_budget(
    payload: BudgetRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(get_session),
    credential: str = Depends(get_generation_credential),
):
    """Generate a budget split from income and essential expenses."""
    return await _generate(
        InsightKind.BUDGET, payload, db=db, response=response, session=session, credential=credential
    )


@router.post("/investment_strategy", response_model=GenerationOut)
async def generate_investment_strategy(
    payload: InvestmentRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(get_session),
    credential: str = Depends(get_generation_credential),
):
    """Generate an investment allocation for the given risk tolerance."""
    return await _generate(
        InsightKind.INVESTMENT_STRATEGY, payload, db=db, response=response, session=session, credential=credential
    )


@router.post("/score", response_model=GenerationOut)
async def generate_score(
    payload: ScoreRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(get_session),
    credential: str = Depends(get_generation_credential),
):
    """Generate a financial health score."""
    return await _generate(
        InsightKind.SCORE, payload, db=db, response=response, session=session, credential=credential
    )


@router.get("/latest", response_model=dict[str, Optional[SnapshotOut]])
async def latest_all(
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_authenticated),
):
    """Latest snapshot of every kind for the dashboard."""
    try:
        latest = await SnapshotRepository(db).latest_all(session.principal_id)
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        kind.value: _snapshot_out(snapshot) if snapshot else None
        for kind, snapshot in latest.items()
    }


@router.get("/{kind}/latest", response_model=SnapshotOut)
async def latest_snapshot(
    kind: InsightKind,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_authenticated),
):
    """Return the caller's most recent snapshot of ``kind``."""
    try:
        snapshot = await SnapshotRepository(db).latest(session.principal_id, kind)
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No saved insight yet.")
    return _snapshot_out(snapshot)


@router.get("/{kind}/history", response_model=list[SnapshotOut])
async def snapshot_history(
    kind: InsightKind,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(require_authenticated),
):
    """Return the caller's snapshots of ``kind``, newest first."""
    try:
        snapshots = await SnapshotRepository(db).history(session.principal_id, kind, limit=limit)
    except StorageUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return [_snapshot_out(snapshot) for snapshot in snapshots]
