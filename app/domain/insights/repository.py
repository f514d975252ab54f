"""Append-only storage of generated insights."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import InsightSnapshot
from .schemas import InsightKind, InsightResult, RESULT_MODELS

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for snapshot storage failures."""


class NotAuthenticated(RepositoryError):
    """Raised when a write is attempted without a durable owner identity."""


class StorageUnavailable(RepositoryError):
    """Raised when the database cannot be read or written."""


@dataclass(frozen=True)
class Snapshot:
    id: int
    owner_id: int
    kind: InsightKind
    result: InsightResult
    created_at: datetime
    inputs: Optional[dict[str, Any]] = None


class SnapshotRepository:
    """Per-owner, per-kind snapshot store.

    Rows are only ever inserted. The current snapshot for an owner and kind
    is the one with the greatest ``created_at`` (ties go to the later id),
    served by the ``(owner_id, kind, created_at)`` index.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def append(
        self,
        owner_id: Optional[int],
        kind: InsightKind,
        result: InsightResult,
        *,
        inputs: Optional[dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Store ``result`` and return the new snapshot id."""
        if owner_id is None:
            raise NotAuthenticated("Snapshots can only be stored for signed-in users.")

        row = InsightSnapshot(
            owner_id=owner_id,
            kind=kind.value,
            inputs=inputs,
            result=result.model_dump(mode="json"),
            created_at=created_at or datetime.utcnow(),
        )
        self._db.add(row)
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.exception("Failed to store %s snapshot for owner %s", kind.value, owner_id)
            raise StorageUnavailable("Could not store the insight.") from exc

        logger.info("Stored %s snapshot id=%s for owner %s", kind.value, row.id, owner_id)
        return row.id

    async def latest(self, owner_id: int, kind: InsightKind) -> Snapshot | None:
        """Return the most recent snapshot, or None when there is none."""
        rows = await self._fetch(owner_id, kind, limit=1)
        return rows[0] if rows else None

    async def history(
        self, owner_id: int, kind: InsightKind, limit: Optional[int] = None
    ) -> list[Snapshot]:
        """Return snapshots newest first."""
        return await self._fetch(owner_id, kind, limit=limit)

    async def latest_all(self, owner_id: int) -> dict[InsightKind, Snapshot | None]:
        """Latest snapshot of every kind, for dashboard views."""
        return {kind: await self.latest(owner_id, kind) for kind in InsightKind}

    async def _fetch(
        self, owner_id: int, kind: InsightKind, *, limit: Optional[int]
    ) -> list[Snapshot]:
        stmt = (
            select(InsightSnapshot)
            .where(
                InsightSnapshot.owner_id == owner_id,
                InsightSnapshot.kind == kind.value,
            )
            .order_by(InsightSnapshot.created_at.desc(), InsightSnapshot.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Failed to read %s snapshots for owner %s", kind.value, owner_id)
            raise StorageUnavailable("Could not read stored insights.") from exc

        return [_to_snapshot(row) for row in result.scalars().all()]


def _to_snapshot(row: InsightSnapshot) -> Snapshot:
    try:
        kind = InsightKind(row.kind)
        stored = RESULT_MODELS[kind].model_validate(row.result)
    except (ValueError, ValidationError) as exc:
        logger.error("Stored snapshot %s no longer matches its %s model: %s", row.id, row.kind, exc)
        raise StorageUnavailable("Stored insight could not be read.") from exc
    return Snapshot(
        id=row.id,
        owner_id=row.owner_id,
        kind=kind,
        result=stored,
        created_at=row.created_at,
        inputs=row.inputs,
    )


__all__ = [
    "NotAuthenticated",
    "RepositoryError",
    "Snapshot",
    "SnapshotRepository",
    "StorageUnavailable",
]
