"""Services for generating and storing financial insights."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.session import Session
from app.services.llm_client import CompletionOptions, MissingCredential, complete

from .prompts import build_prompt
from .repository import SnapshotRepository
from .schemas import InsightKind, InsightRequest, InsightResult, REQUEST_MODELS
from .stubs import build_stub_completion
from .validation import Err, validate_response

logger = logging.getLogger(__name__)


class GenerationFailed(Exception):
    """A generation attempt produced no usable result."""

    def __init__(self, reason: str, detail: str = "") -> None:
        super().__init__(detail or reason)
        self.reason = reason
        self.detail = detail


class GenerationInProgress(Exception):
    """Another generation of the same kind is running for this session."""


@dataclass(frozen=True)
class GeneratedInsight:
    kind: InsightKind
    result: InsightResult
    saved: bool
    snapshot_id: Optional[int] = None


class InFlightRegistry:
    """Track running generations so each session runs one per kind."""

    def __init__(self) -> None:
        self._active: set[tuple[str, InsightKind]] = set()

    def is_active(self, session_id: str, kind: InsightKind) -> bool:
        return (session_id, kind) in self._active

    @asynccontextmanager
    async def claim(self, session_id: str, kind: InsightKind) -> AsyncIterator[None]:
        key = (session_id, kind)
        # Check and add happen without an await in between.
        if key in self._active:
            raise GenerationInProgress(f"A {kind.value} generation is already running.")
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)


in_flight = InFlightRegistry()


async def generate_insight(
    db: AsyncSession,
    session: Session,
    kind: InsightKind,
    request: InsightRequest,
    *,
    credential: str,
    options: Optional[CompletionOptions] = None,
    registry: Optional[InFlightRegistry] = None,
) -> GeneratedInsight:
    """Build the prompt, call the endpoint, validate, and persist when allowed.

    Generation runs for every session mode; only authenticated sessions get a
    snapshot appended. Failures raise :class:`GenerationFailed` and leave the
    repository untouched.
    """
    expected = REQUEST_MODELS[kind]
    if not isinstance(request, expected):
        raise TypeError(f"{kind.value} requires {expected.__name__}, got {type(request).__name__}")

    registry = registry or in_flight
    async with registry.claim(session.session_id, kind):
        prompt = build_prompt(kind, request)
        try:
            raw_text = await complete(
                prompt,
                credential,
                options=options,
                stub_response=build_stub_completion(kind, request),
            )
        except MissingCredential as exc:
            logger.info("AI insight generation skipped: %s", exc)
            raise GenerationFailed("missing_credential", str(exc)) from exc

        outcome = validate_response(kind, raw_text)
        if isinstance(outcome, Err):
            logger.warning(
                "Discarding %s completion for session %s: %s",
                kind.value,
                session.session_id,
                outcome.error.message,
            )
            raise GenerationFailed(outcome.error.code, outcome.error.message)

        result = outcome.value
        if not session.can_persist:
            logger.info("Not saving %s result for %s session", kind.value, session.mode.value)
            return GeneratedInsight(kind=kind, result=result, saved=False)

        snapshot_id = await SnapshotRepository(db).append(
            session.principal_id,
            kind,
            result,
            inputs=request.model_dump(mode="json"),
        )
        return GeneratedInsight(kind=kind, result=result, saved=True, snapshot_id=snapshot_id)


__all__ = [
    "GeneratedInsight",
    "GenerationFailed",
    "GenerationInProgress",
    "InFlightRegistry",
    "generate_insight",
    "in_flight",
]
