from datetime import datetime, timedelta

import pytest

from app.domain.insights.models import InsightSnapshot
from app.domain.insights.repository import NotAuthenticated, SnapshotRepository, StorageUnavailable
from app.domain.insights.schemas import (
    Allocation,
    BudgetResult,
    InsightKind,
    ScoreAnalysis,
    ScoreBreakdown,
    ScoreResult,
)


def _budget(savings_amount: float) -> BudgetResult:
    slot = Allocation(amount=savings_amount, percentage=20)
    return BudgetResult(
        savings=slot,
        essential=slot,
        investment=slot,
        discretionary=slot,
        emergency=slot,
        analysis=f"plan {savings_amount}",
        advice="save",
    )


def _score(value: float) -> ScoreResult:
    return ScoreResult(
        score=value,
        analysis=ScoreAnalysis(strengths=[], weaknesses=[]),
        recommendations=[],
        breakdown=ScoreBreakdown(
            savings_score=1, debt_score=2, emergency_fund_score=3, investment_score=4, expense_ratio_score=5
        ),
    )


@pytest.mark.asyncio
async def test_latest_is_none_without_snapshots(db, user):
    repo = SnapshotRepository(db)

    assert await repo.latest(user.id, InsightKind.BUDGET) is None


@pytest.mark.asyncio
async def test_latest_returns_last_of_sequential_appends(db, user):
    repo = SnapshotRepository(db)
    start = datetime(2026, 1, 1, 12, 0, 0)

    for n in range(1, 5):
        await repo.append(user.id, InsightKind.BUDGET, _budget(n * 100), created_at=start + timedelta(minutes=n))

    latest = await repo.latest(user.id, InsightKind.BUDGET)
    assert latest.result == _budget(400)
    assert latest.kind is InsightKind.BUDGET


@pytest.mark.asyncio
async def test_latest_uses_created_at_not_insert_order(db, user):
    repo = SnapshotRepository(db)
    now = datetime(2026, 3, 1)

    newer_id = await repo.append(user.id, InsightKind.BUDGET, _budget(2), created_at=now)
    await repo.append(user.id, InsightKind.BUDGET, _budget(1), created_at=now - timedelta(days=1))

    latest = await repo.latest(user.id, InsightKind.BUDGET)
    assert latest.id == newer_id


@pytest.mark.asyncio
async def test_equal_timestamps_resolve_to_later_append(db, user):
    repo = SnapshotRepository(db)
    now = datetime(2026, 3, 1)

    await repo.append(user.id, InsightKind.BUDGET, _budget(1), created_at=now)
    second_id = await repo.append(user.id, InsightKind.BUDGET, _budget(2), created_at=now)

    assert (await repo.latest(user.id, InsightKind.BUDGET)).id == second_id


@pytest.mark.asyncio
async def test_history_keeps_previous_plans(db, user):
    repo = SnapshotRepository(db)
    start = datetime(2026, 1, 1)
    await repo.append(user.id, InsightKind.BUDGET, _budget(1), created_at=start)
    await repo.append(user.id, InsightKind.BUDGET, _budget(2), created_at=start + timedelta(hours=1))

    history = await repo.history(user.id, InsightKind.BUDGET)

    assert [snap.result.analysis for snap in history] == ["plan 2", "plan 1"]


@pytest.mark.asyncio
async def test_kinds_and_owners_are_isolated(db, user):
    repo = SnapshotRepository(db)
    await repo.append(user.id, InsightKind.SCORE, _score(80), inputs={"income": 4000})

    assert await repo.latest(user.id, InsightKind.BUDGET) is None
    assert await repo.latest(user.id + 1, InsightKind.SCORE) is None

    stored = await repo.latest(user.id, InsightKind.SCORE)
    assert stored.result.category.value == "Excellent"
    assert stored.inputs == {"income": 4000}


@pytest.mark.asyncio
async def test_latest_all_covers_every_kind(db, user):
    repo = SnapshotRepository(db)
    await repo.append(user.id, InsightKind.SCORE, _score(40))

    latest = await repo.latest_all(user.id)

    assert set(latest) == set(InsightKind)
    assert latest[InsightKind.BUDGET] is None
    assert latest[InsightKind.SCORE].result.score == 40


@pytest.mark.asyncio
async def test_append_without_owner_is_not_authenticated(db):
    repo = SnapshotRepository(db)

    with pytest.raises(NotAuthenticated):
        await repo.append(None, InsightKind.BUDGET, _budget(1))


@pytest.mark.asyncio
async def test_unreadable_stored_result_is_storage_unavailable(db, user):
    db.add(InsightSnapshot(owner_id=user.id, kind=InsightKind.BUDGET.value, result={"savings": "lots"}))
    await db.commit()

    with pytest.raises(StorageUnavailable):
        await SnapshotRepository(db).latest(user.id, InsightKind.BUDGET)
