"""Pydantic contracts for insight requests and generated results."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class InsightKind(str, Enum):
    BUDGET = "budget"
    INVESTMENT_STRATEGY = "investment_strategy"
    SCORE = "score"


class RiskTolerance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScoreCategory(str, Enum):
    POOR = "Poor"
    FAIR = "Fair"
    GOOD = "Good"
    EXCELLENT = "Excellent"


# Inclusive upper bound of each band, in ascending order.
SCORE_CATEGORY_BANDS: tuple[tuple[float, ScoreCategory], ...] = (
    (25, ScoreCategory.POOR),
    (50, ScoreCategory.FAIR),
    (75, ScoreCategory.GOOD),
    (100, ScoreCategory.EXCELLENT),
)


def category_for_score(score: float) -> ScoreCategory:
    """Map a 0-100 health score onto its category band."""
    if score < 0 or score > 100:
        raise ValueError(f"score must be between 0 and 100, got {score}")
    for upper_bound, category in SCORE_CATEGORY_BANDS:
        if score <= upper_bound:
            return category
    raise AssertionError("unreachable: bands cover 0-100")


# --- Requests ---------------------------------------------------------------


class _RequestBase(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)


class BudgetRequest(_RequestBase):
    """Inputs for a monthly budget split."""

    income: float = Field(..., gt=0)
    essential_expenses: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_expenses_below_income(self) -> "BudgetRequest":
        if self.essential_expenses >= self.income:
            raise ValueError("essential_expenses must be lower than income")
        return self


class InvestmentRequest(_RequestBase):
    """Inputs for an investment strategy."""

    income: float = Field(..., gt=0)
    savings_amount: float = Field(..., ge=0)
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM

    @model_validator(mode="after")
    def check_savings_within_income(self) -> "InvestmentRequest":
        if self.savings_amount > self.income:
            raise ValueError("savings_amount cannot exceed income")
        return self


class ScoreRequest(_RequestBase):
    """Inputs for a financial health score."""

    income: float = Field(..., gt=0)
    expenses: float = Field(0, ge=0)
    savings: float = Field(0, ge=0)
    debt: float = Field(0, ge=0)
    investments: float = Field(0, ge=0)
    emergency_fund: float = Field(0, ge=0)


InsightRequest = Union[BudgetRequest, InvestmentRequest, ScoreRequest]


# --- Results ----------------------------------------------------------------
#
# Results are validated from untrusted model output. Unknown keys are ignored;
# numeric plausibility is left to the generator except for ``score``.


class _ResultBase(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class Allocation(_ResultBase):
    amount: float
    percentage: float


class BudgetResult(_ResultBase):
    savings: Allocation
    essential: Allocation
    investment: Allocation
    discretionary: Allocation
    emergency: Allocation
    analysis: str
    advice: str


class AllocationSlice(_ResultBase):
    percentage: float
    description: str


class InvestmentStrategyResult(_ResultBase):
    recommended_allocation: dict[str, AllocationSlice]
    monthly_contribution_suggestion: float
    long_term_strategy: str
    short_term_strategy: str
    specific_recommendations: list[str]


class ScoreAnalysis(_ResultBase):
    strengths: list[str]
    weaknesses: list[str]


class ScoreBreakdown(_ResultBase):
    savings_score: float
    debt_score: float
    emergency_fund_score: float
    investment_score: float
    expense_ratio_score: float


class ScoreResult(_ResultBase):
    score: float = Field(..., ge=0, le=100)
    analysis: ScoreAnalysis
    recommendations: list[str]
    breakdown: ScoreBreakdown

    @computed_field
    @property
    def category(self) -> ScoreCategory:
        """Always derived from ``score``; any category sent upstream is ignored."""
        return category_for_score(self.score)


InsightResult = Union[BudgetResult, InvestmentStrategyResult, ScoreResult]


REQUEST_MODELS: dict[InsightKind, type[BaseModel]] = {
    InsightKind.BUDGET: BudgetRequest,
    InsightKind.INVESTMENT_STRATEGY: InvestmentRequest,
    InsightKind.SCORE: ScoreRequest,
}

RESULT_MODELS: dict[InsightKind, type[BaseModel]] = {
    InsightKind.BUDGET: BudgetResult,
    InsightKind.INVESTMENT_STRATEGY: InvestmentStrategyResult,
    InsightKind.SCORE: ScoreResult,
}


# --- API payloads -------------------------------------------------------------


class GenerationOut(BaseModel):
    """Response body for a generation request."""

    kind: InsightKind
    result: dict[str, Any]
    saved: bool
    snapshot_id: Optional[int] = None


class SnapshotOut(BaseModel):
    """Stored snapshot as returned by the read endpoints."""

    id: int
    kind: InsightKind
    created_at: datetime
    inputs: Optional[dict[str, Any]] = None
    result: dict[str, Any]


class ChatQuestion(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ChatAnswer(BaseModel):
    answer: str
