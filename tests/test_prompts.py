import pytest

from app.domain.insights.prompts import build_chat_prompt, build_prompt
from app.domain.insights.schemas import (
    BudgetRequest,
    InsightKind,
    InvestmentRequest,
    RiskTolerance,
    ScoreRequest,
)

REQUESTS = {
    InsightKind.BUDGET: BudgetRequest(income=5000, essential_expenses=2000),
    InsightKind.INVESTMENT_STRATEGY: InvestmentRequest(
        income=6000, savings_amount=1200, risk_tolerance=RiskTolerance.HIGH
    ),
    InsightKind.SCORE: ScoreRequest(
        income=4000, expenses=2500, savings=500, debt=12000, investments=8000, emergency_fund=3000
    ),
}


@pytest.mark.parametrize("kind", list(InsightKind))
def test_prompt_is_deterministic(kind):
    request = REQUESTS[kind]
    copy = type(request).model_validate(request.model_dump())
    assert build_prompt(kind, request) == build_prompt(kind, copy)


@pytest.mark.parametrize("kind", list(InsightKind))
def test_prompt_demands_json_only(kind):
    prompt = build_prompt(kind, REQUESTS[kind])
    assert "Return ONLY the JSON object" in prompt


def test_budget_prompt_embeds_inputs_and_schema():
    prompt = build_prompt(InsightKind.BUDGET, REQUESTS[InsightKind.BUDGET])

    assert "$5,000.00" in prompt
    assert "$2,000.00" in prompt
    assert "20-30%" in prompt
    for key in ("savings", "essential", "investment", "discretionary", "emergency", "analysis", "advice"):
        assert f'"{key}"' in prompt


def test_investment_prompt_follows_risk_tolerance():
    prompt = build_prompt(InsightKind.INVESTMENT_STRATEGY, REQUESTS[InsightKind.INVESTMENT_STRATEGY])
    low = build_prompt(
        InsightKind.INVESTMENT_STRATEGY,
        InvestmentRequest(income=6000, savings_amount=1200, risk_tolerance=RiskTolerance.LOW),
    )

    assert "high risk tolerance" in prompt
    assert "alternative investments" in prompt
    assert "bonds, index funds" in low
    assert '"recommended_allocation"' in prompt
    assert '"monthly_contribution_suggestion"' in prompt
    assert '"specific_recommendations"' in prompt


def test_score_prompt_lists_breakpoints():
    prompt = build_prompt(InsightKind.SCORE, REQUESTS[InsightKind.SCORE])

    assert "- Total debt: $12,000.00" in prompt
    assert "- 0-25: Poor" in prompt
    assert "- 26-50: Fair" in prompt
    assert "- 51-75: Good" in prompt
    assert "- 76-100: Excellent" in prompt
    assert '"expense_ratio_score"' in prompt


def test_chat_prompt_wraps_question():
    prompt = build_chat_prompt("  What is an index fund?  ")
    assert "What is an index fund?" in prompt
    assert "financial literacy" in prompt


def test_fractional_cents_are_not_rounded_away():
    prompt = build_prompt(InsightKind.BUDGET, BudgetRequest(income=1234.567, essential_expenses=0.004))

    assert "$1,234.567" in prompt
    assert "$0.004" in prompt
    assert "$0.00\n" not in prompt
