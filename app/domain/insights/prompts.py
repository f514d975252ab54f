"""Prompt templates for the generation endpoint.

Every builder is pure: the same request always yields the same prompt, so
prompts can be compared byte for byte in tests and logs.
"""
from __future__ import annotations

from typing import Callable

from .schemas import (
    BudgetRequest,
    InsightKind,
    InsightRequest,
    InvestmentRequest,
    RiskTolerance,
    SCORE_CATEGORY_BANDS,
    ScoreRequest,
)

JSON_ONLY_INSTRUCTION = "Return ONLY the JSON object with no additional text before or after."

BUDGET_SCHEMA = """{
  "savings": {"amount": number, "percentage": number},
  "essential": {"amount": number, "percentage": number},
  "investment": {"amount": number, "percentage": number},
  "discretionary": {"amount": number, "percentage": number},
  "emergency": {"amount": number, "percentage": number},
  "analysis": "string with brief budget analysis",
  "advice": "string with financial advice"
}"""

INVESTMENT_SCHEMA = """{
  "recommended_allocation": {
    "<category name>": {"percentage": number, "description": "string"},
    "...": "one entry per asset category"
  },
  "monthly_contribution_suggestion": number,
  "long_term_strategy": "string with long-term investment advice",
  "short_term_strategy": "string with short-term investment advice",
  "specific_recommendations": ["list", "of", "specific", "investment", "vehicles"]
}"""

SCORE_SCHEMA = """{
  "score": number (0-100),
  "category": "Poor" | "Fair" | "Good" | "Excellent",
  "analysis": {
    "strengths": ["list", "of", "financial", "strengths"],
    "weaknesses": ["list", "of", "areas", "to", "improve"]
  },
  "recommendations": ["list", "of", "specific", "actionable", "recommendations"],
  "breakdown": {
    "savings_score": number (0-100),
    "debt_score": number (0-100),
    "emergency_fund_score": number (0-100),
    "investment_score": number (0-100),
    "expense_ratio_score": number (0-100)
  }
}"""

RISK_GUIDANCE = {
    RiskTolerance.LOW: "favor bonds, index funds, and safer investments",
    RiskTolerance.MEDIUM: "suggest a balanced portfolio across stocks and bonds",
    RiskTolerance.HIGH: (
        "include more stocks, growth funds, and potentially some alternative investments"
    ),
}


def _money(value: float) -> str:
    text = f"{value:,.2f}"
    if float(text.replace(",", "")) != value:
        # Never round away digits the caller supplied.
        text = f"{value:,}"
    return f"${text}"


def _score_bands() -> str:
    lines = []
    lower = 0
    for upper, category in SCORE_CATEGORY_BANDS:
        lines.append(f"- {lower}-{upper}: {category.value}")
        lower = upper + 1
    return "\n".join(lines)


def build_budget_prompt(request: BudgetRequest) -> str:
    income = _money(request.income)
    expenses = _money(request.essential_expenses)
    return "\n".join([
        f"Based on a monthly income of {income} and essential expenses of {expenses}, "
        "generate a detailed budget breakdown. Follow these rules:",
        "",
        "1. Allocate between 20-30% of income for savings.",
        f"2. Cover all essential expenses (which total {expenses}).",
        "3. Suggest a percentage for investment.",
        "4. Allow for discretionary spending.",
        "5. Include an emergency fund allocation.",
        "6. Every percentage is relative to the monthly income and lies between 0 and 100; "
        "the five percentages should sum to 100.",
        "",
        "Return the response as a JSON object with exactly this structure:",
        BUDGET_SCHEMA,
        "",
        JSON_ONLY_INSTRUCTION,
    ])


def build_investment_prompt(request: InvestmentRequest) -> str:
    risk = request.risk_tolerance.value
    return "\n".join([
        f"Based on a monthly income of {_money(request.income)}, a monthly savings capacity of "
        f"{_money(request.savings_amount)}, and a {risk} risk tolerance, suggest an investment strategy.",
        "",
        f"The user has a {risk} risk tolerance, so {RISK_GUIDANCE[request.risk_tolerance]}.",
        "Allocation percentages lie between 0 and 100 and should sum to 100.",
        "The monthly contribution suggestion must not exceed the monthly savings capacity.",
        "",
        "Return the response as a JSON object with exactly this structure:",
        INVESTMENT_SCHEMA,
        "",
        JSON_ONLY_INSTRUCTION,
    ])


def build_score_prompt(request: ScoreRequest) -> str:
    return "\n".join([
        "Calculate a financial health score (0-100) based on the following data:",
        f"- Monthly income: {_money(request.income)}",
        f"- Monthly expenses: {_money(request.expenses)}",
        f"- Monthly savings: {_money(request.savings)}",
        f"- Total debt: {_money(request.debt)}",
        f"- Total investments: {_money(request.investments)}",
        f"- Emergency fund: {_money(request.emergency_fund)}",
        "",
        "Return the result as a JSON object with exactly this structure:",
        SCORE_SCHEMA,
        "",
        "Score categories:",
        _score_bands(),
        "",
        JSON_ONLY_INSTRUCTION,
    ])


_BUILDERS: dict[InsightKind, Callable] = {
    InsightKind.BUDGET: build_budget_prompt,
    InsightKind.INVESTMENT_STRATEGY: build_investment_prompt,
    InsightKind.SCORE: build_score_prompt,
}


def build_prompt(kind: InsightKind, request: InsightRequest) -> str:
    """Return the generation prompt for ``kind``.

    Requests are validated by their pydantic models before they get here, so
    this never fails for a request of the matching type.
    """
    return _BUILDERS[kind](request)


def build_chat_prompt(question: str) -> str:
    """Wrap a free-form question for the financial literacy assistant."""
    return "\n".join([
        "I need information about the following financial question or topic:",
        "",
        question.strip(),
        "",
        "Please provide a clear, educational response that helps improve financial literacy. "
        "If it's a complex topic, break it down in simple terms. "
        "If appropriate, include practical advice or examples.",
    ])


__all__ = [
    "build_budget_prompt",
    "build_chat_prompt",
    "build_investment_prompt",
    "build_prompt",
    "build_score_prompt",
]
