"""Deterministic offline completions used with the ``stub`` credential."""
from __future__ import annotations

import json
from typing import Any

from .schemas import (
    BudgetRequest,
    InsightKind,
    InsightRequest,
    InvestmentRequest,
    RiskTolerance,
    ScoreRequest,
)

# Share of what is left after essential expenses.
_BUDGET_SPLIT = {
    "savings": 0.40,
    "investment": 0.20,
    "emergency": 0.15,
    "discretionary": 0.25,
}

_INVESTMENT_MIX = {
    RiskTolerance.LOW: {
        "Bonds": (50, "Government and investment-grade corporate bonds"),
        "Index Funds": (35, "Broad market index funds with low fees"),
        "Cash Equivalents": (15, "High-yield savings and money market funds"),
    },
    RiskTolerance.MEDIUM: {
        "Index Funds": (50, "Total market and S&P 500 index funds"),
        "Bonds": (30, "Intermediate-term bond funds"),
        "Individual Stocks": (20, "A small basket of established companies"),
    },
    RiskTolerance.HIGH: {
        "Stocks": (60, "Growth-oriented equities and sector ETFs"),
        "Growth Funds": (25, "Actively managed growth and small-cap funds"),
        "Alternatives": (15, "REITs and other alternative investments"),
    },
}


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _clamp(value: float) -> float:
    return round(max(0.0, min(100.0, value)), 1)


def _budget(request: BudgetRequest) -> dict[str, Any]:
    income = request.income
    remaining = income - request.essential_expenses
    payload: dict[str, Any] = {
        "essential": {
            "amount": round(request.essential_expenses, 2),
            "percentage": _pct(request.essential_expenses, income),
        }
    }
    for name, share in _BUDGET_SPLIT.items():
        amount = round(remaining * share, 2)
        payload[name] = {"amount": amount, "percentage": _pct(amount, income)}
    payload["analysis"] = (
        f"[stub] Essential expenses take {_pct(request.essential_expenses, income)}% of income."
    )
    payload["advice"] = "[stub] Automate the savings transfer on payday."
    return payload


def _investment(request: InvestmentRequest) -> dict[str, Any]:
    mix = _INVESTMENT_MIX[request.risk_tolerance]
    return {
        "recommended_allocation": {
            name: {"percentage": pct, "description": description}
            for name, (pct, description) in mix.items()
        },
        "monthly_contribution_suggestion": round(request.savings_amount, 2),
        "long_term_strategy": "[stub] Keep contributing monthly and rebalance once a year.",
        "short_term_strategy": "[stub] Hold three months of expenses in cash before investing more.",
        "specific_recommendations": [f"{name} ({pct}%)" for name, (pct, _) in mix.items()],
    }


def _score(request: ScoreRequest) -> dict[str, Any]:
    income = request.income
    yearly_income = income * 12
    breakdown = {
        "savings_score": _clamp(request.savings / (income * 0.2) * 100),
        "debt_score": _clamp(100 - request.debt / yearly_income * 100),
        "emergency_fund_score": (
            _clamp(request.emergency_fund / (request.expenses * 6) * 100) if request.expenses else 100.0
        ),
        "investment_score": _clamp(request.investments / yearly_income * 100),
        "expense_ratio_score": _clamp(100 - request.expenses / income * 100),
    }
    score = round(sum(breakdown.values()) / len(breakdown), 1)
    labels = {key: key.replace("_score", "").replace("_", " ") for key in breakdown}
    return {
        "score": score,
        "analysis": {
            "strengths": [labels[key] for key, value in breakdown.items() if value >= 60],
            "weaknesses": [labels[key] for key, value in breakdown.items() if value < 60],
        },
        "recommendations": [
            f"[stub] Improve your {labels[key]}" for key, value in breakdown.items() if value < 60
        ],
        "breakdown": breakdown,
    }


_STUBS = {
    InsightKind.BUDGET: _budget,
    InsightKind.INVESTMENT_STRATEGY: _investment,
    InsightKind.SCORE: _score,
}


def build_stub_completion(kind: InsightKind, request: InsightRequest) -> str:
    """Return completion text that validates for ``kind``."""
    return json.dumps(_STUBS[kind](request))
