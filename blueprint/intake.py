"""Intake questionnaire and boundary validation.

The engine itself trusts its :class:`BusinessIntake` input.  Everything that
guards against malformed answers lives here, in front of it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from blueprint.models import MAX_MONTHLY_REVENUE, BusinessIntake

log = logging.getLogger(__name__)


class IntakeError(ValueError):
    """Intake answers failed validation."""
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) or "Invalid intake")
        self.errors = errors


@dataclass(frozen=True)
class IntakeQuestion:
    id: str
    category: str
    question: str
    type: str  # number | text | select | multiselect
    required: bool
    options: tuple[str, ...] = ()


CHALLENGE_OPTIONS = (
    "Not enough leads",
    "Low conversion rates",
    "High churn",
    "Hiring/team issues",
    "Cash flow",
    "Product issues",
    "Competition",
    "Scaling operations",
    "Time management",
)

GOAL_OPTIONS = (
    "Increase revenue",
    "Get more leads",
    "Improve conversion",
    "Reduce churn",
    "Hire key roles",
    "Raise funding",
    "Launch new product",
    "Expand to new market",
    "Improve operations",
)

INTAKE_QUESTIONS: tuple[IntakeQuestion, ...] = (
    IntakeQuestion("revenue_monthly", "financials", "What is your current monthly revenue?", "number", True),
    IntakeQuestion(
        "revenue_trend", "financials", "How is your revenue trending over the past 3 months?",
        "select", True, ("growing", "stable", "declining"),
    ),
    IntakeQuestion(
        "team_size", "operations", "How many people are on your team (including yourself)?", "number", True,
    ),
    IntakeQuestion("industry", "market", "What industry are you in?", "text", True),
    IntakeQuestion(
        "business_model", "market", "What is your primary business model?", "select", True,
        ("saas", "services", "marketplace", "ecommerce", "agency", "consulting", "other"),
    ),
    IntakeQuestion(
        "primary_channel", "growth", "What is your primary customer acquisition channel?", "select", True,
        ("organic_search", "paid_ads", "referrals", "outbound", "content", "partnerships", "other"),
    ),
    IntakeQuestion("customer_count", "growth", "How many active customers do you have?", "number", True),
    IntakeQuestion(
        "churn_rate", "retention", "What is your monthly churn rate (%)? Leave blank if unknown.", "number", False,
    ),
    IntakeQuestion(
        "cash_runway_months", "financials", "How many months of cash runway do you have?", "number", False,
    ),
    IntakeQuestion(
        "main_challenges", "strategy", "What are your top 3 challenges right now?", "multiselect", True,
        CHALLENGE_OPTIONS,
    ),
    IntakeQuestion(
        "goals_90_day", "strategy", "What are your top 3 goals for the next 90 days?", "multiselect", True,
        GOAL_OPTIONS,
    ),
)


def questions_by_category(category: str) -> list[IntakeQuestion]:
    return [q for q in INTAKE_QUESTIONS if q.category == category]


NUMERIC_FIELDS = ("revenue_monthly", "team_size", "customer_count", "churn_rate", "cash_runway_months")


def _number(value: Any) -> float | None:
    try:
        return float(value)
    except OverflowError:
        return math.inf
    except (TypeError, ValueError):
        return None


def validate_intake(data: dict[str, Any]) -> list[str]:
    """Return human-readable problems with raw intake answers (empty when valid)."""
    errors: list[str] = []
    for q in INTAKE_QUESTIONS:
        if q.required and data.get(q.id) in (None, ""):
            errors.append(f"{q.question} is required")

    numbers = {field: _number(data.get(field)) for field in NUMERIC_FIELDS}
    for field, value in numbers.items():
        if value is not None and not math.isfinite(value):
            errors.append(f"{field} must be a finite number")
            numbers[field] = None

    revenue = numbers["revenue_monthly"]
    if revenue is not None and revenue < 0:
        errors.append("Revenue cannot be negative")
    if revenue is not None and revenue > MAX_MONTHLY_REVENUE:
        errors.append(f"Revenue cannot exceed {MAX_MONTHLY_REVENUE:,.0f}")
    team = numbers["team_size"]
    if team is not None and team < 1:
        errors.append("Team size must be at least 1")
    churn = numbers["churn_rate"]
    if churn is not None and not 0 <= churn <= 100:
        errors.append("Churn rate must be between 0 and 100")
    return errors


def parse_intake(data: dict[str, Any]) -> BusinessIntake:
    """Validate raw answers and build a :class:`BusinessIntake`, raising :class:`IntakeError`."""
    errors = validate_intake(data)
    if errors:
        log.debug("Rejected intake: %s", errors)
        raise IntakeError(errors)
    try:
        return BusinessIntake.model_validate(data)
    except ValidationError as exc:
        raise IntakeError([
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()
        ]) from exc


def calculate_health_score(intake: BusinessIntake) -> int:
    """0-100 business health heuristic from trend, efficiency, customers, churn and runway."""
    score = 50
    if intake.revenue_trend == "growing":
        score += 15
    elif intake.revenue_trend == "declining":
        score -= 20

    revenue_per_employee = intake.revenue_monthly / intake.team_size
    if revenue_per_employee > 20_000:
        score += 10
    elif revenue_per_employee < 5_000:
        score -= 10

    if intake.customer_count > 100:
        score += 10
    elif intake.customer_count < 10:
        score -= 10

    if intake.churn_rate is not None:
        if intake.churn_rate < 3:
            score += 10
        elif intake.churn_rate > 10:
            score -= 15

    if intake.cash_runway_months is not None:
        if intake.cash_runway_months > 12:
            score += 10
        elif intake.cash_runway_months < 3:
            score -= 20

    return max(0, min(100, score))
