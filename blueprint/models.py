"""Value objects flowing through the growth blueprint pipeline.

Every model is frozen and holds tuples rather than lists, so a result handed
to a downstream component cannot be changed underneath it.  Scores carried
here (``confidence``, ``impact_score``, ``impact_potential``,
``success_probability``) are additive/multiplicative heuristics.  They are
useful for ranking, but they are not calibrated probabilities.
"""
from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)

Stage = Literal["idea", "early", "growth", "scaling", "mature"]
RevenueTrend = Literal["growing", "stable", "declining"]
Severity = Literal["low", "medium", "high", "critical"]
BottleneckCategory = Literal[
    "product_market_fit", "lead_generation", "sales_conversion", "operations",
    "team", "capital", "market_position", "retention",
]
LeverageType = Literal["quick_win", "strategic", "foundational", "moonshot"]
Effort = Literal["low", "medium", "high"]
TrackingFrequency = Literal["daily", "weekly", "monthly"]

# Declaration order doubles as the tie-break order for stage classification.
STAGES: tuple[str, ...] = ("idea", "early", "growth", "scaling", "mature")

BUSINESS_MODELS = {"saas", "services", "marketplace", "ecommerce", "agency", "consulting", "other"}
ACQUISITION_CHANNELS = {
    "organic_search", "paid_ads", "referrals", "outbound", "content", "partnerships", "other",
}

# Upper bounds on intake numbers.
MAX_MONTHLY_REVENUE = 1e12
MAX_TEAM_SIZE = 10_000_000
MAX_CUSTOMER_COUNT = 10_000_000_000
MAX_RUNWAY_MONTHS = 1200


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class BusinessIntake(_Frozen):
    """Snapshot of a business's metrics and qualitative state.

    Numbers must be finite and within the ``MAX_*`` bounds.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    revenue_monthly: float = Field(ge=0, le=MAX_MONTHLY_REVENUE)
    team_size: int = Field(ge=1, le=MAX_TEAM_SIZE)
    customer_count: int = Field(ge=0, le=MAX_CUSTOMER_COUNT)
    revenue_trend: RevenueTrend = "stable"
    industry: str = Field(default="general", min_length=1)
    business_model: str = "other"
    primary_channel: str = "other"
    churn_rate: float | None = Field(default=None, ge=0, le=100)
    cash_runway_months: float | None = Field(default=None, ge=0, le=MAX_RUNWAY_MONTHS)
    main_challenges: tuple[str, ...] = ()
    goals_90_day: tuple[str, ...] = ()
    client_id: str | None = None

    @field_validator("industry")
    @classmethod
    def industry_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("industry must not be blank")
        return v

    @field_validator("business_model")
    @classmethod
    def normalize_business_model(cls, v: str) -> str:
        return _normalize_choice(v, BUSINESS_MODELS, "business model")

    @field_validator("primary_channel")
    @classmethod
    def normalize_channel(cls, v: str) -> str:
        return _normalize_choice(v, ACQUISITION_CHANNELS, "acquisition channel")


def _normalize_choice(val: str, valid: set[str], label: str) -> str:
    v = str(val or "other").strip().lower().replace(" ", "_").replace("-", "_")
    if v not in valid:
        log.warning("Unrecognized %s %r, defaulting to other", label, val)
        return "other"
    return v


# ---------------------------------------------------------------------------
# Diagnosis
# ---------------------------------------------------------------------------


class StageClassification(_Frozen):
    """Best-fitting lifecycle stage.

    ``confidence`` is the winning indicator score normalised by the average
    per-stage weight and capped at 1.  It is a heuristic, not a probability.
    """

    stage: Stage
    confidence: float = Field(ge=0, le=1)
    indicators: tuple[str, ...] = ()
    typical_challenges: tuple[str, ...] = ()
    next_stage_requirements: tuple[str, ...] = ()


class Bottleneck(_Frozen):
    id: str
    category: BottleneckCategory
    severity: Severity
    title: str
    description: str
    impact_score: int = Field(ge=0, le=100)
    evidence: tuple[str, ...] = ()
    recommended_actions: tuple[str, ...] = ()


class LeveragePoint(_Frozen):
    """A candidate intervention.  ``impact_potential`` is a relative 0-100 heuristic."""

    id: str
    type: LeverageType
    title: str
    description: str
    impact_potential: int = Field(ge=0, le=100)
    effort_required: Effort
    time_to_impact_days: int
    dependencies: tuple[str, ...] = ()
    resources_needed: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


class RoadmapMilestone(_Frozen):
    id: str
    week: int
    title: str
    objectives: tuple[str, ...] = ()
    key_actions: tuple[str, ...] = ()
    success_metrics: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()


class GrowthRoadmap(_Frozen):
    """The 90-day plan.

    ``success_probability`` (10-90) is a sum of fixed adjustments to a base of
    50.  Treat it as a coarse confidence signal, not a statistical estimate.
    """

    id: str
    client_id: str | None = None
    stage: Stage
    classification_confidence: float = Field(ge=0, le=1)
    primary_bottleneck: Bottleneck
    bottlenecks: tuple[Bottleneck, ...] = ()
    leverage_points: tuple[LeveragePoint, ...] = ()
    milestones: tuple[RoadmapMilestone, ...] = ()
    things_to_ignore: tuple[str, ...] = ()
    risk_factors: tuple[str, ...] = ()
    success_probability: int = Field(ge=10, le=90)
    created_at: str


class ExecutionPriority(_Frozen):
    id: str
    rank: int = Field(ge=1)
    action: str
    rationale: str
    expected_outcome: str
    blocking_factors: tuple[str, ...] = ()
    due_date: str


class PriorityScore(_Frozen):
    """Weighted 0-100 ranking heuristic for a single action."""

    impact: float
    urgency: float
    effort: float
    dependencies: float
    total: float


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------


class KPITarget(_Frozen):
    metric: str
    current_value: float
    target_value: float
    target_date: str
    tracking_frequency: TrackingFrequency
    leading_indicators: tuple[str, ...] = ()
    lower_is_better: bool = False


class TrajectoryProjection(_Frozen):
    metric: str
    projected: float
    target: float
    on_track: bool


class TrajectoryHealth(_Frozen):
    score: int
    status: Literal["healthy", "warning", "critical"]


class NorthStarMetric(_Frozen):
    metric: str
    description: str
