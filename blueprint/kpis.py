"""90-day KPI targets and simple trajectory projection."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from blueprint.models import BusinessIntake, KPITarget, NorthStarMetric, TrajectoryHealth, TrajectoryProjection
from blueprint.utils import Clock, days_from, round_half_up, utc_now

log = logging.getLogger(__name__)

TARGET_HORIZON_DAYS = 90
PROJECTION_PERIODS = 3

# Fallbacks for optional intake fields.
DEFAULT_CHURN_RATE = 10
DEFAULT_RUNWAY_MONTHS = 6

TREND_GROWTH_RATE = {"growing": 1.1, "stable": 1.0, "declining": 0.9}

MRR_MULTIPLIER = {"idea": 1, "early": 2, "growth": 1.5, "scaling": 1.3, "mature": 1.1}
CUSTOMER_MULTIPLIER = {"idea": 10, "early": 2, "growth": 1.5, "scaling": 1.3, "mature": 1.1}

NORTH_STARS: dict[str, NorthStarMetric] = {
    "idea": NorthStarMetric(
        metric="First 10 Paying Customers",
        description="Validate that people will pay for your solution",
    ),
    "early": NorthStarMetric(
        metric="Monthly Recurring Revenue",
        description="Prove repeatable revenue generation",
    ),
    "growth": NorthStarMetric(
        metric="Net Revenue Retention",
        description="Revenue from existing customers should grow",
    ),
    "scaling": NorthStarMetric(
        metric="Revenue Per Employee",
        description="Efficiency must scale with growth",
    ),
    "mature": NorthStarMetric(
        metric="Total Addressable Market Captured",
        description="Market share and expansion metrics",
    ),
}


def _churn(i: BusinessIntake) -> float:
    return DEFAULT_CHURN_RATE if i.churn_rate is None else i.churn_rate


def _runway(i: BusinessIntake) -> float:
    return DEFAULT_RUNWAY_MONTHS if i.cash_runway_months is None else i.cash_runway_months


@dataclass(frozen=True)
class KPIDefinition:
    metric: str
    stages: frozenset[str]
    current: Callable[[BusinessIntake], float]
    target: Callable[[BusinessIntake, str], float]
    leading_indicators: tuple[str, ...]
    tracking_frequency: str
    lower_is_better: bool = False

    def evaluate(self, intake: BusinessIntake, stage: str, target_date: str) -> KPITarget | None:
        if stage not in self.stages:
            return None
        current = self.current(intake)
        target = self.target(intake, stage)
        if not (target > current or self.lower_is_better):
            return None
        return KPITarget(
            metric=self.metric,
            current_value=current,
            target_value=target,
            target_date=target_date,
            tracking_frequency=self.tracking_frequency,
            leading_indicators=self.leading_indicators,
            lower_is_better=self.lower_is_better,
        )


KPI_DEFINITIONS: tuple[KPIDefinition, ...] = (
    KPIDefinition(
        metric="Monthly Recurring Revenue",
        stages=frozenset({"early", "growth", "scaling", "mature"}),
        current=lambda i: i.revenue_monthly,
        target=lambda i, s: round_half_up(i.revenue_monthly * MRR_MULTIPLIER[s]),
        leading_indicators=("New deals in pipeline", "Qualified leads", "Demo bookings"),
        tracking_frequency="weekly",
    ),
    KPIDefinition(
        metric="Customer Count",
        stages=frozenset({"idea", "early", "growth"}),
        current=lambda i: i.customer_count,
        target=lambda i, s: round_half_up(i.customer_count * CUSTOMER_MULTIPLIER[s]),
        leading_indicators=("Trial signups", "Demo requests", "Inbound inquiries"),
        tracking_frequency="weekly",
    ),
    KPIDefinition(
        metric="Monthly Churn Rate (%)",
        stages=frozenset({"early", "growth", "scaling", "mature"}),
        current=_churn,
        target=lambda i, s: max(2, round_half_up(_churn(i) * 0.7)),
        leading_indicators=("NPS score", "Support tickets", "Feature usage", "Login frequency"),
        tracking_frequency="monthly",
        lower_is_better=True,
    ),
    KPIDefinition(
        metric="Revenue Per Employee",
        stages=frozenset({"growth", "scaling", "mature"}),
        current=lambda i: round_half_up(i.revenue_monthly / i.team_size),
        target=lambda i, s: round_half_up(i.revenue_monthly / i.team_size * 1.3),
        leading_indicators=("Productivity metrics", "Process efficiency", "Automation coverage"),
        tracking_frequency="monthly",
    ),
    KPIDefinition(
        # No conversion data in the intake; assumed baseline.
        metric="Lead-to-Customer Conversion Rate (%)",
        stages=frozenset({"early", "growth", "scaling"}),
        current=lambda i: 10,
        target=lambda i, s: 15,
        leading_indicators=("Demo-to-close rate", "Sales cycle length", "Proposal acceptance"),
        tracking_frequency="weekly",
    ),
    KPIDefinition(
        # Estimated from revenue.
        metric="Customer Acquisition Cost",
        stages=frozenset({"growth", "scaling", "mature"}),
        current=lambda i: round_half_up(i.revenue_monthly * 0.3),
        target=lambda i, s: round_half_up(i.revenue_monthly * 0.2),
        leading_indicators=("Cost per lead", "Sales efficiency", "Channel performance"),
        tracking_frequency="monthly",
        lower_is_better=True,
    ),
    KPIDefinition(
        metric="Net Promoter Score",
        stages=frozenset({"early", "growth", "scaling", "mature"}),
        current=lambda i: 30,
        target=lambda i, s: 50,
        leading_indicators=("Customer satisfaction surveys", "Referral rate", "Reviews"),
        tracking_frequency="monthly",
    ),
    KPIDefinition(
        metric="Cash Runway (Months)",
        stages=frozenset({"idea", "early", "growth"}),
        current=_runway,
        target=lambda i, s: max(12, _runway(i) + 6),
        leading_indicators=("Burn rate", "Revenue growth", "Receivables"),
        tracking_frequency="monthly",
    ),
)


class KPITargetSetter:
    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    def generate_targets(self, intake: BusinessIntake, stage: str) -> list[KPITarget]:
        """Targets for every KPI applicable to *stage* that has room to move."""
        target_date = days_from(self.clock(), TARGET_HORIZON_DAYS)
        targets = [
            t for t in (d.evaluate(intake, stage, target_date) for d in KPI_DEFINITIONS)
            if t is not None
        ]
        log.debug("KPI targets for stage %s: %s", stage, [t.metric for t in targets])
        return targets

    @staticmethod
    def north_star(stage: str) -> NorthStarMetric:
        return NORTH_STARS[stage]

    @staticmethod
    def project_trajectory(
        intake: BusinessIntake, targets: list[KPITarget],
    ) -> list[TrajectoryProjection]:
        """Extrapolate each metric three periods at a flat, trend-derived rate."""
        rate = TREND_GROWTH_RATE[intake.revenue_trend]
        projections = []
        for t in targets:
            projected = round_half_up(t.current_value * rate ** PROJECTION_PERIODS)
            on_track = projected <= t.target_value if t.lower_is_better else projected >= t.target_value
            projections.append(TrajectoryProjection(
                metric=t.metric, projected=projected, target=t.target_value, on_track=on_track,
            ))
        return projections

    @staticmethod
    def weekly_metrics(targets: list[KPITarget]) -> list[KPITarget]:
        return [t for t in targets if t.tracking_frequency in ("daily", "weekly")]

    @staticmethod
    def trajectory_health(projections: list[TrajectoryProjection]) -> TrajectoryHealth:
        """Share of metrics on track, as a 0-100 score with a coarse status."""
        if projections:
            pct = sum(p.on_track for p in projections) / len(projections) * 100
        else:
            pct = 50
        if pct < 50:
            status = "critical"
        elif pct < 75:
            status = "warning"
        else:
            status = "healthy"
        return TrajectoryHealth(score=round_half_up(pct), status=status)
