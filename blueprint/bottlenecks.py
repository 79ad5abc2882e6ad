"""Bottleneck detection: a registry of independent diagnostic rules.

Architecture
------------
Each rule is a :class:`BottleneckRule` holding its own predicate, severity
function, evidence builder and action builder.  Rules share one entry point,
``rule.evaluate(intake, stage)``, which returns a :class:`Bottleneck` when the
rule fires and ``None`` otherwise, so every rule can be exercised alone via
``RULES_BY_ID``.

Impact score = ``SEVERITY_SCORES[severity] * impact_multiplier``, rounded.
Several rules may fire at once; :meth:`BottleneckDetector.detect` returns all
findings sorted by impact score, highest first.

Optional intake fields (churn rate, runway) are read with explicit ``None``
checks inside each rule; a missing value never raises.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from blueprint.models import Bottleneck, BusinessIntake
from blueprint.utils import round_half_up

log = logging.getLogger(__name__)

SEVERITY_SCORES = {"low": 25, "medium": 50, "high": 75, "critical": 100}

CATEGORY_DESCRIPTIONS = {
    "product_market_fit": "Product-market fit issues",
    "lead_generation": "Not enough qualified leads",
    "sales_conversion": "Poor lead-to-customer conversion",
    "operations": "Operational inefficiencies",
    "team": "Team and talent constraints",
    "capital": "Cash and funding constraints",
    "market_position": "Competitive positioning issues",
    "retention": "Customer retention problems",
}


def impact_score(severity: str, multiplier: float) -> int:
    return round_half_up(SEVERITY_SCORES[severity] * multiplier)


@dataclass(frozen=True)
class BottleneckRule:
    id: str
    category: str
    title: str
    description: str
    impact_multiplier: float
    condition: Callable[[BusinessIntake, str], bool]
    severity: Callable[[BusinessIntake], str]
    evidence: Callable[[BusinessIntake], list[str]]
    actions: Callable[[BusinessIntake, str], list[str]]

    def evaluate(self, intake: BusinessIntake, stage: str) -> Bottleneck | None:
        if not self.condition(intake, stage):
            return None
        severity = self.severity(intake)
        return Bottleneck(
            id=self.id,
            category=self.category,
            severity=severity,
            title=self.title,
            description=self.description,
            impact_score=impact_score(severity, self.impact_multiplier),
            evidence=tuple(self.evidence(intake)),
            recommended_actions=tuple(self.actions(intake, stage)),
        )


# ---------------------------------------------------------------------------
# Rule helpers
# ---------------------------------------------------------------------------


def _has(intake: BusinessIntake, challenge: str) -> bool:
    return challenge in intake.main_challenges


def _declining(intake: BusinessIntake) -> bool:
    return intake.revenue_trend == "declining"


def _critical_if_declining(intake: BusinessIntake) -> str:
    return "critical" if _declining(intake) else "high"


def _churn_severity(intake: BusinessIntake) -> str:
    churn = intake.churn_rate
    if (churn is not None and churn > 15) or _declining(intake):
        return "critical"
    return "high"


def _runway_severity(intake: BusinessIntake) -> str:
    runway = intake.cash_runway_months
    if (runway is not None and runway < 3) or _declining(intake):
        return "critical"
    return "high"


def _churn_evidence(intake: BusinessIntake) -> list[str]:
    evidence = ["User identified churn as a challenge"]
    if intake.churn_rate is not None:
        evidence.append(f"Current churn rate: {intake.churn_rate:g}%")
    return evidence


def _cash_evidence(intake: BusinessIntake) -> list[str]:
    evidence = []
    if intake.cash_runway_months is not None:
        evidence.append(f"Cash runway: {intake.cash_runway_months:g} months")
    evidence.append("Financial constraints limiting strategic options")
    return evidence


def _conversion_actions(intake: BusinessIntake, stage: str) -> list[str]:
    actions = [
        "Review and optimize sales messaging",
        "Analyze drop-off points in sales process",
        "Test new pricing or offer structures",
    ]
    if stage == "early":
        actions.append("Conduct customer interviews to understand objections")
    return actions


def _cash_actions(intake: BusinessIntake, stage: str) -> list[str]:
    actions = [
        "Cut non-essential expenses immediately",
        "Accelerate receivables collection",
        "Explore bridge financing options",
    ]
    if stage in ("growth", "scaling"):
        actions.append("Prepare fundraising materials")
    return actions


def _team_actions(intake: BusinessIntake, stage: str) -> list[str]:
    actions = [
        "Document key roles and responsibilities",
        "Review compensation against market rates",
    ]
    if stage in ("growth", "scaling"):
        actions.append("Implement structured hiring process")
        actions.append("Consider fractional or contract talent")
    return actions


def _pmf_evidence(intake: BusinessIntake) -> list[str]:
    return [
        f"Revenue trend: {intake.revenue_trend}",
        f"Churn rate: {intake.churn_rate:g}%" if intake.churn_rate is not None else "Churn rate unknown",
        "Early stage without clear growth trajectory",
    ]


# ---------------------------------------------------------------------------
# Registry (evaluation order; ties in impact keep this order)
# ---------------------------------------------------------------------------

BOTTLENECK_RULES: tuple[BottleneckRule, ...] = (
    BottleneckRule(
        id="low_leads",
        category="lead_generation",
        title="Lead Generation Bottleneck",
        description="Your business is not generating enough qualified leads to sustain growth.",
        impact_multiplier=0.9,
        condition=lambda i, s: s != "idea" and i.customer_count < 50 and _has(i, "Not enough leads"),
        severity=_critical_if_declining,
        evidence=lambda i: [
            f"Current customer count: {i.customer_count}",
            f"Primary channel: {i.primary_channel}",
            "User identified lead generation as a challenge",
        ],
        actions=lambda i, s: [
            "Audit current acquisition channel performance",
            "Test 2-3 new acquisition channels",
            "Implement lead magnet strategy",
            f"Optimize {i.primary_channel} channel",
        ],
    ),
    BottleneckRule(
        id="low_conversion",
        category="sales_conversion",
        title="Sales Conversion Bottleneck",
        description="Leads are not converting to customers at an acceptable rate.",
        impact_multiplier=0.85,
        condition=lambda i, s: _has(i, "Low conversion rates"),
        severity=_critical_if_declining,
        evidence=lambda i: [
            "User identified low conversion as a challenge",
            "Indicates potential offer or sales process issues",
        ],
        actions=_conversion_actions,
    ),
    BottleneckRule(
        id="high_churn",
        category="retention",
        title="Customer Retention Bottleneck",
        description="Too many customers are leaving, undermining growth efforts.",
        impact_multiplier=0.95,
        condition=lambda i, s: (i.churn_rate is not None and i.churn_rate > 8) or _has(i, "High churn"),
        severity=_churn_severity,
        evidence=_churn_evidence,
        actions=lambda i, s: [
            "Implement churn prediction system",
            "Create customer success program",
            "Analyze churned customer patterns",
            "Improve onboarding experience",
        ],
    ),
    BottleneckRule(
        id="cash_crisis",
        category="capital",
        title="Capital & Cash Flow Bottleneck",
        description="Limited runway is constraining growth and creating existential risk.",
        impact_multiplier=1.0,
        condition=lambda i, s: (
            (i.cash_runway_months is not None and i.cash_runway_months < 6) or _has(i, "Cash flow")
        ),
        severity=_runway_severity,
        evidence=_cash_evidence,
        actions=_cash_actions,
    ),
    BottleneckRule(
        id="team_constraint",
        category="team",
        title="Team & Talent Bottleneck",
        description="Difficulty hiring or team issues are slowing execution.",
        impact_multiplier=0.7,
        condition=lambda i, s: _has(i, "Hiring/team issues"),
        severity=lambda i: "medium",
        evidence=lambda i: [
            "User identified team issues as a challenge",
            "May indicate culture, compensation, or role clarity issues",
        ],
        actions=_team_actions,
    ),
    BottleneckRule(
        id="ops_chaos",
        category="operations",
        title="Operations Bottleneck",
        description="Lack of systems and processes is creating chaos and limiting scale.",
        impact_multiplier=0.65,
        condition=lambda i, s: _has(i, "Scaling operations") or _has(i, "Time management"),
        severity=lambda i: "high" if i.team_size > 10 else "medium",
        evidence=lambda i: [
            f"Team size: {i.team_size}",
            "Operational challenges identified",
            "May indicate founder bottleneck",
        ],
        actions=lambda i, s: [
            "Document top 3 repeated processes",
            "Implement project management system",
            "Create delegation framework",
            "Identify automation opportunities",
        ],
    ),
    BottleneckRule(
        id="pmf_missing",
        category="product_market_fit",
        title="Product-Market Fit Not Achieved",
        description="Signs indicate you haven't found true product-market fit yet.",
        impact_multiplier=1.0,
        condition=lambda i, s: (
            s == "early"
            and (i.churn_rate is None or i.churn_rate > 10)
            and i.revenue_trend != "growing"
        ),
        severity=lambda i: "critical",
        evidence=_pmf_evidence,
        actions=lambda i, s: [
            "Talk to 10 customers this week",
            "Identify your most successful customer segment",
            "Focus on one use case deeply",
            "Consider pivoting features or positioning",
        ],
    ),
    BottleneckRule(
        id="competition_threat",
        category="market_position",
        title="Competitive Pressure",
        description="Competition is eroding market position or pricing power.",
        impact_multiplier=0.6,
        condition=lambda i, s: _has(i, "Competition"),
        severity=lambda i: "medium",
        evidence=lambda i: [
            "User identified competition as a challenge",
            "May require differentiation strategy",
        ],
        actions=lambda i, s: [
            "Map competitor positioning",
            "Identify underserved customer segments",
            "Strengthen unique value proposition",
            "Consider strategic partnerships",
        ],
    ),
)

RULES_BY_ID: dict[str, BottleneckRule] = {r.id: r for r in BOTTLENECK_RULES}


class BottleneckDetector:
    def __init__(self, rules: tuple[BottleneckRule, ...] = BOTTLENECK_RULES):
        self.rules = rules

    def detect(self, intake: BusinessIntake, stage: str) -> list[Bottleneck]:
        """Evaluate every rule and return findings sorted by impact score, highest first."""
        found = [b for b in (rule.evaluate(intake, stage) for rule in self.rules) if b is not None]
        found.sort(key=lambda b: b.impact_score, reverse=True)
        log.debug("Bottlenecks for stage %s: %s", stage, [(b.id, b.impact_score) for b in found])
        return found

    def get_primary_bottleneck(self, intake: BusinessIntake, stage: str) -> Bottleneck | None:
        found = self.detect(intake, stage)
        return found[0] if found else None

    @staticmethod
    def describe_category(category: str) -> str:
        return CATEGORY_DESCRIPTIONS[category]
