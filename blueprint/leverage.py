"""Leverage mapping: filter a catalog of opportunities and rank what survives.

An opportunity survives when the stage is one it applies to and its gating
condition holds.  Its impact is then discounted by how well it matches the
detected bottlenecks:

- ``1.0`` if any of its bottleneck ids was detected,
- ``0.5`` if it declares no bottleneck affinity (a stage-only play),
- ``0.3`` otherwise.

Ranking is ``impact_potential * EFFORT_MULTIPLIER[effort]``, highest first.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from blueprint.models import Bottleneck, BusinessIntake, LeveragePoint
from blueprint.utils import round_half_up

log = logging.getLogger(__name__)

EFFORT_MULTIPLIER = {"low": 3, "medium": 2, "high": 1}
MIN_RELEVANCE = 0.3

TYPE_DESCRIPTIONS = {
    "quick_win": "Immediate impact with minimal effort",
    "strategic": "Medium-term plays that compound",
    "foundational": "Investments that enable future growth",
    "moonshot": "High-risk, high-reward opportunities",
}


def _always(intake: BusinessIntake) -> bool:
    return True


def _fixed(value: int) -> Callable[[BusinessIntake], int]:
    return lambda i: value


@dataclass(frozen=True)
class LeverageOpportunity:
    id: str
    type: str
    title: str
    description: str
    stages: frozenset[str]
    bottleneck_ids: frozenset[str]
    impact: Callable[[BusinessIntake], int]
    effort: str
    time_to_impact_days: int
    resources: Callable[[BusinessIntake], list[str]]
    dependencies: tuple[str, ...] = ()
    condition: Callable[[BusinessIntake], bool] = _always

    def relevance(self, detected_ids: set[str]) -> float:
        if not self.bottleneck_ids:
            return 0.5
        return 1.0 if self.bottleneck_ids & detected_ids else 0.3

    def evaluate(
        self, intake: BusinessIntake, stage: str, detected_ids: set[str],
    ) -> LeveragePoint | None:
        if stage not in self.stages or not self.condition(intake):
            return None
        relevance = self.relevance(detected_ids)
        if relevance < MIN_RELEVANCE:
            return None
        return LeveragePoint(
            id=self.id,
            type=self.type,
            title=self.title,
            description=self.description,
            impact_potential=round_half_up(self.impact(intake) * relevance),
            effort_required=self.effort,
            time_to_impact_days=self.time_to_impact_days,
            dependencies=self.dependencies,
            resources_needed=tuple(self.resources(intake)),
        )


def _stages(*names: str) -> frozenset[str]:
    return frozenset(names)


LEVERAGE_CATALOG: tuple[LeverageOpportunity, ...] = (
    # Quick wins
    LeverageOpportunity(
        id="price_increase",
        type="quick_win",
        title="Price Optimization",
        description="Test 20-50% price increase with new customers",
        stages=_stages("early", "growth", "scaling"),
        bottleneck_ids=frozenset({"cash_crisis", "low_conversion"}),
        impact=lambda i: 85 if i.customer_count > 50 else 70,
        effort="low",
        time_to_impact_days=7,
        resources=lambda i: ["Pricing strategy document", "A/B testing tool"],
    ),
    LeverageOpportunity(
        id="reactivation_campaign",
        type="quick_win",
        title="Customer Reactivation Campaign",
        description="Win back churned customers with targeted offers",
        stages=_stages("growth", "scaling", "mature"),
        bottleneck_ids=frozenset({"high_churn", "low_leads"}),
        condition=lambda i: i.customer_count > 20,
        impact=_fixed(65),
        effort="low",
        time_to_impact_days=14,
        dependencies=("Customer list with emails",),
        resources=lambda i: ["Email marketing tool", "Win-back offer"],
    ),
    LeverageOpportunity(
        id="referral_program",
        type="quick_win",
        title="Launch Referral Program",
        description="Turn happy customers into acquisition channel",
        stages=_stages("early", "growth", "scaling"),
        bottleneck_ids=frozenset({"low_leads"}),
        condition=lambda i: i.customer_count > 10,
        impact=_fixed(70),
        effort="medium",
        time_to_impact_days=21,
        dependencies=("Customer satisfaction measurement",),
        resources=lambda i: ["Referral tracking system", "Incentive structure"],
    ),
    # Strategic
    LeverageOpportunity(
        id="channel_expansion",
        type="strategic",
        title="New Acquisition Channel",
        description="Add second scalable acquisition channel",
        stages=_stages("growth", "scaling"),
        bottleneck_ids=frozenset({"low_leads"}),
        impact=_fixed(80),
        effort="high",
        time_to_impact_days=60,
        dependencies=("Primary channel at capacity",),
        resources=lambda i: [
            "Budget for testing",
            "Content marketing resources" if i.primary_channel == "paid_ads" else "Paid ads budget",
        ],
    ),
    LeverageOpportunity(
        id="upsell_path",
        type="strategic",
        title="Create Upsell/Cross-sell Path",
        description="Increase revenue per customer through additional offerings",
        stages=_stages("growth", "scaling", "mature"),
        bottleneck_ids=frozenset({"low_conversion", "high_churn"}),
        condition=lambda i: i.customer_count > 30,
        impact=lambda i: 85 if i.business_model == "saas" else 70,
        effort="medium",
        time_to_impact_days=45,
        dependencies=("Core product stable",),
        resources=lambda i: ["Product expansion plan", "Pricing tiers"],
    ),
    LeverageOpportunity(
        id="partnership_channel",
        type="strategic",
        title="Strategic Partnerships",
        description="Build partnership channel for distribution",
        stages=_stages("growth", "scaling", "mature"),
        bottleneck_ids=frozenset({"low_leads", "competition_threat"}),
        condition=lambda i: i.revenue_monthly > 20_000,
        impact=_fixed(75),
        effort="high",
        time_to_impact_days=90,
        dependencies=("Clear partner value proposition",),
        resources=lambda i: ["Partner program materials", "Partner success resources"],
    ),
    # Foundational
    LeverageOpportunity(
        id="sales_process",
        type="foundational",
        title="Systematize Sales Process",
        description="Document and optimize repeatable sales process",
        stages=_stages("early", "growth"),
        bottleneck_ids=frozenset({"low_conversion", "pmf_missing"}),
        impact=_fixed(80),
        effort="medium",
        time_to_impact_days=30,
        resources=lambda i: ["CRM system", "Sales playbook template"],
    ),
    LeverageOpportunity(
        id="onboarding_optimization",
        type="foundational",
        title="Optimize Customer Onboarding",
        description="Reduce time-to-value for new customers",
        stages=_stages("early", "growth", "scaling"),
        bottleneck_ids=frozenset({"high_churn", "low_conversion"}),
        impact=_fixed(75),
        effort="medium",
        time_to_impact_days=45,
        dependencies=("Customer journey mapped",),
        resources=lambda i: ["Onboarding automation", "Success metrics"],
    ),
    LeverageOpportunity(
        id="hire_key_role",
        type="foundational",
        title="Hire Key Leverage Role",
        description="Add role that unblocks founder and enables scale",
        stages=_stages("growth", "scaling"),
        bottleneck_ids=frozenset({"team_constraint", "ops_chaos"}),
        condition=lambda i: i.team_size > 3,
        impact=_fixed(85),
        effort="high",
        time_to_impact_days=60,
        dependencies=("Role definition", "Budget allocation"),
        resources=lambda i: ["Job description", "Hiring process", "Onboarding plan"],
    ),
    # Moonshots
    LeverageOpportunity(
        id="new_market",
        type="moonshot",
        title="Enter Adjacent Market",
        description="Expand to new customer segment or geography",
        stages=_stages("scaling", "mature"),
        bottleneck_ids=frozenset({"competition_threat"}),
        condition=lambda i: i.revenue_monthly > 100_000,
        impact=_fixed(90),
        effort="high",
        time_to_impact_days=180,
        dependencies=("Core market dominance", "Resources for expansion"),
        resources=lambda i: ["Market research", "Local expertise", "Expansion budget"],
    ),
    LeverageOpportunity(
        id="product_line_expansion",
        type="moonshot",
        title="Launch New Product Line",
        description="Create new revenue stream with complementary product",
        stages=_stages("scaling", "mature"),
        bottleneck_ids=frozenset(),
        condition=lambda i: i.revenue_monthly > 50_000,
        impact=_fixed(85),
        effort="high",
        time_to_impact_days=120,
        dependencies=("Strong core product", "Customer insights"),
        resources=lambda i: ["Product development team", "Launch budget"],
    ),
)

CATALOG_BY_ID: dict[str, LeverageOpportunity] = {o.id: o for o in LEVERAGE_CATALOG}


def leverage_rank(point: LeveragePoint) -> int:
    return point.impact_potential * EFFORT_MULTIPLIER[point.effort_required]


class LeverageMapper:
    def __init__(self, catalog: tuple[LeverageOpportunity, ...] = LEVERAGE_CATALOG):
        self.catalog = catalog

    def identify(
        self, intake: BusinessIntake, stage: str, bottlenecks: Iterable[Bottleneck],
    ) -> list[LeveragePoint]:
        detected_ids = {b.id for b in bottlenecks}
        points = [
            p for p in (opp.evaluate(intake, stage, detected_ids) for opp in self.catalog)
            if p is not None
        ]
        points.sort(key=leverage_rank, reverse=True)
        log.debug("Leverage points for stage %s: %s", stage, [(p.id, p.impact_potential) for p in points])
        return points

    @staticmethod
    def describe_type(leverage_type: str) -> str:
        return TYPE_DESCRIPTIONS[leverage_type]
