"""Roadmap generation: compose stage, bottlenecks and leverage into a 90-day plan.

The generator never fails for a valid intake.  When no bottleneck fires it
substitutes :data:`DEFAULT_BOTTLENECK` so the milestone templates always have
a subject.  ``success_probability`` is a sum of fixed adjustments clamped to
10-90; callers should present it as a heuristic confidence, never as a
measured likelihood.
"""
from __future__ import annotations

import logging

from blueprint.bottlenecks import BottleneckDetector
from blueprint.leverage import LeverageMapper
from blueprint.models import (
    Bottleneck,
    BusinessIntake,
    GrowthRoadmap,
    LeveragePoint,
    RoadmapMilestone,
    StageClassification,
)
from blueprint.stage import StageClassifier
from blueprint.utils import Clock, IdFactory, new_id, round_half_up, utc_now

log = logging.getLogger(__name__)

MAX_LEVERAGE_POINTS = 5
MAX_RISK_FACTORS = 6

DEFAULT_BOTTLENECK = Bottleneck(
    id="general_growth",
    category="lead_generation",
    severity="medium",
    title="General Growth Optimization",
    description="No critical bottleneck identified. Focus on optimization.",
    impact_score=50,
    evidence=("No major issues detected",),
    recommended_actions=("Continue current trajectory", "Look for optimization opportunities"),
)

THINGS_TO_IGNORE: dict[str, tuple[str, ...]] = {
    "idea": (
        "Perfect branding and visual identity",
        "Complex pricing strategies",
        "Building for scale",
        "Most marketing channels",
        "Hiring before validation",
    ),
    "early": (
        "Broad marketing campaigns",
        "Building extensive features",
        "Premature optimization",
        "Complex org structures",
        "Enterprise sales motions",
    ),
    "growth": (
        "Chasing every opportunity",
        "Over-hiring",
        "Premature international expansion",
        "Building everything in-house",
        "Ignoring technical debt entirely",
    ),
    "scaling": (
        "Founder-led sales exclusively",
        "Manual processes that should be automated",
        "Uniform approach to all customer segments",
        "Ignoring culture development",
    ),
    "mature": (
        "Complacent optimization",
        "Ignoring disruption signals",
        "Over-reliance on existing channels",
        "Resistance to organizational change",
    ),
}

RISK_FACTORS: dict[str, tuple[str, ...]] = {
    "low_leads": ("Over-investing in wrong channels", "Ignoring lead quality", "CAC inflation"),
    "low_conversion": ("Changing too many variables", "Ignoring customer feedback", "Price race to bottom"),
    "high_churn": ("Focusing on symptoms not causes", "Over-promising to retain", "Ignoring product issues"),
    "cash_crisis": ("Dilutive financing", "Cutting growth investments", "Desperation deals"),
    "team_constraint": ("Bad hires under pressure", "Over-hiring", "Culture degradation"),
    "ops_chaos": ("Over-engineering processes", "Tool sprawl", "Analysis paralysis"),
    "pmf_missing": ("Premature scaling", "Ignoring user feedback", "Building for investors not users"),
    "competition_threat": ("Reactive strategy", "Price wars", "Feature copying"),
}


def stage_metrics(stage: str, intake: BusinessIntake) -> tuple[str, ...]:
    """Stage-specific success metrics used by the week 5 and week 9 milestones."""
    if stage == "idea":
        return ("First paying customer", "Product validation complete", "10 customer conversations")
    if stage == "early":
        return ("50% revenue increase", "Churn under 8%", "Repeatable sales process documented")
    if stage == "growth":
        projected_k = round_half_up(intake.revenue_monthly * 1.5 / 1000)
        return (f"Revenue > ${projected_k}k MRR", "CAC/LTV ratio improved", "Second channel producing")
    if stage == "scaling":
        return ("Team efficiency improved", "Processes documented", "Management layer operational")
    return ("New revenue stream launched", "Market share protected", "Operational efficiency gains")


def compile_risk_factors(bottlenecks: list[Bottleneck]) -> tuple[str, ...]:
    """First two risk phrases of each of the top three bottlenecks, deduplicated, capped at six."""
    risks: list[str] = []
    for b in bottlenecks[:3]:
        risks.extend(RISK_FACTORS.get(b.id, ())[:2])
    return tuple(dict.fromkeys(risks))[:MAX_RISK_FACTORS]


def success_probability(
    intake: BusinessIntake,
    classification: StageClassification,
    bottlenecks: list[Bottleneck],
    leverage_points: list[LeveragePoint],
) -> int:
    runway = intake.cash_runway_months
    p = 50
    if intake.revenue_trend == "growing":
        p += 15
    if classification.confidence > 0.7:
        p += 5
    if any(lp.type == "quick_win" for lp in leverage_points):
        p += 10
    if runway is not None and runway > 12:
        p += 10
    if len(bottlenecks) < 3:
        p += 5

    if intake.revenue_trend == "declining":
        p -= 20
    if any(b.severity == "critical" for b in bottlenecks):
        p -= 15
    if runway is not None and runway < 6:
        p -= 15
    if len(bottlenecks) > 4:
        p -= 10
    return max(10, min(90, p))


class RoadmapGenerator:
    """Run classifier, detector and mapper, then assemble a :class:`GrowthRoadmap`."""

    def __init__(
        self,
        classifier: StageClassifier | None = None,
        detector: BottleneckDetector | None = None,
        mapper: LeverageMapper | None = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
    ):
        self.classifier = classifier or StageClassifier()
        self.detector = detector or BottleneckDetector()
        self.mapper = mapper or LeverageMapper()
        self.clock = clock
        self.id_factory = id_factory

    def generate(self, intake: BusinessIntake) -> GrowthRoadmap:
        classification = self.classifier.classify(intake)
        stage = classification.stage
        bottlenecks = self.detector.detect(intake, stage)
        if bottlenecks:
            primary = bottlenecks[0]
        else:
            log.warning("No bottleneck detected for stage %s, using %s", stage, DEFAULT_BOTTLENECK.id)
            primary = DEFAULT_BOTTLENECK
        leverage_points = self.mapper.identify(intake, stage, bottlenecks)

        roadmap = GrowthRoadmap(
            id=self.id_factory(),
            client_id=intake.client_id,
            stage=stage,
            classification_confidence=classification.confidence,
            primary_bottleneck=primary,
            bottlenecks=tuple(bottlenecks),
            leverage_points=tuple(leverage_points[:MAX_LEVERAGE_POINTS]),
            milestones=self.build_milestones(intake, stage, primary, leverage_points),
            things_to_ignore=THINGS_TO_IGNORE[stage],
            risk_factors=compile_risk_factors(bottlenecks),
            success_probability=success_probability(intake, classification, bottlenecks, leverage_points),
            created_at=self.clock().isoformat(),
        )
        log.info(
            "Generated roadmap %s: stage=%s primary=%s leverage=%d success=%d",
            roadmap.id, stage, primary.id, len(roadmap.leverage_points), roadmap.success_probability,
        )
        return roadmap

    def build_milestones(
        self,
        intake: BusinessIntake,
        stage: str,
        bottleneck: Bottleneck,
        leverage_points: list[LeveragePoint],
    ) -> tuple[RoadmapMilestone, ...]:
        quick_wins = [lp for lp in leverage_points if lp.type == "quick_win"][:2]
        strategic = [lp for lp in leverage_points if lp.type == "strategic"][:2]
        foundational = [lp for lp in leverage_points if lp.type == "foundational"][:1]

        def resources(points: list[LeveragePoint], per_point: int | None = None) -> list[str]:
            return [r for p in points for r in p.resources_needed[:per_point]]

        week1 = RoadmapMilestone(
            id=self.id_factory(),
            week=1,
            title="Foundation & Quick Wins",
            objectives=(
                "Complete business assessment",
                f"Address {bottleneck.category} bottleneck",
                *(qw.title for qw in quick_wins[:1]),
            ),
            key_actions=(
                *bottleneck.recommended_actions[:2],
                *resources(quick_wins)[:2],
            ),
            success_metrics=(
                "Assessment complete",
                "First quick win implemented",
                "Team aligned on priorities",
            ),
        )
        week3 = RoadmapMilestone(
            id=self.id_factory(),
            week=3,
            title="Execution Sprint",
            objectives=(
                "Complete remaining quick wins",
                "Begin strategic initiatives",
                "Establish measurement baseline",
            ),
            key_actions=(
                *resources(quick_wins[1:], 1),
                *resources(strategic[:1], 2),
                "Set up tracking dashboards",
            ),
            success_metrics=(
                "All quick wins live",
                "Strategic initiative kicked off",
                "KPIs baselined",
            ),
            dependencies=("Week 1 complete",),
        )
        week5 = RoadmapMilestone(
            id=self.id_factory(),
            week=5,
            title="Strategic Acceleration",
            objectives=(
                "Scale what works",
                "Complete first strategic initiative",
                "Begin foundational investments",
            ),
            key_actions=(
                *resources(strategic, 2),
                *resources(foundational, 2),
                "Double down on winning tactics",
            ),
            success_metrics=stage_metrics(stage, intake),
            dependencies=("Week 3 assessment",),
        )
        week9 = RoadmapMilestone(
            id=self.id_factory(),
            week=9,
            title="Optimization & Next Phase",
            objectives=(
                "Optimize performing initiatives",
                "Kill underperforming experiments",
                "Plan next quarter priorities",
            ),
            key_actions=(
                "Performance review all initiatives",
                "Update growth model",
                "Prepare next 90-day plan",
                "Document learnings",
            ),
            success_metrics=(
                *stage_metrics(stage, intake),
                "Key bottleneck resolved",
                "Next phase planned",
            ),
            dependencies=("Week 5 execution",),
        )
        return (week1, week3, week5, week9)
