"""Lifecycle stage classification.

Each stage owns a set of weighted boolean indicators.  The stage whose true
indicators add up to the highest weight wins; an exact tie goes to the stage
declared first (idea before early before growth, and so on).
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from blueprint.models import STAGES, BusinessIntake, StageClassification

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageIndicator:
    condition: Callable[[BusinessIntake], bool]
    weight: int
    description: str


def _churn_known_below(limit: float) -> Callable[[BusinessIntake], bool]:
    return lambda i: i.churn_rate is not None and i.churn_rate < limit


STAGE_INDICATORS: dict[str, tuple[StageIndicator, ...]] = {
    "idea": (
        StageIndicator(lambda i: i.revenue_monthly == 0, 3, "No revenue yet"),
        StageIndicator(lambda i: i.customer_count == 0, 3, "No customers yet"),
        StageIndicator(lambda i: i.team_size == 1, 1, "Solo founder"),
    ),
    "early": (
        StageIndicator(lambda i: 0 < i.revenue_monthly < 10_000, 2, "Early revenue stage"),
        StageIndicator(lambda i: 0 < i.customer_count < 20, 2, "First customers acquired"),
        StageIndicator(lambda i: i.team_size <= 3, 1, "Small founding team"),
        StageIndicator(
            lambda i: i.churn_rate is None or i.churn_rate > 10, 1, "Still finding product-market fit",
        ),
    ),
    "growth": (
        StageIndicator(lambda i: 10_000 <= i.revenue_monthly < 100_000, 2, "Growing revenue"),
        StageIndicator(lambda i: 20 <= i.customer_count < 200, 2, "Growing customer base"),
        StageIndicator(lambda i: i.revenue_trend == "growing", 2, "Revenue trending upward"),
        StageIndicator(lambda i: 3 < i.team_size <= 15, 1, "Team scaling"),
    ),
    "scaling": (
        StageIndicator(lambda i: 100_000 <= i.revenue_monthly < 1_000_000, 2, "Significant revenue"),
        StageIndicator(lambda i: i.customer_count >= 200, 2, "Large customer base"),
        StageIndicator(lambda i: 15 < i.team_size <= 50, 1, "Scaling team"),
        StageIndicator(_churn_known_below(5), 2, "Good retention"),
    ),
    "mature": (
        StageIndicator(lambda i: i.revenue_monthly >= 1_000_000, 3, "Significant revenue scale"),
        StageIndicator(lambda i: i.team_size > 50, 2, "Large organization"),
        StageIndicator(_churn_known_below(3), 2, "Excellent retention"),
        StageIndicator(lambda i: i.revenue_trend == "stable", 1, "Stable mature business"),
    ),
}

STAGE_CHALLENGES: dict[str, tuple[str, ...]] = {
    "idea": (
        "Validating the problem exists",
        "Finding initial customers",
        "Building MVP quickly",
        "Managing limited resources",
    ),
    "early": (
        "Achieving product-market fit",
        "Finding repeatable sales process",
        "Managing founder burnout",
        "Deciding what NOT to build",
    ),
    "growth": (
        "Scaling customer acquisition",
        "Hiring and onboarding effectively",
        "Maintaining quality at scale",
        "Building systems and processes",
    ),
    "scaling": (
        "Maintaining culture during growth",
        "Building management layers",
        "Optimizing unit economics",
        "Preventing founder bottlenecks",
    ),
    "mature": (
        "Avoiding complacency",
        "Finding new growth vectors",
        "Managing organizational complexity",
        "Fending off competition",
    ),
}

NEXT_STAGE_REQUIREMENTS: dict[str, tuple[str, ...]] = {
    "idea": (
        "Get your first paying customer",
        "Validate problem-solution fit",
        "Build a working prototype",
    ),
    "early": (
        "Reach $10K MRR",
        "Achieve <10% monthly churn",
        "Find repeatable acquisition channel",
    ),
    "growth": (
        "Reach $100K MRR",
        "Build team to 15+ people",
        "Document core processes",
    ),
    "scaling": (
        "Reach $1M+ MRR",
        "Establish professional management",
        "Achieve market leadership position",
    ),
    "mature": (
        "Diversify revenue streams",
        "Enter new markets",
        "Consider strategic options (M&A, IPO)",
    ),
}

STAGE_DESCRIPTIONS: dict[str, str] = {
    "idea": "Pre-revenue stage focused on validation and building MVP",
    "early": "First customers acquired, seeking product-market fit",
    "growth": "Found traction, focused on scaling acquisition",
    "scaling": "Proven model, building organization and processes",
    "mature": "Established business optimizing for efficiency and new opportunities",
}

TOTAL_INDICATOR_WEIGHT = sum(ind.weight for inds in STAGE_INDICATORS.values() for ind in inds)


class StageClassifier:
    """Score an intake against every stage and return the best fit."""

    def score(self, intake: BusinessIntake) -> dict[str, tuple[int, list[str]]]:
        """Return ``{stage: (score, matched indicator descriptions)}`` in stage order."""
        scores: dict[str, tuple[int, list[str]]] = {}
        for stage in STAGES:
            total = 0
            matched: list[str] = []
            for indicator in STAGE_INDICATORS[stage]:
                if indicator.condition(intake):
                    total += indicator.weight
                    matched.append(indicator.description)
            scores[stage] = (total, matched)
        return scores

    def classify(self, intake: BusinessIntake) -> StageClassification:
        scores = self.score(intake)
        # max() keeps the first maximal element, which is the earlier stage.
        stage = max(STAGES, key=lambda s: scores[s][0])
        best, matched = scores[stage]
        confidence = min(1.0, best / (TOTAL_INDICATOR_WEIGHT / len(STAGES)))
        log.debug(
            "Stage scores %s -> %s (%.2f)",
            {s: v[0] for s, v in scores.items()}, stage, confidence,
        )
        return StageClassification(
            stage=stage,
            confidence=round(confidence, 2),
            indicators=tuple(matched),
            typical_challenges=STAGE_CHALLENGES[stage],
            next_stage_requirements=NEXT_STAGE_REQUIREMENTS[stage],
        )

    @staticmethod
    def describe(stage: str) -> str:
        return STAGE_DESCRIPTIONS[stage]
