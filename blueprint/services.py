"""Shared business logic for the Blueprint API and MCP server."""
from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from blueprint.bottlenecks import BottleneckDetector
from blueprint.intake import INTAKE_QUESTIONS, calculate_health_score, parse_intake, validate_intake
from blueprint.kpis import KPITargetSetter
from blueprint.leverage import LeverageMapper
from blueprint.models import BusinessIntake, ExecutionPriority
from blueprint.priorities import ExecutionPriorityEngine
from blueprint.roadmap import THINGS_TO_IGNORE, RoadmapGenerator
from blueprint.schemas import BlueprintReport, DiagnosisOut, KPIOut, LeverageOut, StageOut
from blueprint.stage import NEXT_STAGE_REQUIREMENTS, STAGE_CHALLENGES, StageClassifier
from blueprint.utils import Clock, IdFactory, new_id, utc_now

log = logging.getLogger(__name__)

_classifier = StageClassifier()
_detector = BottleneckDetector()
_mapper = LeverageMapper()


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


def intake_questions(category: str | None = None) -> list[dict[str, Any]]:
    return [asdict(q) for q in INTAKE_QUESTIONS if category is None or q.category == category]


def check_intake(data: dict[str, Any]) -> dict[str, Any]:
    """Validate raw answers; include the health score when they are usable."""
    errors = validate_intake(data)
    if errors:
        return {"valid": False, "errors": errors, "health_score": None}
    intake = parse_intake(data)
    return {"valid": True, "errors": [], "health_score": calculate_health_score(intake)}


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def stage_overview(stage: str) -> StageOut:
    """Static reference material for a stage. Raises KeyError for unknown stages."""
    return StageOut(
        stage=stage,
        description=StageClassifier.describe(stage),
        typical_challenges=list(STAGE_CHALLENGES[stage]),
        next_stage_requirements=list(NEXT_STAGE_REQUIREMENTS[stage]),
        things_to_ignore=list(THINGS_TO_IGNORE[stage]),
        north_star=KPITargetSetter.north_star(stage),
    )


def diagnose(intake: BusinessIntake) -> DiagnosisOut:
    classification = _classifier.classify(intake)
    return DiagnosisOut(
        classification=classification,
        bottlenecks=_detector.detect(intake, classification.stage),
    )


def map_leverage(intake: BusinessIntake) -> LeverageOut:
    stage = _classifier.classify(intake).stage
    bottlenecks = _detector.detect(intake, stage)
    return LeverageOut(stage=stage, leverage_points=_mapper.identify(intake, stage, bottlenecks))


def kpi_report(intake: BusinessIntake, clock: Clock = utc_now) -> KPIOut:
    setter = KPITargetSetter(clock=clock)
    stage = _classifier.classify(intake).stage
    targets = setter.generate_targets(intake, stage)
    trajectory = setter.project_trajectory(intake, targets)
    return KPIOut(
        stage=stage,
        north_star=setter.north_star(stage),
        targets=targets,
        weekly=setter.weekly_metrics(targets),
        trajectory=trajectory,
        trajectory_health=setter.trajectory_health(trajectory),
    )


def reprioritize(
    priorities: list[ExecutionPriority], exclude_blocked: bool = False, focus_area: str | None = None,
) -> list[ExecutionPriority]:
    return ExecutionPriorityEngine.reprioritize(priorities, exclude_blocked=exclude_blocked, focus_area=focus_area)


# ---------------------------------------------------------------------------
# Full blueprint
# ---------------------------------------------------------------------------


def build_blueprint(
    intake: BusinessIntake, clock: Clock = utc_now, id_factory: IdFactory = new_id,
) -> BlueprintReport:
    """Run the whole pipeline for one intake.

    The clock and id factory are threaded through every component, so a fixed
    clock and a deterministic id factory make the report reproducible.
    """
    generator = RoadmapGenerator(
        classifier=_classifier, detector=_detector, mapper=_mapper,
        clock=clock, id_factory=id_factory,
    )
    engine = ExecutionPriorityEngine(clock=clock, id_factory=id_factory)
    setter = KPITargetSetter(clock=clock)

    classification = _classifier.classify(intake)
    roadmap = generator.generate(intake)
    priorities = engine.prioritize(roadmap)
    targets = setter.generate_targets(intake, roadmap.stage)
    trajectory = setter.project_trajectory(intake, targets)
    log.debug("Blueprint %s: %d priorities, %d KPI targets", roadmap.id, len(priorities), len(targets))

    return BlueprintReport(
        classification=classification,
        stage_description=StageClassifier.describe(roadmap.stage),
        north_star=setter.north_star(roadmap.stage),
        health_score=calculate_health_score(intake),
        roadmap=roadmap,
        priorities=priorities,
        todays_priority=engine.todays_priority(priorities),
        kpi_targets=targets,
        trajectory=trajectory,
        trajectory_health=setter.trajectory_health(trajectory),
    )
