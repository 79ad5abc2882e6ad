"""Pydantic request/response schemas for the Blueprint API."""
from __future__ import annotations

from pydantic import BaseModel

from blueprint.models import (
    Bottleneck,
    ExecutionPriority,
    GrowthRoadmap,
    KPITarget,
    LeveragePoint,
    NorthStarMetric,
    StageClassification,
    TrajectoryHealth,
    TrajectoryProjection,
)


class IntakeQuestionOut(BaseModel):
    id: str
    category: str
    question: str
    type: str
    required: bool
    options: list[str] = []


class IntakeValidationOut(BaseModel):
    valid: bool
    errors: list[str] = []
    health_score: int | None = None


class StageOut(BaseModel):
    stage: str
    description: str
    typical_challenges: list[str]
    next_stage_requirements: list[str]
    things_to_ignore: list[str]
    north_star: NorthStarMetric


class DiagnosisOut(BaseModel):
    classification: StageClassification
    bottlenecks: list[Bottleneck] = []


class LeverageOut(BaseModel):
    stage: str
    leverage_points: list[LeveragePoint] = []


class KPIOut(BaseModel):
    stage: str
    north_star: NorthStarMetric
    targets: list[KPITarget] = []
    weekly: list[KPITarget] = []
    trajectory: list[TrajectoryProjection] = []
    trajectory_health: TrajectoryHealth


class BlueprintReport(BaseModel):
    """Everything the engine derives from one intake.

    ``roadmap.success_probability``, ``classification.confidence`` and
    ``health_score`` are heuristics, not calibrated probabilities.
    """
    classification: StageClassification
    stage_description: str
    north_star: NorthStarMetric
    health_score: int
    roadmap: GrowthRoadmap
    priorities: list[ExecutionPriority] = []
    todays_priority: ExecutionPriority | None = None
    kpi_targets: list[KPITarget] = []
    trajectory: list[TrajectoryProjection] = []
    trajectory_health: TrajectoryHealth


class ReprioritizeRequest(BaseModel):
    priorities: list[ExecutionPriority]
    exclude_blocked: bool = False
    focus_area: str | None = None
