from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import FastAPI, HTTPException, Query

from blueprint import services
from blueprint.intake import IntakeError, parse_intake
from blueprint.models import Bottleneck, BusinessIntake, ExecutionPriority, GrowthRoadmap
from blueprint.roadmap import RoadmapGenerator
from blueprint.schemas import (
    BlueprintReport,
    DiagnosisOut,
    IntakeQuestionOut,
    IntakeValidationOut,
    KPIOut,
    LeverageOut,
    ReprioritizeRequest,
    StageOut,
)

log = logging.getLogger(__name__)


app = FastAPI(
    title="Growth Blueprint",
    version="0.1.0",
    description=(
        "Deterministic growth diagnosis for a business snapshot: lifecycle stage, "
        "bottlenecks, leverage points, a 90-day roadmap, ranked execution priorities "
        "and KPI targets. Confidence, impact and success-probability figures are "
        "rule-based heuristics, not calibrated probabilities. "
        "All endpoints are stateless and return JSON."
    ),
    openapi_tags=[
        {"name": "Intake", "description": "Intake questionnaire and answer validation."},
        {"name": "Diagnosis", "description": "Stage classification, bottlenecks and leverage points."},
        {"name": "Planning", "description": "Roadmap, execution priorities and KPI targets."},
        {"name": "Reference", "description": "Static per-stage guidance."},
    ],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _intake_or_422(body: dict[str, Any]) -> BusinessIntake:
    try:
        return parse_intake(body)
    except IntakeError as exc:
        log.info("Rejected intake: %s", exc.errors)
        raise HTTPException(422, exc.errors) from exc


# ---------------------------------------------------------------------------
# Routes: Intake
# ---------------------------------------------------------------------------


@app.get("/api/intake/questions", response_model=list[IntakeQuestionOut],
         tags=["Intake"], summary="List intake questions, optionally for one category")
def list_questions(category: str | None = Query(None, description="financials, operations, market, growth, retention, strategy")):
    return services.intake_questions(category)


@app.post("/api/intake/validate", response_model=IntakeValidationOut,
          tags=["Intake"], summary="Validate intake answers and compute a health score")
def validate_answers(body: dict[str, Any]):
    try:
        return services.check_intake(body)
    except IntakeError as exc:
        return {"valid": False, "errors": exc.errors, "health_score": None}


# ---------------------------------------------------------------------------
# Routes: Diagnosis
# ---------------------------------------------------------------------------


@app.post("/api/classify", response_model=DiagnosisOut,
          tags=["Diagnosis"], summary="Classify lifecycle stage and detect bottlenecks")
def classify(body: dict[str, Any]):
    return services.diagnose(_intake_or_422(body))


@app.post("/api/bottlenecks", response_model=list[Bottleneck],
          tags=["Diagnosis"], summary="Detected bottlenecks, highest impact first")
def bottlenecks(body: dict[str, Any]):
    return services.diagnose(_intake_or_422(body)).bottlenecks


@app.post("/api/leverage", response_model=LeverageOut,
          tags=["Diagnosis"], summary="Leverage points ranked by impact over effort")
def leverage(body: dict[str, Any]):
    return services.map_leverage(_intake_or_422(body))


# ---------------------------------------------------------------------------
# Routes: Planning
# ---------------------------------------------------------------------------


@app.post("/api/roadmap", response_model=GrowthRoadmap,
          tags=["Planning"], summary="Generate a 90-day growth roadmap")
def roadmap(body: dict[str, Any]):
    return RoadmapGenerator().generate(_intake_or_422(body))


@app.post("/api/blueprint", response_model=BlueprintReport,
          tags=["Planning"], summary="Full blueprint: roadmap, priorities, KPI targets and trajectory")
def full_blueprint(body: dict[str, Any]):
    return services.build_blueprint(_intake_or_422(body))


@app.post("/api/kpis", response_model=KPIOut,
          tags=["Planning"], summary="90-day KPI targets with trajectory projection")
def kpis(body: dict[str, Any]):
    return services.kpi_report(_intake_or_422(body))


@app.post("/api/priorities/reprioritize", response_model=list[ExecutionPriority],
          tags=["Planning"], summary="Filter and re-rank an execution priority list")
def reprioritize(body: ReprioritizeRequest):
    return services.reprioritize(body.priorities, exclude_blocked=body.exclude_blocked, focus_area=body.focus_area)


# ---------------------------------------------------------------------------
# Routes: Reference
# ---------------------------------------------------------------------------


@app.get("/api/stages/{stage}", response_model=StageOut,
         tags=["Reference"], summary="Stage description, challenges, next-stage requirements, north star")
def stage_reference(stage: str):
    try:
        return services.stage_overview(stage.strip().lower())
    except KeyError as exc:
        raise HTTPException(404, f"Unknown stage '{stage}'") from exc


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def main():
    import uvicorn
    logging.basicConfig(level=os.environ.get("BLUEPRINT_LOG_LEVEL", "INFO").upper())
    uvicorn.run(
        "blueprint.app:app",
        host=os.environ.get("BLUEPRINT_HOST", "127.0.0.1"),
        port=int(os.environ.get("BLUEPRINT_PORT", "8001")),
        reload=os.environ.get("BLUEPRINT_RELOAD", "").lower() in ("1", "true", "yes"),
    )


if __name__ == "__main__":
    main()
