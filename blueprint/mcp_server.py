from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import BaseModel

from blueprint import services
from blueprint.intake import IntakeError, parse_intake
from blueprint.models import STAGES, BusinessIntake, ExecutionPriority
from blueprint.roadmap import RoadmapGenerator

log = logging.getLogger(__name__)


mcp = FastMCP(
    "Growth Blueprint",
    instructions=(
        "Growth Blueprint diagnoses a business from a metrics snapshot. "
        "Start with list_intake_questions() to see which answers are needed, "
        "then generate_growth_blueprint(intake) for the full plan, or "
        "classify_business_stage(intake) for a quick diagnosis. "
        "Scores and probabilities returned are rule-based heuristics."
    ),
    json_response=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_intake(intake: dict[str, Any], fn: Callable[[BusinessIntake], BaseModel]) -> dict:
    """Parse *intake* and apply *fn*, or return an ``{"error": ...}`` dict."""
    try:
        parsed = parse_intake(intake)
    except IntakeError as exc:
        return {"error": "Invalid intake", "errors": exc.errors}
    return fn(parsed).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Resource
# ---------------------------------------------------------------------------


@mcp.resource("blueprint://overview")
def blueprint_overview() -> str:
    """Overview of the pipeline, stages, and what each output means."""
    return json.dumps({
        "system": "Growth Blueprint",
        "pipeline": [
            "stage classification",
            "bottleneck detection",
            "leverage mapping",
            "90-day roadmap",
            "execution priorities",
            "KPI targets",
        ],
        "stages": list(STAGES),
        "notes": {
            "confidence": "Indicator score normalised by average stage weight; not a probability.",
            "success_probability": "Base 50 plus fixed adjustments, clamped to 10-90; a heuristic.",
            "due_date": "Computed per priority source; not guaranteed to increase with rank.",
        },
    }, indent=2)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def list_intake_questions(category: str | None = None) -> list[dict]:
    """List intake questions (optionally one category: financials, operations, market, growth, retention, strategy)."""
    return services.intake_questions(category)


@mcp.tool()
def validate_intake_answers(intake: dict[str, Any]) -> dict:
    """Validate raw intake answers and return a 0-100 health score when valid."""
    try:
        return services.check_intake(intake)
    except IntakeError as exc:
        return {"valid": False, "errors": exc.errors, "health_score": None}


@mcp.tool()
def classify_business_stage(intake: dict[str, Any]) -> dict:
    """Classify the lifecycle stage and list detected bottlenecks, highest impact first."""
    return _with_intake(intake, services.diagnose)


@mcp.tool()
def generate_growth_roadmap(intake: dict[str, Any]) -> dict:
    """Generate the 90-day roadmap only (stage, primary bottleneck, leverage, milestones, risks)."""
    return _with_intake(intake, RoadmapGenerator().generate)


@mcp.tool()
def generate_growth_blueprint(intake: dict[str, Any]) -> dict:
    """Run the full pipeline: roadmap, ranked priorities, KPI targets and trajectory."""
    return _with_intake(intake, services.build_blueprint)


@mcp.tool()
def set_kpi_targets(intake: dict[str, Any]) -> dict:
    """90-day KPI targets for the intake's stage, with a three-period trajectory projection."""
    return _with_intake(intake, services.kpi_report)


@mcp.tool()
def reprioritize_actions(
    priorities: list[dict[str, Any]], exclude_blocked: bool = False, focus_area: str | None = None,
) -> dict:
    """Filter blocked actions and/or bias toward a focus area, then re-rank from 1."""
    try:
        items = [ExecutionPriority.model_validate(p) for p in priorities]
    except ValueError as exc:
        return {"error": f"Invalid priorities: {exc}"}
    ranked = services.reprioritize(items, exclude_blocked=exclude_blocked, focus_area=focus_area)
    return {"priorities": [p.model_dump(mode="json") for p in ranked]}


@mcp.tool()
def get_stage_reference(stage: str) -> dict:
    """Description, typical challenges, next-stage requirements and north star for a stage."""
    try:
        return services.stage_overview(stage.strip().lower()).model_dump(mode="json")
    except KeyError:
        return {"error": f"Unknown stage '{stage}'. Valid: {', '.join(STAGES)}"}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the Growth Blueprint MCP server over stdio."""
    logging.basicConfig(level=os.environ.get("BLUEPRINT_LOG_LEVEL", "INFO").upper())
    mcp.run()


if __name__ == "__main__":
    main()
