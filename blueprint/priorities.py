"""Execution priorities: flatten a roadmap into a ranked, dated action list.

Order is fixed:

1. up to three actions of the primary bottleneck,
2. every quick-win leverage point,
3. up to two week-1 milestone actions not already listed,
4. up to two strategic leverage points, as ``"Initiate: <title>"``.

Due dates are computed per source (``rank * 7`` days for bottleneck actions,
``time_to_impact_days`` for leverage points, ``week * 7`` for milestone
actions).  They are not guaranteed to increase with rank.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from blueprint.models import ExecutionPriority, GrowthRoadmap, PriorityScore
from blueprint.utils import Clock, IdFactory, days_from, new_id, utc_now

log = logging.getLogger(__name__)

MAX_BOTTLENECK_ACTIONS = 3
MAX_MILESTONE_ACTIONS = 2
MAX_STRATEGIC = 2

EFFORT_SCORES = {"low": 80, "medium": 50, "high": 20}


def rerank(priorities: Iterable[ExecutionPriority]) -> list[ExecutionPriority]:
    """Assign contiguous 1-based ranks in iteration order."""
    return [p.model_copy(update={"rank": n}) for n, p in enumerate(priorities, start=1)]


class ExecutionPriorityEngine:
    def __init__(self, clock: Clock = utc_now, id_factory: IdFactory = new_id):
        self.clock = clock
        self.id_factory = id_factory

    def prioritize(self, roadmap: GrowthRoadmap) -> list[ExecutionPriority]:
        now = self.clock()
        out: list[ExecutionPriority] = []

        def add(action: str, rationale: str, outcome: str, blocking, days: int) -> None:
            out.append(ExecutionPriority(
                id=self.id_factory(),
                rank=len(out) + 1,
                action=action,
                rationale=rationale,
                expected_outcome=outcome,
                blocking_factors=tuple(blocking),
                due_date=days_from(now, days),
            ))

        bottleneck = roadmap.primary_bottleneck
        for action in bottleneck.recommended_actions[:MAX_BOTTLENECK_ACTIONS]:
            add(
                action,
                f"Addresses primary bottleneck: {bottleneck.title}",
                f"Reduce impact of {bottleneck.category}",
                (),
                (len(out) + 1) * 7,
            )

        for qw in (lp for lp in roadmap.leverage_points if lp.type == "quick_win"):
            add(
                qw.title,
                qw.description,
                f"Impact potential: {qw.impact_potential}%",
                qw.dependencies,
                qw.time_to_impact_days,
            )

        if roadmap.milestones:
            first = roadmap.milestones[0]
            for action in first.key_actions[:MAX_MILESTONE_ACTIONS]:
                if any(p.action == action for p in out):
                    continue
                add(
                    action,
                    f"Part of Week {first.week} milestone: {first.title}",
                    first.success_metrics[0] if first.success_metrics else "Progress toward milestone",
                    first.dependencies,
                    first.week * 7,
                )

        strategic = [lp for lp in roadmap.leverage_points if lp.type == "strategic"]
        for s in strategic[:MAX_STRATEGIC]:
            add(
                f"Initiate: {s.title}",
                s.description,
                f"Long-term impact: {s.impact_potential}%",
                s.dependencies,
                s.time_to_impact_days,
            )

        log.debug("Prioritized %d actions for roadmap %s", len(out), roadmap.id)
        return out

    @staticmethod
    def todays_priority(priorities: list[ExecutionPriority]) -> ExecutionPriority | None:
        """The highest-ranked unblocked action, falling back to the top entry."""
        if not priorities:
            return None
        return next((p for p in priorities if not p.blocking_factors), priorities[0])

    @staticmethod
    def reprioritize(
        priorities: Iterable[ExecutionPriority],
        exclude_blocked: bool = False,
        focus_area: str | None = None,
    ) -> list[ExecutionPriority]:
        """Filter and reorder, then re-rank contiguously from 1.

        ``focus_area`` moves entries whose rationale contains it
        (case-insensitive) ahead of the rest, keeping relative order otherwise.
        """
        items = list(priorities)
        if exclude_blocked:
            items = [p for p in items if not p.blocking_factors]
        if focus_area:
            needle = focus_area.lower()
            items.sort(key=lambda p: needle not in p.rationale.lower())
        return rerank(items)

    @staticmethod
    def score_action(action: str, roadmap: GrowthRoadmap) -> PriorityScore:
        """Weighted impact/urgency/effort heuristic for an arbitrary action string."""
        impact = urgency = effort = 50.0
        dependencies = 0.0

        if action in roadmap.primary_bottleneck.recommended_actions:
            impact += 30
            urgency += 20

        quick_win = next(
            (lp for lp in roadmap.leverage_points if lp.type == "quick_win" and lp.title == action),
            None,
        )
        if quick_win is not None:
            impact += quick_win.impact_potential * 0.3
            urgency += 15
            effort = EFFORT_SCORES[quick_win.effort_required]
            dependencies = len(quick_win.dependencies) * 10

        if roadmap.milestones and action in roadmap.milestones[0].key_actions:
            urgency += 25

        total = impact * 0.4 + urgency * 0.3 + effort * 0.2 - dependencies * 0.1
        return PriorityScore(
            impact=min(100, impact),
            urgency=min(100, urgency),
            effort=min(100, effort),
            dependencies=dependencies,
            total=max(0, min(100, total)),
        )
