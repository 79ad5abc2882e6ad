"""Tests for roadmap generation, execution priorities and KPI targets."""
from __future__ import annotations

import pytest

from blueprint.bottlenecks import RULES_BY_ID
from blueprint.kpis import KPITargetSetter
from blueprint.models import ExecutionPriority, TrajectoryProjection
from blueprint.priorities import ExecutionPriorityEngine, rerank
from blueprint.roadmap import (
    DEFAULT_BOTTLENECK,
    RoadmapGenerator,
    compile_risk_factors,
    stage_metrics,
)
from conftest import FIXED_NOW, make_intake


@pytest.fixture()
def generator(clock, id_factory):
    return RoadmapGenerator(clock=clock, id_factory=id_factory)


@pytest.fixture()
def engine(clock, id_factory):
    return ExecutionPriorityEngine(clock=clock, id_factory=id_factory)


@pytest.fixture()
def distressed_roadmap(generator, distressed_intake):
    return generator.generate(distressed_intake)


@pytest.fixture()
def distressed_priorities(engine, distressed_roadmap):
    return engine.prioritize(distressed_roadmap)


# ---------------------------------------------------------------------------
# Roadmap
# ---------------------------------------------------------------------------


class TestRoadmapGenerator:
    def test_distressed_summary(self, distressed_roadmap):
        r = distressed_roadmap
        assert r.stage == "growth"
        assert r.classification_confidence == 0.71
        assert r.primary_bottleneck.id == "cash_crisis"
        assert [b.id for b in r.bottlenecks] == ["cash_crisis", "high_churn"]
        assert [p.id for p in r.leverage_points] == [
            "price_increase", "reactivation_campaign", "onboarding_optimization", "upsell_path", "sales_process",
        ]
        assert r.success_probability == 20
        assert r.created_at == FIXED_NOW.isoformat()

    def test_ids_come_from_factory(self, distressed_roadmap):
        assert distressed_roadmap.id == "id-1"
        assert [m.id for m in distressed_roadmap.milestones] == ["id-2", "id-3", "id-4", "id-5"]

    def test_risk_factors(self, distressed_roadmap):
        assert distressed_roadmap.risk_factors == (
            "Dilutive financing",
            "Cutting growth investments",
            "Focusing on symptoms not causes",
            "Over-promising to retain",
        )

    def test_milestone_weeks(self, distressed_roadmap):
        milestones = distressed_roadmap.milestones
        assert [m.week for m in milestones] == [1, 3, 5, 9]
        assert milestones[0].dependencies == ()
        assert milestones[1].dependencies == ("Week 1 complete",)
        assert milestones[2].dependencies == ("Week 3 assessment",)
        assert milestones[3].dependencies == ("Week 5 execution",)

    def test_week_one(self, distressed_roadmap):
        week1 = distressed_roadmap.milestones[0]
        assert week1.objectives == (
            "Complete business assessment", "Address capital bottleneck", "Price Optimization",
        )
        assert week1.key_actions == (
            "Cut non-essential expenses immediately",
            "Accelerate receivables collection",
            "Pricing strategy document",
            "A/B testing tool",
        )

    def test_week_three(self, distressed_roadmap):
        assert distressed_roadmap.milestones[1].key_actions == (
            "Email marketing tool", "Product expansion plan", "Pricing tiers", "Set up tracking dashboards",
        )

    def test_week_five_uses_full_leverage_list(self, distressed_roadmap):
        week5 = distressed_roadmap.milestones[2]
        # channel_expansion is outside the top five but still the second strategic play
        assert week5.key_actions == (
            "Product expansion plan",
            "Pricing tiers",
            "Budget for testing",
            "Paid ads budget",
            "Onboarding automation",
            "Success metrics",
            "Double down on winning tactics",
        )
        assert "Revenue > $75k MRR" in week5.success_metrics

    def test_week_nine_metrics(self, distressed_roadmap, distressed_intake):
        week9 = distressed_roadmap.milestones[3]
        assert week9.success_metrics == (
            *stage_metrics("growth", distressed_intake), "Key bottleneck resolved", "Next phase planned",
        )

    def test_no_bottleneck_uses_default(self, generator, healthy_intake):
        r = generator.generate(healthy_intake)
        assert r.stage == "growth"
        assert r.bottlenecks == ()
        assert r.primary_bottleneck == DEFAULT_BOTTLENECK
        assert r.risk_factors == ()
        assert r.milestones[0].objectives[1] == "Address lead_generation bottleneck"

    def test_success_probability_clamped_high(self, generator, healthy_intake):
        assert generator.generate(healthy_intake).success_probability == 90

    def test_success_probability_clamped_low(self, generator):
        intake = make_intake(
            revenue_trend="declining", cash_runway_months=1, churn_rate=40,
            main_challenges=["Not enough leads", "Low conversion rates", "Hiring/team issues",
                             "Time management", "Competition"],
        )
        r = generator.generate(intake)
        assert len(r.bottlenecks) > 4
        assert r.success_probability == 10

    def test_idea_stage_roadmap(self, generator, idea_intake):
        r = generator.generate(idea_intake)
        assert r.stage == "idea"
        assert r.leverage_points == ()
        assert r.milestones[0].objectives == ("Complete business assessment", "Address lead_generation bottleneck")
        assert r.milestones[1].key_actions == ("Set up tracking dashboards",)
        assert "Hiring before validation" in r.things_to_ignore

    def test_client_id_carried(self, generator):
        assert generator.generate(make_intake(client_id="acme")).client_id == "acme"

    def test_deterministic_with_fixed_ports(self, clock, distressed_intake):
        def build():
            counter = iter(range(100))
            return RoadmapGenerator(clock=clock, id_factory=lambda: f"id-{next(counter)}").generate(distressed_intake)
        assert build() == build()


class TestRiskFactors:
    def test_top_three_only(self):
        intake = make_intake(
            cash_runway_months=1, churn_rate=20,
            main_challenges=["Hiring/team issues", "Not enough leads", "Competition"],
        )
        bottlenecks = [
            RULES_BY_ID[rid].evaluate(intake, "growth")
            for rid in ("team_constraint", "cash_crisis", "high_churn", "competition_threat")
        ]
        risks = compile_risk_factors(bottlenecks)
        assert risks == (
            "Bad hires under pressure", "Over-hiring",
            "Dilutive financing", "Cutting growth investments",
            "Focusing on symptoms not causes", "Over-promising to retain",
        )

    def test_duplicates_removed(self):
        churn = RULES_BY_ID["high_churn"].evaluate(make_intake(churn_rate=20), "growth")
        assert compile_risk_factors([churn, churn]) == (
            "Focusing on symptoms not causes", "Over-promising to retain",
        )

    def test_unknown_id_contributes_nothing(self):
        assert compile_risk_factors([DEFAULT_BOTTLENECK]) == ()


class TestStageMetrics:
    def test_growth_projects_revenue(self):
        assert stage_metrics("growth", make_intake(revenue_monthly=33_333))[0] == "Revenue > $50k MRR"

    def test_other_stages_fixed(self):
        assert stage_metrics("idea", make_intake())[0] == "First paying customer"
        assert stage_metrics("mature", make_intake())[0] == "New revenue stream launched"


# ---------------------------------------------------------------------------
# Execution priorities
# ---------------------------------------------------------------------------


class TestPrioritize:
    def test_distressed_order(self, distressed_priorities):
        assert [p.action for p in distressed_priorities] == [
            "Cut non-essential expenses immediately",
            "Accelerate receivables collection",
            "Explore bridge financing options",
            "Price Optimization",
            "Customer Reactivation Campaign",
            "Initiate: Create Upsell/Cross-sell Path",
        ]
        assert [p.rank for p in distressed_priorities] == [1, 2, 3, 4, 5, 6]

    def test_due_dates(self, distressed_priorities):
        assert [p.due_date for p in distressed_priorities] == [
            "2025-01-13", "2025-01-20", "2025-01-27", "2025-01-13", "2025-01-20", "2025-02-20",
        ]

    def test_rationale_and_outcome(self, distressed_priorities):
        first, price = distressed_priorities[0], distressed_priorities[3]
        assert first.rationale == "Addresses primary bottleneck: Capital & Cash Flow Bottleneck"
        assert first.expected_outcome == "Reduce impact of capital"
        assert price.expected_outcome == "Impact potential: 85%"
        assert distressed_priorities[-1].expected_outcome == "Long-term impact: 70%"

    def test_quick_win_dependencies_block(self, distressed_priorities):
        reactivation = distressed_priorities[4]
        assert reactivation.blocking_factors == ("Customer list with emails",)

    def test_milestone_actions_added_when_new(self, engine, generator, distressed_intake):
        roadmap = generator.generate(distressed_intake)
        week1 = roadmap.milestones[0].model_copy(update={"key_actions": ("Hold kickoff", "Hire analyst")})
        roadmap = roadmap.model_copy(update={"milestones": (week1, *roadmap.milestones[1:])})
        priorities = engine.prioritize(roadmap)
        added = [p for p in priorities if p.rationale.startswith("Part of Week 1")]
        assert [p.action for p in added] == ["Hold kickoff", "Hire analyst"]
        assert added[0].rationale == "Part of Week 1 milestone: Foundation & Quick Wins"
        assert added[0].expected_outcome == "Assessment complete"
        assert added[0].due_date == "2025-01-13"

    def test_default_bottleneck(self, engine, generator, healthy_intake):
        priorities = engine.prioritize(generator.generate(healthy_intake))
        assert [p.action for p in priorities] == [
            "Continue current trajectory",
            "Look for optimization opportunities",
            "Price Optimization",
            "Customer Reactivation Campaign",
            "Launch Referral Program",
        ]
        assert [p.due_date for p in priorities[:2]] == ["2025-01-13", "2025-01-20"]

    def test_ranks_contiguous_and_ids_unique(self, engine, generator):
        for intake in (make_intake(), make_intake(revenue_monthly=80_000, customer_count=150, team_size=8,
                                                  main_challenges=["Not enough leads"])):
            priorities = engine.prioritize(generator.generate(intake))
            assert [p.rank for p in priorities] == list(range(1, len(priorities) + 1))
            assert len({p.id for p in priorities}) == len(priorities)


class TestTodaysPriority:
    def test_first_unblocked(self, distressed_priorities):
        assert ExecutionPriorityEngine.todays_priority(distressed_priorities).rank == 1

    def test_all_blocked_falls_back_to_top(self, distressed_priorities):
        blocked = [p.model_copy(update={"blocking_factors": ("waiting",)}) for p in distressed_priorities[:4]]
        items = blocked + distressed_priorities[4:]
        assert ExecutionPriorityEngine.todays_priority(items) == blocked[0]

    def test_first_unblocked_after_blocked(self):
        items = [
            ExecutionPriority(id="a", rank=1, action="A", rationale="r", expected_outcome="o",
                              blocking_factors=("x",), due_date="2025-01-10"),
            ExecutionPriority(id="b", rank=2, action="B", rationale="r", expected_outcome="o",
                              due_date="2025-01-11"),
        ]
        assert ExecutionPriorityEngine.todays_priority(items).id == "b"

    def test_empty(self):
        assert ExecutionPriorityEngine.todays_priority([]) is None


class TestReprioritize:
    def test_exclude_blocked(self, distressed_priorities):
        result = ExecutionPriorityEngine.reprioritize(distressed_priorities, exclude_blocked=True)
        assert all(not p.blocking_factors for p in result)
        assert [p.rank for p in result] == list(range(1, len(result) + 1))
        assert "Customer Reactivation Campaign" not in [p.action for p in result]

    def test_focus_area_moves_matches_first(self, distressed_priorities):
        result = ExecutionPriorityEngine.reprioritize(distressed_priorities, focus_area="WIN BACK")
        assert result[0].action == "Customer Reactivation Campaign"
        assert result[0].rank == 1
        assert [p.action for p in result[1:4]] == [
            "Cut non-essential expenses immediately",
            "Accelerate receivables collection",
            "Explore bridge financing options",
        ]

    def test_no_options_only_reranks(self, distressed_priorities):
        shuffled = list(reversed(distressed_priorities))
        result = ExecutionPriorityEngine.reprioritize(shuffled)
        assert [p.action for p in result] == [p.action for p in shuffled]
        assert [p.rank for p in result] == [1, 2, 3, 4, 5, 6]

    def test_does_not_mutate_input(self, distressed_priorities):
        before = [p.rank for p in distressed_priorities]
        rerank(reversed(distressed_priorities))
        assert [p.rank for p in distressed_priorities] == before


class TestScoreAction:
    def test_bottleneck_action_in_week_one(self, distressed_roadmap):
        score = ExecutionPriorityEngine.score_action("Cut non-essential expenses immediately", distressed_roadmap)
        assert score.impact == 80
        assert score.urgency == 95
        assert score.total == pytest.approx(70.5)

    def test_quick_win(self, distressed_roadmap):
        score = ExecutionPriorityEngine.score_action("Customer Reactivation Campaign", distressed_roadmap)
        assert score.impact == pytest.approx(69.5)
        assert score.effort == 80
        assert score.dependencies == 10
        assert score.total == pytest.approx(62.3)

    def test_unknown_action(self, distressed_roadmap):
        score = ExecutionPriorityEngine.score_action("Repaint the office", distressed_roadmap)
        assert (score.impact, score.urgency, score.effort) == (50, 50, 50)
        assert score.total == pytest.approx(45.0)


# ---------------------------------------------------------------------------
# KPI targets
# ---------------------------------------------------------------------------


class TestKPITargets:
    def test_scaling_metrics(self, clock, scaling_intake):
        targets = KPITargetSetter(clock=clock).generate_targets(scaling_intake, "scaling")
        assert [t.metric for t in targets] == [
            "Monthly Recurring Revenue",
            "Monthly Churn Rate (%)",
            "Revenue Per Employee",
            "Lead-to-Customer Conversion Rate (%)",
            "Customer Acquisition Cost",
            "Net Promoter Score",
        ]
        by_metric = {t.metric: t for t in targets}
        assert by_metric["Monthly Recurring Revenue"].target_value == 195_000
        assert by_metric["Revenue Per Employee"].current_value == 7500
        assert by_metric["Revenue Per Employee"].target_value == 9750
        assert by_metric["Customer Acquisition Cost"].target_value == 30_000
        assert by_metric["Customer Acquisition Cost"].lower_is_better
        assert all(t.target_date == "2025-04-06" for t in targets)

    def test_churn_floor(self, clock, scaling_intake):
        targets = KPITargetSetter(clock=clock).generate_targets(scaling_intake, "scaling")
        churn = next(t for t in targets if t.metric == "Monthly Churn Rate (%)")
        assert (churn.current_value, churn.target_value) == (2, 2)

    def test_defaults_for_missing_optional_fields(self, clock):
        targets = KPITargetSetter(clock=clock).generate_targets(make_intake(), "early")
        by_metric = {t.metric: t for t in targets}
        assert by_metric["Monthly Churn Rate (%)"].current_value == 10
        assert by_metric["Monthly Churn Rate (%)"].target_value == 7
        assert by_metric["Cash Runway (Months)"].current_value == 6
        assert by_metric["Cash Runway (Months)"].target_value == 12
        assert by_metric["Customer Count"].target_value == 20

    def test_idea_stage_skips_zero_growth_targets(self, clock, idea_intake):
        targets = KPITargetSetter(clock=clock).generate_targets(idea_intake, "idea")
        assert [t.metric for t in targets] == ["Cash Runway (Months)"]

    def test_higher_is_better_targets_exceed_current(self, clock):
        setter = KPITargetSetter(clock=clock)
        for stage in ("idea", "early", "growth", "scaling", "mature"):
            for t in setter.generate_targets(make_intake(revenue_monthly=12_000, customer_count=40), stage):
                if not t.lower_is_better:
                    assert t.target_value > t.current_value

    def test_weekly_metrics(self, clock, scaling_intake):
        setter = KPITargetSetter(clock=clock)
        weekly = setter.weekly_metrics(setter.generate_targets(scaling_intake, "scaling"))
        assert [t.metric for t in weekly] == ["Monthly Recurring Revenue", "Lead-to-Customer Conversion Rate (%)"]

    def test_north_star(self):
        assert KPITargetSetter.north_star("idea").metric == "First 10 Paying Customers"
        assert KPITargetSetter.north_star("scaling").metric == "Revenue Per Employee"


class TestTrajectory:
    def test_scaling_projection(self, clock, scaling_intake):
        setter = KPITargetSetter(clock=clock)
        projections = setter.project_trajectory(scaling_intake, setter.generate_targets(scaling_intake, "scaling"))
        on_track = {p.metric: p.on_track for p in projections}
        assert on_track["Monthly Churn Rate (%)"] is True
        assert sum(on_track.values()) == 1
        health = setter.trajectory_health(projections)
        assert (health.score, health.status) == (17, "critical")

    def test_growing_trend_compounds(self, clock):
        intake = make_intake(revenue_trend="growing", revenue_monthly=10_000)
        setter = KPITargetSetter(clock=clock)
        projections = setter.project_trajectory(intake, setter.generate_targets(intake, "early"))
        mrr = next(p for p in projections if p.metric == "Monthly Recurring Revenue")
        assert mrr.projected == 13_310
        assert mrr.target == 20_000
        assert mrr.on_track is False

    def test_health_empty(self):
        health = KPITargetSetter.trajectory_health([])
        assert (health.score, health.status) == (50, "warning")

    def test_health_thresholds(self):
        def proj(on_track):
            return TrajectoryProjection(metric="m", projected=1, target=1, on_track=on_track)
        assert KPITargetSetter.trajectory_health([proj(True)] * 3 + [proj(False)]).status == "healthy"
        assert KPITargetSetter.trajectory_health([proj(True), proj(False)]).status == "warning"
        assert KPITargetSetter.trajectory_health([proj(False)] * 2 + [proj(True)]).status == "critical"
