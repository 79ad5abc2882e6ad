from __future__ import annotations

import itertools
from datetime import UTC, datetime

import pytest

from blueprint.models import BusinessIntake

FIXED_NOW = datetime(2025, 1, 6, 12, 0, tzinfo=UTC)


def make_intake(**overrides) -> BusinessIntake:
    fields = dict(
        revenue_monthly=5_000,
        revenue_trend="stable",
        team_size=2,
        industry="software",
        business_model="saas",
        primary_channel="content",
        customer_count=10,
    )
    fields.update(overrides)
    return BusinessIntake(**fields)


def raw_answers(**overrides) -> dict:
    """Questionnaire answers as a client would post them."""
    answers = {
        "revenue_monthly": 5000,
        "revenue_trend": "stable",
        "team_size": 2,
        "industry": "software",
        "business_model": "saas",
        "primary_channel": "content",
        "customer_count": 10,
        "main_challenges": [],
        "goals_90_day": ["Increase revenue"],
    }
    answers.update(overrides)
    return answers


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture()
def idea_intake() -> BusinessIntake:
    return make_intake(revenue_monthly=0, customer_count=0, team_size=1)


@pytest.fixture()
def distressed_intake() -> BusinessIntake:
    """Growth-stage business with high churn, short runway and falling revenue."""
    return make_intake(
        revenue_monthly=50_000, customer_count=120, team_size=5, churn_rate=12,
        revenue_trend="declining", cash_runway_months=4, business_model="other",
    )


@pytest.fixture()
def scaling_intake() -> BusinessIntake:
    return make_intake(
        revenue_monthly=150_000, customer_count=300, team_size=20, churn_rate=2,
        revenue_trend="stable",
    )


@pytest.fixture()
def healthy_intake() -> BusinessIntake:
    """Growing business with no diagnosable bottleneck."""
    return make_intake(
        revenue_monthly=20_000, customer_count=50, team_size=5, churn_rate=4,
        revenue_trend="growing", cash_runway_months=18, business_model="other",
    )
