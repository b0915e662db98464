"""Unit tests for business health scoring"""

from datetime import date

import pytest

from app.analytics.constants import HEALTH_PEER_BENCHMARKS, HEALTH_WEIGHTS
from app.analytics.dataset import DateRange
from app.analytics.health_score import (
    MAX_RECOMMENDATIONS,
    HealthCategory,
    HealthInputs,
    HealthScoreCalculator,
)
from tests.conftest import make_accounts, make_dataset, make_expense, make_invoice


H2_2024 = DateRange(date(2024, 7, 1), date(2024, 12, 31))
H1_2024 = H2_2024.previous()


def customer_dataset(date_range, customers, revenue_each, expenses_total):
    invoices = [
        make_invoice(f"inv_{date_range.start}_{i}", f"cust_{i}", date_range.start, revenue_each)
        for i in range(customers)
    ]
    expenses = [make_expense(f"exp_{date_range.start}", expenses_total, date_range.start)]
    return make_dataset(
        date_range=date_range,
        invoices=invoices,
        expenses=expenses,
        accounts=make_accounts(assets=40000.0, liabilities=10000.0, equity=30000.0),
    )


def test_weights_sum_to_one():
    assert sum(HEALTH_WEIGHTS.values()) == pytest.approx(1.0)

    components = HealthScoreCalculator.components(HealthInputs.from_dataset(make_dataset()))
    assert sum(c.weight for c in components.values()) == pytest.approx(1.0)


def test_empty_dataset_scores():
    score = HealthScoreCalculator.calculate(make_dataset())

    assert {name: c.score for name, c in score.components.items()} == {
        "cash_flow": 15.0,
        "profitability": 15.0,
        "growth": 35.0,
        "efficiency": 20.0,
        "stability": 85.0,
    }
    assert score.overall_score == pytest.approx(30.25)
    assert score.category == HealthCategory.CRITICAL
    assert score.trends.stable is True
    assert score.trends.previous_score is None


def test_recommendations_are_capped():
    score = HealthScoreCalculator.calculate(make_dataset())

    assert len(score.recommendations) == MAX_RECOMMENDATIONS


def test_strong_business_is_excellent_and_improving():
    current = customer_dataset(H2_2024, customers=12, revenue_each=8000.0, expenses_total=48000.0)
    previous = customer_dataset(H1_2024, customers=10, revenue_each=6000.0, expenses_total=48000.0)

    score = HealthScoreCalculator.calculate(current, previous)

    assert all(c.score == 100.0 for c in score.components.values())
    assert score.overall_score == 100.0
    assert score.category == HealthCategory.EXCELLENT
    assert score.components["growth"].metrics["revenue_growth"] == pytest.approx(60.0)
    assert score.components["growth"].metrics["customer_growth"] == pytest.approx(20.0)
    assert score.trends.improving is True
    assert score.trends.previous_score < score.overall_score
    assert score.benchmarks == HEALTH_PEER_BENCHMARKS


def test_growth_without_previous_period_is_zero():
    current = customer_dataset(H2_2024, customers=12, revenue_each=8000.0, expenses_total=48000.0)

    growth = HealthScoreCalculator.calculate(current).components["growth"]

    assert growth.metrics["revenue_growth"] == 0.0
    assert growth.score == 35.0


def test_component_scores_stay_in_bounds(dataset):
    score = HealthScoreCalculator.calculate(dataset)

    assert 0 <= score.overall_score <= 100
    assert all(0 <= c.score <= 100 for c in score.components.values())


def test_inputs_from_dataset(dataset):
    inputs = HealthInputs.from_dataset(dataset)

    assert inputs.customer_count == 3
    assert inputs.top_customer_revenue == pytest.approx(19800.0)
    assert inputs.total_assets == pytest.approx(100000.0)


@pytest.mark.parametrize(
    "score,category",
    [
        (85.0, HealthCategory.EXCELLENT),
        (84.99, HealthCategory.GOOD),
        (70.0, HealthCategory.GOOD),
        (55.0, HealthCategory.FAIR),
        (40.0, HealthCategory.POOR),
        (39.99, HealthCategory.CRITICAL),
    ],
)
def test_category_thresholds(score, category):
    assert HealthScoreCalculator.category_for(score) == category


def test_trend_tolerance():
    assert HealthScoreCalculator.trends(70.0, 60.0).improving is True
    assert HealthScoreCalculator.trends(60.0, 70.0).deteriorating is True

    stable = HealthScoreCalculator.trends(70.0, 66.0)
    assert stable.stable is True
    assert stable.improving is False
    assert stable.previous_score == 66.0
