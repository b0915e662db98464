"""Unit tests for customer and period profitability"""

from datetime import date

import pytest

from app.analytics.dataset import Customer, DateRange, Payment
from app.analytics.profitability import (
    CustomerProfitability,
    ProfitabilityAnalyzer,
    ProfitTrend,
    RiskLevel,
    allocate_shared_costs,
    average_payment_days,
    risk_level_for,
    risk_score,
)
from tests.conftest import make_dataset, make_expense, make_invoice


Q1_2024 = DateRange(date(2024, 1, 1), date(2024, 3, 31))


def three_customer_dataset(revenues, expenses=()):
    customers = [Customer(id=f"c{i}", name=f"Customer {i}") for i in range(len(revenues))]
    invoices = [
        make_invoice(f"inv{i}", f"c{i}", date(2024, 1, 10), revenue)
        for i, revenue in enumerate(revenues)
    ]
    return make_dataset(date_range=Q1_2024, customers=customers, invoices=invoices, expenses=expenses)


def quarter_dataset(revenues, monthly_expense=100.0):
    invoices = [
        make_invoice(f"inv{month}", "c1", date(2024, month, 15), revenue)
        for month, revenue in enumerate(revenues, start=1)
    ]
    expenses = [
        make_expense(f"exp{month}", monthly_expense, date(2024, month, 20))
        for month in range(1, len(revenues) + 1)
    ]
    return make_dataset(date_range=Q1_2024, invoices=invoices, expenses=expenses)


def test_rankings_follow_net_profit():
    # Net profit is 40% of revenue without allocation: 50, 200, 10
    dataset = three_customer_dataset([125.0, 500.0, 25.0])

    customers = ProfitabilityAnalyzer.customer_profitability(dataset, include_cost_allocation=False)

    rankings = {c.customer_id: c.ranking for c in customers}
    assert rankings == {"c0": 2, "c1": 1, "c2": 3}
    assert [c.net_profit for c in customers] == pytest.approx([200.0, 50.0, 10.0])
    assert [c.ranking for c in customers] == [1, 2, 3]


def test_ties_keep_input_order():
    customers = ProfitabilityAnalyzer.customer_profitability(
        three_customer_dataset([100.0, 100.0, 300.0]), include_cost_allocation=False
    )

    assert [c.customer_id for c in customers] == ["c2", "c0", "c1"]


def test_every_returned_customer_is_ranked():
    customers = ProfitabilityAnalyzer.customer_profitability(three_customer_dataset([10.0, 20.0, 30.0, 40.0]))

    assert all(isinstance(c, CustomerProfitability) for c in customers)
    assert sorted(c.ranking for c in customers) == [1, 2, 3, 4]


def test_allocation_distributes_all_shared_costs():
    dataset = three_customer_dataset(
        [100.0, 300.0, 600.0],
        expenses=[make_expense("e1", 250.0, date(2024, 2, 1))],
    )

    customers = ProfitabilityAnalyzer.customer_profitability(dataset)

    assert sum(c.allocated_costs for c in customers) == pytest.approx(250.0)
    assert all(c.net_profit == pytest.approx(c.gross_profit - c.allocated_costs) for c in customers)


def test_allocate_shared_costs_without_revenue():
    assert allocate_shared_costs(1000.0, 0.0, 0.0, 0, 0) == 0.0


def test_min_profit_threshold_reranks_without_gaps():
    customers = ProfitabilityAnalyzer.customer_profitability(
        three_customer_dataset([125.0, 500.0, 25.0]),
        include_cost_allocation=False,
        min_profit_threshold=20.0,
    )

    assert [(c.customer_id, c.ranking) for c in customers] == [("c1", 1), ("c0", 2)]


def test_invoiced_customers_missing_from_directory_are_included():
    dataset = make_dataset(
        date_range=Q1_2024,
        customers=[Customer(id="known", name="Known Ltd")],
        invoices=[make_invoice("i1", "walk_in", date(2024, 1, 3), 80.0)],
    )

    customers = ProfitabilityAnalyzer.customer_profitability(dataset)

    by_id = {c.customer_id: c for c in customers}
    assert by_id["walk_in"].customer_name == "walk_in"
    assert by_id["known"].revenue == 0.0
    assert by_id["known"].profit_margin_percent == 0.0


@pytest.mark.parametrize(
    "margin,days,share,expected_score,expected_level",
    [
        (2.0, 50.0, 40.0, 7, RiskLevel.HIGH),
        (10.0, 35.0, 20.0, 3, RiskLevel.MEDIUM),
        (20.0, 20.0, 10.0, 0, RiskLevel.LOW),
    ],
)
def test_risk_scoring(margin, days, share, expected_score, expected_level):
    score = risk_score(margin, days, share)

    assert score == expected_score
    assert risk_level_for(score) == expected_level


def test_average_payment_days():
    invoices = [make_invoice("i1", "c1", date(2024, 1, 5), 100.0)]
    payments = [Payment(id="p1", customer_id="c1", amount=100.0, payment_date=date(2024, 1, 25), invoice_id="i1")]

    assert average_payment_days(invoices, payments) == 20.0
    assert average_payment_days(invoices, []) == 30.0


def test_analysis_of_sample_dataset(dataset):
    analysis = ProfitabilityAnalyzer.analyze(dataset)

    assert analysis.summary.total_customers == 3
    assert analysis.summary.total_revenue == pytest.approx(dataset.total_revenue)
    assert analysis.summary.top_10_revenue_percentage == pytest.approx(100.0)
    assert analysis.customers[0].customer_id == "cust_a"
    assert analysis.recommendations[0].type == "customer_focus"
    assert "High revenue concentration risk" in [i.title for i in analysis.insights]


def test_period_trends_margins():
    trends = ProfitabilityAnalyzer.period_trends(quarter_dataset([1000.0, 1200.0, 1500.0]))

    assert [t.period for t in trends] == ["2024-01", "2024-02", "2024-03"]
    assert trends[0].gross_profit == pytest.approx(400.0)
    assert trends[0].net_profit == pytest.approx(300.0)
    assert trends[0].net_margin == pytest.approx(30.0)
    assert trends[0].customer_count == 1


def test_trend_summary_direction():
    improving = ProfitabilityAnalyzer.trend_summary(
        ProfitabilityAnalyzer.period_trends(quarter_dataset([1000.0, 1200.0, 1500.0]))
    )
    declining = ProfitabilityAnalyzer.trend_summary(
        ProfitabilityAnalyzer.period_trends(quarter_dataset([1500.0, 1200.0, 1000.0]))
    )

    assert improving.direction == ProfitTrend.IMPROVING
    assert improving.revenue_growth == pytest.approx(50.0)
    assert declining.direction == ProfitTrend.DECLINING


def test_trend_summary_single_period():
    trends = ProfitabilityAnalyzer.period_trends(quarter_dataset([1000.0]))[:1]

    summary = ProfitabilityAnalyzer.trend_summary(trends)

    assert summary.direction == ProfitTrend.INSUFFICIENT_DATA
    assert summary.periods_analyzed == 1


def test_forecast_compounds_revenue_growth():
    trends = ProfitabilityAnalyzer.period_trends(quarter_dataset([1000.0, 1200.0, 1500.0]))

    forecast = ProfitabilityAnalyzer.forecast(trends, periods=3)

    assert [f.period for f in forecast] == ["2024-04", "2024-05", "2024-06"]
    assert forecast[0].forecast_revenue == pytest.approx(1500.0 * 1.5 ** 0.5)
    assert forecast[0].forecast_margin == pytest.approx(35.0)
    assert [f.confidence for f in forecast] == pytest.approx([0.9, 0.8, 0.7])


def test_forecast_needs_three_periods():
    trends = ProfitabilityAnalyzer.period_trends(quarter_dataset([1000.0, 1200.0, 1500.0]))

    assert ProfitabilityAnalyzer.forecast(trends[:2]) == []


def test_compound_growth_rate_requires_positive_endpoints():
    assert ProfitabilityAnalyzer.compound_growth_rate([100.0, 121.0, 0.0]) == 0.0
    assert ProfitabilityAnalyzer.compound_growth_rate([100.0, 110.0, 121.0]) == pytest.approx(0.1)


def test_margin_optimization_groups_customers():
    customers = ProfitabilityAnalyzer.customer_profitability(
        three_customer_dataset([100.0, 200.0, 300.0]),
        include_cost_allocation=False,
        industry_cost_ratio=0.92,
    )
    rich = ProfitabilityAnalyzer.customer_profitability(
        three_customer_dataset([100.0]),
        include_cost_allocation=False,
    )

    thin = ProfitabilityAnalyzer.margin_optimization(customers)
    wide = ProfitabilityAnalyzer.margin_optimization(rich)

    assert [s.type for s in thin] == ["margin_improvement"]
    assert thin[0].estimated_value == pytest.approx(60.0)
    assert [s.type for s in wide] == ["customer_focus"]
    assert wide[0].customer_ids == ["c0"]
