"""Tests for dataset aggregation and data sufficiency"""

from datetime import date

import pytest

from app.analytics.aggregation import AnalyticsAggregator, financial_summary
from app.analytics.dataset import DateRange
from app.analytics.exceptions import InsufficientDataError
from tests.conftest import ORG_ID, InMemorySource, make_dataset, make_expense, make_invoice


Q1_2024 = DateRange(date(2024, 1, 1), date(2024, 3, 31))


class FailingSource(InMemorySource):
    async def fetch_expenses(self, organization_id, date_range):
        raise ConnectionError("ledger database unavailable")


async def test_aggregate_fetches_everything_in_range(source: InMemorySource):
    aggregator = AnalyticsAggregator(source)

    dataset = await aggregator.aggregate(ORG_ID, Q1_2024)

    assert sorted(source.calls) == sorted(
        ["customers", "invoices", "payments", "expenses", "accounts", "tax_obligations"]
    )
    assert dataset.organization_id == ORG_ID
    assert dataset.date_range == Q1_2024
    assert all(Q1_2024.contains(i.issue_date) for i in dataset.invoices)
    assert len(dataset.expenses) == 9
    assert len(dataset.customers) == 3
    assert dataset.aggregated_at is not None
    assert isinstance(dataset.invoices, tuple)


async def test_aggregate_with_previous_range(source: InMemorySource):
    aggregator = AnalyticsAggregator(source)

    current, previous = await aggregator.aggregate_with_previous(ORG_ID, DateRange(date(2024, 7, 1), date(2024, 12, 31)))

    assert previous.date_range.end == date(2024, 6, 30)
    assert previous.date_range.days == current.date_range.days
    assert all(previous.date_range.contains(e.expense_date) for e in previous.expenses)
    assert len(previous.expenses) == 18


async def test_aggregate_propagates_fetch_failures():
    aggregator = AnalyticsAggregator(FailingSource())

    with pytest.raises(ConnectionError):
        await aggregator.aggregate(ORG_ID, Q1_2024)


def test_data_sufficiency_reports_each_shortfall():
    aggregator = AnalyticsAggregator(InMemorySource(), min_invoices=5, min_expenses=10, min_days=30)
    dataset = make_dataset(
        date_range=DateRange(date(2024, 1, 1), date(2024, 1, 10)),
        invoices=[make_invoice("i1", "c1", date(2024, 1, 2), 100.0)],
    )

    result = aggregator.check_data_sufficiency(dataset)

    assert result.is_sufficient is False
    assert len(result.issues) == 3
    assert len(result.recommendations) == 3


def test_data_sufficiency_passes_with_enough_history(dataset):
    result = AnalyticsAggregator(InMemorySource()).check_data_sufficiency(dataset)

    assert result.is_sufficient is True
    assert result.issues == []


def test_ensure_sufficient_raises_with_every_issue():
    aggregator = AnalyticsAggregator(InMemorySource())
    dataset = make_dataset(date_range=DateRange(date(2024, 1, 1), date(2024, 1, 10)))

    with pytest.raises(InsufficientDataError) as exc_info:
        aggregator.ensure_sufficient(dataset, "financial ratios")

    message = exc_info.value.message
    assert message.startswith("Insufficient data for financial ratios")
    assert "invoices" in message and "expenses" in message and "30 required" in message


def test_ensure_sufficient_accepts_full_year(dataset):
    AnalyticsAggregator(InMemorySource()).ensure_sufficient(dataset, "revenue forecast")


def test_financial_summary():
    dataset = make_dataset(
        date_range=Q1_2024,
        invoices=[
            make_invoice("i1", "c1", date(2024, 1, 2), 1000.0, paid_amount=400.0),
            make_invoice("i2", "c2", date(2024, 2, 2), 500.0, paid_amount=500.0),
        ],
        expenses=[make_expense("e1", 300.0, date(2024, 1, 15))],
    )

    summary = financial_summary(dataset)

    assert summary.revenue == 1500.0
    assert summary.expenses == 300.0
    assert summary.gross_profit == summary.net_profit == 1200.0
    assert summary.accounts_receivable == 600.0
    assert summary.profit_margin == pytest.approx(80.0)


def test_financial_summary_without_revenue():
    summary = financial_summary(make_dataset(expenses=[make_expense("e1", 50.0, date(2024, 5, 1))]))

    assert summary.net_profit == -50.0
    assert summary.profit_margin == 0.0
