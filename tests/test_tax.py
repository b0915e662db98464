"""Unit tests for tax analytics"""

from datetime import date

import pytest

from app.analytics.dataset import DateRange, TaxObligation
from app.analytics.tax import (
    ComplianceRisk,
    IncomeTaxEstimate,
    TaxAnalyzer,
    VatPosition,
    income_tax,
    income_tax_due_date,
    marginal_rate,
    months_covered,
    vat_due_date,
)
from tests.conftest import make_dataset, make_expense, make_invoice


Q1_2024 = DateRange(date(2024, 1, 1), date(2024, 3, 31))


def obligations() -> list[TaxObligation]:
    return [
        TaxObligation(id="o1", tax_type="vat", amount=1000.0, due_date=date(2024, 4, 30), penalty_amount=50.0),
        TaxObligation(id="o2", tax_type="paye", amount=500.0, due_date=date(2024, 5, 15), status="PAID"),
        TaxObligation(id="o3", tax_type="income_tax", amount=2000.0, due_date=date(2024, 7, 15)),
        TaxObligation(id="o4", tax_type="vat", amount=800.0, due_date=date(2024, 9, 30)),
        TaxObligation(id="o5", tax_type="turnover", amount=300.0, due_date=date(2024, 7, 5), status="filed"),
    ]


@pytest.mark.parametrize(
    "taxable,expected",
    [
        (0.0, 0.0),
        (4800.0, 0.0),
        (10000.0, 1320.0),
        (30000.0, 8130.0),
    ],
)
def test_income_tax_is_progressive(taxable, expected):
    assert income_tax(taxable) == pytest.approx(expected)


def test_income_tax_with_custom_brackets():
    brackets = ((0.0, 100.0, 0.1), (100.0, None, 0.2))

    assert income_tax(150.0, brackets) == pytest.approx(20.0)


def test_marginal_rate_is_the_next_band_at_a_boundary():
    assert marginal_rate(0.0) == 0.0
    assert marginal_rate(4800.0) == 0.25
    assert marginal_rate(20000.0) == 0.375


def test_months_covered_counts_partial_months():
    assert months_covered(DateRange(date(2024, 1, 1), date(2024, 12, 31))) == 12
    assert months_covered(DateRange(date(2024, 1, 15), date(2024, 2, 3))) == 2


def test_due_dates():
    assert vat_due_date(date(2024, 5, 10)) == date(2024, 6, 30)
    assert vat_due_date(date(2024, 12, 31)) == date(2024, 12, 31)
    assert income_tax_due_date(date(2024, 6, 30)) == date(2025, 3, 31)


def test_vat_position_counts_collected_invoices_only():
    dataset = make_dataset(
        date_range=Q1_2024,
        invoices=[
            make_invoice("i1", "c1", date(2024, 1, 5), 11600.0, vat_amount=1600.0, status="paid"),
            make_invoice("i2", "c1", date(2024, 2, 5), 5800.0, vat_amount=800.0, status="partially_paid"),
            make_invoice("i3", "c1", date(2024, 3, 5), 2900.0, vat_amount=400.0, status="sent"),
        ],
        expenses=[
            make_expense("e1", 2000.0, date(2024, 1, 10), vat_amount=300.0),
            make_expense("e2", 700.0, date(2024, 2, 10), vat_amount=100.0),
        ],
    )

    vat = TaxAnalyzer.vat_position(dataset)

    assert vat.collected == pytest.approx(2400.0)
    assert vat.paid == pytest.approx(400.0)
    assert vat.liability == pytest.approx(2000.0)
    assert vat.quarterly_estimate == pytest.approx(2000.0)


def test_quarterly_vat_is_scaled_from_a_full_year():
    dataset = make_dataset(
        invoices=[make_invoice("i1", "c1", date(2024, 6, 5), 10000.0, vat_amount=2000.0, status="paid")],
    )

    assert TaxAnalyzer.vat_position(dataset).quarterly_estimate == pytest.approx(500.0)


def test_vat_liability_never_goes_negative():
    dataset = make_dataset(
        invoices=[make_invoice("i1", "c1", date(2024, 6, 5), 1000.0, vat_amount=100.0, status="paid")],
        expenses=[make_expense("e1", 5000.0, date(2024, 6, 10), vat_amount=700.0)],
    )

    assert TaxAnalyzer.vat_position(dataset).liability == 0.0


def test_income_tax_estimate_uses_collected_revenue_and_deductible_spend():
    dataset = make_dataset(
        invoices=[
            make_invoice("i1", "c1", date(2024, 1, 5), 20000.0, paid_amount=20000.0, status="paid"),
            make_invoice("i2", "c2", date(2024, 2, 5), 8000.0, paid_amount=5000.0, status="partially_paid"),
            make_invoice("i3", "c2", date(2024, 3, 5), 9000.0, status="sent"),
        ],
        expenses=[
            make_expense("e1", 4000.0, date(2024, 1, 1), "Rent", is_tax_deductible=True),
            make_expense("e2", 1000.0, date(2024, 1, 2), "Entertainment"),
        ],
    )

    estimate = TaxAnalyzer.income_tax_estimate(dataset)

    assert estimate.revenue == pytest.approx(25000.0)
    assert estimate.deductions == pytest.approx(4000.0)
    assert estimate.taxable_income == pytest.approx(21000.0)
    assert estimate.estimated_tax == pytest.approx(4755.0)
    assert estimate.effective_rate == pytest.approx(4755.0 / 21000.0 * 100)
    assert estimate.marginal_rate == pytest.approx(37.5)


def test_obligation_status_separates_overdue_and_upcoming():
    status = TaxAnalyzer.obligation_status(obligations(), date(2024, 6, 30))

    assert status.outstanding_amount == pytest.approx(3800.0)
    assert status.overdue_count == 1
    assert status.overdue_amount == pytest.approx(1000.0)
    assert status.penalties == pytest.approx(50.0)
    assert [o.id for o in status.upcoming] == ["o3"]


def test_compliance_score_multiplies_record_gaps():
    dataset = make_dataset(
        invoices=[
            make_invoice("i1", "c1", date(2024, 1, 5), 116.0, vat_amount=16.0),
            make_invoice("i2", "c1", date(2024, 2, 5), 116.0, vat_amount=16.0),
            make_invoice("i3", "c1", date(2024, 3, 5), 116.0, vat_amount=16.0),
            make_invoice("i4", "c1", date(2024, 4, 5), 100.0),
            make_invoice("i5", "c1", date(2024, 5, 5), 0.0),
        ],
        expenses=[
            make_expense("e1", 10.0, date(2024, 1, 1), "Rent"),
            make_expense("e2", 10.0, date(2024, 2, 1), "Office"),
            make_expense("e3", 10.0, date(2024, 3, 1), "Utilities"),
            make_expense("e4", 10.0, date(2024, 4, 1), "Other"),
        ],
        tax_obligations=[
            TaxObligation(id="late", tax_type="vat", amount=100.0, due_date=date(2024, 4, 30)),
            TaxObligation(id="done", tax_type="vat", amount=100.0, due_date=date(2024, 5, 31), status="paid"),
        ],
    )
    status = TaxAnalyzer.obligation_status(dataset.tax_obligations, date(2024, 6, 30))

    assert TaxAnalyzer.compliance_score(dataset, status) == pytest.approx(100 * 0.75 * 0.75 * 0.5)


def test_compliance_score_is_full_without_records():
    dataset = make_dataset()
    status = TaxAnalyzer.obligation_status((), date(2024, 12, 31))

    assert TaxAnalyzer.compliance_score(dataset, status) == 100.0


def test_clean_books_are_on_track():
    dataset = make_dataset(
        invoices=[
            make_invoice("i1", "c1", date(2024, 3, 5), 1000.0, vat_amount=100.0, paid_amount=1000.0, status="paid"),
        ],
        expenses=[make_expense("e1", 500.0, date(2024, 3, 1), "Rent", is_tax_deductible=True, vat_amount=50.0)],
    )

    report = TaxAnalyzer.analyze(dataset)

    assert report.compliance_score == 100.0
    assert report.recommendations == ["Tax compliance and optimization are on track"]


def test_overdue_obligations_are_flagged():
    dataset = make_dataset(tax_obligations=obligations())

    report = TaxAnalyzer.analyze(dataset, as_of=date(2024, 6, 30))

    assert report.obligations.overdue_count == 1
    assert "Settle 1 overdue tax obligations to stop penalties accruing" in report.recommendations


def test_vat_optimization_estimates_unclaimed_input_vat():
    vat = VatPosition(collected=1000.0, paid=100.0, liability=900.0, quarterly_estimate=225.0)
    expenses = [make_expense("e1", 20000.0, date(2024, 1, 1)), make_expense("e2", 500.0, date(2024, 1, 2), vat_amount=80.0)]

    optimization = TaxAnalyzer.vat_optimization(vat, expenses, compliance_score=90.0)

    assert optimization.potential_savings == pytest.approx(1600.0)
    assert optimization.compliance_risk == ComplianceRisk.MEDIUM
    assert optimization.recommendations == [
        "Review expense receipts to claim additional input VAT",
        "Ensure all input VAT is properly claimed",
    ]


def test_poor_compliance_is_high_vat_risk():
    vat = VatPosition(collected=0.0, paid=0.0, liability=0.0, quarterly_estimate=0.0)

    optimization = TaxAnalyzer.vat_optimization(vat, [], compliance_score=50.0)

    assert optimization.compliance_risk == ComplianceRisk.HIGH
    assert optimization.potential_savings == 0.0


def test_deduction_opportunities_rank_unclaimed_spend():
    expenses = [
        make_expense("e1", 500.0, date(2024, 1, 1), "Rent", is_tax_deductible=True),
        make_expense("e2", 300.0, date(2024, 1, 2), "Office", is_tax_deductible=True),
        make_expense("e3", 200.0, date(2024, 1, 3), "Office"),
        make_expense("e4", 400.0, date(2024, 1, 4), "Marketing"),
    ]

    opportunities = TaxAnalyzer.deduction_opportunities(expenses, 0.25)

    assert [o.category for o in opportunities] == ["Marketing", "Office"]
    assert opportunities[0].savings == pytest.approx(100.0)
    office = opportunities[1]
    assert office.current_amount == pytest.approx(300.0)
    assert office.potential_amount == pytest.approx(500.0)
    assert office.savings == pytest.approx(50.0)
    assert office.description.startswith("Some Office spend")


def test_cash_flow_plan_schedules_future_payments():
    vat = VatPosition(collected=800.0, paid=200.0, liability=600.0, quarterly_estimate=600.0)
    income = IncomeTaxEstimate(
        revenue=30000.0, deductions=0.0, taxable_income=30000.0,
        estimated_tax=2000.0, effective_rate=6.7, marginal_rate=37.5,
    )
    scheduled = [
        TaxObligation(id="p1", tax_type="paye", amount=100.0, due_date=date(2024, 5, 20), penalty_amount=10.0),
        TaxObligation(id="p2", tax_type="paye", amount=100.0, due_date=date(2024, 5, 25), status="paid"),
        TaxObligation(id="p3", tax_type="paye", amount=100.0, due_date=date(2024, 5, 1)),
    ]

    plan = TaxAnalyzer.cash_flow_plan(vat, income, scheduled, date(2024, 5, 10))

    assert [(p.due_date, p.amount, p.tax_type) for p in plan.payment_schedule] == [
        (date(2024, 5, 20), 110.0, "paye"),
        (date(2024, 6, 30), 600.0, "vat"),
        (date(2025, 3, 31), 2000.0, "income_tax"),
    ]
    assert plan.recommended_reserves == pytest.approx(1100.0)
    assert plan.cash_flow_impact[0] == "Set aside 1,100.00 for upcoming tax payments"


def test_report_for_a_year_without_vat(dataset):
    report = TaxAnalyzer.analyze(dataset)

    assert report.period == "2024-01-01 to 2024-12-31"
    assert report.vat.collected == 0.0
    assert report.compliance_score == 0.0
    assert "Consider consulting with a tax professional for compliance review" in report.recommendations
    assert report.optimization.income_tax.deduction_opportunities[0].category == "Marketing"
