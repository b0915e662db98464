"""
Tax Analytics Engine
VAT position, income tax estimate, obligation status, compliance score and
tax planning insights.

Rates and brackets are configuration in constants.py. Nothing here models a
jurisdiction's filing rules beyond a flat VAT rate and a progressive
bracket table.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Sequence

from app.analytics.constants import (
    INCOME_TAX_BRACKETS,
    INCOME_TAX_DUE,
    INCOME_TAX_RESERVE_SHARE,
    SETTLED_TAX_STATUSES,
    TAX_UPCOMING_DAYS,
    UNCATEGORIZED_EXPENSE_LABELS,
    VAT_COLLECTED_INVOICE_STATUSES,
    VAT_ELIGIBLE_SHARE,
    VAT_RATE,
    VAT_RESERVE_THRESHOLD,
)
from app.analytics.dataset import AnalyticsDataset, DateRange, Expense, TaxObligation
from app.analytics.parameters import GroupBy
from app.analytics.periods import step_bucket
from app.analytics.utils import safe_divide

Brackets = Sequence[tuple[float, Optional[float], float]]


class ComplianceRisk(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class VatPosition:
    collected: float
    paid: float
    liability: float
    quarterly_estimate: float


@dataclass(frozen=True)
class IncomeTaxEstimate:
    revenue: float
    deductions: float
    taxable_income: float
    estimated_tax: float
    effective_rate: float
    marginal_rate: float


@dataclass(frozen=True)
class ObligationStatus:
    outstanding_amount: float
    overdue_count: int
    overdue_amount: float
    penalties: float
    upcoming: list[TaxObligation] = field(default_factory=list)


@dataclass(frozen=True)
class DeductionOpportunity:
    category: str
    current_amount: float
    potential_amount: float
    savings: float
    description: str


@dataclass(frozen=True)
class ScheduledTaxPayment:
    due_date: date
    amount: float
    tax_type: str


@dataclass(frozen=True)
class VatOptimization:
    current_liability: float
    potential_savings: float
    compliance_risk: ComplianceRisk
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IncomeTaxOptimization:
    current_estimate: float
    deduction_opportunities: list[DeductionOpportunity] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CashFlowPlan:
    payment_schedule: list[ScheduledTaxPayment]
    recommended_reserves: float
    cash_flow_impact: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TaxOptimization:
    vat: VatOptimization
    income_tax: IncomeTaxOptimization
    cash_flow: CashFlowPlan


@dataclass(frozen=True)
class TaxReport:
    period: str
    vat: VatPosition
    income_tax: IncomeTaxEstimate
    obligations: ObligationStatus
    compliance_score: float
    recommendations: list[str]
    optimization: TaxOptimization


def income_tax(taxable_income: float, brackets: Brackets = INCOME_TAX_BRACKETS) -> float:
    """
    Progressive tax: each band's rate applies only to the income inside it.

    Args:
        taxable_income: Income after deductions
        brackets: (lower, upper or None, rate) bands in ascending order

    Returns:
        Total tax across all bands
    """
    tax = 0.0
    for lower, upper, rate in brackets:
        if taxable_income <= lower:
            break
        top = taxable_income if upper is None else min(taxable_income, upper)
        tax += (top - lower) * rate
    return tax


def marginal_rate(taxable_income: float, brackets: Brackets = INCOME_TAX_BRACKETS) -> float:
    """Rate of the band the next unit of income falls in."""
    rate = 0.0
    for _, upper, band_rate in brackets:
        rate = band_rate
        if upper is None or taxable_income < upper:
            break
    return rate


def months_covered(date_range: DateRange) -> int:
    """Calendar months touched by the range, counting partial months."""
    start, end = date_range.start, date_range.end
    return (end.year - start.year) * 12 + end.month - start.month + 1


def vat_due_date(as_of: date) -> date:
    """Last day of the quarter containing as_of."""
    return step_bucket(as_of, GroupBy.QUARTER) - timedelta(days=1)


def income_tax_due_date(as_of: date) -> date:
    month, day = INCOME_TAX_DUE
    return date(as_of.year + 1, month, day)


def _is_uncategorized(expense: Expense) -> bool:
    return (expense.category or "").strip().lower() in UNCATEGORIZED_EXPENSE_LABELS


class TaxAnalyzer:
    """
    Tax position for one organization and date range.

    VAT collected comes from paid and partially paid invoices, VAT paid from
    the VAT recorded on expenses. Income tax is estimated on collected
    revenue less tax-deductible expenses.
    """

    @staticmethod
    def vat_position(dataset: AnalyticsDataset) -> VatPosition:
        collected = sum(
            invoice.vat_amount
            for invoice in dataset.invoices
            if invoice.status.lower() in VAT_COLLECTED_INVOICE_STATUSES
        )
        paid = sum(expense.vat_amount for expense in dataset.expenses)
        liability = max(0.0, collected - paid)

        return VatPosition(
            collected=collected,
            paid=paid,
            liability=liability,
            quarterly_estimate=liability / months_covered(dataset.date_range) * 3,
        )

    @staticmethod
    def income_tax_estimate(dataset: AnalyticsDataset, brackets: Brackets = INCOME_TAX_BRACKETS) -> IncomeTaxEstimate:
        revenue = sum(
            invoice.paid_amount
            for invoice in dataset.invoices
            if invoice.status.lower() in VAT_COLLECTED_INVOICE_STATUSES
        )
        deductions = sum(expense.amount for expense in dataset.expenses if expense.is_tax_deductible)
        taxable_income = max(0.0, revenue - deductions)
        estimated_tax = income_tax(taxable_income, brackets)

        return IncomeTaxEstimate(
            revenue=revenue,
            deductions=deductions,
            taxable_income=taxable_income,
            estimated_tax=estimated_tax,
            effective_rate=safe_divide(estimated_tax, taxable_income) * 100,
            marginal_rate=marginal_rate(taxable_income, brackets) * 100,
        )

    @staticmethod
    def obligation_status(obligations: Sequence[TaxObligation], as_of: date) -> ObligationStatus:
        """
        Outstanding, overdue and upcoming obligations as of a day.

        Paid and filed obligations are settled. Anything else due before
        as_of is overdue; upcoming covers the next 30 days, earliest first.
        """
        outstanding = [o for o in obligations if o.status.lower() not in SETTLED_TAX_STATUSES]
        overdue = [o for o in outstanding if o.due_date < as_of]
        horizon = as_of + timedelta(days=TAX_UPCOMING_DAYS)
        upcoming = sorted(
            (o for o in outstanding if as_of <= o.due_date <= horizon),
            key=lambda o: o.due_date,
        )

        return ObligationStatus(
            outstanding_amount=sum(o.amount for o in outstanding),
            overdue_count=len(overdue),
            overdue_amount=sum(o.amount for o in overdue),
            penalties=sum(o.penalty_amount for o in obligations),
            upcoming=upcoming,
        )

    @staticmethod
    def compliance_score(dataset: AnalyticsDataset, obligations: ObligationStatus) -> float:
        """
        0-100 score, scaled down by each gap in the records.

        The share of billed invoices carrying VAT, the share of categorized
        expenses and the share of obligations not overdue multiply together.
        """
        score = 100.0

        billed = [invoice for invoice in dataset.invoices if invoice.total_amount > 0]
        if billed:
            score *= sum(1 for invoice in billed if invoice.vat_amount > 0) / len(billed)

        if dataset.expenses:
            uncategorized = sum(1 for expense in dataset.expenses if _is_uncategorized(expense))
            score *= 1 - uncategorized / len(dataset.expenses)

        if dataset.tax_obligations:
            score *= 1 - obligations.overdue_count / len(dataset.tax_obligations)

        return max(0.0, min(100.0, score))

    @staticmethod
    def recommendations(
        vat: VatPosition,
        income: IncomeTaxEstimate,
        obligations: ObligationStatus,
        compliance_score: float,
    ) -> list[str]:
        recommendations = []

        if vat.liability > VAT_RESERVE_THRESHOLD:
            recommendations.append("Consider setting aside funds for quarterly VAT payments")
        if vat.paid < vat.collected * 0.3:
            recommendations.append("Review input VAT claims to ensure all eligible expenses are included")
        if income.deductions < income.taxable_income * 0.2:
            recommendations.append("Review expense categorization to maximize tax deductions")
        if obligations.overdue_count:
            recommendations.append(
                f"Settle {obligations.overdue_count} overdue tax obligations to stop penalties accruing"
            )
        if compliance_score < 80:
            recommendations.append("Improve record-keeping and expense categorization for better compliance")
        if compliance_score < 60:
            recommendations.append("Consider consulting with a tax professional for compliance review")
        if not recommendations:
            recommendations.append("Tax compliance and optimization are on track")

        return recommendations

    # ============================================
    # Optimization
    # ============================================

    @staticmethod
    def vat_optimization(vat: VatPosition, expenses: Sequence[Expense], compliance_score: float) -> VatOptimization:
        """Input VAT likely left unclaimed on expenses recorded without VAT."""
        unclaimed_spend = sum(expense.amount for expense in expenses if expense.vat_amount == 0)
        potential_savings = unclaimed_spend * VAT_ELIGIBLE_SHARE * VAT_RATE

        recommendations = []
        risk = ComplianceRisk.LOW

        if potential_savings > 1000:
            recommendations.append("Review expense receipts to claim additional input VAT")
        if vat.collected > 0 and vat.liability > vat.collected * 0.8:
            recommendations.append("Ensure all input VAT is properly claimed")
            risk = ComplianceRisk.MEDIUM
        if compliance_score < 60:
            risk = ComplianceRisk.HIGH

        return VatOptimization(
            current_liability=vat.liability,
            potential_savings=potential_savings,
            compliance_risk=risk,
            recommendations=recommendations,
        )

    @staticmethod
    def deduction_opportunities(expenses: Sequence[Expense], rate: float) -> list[DeductionOpportunity]:
        """
        Categories with spend not yet claimed as deductible.

        Savings assume the unclaimed spend would be taxed at the marginal
        rate (a 0-1 fraction). Largest savings first.
        """
        claimed: dict[str, float] = defaultdict(float)
        total: dict[str, float] = defaultdict(float)
        for expense in expenses:
            category = expense.category or "Uncategorized"
            total[category] += expense.amount
            if expense.is_tax_deductible:
                claimed[category] += expense.amount

        opportunities = []
        for category in sorted(total):
            unclaimed = total[category] - claimed[category]
            if unclaimed <= 0:
                continue
            if claimed[category] > 0:
                description = f"Some {category} spend is already claimed; review the rest for deductibility"
            else:
                description = f"Check whether {category} expenses qualify as business deductions"
            opportunities.append(
                DeductionOpportunity(
                    category=category,
                    current_amount=claimed[category],
                    potential_amount=total[category],
                    savings=unclaimed * rate,
                    description=description,
                )
            )

        return sorted(opportunities, key=lambda o: o.savings, reverse=True)

    @staticmethod
    def cash_flow_plan(
        vat: VatPosition,
        income: IncomeTaxEstimate,
        obligations: Sequence[TaxObligation],
        as_of: date,
    ) -> CashFlowPlan:
        """Upcoming tax payments, earliest first, and the reserve to hold for them."""
        schedule = [
            ScheduledTaxPayment(due_date=o.due_date, amount=o.amount + o.penalty_amount, tax_type=o.tax_type)
            for o in obligations
            if o.status.lower() not in SETTLED_TAX_STATUSES and o.due_date >= as_of
        ]
        schedule.append(ScheduledTaxPayment(due_date=vat_due_date(as_of), amount=vat.quarterly_estimate, tax_type="vat"))
        schedule.append(
            ScheduledTaxPayment(
                due_date=income_tax_due_date(as_of),
                amount=income.estimated_tax,
                tax_type="income_tax",
            )
        )

        reserves = vat.quarterly_estimate + income.estimated_tax * INCOME_TAX_RESERVE_SHARE

        return CashFlowPlan(
            payment_schedule=sorted(schedule, key=lambda payment: payment.due_date),
            recommended_reserves=reserves,
            cash_flow_impact=[
                f"Set aside {reserves:,.2f} for upcoming tax payments",
                "Consider monthly tax reserves to smooth cash flow impact",
            ],
        )

    @staticmethod
    def optimization(
        dataset: AnalyticsDataset,
        vat: VatPosition,
        income: IncomeTaxEstimate,
        compliance_score: float,
        as_of: date,
    ) -> TaxOptimization:
        opportunities = TaxAnalyzer.deduction_opportunities(dataset.expenses, income.marginal_rate / 100)

        recommendations = []
        if opportunities:
            recommendations.append("Review expense categorization to maximize deductions")
        recommendations.append("Consider timing of expenses for tax optimization")
        recommendations.append("Maintain proper documentation for all business expenses")

        return TaxOptimization(
            vat=TaxAnalyzer.vat_optimization(vat, dataset.expenses, compliance_score),
            income_tax=IncomeTaxOptimization(
                current_estimate=income.estimated_tax,
                deduction_opportunities=opportunities,
                recommendations=recommendations,
            ),
            cash_flow=TaxAnalyzer.cash_flow_plan(vat, income, dataset.tax_obligations, as_of),
        )

    @staticmethod
    def analyze(
        dataset: AnalyticsDataset,
        as_of: Optional[date] = None,
        brackets: Brackets = INCOME_TAX_BRACKETS,
    ) -> TaxReport:
        """
        Full tax report for the dataset.

        Args:
            dataset: Records for one organization and date range
            as_of: Day obligations are judged overdue against; defaults to the range end
            brackets: Income tax bands, (lower, upper or None, rate)
        """
        as_of = as_of or dataset.date_range.end

        vat = TaxAnalyzer.vat_position(dataset)
        income = TaxAnalyzer.income_tax_estimate(dataset, brackets)
        obligations = TaxAnalyzer.obligation_status(dataset.tax_obligations, as_of)
        score = TaxAnalyzer.compliance_score(dataset, obligations)

        return TaxReport(
            period=f"{dataset.date_range.start.isoformat()} to {dataset.date_range.end.isoformat()}",
            vat=vat,
            income_tax=income,
            obligations=obligations,
            compliance_score=score,
            recommendations=TaxAnalyzer.recommendations(vat, income, obligations, score),
            optimization=TaxAnalyzer.optimization(dataset, vat, income, score, as_of),
        )
