"""
Analytics Dataset
Typed, immutable records handed to the analytics engines.

The aggregation layer builds one AnalyticsDataset per request. Engines only
read from it, so every record is a frozen dataclass.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from app.analytics.exceptions import InvalidRangeError


class AccountType(str, Enum):
    """Chart-of-accounts classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range. Construction fails if start is after end."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRangeError(
                f"Start date {self.start.isoformat()} is after end date {self.end.isoformat()}",
                {"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @property
    def days(self) -> int:
        """Number of calendar days covered, inclusive of both ends."""
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def previous(self) -> "DateRange":
        """The range of equal length that ends the day before this one starts."""
        prev_end = self.start - timedelta(days=1)
        prev_start = prev_end - timedelta(days=self.days - 1)
        return DateRange(start=prev_start, end=prev_end)


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One bucketed value of a chronologically ordered series."""

    period: str
    value: float
    date: date


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    payment_terms: int = 30
    is_active: bool = True


@dataclass(frozen=True)
class Invoice:
    id: str
    customer_id: str
    issue_date: date
    total_amount: float
    invoice_number: str = ""
    due_date: Optional[date] = None
    subtotal: float = 0.0
    vat_amount: float = 0.0
    paid_amount: float = 0.0
    status: str = "sent"

    @property
    def outstanding(self) -> float:
        return max(0.0, self.total_amount - self.paid_amount)

    def days_overdue(self, as_of: date) -> int:
        if self.due_date is None or self.outstanding <= 0:
            return 0
        return max(0, (as_of - self.due_date).days)


@dataclass(frozen=True)
class Payment:
    id: str
    customer_id: str
    amount: float
    payment_date: date
    invoice_id: Optional[str] = None
    method: str = "bank_transfer"
    status: str = "completed"


@dataclass(frozen=True)
class Expense:
    id: str
    amount: float
    expense_date: date
    category: str
    description: str = ""
    status: str = "approved"
    is_recurring: bool = False
    is_tax_deductible: bool = False
    vat_amount: float = 0.0


@dataclass(frozen=True)
class Account:
    id: str
    code: str
    name: str
    type: AccountType
    balance: float


@dataclass(frozen=True)
class TaxObligation:
    id: str
    tax_type: str
    amount: float
    due_date: date
    status: str = "pending"
    penalty_amount: float = 0.0


@dataclass(frozen=True)
class AnalyticsDataset:
    """Everything the engines need for one organization and one date range."""

    organization_id: str
    date_range: DateRange
    customers: tuple[Customer, ...] = ()
    invoices: tuple[Invoice, ...] = ()
    payments: tuple[Payment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    accounts: tuple[Account, ...] = ()
    tax_obligations: tuple[TaxObligation, ...] = ()
    aggregated_at: Optional[datetime] = None

    @property
    def total_revenue(self) -> float:
        return sum(invoice.total_amount for invoice in self.invoices)

    @property
    def total_expenses(self) -> float:
        return sum(expense.amount for expense in self.expenses)

    def slice(self, date_range: DateRange) -> "AnalyticsDataset":
        """Restrict dated records to a sub-range. Customers and accounts are kept."""
        return AnalyticsDataset(
            organization_id=self.organization_id,
            date_range=date_range,
            customers=self.customers,
            invoices=tuple(i for i in self.invoices if date_range.contains(i.issue_date)),
            payments=tuple(p for p in self.payments if date_range.contains(p.payment_date)),
            expenses=tuple(e for e in self.expenses if date_range.contains(e.expense_date)),
            accounts=self.accounts,
            tax_obligations=tuple(
                t for t in self.tax_obligations if date_range.contains(t.due_date)
            ),
            aggregated_at=self.aggregated_at,
        )


@dataclass(frozen=True)
class FinancialSummary:
    revenue: float
    expenses: float
    gross_profit: float
    net_profit: float
    total_payments: float
    accounts_receivable: float
    profit_margin: float
    date_range: DateRange

    @classmethod
    def from_dataset(cls, dataset: AnalyticsDataset) -> "FinancialSummary":
        """
        Headline figures for the dataset's range.

        Gross profit is revenue less recorded expenses; no further deductions
        are tracked, so net profit equals gross profit.
        """
        revenue = dataset.total_revenue
        expenses = dataset.total_expenses
        gross_profit = revenue - expenses

        return cls(
            revenue=revenue,
            expenses=expenses,
            gross_profit=gross_profit,
            net_profit=gross_profit,
            total_payments=sum(payment.amount for payment in dataset.payments),
            accounts_receivable=sum(invoice.outstanding for invoice in dataset.invoices),
            profit_margin=gross_profit / revenue * 100 if revenue > 0 else 0.0,
            date_range=dataset.date_range,
        )


@dataclass
class DataSufficiency:
    is_sufficient: bool
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Insight:
    """A typed observation with a suggested action, produced by several engines."""

    type: str
    title: str
    description: str
    recommendation: str
    priority: str
