"""Pytest fixtures for testing"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.analytics.aggregation import AnalyticsAggregator
from app.analytics.dataset import (
    Account,
    AccountType,
    AnalyticsDataset,
    Customer,
    DateRange,
    Expense,
    Invoice,
    Payment,
)
from app.analytics.router import get_analytics_aggregator
from app.main import app


ORG_ID = "org_test"
YEAR_2024 = DateRange(date(2024, 1, 1), date(2024, 12, 31))


def make_invoice(invoice_id: str, customer_id: str, issue_date: date, amount: float, **kwargs) -> Invoice:
    return Invoice(id=invoice_id, customer_id=customer_id, issue_date=issue_date, total_amount=amount, **kwargs)


def make_expense(expense_id: str, amount: float, expense_date: date, category: str = "Office", **kwargs) -> Expense:
    return Expense(id=expense_id, amount=amount, expense_date=expense_date, category=category, **kwargs)


def make_accounts(assets: float = 100000.0, liabilities: float = 40000.0, equity: float = 60000.0) -> tuple[Account, ...]:
    return (
        Account(id="acc_assets", code="1000", name="Assets", type=AccountType.ASSET, balance=assets),
        Account(id="acc_liabilities", code="2000", name="Liabilities", type=AccountType.LIABILITY, balance=liabilities),
        Account(id="acc_equity", code="3000", name="Equity", type=AccountType.EQUITY, balance=equity),
    )


def make_dataset(
    date_range: DateRange = YEAR_2024,
    customers=(),
    invoices=(),
    payments=(),
    expenses=(),
    accounts=(),
    tax_obligations=(),
) -> AnalyticsDataset:
    return AnalyticsDataset(
        organization_id=ORG_ID,
        date_range=date_range,
        customers=tuple(customers),
        invoices=tuple(invoices),
        payments=tuple(payments),
        expenses=tuple(expenses),
        accounts=tuple(accounts),
        tax_obligations=tuple(tax_obligations),
    )


class InMemorySource:
    """DatasetSource over fixed record lists, filtered by date range like the repository."""

    def __init__(self, customers=(), invoices=(), payments=(), expenses=(), accounts=(), tax_obligations=()):
        self.customers = list(customers)
        self.invoices = list(invoices)
        self.payments = list(payments)
        self.expenses = list(expenses)
        self.accounts = list(accounts)
        self.tax_obligations = list(tax_obligations)
        self.calls: list[str] = []

    async def fetch_customers(self, organization_id):
        self.calls.append("customers")
        return list(self.customers)

    async def fetch_invoices(self, organization_id, date_range):
        self.calls.append("invoices")
        return [i for i in self.invoices if date_range.contains(i.issue_date)]

    async def fetch_payments(self, organization_id, date_range):
        self.calls.append("payments")
        return [p for p in self.payments if date_range.contains(p.payment_date)]

    async def fetch_expenses(self, organization_id, date_range):
        self.calls.append("expenses")
        return [e for e in self.expenses if date_range.contains(e.expense_date)]

    async def fetch_accounts(self, organization_id):
        self.calls.append("accounts")
        return list(self.accounts)

    async def fetch_tax_obligations(self, organization_id, date_range):
        self.calls.append("tax_obligations")
        return [t for t in self.tax_obligations if date_range.contains(t.due_date)]


@pytest.fixture
def customers() -> list[Customer]:
    return [
        Customer(id="cust_a", name="Acme Traders"),
        Customer(id="cust_b", name="Baobab Foods"),
        Customer(id="cust_c", name="Coral Logistics"),
    ]


@pytest.fixture
def invoices() -> list[Invoice]:
    """A year of monthly invoices with steady growth, spread over three customers"""
    result = []
    for month in range(1, 13):
        result.append(make_invoice(f"inv_a_{month}", "cust_a", date(2024, month, 5), 1000.0 + month * 100))
        result.append(make_invoice(f"inv_b_{month}", "cust_b", date(2024, month, 12), 400.0))
        if month % 3 == 0:
            result.append(make_invoice(f"inv_c_{month}", "cust_c", date(2024, month, 20), 250.0))
    return result


@pytest.fixture
def payments() -> list[Payment]:
    return [
        Payment(id=f"pay_a_{month}", customer_id="cust_a", amount=1000.0 + month * 100,
                payment_date=date(2024, month, 25), invoice_id=f"inv_a_{month}")
        for month in range(1, 12)
    ]


@pytest.fixture
def expenses() -> list[Expense]:
    """Monthly rent, utilities and marketing with one unusual utilities bill"""
    result = []
    for month in range(1, 13):
        result.append(make_expense(f"rent_{month}", 500.0, date(2024, month, 1), "Rent", is_tax_deductible=True))
        utilities = 1500.0 if month == 7 else 100.0 + (month % 3)
        result.append(make_expense(f"util_{month}", utilities, date(2024, month, 10), "Utilities"))
        result.append(make_expense(f"mkt_{month}", 50.0 + month * 20, date(2024, month, 15), "Marketing"))
    return result


@pytest.fixture
def dataset(customers, invoices, payments, expenses) -> AnalyticsDataset:
    return make_dataset(
        customers=customers,
        invoices=invoices,
        payments=payments,
        expenses=expenses,
        accounts=make_accounts(),
    )


@pytest.fixture
def source(customers, invoices, payments, expenses) -> InMemorySource:
    return InMemorySource(
        customers=customers,
        invoices=invoices,
        payments=payments,
        expenses=expenses,
        accounts=make_accounts(),
    )


@pytest.fixture
def client(source: InMemorySource) -> TestClient:
    """FastAPI test client reading from the in-memory source"""
    app.dependency_overrides[get_analytics_aggregator] = lambda: AnalyticsAggregator(source)
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
