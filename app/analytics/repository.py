"""
Dataset Repository
Reads ledger rows for one organization and date range and maps them to the
immutable records the engines consume.

Each fetch opens its own session so the aggregator can run them concurrently.
"""

import logging
import uuid
from typing import Any, Callable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.analytics.dataset import (
    Account,
    AccountType,
    Customer,
    DateRange,
    Expense,
    Invoice,
    Payment,
    TaxObligation,
)
from app.analytics.utils import safe_float
from app.models import COUNTED_EXPENSE_STATUSES, InvoiceStatus, PaymentStatus
from app.models import Account as AccountRow
from app.models import Customer as CustomerRow
from app.models import Expense as ExpenseRow
from app.models import Invoice as InvoiceRow
from app.models import Payment as PaymentRow
from app.models import TaxObligation as TaxObligationRow

logger = logging.getLogger(__name__)

# Not yet issued or voided; neither is revenue
EXCLUDED_INVOICE_STATUSES = (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value)


def _account_type(value: str) -> AccountType:
    try:
        return AccountType(value.lower())
    except ValueError:
        logger.warning("Unknown account type %r, treating as expense", value)
        return AccountType.EXPENSE


class DatasetRepository:
    """
    Async reads of ledger records scoped to an organization.

    Args:
        session_factory: async_sessionmaker producing AsyncSession instances
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _fetch(self, label: str, organization_id: str, statement: Any, mapper: Callable) -> list:
        async with self.session_factory() as session:
            result = await session.execute(statement)
            rows: Sequence[Any] = result.scalars().all()

        logger.debug("Fetched %s %s for organization %s", len(rows), label, organization_id)
        return [mapper(row) for row in rows]

    async def fetch_customers(self, organization_id: str) -> list[Customer]:
        statement = (
            select(CustomerRow)
            .where(
                CustomerRow.organization_id == uuid.UUID(organization_id),
                CustomerRow.is_active.is_(True),
            )
            .order_by(CustomerRow.name)
        )
        return await self._fetch(
            "customers",
            organization_id,
            statement,
            lambda row: Customer(
                id=str(row.id),
                name=row.name,
                payment_terms=row.payment_terms,
                is_active=row.is_active,
            ),
        )

    async def fetch_invoices(self, organization_id: str, date_range: DateRange) -> list[Invoice]:
        statement = (
            select(InvoiceRow)
            .where(
                InvoiceRow.organization_id == uuid.UUID(organization_id),
                InvoiceRow.issue_date >= date_range.start,
                InvoiceRow.issue_date <= date_range.end,
                InvoiceRow.status.not_in(EXCLUDED_INVOICE_STATUSES),
            )
            .order_by(InvoiceRow.issue_date)
        )
        return await self._fetch(
            "invoices",
            organization_id,
            statement,
            lambda row: Invoice(
                id=str(row.id),
                customer_id=str(row.customer_id),
                issue_date=row.issue_date,
                total_amount=safe_float(row.total_amount),
                invoice_number=row.invoice_number,
                due_date=row.due_date,
                subtotal=safe_float(row.subtotal),
                vat_amount=safe_float(row.vat_amount),
                paid_amount=safe_float(row.paid_amount),
                status=row.status,
            ),
        )

    async def fetch_payments(self, organization_id: str, date_range: DateRange) -> list[Payment]:
        statement = (
            select(PaymentRow)
            .where(
                PaymentRow.organization_id == uuid.UUID(organization_id),
                PaymentRow.payment_date >= date_range.start,
                PaymentRow.payment_date <= date_range.end,
                PaymentRow.status == PaymentStatus.COMPLETED.value,
            )
            .order_by(PaymentRow.payment_date)
        )
        return await self._fetch(
            "payments",
            organization_id,
            statement,
            lambda row: Payment(
                id=str(row.id),
                customer_id=str(row.customer_id),
                amount=safe_float(row.amount),
                payment_date=row.payment_date,
                invoice_id=str(row.invoice_id) if row.invoice_id else None,
                method=row.payment_method,
                status=row.status,
            ),
        )

    async def fetch_expenses(self, organization_id: str, date_range: DateRange) -> list[Expense]:
        statement = (
            select(ExpenseRow)
            .where(
                ExpenseRow.organization_id == uuid.UUID(organization_id),
                ExpenseRow.expense_date >= date_range.start,
                ExpenseRow.expense_date <= date_range.end,
                ExpenseRow.status.in_(COUNTED_EXPENSE_STATUSES),
            )
            .order_by(ExpenseRow.expense_date)
        )
        return await self._fetch(
            "expenses",
            organization_id,
            statement,
            lambda row: Expense(
                id=str(row.id),
                amount=safe_float(row.amount),
                expense_date=row.expense_date,
                category=row.category or "Uncategorized",
                description=row.description or "",
                status=row.status,
                is_recurring=row.is_recurring,
                is_tax_deductible=row.is_tax_deductible,
                vat_amount=safe_float(row.vat_amount),
            ),
        )

    async def fetch_accounts(self, organization_id: str) -> list[Account]:
        statement = (
            select(AccountRow)
            .where(AccountRow.organization_id == uuid.UUID(organization_id))
            .order_by(AccountRow.code)
        )
        return await self._fetch(
            "accounts",
            organization_id,
            statement,
            lambda row: Account(
                id=str(row.id),
                code=row.code,
                name=row.name,
                type=_account_type(row.type),
                balance=safe_float(row.balance),
            ),
        )

    async def fetch_tax_obligations(self, organization_id: str, date_range: DateRange) -> list[TaxObligation]:
        statement = (
            select(TaxObligationRow)
            .where(
                TaxObligationRow.organization_id == uuid.UUID(organization_id),
                TaxObligationRow.due_date >= date_range.start,
                TaxObligationRow.due_date <= date_range.end,
            )
            .order_by(TaxObligationRow.due_date)
        )
        return await self._fetch(
            "tax obligations",
            organization_id,
            statement,
            lambda row: TaxObligation(
                id=str(row.id),
                tax_type=row.tax_type,
                amount=safe_float(row.amount),
                due_date=row.due_date,
                status=row.status,
                penalty_amount=safe_float(row.penalty_amount),
            ),
        )
