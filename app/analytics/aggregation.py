"""
Analytics Aggregation
Assembles one immutable AnalyticsDataset per request from concurrent fetches.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol

from app.analytics.dataset import (
    Account,
    AnalyticsDataset,
    Customer,
    DataSufficiency,
    DateRange,
    Expense,
    FinancialSummary,
    Invoice,
    Payment,
    TaxObligation,
)
from app.analytics.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)


class DatasetSource(Protocol):
    """What the aggregator needs from a data source. DatasetRepository satisfies it."""

    async def fetch_customers(self, organization_id: str) -> list[Customer]: ...

    async def fetch_invoices(self, organization_id: str, date_range: DateRange) -> list[Invoice]: ...

    async def fetch_payments(self, organization_id: str, date_range: DateRange) -> list[Payment]: ...

    async def fetch_expenses(self, organization_id: str, date_range: DateRange) -> list[Expense]: ...

    async def fetch_accounts(self, organization_id: str) -> list[Account]: ...

    async def fetch_tax_obligations(self, organization_id: str, date_range: DateRange) -> list[TaxObligation]: ...


class AnalyticsAggregator:
    """
    Fetches everything the engines need for an organization and date range.

    The six fetches are independent and run concurrently. A failing fetch
    propagates its exception; nothing is retried here.
    """

    def __init__(
        self,
        source: DatasetSource,
        min_invoices: int = 5,
        min_expenses: int = 10,
        min_days: int = 30,
    ):
        self.source = source
        self.min_invoices = min_invoices
        self.min_expenses = min_expenses
        self.min_days = min_days

    async def aggregate(self, organization_id: str, date_range: DateRange) -> AnalyticsDataset:
        """
        Build the dataset for one request.

        Args:
            organization_id: Organization (tenant) identifier
            date_range: Inclusive range for dated records

        Returns:
            AnalyticsDataset stamped with the aggregation time
        """
        logger.info(
            "Aggregating analytics data for organization %s (%s to %s)",
            organization_id,
            date_range.start.isoformat(),
            date_range.end.isoformat(),
        )

        try:
            (
                customers,
                invoices,
                payments,
                expenses,
                accounts,
                tax_obligations,
            ) = await asyncio.gather(
                self.source.fetch_customers(organization_id),
                self.source.fetch_invoices(organization_id, date_range),
                self.source.fetch_payments(organization_id, date_range),
                self.source.fetch_expenses(organization_id, date_range),
                self.source.fetch_accounts(organization_id),
                self.source.fetch_tax_obligations(organization_id, date_range),
            )
        except Exception as e:
            logger.error("Failed to aggregate data for organization %s: %s", organization_id, e)
            raise

        dataset = AnalyticsDataset(
            organization_id=organization_id,
            date_range=date_range,
            customers=tuple(customers),
            invoices=tuple(invoices),
            payments=tuple(payments),
            expenses=tuple(expenses),
            accounts=tuple(accounts),
            tax_obligations=tuple(tax_obligations),
            aggregated_at=datetime.now(timezone.utc),
        )

        logger.info(
            "Aggregated %s invoices, %s expenses, %s payments for organization %s",
            len(dataset.invoices),
            len(dataset.expenses),
            len(dataset.payments),
            organization_id,
        )
        return dataset

    async def aggregate_with_previous(
        self,
        organization_id: str,
        date_range: DateRange,
    ) -> tuple[AnalyticsDataset, AnalyticsDataset]:
        """The requested range and the preceding range of equal length."""
        current, previous = await asyncio.gather(
            self.aggregate(organization_id, date_range),
            self.aggregate(organization_id, date_range.previous()),
        )
        return current, previous

    def check_data_sufficiency(self, dataset: AnalyticsDataset) -> DataSufficiency:
        """Compare the dataset against the minimum invoices, expenses and days for analysis."""
        result = DataSufficiency(is_sufficient=True)

        if len(dataset.invoices) < self.min_invoices:
            result.issues.append(
                f"Only {len(dataset.invoices)} invoices found, at least {self.min_invoices} required"
            )
            result.recommendations.append("Record more invoices or widen the date range")

        if len(dataset.expenses) < self.min_expenses:
            result.issues.append(
                f"Only {len(dataset.expenses)} expenses found, at least {self.min_expenses} required"
            )
            result.recommendations.append("Record approved expenses to enable expense analytics")

        if dataset.date_range.days < self.min_days:
            result.issues.append(
                f"Date range covers {dataset.date_range.days} days, at least {self.min_days} required"
            )
            result.recommendations.append(f"Use a date range of at least {self.min_days} days")

        result.is_sufficient = not result.issues
        return result

    def ensure_sufficient(self, dataset: AnalyticsDataset, operation: str) -> None:
        """
        Reject a dataset that falls short of the minimum data requirements.

        Raises:
            InsufficientDataError: Listing every unmet requirement
        """
        sufficiency = self.check_data_sufficiency(dataset)
        if sufficiency.is_sufficient:
            return

        logger.info(
            "Insufficient data for %s (organization %s): %s",
            operation,
            dataset.organization_id,
            "; ".join(sufficiency.issues),
        )
        raise InsufficientDataError(f"Insufficient data for {operation}: {'; '.join(sufficiency.issues)}")


def financial_summary(dataset: AnalyticsDataset) -> FinancialSummary:
    return FinancialSummary.from_dataset(dataset)

