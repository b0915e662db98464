"""
Analytics Router
API endpoints for revenue, expense, profitability, ratio, tax and health analytics.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any, Callable

from fastapi import APIRouter, Depends, Query

from app.analytics.aggregation import AnalyticsAggregator
from app.analytics.dataset import AnalyticsDataset, DateRange
from app.analytics.exceptions import AnalyticsError
from app.analytics.repository import DatasetRepository
from app.analytics.schemas import (
    AnalyticsResponse,
    AnomalyQuery,
    BenchmarkQuery,
    DateRangeQuery,
    GroupedQuery,
    ProfitabilityQuery,
    ProfitabilityTrendQuery,
    RatioQuery,
    RevenueForecastQuery,
    TaxQuery,
)
from app.analytics.service import AnalyticsService
from app.analytics.utils import create_analytics_response
from app.config import settings
from app.core.errors import create_error_response, get_error_code_for_exception, sanitize_error_message
from app.database.connection import async_session_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def get_analytics_aggregator() -> AnalyticsAggregator:
    """Aggregator reading from the ledger database. Overridden in tests."""
    return AnalyticsAggregator(
        DatasetRepository(async_session_factory),
        min_invoices=settings.analytics_min_invoices,
        min_expenses=settings.analytics_min_expenses,
        min_days=settings.analytics_min_days,
    )


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService(settings)


Aggregator = Annotated[AnalyticsAggregator, Depends(get_analytics_aggregator)]
Service = Annotated[AnalyticsService, Depends(get_analytics_service)]


async def _run(
    operation: str,
    organization_id: str,
    date_range: DateRange,
    aggregator: AnalyticsAggregator,
    compute: Callable[[AnalyticsDataset], Any],
    require_sufficient_data: bool = False,
) -> dict[str, Any]:
    """
    Aggregate, compute and wrap one analytics operation.

    With require_sufficient_data the dataset must meet the minimum invoice,
    expense and day counts before anything is computed.

    Analytics errors become structured HTTP errors; anything else reaches
    the global exception handler.
    """
    started_at = datetime.now(timezone.utc)
    try:
        dataset = await aggregator.aggregate(organization_id, date_range)
        if require_sufficient_data:
            aggregator.ensure_sufficient(dataset, operation)
        data = compute(dataset)
    except AnalyticsError as e:
        error_code, http_status = get_error_code_for_exception(e)
        raise create_error_response(error_code, sanitize_error_message(e, error_code), http_status)

    logger.info("Completed %s for organization %s", operation, organization_id)
    return create_analytics_response(data, organization_id, date_range, started_at=started_at)


def _date_range(query: DateRangeQuery) -> DateRange:
    try:
        return query.to_date_range()
    except AnalyticsError as e:
        error_code, http_status = get_error_code_for_exception(e)
        raise create_error_response(error_code, sanitize_error_message(e, error_code), http_status)


# ============================================
# Revenue
# ============================================

@router.get(
    "/{organization_id}/revenue/forecast",
    response_model=AnalyticsResponse,
    summary="Forecast revenue",
    description="Project invoiced revenue forward with a linear, exponential or seasonal model.",
)
async def get_revenue_forecast(
    organization_id: str,
    query: Annotated[RevenueForecastQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "revenue forecast",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.revenue_forecast(
            dataset,
            periods=query.periods,
            model_type=query.model_type,
            include_seasonality=query.include_seasonality,
            group_by=query.group_by,
            confidence_level=query.confidence_level,
        ),
        require_sufficient_data=True,
    )


@router.get(
    "/{organization_id}/revenue/trends",
    response_model=AnalyticsResponse,
    summary="Revenue trend analysis",
)
async def get_revenue_trends(
    organization_id: str,
    query: Annotated[GroupedQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "revenue trends",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.revenue_trends(dataset, query.group_by),
        require_sufficient_data=True,
    )


# ============================================
# Expenses
# ============================================

@router.get(
    "/{organization_id}/expenses/trends",
    response_model=AnalyticsResponse,
    summary="Expense trends by period and category",
)
async def get_expense_trends(
    organization_id: str,
    query: Annotated[GroupedQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "expense trends",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.expense_trends(dataset, query.group_by),
        require_sufficient_data=True,
    )


@router.get(
    "/{organization_id}/expenses/anomalies",
    response_model=AnalyticsResponse,
    summary="Detect unusual expenses",
)
async def get_expense_anomalies(
    organization_id: str,
    query: Annotated[AnomalyQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "expense anomalies",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.expense_anomalies(dataset, query.sensitivity, query.as_of),
    )


@router.get(
    "/{organization_id}/expenses/patterns",
    response_model=AnalyticsResponse,
    summary="Expense category patterns and cost optimization",
)
async def get_expense_patterns(
    organization_id: str,
    query: Annotated[DateRangeQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "expense patterns",
        organization_id,
        _date_range(query),
        aggregator,
        service.expense_patterns,
    )


# ============================================
# Profitability
# ============================================

@router.get(
    "/{organization_id}/profitability/customers",
    response_model=AnalyticsResponse,
    summary="Customer profitability ranking",
)
async def get_customer_profitability(
    organization_id: str,
    query: Annotated[ProfitabilityQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "customer profitability",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.customer_profitability(
            dataset,
            include_cost_allocation=query.include_cost_allocation,
            min_profit_threshold=query.min_profit_threshold,
        ),
        require_sufficient_data=True,
    )


@router.get(
    "/{organization_id}/profitability/trends",
    response_model=AnalyticsResponse,
    summary="Profitability by period with forecast",
)
async def get_profitability_trends(
    organization_id: str,
    query: Annotated[ProfitabilityTrendQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "profitability trends",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.profitability_trends(dataset, query.group_by, query.forecast_periods),
    )


# ============================================
# Ratios
# ============================================

@router.get(
    "/{organization_id}/ratios",
    response_model=AnalyticsResponse,
    summary="Financial ratios",
)
async def get_financial_ratios(
    organization_id: str,
    query: Annotated[RatioQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "financial ratios",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.financial_ratios(dataset, query.include_benchmarking),
        require_sufficient_data=True,
    )


@router.get(
    "/{organization_id}/ratios/trends",
    response_model=AnalyticsResponse,
    summary="Financial ratios per period",
)
async def get_ratio_trends(
    organization_id: str,
    query: Annotated[GroupedQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "ratio trends",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.ratio_trends(dataset, query.group_by),
    )


@router.get(
    "/{organization_id}/ratios/benchmarks",
    response_model=AnalyticsResponse,
    summary="Industry benchmark comparison",
)
async def get_ratio_benchmarks(
    organization_id: str,
    query: Annotated[BenchmarkQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "ratio benchmarks",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.ratio_benchmarks(dataset, query.sector),
    )


# ============================================
# Tax
# ============================================

@router.get(
    "/{organization_id}/tax",
    response_model=AnalyticsResponse,
    summary="Tax position and planning",
    description="VAT liability, income tax estimate, obligation status, compliance score and optimization insights.",
)
async def get_tax_analytics(
    organization_id: str,
    query: Annotated[TaxQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "tax analytics",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.tax_analytics(dataset, query.as_of),
    )


# ============================================
# Health, summary and sufficiency
# ============================================

@router.get(
    "/{organization_id}/health",
    response_model=AnalyticsResponse,
    summary="Business health score",
    description="Weighted 0-100 score; growth compares against the preceding period of equal length.",
)
async def get_health_score(
    organization_id: str,
    query: Annotated[DateRangeQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    date_range = _date_range(query)
    started_at = datetime.now(timezone.utc)

    try:
        current, previous = await aggregator.aggregate_with_previous(organization_id, date_range)
        data = service.health_score(current, previous)
    except AnalyticsError as e:
        error_code, http_status = get_error_code_for_exception(e)
        raise create_error_response(error_code, sanitize_error_message(e, error_code), http_status)

    return create_analytics_response(data, organization_id, date_range, started_at=started_at)


@router.get(
    "/{organization_id}/summary",
    response_model=AnalyticsResponse,
    summary="Financial summary",
)
async def get_financial_summary(
    organization_id: str,
    query: Annotated[DateRangeQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "financial summary",
        organization_id,
        _date_range(query),
        aggregator,
        service.summary,
    )


@router.get(
    "/{organization_id}/sufficiency",
    response_model=AnalyticsResponse,
    summary="Check whether enough data exists for analysis",
)
async def get_data_sufficiency(
    organization_id: str,
    query: Annotated[DateRangeQuery, Query()],
    aggregator: Aggregator,
    service: Service,
) -> dict[str, Any]:
    return await _run(
        "data sufficiency",
        organization_id,
        _date_range(query),
        aggregator,
        lambda dataset: service.data_sufficiency(aggregator, dataset),
    )
