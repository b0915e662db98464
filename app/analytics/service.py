"""
Analytics Service
Facade over the analytics engines: resolves parameters, runs the engine for
one operation and returns JSON-ready structures.
"""

import logging
from datetime import date
from typing import Any, Optional, Union

from fastapi.encoders import jsonable_encoder

from app.analytics.aggregation import AnalyticsAggregator, financial_summary
from app.analytics.anomalies import ExpenseAnomalyDetector
from app.analytics.dataset import AnalyticsDataset
from app.analytics.expenses import ExpenseAnalyzer
from app.analytics.forecasting import RevenueForecaster
from app.analytics.health_score import HealthScoreCalculator
from app.analytics.parameters import GroupBy, ModelType, Sensitivity, parse_enum
from app.analytics.profitability import ProfitabilityAnalyzer
from app.analytics.ratios import RatioCalculator
from app.analytics.tax import TaxAnalyzer
from app.analytics.trends import TrendAnalyzer, analyze_expense_trends, revenue_time_series
from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    One method per analytics operation.

    Every method takes an already aggregated dataset. Defaults for omitted
    parameters come from the analytics settings.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings

    # ============================================
    # Revenue
    # ============================================

    def revenue_forecast(
        self,
        dataset: AnalyticsDataset,
        periods: Optional[int] = None,
        model_type: Optional[Union[ModelType, str]] = None,
        include_seasonality: Optional[bool] = None,
        group_by: Union[GroupBy, str] = GroupBy.MONTH,
        confidence_level: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Forecast revenue from the dataset's invoices.

        Raises:
            InsufficientDataError: Fewer than 3 historical periods
            ConfigurationError: Unknown model type or grouping, or periods out of range
        """
        grouping = parse_enum(GroupBy, group_by)
        model = parse_enum(ModelType, model_type) if model_type else None
        horizon = periods or self.settings.analytics_default_forecast_periods
        seasonal = self.settings.analytics_enable_seasonality if include_seasonality is None else include_seasonality

        series = revenue_time_series(dataset.invoices, grouping)
        logger.info(
            "Forecasting revenue for organization %s: %s periods from %s points",
            dataset.organization_id,
            horizon,
            len(series),
        )

        result = RevenueForecaster.forecast_revenue(
            series,
            horizon,
            model_type=model,
            include_seasonality=seasonal,
            group_by=grouping,
            max_periods=self.settings.analytics_max_forecast_periods,
            confidence_level=confidence_level or self.settings.analytics_default_confidence,
        )
        return jsonable_encoder(result)

    def revenue_trends(self, dataset: AnalyticsDataset, group_by: Union[GroupBy, str] = GroupBy.MONTH) -> dict[str, Any]:
        grouping = parse_enum(GroupBy, group_by)
        series = revenue_time_series(dataset.invoices, grouping)
        return jsonable_encoder({
            "series": series,
            "trend": TrendAnalyzer.analyze(series),
            "validation": RevenueForecaster.validate_series(series),
        })

    # ============================================
    # Expenses
    # ============================================

    def expense_trends(self, dataset: AnalyticsDataset, group_by: Union[GroupBy, str] = GroupBy.MONTH) -> dict[str, Any]:
        grouping = parse_enum(GroupBy, group_by)
        expenses = list(dataset.expenses)

        trends = ExpenseAnalyzer.period_trends(expenses, dataset.date_range, grouping)
        patterns = ExpenseAnalyzer.patterns(expenses)
        summary = ExpenseAnalyzer.summary(trends, patterns)

        return jsonable_encoder({
            "trends": trends,
            "summary": summary,
            "insights": ExpenseAnalyzer.insights(summary),
            "overview": analyze_expense_trends(expenses, dataset.date_range),
        })

    def expense_anomalies(
        self,
        dataset: AnalyticsDataset,
        sensitivity: Optional[Union[Sensitivity, str]] = None,
        as_of: Optional[date] = None,
    ) -> dict[str, Any]:
        level = parse_enum(
            Sensitivity,
            sensitivity,
            default=parse_enum(Sensitivity, self.settings.analytics_default_sensitivity),
        )
        report = ExpenseAnomalyDetector.analyze(
            list(dataset.expenses),
            as_of or dataset.date_range.end,
            level,
        )
        logger.info(
            "Detected %s expense anomalies for organization %s at %s sensitivity",
            report.summary.total_anomalies,
            dataset.organization_id,
            level.value,
        )
        return jsonable_encoder(report)

    def expense_patterns(self, dataset: AnalyticsDataset) -> dict[str, Any]:
        """Category patterns plus cost optimization strategies informed by anomalies."""
        expenses = list(dataset.expenses)
        patterns = ExpenseAnalyzer.patterns(expenses)
        anomalies = ExpenseAnomalyDetector.detect(
            expenses,
            parse_enum(Sensitivity, self.settings.analytics_default_sensitivity),
        )
        return jsonable_encoder({
            "patterns": patterns,
            "optimization": ExpenseAnalyzer.cost_optimization(patterns, anomalies, expenses),
        })

    # ============================================
    # Profitability
    # ============================================

    def customer_profitability(
        self,
        dataset: AnalyticsDataset,
        include_cost_allocation: bool = True,
        min_profit_threshold: Optional[float] = None,
    ) -> dict[str, Any]:
        analysis = ProfitabilityAnalyzer.analyze(
            dataset,
            include_cost_allocation=include_cost_allocation,
            min_profit_threshold=min_profit_threshold,
            industry_cost_ratio=self.settings.analytics_industry_cost_ratio,
        )
        return jsonable_encoder({
            "customers": analysis.customers,
            "summary": analysis.summary,
            "insights": analysis.insights,
            "recommendations": analysis.recommendations,
            "margin_optimization": ProfitabilityAnalyzer.margin_optimization(analysis.customers),
        })

    def profitability_trends(
        self,
        dataset: AnalyticsDataset,
        group_by: Union[GroupBy, str] = GroupBy.MONTH,
        forecast_periods: int = 3,
    ) -> dict[str, Any]:
        grouping = parse_enum(GroupBy, group_by)
        trends = ProfitabilityAnalyzer.period_trends(
            dataset,
            grouping,
            industry_cost_ratio=self.settings.analytics_industry_cost_ratio,
        )
        return jsonable_encoder({
            "trends": trends,
            "summary": ProfitabilityAnalyzer.trend_summary(trends),
            "forecast": ProfitabilityAnalyzer.forecast(trends, forecast_periods, grouping),
        })

    # ============================================
    # Ratios and health
    # ============================================

    def financial_ratios(self, dataset: AnalyticsDataset, include_benchmarking: bool = False) -> dict[str, Any]:
        return jsonable_encoder(RatioCalculator.for_dataset(dataset, include_benchmarking=include_benchmarking))

    def ratio_trends(self, dataset: AnalyticsDataset, group_by: Union[GroupBy, str] = GroupBy.MONTH) -> dict[str, Any]:
        return jsonable_encoder(RatioCalculator.ratio_trends(dataset, parse_enum(GroupBy, group_by)))

    def ratio_benchmarks(self, dataset: AnalyticsDataset, sector: str = "services") -> dict[str, Any]:
        ratios = RatioCalculator.for_dataset(dataset)
        return jsonable_encoder(RatioCalculator.industry_benchmarks(ratios, sector))

    def health_score(
        self,
        dataset: AnalyticsDataset,
        previous: Optional[AnalyticsDataset] = None,
    ) -> dict[str, Any]:
        score = HealthScoreCalculator.calculate(dataset, previous)
        logger.info(
            "Business health score for organization %s: %s (%s)",
            dataset.organization_id,
            score.overall_score,
            score.category.value,
        )
        return jsonable_encoder(score)

    # ============================================
    # Tax
    # ============================================

    def tax_analytics(self, dataset: AnalyticsDataset, as_of: Optional[date] = None) -> dict[str, Any]:
        """VAT, income tax, obligations, compliance score and planning insights."""
        report = TaxAnalyzer.analyze(dataset, as_of)
        logger.info(
            "Tax compliance score for organization %s: %.1f with %s overdue obligations",
            dataset.organization_id,
            report.compliance_score,
            report.obligations.overdue_count,
        )
        return jsonable_encoder(report)

    # ============================================
    # Summary and data checks
    # ============================================

    def summary(self, dataset: AnalyticsDataset) -> dict[str, Any]:
        return jsonable_encoder(financial_summary(dataset))

    def data_sufficiency(self, aggregator: AnalyticsAggregator, dataset: AnalyticsDataset) -> dict[str, Any]:
        return jsonable_encoder(aggregator.check_data_sufficiency(dataset))
