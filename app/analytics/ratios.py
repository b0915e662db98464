"""
Financial Ratio Engine
Liquidity, profitability, efficiency and leverage ratios from a simplified
balance-sheet projection, with industry benchmarking and per-period trends.

Every ratio goes through safe_divide, so a zero or negative denominator
yields 0 rather than NaN or infinity.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from app.analytics import statistics as stats
from app.analytics.constants import (
    BALANCE_SHEET_SHARES,
    COGS_RATIO,
    DEBT_SERVICE_RATE,
    INDUSTRY_BENCHMARKS,
    PERCENTILE_BENCHMARK,
)
from app.analytics.dataset import Account, AccountType, AnalyticsDataset, FinancialSummary
from app.analytics.exceptions import ConfigurationError
from app.analytics.parameters import GroupBy
from app.analytics.periods import split_date_range
from app.analytics.utils import safe_divide


class Comparison(str, Enum):
    ABOVE_AVERAGE = "ABOVE_AVERAGE"
    AVERAGE = "AVERAGE"
    BELOW_AVERAGE = "BELOW_AVERAGE"


class Performance(str, Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"


class RatioTrend(str, Enum):
    IMPROVING = "IMPROVING"
    DECLINING = "DECLINING"
    STABLE = "STABLE"


@dataclass(frozen=True)
class BalanceSheet:
    total_assets: float
    total_liabilities: float
    total_equity: float
    current_assets: float
    current_liabilities: float
    inventory: float
    cash: float
    receivables: float
    payables: float

    @classmethod
    def from_accounts(cls, accounts: list[Account]) -> "BalanceSheet":
        """
        Project a balance sheet from account totals.

        The chart of accounts carries no current/non-current split, so fixed
        shares of total assets and liabilities stand in for the detail.
        """
        total_assets = sum(a.balance for a in accounts if a.type == AccountType.ASSET)
        total_liabilities = sum(a.balance for a in accounts if a.type == AccountType.LIABILITY)
        total_equity = sum(a.balance for a in accounts if a.type == AccountType.EQUITY)
        current_liabilities = total_liabilities * BALANCE_SHEET_SHARES["current_liabilities"]

        return cls(
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            current_assets=total_assets * BALANCE_SHEET_SHARES["current_assets"],
            current_liabilities=current_liabilities,
            inventory=total_assets * BALANCE_SHEET_SHARES["inventory"],
            cash=total_assets * BALANCE_SHEET_SHARES["cash"],
            receivables=total_assets * BALANCE_SHEET_SHARES["receivables"],
            payables=current_liabilities * BALANCE_SHEET_SHARES["payables"],
        )

    def rolled_back(self, invoiced_after: float, collected_after: float, spent_after: float) -> "BalanceSheet":
        """
        The position before later activity, taking this sheet as the closing one.

        Later collections net of later spending are removed from cash, and later
        invoicing net of later collections from receivables. The difference
        comes off current assets, total assets and equity; liabilities,
        inventory and payables are held at their closing values.
        """
        cash = max(0.0, self.cash - (collected_after - spent_after))
        receivables = max(0.0, self.receivables - (invoiced_after - collected_after))
        delta = (self.cash - cash) + (self.receivables - receivables)

        return replace(
            self,
            cash=cash,
            receivables=receivables,
            current_assets=self.current_assets - delta,
            total_assets=self.total_assets - delta,
            total_equity=self.total_equity - delta,
        )


@dataclass(frozen=True)
class LiquidityRatios:
    current_ratio: float
    quick_ratio: float
    cash_ratio: float
    working_capital: float


@dataclass(frozen=True)
class ProfitabilityRatios:
    gross_margin: float
    net_margin: float
    operating_margin: float
    return_on_assets: float
    return_on_equity: float


@dataclass(frozen=True)
class EfficiencyRatios:
    inventory_turnover: float
    receivables_turnover: float
    payables_turnover: float
    asset_turnover: float
    days_sales_outstanding: float


@dataclass(frozen=True)
class LeverageRatios:
    debt_to_equity: float
    debt_to_assets: float
    equity_ratio: float
    interest_coverage: float


@dataclass(frozen=True)
class IndustryComparison:
    percentile_ranking: int
    comparison: Comparison


@dataclass(frozen=True)
class FinancialRatios:
    liquidity: LiquidityRatios
    profitability: ProfitabilityRatios
    efficiency: EfficiencyRatios
    leverage: LeverageRatios
    industry_comparison: Optional[IndustryComparison] = None


@dataclass(frozen=True)
class BenchmarkComparison:
    value: float
    benchmark: float
    performance: Performance


@dataclass(frozen=True)
class IndustryBenchmarks:
    sector: str
    benchmarks: dict[str, dict[str, dict[str, float]]]
    comparison: dict[str, BenchmarkComparison]
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RatioTrendPoint:
    period: str
    current_ratio: float
    quick_ratio: float
    net_margin: float
    debt_to_equity: float
    asset_turnover: float


@dataclass(frozen=True)
class RatioTrendAnalysis:
    trends: list[RatioTrendPoint]
    average_current_ratio: float
    average_net_margin: float
    direction: RatioTrend


class RatioCalculator:
    """Ratio groups over a balance sheet and a financial summary."""

    @staticmethod
    def liquidity(sheet: BalanceSheet) -> LiquidityRatios:
        return LiquidityRatios(
            current_ratio=safe_divide(sheet.current_assets, sheet.current_liabilities),
            quick_ratio=safe_divide(sheet.current_assets - sheet.inventory, sheet.current_liabilities),
            cash_ratio=safe_divide(sheet.cash, sheet.current_liabilities),
            working_capital=sheet.current_assets - sheet.current_liabilities,
        )

    @staticmethod
    def profitability(summary: FinancialSummary, sheet: BalanceSheet) -> ProfitabilityRatios:
        """Margins and returns as percentages. Operating margin is gross margin while no operating split exists."""
        gross_margin = safe_divide(summary.gross_profit, summary.revenue) * 100
        return ProfitabilityRatios(
            gross_margin=gross_margin,
            net_margin=safe_divide(summary.net_profit, summary.revenue) * 100,
            operating_margin=gross_margin,
            return_on_assets=safe_divide(summary.net_profit, sheet.total_assets) * 100,
            return_on_equity=safe_divide(summary.net_profit, sheet.total_equity) * 100,
        )

    @staticmethod
    def efficiency(summary: FinancialSummary, sheet: BalanceSheet) -> EfficiencyRatios:
        cogs = summary.revenue * COGS_RATIO
        receivables_turnover = safe_divide(summary.revenue, sheet.receivables)
        return EfficiencyRatios(
            inventory_turnover=safe_divide(cogs, sheet.inventory),
            receivables_turnover=receivables_turnover,
            payables_turnover=safe_divide(cogs, sheet.payables),
            asset_turnover=safe_divide(summary.revenue, sheet.total_assets),
            days_sales_outstanding=safe_divide(365, receivables_turnover),
        )

    @staticmethod
    def leverage(summary: FinancialSummary, sheet: BalanceSheet) -> LeverageRatios:
        """Interest coverage assumes an annual debt service of 10% of total liabilities."""
        return LeverageRatios(
            debt_to_equity=safe_divide(sheet.total_liabilities, sheet.total_equity),
            debt_to_assets=safe_divide(sheet.total_liabilities, sheet.total_assets),
            equity_ratio=safe_divide(sheet.total_equity, sheet.total_assets),
            interest_coverage=safe_divide(summary.net_profit, sheet.total_liabilities * DEBT_SERVICE_RATE),
        )

    @staticmethod
    def industry_comparison(liquidity: LiquidityRatios, profitability: ProfitabilityRatios) -> IndustryComparison:
        """
        Rough percentile bucket against the reference current ratio and net margin.

        75 when both beat the reference, 25 when the current ratio is below
        80% of it or the net margin below half of it, 50 otherwise.
        """
        reference_ratio = PERCENTILE_BENCHMARK["current_ratio"]
        reference_margin = PERCENTILE_BENCHMARK["net_margin"]

        if liquidity.current_ratio > reference_ratio and profitability.net_margin > reference_margin:
            ranking = 75
        elif liquidity.current_ratio < reference_ratio * 0.8 or profitability.net_margin < reference_margin * 0.5:
            ranking = 25
        else:
            ranking = 50

        if ranking > 60:
            comparison = Comparison.ABOVE_AVERAGE
        elif ranking > 40:
            comparison = Comparison.AVERAGE
        else:
            comparison = Comparison.BELOW_AVERAGE

        return IndustryComparison(percentile_ranking=ranking, comparison=comparison)

    @staticmethod
    def calculate(
        summary: FinancialSummary,
        sheet: BalanceSheet,
        include_benchmarking: bool = False,
    ) -> FinancialRatios:
        liquidity = RatioCalculator.liquidity(sheet)
        profitability = RatioCalculator.profitability(summary, sheet)

        comparison = None
        if include_benchmarking:
            comparison = RatioCalculator.industry_comparison(liquidity, profitability)

        return FinancialRatios(
            liquidity=liquidity,
            profitability=profitability,
            efficiency=RatioCalculator.efficiency(summary, sheet),
            leverage=RatioCalculator.leverage(summary, sheet),
            industry_comparison=comparison,
        )

    @staticmethod
    def for_dataset(dataset: AnalyticsDataset, include_benchmarking: bool = False) -> FinancialRatios:
        return RatioCalculator.calculate(
            FinancialSummary.from_dataset(dataset),
            BalanceSheet.from_accounts(list(dataset.accounts)),
            include_benchmarking=include_benchmarking,
        )

    # ============================================
    # Benchmarks and trends
    # ============================================

    @staticmethod
    def benchmark_recommendations(ratios: FinancialRatios) -> list[str]:
        recommendations = []

        if ratios.liquidity.current_ratio < 1.2:
            recommendations.append("Improve liquidity by reducing current liabilities or increasing current assets")
        if ratios.profitability.net_margin < 8:
            recommendations.append("Focus on improving profit margins through cost control or pricing optimization")
        if ratios.leverage.debt_to_equity > 0.6:
            recommendations.append("Consider reducing debt levels to improve financial stability")

        return recommendations

    @staticmethod
    def industry_benchmarks(ratios: FinancialRatios, sector: str = "services") -> IndustryBenchmarks:
        """
        Compare the current ratio and net margin with a sector's averages.

        Raises:
            ConfigurationError: Unknown sector
        """
        key = sector.lower()
        if key not in INDUSTRY_BENCHMARKS:
            raise ConfigurationError(
                f"Unknown industry sector '{sector}'",
                {"allowed": sorted(INDUSTRY_BENCHMARKS)},
            )
        table = INDUSTRY_BENCHMARKS[key]

        def compare(value: float, metric: str) -> BenchmarkComparison:
            average = table[metric]["avg"]
            performance = Performance.ABOVE if value > average else Performance.BELOW
            return BenchmarkComparison(value=value, benchmark=average, performance=performance)

        return IndustryBenchmarks(
            sector=key,
            benchmarks=INDUSTRY_BENCHMARKS,
            comparison={
                "current_ratio": compare(ratios.liquidity.current_ratio, "current_ratio"),
                "net_margin": compare(ratios.profitability.net_margin, "net_margin"),
            },
            recommendations=RatioCalculator.benchmark_recommendations(ratios),
        )

    @staticmethod
    def trend_direction(points: list[RatioTrendPoint]) -> RatioTrend:
        """Relative change of the current ratio from first to last period, +/-10%."""
        if len(points) < 2 or points[0].current_ratio <= 0:
            return RatioTrend.STABLE

        change = (points[-1].current_ratio - points[0].current_ratio) / points[0].current_ratio
        if change > 0.1:
            return RatioTrend.IMPROVING
        if change < -0.1:
            return RatioTrend.DECLINING
        return RatioTrend.STABLE

    @staticmethod
    def ratio_trends(dataset: AnalyticsDataset, group_by: GroupBy = GroupBy.MONTH) -> RatioTrendAnalysis:
        """
        Ratios recomputed on each sub-period of the dataset.

        Invoices and expenses are sliced per period. Account balances are the
        closing position at the end of the range; each period's balance sheet
        is that position rolled back by the invoicing, collections and spending
        recorded after the period ends.
        """
        closing = BalanceSheet.from_accounts(list(dataset.accounts))
        points = []

        for period in split_date_range(dataset.date_range, group_by):
            summary = FinancialSummary.from_dataset(dataset.slice(period.date_range))
            sheet = closing.rolled_back(
                invoiced_after=sum(i.total_amount for i in dataset.invoices if i.issue_date > period.end),
                collected_after=sum(p.amount for p in dataset.payments if p.payment_date > period.end),
                spent_after=sum(e.amount for e in dataset.expenses if e.expense_date > period.end),
            )
            ratios = RatioCalculator.calculate(summary, sheet)
            points.append(
                RatioTrendPoint(
                    period=period.label,
                    current_ratio=ratios.liquidity.current_ratio,
                    quick_ratio=ratios.liquidity.quick_ratio,
                    net_margin=ratios.profitability.net_margin,
                    debt_to_equity=ratios.leverage.debt_to_equity,
                    asset_turnover=ratios.efficiency.asset_turnover,
                )
            )

        return RatioTrendAnalysis(
            trends=points,
            average_current_ratio=stats.mean([p.current_ratio for p in points]),
            average_net_margin=stats.mean([p.net_margin for p in points]),
            direction=RatioCalculator.trend_direction(points),
        )
