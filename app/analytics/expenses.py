"""
Expense Analytics
Per-period expense trends, per-category spending patterns and cost
optimization strategies.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from app.analytics import statistics as stats
from app.analytics.anomalies import ExpenseAnomaly
from app.analytics.constants import SEASONALITY_CV_THRESHOLD, Season
from app.analytics.dataset import DateRange, Expense, Insight
from app.analytics.exceptions import InsufficientDataError
from app.analytics.parameters import GroupBy
from app.analytics.periods import season_for, split_date_range
from app.analytics.trends import Direction, TrendAnalyzer, expenses_by_category

MIN_PATTERN_OBSERVATIONS = 3
VOLATILITY_THRESHOLD = 0.3


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    amount: float
    count: int
    percentage: float
    average: float


@dataclass(frozen=True)
class ExpensePeriodTrend:
    period: str
    start: date
    end: date
    total_amount: float
    expense_count: int
    average_amount: float
    tax_deductible_amount: float
    tax_deductible_percentage: float
    change_from_previous: float
    season: Season
    category_breakdown: list[CategoryBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class ExpensePattern:
    category: str
    direction: Direction
    change_rate_percent: float
    confidence: float
    seasonality_detected: bool
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExpenseSummary:
    total_expenses: float
    average_per_period: float
    overall_growth_rate: float
    increasing_categories: int
    volatile_categories: int
    total_categories: int
    average_tax_deductible_percentage: float


@dataclass(frozen=True)
class OptimizationStrategy:
    type: str
    category: str
    title: str
    description: str
    potential_saving_rate: float
    estimated_saving: float
    priority: str
    actions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CostOptimization:
    strategies: list[OptimizationStrategy]
    potential_savings: float
    total_strategies: int
    high_priority_strategies: int
    estimated_implementation_weeks: int
    risk_level: str


class ExpenseAnalyzer:
    """Expense trends, patterns and optimization."""

    @staticmethod
    def period_trends(
        expenses: list[Expense],
        date_range: DateRange,
        group_by: GroupBy = GroupBy.MONTH,
    ) -> list[ExpensePeriodTrend]:
        """
        Totals, tax-deductible share and category mix for each sub-period.

        Every sub-period of date_range is reported, including empty ones.
        """
        trends = []
        previous_total: Optional[float] = None

        for period in split_date_range(date_range, group_by):
            items = [e for e in expenses if period.start <= e.expense_date <= period.end]
            total = sum(e.amount for e in items)
            deductible = sum(e.amount for e in items if e.is_tax_deductible)

            by_category: dict[str, list[float]] = defaultdict(list)
            for item in items:
                by_category[item.category].append(item.amount)

            breakdown = [
                CategoryBreakdown(
                    category=category,
                    amount=sum(amounts),
                    count=len(amounts),
                    percentage=sum(amounts) / total * 100 if total > 0 else 0.0,
                    average=stats.mean(amounts),
                )
                for category, amounts in sorted(by_category.items())
            ]
            breakdown.sort(key=lambda b: b.amount, reverse=True)

            change = 0.0 if previous_total is None else stats.percentage_change(total, previous_total)
            trends.append(
                ExpensePeriodTrend(
                    period=period.label,
                    start=period.start,
                    end=period.end,
                    total_amount=total,
                    expense_count=len(items),
                    average_amount=total / len(items) if items else 0.0,
                    tax_deductible_amount=deductible,
                    tax_deductible_percentage=deductible / total * 100 if total > 0 else 0.0,
                    change_from_previous=change,
                    season=season_for(period.start),
                    category_breakdown=breakdown,
                )
            )
            previous_total = total

        return trends

    @staticmethod
    def season_seasonality(expenses: list[Expense]) -> tuple[bool, float]:
        """CV of the mean expense per season (empty seasons count as 0)."""
        groups: dict[Season, list[float]] = {season: [] for season in Season}
        for expense in expenses:
            groups[season_for(expense.expense_date)].append(expense.amount)

        averages = [stats.mean(amounts) for amounts in groups.values()]
        strength = stats.coefficient_of_variation(averages)
        return strength > SEASONALITY_CV_THRESHOLD, strength

    @staticmethod
    def category_pattern(category: str, monthly_amounts: list[float], expenses: list[Expense]) -> ExpensePattern:
        """
        Classify one category's monthly spending.

        Volatility above 0.3 wins over direction; otherwise the slope normalized
        by the mean decides (above 0.1 increasing, below -0.1 decreasing).

        Raises:
            InsufficientDataError: Fewer than 3 monthly observations
        """
        if len(monthly_amounts) < MIN_PATTERN_OBSERVATIONS:
            raise InsufficientDataError(
                f"Pattern detection for '{category}' needs at least {MIN_PATTERN_OBSERVATIONS} observations",
                required=MIN_PATTERN_OBSERVATIONS,
                available=len(monthly_amounts),
            )

        avg = stats.mean(monthly_amounts)
        slope = stats.linear_regression(monthly_amounts).slope
        normalized = slope / avg if avg > 0 else 0.0
        volatility = stats.coefficient_of_variation(monthly_amounts)

        if volatility > VOLATILITY_THRESHOLD:
            direction = Direction.VOLATILE
        else:
            direction = TrendAnalyzer.classify_slope(normalized)

        seasonal, _ = ExpenseAnalyzer.season_seasonality(expenses)
        change_rate = normalized * 100

        return ExpensePattern(
            category=category,
            direction=direction,
            change_rate_percent=change_rate,
            confidence=max(0.0, 1 - volatility),
            seasonality_detected=seasonal,
            recommendations=ExpenseAnalyzer._pattern_recommendations(category, direction, change_rate, seasonal),
        )

    @staticmethod
    def _pattern_recommendations(category: str, direction: Direction, change_rate: float, seasonal: bool) -> list[str]:
        if direction == Direction.INCREASING:
            recommendations = [
                f"{category} expenses are increasing by {change_rate:.1f}% - review for cost control opportunities",
                f"Consider negotiating better rates with {category} suppliers",
            ]
        elif direction == Direction.DECREASING:
            recommendations = [f"{category} expenses are decreasing - maintain current cost management strategies"]
        elif direction == Direction.VOLATILE:
            recommendations = [
                f"{category} expenses show high volatility - implement better budgeting and approval controls",
                f"Consider setting spending limits for {category}",
            ]
        else:
            recommendations = [f"{category} expenses are stable - good cost control"]

        if seasonal:
            recommendations.append(f"{category} shows seasonal patterns - plan budget accordingly")
        return recommendations

    @staticmethod
    def patterns(expenses: list[Expense]) -> list[ExpensePattern]:
        """One pattern per category with expenses in at least 3 months."""
        grouped: dict[str, list[Expense]] = defaultdict(list)
        for expense in expenses:
            grouped[expense.category].append(expense)

        patterns = []
        for category, series in expenses_by_category(expenses).items():
            if sum(1 for point in series if point.value != 0) < MIN_PATTERN_OBSERVATIONS:
                continue
            amounts = [point.value for point in series]
            patterns.append(ExpenseAnalyzer.category_pattern(category, amounts, grouped[category]))
        return patterns

    @staticmethod
    def summary(trends: list[ExpensePeriodTrend], patterns: list[ExpensePattern]) -> ExpenseSummary:
        total = sum(t.total_amount for t in trends)
        growth = 0.0
        if len(trends) > 1:
            growth = stats.percentage_change(trends[-1].total_amount, trends[0].total_amount)

        return ExpenseSummary(
            total_expenses=total,
            average_per_period=total / len(trends) if trends else 0.0,
            overall_growth_rate=growth,
            increasing_categories=sum(1 for p in patterns if p.direction == Direction.INCREASING),
            volatile_categories=sum(1 for p in patterns if p.direction == Direction.VOLATILE),
            total_categories=len(patterns),
            average_tax_deductible_percentage=stats.mean([t.tax_deductible_percentage for t in trends]),
        )

    @staticmethod
    def insights(summary: ExpenseSummary) -> list[Insight]:
        insights = []

        if summary.overall_growth_rate > 20:
            insights.append(
                Insight(
                    type="warning",
                    title="High expense growth detected",
                    description=f"Expenses have grown by {summary.overall_growth_rate:.1f}% over the period",
                    recommendation="Implement cost control measures and review major expense categories",
                    priority="high",
                )
            )
        elif summary.overall_growth_rate < -10:
            insights.append(
                Insight(
                    type="positive",
                    title="Expense reduction achieved",
                    description=f"Expenses have decreased by {abs(summary.overall_growth_rate):.1f}% over the period",
                    recommendation="Continue current cost management strategies",
                    priority="medium",
                )
            )

        if summary.volatile_categories > 0:
            insights.append(
                Insight(
                    type="warning",
                    title="Volatile expense categories detected",
                    description=f"{summary.volatile_categories} categories show high volatility",
                    recommendation="Implement better budgeting and approval controls for volatile categories",
                    priority="medium",
                )
            )

        if summary.total_expenses > 0 and summary.average_tax_deductible_percentage < 60:
            insights.append(
                Insight(
                    type="opportunity",
                    title="Tax optimization opportunity",
                    description=(
                        f"Only {summary.average_tax_deductible_percentage:.1f}% of expenses are tax-deductible"
                    ),
                    recommendation="Review expense categorization and documentation for tax optimization",
                    priority="medium",
                )
            )

        return insights

    @staticmethod
    def cost_optimization(
        patterns: list[ExpensePattern],
        anomalies: list[ExpenseAnomaly],
        expenses: list[Expense],
    ) -> CostOptimization:
        """
        Strategies for the fastest-growing categories plus a process strategy
        when more than 5 anomalies were found. Savings are estimated from the
        actual spend they apply to.
        """
        category_totals: dict[str, float] = defaultdict(float)
        for expense in expenses:
            category_totals[expense.category] += expense.amount

        growing = sorted(
            (p for p in patterns if p.direction == Direction.INCREASING and p.change_rate_percent > 15),
            key=lambda p: p.change_rate_percent,
            reverse=True,
        )[:3]

        strategies = [
            OptimizationStrategy(
                type="cost_reduction",
                category=p.category,
                title=f"Optimize {p.category} expenses",
                description=f"{p.category} expenses are increasing by {p.change_rate_percent:.1f}%",
                potential_saving_rate=0.1,
                estimated_saving=category_totals[p.category] * 0.1,
                priority="high",
                actions=[
                    "Review vendor contracts and negotiate better rates",
                    "Implement approval workflows for this category",
                    "Consider alternative suppliers or solutions",
                ],
            )
            for p in growing
        ]

        if len(anomalies) > 5:
            strategies.append(
                OptimizationStrategy(
                    type="process_improvement",
                    category="General",
                    title="Implement expense controls",
                    description=f"{len(anomalies)} expense anomalies detected",
                    potential_saving_rate=0.05,
                    estimated_saving=sum(a.amount for a in anomalies) * 0.05,
                    priority="medium",
                    actions=[
                        "Set up automated expense approval workflows",
                        "Implement spending limits by category",
                        "Regular expense audits and reviews",
                    ],
                )
            )

        count = len(strategies)
        if count > 5:
            risk = "high"
        elif count > 2:
            risk = "medium"
        else:
            risk = "low"

        return CostOptimization(
            strategies=strategies,
            potential_savings=sum(s.estimated_saving for s in strategies),
            total_strategies=count,
            high_priority_strategies=sum(1 for s in strategies if s.priority == "high"),
            estimated_implementation_weeks=count * 2,
            risk_level=risk,
        )
