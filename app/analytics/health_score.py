"""
Business Health Scoring Engine

Combines five component scores into one 0-100 business health score:
- Cash flow (25%)
- Profitability (25%)
- Growth (20%)
- Efficiency (15%)
- Stability (15%)

Each component starts at 50 and moves by additive adjustments, then is
clamped to [0, 100]. Balance-sheet totals come from the chart of accounts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from app.analytics.constants import HEALTH_PEER_BENCHMARKS, HEALTH_WEIGHTS, SME_BENCHMARKS
from app.analytics.dataset import AccountType, AnalyticsDataset
from app.analytics.utils import safe_divide

BASE_SCORE = 50.0
MAX_RECOMMENDATIONS = 8
TREND_TOLERANCE = 5.0


class HealthCategory(str, Enum):
    """Overall health bands."""
    EXCELLENT = "excellent"  # >= 85
    GOOD = "good"            # >= 70
    FAIR = "fair"            # >= 55
    POOR = "poor"            # >= 40
    CRITICAL = "critical"    # < 40


@dataclass(frozen=True)
class HealthInputs:
    """Figures the component scores are computed from."""
    revenue: float
    expenses: float
    total_assets: float
    total_liabilities: float
    total_equity: float
    customer_count: int
    top_customer_revenue: float

    @classmethod
    def from_dataset(cls, dataset: AnalyticsDataset) -> "HealthInputs":
        by_customer: dict[str, float] = {}
        for invoice in dataset.invoices:
            by_customer[invoice.customer_id] = by_customer.get(invoice.customer_id, 0.0) + invoice.total_amount

        def total(account_type: AccountType) -> float:
            return sum(a.balance for a in dataset.accounts if a.type == account_type)

        return cls(
            revenue=dataset.total_revenue,
            expenses=dataset.total_expenses,
            total_assets=total(AccountType.ASSET),
            total_liabilities=total(AccountType.LIABILITY),
            total_equity=total(AccountType.EQUITY),
            customer_count=len(by_customer),
            top_customer_revenue=max(by_customer.values(), default=0.0),
        )


@dataclass
class HealthComponent:
    score: float
    weight: float
    metrics: dict[str, float] = field(default_factory=dict)
    insights: list[str] = field(default_factory=list)


@dataclass
class HealthTrends:
    improving: bool = False
    deteriorating: bool = False
    stable: bool = True
    previous_score: Optional[float] = None


@dataclass
class BusinessHealthScore:
    overall_score: float
    category: HealthCategory
    components: dict[str, HealthComponent]
    trends: HealthTrends
    recommendations: list[str]
    benchmarks: dict[str, float]


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


class HealthScoreCalculator:
    """
    Calculates the business health score.

    Growth compares against the immediately preceding period of equal
    length, supplied by the caller as a second dataset. Without it growth
    rates are 0.
    """

    CATEGORY_THRESHOLDS = [
        (85.0, HealthCategory.EXCELLENT),
        (70.0, HealthCategory.GOOD),
        (55.0, HealthCategory.FAIR),
        (40.0, HealthCategory.POOR),
    ]

    @staticmethod
    def category_for(score: float) -> HealthCategory:
        for threshold, category in HealthScoreCalculator.CATEGORY_THRESHOLDS:
            if score >= threshold:
                return category
        return HealthCategory.CRITICAL

    @staticmethod
    def cash_flow(data: HealthInputs) -> HealthComponent:
        """Operating cash flow ratio and reserves measured against a monthly burn rate."""
        operating_cash_flow = data.revenue - data.expenses
        cash_flow_ratio = safe_divide(operating_cash_flow, data.revenue)
        # Reserves are not tracked; 30% of positive operating cash flow stands in
        cash_reserves = max(0.0, operating_cash_flow * 0.3)
        burn_rate = data.expenses / 12

        score = BASE_SCORE
        if cash_flow_ratio > SME_BENCHMARKS["cash_flow_ratio"]:
            score += 30
        elif cash_flow_ratio > 0:
            score += 15
        else:
            score -= 20

        if cash_reserves > burn_rate * 3:
            score += 20
        elif cash_reserves > burn_rate:
            score += 10
        else:
            score -= 15

        insights = []
        if operating_cash_flow < 0:
            insights.append("Negative cash flow requires immediate attention")
        if cash_reserves < burn_rate * 2:
            insights.append("Low cash reserves - consider improving collections")
        if score > 80:
            insights.append("Strong cash flow position")

        return HealthComponent(
            score=_clamp(score),
            weight=HEALTH_WEIGHTS["cash_flow"],
            metrics={
                "operating_cash_flow": operating_cash_flow,
                "cash_flow_ratio": cash_flow_ratio,
                "cash_reserves": cash_reserves,
                "burn_rate": burn_rate,
            },
            insights=insights,
        )

    @staticmethod
    def profitability(data: HealthInputs) -> HealthComponent:
        # Direct costs assumed at 60% of expenses for the gross figure
        gross_profit = data.revenue - data.expenses * 0.6
        net_profit = data.revenue - data.expenses
        gross_margin = safe_divide(gross_profit, data.revenue) * 100
        net_margin = safe_divide(net_profit, data.revenue) * 100

        score = BASE_SCORE
        if net_margin > SME_BENCHMARKS["profit_margin"] * 100:
            score += 30
        elif net_margin > 5:
            score += 15
        elif net_margin > 0:
            score += 5
        else:
            score -= 25

        if gross_margin > 40:
            score += 20
        elif gross_margin > 25:
            score += 10
        else:
            score -= 10

        insights = []
        if net_margin < 0:
            insights.append("Business is operating at a loss")
        if net_margin < 5:
            insights.append("Low profit margins - review pricing and costs")
        if gross_margin < 25:
            insights.append("Low gross margins - optimize cost of goods sold")
        if score > 80:
            insights.append("Strong profitability performance")

        return HealthComponent(
            score=_clamp(score),
            weight=HEALTH_WEIGHTS["profitability"],
            metrics={"gross_margin": gross_margin, "net_margin": net_margin},
            insights=insights,
        )

    @staticmethod
    def growth(data: HealthInputs, previous: Optional[HealthInputs]) -> HealthComponent:
        revenue_growth = 0.0
        customer_growth = 0.0
        if previous is not None:
            revenue_growth = safe_divide(data.revenue - previous.revenue, previous.revenue) * 100
            customer_growth = (
                safe_divide(data.customer_count - previous.customer_count, previous.customer_count) * 100
            )

        score = BASE_SCORE
        if revenue_growth > SME_BENCHMARKS["growth_rate"] * 100:
            score += 30
        elif revenue_growth > 10:
            score += 20
        elif revenue_growth > 0:
            score += 10
        else:
            score -= 15

        if customer_growth > 15:
            score += 20
        elif customer_growth > 5:
            score += 10
        elif customer_growth < -5:
            score -= 10

        insights = []
        if revenue_growth < 0:
            insights.append("Revenue is declining - focus on growth strategies")
        if customer_growth < 0:
            insights.append("Customer base is shrinking - improve retention")
        if revenue_growth > 20:
            insights.append("Strong revenue growth momentum")
        if score < 40:
            insights.append("Growth performance needs improvement")

        return HealthComponent(
            score=_clamp(score),
            weight=HEALTH_WEIGHTS["growth"],
            metrics={
                "revenue_growth": revenue_growth,
                "customer_growth": customer_growth,
                "sustainability_index": min(revenue_growth, customer_growth),
            },
            insights=insights,
        )

    @staticmethod
    def efficiency(data: HealthInputs) -> HealthComponent:
        asset_turnover = safe_divide(data.revenue, data.total_assets)
        revenue_per_customer = safe_divide(data.revenue, data.customer_count)
        # No revenue means every cost is overhead
        cost_ratio = safe_divide(data.expenses, data.revenue, default=1.0) * 100

        score = BASE_SCORE
        if asset_turnover > 2:
            score += 20
        elif asset_turnover > 1:
            score += 10
        else:
            score -= 10

        if cost_ratio < 70:
            score += 25
        elif cost_ratio < 85:
            score += 15
        elif cost_ratio < 95:
            score += 5
        else:
            score -= 20

        if revenue_per_customer > 5000:
            score += 15
        elif revenue_per_customer > 2000:
            score += 10

        insights = []
        if cost_ratio > 90:
            insights.append("High cost ratio - focus on operational efficiency")
        if asset_turnover < 0.5:
            insights.append("Low asset utilization - optimize asset usage")
        if revenue_per_customer < 1000:
            insights.append("Low revenue per customer - improve customer value")
        if score > 80:
            insights.append("Excellent operational efficiency")

        return HealthComponent(
            score=_clamp(score),
            weight=HEALTH_WEIGHTS["efficiency"],
            metrics={
                "asset_utilization": asset_turnover,
                "cost_ratio": cost_ratio,
                "cost_control": 100 - cost_ratio,
                "revenue_per_customer": revenue_per_customer,
            },
            insights=insights,
        )

    @staticmethod
    def stability(data: HealthInputs) -> HealthComponent:
        concentration = safe_divide(data.top_customer_revenue, data.revenue) * 100
        equity = data.total_equity if data.total_equity > 0 else data.total_assets - data.total_liabilities
        debt_to_equity = safe_divide(data.total_liabilities, equity)

        score = BASE_SCORE
        if concentration < 20:
            score += 25
        elif concentration < 40:
            score += 15
        elif concentration < 60:
            score += 5
        else:
            score -= 20

        if debt_to_equity < SME_BENCHMARKS["debt_to_equity"]:
            score += 20
        elif debt_to_equity < 0.8:
            score += 10
        else:
            score -= 15

        if data.customer_count > 10:
            score += 15
        elif data.customer_count > 5:
            score += 10
        else:
            score -= 10

        insights = []
        if concentration > 50:
            insights.append("High customer concentration risk - diversify customer base")
        if debt_to_equity > 1:
            insights.append("High debt levels - focus on debt reduction")
        if data.customer_count < 5:
            insights.append("Limited customer base - expand market reach")
        if score > 80:
            insights.append("Strong business stability")

        return HealthComponent(
            score=_clamp(score),
            weight=HEALTH_WEIGHTS["stability"],
            metrics={
                "customer_concentration": concentration,
                "revenue_stability": 100 - concentration / 2,
                "debt_to_equity": debt_to_equity,
                "risk_diversification": float(min(data.customer_count * 5, 100)),
            },
            insights=insights,
        )

    @staticmethod
    def components(data: HealthInputs, previous: Optional[HealthInputs] = None) -> dict[str, HealthComponent]:
        return {
            "cash_flow": HealthScoreCalculator.cash_flow(data),
            "profitability": HealthScoreCalculator.profitability(data),
            "growth": HealthScoreCalculator.growth(data, previous),
            "efficiency": HealthScoreCalculator.efficiency(data),
            "stability": HealthScoreCalculator.stability(data),
        }

    @staticmethod
    def weighted_score(components: dict[str, HealthComponent]) -> float:
        return round(sum(c.score * c.weight for c in components.values()), 2)

    @staticmethod
    def recommendations(components: dict[str, HealthComponent], overall_score: float) -> list[str]:
        recommendations: list[str] = []
        for component in components.values():
            recommendations.extend(component.insights)

        if overall_score < 40:
            recommendations.append("Business health is critical - consider professional financial consultation")
        elif overall_score < 70:
            recommendations.append("Focus on improving cash flow and profitability")
        else:
            recommendations.append("Maintain current performance and explore growth opportunities")

        return recommendations[:MAX_RECOMMENDATIONS]

    @staticmethod
    def trends(overall_score: float, previous_score: Optional[float]) -> HealthTrends:
        if previous_score is None:
            return HealthTrends()

        change = overall_score - previous_score
        return HealthTrends(
            improving=change > TREND_TOLERANCE,
            deteriorating=change < -TREND_TOLERANCE,
            stable=abs(change) <= TREND_TOLERANCE,
            previous_score=previous_score,
        )

    @staticmethod
    def calculate(
        dataset: AnalyticsDataset,
        previous: Optional[AnalyticsDataset] = None,
    ) -> BusinessHealthScore:
        """
        Score a dataset.

        Args:
            dataset: Current period
            previous: Preceding period of equal length, used for growth and trends

        Returns:
            BusinessHealthScore with overall score, category, components,
            trends, recommendations (at most 8) and peer benchmarks
        """
        current = HealthInputs.from_dataset(dataset)
        prior = HealthInputs.from_dataset(previous) if previous is not None else None

        components = HealthScoreCalculator.components(current, prior)
        overall = HealthScoreCalculator.weighted_score(components)

        previous_score = None
        if prior is not None:
            # The prior period has no baseline of its own, so its growth is 0
            previous_score = HealthScoreCalculator.weighted_score(HealthScoreCalculator.components(prior))

        return BusinessHealthScore(
            overall_score=overall,
            category=HealthScoreCalculator.category_for(overall),
            components=components,
            trends=HealthScoreCalculator.trends(overall, previous_score),
            recommendations=HealthScoreCalculator.recommendations(components, overall),
            benchmarks=dict(HEALTH_PEER_BENCHMARKS),
        )

