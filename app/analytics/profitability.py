"""
Cost Allocation & Profitability Engine
Customer-level profitability with shared-cost allocation, risk scoring and
ranking, plus period-level profitability trends.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional

from app.analytics import statistics as stats
from app.analytics.constants import ALLOCATION_WEIGHTS, DEFAULT_INDUSTRY_COST_RATIO, DEFAULT_PAYMENT_DAYS
from app.analytics.dataset import AnalyticsDataset, Customer, Insight, Invoice, Payment
from app.analytics.parameters import GroupBy
from app.analytics.periods import period_label, split_date_range, step_bucket


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProfitTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class CustomerProfitability:
    customer_id: str
    customer_name: str
    revenue: float
    direct_costs: float
    allocated_costs: float
    gross_profit: float
    net_profit: float
    profit_margin_percent: float
    invoice_count: int
    average_payment_days: float
    revenue_share_percent: float
    risk_score: int
    risk_level: RiskLevel
    # 1-based position by net profit, assigned once all customers are scored
    ranking: int = 0


@dataclass(frozen=True)
class ProfitabilitySummary:
    total_customers: int
    total_revenue: float
    total_costs: float
    total_profit: float
    average_profit_margin: float
    profitable_customers: int
    unprofitable_customers: int
    top_10_revenue_percentage: float
    average_revenue_per_customer: float
    high_risk_customers: int
    medium_risk_customers: int
    low_risk_customers: int


@dataclass(frozen=True)
class Recommendation:
    type: str
    title: str
    description: str
    priority: str
    actions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProfitabilityAnalysis:
    customers: list[CustomerProfitability]
    summary: ProfitabilitySummary
    insights: list[Insight]
    recommendations: list[Recommendation]


@dataclass(frozen=True)
class PeriodProfitability:
    period: str
    start: date
    end: date
    revenue: float
    direct_costs: float
    expenses: float
    gross_profit: float
    net_profit: float
    gross_margin: float
    net_margin: float
    customer_count: int
    invoice_count: int


@dataclass(frozen=True)
class ProfitabilityTrendSummary:
    periods_analyzed: int
    revenue_growth: float
    profit_growth: float
    margin_trend: float
    average_net_margin: float
    direction: ProfitTrend


@dataclass(frozen=True)
class ProfitabilityForecast:
    period: str
    forecast_revenue: float
    forecast_margin: float
    forecast_profit: float
    confidence: float


@dataclass(frozen=True)
class MarginStrategy:
    type: str
    title: str
    description: str
    customer_ids: list[str]
    potential_impact: float
    estimated_value: float
    priority: str


def risk_level_for(score: int) -> RiskLevel:
    if score >= 5:
        return RiskLevel.HIGH
    if score >= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def risk_score(margin: float, payment_days: float, revenue_share_percent: float) -> int:
    """
    Additive customer risk score.

    +3 for margin below 5% (+1 below 15%), +2 for average payment time over
    45 days (+1 over 30), +2 for more than 30% of total revenue (+1 over 15%).
    """
    score = 0

    if margin < 5:
        score += 3
    elif margin < 15:
        score += 1

    if payment_days > 45:
        score += 2
    elif payment_days > 30:
        score += 1

    if revenue_share_percent > 30:
        score += 2
    elif revenue_share_percent > 15:
        score += 1

    return score


def allocate_shared_costs(
    total_expenses: float,
    revenue: float,
    total_revenue: float,
    transactions: int,
    total_transactions: int,
) -> float:
    """
    Split shared expenses by a weighted blend of allocation bases.

    Revenue share carries 60%, transaction share 30% and the time basis 10%.
    Without time tracking the time basis reuses revenue share, so this is an
    approximation of activity-based costing.
    """
    if total_revenue <= 0:
        return 0.0

    revenue_share = revenue / total_revenue
    transaction_share = transactions / total_transactions if total_transactions > 0 else 0.0

    return (
        total_expenses * revenue_share * ALLOCATION_WEIGHTS["revenue"]
        + total_expenses * transaction_share * ALLOCATION_WEIGHTS["transactions"]
        + total_expenses * revenue_share * ALLOCATION_WEIGHTS["time"]
    )


def average_payment_days(invoices: list[Invoice], payments: list[Payment]) -> float:
    """Mean days from invoice issue to payment over linked payments; 30 if none."""
    issued = {invoice.id: invoice.issue_date for invoice in invoices}
    days = [
        (payment.payment_date - issued[payment.invoice_id]).days
        for payment in payments
        if payment.invoice_id in issued
    ]
    if not days:
        return DEFAULT_PAYMENT_DAYS
    return max(0.0, stats.mean(days))


class ProfitabilityAnalyzer:
    """Customer and period profitability."""

    @staticmethod
    def _ordered_customers(dataset: AnalyticsDataset) -> list[Customer]:
        customers = list(dataset.customers)
        known = {customer.id for customer in customers}
        for invoice in dataset.invoices:
            if invoice.customer_id not in known:
                customers.append(Customer(id=invoice.customer_id, name=invoice.customer_id))
                known.add(invoice.customer_id)
        return customers

    @staticmethod
    def customer_profitability(
        dataset: AnalyticsDataset,
        include_cost_allocation: bool = True,
        min_profit_threshold: Optional[float] = None,
        industry_cost_ratio: float = DEFAULT_INDUSTRY_COST_RATIO,
    ) -> list[CustomerProfitability]:
        """
        Profitability per customer, ranked by net profit.

        Args:
            dataset: Analytics dataset
            include_cost_allocation: Allocate the period's expenses to customers
            min_profit_threshold: Drop customers whose net profit is below this
            industry_cost_ratio: Direct cost as a share of revenue

        Returns:
            Customers sorted by net profit descending, ranked 1..N without gaps.
            Ties keep their input order.
        """
        invoices_by_customer: dict[str, list[Invoice]] = defaultdict(list)
        for invoice in dataset.invoices:
            invoices_by_customer[invoice.customer_id].append(invoice)

        payments_by_customer: dict[str, list[Payment]] = defaultdict(list)
        for payment in dataset.payments:
            payments_by_customer[payment.customer_id].append(payment)

        total_revenue = dataset.total_revenue
        total_expenses = dataset.total_expenses
        total_transactions = len(dataset.invoices)

        rows = []
        for customer in ProfitabilityAnalyzer._ordered_customers(dataset):
            invoices = invoices_by_customer.get(customer.id, [])
            revenue = sum(invoice.total_amount for invoice in invoices)
            direct_costs = revenue * industry_cost_ratio

            allocated = 0.0
            if include_cost_allocation:
                allocated = allocate_shared_costs(
                    total_expenses, revenue, total_revenue, len(invoices), total_transactions
                )

            gross_profit = revenue - direct_costs
            net_profit = gross_profit - allocated
            margin = net_profit / revenue * 100 if revenue > 0 else 0.0
            share = revenue / total_revenue * 100 if total_revenue > 0 else 0.0
            payment_days = average_payment_days(invoices, payments_by_customer.get(customer.id, []))
            score = risk_score(margin, payment_days, share)

            rows.append(
                CustomerProfitability(
                    customer_id=customer.id,
                    customer_name=customer.name,
                    revenue=revenue,
                    direct_costs=direct_costs,
                    allocated_costs=allocated,
                    gross_profit=gross_profit,
                    net_profit=net_profit,
                    profit_margin_percent=margin,
                    invoice_count=len(invoices),
                    average_payment_days=payment_days,
                    revenue_share_percent=share,
                    risk_score=score,
                    risk_level=risk_level_for(score),
                )
            )

        if min_profit_threshold is not None:
            rows = [row for row in rows if row.net_profit >= min_profit_threshold]

        rows.sort(key=lambda row: row.net_profit, reverse=True)
        return [replace(row, ranking=index + 1) for index, row in enumerate(rows)]

    @staticmethod
    def summary(customers: list[CustomerProfitability]) -> ProfitabilitySummary:
        total_revenue = sum(c.revenue for c in customers)
        top_10 = sorted((c.revenue for c in customers), reverse=True)[:10]

        return ProfitabilitySummary(
            total_customers=len(customers),
            total_revenue=total_revenue,
            total_costs=sum(c.direct_costs + c.allocated_costs for c in customers),
            total_profit=sum(c.net_profit for c in customers),
            average_profit_margin=stats.mean([c.profit_margin_percent for c in customers]),
            profitable_customers=sum(1 for c in customers if c.net_profit > 0),
            unprofitable_customers=sum(1 for c in customers if c.net_profit <= 0),
            top_10_revenue_percentage=sum(top_10) / total_revenue * 100 if total_revenue > 0 else 0.0,
            average_revenue_per_customer=total_revenue / len(customers) if customers else 0.0,
            high_risk_customers=sum(1 for c in customers if c.risk_level == RiskLevel.HIGH),
            medium_risk_customers=sum(1 for c in customers if c.risk_level == RiskLevel.MEDIUM),
            low_risk_customers=sum(1 for c in customers if c.risk_level == RiskLevel.LOW),
        )

    @staticmethod
    def insights(summary: ProfitabilitySummary) -> list[Insight]:
        insights = []

        if summary.top_10_revenue_percentage > 80:
            insights.append(
                Insight(
                    type="warning",
                    title="High revenue concentration risk",
                    description=f"Top 10 customers represent {summary.top_10_revenue_percentage:.1f}% of revenue",
                    recommendation="Diversify customer base to reduce dependency risk",
                    priority="high",
                )
            )

        if summary.unprofitable_customers > 0:
            insights.append(
                Insight(
                    type="opportunity",
                    title="Unprofitable customers identified",
                    description=f"{summary.unprofitable_customers} customers are unprofitable",
                    recommendation="Review pricing and service delivery for unprofitable customers",
                    priority="medium",
                )
            )

        if summary.high_risk_customers > 0:
            insights.append(
                Insight(
                    type="warning",
                    title="High-risk customers detected",
                    description=f"{summary.high_risk_customers} customers are classified as high-risk",
                    recommendation="Implement risk mitigation strategies for high-risk customers",
                    priority="high",
                )
            )

        if summary.total_customers:
            if summary.average_profit_margin > 20:
                insights.append(
                    Insight(
                        type="positive",
                        title="Strong profitability performance",
                        description=f"Average profit margin of {summary.average_profit_margin:.1f}% is excellent",
                        recommendation="Maintain current strategies and consider expansion",
                        priority="low",
                    )
                )
            elif summary.average_profit_margin < 10:
                insights.append(
                    Insight(
                        type="warning",
                        title="Low profitability margins",
                        description=f"Average profit margin of {summary.average_profit_margin:.1f}% is below optimal",
                        recommendation="Focus on cost reduction and pricing optimization",
                        priority="high",
                    )
                )

        return insights

    @staticmethod
    def recommendations(customers: list[CustomerProfitability]) -> list[Recommendation]:
        recommendations = []

        top = customers[:5]
        if top:
            recommendations.append(
                Recommendation(
                    type="customer_focus",
                    title="Strengthen relationships with top customers",
                    description=f"Top {len(top)} customers generate {sum(c.revenue for c in top):.2f} in revenue",
                    priority="high",
                    actions=[
                        "Develop customer retention programs",
                        "Provide premium service levels",
                        "Regular business reviews and feedback sessions",
                    ],
                )
            )

        unprofitable = [c for c in customers if c.net_profit <= 0]
        if unprofitable:
            recommendations.append(
                Recommendation(
                    type="profitability_improvement",
                    title="Address unprofitable customers",
                    description=f"{len(unprofitable)} customers are currently unprofitable",
                    priority="medium",
                    actions=[
                        "Review and adjust pricing for unprofitable customers",
                        "Optimize service delivery to reduce costs",
                        "Consider customer relationship restructuring",
                    ],
                )
            )

        high_risk = [c for c in customers if c.risk_level == RiskLevel.HIGH]
        if high_risk:
            recommendations.append(
                Recommendation(
                    type="risk_mitigation",
                    title="Mitigate high-risk customer exposure",
                    description=f"{len(high_risk)} customers are classified as high-risk",
                    priority="high",
                    actions=[
                        "Implement stricter payment terms",
                        "Require deposits or guarantees",
                        "Monitor payment behavior closely",
                    ],
                )
            )

        return recommendations

    @staticmethod
    def analyze(
        dataset: AnalyticsDataset,
        include_cost_allocation: bool = True,
        min_profit_threshold: Optional[float] = None,
        industry_cost_ratio: float = DEFAULT_INDUSTRY_COST_RATIO,
    ) -> ProfitabilityAnalysis:
        customers = ProfitabilityAnalyzer.customer_profitability(
            dataset,
            include_cost_allocation=include_cost_allocation,
            min_profit_threshold=min_profit_threshold,
            industry_cost_ratio=industry_cost_ratio,
        )
        summary = ProfitabilityAnalyzer.summary(customers)
        return ProfitabilityAnalysis(
            customers=customers,
            summary=summary,
            insights=ProfitabilityAnalyzer.insights(summary),
            recommendations=ProfitabilityAnalyzer.recommendations(customers),
        )

    # ============================================
    # Period trends
    # ============================================

    @staticmethod
    def period_trends(
        dataset: AnalyticsDataset,
        group_by: GroupBy = GroupBy.MONTH,
        industry_cost_ratio: float = DEFAULT_INDUSTRY_COST_RATIO,
    ) -> list[PeriodProfitability]:
        """Revenue, costs and margins for each sub-period of the dataset's range."""
        trends = []
        for period in split_date_range(dataset.date_range, group_by):
            invoices = [i for i in dataset.invoices if period.start <= i.issue_date <= period.end]
            expenses = sum(e.amount for e in dataset.expenses if period.start <= e.expense_date <= period.end)
            revenue = sum(i.total_amount for i in invoices)
            direct = revenue * industry_cost_ratio
            gross = revenue - direct
            net = gross - expenses

            trends.append(
                PeriodProfitability(
                    period=period.label,
                    start=period.start,
                    end=period.end,
                    revenue=revenue,
                    direct_costs=direct,
                    expenses=expenses,
                    gross_profit=gross,
                    net_profit=net,
                    gross_margin=gross / revenue * 100 if revenue > 0 else 0.0,
                    net_margin=net / revenue * 100 if revenue > 0 else 0.0,
                    customer_count=len({i.customer_id for i in invoices}),
                    invoice_count=len(invoices),
                )
            )
        return trends

    @staticmethod
    def trend_summary(trends: list[PeriodProfitability]) -> ProfitabilityTrendSummary:
        if len(trends) < 2:
            return ProfitabilityTrendSummary(
                periods_analyzed=len(trends),
                revenue_growth=0.0,
                profit_growth=0.0,
                margin_trend=0.0,
                average_net_margin=stats.mean([t.net_margin for t in trends]),
                direction=ProfitTrend.INSUFFICIENT_DATA,
            )

        first, last = trends[0], trends[-1]
        profit_growth = stats.percentage_change(last.net_profit, first.net_profit)
        if profit_growth > 5:
            direction = ProfitTrend.IMPROVING
        elif profit_growth < -5:
            direction = ProfitTrend.DECLINING
        else:
            direction = ProfitTrend.STABLE

        return ProfitabilityTrendSummary(
            periods_analyzed=len(trends),
            revenue_growth=stats.percentage_change(last.revenue, first.revenue),
            profit_growth=profit_growth,
            margin_trend=last.net_margin - first.net_margin,
            average_net_margin=stats.mean([t.net_margin for t in trends]),
            direction=direction,
        )

    @staticmethod
    def compound_growth_rate(values: list[float]) -> float:
        """Per-period compound growth from first to last value; 0 if either is not positive."""
        if len(values) < 2 or values[0] <= 0 or values[-1] <= 0:
            return 0.0
        return (values[-1] / values[0]) ** (1 / (len(values) - 1)) - 1

    @staticmethod
    def forecast(
        trends: list[PeriodProfitability],
        periods: int = 3,
        group_by: GroupBy = GroupBy.MONTH,
    ) -> list[ProfitabilityForecast]:
        """
        Compound-growth revenue projection with a linearly drifting margin.

        Needs at least 3 historical periods; returns an empty list otherwise.
        Confidence is max(0.5, 1 - 0.1 h) for step h.
        """
        if len(trends) < 3:
            return []

        last = trends[-1]
        growth = ProfitabilityAnalyzer.compound_growth_rate([t.revenue for t in trends])
        margin_drift = (last.net_margin - trends[0].net_margin) / (len(trends) - 1)

        forecasts = []
        for step in range(1, periods + 1):
            revenue = last.revenue * (1 + growth) ** step
            margin = max(0.0, last.net_margin + margin_drift * step)
            forecasts.append(
                ProfitabilityForecast(
                    period=period_label(step_bucket(last.start, group_by, step), group_by),
                    forecast_revenue=revenue,
                    forecast_margin=margin,
                    forecast_profit=revenue * margin / 100,
                    confidence=max(0.5, 1 - 0.1 * step),
                )
            )
        return forecasts

    @staticmethod
    def margin_optimization(customers: list[CustomerProfitability]) -> list[MarginStrategy]:
        """Expand relationships above 25% margin; improve those between 0% and 10%."""
        strategies = []

        high = [c for c in customers if c.profit_margin_percent > 25]
        if high:
            revenue = sum(c.revenue for c in high)
            strategies.append(
                MarginStrategy(
                    type="customer_focus",
                    title="Expand high-margin customer relationships",
                    description=f"{len(high)} customers have margins above 25%",
                    customer_ids=[c.customer_id for c in high],
                    potential_impact=0.15,
                    estimated_value=revenue * 0.15,
                    priority="high",
                )
            )

        thin = [c for c in customers if 0 < c.profit_margin_percent < 10]
        if thin:
            revenue = sum(c.revenue for c in thin)
            strategies.append(
                MarginStrategy(
                    type="margin_improvement",
                    title="Optimize low-margin customer relationships",
                    description=f"{len(thin)} customers have margins below 10%",
                    customer_ids=[c.customer_id for c in thin],
                    potential_impact=0.1,
                    estimated_value=revenue * 0.1,
                    priority="medium",
                )
            )

        return strategies
