"""
Anomaly Detection Engine
Per-category expense outlier detection, pattern summary and alerts.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union

from app.analytics import statistics as stats
from app.analytics.constants import HIGH_SEVERITY_Z
from app.analytics.dataset import Expense, TimeSeriesPoint
from app.analytics.exceptions import InsufficientDataError
from app.analytics.parameters import Sensitivity, parse_enum
from app.analytics.trends import Severity, expenses_by_category

MIN_CATEGORY_OBSERVATIONS = 5
RECENT_WINDOW_DAYS = 90


class AlertType(str, Enum):
    BUDGET_EXCEEDED = "budget_exceeded"
    UNUSUAL_PATTERN = "unusual_pattern"
    NEW_CATEGORY = "new_category"
    DORMANT_CATEGORY = "dormant_category"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ExpenseAnomaly:
    expense_id: str
    category: str
    date: date
    amount: float
    expected_amount: float
    variance: float
    anomaly_score: float
    severity: Severity
    reason: str
    description: str = ""


@dataclass(frozen=True)
class PatternSummary:
    unusual_spikes: int
    unusual_dips: int
    new_categories: list[str] = field(default_factory=list)
    dormant_categories: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnomalyAlert:
    type: AlertType
    message: str
    severity: AlertSeverity
    action_required: bool


@dataclass(frozen=True)
class AnomalySummary:
    total_anomalies: int
    high_severity_count: int
    medium_severity_count: int
    low_severity_count: int
    total_anomalous_amount: float
    category_breakdown: dict[str, int] = field(default_factory=dict)
    most_affected_category: Optional[str] = None


@dataclass(frozen=True)
class AnomalyReport:
    anomalies: list[ExpenseAnomaly]
    summary: AnomalySummary
    patterns: PatternSummary
    alerts: list[AnomalyAlert]
    recommendations: list[str]


def classify_severity(score: float) -> Severity:
    if score > HIGH_SEVERITY_Z:
        return Severity.HIGH
    if score > 2.5:
        return Severity.MEDIUM
    return Severity.LOW


def _reason(score: float, threshold: float, above: bool) -> str:
    if score > threshold * 1.5:
        side = "above" if above else "below"
        return f"Extreme outlier - amount significantly {side} normal pattern"
    return "Significant deviation from normal pattern"


class ExpenseAnomalyDetector:
    """
    Z-score outlier detection over individual expenses within each category.

    Each expense is scored against the mean and standard deviation of the
    other expenses in its category, so an outlier does not inflate the
    spread it is measured against.
    """

    @staticmethod
    def score(amount: float, others: list[float]) -> tuple[float, float]:
        """
        Leave-one-out z-score of amount against the other observations.

        Returns:
            (score, expected amount). A flat baseline has no spread to
            measure against and scores 0.
        """
        expected = stats.mean(others)
        spread = stats.standard_deviation(others)
        return stats.z_score(amount, expected, spread), expected

    @staticmethod
    def detect(
        expenses: list[Expense],
        sensitivity: Union[Sensitivity, str] = Sensitivity.MEDIUM,
    ) -> list[ExpenseAnomaly]:
        """
        Flag expenses whose score exceeds the sensitivity threshold.

        Categories with fewer than 5 expenses are skipped.

        Args:
            expenses: Expenses to inspect
            sensitivity: low (z > 3.0), medium (z > 2.5) or high (z > 2.0)

        Returns:
            Anomalies sorted by anomaly_score, highest first
        """
        level = parse_enum(Sensitivity, sensitivity)

        grouped: dict[str, list[Expense]] = defaultdict(list)
        for expense in expenses:
            grouped[expense.category or "Uncategorized"].append(expense)

        anomalies = []
        for category in sorted(grouped):
            if len(grouped[category]) < MIN_CATEGORY_OBSERVATIONS:
                continue
            anomalies.extend(ExpenseAnomalyDetector.detect_category(category, grouped[category], level))

        # sorted() is stable, so equal scores keep category/input order
        return sorted(anomalies, key=lambda a: a.anomaly_score, reverse=True)

    @staticmethod
    def detect_category(
        category: str,
        items: list[Expense],
        sensitivity: Sensitivity,
    ) -> list[ExpenseAnomaly]:
        """
        Outliers within a single category, in input order.

        Raises:
            InsufficientDataError: If the category has fewer than 5 expenses
        """
        if len(items) < MIN_CATEGORY_OBSERVATIONS:
            raise InsufficientDataError(
                f"Anomaly detection for '{category}' needs at least {MIN_CATEGORY_OBSERVATIONS} expenses",
                required=MIN_CATEGORY_OBSERVATIONS,
                available=len(items),
            )

        threshold = sensitivity.threshold
        amounts = [item.amount for item in items]
        anomalies = []

        for index, item in enumerate(items):
            others = amounts[:index] + amounts[index + 1:]
            score, expected = ExpenseAnomalyDetector.score(item.amount, others)
            if score <= threshold:
                continue

            anomalies.append(
                ExpenseAnomaly(
                    expense_id=item.id,
                    category=category,
                    date=item.expense_date,
                    amount=item.amount,
                    expected_amount=expected,
                    variance=item.amount - expected,
                    anomaly_score=score,
                    severity=classify_severity(score),
                    reason=_reason(score, threshold, item.amount >= expected),
                    description=item.description,
                )
            )

        return anomalies

    @staticmethod
    def summarize(anomalies: list[ExpenseAnomaly]) -> AnomalySummary:
        counts = Counter(a.severity for a in anomalies)
        breakdown = Counter(a.category for a in anomalies)
        most_affected = max(breakdown, key=breakdown.get) if breakdown else None

        return AnomalySummary(
            total_anomalies=len(anomalies),
            high_severity_count=counts[Severity.HIGH],
            medium_severity_count=counts[Severity.MEDIUM],
            low_severity_count=counts[Severity.LOW],
            total_anomalous_amount=sum(a.amount for a in anomalies),
            category_breakdown=dict(breakdown),
            most_affected_category=most_affected,
        )

    @staticmethod
    def pattern_summary(
        monthly_by_category: dict[str, list[TimeSeriesPoint]],
        as_of: date,
    ) -> PatternSummary:
        """
        Spikes, dips, new and dormant categories from monthly category series.

        A spike (dip) is a month more than 50% above (below) the category's
        monthly mean. A category is new when its first month falls within the
        90 days before as_of and it has at most 3 months of history; it is
        dormant when it has history but nothing within that window.
        """
        window_start = as_of - timedelta(days=RECENT_WINDOW_DAYS)
        spikes = 0
        dips = 0
        new_categories = []
        dormant_categories = []

        for category, series in monthly_by_category.items():
            if not series:
                continue

            avg = stats.mean([point.value for point in series])
            if avg > 0:
                for point in series:
                    deviation = (point.value - avg) / avg
                    if deviation > 0.5:
                        spikes += 1
                    elif deviation < -0.5:
                        dips += 1

            recent = [point for point in series if window_start <= point.date <= as_of]
            if recent and series[0].date >= window_start and len(series) <= 3:
                new_categories.append(category)
            elif not recent:
                dormant_categories.append(category)

        return PatternSummary(
            unusual_spikes=spikes,
            unusual_dips=dips,
            new_categories=new_categories,
            dormant_categories=dormant_categories,
        )

    @staticmethod
    def alerts(anomalies: list[ExpenseAnomaly], patterns: PatternSummary) -> list[AnomalyAlert]:
        alerts = []

        high = [a for a in anomalies if a.severity == Severity.HIGH]
        if high:
            alerts.append(
                AnomalyAlert(
                    type=AlertType.UNUSUAL_PATTERN,
                    message=f"{len(high)} high-severity expense anomalies detected",
                    severity=AlertSeverity.CRITICAL,
                    action_required=True,
                )
            )

        if patterns.new_categories:
            alerts.append(
                AnomalyAlert(
                    type=AlertType.NEW_CATEGORY,
                    message=f"New expense categories detected: {', '.join(patterns.new_categories)}",
                    severity=AlertSeverity.INFO,
                    action_required=False,
                )
            )

        if patterns.dormant_categories:
            alerts.append(
                AnomalyAlert(
                    type=AlertType.DORMANT_CATEGORY,
                    message=f"Dormant expense categories: {', '.join(patterns.dormant_categories)}",
                    severity=AlertSeverity.INFO,
                    action_required=False,
                )
            )

        if patterns.unusual_spikes > 3:
            alerts.append(
                AnomalyAlert(
                    type=AlertType.UNUSUAL_PATTERN,
                    message="Multiple expense spikes detected - review budget controls",
                    severity=AlertSeverity.WARNING,
                    action_required=True,
                )
            )

        return alerts

    @staticmethod
    def recommendations(anomalies: list[ExpenseAnomaly]) -> list[str]:
        recommendations = []

        if len(anomalies) > 10:
            recommendations.append("Implement automated expense approval workflows to prevent anomalies")
        if len(anomalies) > 5:
            recommendations.append("Set up spending limits by category to control unusual expenses")
            recommendations.append("Regular expense audits and reviews")
        if any(a.severity == Severity.HIGH for a in anomalies):
            recommendations.append("Investigate high-severity anomalies immediately")
        if not recommendations:
            recommendations.append("Expense patterns are within normal ranges - maintain current controls")

        return recommendations

    @staticmethod
    def analyze(
        expenses: list[Expense],
        as_of: date,
        sensitivity: Union[Sensitivity, str] = Sensitivity.MEDIUM,
    ) -> AnomalyReport:
        """Detection plus summary, monthly pattern summary, alerts and recommendations."""
        anomalies = ExpenseAnomalyDetector.detect(expenses, sensitivity)
        patterns = ExpenseAnomalyDetector.pattern_summary(expenses_by_category(expenses), as_of)

        return AnomalyReport(
            anomalies=anomalies,
            summary=ExpenseAnomalyDetector.summarize(anomalies),
            patterns=patterns,
            alerts=ExpenseAnomalyDetector.alerts(anomalies, patterns),
            recommendations=ExpenseAnomalyDetector.recommendations(anomalies),
        )
