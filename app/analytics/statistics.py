"""
Statistics Primitives
Pure numeric helpers shared by every analytics engine.

Built on the standard library statistics module. All functions are
stateless and never return NaN or infinity: empty input, constant input,
mismatched lengths and zero denominators resolve to 0.
"""

import statistics
from dataclasses import dataclass
from statistics import StatisticsError
from typing import Sequence


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least squares fit of value against index 0..n-1."""

    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values)


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (divides by n)."""
    if not values:
        return 0.0
    return float(statistics.pstdev(values))


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Standard deviation over mean; 0 when the mean is not positive."""
    avg = mean(values)
    if avg <= 0:
        return 0.0
    return standard_deviation(values) / avg


def linear_regression(values: Sequence[float]) -> RegressionResult:
    """
    Fit a straight line through the values using their index as x.

    Callers are expected to check len(values) >= 2 first. A shorter input
    yields a flat line through the mean.

    Args:
        values: Observations in chronological order

    Returns:
        RegressionResult with slope, intercept and R² clamped to [0, 1]
    """
    if len(values) < 2:
        return RegressionResult(slope=0.0, intercept=mean(values), r_squared=0.0)

    x = list(range(len(values)))
    y = [float(v) for v in values]
    try:
        slope, intercept = statistics.linear_regression(x, y)
    except StatisticsError:
        return RegressionResult(slope=0.0, intercept=mean(y), r_squared=0.0)

    # For a single regressor R² is the squared Pearson coefficient
    r = correlation(x, y)
    return RegressionResult(
        slope=slope,
        intercept=intercept,
        r_squared=min(1.0, max(0.0, r * r)),
    )


def moving_average(values: Sequence[float], window: int) -> list[float]:
    """
    Trailing moving average.

    Index i averages values[max(0, i - window + 1) .. i], so the first
    window - 1 entries average over fewer points.
    """
    if window < 1:
        raise ValueError("window must be at least 1")

    result = []
    for i in range(len(values)):
        start = max(0, i - window + 1)
        chunk = values[start:i + 1]
        result.append(statistics.fmean(chunk))
    return result


def percentage_change(current: float, previous: float) -> float:
    """Percent change from previous to current; 100 or 0 when previous is 0."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / abs(previous) * 100


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation coefficient; 0 for constant or too-short input."""
    if len(x) != len(y) or len(x) < 2:
        return 0.0
    try:
        return statistics.correlation(x, y)
    except StatisticsError:
        return 0.0


def z_score(value: float, avg: float, std: float) -> float:
    """Absolute z-score; 0 when the spread is 0."""
    if std <= 0:
        return 0.0
    return abs(value - avg) / std


def exponential_smoothing(values: Sequence[float], alpha: float) -> list[float]:
    """Single exponential smoothing seeded with the first observation."""
    if not values:
        return []
    smoothed = [float(values[0])]
    for value in values[1:]:
        smoothed.append(alpha * value + (1 - alpha) * smoothed[-1])
    return smoothed


def mean_absolute_error(actual: Sequence[float], predicted: Sequence[float]) -> float:
    if len(actual) != len(predicted) or not actual:
        return 0.0
    return statistics.fmean(abs(a - p) for a, p in zip(actual, predicted))
