"""
Forecasting Engine
Projects a historical series forward with a linear, exponential-smoothing
or seasonal model and attaches confidence intervals and driver factors.
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from app.analytics import statistics as stats
from app.analytics.constants import (
    CONFIDENCE_MULTIPLIERS,
    EXPONENTIAL_ALPHA,
    EXPONENTIAL_BASE_CONFIDENCE,
    MIN_FORECAST_POINTS,
    MODEL_CONFIDENCE_DECAY,
    SEASONAL_BAND,
    SEASONAL_BASE_CONFIDENCE,
)
from app.analytics.dataset import TimeSeriesPoint
from app.analytics.exceptions import ConfigurationError, InsufficientDataError
from app.analytics.parameters import GroupBy, ModelType, parse_enum
from app.analytics.periods import holiday_adjustment, period_label, season_for, season_multiplier, step_bucket
from app.analytics.trends import Direction, TrendAnalysis, TrendAnalyzer


@dataclass(frozen=True)
class ForecastFactor:
    factor: str
    impact: float
    description: str


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass(frozen=True)
class ForecastPoint:
    period: str
    date: date
    predicted_value: float
    confidence_interval: ConfidenceInterval
    confidence: float
    contributing_factors: tuple[ForecastFactor, ...] = ()


@dataclass(frozen=True)
class SeriesValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AccuracyMetrics:
    mape: float
    rmse: float
    r_squared: float


@dataclass(frozen=True)
class ForecastInsights:
    expected_growth: float
    seasonal_peaks: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastResult:
    historical: list[TimeSeriesPoint]
    forecast: list[ForecastPoint]
    model_type: ModelType
    trend_analysis: TrendAnalysis
    accuracy: AccuracyMetrics
    insights: ForecastInsights


def _decayed_confidence(model_type: ModelType, base: float, step: int) -> float:
    """Confidence for horizon step (0-based); non-increasing in step, within [floor, 1]."""
    floor, decay = MODEL_CONFIDENCE_DECAY[model_type.value]
    start = min(1.0, max(floor, base))
    return max(floor, start - decay * step)


def _z_multiplier(confidence_level: float) -> float:
    nearest = min(CONFIDENCE_MULTIPLIERS, key=lambda level: abs(level - confidence_level))
    return CONFIDENCE_MULTIPLIERS[nearest]


class RevenueForecaster:
    """
    Forecast model selection, fitting and projection.

    All methods are static and operate only on their arguments.
    """

    # ============================================
    # Validation
    # ============================================

    @staticmethod
    def validate_series(series: list[TimeSeriesPoint]) -> SeriesValidation:
        """
        Check a series is fit for forecasting.

        Errors: fewer than 3 points, or more than half the points are zero.
        Warning: more than 20% of points lie beyond three standard deviations.
        """
        errors = []
        warnings = []

        if len(series) < MIN_FORECAST_POINTS:
            errors.append(
                f"At least {MIN_FORECAST_POINTS} historical periods are required, got {len(series)}"
            )
            return SeriesValidation(is_valid=False, errors=errors, warnings=warnings)

        values = [point.value for point in series]
        zero_count = sum(1 for v in values if v == 0)
        if zero_count / len(values) > 0.5:
            errors.append("More than 50% of historical periods have zero value")

        avg = stats.mean(values)
        std = stats.standard_deviation(values)
        if std > 0:
            outliers = sum(1 for v in values if abs(v - avg) > 3 * std)
            if outliers / len(values) > 0.2:
                warnings.append("High proportion of outliers may reduce forecast accuracy")

        return SeriesValidation(is_valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def ensure_forecastable(series: list[TimeSeriesPoint]) -> None:
        """Raise InsufficientDataError unless validate_series passes."""
        validation = RevenueForecaster.validate_series(series)
        if not validation.is_valid:
            raise InsufficientDataError(
                "; ".join(validation.errors),
                required=MIN_FORECAST_POINTS,
                available=len(series),
            )

    # ============================================
    # Model selection
    # ============================================

    @staticmethod
    def trend_strength(values: list[float]) -> float:
        """Relative change between the mean of the second half and the first half."""
        if len(values) < 2:
            return 0.0
        half = len(values) // 2
        first = stats.mean(values[:half])
        second = stats.mean(values[half:])
        if first == 0:
            return 0.0
        return (second - first) / abs(first)

    @staticmethod
    def select_model(series: list[TimeSeriesPoint], include_seasonality: bool = True) -> ModelType:
        """
        Pick a model: Seasonal when detected seasonality strength > 0.3,
        Linear when trend strength > 0.1, Exponential otherwise.
        """
        if include_seasonality:
            seasonality = TrendAnalyzer.detect_seasonality(series)
            if seasonality.detected and (seasonality.strength or 0) > 0.3:
                return ModelType.SEASONAL

        values = [point.value for point in series]
        if abs(RevenueForecaster.trend_strength(values)) > 0.1:
            return ModelType.LINEAR
        return ModelType.EXPONENTIAL

    # ============================================
    # Models
    # ============================================

    @staticmethod
    def _linear(series: list[TimeSeriesPoint], periods: int, group_by: GroupBy) -> list[ForecastPoint]:
        values = [point.value for point in series]
        n = len(values)
        fit = stats.linear_regression(values)
        base_confidence = max(0.5, fit.r_squared)

        direction = "increasing" if fit.slope >= 0 else "decreasing"
        factors = (
            ForecastFactor(
                factor="Linear Trend",
                impact=0.7 if fit.slope >= 0 else -0.7,
                description=f"Revenue {direction} by {abs(fit.slope):.2f} per period",
            ),
            ForecastFactor(
                factor="Model Accuracy",
                impact=fit.r_squared,
                description=f"Trend explains {fit.r_squared * 100:.1f}% of historical variation",
            ),
        )

        points = []
        for h in range(periods):
            predicted = max(0.0, fit.predict(n + h))
            confidence = _decayed_confidence(ModelType.LINEAR, base_confidence, h)
            margin = predicted * (1 - confidence) * 0.5
            points.append(
                RevenueForecaster._point(series[-1].date, h, group_by, predicted, margin, margin, confidence, factors)
            )
        return points

    @staticmethod
    def _exponential(
        series: list[TimeSeriesPoint],
        periods: int,
        group_by: GroupBy,
        confidence_level: float,
    ) -> list[ForecastPoint]:
        values = [point.value for point in series]
        smoothed = stats.exponential_smoothing(values, EXPONENTIAL_ALPHA)
        level = max(0.0, smoothed[-1])

        # One-step-ahead errors: each value against the smoothed level before it
        mae = stats.mean_absolute_error(values[1:], smoothed[:-1])
        margin = mae * _z_multiplier(confidence_level)

        factors = (
            ForecastFactor(
                factor="Recent Performance",
                impact=EXPONENTIAL_ALPHA,
                description=f"Smoothed level weights the latest period at {EXPONENTIAL_ALPHA:.0%}",
            ),
            ForecastFactor(
                factor="Historical Error",
                impact=-min(1.0, mae / level) if level > 0 else 0.0,
                description=f"Mean absolute error of {mae:.2f} per period",
            ),
        )

        return [
            RevenueForecaster._point(
                series[-1].date,
                h,
                group_by,
                level,
                margin,
                margin,
                _decayed_confidence(ModelType.EXPONENTIAL, EXPONENTIAL_BASE_CONFIDENCE, h),
                factors,
            )
            for h in range(periods)
        ]

    @staticmethod
    def seasonal_components(series: list[TimeSeriesPoint]) -> tuple[list[float], list[float]]:
        """
        Additive decomposition.

        Returns:
            (trend, seasonal) where trend is the trailing moving average over
            min(12, n) points and seasonal[m] is the mean residual for calendar
            month m (index 0 = January), 0 for months with no data
        """
        values = [point.value for point in series]
        trend = stats.moving_average(values, min(12, len(values)))

        sums = [0.0] * 12
        counts = [0] * 12
        for point, level in zip(series, trend):
            sums[point.date.month - 1] += point.value - level
            counts[point.date.month - 1] += 1
        seasonal = [s / c if c else 0.0 for s, c in zip(sums, counts)]
        return trend, seasonal

    @staticmethod
    def _seasonal(
        series: list[TimeSeriesPoint],
        periods: int,
        group_by: GroupBy,
        include_holidays: bool,
    ) -> list[ForecastPoint]:
        trend, seasonal = RevenueForecaster.seasonal_components(series)
        last_trend = trend[-1]
        low_band, high_band = SEASONAL_BAND

        points = []
        for h in range(periods):
            target = step_bucket(series[-1].date, group_by, h + 1)
            component = seasonal[target.month - 1]
            season = season_for(target)
            multiplier = season_multiplier(target)

            predicted = (last_trend + component) * multiplier
            factors = [
                ForecastFactor(
                    factor="Seasonal Pattern",
                    impact=component / last_trend if last_trend else 0.0,
                    description=f"{calendar.month_name[target.month]} historically deviates by {component:.2f}",
                ),
                ForecastFactor(
                    factor="Season",
                    impact=multiplier - 1,
                    description=f"{season.value.capitalize()} season adjustment x{multiplier:.2f}",
                ),
            ]

            if include_holidays:
                holiday, description = holiday_adjustment(target)
                if holiday != 1.0:
                    predicted *= holiday
                    factors.append(
                        ForecastFactor(factor="Holiday Effect", impact=holiday - 1, description=description)
                    )

            predicted = max(0.0, predicted)
            points.append(
                RevenueForecaster._point(
                    series[-1].date,
                    h,
                    group_by,
                    predicted,
                    predicted * (1 - low_band),
                    predicted * (high_band - 1),
                    _decayed_confidence(ModelType.SEASONAL, SEASONAL_BASE_CONFIDENCE, h),
                    tuple(factors),
                )
            )
        return points

    @staticmethod
    def _point(
        last_date: date,
        step: int,
        group_by: GroupBy,
        predicted: float,
        margin_below: float,
        margin_above: float,
        confidence: float,
        factors: tuple[ForecastFactor, ...],
    ) -> ForecastPoint:
        target = step_bucket(last_date, group_by, step + 1)
        return ForecastPoint(
            period=period_label(target, group_by),
            date=target,
            predicted_value=predicted,
            confidence_interval=ConfidenceInterval(
                lower=max(0.0, predicted - abs(margin_below)),
                upper=predicted + abs(margin_above),
            ),
            confidence=confidence,
            contributing_factors=factors,
        )

    # ============================================
    # Public API
    # ============================================

    @staticmethod
    def forecast(
        series: list[TimeSeriesPoint],
        periods: int,
        model_type: Union[ModelType, str, None] = None,
        include_seasonality: bool = True,
        group_by: GroupBy = GroupBy.MONTH,
        max_periods: int = 24,
        confidence_level: float = 0.95,
    ) -> tuple[ModelType, list[ForecastPoint]]:
        """
        Project `periods` buckets past the last historical point.

        Args:
            series: Chronological history
            periods: Horizon length, 1..max_periods
            model_type: Explicit model, or None to select heuristically
            include_seasonality: Allow automatic seasonal selection and holiday effects
            group_by: Bucket size of the series
            max_periods: Upper bound for periods
            confidence_level: Level for the exponential model's error band

        Returns:
            (model used, forecast points in increasing period order)

        Raises:
            InsufficientDataError: Too few points or mostly zero values
            ConfigurationError: Unknown model type or periods out of range
        """
        if periods < 1 or periods > max_periods:
            raise ConfigurationError(
                f"Forecast periods must be between 1 and {max_periods}, got {periods}",
                {"parameter": "periods", "value": periods},
            )

        RevenueForecaster.ensure_forecastable(series)

        if model_type is None:
            model = RevenueForecaster.select_model(series, include_seasonality)
        else:
            model = parse_enum(ModelType, model_type)

        if model == ModelType.LINEAR:
            return model, RevenueForecaster._linear(series, periods, group_by)
        if model == ModelType.EXPONENTIAL:
            return model, RevenueForecaster._exponential(series, periods, group_by, confidence_level)
        return model, RevenueForecaster._seasonal(series, periods, group_by, include_seasonality)

    @staticmethod
    def accuracy(series: list[TimeSeriesPoint]) -> AccuracyMetrics:
        """
        Holdout accuracy of the linear model.

        The last min(3, floor(0.2 n)) points are predicted from a fit on the
        rest. Series shorter than 6 points report zeros.
        """
        values = [point.value for point in series]
        if len(values) < 6:
            return AccuracyMetrics(mape=0.0, rmse=0.0, r_squared=0.0)

        test_size = min(3, int(len(values) * 0.2))
        train = values[:-test_size]
        test = values[-test_size:]
        fit = stats.linear_regression(train)

        squared = 0.0
        percentage_errors = []
        for i, actual in enumerate(test):
            error = actual - fit.predict(len(train) + i)
            squared += error ** 2
            if actual != 0:
                percentage_errors.append(abs(error / actual) * 100)

        return AccuracyMetrics(
            mape=stats.mean(percentage_errors),
            rmse=math.sqrt(squared / test_size),
            r_squared=stats.linear_regression(values).r_squared,
        )

    @staticmethod
    def insights(
        historical: list[TimeSeriesPoint],
        forecast: list[ForecastPoint],
        trend: TrendAnalysis,
    ) -> ForecastInsights:
        last_value = historical[-1].value if historical else 0.0
        avg_forecast = stats.mean([point.predicted_value for point in forecast])
        expected_growth = stats.percentage_change(avg_forecast, last_value)

        peaks = []
        if trend.seasonality.detected:
            means = TrendAnalyzer.month_bucket_means(historical)
            ranked = sorted(range(12), key=lambda m: means[m], reverse=True)
            peaks = [calendar.month_name[m + 1] for m in ranked[:2] if means[m] > 0]

        risk_factors = []
        if trend.direction == Direction.DECREASING:
            risk_factors.append("Declining revenue trend detected")
        if trend.anomalies:
            risk_factors.append("Revenue volatility detected")

        recommendations = []
        if expected_growth < 0:
            recommendations.append("Consider implementing revenue growth strategies")
        if trend.seasonality.detected:
            recommendations.append("Plan for seasonal variations in cash flow")
        if not risk_factors:
            recommendations.append("Revenue forecast looks stable - maintain current strategies")

        return ForecastInsights(
            expected_growth=expected_growth,
            seasonal_peaks=peaks,
            risk_factors=risk_factors,
            recommendations=recommendations,
        )

    @staticmethod
    def forecast_revenue(
        series: list[TimeSeriesPoint],
        periods: int,
        model_type: Optional[Union[ModelType, str]] = None,
        include_seasonality: bool = True,
        group_by: GroupBy = GroupBy.MONTH,
        max_periods: int = 24,
        confidence_level: float = 0.95,
    ) -> ForecastResult:
        """Full forecast: projection, trend analysis, holdout accuracy and insights."""
        model, points = RevenueForecaster.forecast(
            series,
            periods,
            model_type=model_type,
            include_seasonality=include_seasonality,
            group_by=group_by,
            max_periods=max_periods,
            confidence_level=confidence_level,
        )
        trend = TrendAnalyzer.analyze(series)

        return ForecastResult(
            historical=list(series),
            forecast=points,
            model_type=model,
            trend_analysis=trend,
            accuracy=RevenueForecaster.accuracy(series),
            insights=RevenueForecaster.insights(series, points, trend),
        )
