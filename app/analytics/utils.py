"""
Utility functions shared by the analytics feature modules.
"""

import hashlib
import json
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from app.analytics.dataset import DateRange
from app.analytics.exceptions import InvalidRangeError
from app.analytics.periods import add_months


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, resolving zero or negative denominators to a default.

    Args:
        numerator: Dividend
        denominator: Divisor
        default: Value returned when denominator <= 0

    Returns:
        numerator / denominator, or default
    """
    if denominator is None or denominator <= 0:
        return default
    return numerator / denominator


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Safely convert value to float.

    Args:
        value: Value to convert (numbers, Decimals, numeric strings)
        default: Default if conversion fails

    Returns:
        Float value, or default
    """
    if value is None:
        return default

    try:
        if isinstance(value, str):
            cleaned = value.replace(",", "").strip()
            return float(cleaned) if cleaned else default
        return float(value)
    except (ValueError, TypeError, ArithmeticError):
        return default


def round_money(value: float) -> float:
    return round(value, 2)


def validate_date_range(start: date, end: date) -> DateRange:
    """
    Build a DateRange from request bounds.

    Raises:
        InvalidRangeError: If start is after end
    """
    if start is None or end is None:
        raise InvalidRangeError("Both start and end dates are required")
    return DateRange(start=start, end=end)


def _quarter_bounds(year: int, quarter: int) -> DateRange:
    start = date(year, 3 * (quarter - 1) + 1, 1)
    end = add_months(start, 3) - timedelta(days=1)
    return DateRange(start=start, end=end)


def standard_date_ranges(today: date) -> dict[str, DateRange]:
    """Named ranges relative to today (this/last month, quarter, year and rolling windows)."""
    month_start = today.replace(day=1)
    next_month_start = add_months(month_start, 1)
    last_month_start = add_months(month_start, -1)

    quarter = (today.month - 1) // 3 + 1
    if quarter == 1:
        last_quarter = _quarter_bounds(today.year - 1, 4)
    else:
        last_quarter = _quarter_bounds(today.year, quarter - 1)

    return {
        "this_month": DateRange(month_start, next_month_start - timedelta(days=1)),
        "last_month": DateRange(last_month_start, month_start - timedelta(days=1)),
        "this_quarter": _quarter_bounds(today.year, quarter),
        "last_quarter": last_quarter,
        "this_year": DateRange(date(today.year, 1, 1), date(today.year, 12, 31)),
        "last_year": DateRange(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)),
        "last_30_days": DateRange(today - timedelta(days=30), today),
        "last_90_days": DateRange(today - timedelta(days=90), today),
    }


def generate_cache_key(organization_id: str, operation: str, params: Optional[dict[str, Any]] = None) -> str:
    """
    Deterministic cache key for an analytics request.

    Parameter order does not matter; values are serialized with str() so
    dates and enums hash stably.
    """
    payload = json.dumps(params or {}, sort_keys=True, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
    return f"analytics:{organization_id}:{operation}:{digest}"


def create_analytics_response(
    data: Any,
    organization_id: str,
    date_range: DateRange,
    started_at: Optional[datetime] = None,
    cached: bool = False,
) -> dict[str, Any]:
    """
    Wrap an analytics result in the standard response envelope.

    Args:
        data: Serializable analytics payload
        organization_id: Tenant the data belongs to
        date_range: Range the analytics cover
        started_at: When processing began (for processing_time_ms)
        cached: Whether data came from a cache

    Returns:
        Envelope dict with success flag, data and metadata
    """
    generated_at = datetime.now(timezone.utc)
    processing_ms = 0
    if started_at is not None:
        processing_ms = max(0, int((generated_at - started_at).total_seconds() * 1000))

    return {
        "success": True,
        "data": data,
        "metadata": {
            "organization_id": organization_id,
            "date_range": {
                "start": date_range.start.isoformat(),
                "end": date_range.end.isoformat(),
            },
            "generated_at": generated_at.isoformat(),
            "processing_time_ms": processing_ms,
            "cached": cached,
        },
    }
