"""Tests for shared analytics utilities"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.analytics.dataset import DateRange
from app.analytics.exceptions import InvalidRangeError
from app.analytics.utils import (
    create_analytics_response,
    generate_cache_key,
    round_money,
    safe_divide,
    safe_float,
    standard_date_ranges,
    validate_date_range,
)


def test_safe_divide():
    assert safe_divide(10, 4) == 2.5
    assert safe_divide(10, 0) == 0.0
    assert safe_divide(10, -5) == 0.0
    assert safe_divide(10, 0, default=1.0) == 1.0


def test_safe_float():
    assert safe_float(Decimal("12.50")) == 12.5
    assert safe_float("1,234.5") == 1234.5
    assert safe_float("") == 0.0
    assert safe_float("n/a", default=-1.0) == -1.0
    assert safe_float(None) == 0.0


def test_round_money():
    assert round_money(10.456) == 10.46


def test_validate_date_range():
    assert validate_date_range(date(2024, 1, 1), date(2024, 1, 1)).days == 1

    with pytest.raises(InvalidRangeError):
        validate_date_range(date(2024, 2, 1), date(2024, 1, 1))
    with pytest.raises(InvalidRangeError):
        validate_date_range(None, date(2024, 1, 1))


def test_standard_date_ranges_in_first_quarter():
    ranges = standard_date_ranges(date(2024, 2, 15))

    assert ranges["this_month"] == DateRange(date(2024, 2, 1), date(2024, 2, 29))
    assert ranges["last_month"] == DateRange(date(2024, 1, 1), date(2024, 1, 31))
    assert ranges["this_quarter"] == DateRange(date(2024, 1, 1), date(2024, 3, 31))
    assert ranges["last_quarter"] == DateRange(date(2023, 10, 1), date(2023, 12, 31))
    assert ranges["last_30_days"].end == date(2024, 2, 15)


def test_cache_key_ignores_parameter_order():
    first = generate_cache_key("org1", "forecast", {"periods": 6, "group_by": "month"})
    second = generate_cache_key("org1", "forecast", {"group_by": "month", "periods": 6})
    other = generate_cache_key("org1", "forecast", {"group_by": "month", "periods": 7})

    assert first == second
    assert first != other
    assert first.startswith("analytics:org1:forecast:")


def test_create_analytics_response():
    started = datetime.now(timezone.utc) - timedelta(milliseconds=5)
    date_range = DateRange(date(2024, 1, 1), date(2024, 3, 31))

    response = create_analytics_response({"value": 1}, "org1", date_range, started_at=started)

    assert response["success"] is True
    assert response["data"] == {"value": 1}
    assert response["metadata"]["date_range"] == {"start": "2024-01-01", "end": "2024-03-31"}
    assert response["metadata"]["processing_time_ms"] >= 5
    assert response["metadata"]["cached"] is False
