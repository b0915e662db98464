"""Tests for settings validation and error mapping"""

from fastapi import status

from app.analytics.exceptions import (
    AnalyticsError,
    ConfigurationError,
    InsufficientDataError,
    InvalidRangeError,
)
from app.config import Settings, validate_analytics_settings
from app.core.errors import (
    ERROR_MESSAGES,
    ErrorCode,
    create_error_response,
    get_error_code_for_exception,
    sanitize_error_message,
)


def test_default_settings_are_valid():
    result = validate_analytics_settings(Settings())

    assert result == {"is_valid": True, "errors": [], "warnings": []}


def test_invalid_confidence_and_horizon():
    config = Settings(
        analytics_default_confidence=0.3,
        analytics_default_forecast_periods=30,
        analytics_max_forecast_periods=12,
    )

    result = validate_analytics_settings(config)

    assert result["is_valid"] is False
    assert len(result["errors"]) == 2


def test_low_data_point_limit_is_a_warning():
    result = validate_analytics_settings(Settings(analytics_max_data_points=50))

    assert result["is_valid"] is True
    assert len(result["warnings"]) == 1


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ANALYTICS_DEFAULT_SENSITIVITY", "high")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")

    config = Settings()

    assert config.analytics_default_sensitivity == "high"
    assert config.cors_origins_list == ["https://a.example", "https://b.example"]


def test_exception_mapping():
    assert get_error_code_for_exception(InsufficientDataError("few")) == (
        ErrorCode.INSUFFICIENT_DATA,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    assert get_error_code_for_exception(InvalidRangeError("bad")) == (
        ErrorCode.INVALID_DATE_RANGE,
        status.HTTP_400_BAD_REQUEST,
    )
    assert get_error_code_for_exception(ConfigurationError("bad")) == (
        ErrorCode.INVALID_PARAMETER,
        status.HTTP_400_BAD_REQUEST,
    )
    assert get_error_code_for_exception(AnalyticsError("boom"))[0] == ErrorCode.CALCULATION_FAILED
    assert get_error_code_for_exception(ValueError("bad uuid"))[0] == ErrorCode.VALIDATION_ERROR
    assert get_error_code_for_exception(KeyError("x")) == (
        ErrorCode.INTERNAL_ERROR,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def test_sanitize_keeps_descriptive_analytics_messages():
    error = ConfigurationError("Unknown GroupBy 'fortnight'")

    assert sanitize_error_message(error, ErrorCode.INVALID_PARAMETER) == "Unknown GroupBy 'fortnight'"


def test_sanitize_hides_internal_details():
    error = RuntimeError("password authentication failed for user postgres")

    message = sanitize_error_message(error, ErrorCode.INTERNAL_ERROR, log_details=False)

    assert message == ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR]


def test_create_error_response_defaults():
    exc = create_error_response(ErrorCode.INSUFFICIENT_DATA)

    assert exc.status_code == 422
    assert exc.detail == {
        "error_code": "insufficient_data",
        "message": ERROR_MESSAGES[ErrorCode.INSUFFICIENT_DATA],
    }
