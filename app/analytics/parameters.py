"""
Analytics Parameters
Enumerations for caller-supplied analytics options.
"""

from enum import Enum
from typing import Type, TypeVar, Union

from app.analytics.exceptions import ConfigurationError

E = TypeVar("E", bound=Enum)


class GroupBy(str, Enum):
    """Calendar bucket used to split a date range."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class ModelType(str, Enum):
    """Forecasting model."""

    LINEAR = "linear"
    SEASONAL = "seasonal"
    EXPONENTIAL = "exponential"


class Sensitivity(str, Enum):
    """Anomaly detection sensitivity. Higher sensitivity flags more points."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def threshold(self) -> float:
        """Z-score threshold for this sensitivity level."""
        return SENSITIVITY_THRESHOLDS[self]


SENSITIVITY_THRESHOLDS = {
    Sensitivity.LOW: 3.0,
    Sensitivity.MEDIUM: 2.5,
    Sensitivity.HIGH: 2.0,
}


def parse_enum(enum_cls: Type[E], value: Union[str, E, None], default: E = None) -> E:
    """
    Parse a caller-supplied option into an enum member.

    Matching is case-insensitive on the member value or name.

    Args:
        enum_cls: Target enum class
        value: Raw value (string or enum member); None returns default
        default: Value used when value is None

    Returns:
        Enum member

    Raises:
        ConfigurationError: If value is not a member of enum_cls
    """
    if value is None:
        if default is None:
            raise ConfigurationError(f"Missing value for {enum_cls.__name__}")
        return default

    if isinstance(value, enum_cls):
        return value

    normalized = str(value).strip().lower()
    for member in enum_cls:
        if member.value == normalized or member.name.lower() == normalized:
            return member

    allowed = ", ".join(member.value for member in enum_cls)
    raise ConfigurationError(
        f"Unknown {enum_cls.__name__} '{value}'. Expected one of: {allowed}",
        {"parameter": enum_cls.__name__, "value": str(value)},
    )
