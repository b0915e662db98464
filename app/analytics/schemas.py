"""
Analytics Schemas
Pydantic models for analytics query parameters and the response envelope.

Enum-like parameters are plain strings here and parsed case-insensitively
by the service, so unknown values surface as invalid_parameter errors.
"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.analytics.dataset import DateRange
from app.analytics.utils import validate_date_range


class DateRangeQuery(BaseModel):
    """Inclusive date range shared by every analytics endpoint."""

    start_date: date = Field(..., description="First day of the analysis range (YYYY-MM-DD)")
    end_date: date = Field(..., description="Last day of the analysis range (YYYY-MM-DD)")

    def to_date_range(self) -> DateRange:
        return validate_date_range(self.start_date, self.end_date)


class GroupedQuery(DateRangeQuery):
    group_by: str = Field("month", description="Bucket size: day, week, month or quarter")


class RevenueForecastQuery(DateRangeQuery):
    periods: Optional[int] = Field(None, ge=1, description="Number of periods to forecast")
    model_type: Optional[str] = Field(None, description="linear, seasonal or exponential; chosen automatically if omitted")
    include_seasonality: Optional[bool] = Field(None, description="Allow seasonal model selection and holiday effects")
    confidence_level: Optional[float] = Field(None, gt=0, lt=1, description="Confidence level for error bands")
    group_by: str = Field("month", description="Bucket size: day, week, month or quarter")


class AnomalyQuery(DateRangeQuery):
    sensitivity: Optional[str] = Field(None, description="low, medium or high")
    as_of: Optional[date] = Field(None, description="Reference day for new/dormant categories; defaults to end_date")


class ProfitabilityQuery(DateRangeQuery):
    include_cost_allocation: bool = Field(True, description="Allocate shared expenses to customers")
    min_profit_threshold: Optional[float] = Field(None, description="Exclude customers with lower net profit")


class ProfitabilityTrendQuery(GroupedQuery):
    forecast_periods: int = Field(3, ge=0, le=12, description="Periods of profitability forecast")


class RatioQuery(DateRangeQuery):
    include_benchmarking: bool = Field(False, description="Include a percentile comparison")


class BenchmarkQuery(DateRangeQuery):
    sector: str = Field("services", description="retail, manufacturing or services")


class TaxQuery(DateRangeQuery):
    as_of: Optional[date] = Field(None, description="Day obligations are judged overdue against; defaults to end_date")


class ResponseMetadata(BaseModel):
    organization_id: str = Field(..., description="Organization the analytics cover")
    date_range: dict[str, str] = Field(..., description="Start and end of the analysed range")
    generated_at: str = Field(..., description="ISO timestamp when the response was generated")
    processing_time_ms: int = Field(..., description="Time spent computing the response")
    cached: bool = Field(False, description="Whether the data came from a cache")


class AnalyticsResponse(BaseModel):
    """Standard envelope for analytics responses."""

    model_config = ConfigDict(extra="allow")

    success: bool = Field(True, description="Whether the computation succeeded")
    data: Any = Field(..., description="Analytics payload")
    metadata: ResponseMetadata = Field(..., description="Request metadata")
