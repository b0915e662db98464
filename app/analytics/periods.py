"""
Period Utilities
Calendar bucketing, date-range splitting and season classification.
"""

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from app.analytics.constants import HOLIDAY_MULTIPLIERS, SEASON_BY_MONTH, SEASON_MULTIPLIERS, Season
from app.analytics.dataset import DateRange
from app.analytics.parameters import GroupBy


@dataclass(frozen=True)
class Period:
    """A labelled sub-range produced by split_date_range."""

    label: str
    start: date
    end: date

    @property
    def date_range(self) -> DateRange:
        return DateRange(start=self.start, end=self.end)


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length."""
    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def bucket_start(day: date, group_by: GroupBy) -> date:
    """First day of the calendar bucket containing day."""
    if group_by == GroupBy.DAY:
        return day
    if group_by == GroupBy.WEEK:
        return day - timedelta(days=day.weekday())
    if group_by == GroupBy.MONTH:
        return day.replace(day=1)
    quarter_month = 3 * ((day.month - 1) // 3) + 1
    return date(day.year, quarter_month, 1)


def period_label(day: date, group_by: GroupBy) -> str:
    """
    Bucket label for a date.

    Day and week labels are ISO dates (weeks start on Monday), months are
    YYYY-MM and quarters are YYYY-Qn. Labels sort chronologically as strings.
    """
    start = bucket_start(day, group_by)
    if group_by in (GroupBy.DAY, GroupBy.WEEK):
        return start.isoformat()
    if group_by == GroupBy.MONTH:
        return f"{start.year:04d}-{start.month:02d}"
    return f"{start.year:04d}-Q{(start.month - 1) // 3 + 1}"


def step_bucket(day: date, group_by: GroupBy, steps: int = 1) -> date:
    """Start of the bucket `steps` buckets after the one containing day."""
    start = bucket_start(day, group_by)
    if group_by == GroupBy.DAY:
        return start + timedelta(days=steps)
    if group_by == GroupBy.WEEK:
        return start + timedelta(weeks=steps)
    if group_by == GroupBy.MONTH:
        return add_months(start, steps)
    return add_months(start, 3 * steps)


def split_date_range(date_range: DateRange, group_by: GroupBy = GroupBy.MONTH) -> list[Period]:
    """
    Split a range into contiguous sub-periods.

    Periods are anchored on the range start: a week is start..start+6, a month
    runs to the end of the start's calendar month, a quarter to the end of the
    third calendar month. The last period is clamped to the range end.
    """
    periods = []
    current = date_range.start

    while current <= date_range.end:
        if group_by == GroupBy.DAY:
            period_end = current
        elif group_by == GroupBy.WEEK:
            period_end = current + timedelta(days=6)
        elif group_by == GroupBy.MONTH:
            period_end = _month_end(current.year, current.month)
        else:
            last_month = add_months(current.replace(day=1), 2)
            period_end = _month_end(last_month.year, last_month.month)

        period_end = min(period_end, date_range.end)

        if group_by in (GroupBy.DAY, GroupBy.WEEK):
            label = current.isoformat()
        else:
            label = period_label(current, group_by)

        periods.append(Period(label=label, start=current, end=period_end))
        current = period_end + timedelta(days=1)

    return periods


def season_for(day: date) -> Season:
    """Three-season classification: dry May-Sep, rainy Nov-Mar, transition otherwise."""
    return SEASON_BY_MONTH[day.month]


def season_multiplier(day: date) -> float:
    return SEASON_MULTIPLIERS[season_for(day)]


def holiday_adjustment(day: date) -> tuple[float, str]:
    """Holiday multiplier and description for the month of day; (1.0, "") if none."""
    return HOLIDAY_MULTIPLIERS.get(day.month, (1.0, ""))
