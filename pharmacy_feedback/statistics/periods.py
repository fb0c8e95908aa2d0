"""Time filters used by the dashboard"""
import calendar
from datetime import datetime, time, timedelta
from typing import List, NamedTuple, Optional, Tuple

TIME_FILTERS = ("all", "30days", "quarter", "semester", "year", "lastYear")

# Coarser frames used by the dashboard charts
TIME_FRAMES = ("month", "year", "all")

Period = Tuple[Optional[datetime], Optional[datetime]]


class Bucket(NamedTuple):
    """One chart column: [start, end) in local time"""
    label: str
    start: datetime
    end: datetime


def shift_months(dt: datetime, months: int) -> datetime:
    """Move a datetime by whole months, clamping the day to the target month."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def resolve_time_filter(time_filter: str, now: Optional[datetime] = None) -> Period:
    """(start, end) window for a filter; None means unbounded."""
    if now is None:
        now = datetime.utcnow()
    if time_filter == "all":
        return None, None
    if time_filter == "30days":
        return now - timedelta(days=30), now
    if time_filter == "quarter":
        return shift_months(now, -3), now
    if time_filter == "semester":
        return shift_months(now, -6), now
    if time_filter == "year":
        return shift_months(now, -12), now
    if time_filter == "lastYear":
        return shift_months(now, -24), shift_months(now, -12)
    raise ValueError(f"Invalid time filter '{time_filter}'. Must be one of: {', '.join(TIME_FILTERS)}")


def resolve_previous_period(time_filter: str, now: Optional[datetime] = None) -> Period:
    """Window of the same length immediately before the filter's window."""
    start, end = resolve_time_filter(time_filter, now)
    if start is None or end is None:
        return None, None
    return start - (end - start), start


def _check_time_frame(time_frame: str) -> None:
    if time_frame not in TIME_FRAMES:
        raise ValueError(f"Invalid time frame '{time_frame}'. Must be one of: {', '.join(TIME_FRAMES)}")


def resolve_time_frame(time_frame: str, now: Optional[datetime] = None) -> Period:
    """(start, end) of a dashboard frame; "all" is unbounded."""
    _check_time_frame(time_frame)
    if now is None:
        now = datetime.utcnow()
    if time_frame == "month":
        return shift_months(now, -1), now
    if time_frame == "year":
        return shift_months(now, -12), now
    return None, None


def resolve_comparison_frame(time_frame: str, now: Optional[datetime] = None) -> Period:
    """The frame one step back (the month or year before). "all" has nothing to compare to."""
    _check_time_frame(time_frame)
    if now is None:
        now = datetime.utcnow()
    if time_frame == "month":
        return shift_months(now, -2), shift_months(now, -1)
    if time_frame == "year":
        return shift_months(now, -24), shift_months(now, -12)
    return None, None


def _month_start(dt: datetime) -> datetime:
    return datetime(dt.year, dt.month, 1)


def trend_buckets(time_frame: str, now: datetime, earliest: Optional[datetime] = None) -> List[Bucket]:
    """
    Chart columns ending at `now`, oldest first.

    "month" gives the last 30 days, "year" the last 12 calendar months and
    "all" every month from `earliest` (at least 12). Labels are day numbers
    for days, "Jan".."Dec" for months, and "Jan 2024" style when "all" spans
    more than a year.
    """
    _check_time_frame(time_frame)
    if time_frame == "month":
        buckets = []
        for days_back in range(29, -1, -1):
            start = datetime.combine((now - timedelta(days=days_back)).date(), time.min)
            buckets.append(Bucket(str(start.day), start, start + timedelta(days=1)))
        return buckets

    last = _month_start(now)
    months = 12
    if time_frame == "all" and earliest is not None:
        first = _month_start(earliest)
        months = max(months, (last.year - first.year) * 12 + last.month - first.month + 1)

    with_year = months > 12
    buckets = []
    for back in range(months - 1, -1, -1):
        start = shift_months(last, -back)
        label = calendar.month_abbr[start.month]
        if with_year:
            label = f"{label} {start.year}"
        buckets.append(Bucket(label, start, shift_months(start, 1)))
    return buckets
