"""
Settlement Periods

A period is a fixed 7-day window aligned to the studio's week start, in the
studio's timezone. Periods are keyed by a label derived from their start and
end dates, so the same window always produces the same settlement key.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator

from dateutil.relativedelta import relativedelta, weekday

from .config import StudioSettings
from .models import Period


def localize(moment: datetime, tz: tzinfo) -> datetime:
    """Naive timestamps are studio-local; aware ones are converted."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def period_label(start: datetime, end: datetime) -> str:
    return f"Week of {start:%b %d} - {end:%d, %Y}"


def week_starting(start_day: date, tz: tzinfo) -> Period:
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    end = datetime.combine(start_day + timedelta(days=6), time.max, tzinfo=tz)
    return Period(start=start, end=end, label=period_label(start, end))


def week_containing(moment: datetime | date, settings: StudioSettings) -> Period:
    tz = settings.tzinfo
    if isinstance(moment, datetime):
        day = localize(moment, tz).date()
    else:
        day = moment
    start_day = day + relativedelta(weekday=weekday(settings.week_starts_on, -1))
    return week_starting(start_day, tz)


def anchor_date(current: Period, settings: StudioSettings) -> date:
    """
    First day the carry-forward walk considers.

    Defaults to January 1st of the year the current period ends in, so the
    week spanning New Year belongs to the new year. A studio can set
    PAYOUT_ANCHOR_DATE (e.g. its opening date) to look further back.
    """
    if settings.payout_anchor is not None:
        return settings.payout_anchor
    return date(current.end.year, 1, 1)


def weeks_before(current: Period, settings: StudioSettings) -> Iterator[Period]:
    """Yield every week from the anchor week up to, not including, `current`."""
    period = week_containing(anchor_date(current, settings), settings)
    while period.start < current.start:
        yield period
        period = week_starting(period.start.date() + timedelta(days=7), settings.tzinfo)
