"""Stay bounds: calendar dates for rooms, UTC date-times for installations.

Both kinds of bound are ordered, so the half-open overlap rule applies to
either. Where a date has to be compared with a date-time, the date stands
for midnight UTC of that day.
"""

import datetime as dt
import math
from typing import Annotated, Any

from pydantic import BeforeValidator

SECONDS_PER_HOUR = 3600


def parse_instant(value: Any) -> Any:
    """Parse ISO text into a date, or a UTC datetime when it carries a time.

    Naive datetimes are taken to be UTC; aware ones are converted to UTC.
    Anything else is returned unchanged for the model to validate.
    """
    if isinstance(value, str):
        value = dt.datetime.fromisoformat(value) if "T" in value else dt.date.fromisoformat(value)
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)
    return value


# datetime must come first: a datetime is also a date
Instant = Annotated[dt.datetime | dt.date, BeforeValidator(parse_instant)]


def is_timed(value: dt.date) -> bool:
    return isinstance(value, dt.datetime)


def to_instant(value: dt.date) -> dt.datetime:
    """Comparable UTC datetime for either kind of bound."""
    if isinstance(value, dt.datetime):
        return value if value.tzinfo else value.replace(tzinfo=dt.UTC)
    return dt.datetime.combine(value, dt.time(), tzinfo=dt.UTC)


def same_kind(*bounds: dt.date) -> bool:
    """True when the bounds are all dates or all datetimes."""
    return len({is_timed(b) for b in bounds}) <= 1


def stay_units(check_in: dt.date, check_out: dt.date) -> int:
    """Billable units of a stay: nights for dates, started hours for datetimes."""
    if is_timed(check_in):
        seconds = (to_instant(check_out) - to_instant(check_in)).total_seconds()
        return math.ceil(seconds / SECONDS_PER_HOUR)
    return (check_out - check_in).days


def has_started(check_in: dt.date, now: dt.datetime) -> bool:
    """A dated stay has started once its check-in day is over; a timed one at its start."""
    if is_timed(check_in):
        return to_instant(check_in) < now
    return check_in < now.date()


def has_ended(check_out: dt.date, now: dt.datetime) -> bool:
    """A dated stay has ended on its check-out day; a timed one at its end."""
    if is_timed(check_out):
        return to_instant(check_out) <= now
    return check_out <= now.date()
