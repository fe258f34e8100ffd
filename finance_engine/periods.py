"""Calendar period keys and boundaries.

Period keys are the canonical external encodings:

* weekly    ``YYYY-WW`` (ISO year and ISO week, Monday-start)
* monthly   ``YYYY-MM``
* quarterly ``YYYY-Qn``
* yearly    ``YYYY``

Boundaries are half-open ``[start, end)`` naive datetimes; the end of one
period is the start of the next, so periods of one type never overlap or
leave gaps. Timezone-aware instants are converted to UTC first.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import List, Optional, Tuple, Union

from .exceptions import InvalidPeriodKeyError
from .logging_setup import get_logger
from .models import PeriodType

logger = get_logger(__name__)

PeriodTypeLike = Union[PeriodType, str, None]

_YEAR_MONTH = re.compile(r'^(\d{4})-(\d{2})$')
_YEAR_QUARTER = re.compile(r'^(\d{4})-Q([1-4])$')
_YEAR = re.compile(r'^(\d{4})$')


def coerce_period_type(value: PeriodTypeLike) -> PeriodType:
    """Map a period type name to :class:`PeriodType`, defaulting to monthly."""
    if isinstance(value, PeriodType):
        return value
    if value is None:
        return PeriodType.MONTHLY
    try:
        return PeriodType(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown period type %r, falling back to monthly", value)
        return PeriodType.MONTHLY


def to_naive(instant: Union[dt.datetime, dt.date]) -> dt.datetime:
    """Normalize dates and aware datetimes to naive UTC datetimes."""
    if not isinstance(instant, dt.datetime):
        return dt.datetime(instant.year, instant.month, instant.day)
    if instant.tzinfo is not None:
        return instant.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return instant


def _ordinal(key: str, period_type: PeriodType) -> int:
    """Position of a period on its type's timeline (consecutive integers)."""
    if period_type is PeriodType.WEEKLY:
        return _week_start(key).toordinal() // 7
    if period_type is PeriodType.MONTHLY:
        match = _YEAR_MONTH.match(key)
        if match and 1 <= int(match.group(2)) <= 12:
            return int(match.group(1)) * 12 + int(match.group(2)) - 1
    elif period_type is PeriodType.QUARTERLY:
        match = _YEAR_QUARTER.match(key)
        if match:
            return int(match.group(1)) * 4 + int(match.group(2)) - 1
    elif period_type is PeriodType.YEARLY:
        match = _YEAR.match(key)
        if match:
            return int(match.group(1))
    raise InvalidPeriodKeyError(f"Invalid {period_type.value} period key: {key!r}")


def _from_ordinal(ordinal: int, period_type: PeriodType) -> str:
    if period_type is PeriodType.WEEKLY:
        monday = dt.date.fromordinal(ordinal * 7)
        # fromordinal(k * 7) is always a Sunday; ISO weeks start the day after.
        monday += dt.timedelta(days=1)
        year, week, _ = monday.isocalendar()
        return f"{year:04d}-{week:02d}"
    if period_type is PeriodType.MONTHLY:
        year, month_index = divmod(ordinal, 12)
        return f"{year:04d}-{month_index + 1:02d}"
    if period_type is PeriodType.QUARTERLY:
        year, quarter_index = divmod(ordinal, 4)
        return f"{year:04d}-Q{quarter_index + 1}"
    return f"{ordinal:04d}"


def _week_start(key: str) -> dt.date:
    match = _YEAR_MONTH.match(key)
    if not match:
        raise InvalidPeriodKeyError(f"Invalid weekly period key: {key!r}")
    try:
        return dt.date.fromisocalendar(int(match.group(1)), int(match.group(2)), 1)
    except ValueError as exc:
        raise InvalidPeriodKeyError(f"Invalid weekly period key: {key!r}") from exc


def resolve(period_type: PeriodTypeLike, reference: Union[dt.datetime, dt.date]) -> str:
    """Return the key of the period containing ``reference``."""
    period_type = coerce_period_type(period_type)
    instant = to_naive(reference)
    if period_type is PeriodType.WEEKLY:
        year, week, _ = instant.isocalendar()
        return f"{year:04d}-{week:02d}"
    if period_type is PeriodType.QUARTERLY:
        return f"{instant.year:04d}-Q{(instant.month - 1) // 3 + 1}"
    if period_type is PeriodType.YEARLY:
        return f"{instant.year:04d}"
    return f"{instant.year:04d}-{instant.month:02d}"


def _start_of(key: str, period_type: PeriodType) -> dt.datetime:
    if period_type is PeriodType.WEEKLY:
        return to_naive(_week_start(key))
    ordinal = _ordinal(key, period_type)
    if period_type is PeriodType.MONTHLY:
        year, month_index = divmod(ordinal, 12)
        return dt.datetime(year, month_index + 1, 1)
    if period_type is PeriodType.QUARTERLY:
        year, quarter_index = divmod(ordinal, 4)
        return dt.datetime(year, quarter_index * 3 + 1, 1)
    return dt.datetime(ordinal, 1, 1)


def bounds(key: str, period_type: PeriodTypeLike) -> Tuple[dt.datetime, dt.datetime]:
    """Half-open ``[start, end)`` of a period.

    Raises:
        InvalidPeriodKeyError: If ``key`` is not a valid key for the type
    """
    period_type = coerce_period_type(period_type)
    start = _start_of(key, period_type)
    end = _start_of(shift(key, period_type, 1), period_type)
    return start, end


def shift(key: str, period_type: PeriodTypeLike, steps: int) -> str:
    """Move ``steps`` periods forward (negative for backward)."""
    period_type = coerce_period_type(period_type)
    return _from_ordinal(_ordinal(key, period_type) + steps, period_type)


def previous(key: str, period_type: PeriodTypeLike) -> str:
    """Key of the period immediately before ``key``, rolling the year."""
    return shift(key, period_type, -1)


def last_n(
    period_type: PeriodTypeLike,
    n: int,
    reference: Optional[Union[dt.datetime, dt.date]] = None,
) -> List[str]:
    """The ``n`` most recent periods up to and including the current one.

    Args:
        period_type: Period granularity
        n: Number of periods; values below 1 give an empty list
        reference: Instant defining "current" (defaults to now, UTC)

    Returns:
        Period keys ordered oldest first
    """
    period_type = coerce_period_type(period_type)
    if n < 1:
        return []
    if reference is None:
        reference = dt.datetime.now(dt.timezone.utc)
    current = resolve(period_type, reference)
    return [shift(current, period_type, -offset) for offset in range(n - 1, -1, -1)]


def period_month(key: str, period_type: PeriodTypeLike) -> int:
    """Calendar month (1-12) in which the period starts."""
    return bounds(key, period_type)[0].month
