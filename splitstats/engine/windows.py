"""
Time windowing for stats requests.

parse_range turns an optional free-text range token into a concrete
[from, to] window. Parsing is permissive: anything it does not understand
degrades to the year-to-date window instead of failing the request.

Supported tokens:
    ytd      - January 1 of the current year until now
    <n>d     - n days back
    <n>w     - n weeks back (7n days)
    <n>m     - n calendar months back (day clamped to the target month)
"""

import re
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from dateutil.relativedelta import relativedelta

from splitstats.models.stats import StatsRange
from splitstats.utils.clock import ensure_utc, utc_now

logger = structlog.get_logger(__name__)

YTD_LABEL = "ytd"

_RELATIVE_RANGE = re.compile(r"^(\d+)([dwm])$")

_UNIT_STEPS: dict[str, Callable[[int], object]] = {
    "d": lambda n: timedelta(days=n),
    "w": lambda n: timedelta(days=n * 7),
    "m": lambda n: relativedelta(months=n),
}


def start_of_year(now: datetime) -> datetime:
    """Midnight, January 1 of now's calendar year (UTC)."""
    return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def start_of_month(now: datetime) -> datetime:
    """Midnight on the first day of now's calendar month (UTC)."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _ytd(now: datetime, raw: Optional[str]) -> StatsRange:
    return StatsRange(label=YTD_LABEL, from_=start_of_year(now), to=now, raw=raw)


def parse_range(raw: Optional[str] = None, now: Optional[datetime] = None) -> StatsRange:
    """
    Resolve a range token into a window ending at ``now``.

    Args:
        raw: Range token such as "ytd", "7d", "2w" or "3m"; None for the default
        now: Reference instant; read from the clock once when omitted

    Returns:
        StatsRange whose ``to`` is exactly ``now``
    """
    now = ensure_utc(now) if now is not None else utc_now()

    if raw is None:
        return _ytd(now, None)

    token = raw.strip().lower()
    if token == YTD_LABEL:
        return _ytd(now, raw)

    match = _RELATIVE_RANGE.match(token)
    if not match:
        logger.warning("range_fallback", raw=raw, reason="unrecognized_token")
        return _ytd(now, raw)

    unit = match.group(2)
    try:
        amount = int(match.group(1))
        start = now - _UNIT_STEPS[unit](amount)
    except (OverflowError, ValueError) as e:
        logger.warning("range_fallback", raw=raw, reason="out_of_bounds", error=str(e))
        return _ytd(now, raw)

    return StatsRange(label=f"{amount}{unit}", from_=start, to=now, raw=raw)
