"""
Period-over-period comparison for the platform dashboard.

The comparison window has the same length as the requested one and ends
where it starts: for a range [from, to) it is [from - (to - from), from).
"""

import math
from datetime import datetime
from typing import Optional

from splitstats.models.stats import StatsRange


def previous_window(stats_range: StatsRange) -> tuple[datetime, datetime]:
    """Equal-length window immediately before ``stats_range``."""
    return stats_range.from_ - (stats_range.to - stats_range.from_), stats_range.from_


def percent_change(current: float, previous: float) -> Optional[int]:
    """
    Whole-percent change from ``previous`` to ``current``, rounded half up.

    From zero, any growth reads as 100 and no growth as None.
    """
    if previous == 0:
        return 100 if current > 0 else None
    return math.floor((current - previous) / previous * 100 + 0.5)
