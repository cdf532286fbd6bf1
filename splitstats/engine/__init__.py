"""
Accounting core components.

- windows: Range token parsing and calendar boundaries
- scope: Strict scope token normalization
- earnings: Placement fee classification (earned / pending / settled)
- trends: Period-over-period comparison for the platform dashboard

Everything in this package is pure and synchronous; data access and
concurrency live in the service layer.
"""

from splitstats.engine.earnings import (
    PlacementSummary,
    average_days_to_hire,
    is_pending_payout,
    pipeline_value,
    placement_totals,
    rank_recruiters,
    summarize_placements,
)
from splitstats.engine.scope import UnknownScopeError, normalize_scope
from splitstats.engine.trends import percent_change, previous_window
from splitstats.engine.windows import parse_range, start_of_month, start_of_year

__all__ = [
    "PlacementSummary",
    "UnknownScopeError",
    "average_days_to_hire",
    "is_pending_payout",
    "normalize_scope",
    "parse_range",
    "percent_change",
    "pipeline_value",
    "placement_totals",
    "previous_window",
    "rank_recruiters",
    "start_of_month",
    "start_of_year",
    "summarize_placements",
]
