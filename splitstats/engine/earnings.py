"""
Placement fee classification.

A recruiter's share of a placement fee is provisional until the hire survives
its guarantee period. The same share is therefore reported differently
depending on where the placement sits in its lifecycle at query time:

- pending: state is ``active`` OR the guarantee window is still open
  (``guarantee_expires_at > now``). Either condition alone keeps the fee
  pending; neither alone is sufficient to call it settled.
- settled: everything else. Settled shares are not re-tallied as pending.

Year-to-date earnings are bucketed by calendar year of ``now`` and ignore the
caller's requested range. That decoupling is long-standing reported behaviour
and changing it would change dollar figures on existing dashboards.

All functions here are pure and synchronous.
"""

from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel

from splitstats.engine.windows import start_of_month, start_of_year
from splitstats.models.enums import PlacementState
from splitstats.models.marketplace import Placement


class PlacementSummary(BaseModel):
    """Counts and amounts derived from one list of placements at one instant."""

    placements_this_month: int = 0
    placements_this_year: int = 0
    earnings_ytd: float = 0.0
    platform_revenue_ytd: float = 0.0
    fees_ytd: float = 0.0
    pending_payouts_count: int = 0
    pending_payouts_amount: float = 0.0


def hired_since(placement: Placement, boundary: datetime) -> bool:
    """True when the placement has a confirmed hire at or after ``boundary``."""
    return placement.hired_at is not None and placement.hired_at >= boundary


def is_pending_payout(placement: Placement, now: datetime) -> bool:
    """
    Whether the placement's recruiter share is still pending at ``now``.

    Pending if the placement is ``active`` or its guarantee window has not
    expired yet. A missing expiry means no guarantee window applies.
    """
    if placement.state == PlacementState.ACTIVE:
        return True
    expires_at: Optional[datetime] = placement.guarantee_expires_at
    return expires_at is not None and expires_at > now


def summarize_placements(placements: Iterable[Placement], now: datetime) -> PlacementSummary:
    """
    Classify placements against calendar boundaries derived from ``now``.

    Args:
        placements: Placements visible to the caller
        now: Reference instant (the end of the request's range)

    Returns:
        PlacementSummary with month/year counts, YTD amounts and pending payouts
    """
    year_start = start_of_year(now)
    month_start = start_of_month(now)

    summary = PlacementSummary()
    for placement in placements:
        if hired_since(placement, year_start):
            summary.placements_this_year += 1
            summary.earnings_ytd += placement.recruiter_share
            summary.platform_revenue_ytd += placement.platform_share
            summary.fees_ytd += placement.fee_amount
            if placement.hired_at >= month_start:
                summary.placements_this_month += 1

        if is_pending_payout(placement, now):
            summary.pending_payouts_count += 1
            summary.pending_payouts_amount += placement.recruiter_share

    summary.earnings_ytd = round(summary.earnings_ytd, 2)
    summary.platform_revenue_ytd = round(summary.platform_revenue_ytd, 2)
    summary.fees_ytd = round(summary.fees_ytd, 2)
    summary.pending_payouts_amount = round(summary.pending_payouts_amount, 2)
    return summary


def average_days_to_hire(pairs: Iterable[tuple[datetime, datetime]]) -> int:
    """
    Mean whole days from application to hire, rounded.

    Negative spans (hire recorded before the application) count as zero.
    Returns 0 when there is nothing to average.
    """
    total_days = 0.0
    count = 0
    for applied_at, hired_at in pairs:
        total_days += max(0.0, (hired_at - applied_at).total_seconds() / 86400)
        count += 1
    return round(total_days / count) if count else 0


def pipeline_value(pipeline_jobs: Iterable[dict]) -> float:
    """
    Estimated fees sitting in a recruiter's late pipeline.

    Each row is one job with its ``fee_percentage``, ``salary_min`` and the
    number of late-stage ``applications`` the recruiter has on it. A job
    without a minimum salary contributes nothing.
    """
    total = 0.0
    for job in pipeline_jobs:
        fee = (job.get("fee_percentage") or 0.0) / 100
        salary = job.get("salary_min") or 0.0
        total += fee * salary * job.get("applications", 1)
    return round(total, 2)


def placement_totals(placements: Iterable[Placement], start: datetime, end: datetime) -> tuple[int, float]:
    """Placements hired inside [start, end) and their platform share."""
    count = 0
    revenue = 0.0
    for placement in placements:
        if placement.hired_at is not None and start <= placement.hired_at < end:
            count += 1
            revenue += placement.platform_share
    return count, round(revenue, 2)


def rank_recruiters(placements: Iterable[Placement], since: datetime, limit: int = 5) -> list[tuple[str, int]]:
    """
    Recruiters with the most placements hired at or after ``since``.

    Ties are broken by recruiter id so the ranking is stable.
    """
    counts: dict[str, int] = {}
    for placement in placements:
        if hired_since(placement, since):
            counts[placement.recruiter_id] = counts.get(placement.recruiter_id, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]
