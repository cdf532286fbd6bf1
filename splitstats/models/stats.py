"""
Stats range and result models.

A result is a closed tagged union discriminated on ``scope``; each variant
carries only the metrics its scope produces.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from splitstats.utils.clock import isoformat_utc


class StatsRange(BaseModel):
    """
    Concrete time window for one request.

    Built once per request by the range parser and reused for every metric so
    all numbers in a response are window-consistent.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str
    from_: datetime = Field(alias="from")
    to: datetime
    raw: Optional[str] = None

    def to_window(self) -> "RangeWindow":
        return RangeWindow(label=self.label, from_=isoformat_utc(self.from_), to=isoformat_utc(self.to))


class RangeWindow(BaseModel):
    """Serialized form of a range echoed back in every response."""

    model_config = ConfigDict(populate_by_name=True)

    label: str
    from_: str = Field(alias="from")
    to: str


class RecruiterStatsMetrics(BaseModel):
    """
    Recruiter dashboard numbers.

    total_earnings_ytd is always calendar year-to-date, whatever range the
    caller asked for. pipeline_value is the estimated fee (fee percentage of
    the minimum salary) of every interview or offer stage application.
    """

    active_roles: int = 0
    candidates_in_process: int = 0
    offers_pending: int = 0
    placements_this_month: int = 0
    placements_this_year: int = 0
    total_earnings_ytd: float = 0.0
    pending_payouts: float = 0.0
    submissions_mtd: int = 0
    stale_candidates: int = 0
    pending_reviews: int = 0
    pipeline_value: float = 0.0


class CandidateStatsMetrics(BaseModel):
    total_applications: int = 0
    active_applications: int = 0
    interviews_scheduled: int = 0
    offers_received: int = 0


class CompanyStatsMetrics(BaseModel):
    active_roles: int = 0
    total_applications: int = 0
    interviews_scheduled: int = 0
    offers_extended: int = 0
    placements_this_month: int = 0
    placements_this_year: int = 0
    avg_time_to_hire_days: int = 0
    active_recruiters: int = 0
    stale_roles: int = 0
    applications_mtd: int = 0


class PlatformTrends(BaseModel):
    """
    Percent change of the requested window against the equal-length window
    right before it, rounded to whole percent.

    None means there is nothing to compare: both windows are zero.
    """

    active_jobs: Optional[int] = None
    active_recruiters: Optional[int] = None
    total_applications: Optional[int] = None
    total_placements: Optional[int] = None
    total_revenue: Optional[int] = None


class TopPerformer(BaseModel):
    recruiter_id: str
    recruiter_name: str
    placement_count: int


class PlatformStatsMetrics(BaseModel):
    """
    Platform-wide numbers for admins.

    Counts and YTD figures are calendar based; ``trends`` is the only part
    that follows the requested range.
    """

    total_recruiters: int = 0
    active_recruiters: int = 0
    total_companies: int = 0
    total_candidates: int = 0
    total_jobs: int = 0
    active_jobs: int = 0
    active_applications: int = 0
    placements_this_month: int = 0
    placements_this_year: int = 0
    total_revenue_ytd: float = 0.0
    pending_payouts_count: int = 0
    pending_payouts_amount: float = 0.0
    avg_placement_value: float = 0.0
    new_signups_mtd: int = 0
    recruiter_statuses: dict[str, int] = Field(default_factory=dict)
    job_statuses: dict[str, int] = Field(default_factory=dict)
    top_performers: list[TopPerformer] = Field(default_factory=list)
    trends: PlatformTrends = Field(default_factory=PlatformTrends)


class RecruiterStatsResult(BaseModel):
    scope: Literal["recruiter"] = "recruiter"
    range: RangeWindow
    metrics: RecruiterStatsMetrics


class CandidateStatsResult(BaseModel):
    scope: Literal["candidate"] = "candidate"
    range: RangeWindow
    metrics: CandidateStatsMetrics


class CompanyStatsResult(BaseModel):
    scope: Literal["company"] = "company"
    range: RangeWindow
    metrics: CompanyStatsMetrics


class PlatformStatsResult(BaseModel):
    scope: Literal["platform"] = "platform"
    range: RangeWindow
    metrics: PlatformStatsMetrics


StatsResult = Annotated[
    Union[RecruiterStatsResult, CandidateStatsResult, CompanyStatsResult, PlatformStatsResult],
    Field(discriminator="scope"),
]
