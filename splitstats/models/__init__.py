"""
Pydantic v2 data models for the splitstats accounting core.

Model Organization:
    - enums: Scope, lifecycle and stage enumerations
    - marketplace: Placement and the marketplace rows metrics are derived from
    - access: Per-request resolved access context
    - stats: Range window and the scope-tagged stats results

Usage:
    >>> from splitstats.models import Placement, PlacementState
    >>> placement = Placement(
    ...     recruiter_id="rec_123",
    ...     hired_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    ...     recruiter_share=1000.00,
    ...     state=PlacementState.ACTIVE,
    ... )
"""

from .access import AccessContext
from .enums import (
    COMPANY_VISIBLE_STAGES,
    LATE_PIPELINE_STAGES,
    PLATFORM_ACTIVE_STAGES,
    RECRUITER_PIPELINE_STAGES,
    ApplicationStage,
    JobStatus,
    MembershipRole,
    PlacementState,
    RecruiterStatus,
    StatsScope,
)
from .marketplace import (
    Application,
    Candidate,
    Company,
    IdentityUser,
    Job,
    OrganizationMembership,
    Placement,
    Recruiter,
    RoleAssignment,
)
from .stats import (
    CandidateStatsMetrics,
    CandidateStatsResult,
    CompanyStatsMetrics,
    CompanyStatsResult,
    PlatformStatsMetrics,
    PlatformStatsResult,
    PlatformTrends,
    RangeWindow,
    RecruiterStatsMetrics,
    RecruiterStatsResult,
    StatsRange,
    StatsResult,
    TopPerformer,
)

__all__ = [
    # Enumerations
    "ApplicationStage",
    "JobStatus",
    "MembershipRole",
    "PlacementState",
    "RecruiterStatus",
    "StatsScope",
    "COMPANY_VISIBLE_STAGES",
    "LATE_PIPELINE_STAGES",
    "PLATFORM_ACTIVE_STAGES",
    "RECRUITER_PIPELINE_STAGES",
    # Access
    "AccessContext",
    # Marketplace rows
    "Application",
    "Candidate",
    "Company",
    "IdentityUser",
    "Job",
    "OrganizationMembership",
    "Placement",
    "Recruiter",
    "RoleAssignment",
    # Stats
    "CandidateStatsMetrics",
    "CandidateStatsResult",
    "CompanyStatsMetrics",
    "CompanyStatsResult",
    "PlatformStatsMetrics",
    "PlatformStatsResult",
    "PlatformTrends",
    "RangeWindow",
    "RecruiterStatsMetrics",
    "RecruiterStatsResult",
    "StatsRange",
    "StatsResult",
    "TopPerformer",
]
