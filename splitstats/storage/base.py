"""
Abstract storage interface for the splitstats accounting core.

The repository is read-only from the point of view of the stats pipeline:
every read is keyed by an id the service has already resolved from the
caller's access context, never by a client-supplied id. The write methods
exist so seeding scripts and tests can populate a store; the marketplace's own
CRUD services own those rows in production.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional, Sequence

from splitstats.models.enums import ApplicationStage
from splitstats.models.marketplace import (
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


class StatsRepository(ABC):
    """
    Abstract base class for all metrics repository implementations.

    Implementations must raise ``StorageError`` (or a subclass) for any
    data-store failure; callers propagate it without retrying.
    """

    # =========================================================================
    # Identity
    # =========================================================================

    @abstractmethod
    def read_access_rows(self, external_id: str) -> Optional[dict]:
        """
        Read the identity rows behind an external identity id.

        Returns:
            None when no user exists for ``external_id``, otherwise
            {"user_id", "recruiter_id", "candidate_id",
             "memberships": [{"organization_id", "role"}, ...]}
        """

    # =========================================================================
    # Recruiter scope
    # =========================================================================

    @abstractmethod
    def count_active_roles(self, recruiter_id: str) -> int:
        """Count active jobs the recruiter is assigned to."""

    @abstractmethod
    def count_recruiter_applications(
        self,
        recruiter_id: str,
        stages: Optional[Sequence[ApplicationStage]] = None,
        created_since: Optional[datetime] = None,
        updated_before: Optional[datetime] = None,
    ) -> int:
        """Count applications represented by the recruiter, optionally filtered."""

    @abstractmethod
    def read_recruiter_placements(self, recruiter_id: str) -> list[Placement]:
        """Read every placement owed to the recruiter, in any state."""

    @abstractmethod
    def read_pipeline_jobs(self, recruiter_id: str, stages: Sequence[ApplicationStage]) -> list[dict]:
        """
        Read the jobs behind the recruiter's applications in ``stages``.

        Returns:
            One row per job: [{"job_id", "fee_percentage", "salary_min",
            "applications"}, ...] where ``applications`` counts the
            recruiter's matching applications on that job
        """

    # =========================================================================
    # Candidate scope
    # =========================================================================

    @abstractmethod
    def read_candidate_applications(
        self,
        candidate_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Application]:
        """Read the candidate's applications created inside [start, end]."""

    # =========================================================================
    # Company scope
    # =========================================================================

    @abstractmethod
    def read_company_jobs(self, organization_ids: Sequence[str]) -> list[Job]:
        """Read all jobs of companies owned by the given organizations."""

    @abstractmethod
    def read_job_applications(
        self,
        job_ids: Sequence[str],
        stages: Optional[Sequence[ApplicationStage]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Application]:
        """Read applications to the given jobs created inside [start, end]."""

    @abstractmethod
    def read_applications(self, application_ids: Sequence[str]) -> list[Application]:
        """Read applications by id."""

    @abstractmethod
    def read_job_placements(self, job_ids: Sequence[str]) -> list[Placement]:
        """Read placements that filled any of the given jobs."""

    @abstractmethod
    def count_assigned_recruiters(self, job_ids: Sequence[str]) -> int:
        """Count distinct recruiters assigned to any of the given jobs."""

    # =========================================================================
    # Platform scope
    # =========================================================================

    @abstractmethod
    def read_platform_counts(self) -> dict[str, int]:
        """
        Read platform-wide entity counts.

        Returns:
            {"total_recruiters", "active_recruiters", "total_companies",
             "total_candidates", "total_jobs", "active_jobs",
             "active_applications"}
        """

    @abstractmethod
    def read_placements(self) -> list[Placement]:
        """Read every placement on the platform."""

    @abstractmethod
    def count_users_since(self, since: datetime) -> int:
        """Count identity users created at or after ``since``."""

    @abstractmethod
    def read_status_breakdowns(self) -> dict[str, dict[str, int]]:
        """
        Count recruiters and jobs per status.

        Returns:
            {"recruiters": {status: count}, "jobs": {status: count}} with
            every known status present, zero when unused
        """

    @abstractmethod
    def read_platform_period(self, start: datetime, end: datetime) -> dict[str, int]:
        """
        Read the counts one trend window compares, over [start, end).

        Returns:
            {"applications": created inside the window,
             "active_jobs": active jobs created before ``end``,
             "active_recruiters": active recruiters created before ``end``}
        """

    @abstractmethod
    def read_recruiter_names(self, recruiter_ids: Sequence[str]) -> dict[str, str]:
        """Map recruiter ids to the display name (or email) of their user."""

    # =========================================================================
    # Seeding
    # =========================================================================

    @abstractmethod
    def write_user(self, user: IdentityUser) -> str:
        """Write an identity user."""

    @abstractmethod
    def write_membership(self, membership: OrganizationMembership) -> None:
        """Write an organization membership."""

    @abstractmethod
    def write_recruiter(self, recruiter: Recruiter) -> str:
        """Write a recruiter profile."""

    @abstractmethod
    def write_candidate(self, candidate: Candidate) -> str:
        """Write a candidate profile."""

    @abstractmethod
    def write_company(self, company: Company) -> str:
        """Write a company."""

    @abstractmethod
    def write_job(self, job: Job) -> str:
        """Write a job."""

    @abstractmethod
    def write_role_assignment(self, assignment: RoleAssignment) -> None:
        """Assign a recruiter to a job."""

    @abstractmethod
    def write_application(self, application: Application) -> str:
        """Write an application."""

    @abstractmethod
    def write_placement(self, placement: Placement) -> str:
        """Write a placement."""

    def write_placements(self, placements: Iterable[Placement]) -> int:
        """Write several placements; returns how many were written."""
        written = 0
        for placement in placements:
            self.write_placement(placement)
            written += 1
        return written

    # =========================================================================
    # System
    # =========================================================================

    @abstractmethod
    def ping(self) -> bool:
        """Verify the store is reachable; raise StorageError if not."""
