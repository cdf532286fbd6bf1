"""
Pytest configuration and shared fixtures for the splitstats test suite.

Provides model factories, an in-memory repository that records every read,
a fake access resolver, environment isolation and API client fixtures shared
by unit, property-based and integration tests.
"""

import os
import tempfile
import uuid as _uuid
from datetime import datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing app.
# Use a temp path that does not exist yet; DuckDB creates the file.
_test_db_path = os.path.join(tempfile.gettempdir(), f"splitstats_test_{_uuid.uuid4().hex[:8]}.duckdb")
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = _test_db_path
os.environ["LOG_FORMAT"] = "console"


# ---------------------------------------------------------------------------
# Pydantic model factories
# ---------------------------------------------------------------------------

from splitstats.auth.access_context import AccessContextResolver, AccessResolutionError
from splitstats.config import Settings
from splitstats.models.access import AccessContext
from splitstats.models.enums import (
    PLATFORM_ACTIVE_STAGES,
    ApplicationStage,
    JobStatus,
    MembershipRole,
    PlacementState,
    RecruiterStatus,
)
from splitstats.models.marketplace import Application, IdentityUser, Job, Placement, Recruiter
from splitstats.storage.base import StatsRepository
from splitstats.storage.duckdb_storage import StorageError

# Last day of a month, mid-afternoon: exercises calendar month rollback.
NOW = datetime(2025, 3, 31, 15, 30, tzinfo=timezone.utc)


def make_placement(
    recruiter_id: str = "rec_1",
    hired_at: Optional[datetime] = NOW,
    recruiter_share: float = 1000.0,
    state: PlacementState = PlacementState.SETTLED,
    guarantee_expires_at: Optional[datetime] = None,
    **overrides,
) -> Placement:
    """Factory function for creating test Placement objects."""
    defaults = dict(
        recruiter_id=recruiter_id,
        hired_at=hired_at,
        fee_amount=recruiter_share * 4,
        recruiter_share=recruiter_share,
        platform_share=recruiter_share * 3,
        state=state,
        guarantee_expires_at=guarantee_expires_at,
    )
    defaults.update(overrides)
    return Placement(**defaults)


def make_application(
    job_id: str = "job_1",
    candidate_id: str = "cand_1",
    stage: ApplicationStage = ApplicationStage.SUBMITTED,
    created_at: datetime = NOW,
    **overrides,
) -> Application:
    """Factory function for creating test Application objects."""
    defaults = dict(
        job_id=job_id,
        candidate_id=candidate_id,
        candidate_recruiter_id="rec_1",
        stage=stage,
        created_at=created_at,
        updated_at=created_at,
    )
    defaults.update(overrides)
    return Application(**defaults)


def make_job(
    company_id: str = "comp_1",
    status: JobStatus = JobStatus.ACTIVE,
    created_at: datetime = NOW,
    **overrides,
) -> Job:
    """Factory function for creating test Job objects."""
    defaults = dict(company_id=company_id, title="Engineer", status=status, created_at=created_at)
    defaults.update(overrides)
    return Job(**defaults)


def make_access(**overrides) -> AccessContext:
    """Factory function for creating test AccessContext objects."""
    defaults = dict(identity_user_id="user_1")
    defaults.update(overrides)
    return AccessContext(**defaults)


def make_settings(**overrides) -> Settings:
    """Settings isolated from the process environment's stats tuning."""
    defaults = dict(
        default_scope="recruiter",
        stale_candidate_days=14,
        stale_role_days=60,
        stale_role_min_applications=5,
        top_performers_limit=5,
    )
    defaults.update(overrides)
    return Settings(**defaults)


# ---------------------------------------------------------------------------
# Mock storage and resolver for pure unit tests
# ---------------------------------------------------------------------------

class MockStorage(StatsRepository):
    """
    In-memory StatsRepository for unit tests.

    Every read is recorded in ``calls`` as (method, key) so tests can assert
    which ids reached the data layer. Method names in ``fail_on`` raise
    StorageError instead of answering.
    """

    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.fail_on: set[str] = set()
        self.access_rows: dict[str, dict] = {}
        self.placements: list[Placement] = []
        self.applications: list[Application] = []
        self.jobs: dict[str, list[Job]] = {}
        self.assignments: list[tuple[str, str]] = []
        self.job_status: dict[str, JobStatus] = {}
        self.recruiters: list[Recruiter] = []
        self.users: list[IdentityUser] = []
        self.companies = 0
        self.company_orgs: dict[str, str] = {}
        self.candidates = 0

    def _record(self, method: str, key: object = None) -> None:
        self.calls.append((method, key))
        if method in self.fail_on:
            raise StorageError(f"Simulated failure in {method}")

    def called(self, method: str) -> list:
        return [key for name, key in self.calls if name == method]

    # --- Reads ---
    def read_access_rows(self, external_id):
        self._record("read_access_rows", external_id)
        return self.access_rows.get(external_id)

    def count_active_roles(self, recruiter_id):
        self._record("count_active_roles", recruiter_id)
        return sum(
            1
            for rid, job_id in self.assignments
            if rid == recruiter_id and self.job_status.get(job_id) == JobStatus.ACTIVE
        )

    def count_recruiter_applications(self, recruiter_id, stages=None, created_since=None, updated_before=None):
        self._record("count_recruiter_applications", recruiter_id)
        results = [a for a in self.applications if a.candidate_recruiter_id == recruiter_id]
        if stages:
            results = [a for a in results if a.stage in stages]
        if created_since is not None:
            results = [a for a in results if a.created_at >= created_since]
        if updated_before is not None:
            results = [a for a in results if a.updated_at < updated_before]
        return len(results)

    def read_recruiter_placements(self, recruiter_id):
        self._record("read_recruiter_placements", recruiter_id)
        return [p for p in self.placements if p.recruiter_id == recruiter_id]

    def read_pipeline_jobs(self, recruiter_id, stages):
        self._record("read_pipeline_jobs", recruiter_id)
        jobs = {j.job_id: j for j in self._all_jobs()}
        per_job: dict[str, int] = {}
        for a in self.applications:
            if a.candidate_recruiter_id == recruiter_id and a.stage in stages and a.job_id in jobs:
                per_job[a.job_id] = per_job.get(a.job_id, 0) + 1
        return [
            {
                "job_id": job_id,
                "fee_percentage": jobs[job_id].fee_percentage,
                "salary_min": jobs[job_id].salary_min,
                "applications": count,
            }
            for job_id, count in sorted(per_job.items())
        ]

    def read_candidate_applications(self, candidate_id, start=None, end=None):
        self._record("read_candidate_applications", candidate_id)
        return [
            a
            for a in self.applications
            if a.candidate_id == candidate_id
            and (start is None or a.created_at >= start)
            and (end is None or a.created_at <= end)
        ]

    def read_company_jobs(self, organization_ids):
        self._record("read_company_jobs", tuple(organization_ids))
        return [job for org_id in organization_ids for job in self.jobs.get(org_id, [])]

    def read_job_applications(self, job_ids, stages=None, start=None, end=None):
        self._record("read_job_applications", tuple(job_ids))
        return [
            a
            for a in self.applications
            if a.job_id in job_ids
            and (not stages or a.stage in stages)
            and (start is None or a.created_at >= start)
            and (end is None or a.created_at <= end)
        ]

    def read_applications(self, application_ids):
        self._record("read_applications", tuple(application_ids))
        return [a for a in self.applications if a.application_id in application_ids]

    def read_job_placements(self, job_ids):
        self._record("read_job_placements", tuple(job_ids))
        return [p for p in self.placements if p.job_id in job_ids]

    def count_assigned_recruiters(self, job_ids):
        self._record("count_assigned_recruiters", tuple(job_ids))
        return len({rid for rid, job_id in self.assignments if job_id in job_ids})

    def read_platform_counts(self):
        self._record("read_platform_counts")
        all_jobs = self._all_jobs()
        statuses = [r.status for r in self.recruiters]
        return {
            "total_recruiters": len(statuses),
            "active_recruiters": statuses.count(RecruiterStatus.ACTIVE),
            "total_companies": self.companies,
            "total_candidates": self.candidates,
            "total_jobs": len(all_jobs),
            "active_jobs": sum(1 for j in all_jobs if j.status == JobStatus.ACTIVE),
            "active_applications": sum(1 for a in self.applications if a.stage in PLATFORM_ACTIVE_STAGES),
        }

    def read_placements(self):
        self._record("read_placements")
        return list(self.placements)

    def count_users_since(self, since):
        self._record("count_users_since", since)
        return sum(1 for u in self.users if u.created_at >= since)

    def read_status_breakdowns(self):
        self._record("read_status_breakdowns")
        recruiters = {status.value: 0 for status in RecruiterStatus}
        for r in self.recruiters:
            recruiters[r.status.value] += 1
        jobs = {status.value: 0 for status in JobStatus}
        for j in self._all_jobs():
            jobs[j.status.value] += 1
        return {"recruiters": recruiters, "jobs": jobs}

    def read_platform_period(self, start, end):
        self._record("read_platform_period", (start, end))
        return {
            "applications": sum(1 for a in self.applications if start <= a.created_at < end),
            "active_jobs": sum(
                1 for j in self._all_jobs() if j.status == JobStatus.ACTIVE and j.created_at < end
            ),
            "active_recruiters": sum(
                1 for r in self.recruiters if r.status == RecruiterStatus.ACTIVE and r.created_at < end
            ),
        }

    def read_recruiter_names(self, recruiter_ids):
        self._record("read_recruiter_names", tuple(recruiter_ids))
        users = {u.user_id: u for u in self.users}
        names = {}
        for r in self.recruiters:
            user = users.get(r.user_id)
            if r.recruiter_id in recruiter_ids and user and (user.name or user.email):
                names[r.recruiter_id] = user.name or user.email
        return names

    def _all_jobs(self):
        return [job for jobs in self.jobs.values() for job in jobs]

    # --- Writes ---
    def write_user(self, user):
        self.users.append(user)
        self.access_rows[user.external_id] = {
            "user_id": user.user_id,
            "recruiter_id": None,
            "candidate_id": None,
            "memberships": [],
        }
        return user.user_id

    def _rows_for_user(self, user_id):
        return next(r for r in self.access_rows.values() if r["user_id"] == user_id)

    def write_membership(self, membership):
        self._rows_for_user(membership.user_id)["memberships"].append(
            {"organization_id": membership.organization_id, "role": membership.role.value}
        )

    def write_recruiter(self, recruiter):
        self._rows_for_user(recruiter.user_id)["recruiter_id"] = recruiter.recruiter_id
        self.recruiters.append(recruiter)
        return recruiter.recruiter_id

    def write_candidate(self, candidate):
        if candidate.user_id:
            self._rows_for_user(candidate.user_id)["candidate_id"] = candidate.candidate_id
        self.candidates += 1
        return candidate.candidate_id

    def write_company(self, company):
        self.companies += 1
        self.jobs.setdefault(company.organization_id, [])
        self.company_orgs[company.company_id] = company.organization_id
        return company.company_id

    def write_job(self, job):
        org_id = self.company_orgs.get(job.company_id, job.company_id)
        self.jobs.setdefault(org_id, []).append(job)
        self.job_status[job.job_id] = job.status
        return job.job_id

    def write_role_assignment(self, assignment):
        self.assignments.append((assignment.recruiter_id, assignment.job_id))

    def write_application(self, application):
        self.applications.append(application)
        return application.application_id

    def write_placement(self, placement):
        self.placements.append(placement)
        return placement.placement_id

    def ping(self):
        self._record("ping")
        return True


class FakeResolver(AccessContextResolver):
    """Resolves identities from a fixed dict; unknown identities fail."""

    def __init__(self, contexts: Optional[dict[str, AccessContext]] = None):
        self.contexts = contexts or {}
        self.calls: list[str] = []

    def resolve(self, identity):
        self.calls.append(identity)
        if identity not in self.contexts:
            raise AccessResolutionError(identity)
        return self.contexts[identity]


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def now():
    """Fixed reference instant used as the request clock."""
    return NOW


@pytest.fixture
def mock_storage():
    """Fresh MockStorage instance for each test."""
    return MockStorage()


@pytest.fixture
def fake_resolver():
    """Resolver knowing one caller per scope."""
    return FakeResolver(
        {
            "ext_recruiter": make_access(identity_user_id="u_rec", recruiter_id="rec_1"),
            "ext_candidate": make_access(identity_user_id="u_cand", candidate_id="cand_1"),
            "ext_company": make_access(identity_user_id="u_comp", organization_ids=("org_1",)),
            "ext_admin": make_access(identity_user_id="u_admin", is_platform_admin=True),
            "ext_nobody": make_access(identity_user_id="u_nobody"),
        }
    )


@pytest.fixture
def stats_service(mock_storage, fake_resolver, now):
    """StatsService over the mock repository with a frozen clock."""
    from splitstats.services.stats_service import StatsService

    return StatsService(
        storage=mock_storage,
        resolver=fake_resolver,
        settings=make_settings(),
        clock=lambda: now,
    )


@pytest.fixture
def client():
    """FastAPI test client with lifespan events."""
    from splitstats.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    """Factory for bearer headers carrying a given external identity."""
    from splitstats.auth.jwt import create_access_token

    def _headers(identity: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(identity)}"}

    return _headers
