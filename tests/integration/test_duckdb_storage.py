"""
Integration tests for DuckDBStorage against a real on-disk database.

Each test gets its own database file so results never leak between tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from splitstats.models.enums import (
    ApplicationStage,
    JobStatus,
    MembershipRole,
    PlacementState,
    RecruiterStatus,
)
from splitstats.models.marketplace import (
    Candidate,
    Company,
    IdentityUser,
    OrganizationMembership,
    Recruiter,
    RoleAssignment,
)
from splitstats.storage.duckdb_storage import DuckDBStorage, StorageError
from tests.conftest import NOW, make_application, make_job, make_placement


@pytest.fixture
def storage(tmp_path):
    """Fresh DuckDB storage in a temp directory."""
    return DuckDBStorage(db_path=str(tmp_path / "stats.duckdb"))


@pytest.fixture
def company(storage):
    company = Company(organization_id="org_1", name="Acme")
    storage.write_company(company)
    return company


class TestSchema:
    """Tests for schema setup and system calls."""

    def test_schema_initialization_is_idempotent(self, tmp_path):
        path = str(tmp_path / "stats.duckdb")
        DuckDBStorage(db_path=path)
        second = DuckDBStorage(db_path=path)

        assert second.ping() is True

    def test_creates_parent_directory(self, tmp_path):
        storage = DuckDBStorage(db_path=str(tmp_path / "nested" / "dir" / "stats.duckdb"))

        assert storage.db_path.parent.exists()

    def test_duplicate_primary_key_raises_storage_error(self, storage):
        user = IdentityUser(external_id="ext_1")
        storage.write_user(user)

        with pytest.raises(StorageError):
            storage.write_user(user)

    def test_clear_for_testing_empties_tables(self, storage):
        storage.write_placement(make_placement())

        storage.clear_for_testing()

        assert storage.read_placements() == []


class TestIdentity:
    """Tests for read_access_rows."""

    def test_read_access_rows_unknown_identity(self, storage):
        assert storage.read_access_rows("ext_missing") is None

    def test_read_access_rows_full_profile(self, storage):
        user = IdentityUser(external_id="ext_1")
        storage.write_user(user)
        recruiter = Recruiter(user_id=user.user_id)
        candidate = Candidate(user_id=user.user_id)
        storage.write_recruiter(recruiter)
        storage.write_candidate(candidate)
        storage.write_membership(
            OrganizationMembership(user_id=user.user_id, organization_id="org_b", role=MembershipRole.COMPANY_ADMIN)
        )
        storage.write_membership(OrganizationMembership(user_id=user.user_id, organization_id="org_a"))

        rows = storage.read_access_rows("ext_1")

        assert rows == {
            "user_id": user.user_id,
            "recruiter_id": recruiter.recruiter_id,
            "candidate_id": candidate.candidate_id,
            "memberships": [
                {"organization_id": "org_a", "role": "hiring_manager"},
                {"organization_id": "org_b", "role": "company_admin"},
            ],
        }

    def test_read_access_rows_without_profiles(self, storage):
        user = IdentityUser(external_id="ext_1")
        storage.write_user(user)

        rows = storage.read_access_rows("ext_1")

        assert rows["recruiter_id"] is None
        assert rows["candidate_id"] is None
        assert rows["memberships"] == []


class TestRecruiterReads:
    """Tests for recruiter-scope reads."""

    def test_count_active_roles_only_counts_active_assigned_jobs(self, storage, company):
        active = make_job(company_id=company.company_id)
        closed = make_job(company_id=company.company_id, status=JobStatus.CLOSED)
        other = make_job(company_id=company.company_id)
        for job in (active, closed, other):
            storage.write_job(job)
        storage.write_role_assignment(RoleAssignment(recruiter_id="rec_1", job_id=active.job_id))
        storage.write_role_assignment(RoleAssignment(recruiter_id="rec_1", job_id=closed.job_id))
        storage.write_role_assignment(RoleAssignment(recruiter_id="rec_2", job_id=other.job_id))

        assert storage.count_active_roles("rec_1") == 1

    def test_count_recruiter_applications_filters(self, storage):
        storage.write_application(
            make_application(stage=ApplicationStage.SUBMITTED, created_at=NOW - timedelta(days=1))
        )
        storage.write_application(
            make_application(
                stage=ApplicationStage.INTERVIEW,
                created_at=NOW - timedelta(days=40),
                updated_at=NOW - timedelta(days=30),
            )
        )
        storage.write_application(make_application(stage=ApplicationStage.HIRED))
        storage.write_application(make_application(candidate_recruiter_id="rec_2"))

        pipeline = [ApplicationStage.SUBMITTED, ApplicationStage.INTERVIEW]
        assert storage.count_recruiter_applications("rec_1") == 3
        assert storage.count_recruiter_applications("rec_1", stages=pipeline) == 2
        assert storage.count_recruiter_applications("rec_1", created_since=NOW - timedelta(days=7)) == 2
        assert (
            storage.count_recruiter_applications(
                "rec_1", stages=pipeline, updated_before=NOW - timedelta(days=14)
            )
            == 1
        )

    def test_read_pipeline_jobs_groups_late_stage_applications(self, storage, company):
        senior = make_job(company_id=company.company_id, fee_percentage=20, salary_min=100000)
        junior = make_job(company_id=company.company_id, fee_percentage=10)
        storage.write_job(senior)
        storage.write_job(junior)
        for stage in (ApplicationStage.INTERVIEW, ApplicationStage.OFFER, ApplicationStage.SUBMITTED):
            storage.write_application(make_application(job_id=senior.job_id, stage=stage))
        storage.write_application(make_application(job_id=junior.job_id, stage=ApplicationStage.OFFER))
        storage.write_application(
            make_application(job_id=junior.job_id, stage=ApplicationStage.OFFER, candidate_recruiter_id="rec_2")
        )

        rows = storage.read_pipeline_jobs("rec_1", [ApplicationStage.INTERVIEW, ApplicationStage.OFFER])

        by_job = {row["job_id"]: row for row in rows}
        assert by_job[senior.job_id] == {
            "job_id": senior.job_id,
            "fee_percentage": 20,
            "salary_min": 100000,
            "applications": 2,
        }
        assert by_job[junior.job_id]["applications"] == 1
        assert by_job[junior.job_id]["salary_min"] is None
        assert storage.read_pipeline_jobs("rec_1", []) == []

    def test_read_recruiter_placements_round_trip_as_utc(self, storage):
        expires = NOW + timedelta(days=30)
        placement = make_placement(
            state=PlacementState.ACTIVE, recruiter_share=1234.56, guarantee_expires_at=expires
        )
        storage.write_placement(placement)
        storage.write_placement(make_placement(recruiter_id="rec_2"))

        placements = storage.read_recruiter_placements("rec_1")

        assert len(placements) == 1
        read = placements[0]
        assert read.placement_id == placement.placement_id
        assert read.state == PlacementState.ACTIVE
        assert read.recruiter_share == 1234.56
        assert read.hired_at == NOW
        assert read.hired_at.tzinfo is not None
        assert read.guarantee_expires_at == expires

    def test_write_placement_stores_aware_non_utc_as_utc(self, storage):
        eastern = timezone(timedelta(hours=-5))
        storage.write_placement(make_placement(hired_at=datetime(2025, 1, 1, 3, 0, tzinfo=eastern)))

        read = storage.read_recruiter_placements("rec_1")[0]

        assert read.hired_at == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_write_placements_returns_count(self, storage):
        assert storage.write_placements([make_placement(), make_placement()]) == 2
        assert len(storage.read_placements()) == 2


class TestCandidateReads:
    """Tests for candidate-scope reads."""

    def test_read_candidate_applications_bounds_are_inclusive(self, storage):
        start = NOW - timedelta(days=7)
        storage.write_application(make_application(created_at=start))
        storage.write_application(make_application(created_at=NOW))
        storage.write_application(make_application(created_at=start - timedelta(milliseconds=1)))
        storage.write_application(make_application(candidate_id="cand_2"))

        applications = storage.read_candidate_applications("cand_1", start=start, end=NOW)

        assert len(applications) == 2
        assert all(a.candidate_id == "cand_1" for a in applications)


class TestCompanyReads:
    """Tests for company-scope reads."""

    def test_read_company_jobs_by_organization(self, storage, company):
        other = Company(organization_id="org_2")
        storage.write_company(other)
        mine = make_job(company_id=company.company_id, salary_min=100000)
        storage.write_job(mine)
        storage.write_job(make_job(company_id=other.company_id))

        jobs = storage.read_company_jobs(["org_1"])

        assert [j.job_id for j in jobs] == [mine.job_id]
        assert jobs[0].salary_min == 100000
        assert storage.read_company_jobs([]) == []

    def test_read_job_applications_stage_and_window(self, storage):
        storage.write_application(make_application(job_id="j1", stage=ApplicationStage.INTERVIEW))
        storage.write_application(make_application(job_id="j1", stage=ApplicationStage.COMPANY_REVIEW))
        storage.write_application(
            make_application(job_id="j2", stage=ApplicationStage.OFFER, created_at=NOW - timedelta(days=90))
        )
        storage.write_application(make_application(job_id="j3"))

        visible = [ApplicationStage.INTERVIEW, ApplicationStage.OFFER]
        assert len(storage.read_job_applications(["j1", "j2"], stages=visible)) == 2
        assert (
            len(storage.read_job_applications(["j1", "j2"], stages=visible, start=NOW - timedelta(days=30)))
            == 1
        )
        assert storage.read_job_applications([]) == []

    def test_read_applications_by_id(self, storage):
        application = make_application()
        storage.write_application(application)
        storage.write_application(make_application())

        found = storage.read_applications([application.application_id])

        assert [a.application_id for a in found] == [application.application_id]
        assert storage.read_applications([]) == []

    def test_read_job_placements_and_assigned_recruiters(self, storage):
        storage.write_placement(make_placement(job_id="j1"))
        storage.write_placement(make_placement(job_id="j9"))
        for recruiter_id, job_id in [("rec_1", "j1"), ("rec_1", "j2"), ("rec_2", "j2"), ("rec_3", "j9")]:
            storage.write_role_assignment(RoleAssignment(recruiter_id=recruiter_id, job_id=job_id))

        assert len(storage.read_job_placements(["j1", "j2"])) == 1
        assert storage.count_assigned_recruiters(["j1", "j2"]) == 2
        assert storage.read_job_placements([]) == []
        assert storage.count_assigned_recruiters([]) == 0


class TestPlatformReads:
    """Tests for platform-scope reads."""

    def test_read_platform_counts(self, storage, company):
        storage.write_recruiter(Recruiter(user_id="u1"))
        storage.write_recruiter(Recruiter(user_id="u2", status=RecruiterStatus.SUSPENDED))
        storage.write_candidate(Candidate())
        storage.write_job(make_job(company_id=company.company_id))
        storage.write_job(make_job(company_id=company.company_id, status=JobStatus.FILLED))
        storage.write_application(make_application(stage=ApplicationStage.ACCEPTED))
        storage.write_application(make_application(stage=ApplicationStage.WITHDRAWN))

        assert storage.read_platform_counts() == {
            "total_recruiters": 2,
            "active_recruiters": 1,
            "total_companies": 1,
            "total_candidates": 1,
            "total_jobs": 2,
            "active_jobs": 1,
            "active_applications": 1,
        }

    def test_read_platform_counts_empty_store(self, storage):
        assert set(storage.read_platform_counts().values()) == {0}

    def test_count_users_since(self, storage):
        storage.write_user(IdentityUser(external_id="old", created_at=NOW - timedelta(days=45)))
        storage.write_user(IdentityUser(external_id="edge", created_at=datetime(2025, 3, 1, tzinfo=timezone.utc)))
        storage.write_user(IdentityUser(external_id="new", created_at=NOW - timedelta(days=1)))

        assert storage.count_users_since(datetime(2025, 3, 1, tzinfo=timezone.utc)) == 2

    def test_read_status_breakdowns_fills_every_status(self, storage, company):
        storage.write_recruiter(Recruiter(user_id="u1"))
        storage.write_recruiter(Recruiter(user_id="u2", status=RecruiterStatus.PENDING))
        storage.write_recruiter(Recruiter(user_id="u3", status=RecruiterStatus.PENDING))
        storage.write_job(make_job(company_id=company.company_id, status=JobStatus.PAUSED))

        breakdowns = storage.read_status_breakdowns()

        assert breakdowns["recruiters"] == {"pending": 2, "active": 1, "suspended": 0}
        assert breakdowns["jobs"]["paused"] == 1
        assert set(breakdowns["jobs"]) == {status.value for status in JobStatus}
        assert sum(breakdowns["jobs"].values()) == 1

    def test_read_platform_period_is_half_open(self, storage, company):
        start, end = NOW - timedelta(days=7), NOW
        storage.write_application(make_application(created_at=start))
        storage.write_application(make_application(created_at=NOW - timedelta(days=1)))
        storage.write_application(make_application(created_at=end))
        storage.write_job(make_job(company_id=company.company_id, created_at=NOW - timedelta(days=30)))
        storage.write_job(make_job(company_id=company.company_id, created_at=end))
        storage.write_job(
            make_job(company_id=company.company_id, status=JobStatus.CLOSED, created_at=start)
        )
        storage.write_recruiter(Recruiter(user_id="u1", created_at=NOW - timedelta(days=10)))
        storage.write_recruiter(
            Recruiter(user_id="u2", status=RecruiterStatus.SUSPENDED, created_at=NOW - timedelta(days=10))
        )

        assert storage.read_platform_period(start, end) == {
            "applications": 2,
            "active_jobs": 1,
            "active_recruiters": 1,
        }

    def test_read_recruiter_names_prefers_name_then_email(self, storage):
        named = IdentityUser(external_id="a", name="Ada", email="ada@example.com")
        mailed = IdentityUser(external_id="b", email="b@example.com")
        anonymous = IdentityUser(external_id="c")
        for user in (named, mailed, anonymous):
            storage.write_user(user)
        ada = Recruiter(user_id=named.user_id)
        bob = Recruiter(user_id=mailed.user_id)
        nobody = Recruiter(user_id=anonymous.user_id)
        for recruiter in (ada, bob, nobody):
            storage.write_recruiter(recruiter)

        names = storage.read_recruiter_names([ada.recruiter_id, bob.recruiter_id, nobody.recruiter_id])

        assert names == {ada.recruiter_id: "Ada", bob.recruiter_id: "b@example.com"}
        assert storage.read_recruiter_names([]) == {}
