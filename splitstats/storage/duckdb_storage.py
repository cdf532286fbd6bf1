"""
DuckDB storage implementation for the splitstats accounting core.

Provides a local metrics repository over DuckDB with the tables the stats
pipeline reads: identity (users, memberships, recruiters, candidates),
companies and jobs, role assignments, applications and placements.

Key features:
- Thread-safe per-thread connections (reads are fanned out over a thread pool)
- Idempotent schema creation with indexes on owner and time columns
- Naive-UTC TIMESTAMP columns; aware UTC datetimes at the model boundary
- Every driver failure logged and re-raised as StorageError
"""

import os
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

import duckdb
import structlog

from splitstats.models.enums import PLATFORM_ACTIVE_STAGES, ApplicationStage, JobStatus, RecruiterStatus
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
from splitstats.utils.clock import to_naive_utc

from .base import StatsRepository

logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Base exception for all storage operation failures."""

    pass


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id VARCHAR PRIMARY KEY,
        external_id VARCHAR NOT NULL UNIQUE,
        email VARCHAR,
        name VARCHAR,
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memberships (
        user_id VARCHAR NOT NULL,
        organization_id VARCHAR NOT NULL,
        role VARCHAR NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memberships_user_id ON memberships(user_id)",
    """
    CREATE TABLE IF NOT EXISTS recruiters (
        recruiter_id VARCHAR PRIMARY KEY,
        user_id VARCHAR NOT NULL,
        status VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_recruiters_user_id ON recruiters(user_id)",
    """
    CREATE TABLE IF NOT EXISTS candidates (
        candidate_id VARCHAR PRIMARY KEY,
        user_id VARCHAR,
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_candidates_user_id ON candidates(user_id)",
    """
    CREATE TABLE IF NOT EXISTS companies (
        company_id VARCHAR PRIMARY KEY,
        organization_id VARCHAR,
        name VARCHAR,
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_companies_organization_id ON companies(organization_id)",
    """
    CREATE TABLE IF NOT EXISTS jobs (
        job_id VARCHAR PRIMARY KEY,
        company_id VARCHAR NOT NULL,
        title VARCHAR,
        status VARCHAR NOT NULL,
        fee_percentage DOUBLE NOT NULL DEFAULT 0,
        salary_min DOUBLE,
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_jobs_company_id ON jobs(company_id)",
    """
    CREATE TABLE IF NOT EXISTS role_assignments (
        recruiter_id VARCHAR NOT NULL,
        job_id VARCHAR NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_role_assignments_recruiter_id ON role_assignments(recruiter_id)",
    """
    CREATE TABLE IF NOT EXISTS applications (
        application_id VARCHAR PRIMARY KEY,
        job_id VARCHAR NOT NULL,
        candidate_id VARCHAR NOT NULL,
        candidate_recruiter_id VARCHAR,
        stage VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_applications_job_id ON applications(job_id)",
    "CREATE INDEX IF NOT EXISTS idx_applications_candidate_id ON applications(candidate_id)",
    "CREATE INDEX IF NOT EXISTS idx_applications_recruiter_id ON applications(candidate_recruiter_id)",
    """
    CREATE TABLE IF NOT EXISTS placements (
        placement_id VARCHAR PRIMARY KEY,
        recruiter_id VARCHAR NOT NULL,
        application_id VARCHAR,
        job_id VARCHAR,
        hired_at TIMESTAMP,
        fee_amount DOUBLE NOT NULL DEFAULT 0,
        recruiter_share DOUBLE NOT NULL DEFAULT 0,
        platform_share DOUBLE NOT NULL DEFAULT 0,
        state VARCHAR NOT NULL,
        guarantee_expires_at TIMESTAMP,
        created_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_placements_recruiter_id ON placements(recruiter_id)",
    "CREATE INDEX IF NOT EXISTS idx_placements_job_id ON placements(job_id)",
]

_TABLES = [
    "placements",
    "applications",
    "role_assignments",
    "jobs",
    "companies",
    "candidates",
    "recruiters",
    "memberships",
    "users",
]

_PLACEMENT_COLUMNS = """
    placement_id, recruiter_id, application_id, job_id, hired_at, fee_amount,
    recruiter_share, platform_share, state, guarantee_expires_at, created_at
"""

_APPLICATION_COLUMNS = """
    application_id, job_id, candidate_id, candidate_recruiter_id, stage,
    created_at, updated_at
"""


def _placeholders(values: Sequence[Any]) -> str:
    return ",".join(["?"] * len(values))


def _stage_values(stages: Sequence[ApplicationStage]) -> list[str]:
    return [ApplicationStage(s).value for s in stages]


def _row_to_placement(row: tuple) -> Placement:
    return Placement(
        placement_id=row[0],
        recruiter_id=row[1],
        application_id=row[2],
        job_id=row[3],
        hired_at=row[4],
        fee_amount=row[5],
        recruiter_share=row[6],
        platform_share=row[7],
        state=row[8],
        guarantee_expires_at=row[9],
        created_at=row[10],
    )


def _row_to_application(row: tuple) -> Application:
    return Application(
        application_id=row[0],
        job_id=row[1],
        candidate_id=row[2],
        candidate_recruiter_id=row[3],
        stage=row[4],
        created_at=row[5],
        updated_at=row[6],
    )


class DuckDBStorage(StatsRepository):
    """
    DuckDB implementation of the metrics repository.

    Attributes:
        db_path: Path to the DuckDB database file
        _local: Thread-local storage for per-thread connections
        _lock: Thread lock for schema operations
        _initialized: Flag tracking whether schema is initialized
    """

    def __init__(self, db_path: str = "./data/splitstats.duckdb"):
        """
        Initialize DuckDB storage backend.

        Args:
            db_path: Path to DuckDB database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()
        self._lock = threading.Lock()
        self._initialized = False

        logger.info("duckdb_storage_initialized", db_path=str(self.db_path))

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Get a thread-local DuckDB connection.

        Yields:
            DuckDB connection instance

        Raises:
            StorageError: If connection cannot be established
        """
        if not hasattr(self._local, "connection"):
            try:
                self._local.connection = duckdb.connect(str(self.db_path))
                logger.debug("duckdb_connection_created", thread_id=threading.get_ident())
            except Exception as e:
                logger.error("duckdb_connection_failed", error=str(e))
                raise StorageError(f"Failed to connect to DuckDB: {e}") from e

        yield self._local.connection

    def _initialize_schema(self) -> None:
        """
        Create all tables and indexes. Idempotent.

        Raises:
            StorageError: If schema creation fails
        """
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return
            try:
                with self._get_connection() as conn:
                    for statement in _SCHEMA:
                        conn.execute(statement)
                self._initialized = True
                logger.info("duckdb_schema_initialized", tables=len(_TABLES))
            except Exception as e:
                logger.error("duckdb_schema_initialization_failed", error=str(e))
                raise StorageError(f"Failed to initialize schema: {e}") from e

    def _fetchall(self, query: str, params: list, operation: str) -> list[tuple]:
        try:
            with self._get_connection() as conn:
                return conn.execute(query, params).fetchall()
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"{operation}_failed", error=str(e))
            raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}") from e

    def _count(self, query: str, params: list, operation: str) -> int:
        rows = self._fetchall(query, params, operation)
        return int(rows[0][0] or 0) if rows else 0

    def _execute(self, query: str, params: list, operation: str) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute(query, params)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"{operation}_failed", error=str(e))
            raise StorageError(f"Failed to {operation.replace('_', ' ')}: {e}") from e

    def clear_for_testing(self) -> None:
        """
        Truncate all tables. For testing only; a no-op unless TESTING is set.
        """
        if not os.environ.get("TESTING"):
            return
        with self._get_connection() as conn:
            for table in _TABLES:
                conn.execute(f"DELETE FROM {table}")

    # =========================================================================
    # Identity
    # =========================================================================

    def read_access_rows(self, external_id: str) -> Optional[dict]:
        users = self._fetchall(
            "SELECT user_id FROM users WHERE external_id = ?",
            [external_id],
            "read_user",
        )
        if not users:
            return None
        user_id = users[0][0]

        recruiters = self._fetchall(
            "SELECT recruiter_id FROM recruiters WHERE user_id = ? ORDER BY created_at ASC LIMIT 1",
            [user_id],
            "read_recruiter_profile",
        )
        candidates = self._fetchall(
            "SELECT candidate_id FROM candidates WHERE user_id = ? ORDER BY created_at ASC LIMIT 1",
            [user_id],
            "read_candidate_profile",
        )
        memberships = self._fetchall(
            "SELECT organization_id, role FROM memberships WHERE user_id = ? ORDER BY organization_id",
            [user_id],
            "read_memberships",
        )

        return {
            "user_id": user_id,
            "recruiter_id": recruiters[0][0] if recruiters else None,
            "candidate_id": candidates[0][0] if candidates else None,
            "memberships": [
                {"organization_id": row[0], "role": row[1]} for row in memberships
            ],
        }

    # =========================================================================
    # Recruiter scope
    # =========================================================================

    def count_active_roles(self, recruiter_id: str) -> int:
        return self._count(
            """
            SELECT COUNT(DISTINCT j.job_id)
            FROM role_assignments ra
            JOIN jobs j ON j.job_id = ra.job_id
            WHERE ra.recruiter_id = ? AND j.status = ?
            """,
            [recruiter_id, JobStatus.ACTIVE.value],
            "count_active_roles",
        )

    def count_recruiter_applications(
        self,
        recruiter_id: str,
        stages: Optional[Sequence[ApplicationStage]] = None,
        created_since: Optional[datetime] = None,
        updated_before: Optional[datetime] = None,
    ) -> int:
        query = "SELECT COUNT(*) FROM applications WHERE candidate_recruiter_id = ?"
        params: list = [recruiter_id]

        if stages:
            query += f" AND stage IN ({_placeholders(stages)})"
            params.extend(_stage_values(stages))

        if created_since is not None:
            query += " AND created_at >= ?"
            params.append(to_naive_utc(created_since))

        if updated_before is not None:
            query += " AND updated_at < ?"
            params.append(to_naive_utc(updated_before))

        return self._count(query, params, "count_recruiter_applications")

    def read_recruiter_placements(self, recruiter_id: str) -> list[Placement]:
        rows = self._fetchall(
            f"SELECT {_PLACEMENT_COLUMNS} FROM placements WHERE recruiter_id = ? ORDER BY hired_at ASC",
            [recruiter_id],
            "read_recruiter_placements",
        )
        placements = [_row_to_placement(row) for row in rows]
        logger.debug("recruiter_placements_read", count=len(placements))
        return placements

    def read_pipeline_jobs(self, recruiter_id: str, stages: Sequence[ApplicationStage]) -> list[dict]:
        if not stages:
            return []
        rows = self._fetchall(
            f"""
            SELECT j.job_id, j.fee_percentage, j.salary_min, COUNT(*)
            FROM applications a
            JOIN jobs j ON j.job_id = a.job_id
            WHERE a.candidate_recruiter_id = ? AND a.stage IN ({_placeholders(stages)})
            GROUP BY j.job_id, j.fee_percentage, j.salary_min
            ORDER BY j.job_id
            """,
            [recruiter_id, *_stage_values(stages)],
            "read_pipeline_jobs",
        )
        return [
            {
                "job_id": row[0],
                "fee_percentage": row[1],
                "salary_min": row[2],
                "applications": int(row[3]),
            }
            for row in rows
        ]

    # =========================================================================
    # Candidate scope
    # =========================================================================

    def read_candidate_applications(
        self,
        candidate_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Application]:
        query = f"SELECT {_APPLICATION_COLUMNS} FROM applications WHERE candidate_id = ?"
        params: list = [candidate_id]

        if start is not None:
            query += " AND created_at >= ?"
            params.append(to_naive_utc(start))

        if end is not None:
            query += " AND created_at <= ?"
            params.append(to_naive_utc(end))

        query += " ORDER BY created_at ASC"
        rows = self._fetchall(query, params, "read_candidate_applications")
        return [_row_to_application(row) for row in rows]

    # =========================================================================
    # Company scope
    # =========================================================================

    def read_company_jobs(self, organization_ids: Sequence[str]) -> list[Job]:
        if not organization_ids:
            return []
        rows = self._fetchall(
            f"""
            SELECT j.job_id, j.company_id, j.title, j.status, j.fee_percentage,
                   j.salary_min, j.created_at
            FROM jobs j
            JOIN companies c ON c.company_id = j.company_id
            WHERE c.organization_id IN ({_placeholders(organization_ids)})
            ORDER BY j.created_at ASC
            """,
            list(organization_ids),
            "read_company_jobs",
        )
        return [
            Job(
                job_id=row[0],
                company_id=row[1],
                title=row[2] or "",
                status=row[3],
                fee_percentage=row[4],
                salary_min=row[5],
                created_at=row[6],
            )
            for row in rows
        ]

    def read_job_applications(
        self,
        job_ids: Sequence[str],
        stages: Optional[Sequence[ApplicationStage]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Application]:
        if not job_ids:
            return []
        query = (
            f"SELECT {_APPLICATION_COLUMNS} FROM applications "
            f"WHERE job_id IN ({_placeholders(job_ids)})"
        )
        params: list = list(job_ids)

        if stages:
            query += f" AND stage IN ({_placeholders(stages)})"
            params.extend(_stage_values(stages))

        if start is not None:
            query += " AND created_at >= ?"
            params.append(to_naive_utc(start))

        if end is not None:
            query += " AND created_at <= ?"
            params.append(to_naive_utc(end))

        rows = self._fetchall(query, params, "read_job_applications")
        return [_row_to_application(row) for row in rows]

    def read_applications(self, application_ids: Sequence[str]) -> list[Application]:
        if not application_ids:
            return []
        rows = self._fetchall(
            f"SELECT {_APPLICATION_COLUMNS} FROM applications "
            f"WHERE application_id IN ({_placeholders(application_ids)})",
            list(application_ids),
            "read_applications",
        )
        return [_row_to_application(row) for row in rows]

    def read_job_placements(self, job_ids: Sequence[str]) -> list[Placement]:
        if not job_ids:
            return []
        rows = self._fetchall(
            f"SELECT {_PLACEMENT_COLUMNS} FROM placements "
            f"WHERE job_id IN ({_placeholders(job_ids)}) ORDER BY hired_at ASC",
            list(job_ids),
            "read_job_placements",
        )
        return [_row_to_placement(row) for row in rows]

    def count_assigned_recruiters(self, job_ids: Sequence[str]) -> int:
        if not job_ids:
            return 0
        return self._count(
            f"SELECT COUNT(DISTINCT recruiter_id) FROM role_assignments "
            f"WHERE job_id IN ({_placeholders(job_ids)})",
            list(job_ids),
            "count_assigned_recruiters",
        )

    # =========================================================================
    # Platform scope
    # =========================================================================

    def read_platform_counts(self) -> dict[str, int]:
        active_stages = _stage_values(PLATFORM_ACTIVE_STAGES)
        rows = self._fetchall(
            f"""
            SELECT
                (SELECT COUNT(*) FROM recruiters),
                (SELECT COUNT(*) FROM recruiters WHERE status = ?),
                (SELECT COUNT(*) FROM companies),
                (SELECT COUNT(*) FROM candidates),
                (SELECT COUNT(*) FROM jobs),
                (SELECT COUNT(*) FROM jobs WHERE status = ?),
                (SELECT COUNT(*) FROM applications WHERE stage IN ({_placeholders(active_stages)}))
            """,
            [RecruiterStatus.ACTIVE.value, JobStatus.ACTIVE.value, *active_stages],
            "read_platform_counts",
        )
        row = rows[0]
        return {
            "total_recruiters": int(row[0]),
            "active_recruiters": int(row[1]),
            "total_companies": int(row[2]),
            "total_candidates": int(row[3]),
            "total_jobs": int(row[4]),
            "active_jobs": int(row[5]),
            "active_applications": int(row[6]),
        }

    def read_placements(self) -> list[Placement]:
        rows = self._fetchall(
            f"SELECT {_PLACEMENT_COLUMNS} FROM placements ORDER BY hired_at ASC",
            [],
            "read_placements",
        )
        return [_row_to_placement(row) for row in rows]

    def count_users_since(self, since: datetime) -> int:
        return self._count(
            "SELECT COUNT(*) FROM users WHERE created_at >= ?",
            [to_naive_utc(since)],
            "count_users_since",
        )

    def read_status_breakdowns(self) -> dict[str, dict[str, int]]:
        recruiter_rows = self._fetchall(
            "SELECT status, COUNT(*) FROM recruiters GROUP BY status",
            [],
            "read_recruiter_statuses",
        )
        job_rows = self._fetchall(
            "SELECT status, COUNT(*) FROM jobs GROUP BY status",
            [],
            "read_job_statuses",
        )
        recruiters = {status.value: 0 for status in RecruiterStatus}
        recruiters.update({row[0]: int(row[1]) for row in recruiter_rows})
        jobs = {status.value: 0 for status in JobStatus}
        jobs.update({row[0]: int(row[1]) for row in job_rows})
        return {"recruiters": recruiters, "jobs": jobs}

    def read_platform_period(self, start: datetime, end: datetime) -> dict[str, int]:
        start_ts, end_ts = to_naive_utc(start), to_naive_utc(end)
        rows = self._fetchall(
            """
            SELECT
                (SELECT COUNT(*) FROM applications WHERE created_at >= ? AND created_at < ?),
                (SELECT COUNT(*) FROM jobs WHERE status = ? AND created_at < ?),
                (SELECT COUNT(*) FROM recruiters WHERE status = ? AND created_at < ?)
            """,
            [
                start_ts, end_ts,
                JobStatus.ACTIVE.value, end_ts,
                RecruiterStatus.ACTIVE.value, end_ts,
            ],
            "read_platform_period",
        )
        row = rows[0]
        return {
            "applications": int(row[0]),
            "active_jobs": int(row[1]),
            "active_recruiters": int(row[2]),
        }

    def read_recruiter_names(self, recruiter_ids: Sequence[str]) -> dict[str, str]:
        if not recruiter_ids:
            return {}
        rows = self._fetchall(
            f"""
            SELECT r.recruiter_id, COALESCE(u.name, u.email)
            FROM recruiters r
            LEFT JOIN users u ON u.user_id = r.user_id
            WHERE r.recruiter_id IN ({_placeholders(recruiter_ids)})
            """,
            list(recruiter_ids),
            "read_recruiter_names",
        )
        return {row[0]: row[1] for row in rows if row[1]}

    # =========================================================================
    # Seeding
    # =========================================================================

    def write_user(self, user: IdentityUser) -> str:
        self._execute(
            "INSERT INTO users (user_id, external_id, email, name, created_at) VALUES (?, ?, ?, ?, ?)",
            [user.user_id, user.external_id, user.email, user.name, to_naive_utc(user.created_at)],
            "write_user",
        )
        return user.user_id

    def write_membership(self, membership: OrganizationMembership) -> None:
        self._execute(
            "INSERT INTO memberships (user_id, organization_id, role) VALUES (?, ?, ?)",
            [membership.user_id, membership.organization_id, membership.role.value],
            "write_membership",
        )

    def write_recruiter(self, recruiter: Recruiter) -> str:
        self._execute(
            "INSERT INTO recruiters (recruiter_id, user_id, status, created_at) VALUES (?, ?, ?, ?)",
            [
                recruiter.recruiter_id,
                recruiter.user_id,
                recruiter.status.value,
                to_naive_utc(recruiter.created_at),
            ],
            "write_recruiter",
        )
        return recruiter.recruiter_id

    def write_candidate(self, candidate: Candidate) -> str:
        self._execute(
            "INSERT INTO candidates (candidate_id, user_id, created_at) VALUES (?, ?, ?)",
            [candidate.candidate_id, candidate.user_id, to_naive_utc(candidate.created_at)],
            "write_candidate",
        )
        return candidate.candidate_id

    def write_company(self, company: Company) -> str:
        self._execute(
            "INSERT INTO companies (company_id, organization_id, name, created_at) VALUES (?, ?, ?, ?)",
            [company.company_id, company.organization_id, company.name, to_naive_utc(company.created_at)],
            "write_company",
        )
        return company.company_id

    def write_job(self, job: Job) -> str:
        self._execute(
            """
            INSERT INTO jobs (
                job_id, company_id, title, status, fee_percentage, salary_min, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                job.job_id,
                job.company_id,
                job.title,
                job.status.value,
                job.fee_percentage,
                job.salary_min,
                to_naive_utc(job.created_at),
            ],
            "write_job",
        )
        return job.job_id

    def write_role_assignment(self, assignment: RoleAssignment) -> None:
        self._execute(
            "INSERT INTO role_assignments (recruiter_id, job_id) VALUES (?, ?)",
            [assignment.recruiter_id, assignment.job_id],
            "write_role_assignment",
        )

    def write_application(self, application: Application) -> str:
        self._execute(
            """
            INSERT INTO applications (
                application_id, job_id, candidate_id, candidate_recruiter_id, stage,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                application.application_id,
                application.job_id,
                application.candidate_id,
                application.candidate_recruiter_id,
                application.stage.value,
                to_naive_utc(application.created_at),
                to_naive_utc(application.updated_at),
            ],
            "write_application",
        )
        return application.application_id

    def write_placement(self, placement: Placement) -> str:
        self._execute(
            """
            INSERT INTO placements (
                placement_id, recruiter_id, application_id, job_id, hired_at,
                fee_amount, recruiter_share, platform_share, state,
                guarantee_expires_at, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                placement.placement_id,
                placement.recruiter_id,
                placement.application_id,
                placement.job_id,
                to_naive_utc(placement.hired_at),
                placement.fee_amount,
                placement.recruiter_share,
                placement.platform_share,
                placement.state.value,
                to_naive_utc(placement.guarantee_expires_at),
                to_naive_utc(placement.created_at),
            ],
            "write_placement",
        )
        logger.debug("placement_written", placement_id=placement.placement_id)
        return placement.placement_id

    # =========================================================================
    # System
    # =========================================================================

    def ping(self) -> bool:
        self._fetchall("SELECT 1", [], "ping")
        return True
