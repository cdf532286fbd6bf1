#!/usr/bin/env python3
"""
Seed a small demo marketplace for splitstats.

Creates one company with three roles, a recruiter working them, a candidate,
a company admin and a platform admin, plus placements in each payout state,
so every stats scope has something to show.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --db-path ./data/demo.duckdb
"""

import argparse
from datetime import datetime, timedelta
from typing import Optional

from splitstats.auth.jwt import create_access_token
from splitstats.config import get_settings
from splitstats.models.enums import (
    ApplicationStage,
    JobStatus,
    MembershipRole,
    PlacementState,
)
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
from splitstats.storage.base import StatsRepository
from splitstats.storage.duckdb_storage import DuckDBStorage
from splitstats.utils.clock import utc_now

DEMO_ORGANIZATION_ID = "org_demo_acme"

PERSONAS = {
    "recruiter": "user_demo_recruiter",
    "candidate": "user_demo_candidate",
    "company": "user_demo_company_admin",
    "platform": "user_demo_platform_admin",
}


def seed_marketplace(storage: StatsRepository, now: Optional[datetime] = None) -> dict[str, str]:
    """
    Write the demo marketplace into ``storage``.

    Returns:
        Mapping of persona name to external identity id
    """
    now = now or utc_now()

    users = {
        name: IdentityUser(
            external_id=external_id,
            name=name.title(),
            created_at=now - timedelta(days=400 if name == "platform" else 10),
        )
        for name, external_id in PERSONAS.items()
    }
    for user in users.values():
        storage.write_user(user)

    storage.write_membership(
        OrganizationMembership(
            user_id=users["company"].user_id,
            organization_id=DEMO_ORGANIZATION_ID,
            role=MembershipRole.COMPANY_ADMIN,
        )
    )
    storage.write_membership(
        OrganizationMembership(
            user_id=users["platform"].user_id,
            organization_id="org_platform",
            role=MembershipRole.PLATFORM_ADMIN,
        )
    )

    recruiter = Recruiter(user_id=users["recruiter"].user_id, created_at=now - timedelta(days=100))
    candidate = Candidate(user_id=users["candidate"].user_id)
    storage.write_recruiter(recruiter)
    storage.write_candidate(candidate)

    company = Company(organization_id=DEMO_ORGANIZATION_ID, name="Acme Robotics")
    storage.write_company(company)

    jobs = [
        Job(company_id=company.company_id, title="Staff Engineer", fee_percentage=20, salary_min=180000,
            created_at=now - timedelta(days=90)),
        Job(company_id=company.company_id, title="Product Designer", fee_percentage=18, salary_min=120000,
            created_at=now - timedelta(days=20)),
        Job(company_id=company.company_id, title="Sales Lead", status=JobStatus.CLOSED, fee_percentage=15,
            salary_min=100000, created_at=now - timedelta(days=200)),
    ]
    for job in jobs:
        storage.write_job(job)
        storage.write_role_assignment(RoleAssignment(recruiter_id=recruiter.recruiter_id, job_id=job.job_id))

    stages = [ApplicationStage.SUBMITTED, ApplicationStage.INTERVIEW, ApplicationStage.OFFER, ApplicationStage.HIRED]
    applications = []
    for i, stage in enumerate(stages):
        application = Application(
            job_id=jobs[i % 2].job_id,
            candidate_id=candidate.candidate_id,
            candidate_recruiter_id=recruiter.recruiter_id,
            stage=stage,
            created_at=now - timedelta(days=5 + i * 3),
            updated_at=now - timedelta(days=i),
        )
        storage.write_application(application)
        applications.append(application)

    hired_application = applications[-1]
    storage.write_placements(
        [
            Placement(
                recruiter_id=recruiter.recruiter_id,
                application_id=hired_application.application_id,
                job_id=hired_application.job_id,
                hired_at=now - timedelta(days=2),
                fee_amount=25000,
                recruiter_share=1000,
                platform_share=24000,
                state=PlacementState.ACTIVE,
            ),
            Placement(
                recruiter_id=recruiter.recruiter_id,
                job_id=jobs[2].job_id,
                hired_at=now - timedelta(days=40),
                fee_amount=15000,
                recruiter_share=500,
                platform_share=14500,
                state=PlacementState.SETTLED,
                guarantee_expires_at=now + timedelta(days=10),
            ),
            Placement(
                recruiter_id=recruiter.recruiter_id,
                job_id=jobs[2].job_id,
                hired_at=now - timedelta(days=120),
                fee_amount=12000,
                recruiter_share=300,
                platform_share=11700,
                state=PlacementState.SETTLED,
                guarantee_expires_at=now - timedelta(days=10),
            ),
        ]
    )

    return dict(PERSONAS)


def main():
    """Seed the demo marketplace and print a bearer token per persona."""
    parser = argparse.ArgumentParser(description="Seed a demo marketplace for splitstats")
    parser.add_argument("--db-path", default=None, help="DuckDB file (defaults to DB_PATH setting)")
    args = parser.parse_args()

    storage = DuckDBStorage(db_path=args.db_path or get_settings().db_path)
    personas = seed_marketplace(storage)

    print(f"Seeded demo marketplace into {storage.db_path}")
    for scope, external_id in personas.items():
        print(f"  {scope:<10} {external_id}  Bearer {create_access_token(external_id)}")


if __name__ == "__main__":
    main()
