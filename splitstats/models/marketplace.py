"""
Marketplace row models read by the accounting core.

Placements carry the money; the remaining models are the thin slices of the
identity, company, job and application stores that the metrics need. They are
written only by seeding code and tests; the owning services live elsewhere.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from splitstats.utils.clock import ensure_utc, utc_now

from .enums import ApplicationStage, JobStatus, MembershipRole, PlacementState, RecruiterStatus


def _new_id() -> str:
    return str(uuid4())


class _UtcModel(BaseModel):
    """Base that pins every datetime field to aware UTC."""

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, v):
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v


class Placement(_UtcModel):
    """
    A confirmed hire tied to a recruiter, carrying that recruiter's fee share.

    Attributes:
        placement_id: Unique placement identifier
        recruiter_id: Recruiter the share is owed to
        application_id: Application the hire came through, if known
        job_id: Role that was filled, if known
        hired_at: When the hire was confirmed (None until confirmed)
        fee_amount: Total placement fee charged to the company
        recruiter_share: Amount owed to the recruiter; fixed at creation
        platform_share: Amount retained by the platform
        state: Current lifecycle state
        guarantee_expires_at: End of the clawback window (None means no window)
    """

    placement_id: str = Field(default_factory=_new_id)
    recruiter_id: str = Field(description="Recruiter owed the recruiter share")
    application_id: Optional[str] = None
    job_id: Optional[str] = None
    hired_at: Optional[datetime] = None
    fee_amount: float = Field(default=0.0, ge=0.0)
    recruiter_share: float = Field(default=0.0, ge=0.0)
    platform_share: float = Field(default=0.0, ge=0.0)
    state: PlacementState = PlacementState.HIRED
    guarantee_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("fee_amount", "recruiter_share", "platform_share")
    @classmethod
    def validate_amount_precision(cls, v: float) -> float:
        """Ensure monetary amounts have reasonable precision."""
        if abs(v) > 1e12:
            raise ValueError("Amount exceeds maximum allowed value")
        return round(v, 2)


class IdentityUser(_UtcModel):
    """Internal user record keyed by the external identity provider id."""

    user_id: str = Field(default_factory=_new_id)
    external_id: str = Field(description="Identity provider subject (JWT sub)")
    email: Optional[str] = None
    name: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class OrganizationMembership(_UtcModel):
    user_id: str
    organization_id: str
    role: MembershipRole = MembershipRole.HIRING_MANAGER


class Recruiter(_UtcModel):
    recruiter_id: str = Field(default_factory=_new_id)
    user_id: str
    status: RecruiterStatus = RecruiterStatus.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)


class Candidate(_UtcModel):
    candidate_id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class Company(_UtcModel):
    company_id: str = Field(default_factory=_new_id)
    organization_id: Optional[str] = Field(
        default=None, description="Identity organization that owns the company"
    )
    name: str = ""
    created_at: datetime = Field(default_factory=utc_now)


class Job(_UtcModel):
    job_id: str = Field(default_factory=_new_id)
    company_id: str
    title: str = ""
    status: JobStatus = JobStatus.ACTIVE
    fee_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    salary_min: Optional[float] = None
    created_at: datetime = Field(default_factory=utc_now)


class RoleAssignment(_UtcModel):
    """A recruiter working a role on behalf of the company."""

    recruiter_id: str
    job_id: str


class Application(_UtcModel):
    """A candidate submitted to a role, optionally represented by a recruiter."""

    application_id: str = Field(default_factory=_new_id)
    job_id: str
    candidate_id: str
    candidate_recruiter_id: Optional[str] = None
    stage: ApplicationStage = ApplicationStage.SUBMITTED
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
