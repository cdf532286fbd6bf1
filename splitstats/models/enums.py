"""
Enumeration types for the splitstats accounting core.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class StatsScope(str, Enum):
    """
    Closed set of metric scopes a caller can request.

    Each scope is bound to one facet of the caller's resolved access context:
    recruiter id, candidate id, organization memberships, or platform admin.
    """

    RECRUITER = "recruiter"
    CANDIDATE = "candidate"
    COMPANY = "company"
    PLATFORM = "platform"


class PlacementState(str, Enum):
    """
    Lifecycle tag of a placement.

    Transitions are driven upstream (billing and guarantee resolution); the
    accounting core only reads the current value.
    """

    HIRED = "hired"
    ACTIVE = "active"
    COMPLETED = "completed"
    SETTLED = "settled"
    CLAWED_BACK = "clawed_back"
    CANCELLED = "cancelled"


class ApplicationStage(str, Enum):
    """Stages an application moves through on its way to a hire."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    SCREEN = "screen"
    COMPANY_REVIEW = "company_review"
    INTERVIEW = "interview"
    OFFER = "offer"
    ACCEPTED = "accepted"
    HIRED = "hired"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class JobStatus(str, Enum):
    """Posting status of a role."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    EXPIRED = "expired"
    FILLED = "filled"


class RecruiterStatus(str, Enum):
    """Approval status of a recruiter profile."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class MembershipRole(str, Enum):
    """Role a user holds inside an organization."""

    COMPANY_ADMIN = "company_admin"
    HIRING_MANAGER = "hiring_manager"
    PLATFORM_ADMIN = "platform_admin"


# Stages counted as a recruiter's live pipeline.
RECRUITER_PIPELINE_STAGES = (
    ApplicationStage.SUBMITTED,
    ApplicationStage.SCREEN,
    ApplicationStage.COMPANY_REVIEW,
    ApplicationStage.INTERVIEW,
    ApplicationStage.OFFER,
)

# Stages a company sees on its own roles.
COMPANY_VISIBLE_STAGES = (
    ApplicationStage.SUBMITTED,
    ApplicationStage.SCREEN,
    ApplicationStage.INTERVIEW,
    ApplicationStage.OFFER,
    ApplicationStage.ACCEPTED,
    ApplicationStage.HIRED,
)

# Stages counted as active across the whole platform.
PLATFORM_ACTIVE_STAGES = (
    ApplicationStage.SUBMITTED,
    ApplicationStage.SCREEN,
    ApplicationStage.COMPANY_REVIEW,
    ApplicationStage.INTERVIEW,
    ApplicationStage.OFFER,
    ApplicationStage.ACCEPTED,
)

# Late pipeline stages whose jobs count toward a recruiter's pipeline value.
LATE_PIPELINE_STAGES = (
    ApplicationStage.INTERVIEW,
    ApplicationStage.OFFER,
)
