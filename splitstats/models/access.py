"""
Per-request access context.

Built fresh on every call by an access context resolver and never persisted
or mutated afterwards.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccessContext(BaseModel):
    """
    Resolved identity of the caller and the data it may see.

    Attributes:
        identity_user_id: Internal user id behind the external identity
        recruiter_id: Recruiter profile id, if the caller has one
        candidate_id: Candidate profile id, if the caller has one
        organization_ids: Organizations the caller is a member of
        is_platform_admin: Whether the caller holds platform-admin rights
    """

    model_config = ConfigDict(frozen=True)

    identity_user_id: str
    recruiter_id: Optional[str] = None
    candidate_id: Optional[str] = None
    organization_ids: tuple[str, ...] = Field(default_factory=tuple)
    is_platform_admin: bool = False
