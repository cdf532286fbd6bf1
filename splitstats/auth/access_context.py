"""
Access context resolution.

Turns an external identity id (the JWT subject) into the caller's
AccessContext: internal user id, recruiter and candidate profile ids,
organization memberships and the platform-admin flag. The stats service
depends only on the AccessContextResolver interface, so tests can plug in a
fake resolver instead of a real identity store.
"""

from abc import ABC, abstractmethod

import structlog

from splitstats.models.access import AccessContext
from splitstats.models.enums import MembershipRole
from splitstats.storage.base import StatsRepository

logger = structlog.get_logger(__name__)


class AccessResolutionError(Exception):
    """Raised when an identity cannot be resolved to a known user."""

    def __init__(self, identity: str, reason: str = "unknown_identity"):
        self.identity = identity
        self.reason = reason
        super().__init__(f"Cannot resolve access context ({reason})")


class AccessContextResolver(ABC):
    """Capability that resolves a caller identity into an AccessContext."""

    @abstractmethod
    def resolve(self, identity: str) -> AccessContext:
        """
        Resolve the caller's access context.

        Raises:
            AccessResolutionError: If the identity is unknown or invalid
        """


class StorageAccessContextResolver(AccessContextResolver):
    """Resolves access contexts from the identity tables of the repository."""

    def __init__(self, storage: StatsRepository):
        self.storage = storage

    def resolve(self, identity: str) -> AccessContext:
        if not identity:
            raise AccessResolutionError(identity, reason="empty_identity")

        rows = self.storage.read_access_rows(identity)
        if rows is None:
            logger.warning("access_context_unresolved", reason="unknown_identity")
            raise AccessResolutionError(identity)

        memberships = rows.get("memberships", [])
        organization_ids = tuple(
            dict.fromkeys(
                m["organization_id"]
                for m in memberships
                if m["role"] != MembershipRole.PLATFORM_ADMIN.value
            )
        )
        is_platform_admin = any(
            m["role"] == MembershipRole.PLATFORM_ADMIN.value for m in memberships
        )

        context = AccessContext(
            identity_user_id=rows["user_id"],
            recruiter_id=rows.get("recruiter_id"),
            candidate_id=rows.get("candidate_id"),
            organization_ids=organization_ids,
            is_platform_admin=is_platform_admin,
        )
        logger.debug(
            "access_context_resolved",
            identity_user_id=context.identity_user_id,
            has_recruiter=context.recruiter_id is not None,
            has_candidate=context.candidate_id is not None,
            organizations=len(context.organization_ids),
            is_platform_admin=context.is_platform_admin,
        )
        return context
