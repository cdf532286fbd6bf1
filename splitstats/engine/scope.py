"""
Scope token normalization.

Unlike range parsing this is strict: an unrecognized scope is a hard failure,
since guessing a scope could expose another tenant's numbers.
"""

from splitstats.models.enums import StatsScope

_SCOPE_ALIASES: dict[str, StatsScope] = {
    "recruiter": StatsScope.RECRUITER,
    "candidate": StatsScope.CANDIDATE,
    "company": StatsScope.COMPANY,
    "platform": StatsScope.PLATFORM,
    "admin": StatsScope.PLATFORM,
}


class UnknownScopeError(ValueError):
    """Raised when a scope token matches none of the known scopes."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown stats scope: {token!r}")


def normalize_scope(token: str) -> StatsScope:
    """
    Map a free-text scope token onto a StatsScope.

    Matching is exact after trimming and lowercasing; "admin" is a synonym
    for "platform".

    Raises:
        UnknownScopeError: If the token is not a known scope
    """
    scope = _SCOPE_ALIASES.get(str(token).strip().lower())
    if scope is None:
        raise UnknownScopeError(token)
    return scope
