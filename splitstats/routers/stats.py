"""
Stats router.

Wired to:
- StatsService for scope-aware metrics aggregation
- get_current_identity for the caller's external identity

Failure modes are kept distinct for clients: unknown scope (400), unresolvable
identity (401), missing profile for the scope (403). Storage failures are not
handled here; they surface as 500s through the application error handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from splitstats.auth.access_context import AccessResolutionError
from splitstats.auth.dependencies import get_current_identity
from splitstats.engine.scope import UnknownScopeError
from splitstats.services import get_stats_service
from splitstats.services.stats_service import MissingProfileError, StatsService
from splitstats.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("")
async def get_stats(
    scope: Optional[str] = Query(None, description="recruiter | candidate | company | platform (admin)"),
    type_: Optional[str] = Query(None, alias="type", description="Legacy synonym for scope"),
    range_: Optional[str] = Query(None, alias="range", description="ytd | <n>d | <n>w | <n>m"),
    identity: str = Depends(get_current_identity),
    service: StatsService = Depends(get_stats_service),
):
    """
    Get dashboard metrics for the caller in the requested scope.

    Unrecognized range tokens fall back to year-to-date.
    """
    logger.info("stats_endpoint", scope=scope, type=type_, range=range_)

    try:
        result = await service.get_stats(identity, scope=scope, type_=type_, range_=range_)
    except UnknownScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AccessResolutionError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except MissingProfileError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    return {"success": True, "data": result.model_dump(mode="json", by_alias=True)}
