"""JWT authentication and access context resolution."""

from splitstats.auth.access_context import (
    AccessContextResolver,
    AccessResolutionError,
    StorageAccessContextResolver,
)
from splitstats.auth.dependencies import get_current_identity
from splitstats.auth.jwt import create_access_token, decode_access_token

__all__ = [
    "AccessContextResolver",
    "AccessResolutionError",
    "StorageAccessContextResolver",
    "create_access_token",
    "decode_access_token",
    "get_current_identity",
]
