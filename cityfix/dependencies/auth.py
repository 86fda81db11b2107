"""
Identity dependencies for FastAPI

The auth filter has already run; these only read what it attached and let
each endpoint decide whether identity is optional or required.
"""

from typing import Optional

from fastapi import Depends, Request

from cityfix.core.errors import AuthenticationError
from cityfix.core.logger import logger
from cityfix.security.identity import Identity


async def get_identity(request: Request) -> Optional[Identity]:
    """
    Identity attached by the auth filter, or None for anonymous requests.

    Usage:
        @router.get("/")
        async def list_items(identity: Optional[Identity] = Depends(get_identity)):
            ...
    """
    return getattr(request.state, "identity", None)


async def require_identity(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
) -> Identity:
    """
    Identity for endpoints that need an authenticated caller. Raises 401 otherwise.
    """
    if identity is None:
        logger.warning(
            "Authentication required: no valid token",
            metadata={"path": request.url.path, "method": request.method},
        )
        raise AuthenticationError()
    return identity
