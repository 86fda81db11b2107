"""
Authentication filter

Runs once per request before any route. Looks for a token in the auth cookie
first and the `Authorization: Bearer` header second. A valid token puts an
Identity on `request.state.identity`; anything else leaves it None and the
request continues. Endpoints decide whether an identity is required.
"""

from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cityfix.core.logger import logger
from cityfix.security.tokens import JwtTokenProvider

BEARER_PREFIX = "Bearer "
_FILTERED_FLAG = "cityfix.auth_filtered"


def extract_token(request: Request, cookie_name: str) -> Optional[str]:
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


class AuthFilterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, token_provider: JwtTokenProvider, cookie_name: str):
        super().__init__(app)
        self.token_provider = token_provider
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        if not request.scope.get(_FILTERED_FLAG):
            request.scope[_FILTERED_FLAG] = True
            identity = self.token_provider.resolve_identity(extract_token(request, self.cookie_name))
            request.state.identity = identity

            if identity is not None:
                logger.debug(
                    "JWT validated",
                    user_id=identity.user_id,
                    metadata={"username": identity.username},
                )

        return await call_next(request)
