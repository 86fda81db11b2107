"""
JWT issuing and validation

Tokens carry the user id in `sub` and the username in `username`, signed
with the shared secret so every service can validate them locally.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from cityfix.core.config import Config
from cityfix.core.logger import logger
from cityfix.security.identity import Identity


class AuthError(Exception):
    """Token could not be turned into an identity"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class JwtTokenProvider:
    """Issues and validates signed, time-bound identity tokens"""

    def __init__(self, secret: str, algorithm: str = "HS256", expiration_seconds: int = 86400):
        self.secret = secret
        self.algorithm = algorithm
        self.expiration_seconds = expiration_seconds

    @classmethod
    def from_config(cls, cfg: Config) -> "JwtTokenProvider":
        return cls(cfg.jwt_secret, cfg.jwt_algorithm, cfg.jwt_expiration)

    def generate_token(self, user_id: int, username: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "username": username,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expiration_seconds),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Identity:
        """
        Validate signature and expiry and extract the identity

        Raises:
            AuthError: If token is invalid, expired or lacks identity claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthError(f"Invalid token: {e}")

        username = payload.get("username")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise AuthError("Invalid token: subject is not a user id")
        if not username:
            raise AuthError("Invalid token: missing username")

        return Identity(user_id=user_id, username=username)

    def resolve_identity(self, token: Optional[str]) -> Optional[Identity]:
        """Identity for a valid token, None for anything else"""
        if not token:
            return None
        try:
            return self.decode_token(token)
        except AuthError as e:
            logger.warning(f"JWT token validation failed: {e.message}")
            return None
