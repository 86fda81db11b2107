"""
Token issue/validation, password hashing and the request identity
"""

from .identity import Identity
from .passwords import BcryptPasswordHasher
from .tokens import AuthError, JwtTokenProvider

__all__ = ["AuthError", "BcryptPasswordHasher", "Identity", "JwtTokenProvider"]
