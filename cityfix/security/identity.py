"""
Identity context attached to a request by the auth filter
"""

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """Authenticated caller, derived from a validated token. Never persisted."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
