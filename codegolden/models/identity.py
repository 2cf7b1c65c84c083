"""
codegolden/models/identity.py

Authenticated identity as supplied by the identity provider.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator


class Identity(BaseModel):
    """
    A verified user profile.

    `identity` is the stable ledger key (verified e-mail, lower-cased).
    """
    model_config = ConfigDict(frozen=True)

    identity: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    subject: Optional[str] = None  # provider's stable user id

    @field_validator("identity")
    @classmethod
    def normalize_identity(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if not normalized:
            raise ValueError("identity is required")
        return normalized
