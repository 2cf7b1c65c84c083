"""
codegolden/models/plan.py

Subscription tiers, per-user plan records and upgrade requests.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from codegolden.core.errors import InvalidTierError


class Tier(str, Enum):
    """Subscription level. Totally ordered: FREE < PLUS < PRO."""
    FREE = "free"
    PLUS = "plus"
    PRO = "pro"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def at_least(self, other: "Tier") -> bool:
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: Union[str, "Tier", None]) -> "Tier":
        """Parse a tier name case-insensitively ("Plus", "PRO", ...)."""
        if isinstance(value, Tier):
            return value
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidTierError(f"Unknown tier: {value!r}", details={"tier": value})


_TIER_RANK = {Tier.FREE: 0, Tier.PLUS: 1, Tier.PRO: 2}

UPGRADEABLE_TIERS = (Tier.PLUS, Tier.PRO)


def parse_upgradeable_tier(value: Union[str, Tier, None]) -> Tier:
    """Parse a tier that can be requested or granted (PLUS, PRO)."""
    tier = Tier.parse(value)
    if tier not in UPGRADEABLE_TIERS:
        raise InvalidTierError(
            f"Tier {tier.value!r} cannot be requested as an upgrade",
            details={"tier": tier.value, "allowed": [t.value for t in UPGRADEABLE_TIERS]},
        )
    return tier


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class UserPlanRecord(BaseModel):
    """
    A user's current subscription tier.

    expires_at=None means non-expiring; FREE records never expire.
    """
    model_config = ConfigDict(frozen=True)

    identity: str
    tier: Tier = Tier.FREE
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class UpgradeRequest(BaseModel):
    """
    A user's request to move to a paid tier.

    Resolved requests (approved/declined) are never modified again.
    """
    model_config = ConfigDict(frozen=True)

    request_id: str
    identity: str
    requested_tier: Tier
    submitted_at: datetime
    status: RequestStatus = RequestStatus.PENDING
    resolved_at: Optional[datetime] = None
    approved_tier: Optional[Tier] = None
    resolved_by: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING
