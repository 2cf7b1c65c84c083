"""
codegolden/features/access/gate.py

Tier gate for paid features.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from codegolden.features.plans.ledger import PlanLedger
from codegolden.models.plan import Tier


class AccessResult(str, Enum):
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


@dataclass(frozen=True)
class AccessDecision:
    result: AccessResult
    effective_tier: Tier
    required_tier: Tier

    @property
    def allowed(self) -> bool:
        return self.result == AccessResult.ALLOWED


class AccessGate:
    """Compares a user's effective tier against the tier a feature requires."""

    def __init__(self, ledger: PlanLedger):
        self.ledger = ledger

    def check_access(self, identity: str, required_tier: Union[str, Tier]) -> AccessDecision:
        required = Tier.parse(required_tier)
        effective = self.ledger.get_effective_tier(identity)
        result = AccessResult.ALLOWED if effective.at_least(required) else AccessResult.DENIED
        return AccessDecision(result=result, effective_tier=effective, required_tier=required)


# Minimum tier per gated feature
FEATURE_TIERS = {
    "playground": Tier.FREE,
    "advanced": Tier.PLUS,
    "deepseek": Tier.PLUS,
    "ultra": Tier.PRO,
    "marketplace": Tier.PRO,
}
