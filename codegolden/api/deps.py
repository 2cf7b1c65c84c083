from typing import Callable

from fastapi import Depends, Request

from codegolden.core.auth import get_current_identity
from codegolden.core.errors import UpgradeRequiredError
from codegolden.features.access.gate import AccessGate
from codegolden.features.ai.service import ModelProxy
from codegolden.features.identity.provider import IdentityProvider
from codegolden.features.plans.ledger import PlanLedger
from codegolden.models.identity import Identity
from codegolden.models.plan import Tier


def get_ledger(request: Request) -> PlanLedger:
    return request.app.state.ledger


def get_access_gate(request: Request) -> AccessGate:
    return request.app.state.access_gate


def get_model_proxy(request: Request) -> ModelProxy:
    return request.app.state.model_proxy


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def require_tier(tier: Tier) -> Callable[..., Identity]:
    """Dependency factory: logged-in identity whose effective tier is at least `tier`."""

    def dependency(
        identity: Identity = Depends(get_current_identity),
        gate: AccessGate = Depends(get_access_gate),
    ) -> Identity:
        decision = gate.check_access(identity.identity, tier)
        if not decision.allowed:
            raise UpgradeRequiredError(
                f"Upgrade required: this feature needs the {decision.required_tier.value} plan",
                details={
                    "required_tier": decision.required_tier.value,
                    "current_tier": decision.effective_tier.value,
                    "upgrade_url": "/api/upgrade",
                },
            )
        return identity

    return dependency
