"""Current-user plan status and upgrade requests."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from codegolden.api.deps import get_ledger
from codegolden.core.auth import get_current_identity
from codegolden.features.plans.ledger import PlanLedger
from codegolden.models.identity import Identity
from codegolden.models.plan import UpgradeRequest

router = APIRouter(prefix="/api", tags=["plans"])


class UpgradeRequestIn(BaseModel):
    tier: str = Field(..., description="Requested tier (plus or pro)")


class UpgradeRequestOut(BaseModel):
    request_id: str
    identity: str
    requested_tier: str
    status: str
    submitted_at: datetime
    resolved_at: Optional[datetime] = None
    approved_tier: Optional[str] = None


class PlanStatusOut(BaseModel):
    identity: str
    tier: str
    expires_at: Optional[datetime] = None
    pending: List[UpgradeRequestOut]


def serialize_request(request: UpgradeRequest) -> UpgradeRequestOut:
    return UpgradeRequestOut(
        request_id=request.request_id,
        identity=request.identity,
        requested_tier=request.requested_tier.value,
        status=request.status.value,
        submitted_at=request.submitted_at,
        resolved_at=request.resolved_at,
        approved_tier=request.approved_tier.value if request.approved_tier else None,
    )


@router.get("/plan", response_model=PlanStatusOut)
def get_plan_status(
    identity: Identity = Depends(get_current_identity),
    ledger: PlanLedger = Depends(get_ledger),
):
    record = ledger.get_plan(identity.identity)
    return PlanStatusOut(
        identity=record.identity,
        tier=record.tier.value,
        expires_at=record.expires_at,
        pending=[serialize_request(r) for r in ledger.pending_for(identity.identity)],
    )


@router.post("/upgrade", status_code=201, response_model=UpgradeRequestOut)
def submit_upgrade(
    body: UpgradeRequestIn,
    identity: Identity = Depends(get_current_identity),
    ledger: PlanLedger = Depends(get_ledger),
):
    request_id = ledger.submit_upgrade(identity.identity, body.tier)
    return serialize_request(ledger.get_request(request_id))
