"""
Admin-only plan approval router.

Every endpoint requires an admin actor (X-Admin-Key header or an admin
identity session, see core/admin_auth.py).
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from codegolden.api.deps import get_ledger
from codegolden.api.plans import UpgradeRequestOut, serialize_request
from codegolden.core.admin_auth import AdminActor, require_admin
from codegolden.features.plans.ledger import PlanLedger

logger = logging.getLogger("codegolden.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"])


class ApproveRequest(BaseModel):
    identity: str = Field(..., description="User whose earliest pending request is approved")
    tier: str = Field(..., description="Tier to grant (may differ from the requested tier)")


class DeclineRequest(BaseModel):
    identity: str = Field(..., description="User whose earliest pending request is declined")


class ApproveResponse(BaseModel):
    success: bool
    identity: str
    tier: str
    expires_at: Optional[datetime]


class DeclineResponse(BaseModel):
    success: bool
    identity: str
    request: UpgradeRequestOut


class RequestListResponse(BaseModel):
    total: int
    requests: List[UpgradeRequestOut]


@router.get("/pending", response_model=RequestListResponse)
def list_pending(
    actor: AdminActor = Depends(require_admin),
    ledger: PlanLedger = Depends(get_ledger),
):
    pending = ledger.list_pending()
    return RequestListResponse(total=len(pending), requests=[serialize_request(r) for r in pending])


@router.get("/requests", response_model=RequestListResponse)
def list_requests(
    identity: Optional[str] = Query(None, description="Filter history to one identity"),
    actor: AdminActor = Depends(require_admin),
    ledger: PlanLedger = Depends(get_ledger),
):
    history = ledger.list_requests(identity=identity)
    return RequestListResponse(total=len(history), requests=[serialize_request(r) for r in history])


@router.post("/approve", response_model=ApproveResponse)
def approve(
    body: ApproveRequest,
    actor: AdminActor = Depends(require_admin),
    ledger: PlanLedger = Depends(get_ledger),
):
    record = ledger.approve(body.identity, body.tier, resolved_by=actor.actor_id)
    logger.info(f"[admin] {actor.actor_id} approved {record.identity} for {record.tier.value}")
    return ApproveResponse(
        success=True,
        identity=record.identity,
        tier=record.tier.value,
        expires_at=record.expires_at,
    )


@router.post("/decline", response_model=DeclineResponse)
def decline(
    body: DeclineRequest,
    actor: AdminActor = Depends(require_admin),
    ledger: PlanLedger = Depends(get_ledger),
):
    request = ledger.decline(body.identity, resolved_by=actor.actor_id)
    logger.info(f"[admin] {actor.actor_id} declined request {request.request_id} for {request.identity}")
    return DeclineResponse(success=True, identity=request.identity, request=serialize_request(request))
