"""
codegolden/features/plans/ledger.py

Plan ledger: the only writer of plan records and upgrade requests.

Handles:
- Effective tier resolution with lazy expiry (no background sweep)
- Upgrade request submission
- Admin approval / decline of the earliest pending request per identity
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union
from uuid import uuid4

from codegolden.core.errors import NotFoundError, RequestNotFoundError, ValidationError
from codegolden.core.logging import log_event
from codegolden.features.plans.store import InMemoryPlanStore, PlanStore
from codegolden.models.plan import (
    RequestStatus,
    Tier,
    UpgradeRequest,
    UserPlanRecord,
    parse_upgradeable_tier,
)

DEFAULT_PLAN_DURATION = timedelta(days=30)

# Identities hash onto a fixed pool of locks
LOCK_STRIPES = 64

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_now(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


class PlanLedger:
    """
    Authoritative record of tiers and upgrade requests.

    Every read of a user's tier goes through get_plan/get_effective_tier so
    expiry is applied in exactly one place. Read-modify-write sequences for an
    identity run under the lock its identity hashes to.
    """

    def __init__(
        self,
        store: Optional[PlanStore] = None,
        *,
        clock: Optional[Clock] = None,
        plan_duration: timedelta = DEFAULT_PLAN_DURATION,
    ):
        self.store = store if store is not None else InMemoryPlanStore()
        self._clock = clock or utc_now
        self.plan_duration = plan_duration
        self._locks = [threading.RLock() for _ in range(LOCK_STRIPES)]

    def _now(self) -> datetime:
        return _normalize_now(self._clock())

    def _lock_for(self, identity: str) -> threading.RLock:
        return self._locks[hash(identity) % len(self._locks)]

    @staticmethod
    def _key(identity: str) -> str:
        key = (identity or "").strip().lower()
        if not key:
            raise ValidationError("identity is required")
        return key

    def _normalized_record(self, identity: str) -> UserPlanRecord:
        # Caller holds the identity's lock
        record = self.store.get_record(identity)
        if record is None:
            record = UserPlanRecord(identity=identity, tier=Tier.FREE)
            self.store.put_record(record)
            return record
        if record.is_expired(self._now()):
            expired_tier = record.tier
            record = record.model_copy(update={"tier": Tier.FREE, "expires_at": None})
            self.store.put_record(record)
            log_event(
                "info",
                "plan.expired",
                identity=identity,
                event_type="plan.expired",
                extra={"previous_tier": expired_tier.value},
            )
        return record

    def get_plan(self, identity: str) -> UserPlanRecord:
        """Return the identity's record after lazy expiry; creates a FREE record if none exists."""
        key = self._key(identity)
        with self._lock_for(key):
            return self._normalized_record(key)

    def get_effective_tier(self, identity: str) -> Tier:
        return self.get_plan(identity).tier

    def submit_upgrade(self, identity: str, requested_tier: Union[str, Tier]) -> str:
        """
        Queue a pending upgrade request.

        Duplicate outstanding requests for the same identity are allowed.

        Raises:
            InvalidTierError: requested_tier is not PLUS or PRO
        """
        key = self._key(identity)
        tier = parse_upgradeable_tier(requested_tier)
        request = UpgradeRequest(
            request_id=uuid4().hex,
            identity=key,
            requested_tier=tier,
            submitted_at=self._now(),
        )
        self.store.add_request(request)
        log_event(
            "info",
            "plan.upgrade_submitted",
            identity=key,
            event_type="plan.upgrade_submitted",
            extra={"upgrade_request_id": request.request_id, "requested_tier": tier.value},
        )
        return request.request_id

    def get_request(self, request_id: str) -> UpgradeRequest:
        request = self.store.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Upgrade request {request_id} not found")
        return request

    def list_pending(self) -> List[UpgradeRequest]:
        return self.store.list_requests(status=RequestStatus.PENDING)

    def list_requests(self, identity: Optional[str] = None) -> List[UpgradeRequest]:
        key = self._key(identity) if identity is not None else None
        return self.store.list_requests(identity=key)

    def pending_for(self, identity: str) -> List[UpgradeRequest]:
        return self.store.list_requests(status=RequestStatus.PENDING, identity=self._key(identity))

    def _earliest_pending(self, identity: str) -> UpgradeRequest:
        pending = self.store.list_requests(status=RequestStatus.PENDING, identity=identity)
        if not pending:
            raise RequestNotFoundError(
                f"No pending upgrade request for {identity}",
                details={"identity": identity},
            )
        return pending[0]

    def approve(
        self,
        identity: str,
        tier: Union[str, Tier],
        resolved_by: Optional[str] = None,
    ) -> UserPlanRecord:
        """
        Approve the earliest pending request for identity.

        The granted tier is the admin-supplied one, which may differ from the
        requested tier. Other pending requests for the identity stay pending.

        Raises:
            InvalidTierError: tier is not PLUS or PRO
            RequestNotFoundError: identity has no pending request
        """
        key = self._key(identity)
        granted = parse_upgradeable_tier(tier)
        with self._lock_for(key):
            request = self._earliest_pending(key)
            now = self._now()
            approved = request.model_copy(
                update={
                    "status": RequestStatus.APPROVED,
                    "resolved_at": now,
                    "approved_tier": granted,
                    "resolved_by": resolved_by,
                }
            )
            record = UserPlanRecord(identity=key, tier=granted, expires_at=now + self.plan_duration)
            self.store.resolve_request(approved, record)

        log_event(
            "info",
            "plan.upgrade_approved",
            identity=key,
            event_type="plan.upgrade_approved",
            extra={
                "upgrade_request_id": request.request_id,
                "requested_tier": request.requested_tier.value,
                "approved_tier": granted.value,
                "expires_at": record.expires_at.isoformat(),
                "resolved_by": resolved_by,
            },
        )
        return record

    def decline(self, identity: str, resolved_by: Optional[str] = None) -> UpgradeRequest:
        """
        Decline the earliest pending request for identity; the plan record is untouched.

        Raises:
            RequestNotFoundError: identity has no pending request
        """
        key = self._key(identity)
        with self._lock_for(key):
            request = self._earliest_pending(key)
            declined = request.model_copy(
                update={
                    "status": RequestStatus.DECLINED,
                    "resolved_at": self._now(),
                    "resolved_by": resolved_by,
                }
            )
            self.store.resolve_request(declined)

        log_event(
            "info",
            "plan.upgrade_declined",
            identity=key,
            event_type="plan.upgrade_declined",
            extra={"upgrade_request_id": request.request_id, "resolved_by": resolved_by},
        )
        return declined
