"""
codegolden/features/plans/store_sql.py

SQLAlchemy-backed plan store.

Maintains the same interface as InMemoryPlanStore so the ledger is agnostic
to where records live.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, insert, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from codegolden.core.database import get_db_session, make_session_factory, user_plan_records, upgrade_requests
from codegolden.core.errors import ConflictError
from codegolden.models.plan import RequestStatus, Tier, UpgradeRequest, UserPlanRecord

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; everything is stored as UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _row_to_request(row) -> UpgradeRequest:
    return UpgradeRequest(
        request_id=row.request_id,
        identity=row.identity,
        requested_tier=Tier(row.requested_tier),
        submitted_at=_aware(row.submitted_at),
        status=RequestStatus(row.status),
        resolved_at=_aware(row.resolved_at),
        approved_tier=Tier(row.approved_tier) if row.approved_tier else None,
        resolved_by=row.resolved_by,
    )


class SqlPlanStore:
    """Plan store over any SQLAlchemy engine (PostgreSQL in production, SQLite in tests)."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = make_session_factory(engine)

    def get_record(self, identity: str) -> Optional[UserPlanRecord]:
        with get_db_session(self._sessions) as session:
            row = session.execute(
                select(user_plan_records).where(user_plan_records.c.identity == identity)
            ).first()
        if not row:
            return None
        return UserPlanRecord(identity=row.identity, tier=Tier(row.tier), expires_at=_aware(row.expires_at))

    def put_record(self, record: UserPlanRecord) -> None:
        with get_db_session(self._sessions) as session:
            self._upsert_record(session, record)

    def _upsert_record(self, session: Session, record: UserPlanRecord) -> None:
        values = {"tier": record.tier.value, "expires_at": record.expires_at}
        dialect_insert = _UPSERT_INSERTS.get(self.engine.dialect.name)
        if dialect_insert is not None:
            session.execute(
                dialect_insert(user_plan_records)
                .values(identity=record.identity, **values)
                .on_conflict_do_update(index_elements=[user_plan_records.c.identity], set_=values)
            )
            return

        by_identity = user_plan_records.c.identity == record.identity
        result = session.execute(update(user_plan_records).where(by_identity).values(**values))
        if result.rowcount:
            return
        try:
            with session.begin_nested():
                session.execute(insert(user_plan_records).values(identity=record.identity, **values))
        except IntegrityError:
            # Another worker inserted the row after our UPDATE missed
            session.execute(update(user_plan_records).where(by_identity).values(**values))

    def add_request(self, request: UpgradeRequest) -> None:
        try:
            with get_db_session(self._sessions) as session:
                session.execute(
                    insert(upgrade_requests).values(
                        request_id=request.request_id,
                        identity=request.identity,
                        requested_tier=request.requested_tier.value,
                        submitted_at=request.submitted_at,
                        status=request.status.value,
                    )
                )
        except IntegrityError:
            raise ConflictError(f"Upgrade request {request.request_id} already exists")

    def get_request(self, request_id: str) -> Optional[UpgradeRequest]:
        with get_db_session(self._sessions) as session:
            row = session.execute(
                select(upgrade_requests).where(upgrade_requests.c.request_id == request_id)
            ).first()
        return _row_to_request(row) if row else None

    def resolve_request(self, request: UpgradeRequest, record: Optional[UserPlanRecord] = None) -> None:
        """Mark a pending request resolved and write `record`, in one transaction."""
        with get_db_session(self._sessions) as session:
            # Conditional on pending so resolved rows are never rewritten
            result = session.execute(
                update(upgrade_requests)
                .where(upgrade_requests.c.request_id == request.request_id)
                .where(upgrade_requests.c.status == RequestStatus.PENDING.value)
                .values(
                    status=request.status.value,
                    resolved_at=request.resolved_at,
                    approved_tier=request.approved_tier.value if request.approved_tier else None,
                    resolved_by=request.resolved_by,
                )
            )
            if result.rowcount == 0:
                exists = session.execute(
                    select(upgrade_requests.c.status).where(upgrade_requests.c.request_id == request.request_id)
                ).first()
                if exists is None:
                    raise KeyError(request.request_id)
                raise ConflictError(f"Upgrade request {request.request_id} is already {exists.status}")
            if record is not None:
                self._upsert_record(session, record)

    def list_requests(
        self,
        status: Optional[RequestStatus] = None,
        identity: Optional[str] = None,
    ) -> List[UpgradeRequest]:
        query = select(upgrade_requests)
        if status is not None:
            query = query.where(upgrade_requests.c.status == status.value)
        if identity is not None:
            query = query.where(upgrade_requests.c.identity == identity)
        query = query.order_by(upgrade_requests.c.seq)
        with get_db_session(self._sessions) as session:
            rows = session.execute(query).all()
        return [_row_to_request(row) for row in rows]
