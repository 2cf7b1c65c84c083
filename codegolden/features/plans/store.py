"""
codegolden/features/plans/store.py

Storage for plan records and upgrade requests.

PlanStore is the interface the ledger depends on; InMemoryPlanStore is the
default process-local implementation (state is lost on restart). SqlPlanStore
in store_sql.py provides the same interface over SQLAlchemy.
"""

import logging
import threading
from typing import Dict, List, Optional, Protocol

from codegolden.core.errors import ConflictError
from codegolden.models.plan import RequestStatus, UpgradeRequest, UserPlanRecord

logger = logging.getLogger("codegolden.plans")


class PlanStore(Protocol):
    """
    Protocol for ledger storage backends.

    list_requests always returns requests in submission order.
    resolve_request must refuse to modify a request that is no longer pending,
    and writes the request and the optional plan record together or not at all.
    """

    def get_record(self, identity: str) -> Optional[UserPlanRecord]:
        ...

    def put_record(self, record: UserPlanRecord) -> None:
        ...

    def add_request(self, request: UpgradeRequest) -> None:
        ...

    def get_request(self, request_id: str) -> Optional[UpgradeRequest]:
        ...

    def resolve_request(self, request: UpgradeRequest, record: Optional[UserPlanRecord] = None) -> None:
        ...

    def list_requests(
        self,
        status: Optional[RequestStatus] = None,
        identity: Optional[str] = None,
    ) -> List[UpgradeRequest]:
        ...


class InMemoryPlanStore:
    """Dict-backed store. Thread-safe; records are immutable values."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, UserPlanRecord] = {}
        self._requests: Dict[str, UpgradeRequest] = {}
        self._order: List[str] = []

    def get_record(self, identity: str) -> Optional[UserPlanRecord]:
        with self._lock:
            return self._records.get(identity)

    def put_record(self, record: UserPlanRecord) -> None:
        with self._lock:
            self._records[record.identity] = record

    def add_request(self, request: UpgradeRequest) -> None:
        with self._lock:
            if request.request_id in self._requests:
                raise ConflictError(f"Upgrade request {request.request_id} already exists")
            self._requests[request.request_id] = request
            self._order.append(request.request_id)

    def get_request(self, request_id: str) -> Optional[UpgradeRequest]:
        with self._lock:
            return self._requests.get(request_id)

    def resolve_request(self, request: UpgradeRequest, record: Optional[UserPlanRecord] = None) -> None:
        with self._lock:
            current = self._requests.get(request.request_id)
            if current is None:
                raise KeyError(request.request_id)
            if not current.is_pending:
                raise ConflictError(f"Upgrade request {request.request_id} is already {current.status.value}")
            self._requests[request.request_id] = request
            if record is not None:
                self._records[record.identity] = record

    def list_requests(
        self,
        status: Optional[RequestStatus] = None,
        identity: Optional[str] = None,
    ) -> List[UpgradeRequest]:
        with self._lock:
            requests = [self._requests[rid] for rid in self._order]
        if status is not None:
            requests = [r for r in requests if r.status == status]
        if identity is not None:
            requests = [r for r in requests if r.identity == identity]
        return requests


def build_plan_store(database_url: Optional[str] = None) -> PlanStore:
    """
    Pick the store implementation.

    - SQL store when a database URL is configured and reachable
    - Falls back to in-memory if the database is unavailable
    """
    if database_url:
        try:
            from codegolden.core.database import check_connection, create_all_tables, init_engine
            from codegolden.features.plans.store_sql import SqlPlanStore

            engine = init_engine(database_url)
            if check_connection(engine):
                create_all_tables(engine)
                logger.info("[plans] using SQL plan store")
                return SqlPlanStore(engine)
            logger.warning("[plans] database unavailable, falling back to in-memory store")
        except Exception as exc:
            logger.warning(f"[plans] failed to initialize SQL store, falling back to in-memory: {exc}")

    return InMemoryPlanStore()
