"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine construction with sane pooling defaults
- A transactional session scope over a session factory
- Table definitions for the plan ledger
"""
import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Index, select
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger("codegolden")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


def init_engine(database_url: str) -> Engine:
    """
    Build an engine for database_url.

    SQLite shares a single connection so in-memory databases survive across
    sessions; everything else gets a QueuePool.
    """
    if not database_url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker):
    """
    Context manager for one database transaction.

    Commits on success, rolls back on error.

    Usage:
        with get_db_session(factory) as session:
            session.execute(...)
    """
    session: Session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Engine):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine):
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine)


def check_connection(engine: Engine) -> bool:
    """Return True if a trivial query succeeds."""
    try:
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Plan records: one row per identity
user_plan_records = Table(
    'user_plan_records',
    metadata,
    Column('identity', String(320), primary_key=True),
    Column('tier', String(20), nullable=False, server_default='free'),
    Column('expires_at', DateTime(timezone=True), nullable=True),
)

# Upgrade requests: seq preserves submission order
upgrade_requests = Table(
    'upgrade_requests',
    metadata,
    Column('seq', Integer, primary_key=True, autoincrement=True),
    Column('request_id', String(64), nullable=False, unique=True),
    Column('identity', String(320), nullable=False),
    Column('requested_tier', String(20), nullable=False),
    Column('submitted_at', DateTime(timezone=True), nullable=False),
    Column('status', String(20), nullable=False, server_default='pending'),
    Column('resolved_at', DateTime(timezone=True), nullable=True),
    Column('approved_tier', String(20), nullable=True),
    Column('resolved_by', String(320), nullable=True),
    # Pending queue lookups per identity
    Index('idx_upgrade_requests_identity_status', 'identity', 'status'),
    Index('idx_upgrade_requests_status', 'status'),
)
