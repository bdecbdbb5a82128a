"""
core/db.py -- SQLAlchemy engine construction shared by every store.

Usage:
    engine = make_engine("sqlite:///vaultdesk.db")
    engine = make_engine("postgresql://user:pw@host/db")

Layer rule: core/ is the kernel. No imports from api/, auth/, or records/.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import SingletonThreadPool


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def is_memory_url(db_url: str) -> bool:
    """True for plain ":memory:" and named "mode=memory" SQLite URIs."""
    return db_url.startswith("sqlite") and (":memory:" in db_url or "mode=memory" in db_url)


def make_engine(db_url: str) -> Engine:
    """Build an engine, applying the SQLite-specific settings when needed.

    check_same_thread=False: FastAPI runs sync handlers in a thread pool, so
    a pooled connection may be used by a thread other than its creator.

    In-memory databases get SingletonThreadPool (one connection per thread)
    explicitly. A memory database lives only as long as a connection to it,
    so it must not be left to a pool that recycles connections.
    """
    connect_args: dict = {}
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    if is_memory_url(db_url):
        kwargs["poolclass"] = SingletonThreadPool
    engine = create_engine(db_url, connect_args=connect_args, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
