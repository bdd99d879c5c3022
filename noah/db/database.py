"""SQLAlchemy engine and session management."""

from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from noah.config import get_settings
from noah.core.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

_engine: Optional[Engine] = None
_session_local: Optional[sessionmaker] = None


def normalize_database_url(url: str) -> str:
    """Route bare Postgres URLs through the psycopg (v3) driver."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://"):]
    return url


def get_engine() -> Engine:
    """Get or create the process-wide engine.

    - PostgreSQL: pooled connections with pre-ping
    - SQLite: check_same_thread=False so worker threads can share it
    """
    global _engine
    if _engine is None:
        url = normalize_database_url(get_settings().database_url)
        kwargs: dict = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            database = make_url(url).database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
        else:
            kwargs["pool_size"] = 5
            kwargs["max_overflow"] = 10
            kwargs["pool_timeout"] = 5
        _engine = create_engine(url, **kwargs)
    return _engine


def get_session_local() -> sessionmaker:
    """Get the session factory bound to the current engine."""
    global _session_local
    if _session_local is None:
        _session_local = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_local


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a database session."""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def dispose_engine() -> None:
    """Dispose the engine so the next call rebuilds it from settings."""
    global _engine, _session_local
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_local = None


def verify_database_connection() -> bool:
    """Return True if a trivial query succeeds."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as exc:
        logger.warning("Database connectivity check failed", data={"error": str(exc)})
        return False
