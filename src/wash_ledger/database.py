"""Database connection and session management."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from wash_ledger.config import get_settings
from wash_ledger.models import Base

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def get_engine(url: str | None = None) -> Engine:
    """Create database engine."""
    url = url or get_settings().database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


# Global engine and session factory
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_db(url: str | None = None) -> tuple[Engine, sessionmaker[Session]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None:
        _engine = get_engine(url)
        _session_factory = sessionmaker(
            _engine,
            expire_on_commit=False,
            autoflush=False,
        )
    return _engine, _session_factory


def create_schema(engine: Engine) -> None:
    """Create all tables known to the ORM metadata."""
    Base.metadata.create_all(engine)

