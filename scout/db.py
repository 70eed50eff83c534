"""
scout.db

Single source of truth for database connectivity.

Contracts this module provides (used across the repo):
- get_engine() -> shared SQLAlchemy Engine (built lazily from DATABASE_URL)
- get_session_factory() -> shared sessionmaker bound to that engine
- session_scope(factory) context manager (commit / rollback / close)
- make_session_factory(engine) for callers that bring their own engine (tests)

Notes:
- DATABASE_URL is expected to be provided via environment (or .env).
- We normalize common scheme/driver variants to reduce footguns.
- Nothing here touches the database at import time.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _normalize_database_url(raw: str) -> str:
    """
    Normalize DATABASE_URL variants to something SQLAlchemy can reliably use.

    Normalizations:
    - postgres://  -> postgresql://
    - postgresql+psycopg:// -> postgresql+psycopg2://
    """
    url = (raw or "").strip()

    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]

    if url.startswith("postgresql+psycopg://"):
        url = "postgresql+psycopg2://" + url[len("postgresql+psycopg://") :]

    return url


def get_engine() -> Engine:
    """Return the shared SQLAlchemy engine, creating it on first use."""
    global _engine
    if _engine is None:
        raw = os.environ.get("DATABASE_URL", "")
        if not raw:
            raise RuntimeError(
                "DATABASE_URL is not set in environment. "
                "Export it (or put it in .env) before running flows."
            )
        _engine = create_engine(_normalize_database_url(raw), future=True)
    return _engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

