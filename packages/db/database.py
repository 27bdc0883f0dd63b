"""
SQLAlchemy engine and session management for alert persistence.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DATABASE_URL = "sqlite:///./data/chartcheck.db"
logger = logging.getLogger("chartcheck.db")


def normalize_database_url(url: str) -> str:
    # SQLAlchemy 2.0 only accepts the postgresql:// scheme
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


DATABASE_URL = normalize_database_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def configure_database(url: Optional[str] = None) -> Engine:
    """Rebind the module engine, e.g. after DATABASE_URL changed. Returns the new engine."""
    global DATABASE_URL, engine
    DATABASE_URL = normalize_database_url(url or os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    engine.dispose()
    engine = _make_engine(DATABASE_URL)
    SessionLocal.configure(bind=engine)
    logger.info("Database bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


def _ensure_sqlite_dir(url: str) -> None:
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url == "sqlite:///:memory:":
        return
    Path(url[len(prefix):]).expanduser().parent.mkdir(parents=True, exist_ok=True)


def init_db() -> None:
    """Create the alert tables if missing."""
    from packages.db.models import Base

    _ensure_sqlite_dir(DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured.")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session; commit on success, roll back and re-raise on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
