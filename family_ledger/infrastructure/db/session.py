"""
Engine, session factory and the declarative base of the ledger schema
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

import psycopg
from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from family_ledger.config import get_settings


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(
        settings.get_sqlalchemy_url(),
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        echo=settings.DB_ECHO,
    )


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: one session per request, always closed.

    Use cases commit themselves; whatever is still pending when the request
    ends is discarded by close().

    Usage:
        @router.get("/families")
        def list_families(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts and maintenance jobs outside a request"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness probe against PostgreSQL, bypassing the pool

    Raises:
        psycopg.OperationalError: the database is unreachable
    """
    with psycopg.connect(get_settings().DATABASE_URL, connect_timeout=3) as conn:
        conn.execute("SELECT 1").fetchone()
