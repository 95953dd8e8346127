"""
Engine and sessions for the budget database.

Both the engine and the session factory are built once from Settings and
cached; tests swap in their own factory through FastAPI dependency overrides.
"""
from functools import lru_cache

import psycopg
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from paybudget.config import get_settings


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    return create_engine(
        settings.get_sqlalchemy_url(),
        pool_size=settings.DB_POOL_SIZE,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    # use cases commit explicitly through unit_of_work
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=True)


def get_db():
    """Request-scoped session; closed when the request finishes"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Readiness check: one round trip over a raw psycopg connection.

    Raises psycopg.OperationalError when the database cannot be reached
    within DB_CONNECT_TIMEOUT seconds.
    """
    settings = get_settings()
    with psycopg.connect(settings.get_psycopg_dsn(), connect_timeout=settings.DB_CONNECT_TIMEOUT) as conn:
        conn.execute("SELECT 1").fetchone()
