"""
Database engine, session factory and request dependencies.
"""
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

SessionScope = Callable[[], ContextManager[Session]]


def get_db() -> Iterator[Session]:
    """Yield a database session for the duration of a request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work that outlives the request (background training)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_scope() -> SessionScope:
    """Dependency returning the session factory used by background tasks."""
    return session_scope
