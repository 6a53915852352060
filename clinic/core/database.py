# clinic/core/database.py
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from clinic.core.config import get_settings

settings = get_settings()


def _engine_options(url: str) -> dict[str, Any]:
    """
    Postgres gets a pre-ping pool; SQLite (local runs, tests) must allow
    the session to cross FastAPI's threadpool.
    """
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(
    str(settings.database_url),
    future=True,
    **_engine_options(str(settings.database_url)),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    One session per request; ClinicStore owns commit and rollback.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Session for scripts running outside of FastAPI dependencies.

    Usage:
        with session_scope() as db:
            store = ClinicStore(db)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
