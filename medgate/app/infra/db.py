"""Database session utilities."""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, Session, select

from ..config import settings
from ..domain.models import PatientRecordRow
from .clock import advance_to

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, echo=False, future=True, connect_args=connect_args)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    class_=Session,
)

# Mutations are applied one at a time, in a single total order.
write_lock = threading.RLock()


def bind_engine(new_engine: Engine) -> None:
    """Point the session factory at another engine (tests, scripts)."""
    global engine
    engine = new_engine
    SessionLocal.configure(bind=new_engine)


def init_db(attempts: int = 30) -> None:
    """Create tables if they do not exist.

    Retries on startup to wait for a database service that is still booting.
    """
    last_err: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            SQLModel.metadata.create_all(engine)
            _seed_clock()
            return
        except Exception as exc:  # pragma: no cover
            last_err = exc
            logger.warning("waiting for database... (%d/%d) %s", attempt, attempts, exc)
            time.sleep(1)
    if last_err:
        raise last_err


def _seed_clock() -> None:
    """Keep timestamps monotonic across restarts of this process."""
    with Session(engine) as session:
        latest = session.exec(select(func.max(PatientRecordRow.timestamp))).first()
    if latest:
        advance_to(latest)


@contextmanager
def get_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_write_session() -> Iterator[Session]:
    """Session whose whole transaction runs under the process write lock."""
    with write_lock:
        with get_session() as session:
            yield session
