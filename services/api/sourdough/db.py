from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .settings import Settings

logger = logging.getLogger("sourdough.db")


class Base(DeclarativeBase):
    pass


class Database:
    """Engine and session factory, built once at process start.

    The application lifespan owns the instance: it is created from the
    process ``Settings`` and disposed at shutdown.
    """

    def __init__(self, settings: Settings, engine: Engine | None = None):
        self.engine = engine or create_engine(settings.database_url, pool_pre_ping=True)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything written inside the block, or nothing.

    Any exception rolls the whole transaction back before it propagates.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
