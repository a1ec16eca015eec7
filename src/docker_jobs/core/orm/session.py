"""SQLAlchemy engine factory and session class.

* ``create_jobs_engine``   -- Create a SA engine from a URL.
* ``JobsSession``          -- Session with ``expire_on_commit=False``.
* ``jobs_session_factory`` -- ``sessionmaker`` producing ``JobsSession``.
* ``init_db``              -- Create all tables known to ``JobsBase``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docker_jobs.core.orm.base import JobsBase


def create_jobs_engine(
    url: str = "sqlite:///docker_jobs.db",
    *,
    echo: bool = False,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    SQLite URLs get ``check_same_thread=False`` and WAL journaling, so the
    orchestrator and a concurrent ``stop`` invocation can share the file.
    ``sqlite://`` (in-memory) uses a ``StaticPool`` so every session sees the
    same database.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = _sa_create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return _sa_create_engine(url, echo=echo, **kwargs)


class JobsSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Jobs stay readable after ``flush()`` commits; fresh state is pulled in
    explicitly through ``JobStore.refresh()``.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def jobs_session_factory(engine: Engine) -> sessionmaker[JobsSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``JobsSession`` instances."""
    return sessionmaker(bind=engine, class_=JobsSession)


def init_db(engine: Engine) -> None:
    """Create every table registered on ``JobsBase`` (idempotent)."""
    # Import for side effect: registers the mapped classes on the metadata.
    import docker_jobs.jobs.models  # noqa: F401

    JobsBase.metadata.create_all(engine)
