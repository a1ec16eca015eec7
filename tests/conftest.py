"""
Shared pytest fixtures for docker-jobs tests.

- In-memory SQLite job store (fresh database per test)
- Scriptable stub engine with the default image present
- In-memory event sink
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest
from sqlalchemy.orm import Session

from docker_jobs.core.events.memory import InMemoryEventSink
from docker_jobs.core.orm import create_jobs_engine, init_db, jobs_session_factory
from docker_jobs.engine.stub import StubEngineClient
from docker_jobs.jobs.models import Job
from docker_jobs.jobs.store import SqlJobStore

DEFAULT_IMAGE = "app:latest"


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    engine = create_jobs_engine("sqlite://")
    init_db(engine)
    session = jobs_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(db_session: Session) -> SqlJobStore:
    return SqlJobStore(db_session)


@pytest.fixture
def engine() -> StubEngineClient:
    return StubEngineClient(images={DEFAULT_IMAGE})


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def make_job(store: SqlJobStore) -> Callable[..., Job]:
    """Insert a pending job; keyword arguments override column values."""

    def _make(**kwargs: Any) -> Job:
        kwargs.setdefault("command", "python run.py --fast")
        return store.add(Job(**kwargs))

    return _make
