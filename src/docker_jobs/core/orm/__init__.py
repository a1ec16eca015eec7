"""SQLAlchemy ORM layer for docker-jobs.

Usage::

    from docker_jobs.core.orm import create_jobs_engine, init_db, jobs_session_factory

    engine = create_jobs_engine("sqlite:///docker_jobs.db")
    init_db(engine)
    session = jobs_session_factory(engine)()
"""

from docker_jobs.core.orm.base import JobsBase
from docker_jobs.core.orm.session import (
    JobsSession,
    create_jobs_engine,
    init_db,
    jobs_session_factory,
)

__all__ = [
    "JobsBase",
    "JobsSession",
    "create_jobs_engine",
    "init_db",
    "jobs_session_factory",
]
