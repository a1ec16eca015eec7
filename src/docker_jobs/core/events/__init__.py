"""Job lifecycle events.

The orchestration loop notifies the rest of the system through an
``EventSink``: it publishes one event per lifecycle transition
(running, finished, failed, stopped) and the stop operation publishes
canceled. Subscribers never block or break the loop.

Usage::

    from docker_jobs.core.events import EventKind
    from docker_jobs.core.events.memory import InMemoryEventSink

    sink = InMemoryEventSink()
    sink.subscribe("docker_jobs.job.*", lambda event: print(event.event_type))
    sink.publish(EventKind.FINISHED, job)

Modules
-------
memory      InMemoryEventSink -- synchronous fan-out, single process
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from docker_jobs.core.timestamps import utc_now

if TYPE_CHECKING:
    from docker_jobs.jobs.models import Job

__all__ = [
    "Event",
    "EventKind",
    "EventHandler",
    "EventSink",
    "build_event",
]


class EventKind(str, Enum):
    """Dotted event codes published for job transitions."""

    RUNNING = "docker_jobs.job.running"
    FINISHED = "docker_jobs.job.finished"
    FAILED = "docker_jobs.job.failed"
    STOPPED = "docker_jobs.job.stopped"
    CANCELED = "docker_jobs.job.canceled"


@dataclass
class Event:
    """Event payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``docker_jobs.job.finished``)
        source: Origin component
        payload: Job snapshot plus an optional message
        timestamp: When the event occurred (UTC)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def job_id(self) -> int | None:
        return self.payload.get("job_id")

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``docker_jobs.job.*`` matches ``docker_jobs.job.failed``
            - ``*`` matches everything
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


EventHandler = Callable[[Event], None]


def build_event(
    kind: EventKind,
    job: Job,
    message: str | None = None,
    source: str = "docker-jobs",
) -> Event:
    """Snapshot *job* into an ``Event`` of the given kind."""
    payload: dict[str, Any] = {
        "job_id": job.id,
        "queue": job.queue,
        "state": job.state,
        "container_id": job.docker_container_id,
        "exit_code": job.exit_code,
    }
    if message is not None:
        payload["message"] = message
    return Event(event_type=kind.value, source=source, payload=payload)


@runtime_checkable
class EventSink(Protocol):
    """Publishes job lifecycle events."""

    def publish(self, kind: EventKind, job: Job, message: str | None = None) -> Event:
        """Publish one event for *job* and return it."""
        ...
