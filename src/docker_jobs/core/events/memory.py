"""
In-memory event sink.

Delivers events synchronously to every matching subscriber, in
subscription order. Handler exceptions are logged and do not stop
delivery or propagate into the orchestration loop. The most recent
events are kept in a bounded history for diagnostics and tests.
"""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docker_jobs.core.events import Event, EventHandler, EventKind, build_event
from docker_jobs.core.logging import get_logger

if TYPE_CHECKING:
    from docker_jobs.jobs.models import Job

__all__ = ["InMemoryEventSink"]

logger = get_logger(__name__)


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: EventHandler


class InMemoryEventSink:
    """In-process event sink.

    Example::

        sink = InMemoryEventSink()
        sink.subscribe("docker_jobs.job.failed", notify_on_call)
        sink.publish(EventKind.FAILED, job, "job exited with code: 1")
    """

    def __init__(self, history_size: int = 1000, source: str = "docker-jobs") -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._history: deque[Event] = deque(maxlen=history_size)
        self._source = source

    def publish(self, kind: EventKind, job: Job, message: str | None = None) -> Event:
        event = build_event(kind, job, message, source=self._source)
        self._history.append(event)

        for sub in list(self._subscriptions.values()):
            if not event.matches(sub.pattern):
                continue
            try:
                sub.handler(event)
            except Exception as exc:
                logger.warning(
                    "event_handler_error",
                    subscription_id=sub.id,
                    event_type=event.event_type,
                    error=str(exc),
                )
        return event

    def subscribe(self, pattern: str, handler: EventHandler) -> str:
        """Subscribe *handler* to events matching *pattern*; returns the subscription id."""
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(id=sub_id, pattern=pattern, handler=handler)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        self._subscriptions.pop(subscription_id, None)

    @property
    def history(self) -> list[Event]:
        return list(self._history)

    def events_for(self, job_id: int) -> list[Event]:
        return [e for e in self._history if e.job_id == job_id]

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)
