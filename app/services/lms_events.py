"""Outbound LMS notifications.

Events are side effects of a state change that has already been written.
``EventEmitter`` is the only thing services call: it hands the event to an
``EventSink`` and, if the sink fails, logs and counts the failure and
returns normally.  A dropped notification never fails the mutation that
produced it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

from app.core.clock import Clock, utc_now
from app.core.metrics import LMS_EVENTS
from app.middleware.request_context import request_id_var
from app.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

PROGRESS_UPDATED = "lms_progress_updated"
LESSON_COMPLETED = "lms_lesson_completed"
COURSE_COMPLETED = "lms_course_completed"
PATH_PROGRESS_UPDATED = "lms_path_progress_updated"
PATH_COMPLETED = "lms_path_completed"
CERTIFICATE_ISSUED = "lms_certificate_issued"
ENROLLMENT_CREATED = "lms_enrollment_created"
PATH_STARTED = "lms_path_started"
PATH_PUBLISHED = "lms_path_published"

EVENT_TYPES: frozenset[str] = frozenset(
    {
        PROGRESS_UPDATED,
        LESSON_COMPLETED,
        COURSE_COMPLETED,
        PATH_PROGRESS_UPDATED,
        PATH_COMPLETED,
        CERTIFICATE_ISSUED,
        ENROLLMENT_CREATED,
        PATH_STARTED,
        PATH_PUBLISHED,
    }
)


@dataclass(frozen=True, slots=True)
class LmsEvent:
    event_type: str
    learner_id: str | None
    occurred_at: int
    data: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


class EventSink(Protocol):
    async def send(self, event: LmsEvent) -> None: ...


class InMemoryEventSink:
    """Collects events in a list; used by tests and local runs."""

    def __init__(self) -> None:
        self.events: list[LmsEvent] = []

    async def send(self, event: LmsEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[LmsEvent]:
        return [e for e in self.events if e.event_type == event_type]


class TaskQueueEventSink:
    """Pushes each event onto the task queue for app/worker.py."""

    def __init__(self, queue: TaskQueue, queue_name: str) -> None:
        self._queue = queue
        self._queue_name = queue_name

    async def send(self, event: LmsEvent) -> None:
        await self._queue.enqueue(self._queue_name, event.to_payload())


class EventEmitter:
    def __init__(self, sink: EventSink, *, clock: Clock = utc_now) -> None:
        self._sink = sink
        self._clock = clock

    async def emit(
        self, event_type: str, learner_id: str | None, **data: Any
    ) -> bool:
        """Attempt delivery once; return whether the sink accepted it."""
        request_id = request_id_var.get()
        event = LmsEvent(
            event_type=event_type,
            learner_id=learner_id,
            occurred_at=self._clock(),
            data=data,
            request_id=None if request_id == "-" else request_id,
        )
        try:
            await self._sink.send(event)
        except Exception:
            LMS_EVENTS.labels(event_type=event_type, result="failed").inc()
            logger.exception(
                "Dropped LMS event %s for learner_id=%s",
                event_type,
                learner_id,
                extra={"event_type": event_type},
            )
            return False
        LMS_EVENTS.labels(event_type=event_type, result="emitted").inc()
        logger.debug("Emitted LMS event %s", event_type)
        return True
