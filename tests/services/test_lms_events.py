"""Event emission is best-effort: a failing sink never raises to the caller."""

from __future__ import annotations

import asyncio
import logging

import pytest
from prometheus_client import REGISTRY

from app.services import lms_events
from app.services.lms_events import (
    EventEmitter,
    InMemoryEventSink,
    LmsEvent,
    TaskQueueEventSink,
)
from app.services.task_queue import InMemoryTaskQueue
from tests.conftest import T0, FakeClock


class _BrokenSink:
    async def send(self, event: LmsEvent) -> None:
        raise ConnectionError("queue unavailable")


def _sample(event_type: str, result: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "lms_events_total", {"event_type": event_type, "result": result}
        )
        or 0.0
    )


def test_emit_delivers_to_sink() -> None:
    sink = InMemoryEventSink()
    emitter = EventEmitter(sink, clock=FakeClock())
    before = _sample(lms_events.COURSE_COMPLETED, "emitted")

    ok = asyncio.run(emitter.emit(lms_events.COURSE_COMPLETED, "learner-1", course_id="c1"))

    assert ok is True
    [event] = sink.events
    assert event.event_type == "lms_course_completed"
    assert event.learner_id == "learner-1"
    assert event.occurred_at == T0
    assert event.data == {"course_id": "c1"}
    assert _sample(lms_events.COURSE_COMPLETED, "emitted") - before == 1


def test_sink_failure_is_swallowed_and_counted(caplog: pytest.LogCaptureFixture) -> None:
    emitter = EventEmitter(_BrokenSink(), clock=FakeClock())
    before = _sample(lms_events.PATH_COMPLETED, "failed")

    with caplog.at_level(logging.ERROR, logger="app.services.lms_events"):
        ok = asyncio.run(emitter.emit(lms_events.PATH_COMPLETED, "learner-1", path_id="p1"))

    assert ok is False
    assert _sample(lms_events.PATH_COMPLETED, "failed") - before == 1
    assert "Dropped LMS event lms_path_completed" in caplog.text


def test_task_queue_sink_enqueues_payload() -> None:
    queue = InMemoryTaskQueue()
    emitter = EventEmitter(TaskQueueEventSink(queue, "lms_events"), clock=FakeClock())

    asyncio.run(emitter.emit(lms_events.LESSON_COMPLETED, "learner-1", lesson_id="l1"))

    task = asyncio.run(queue.dequeue("lms_events"))
    assert task is not None
    assert task.payload["event_type"] == "lms_lesson_completed"
    assert task.payload["learner_id"] == "learner-1"
    assert task.payload["data"] == {"lesson_id": "l1"}
    assert task.payload["occurred_at"] == T0


def test_event_types_are_all_prefixed() -> None:
    assert len(lms_events.EVENT_TYPES) == 9
    assert all(t.startswith("lms_") for t in lms_events.EVENT_TYPES)
