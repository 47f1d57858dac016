from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from app import worker
from app.services import lms_events
from app.services.lms_events import EventEmitter, TaskQueueEventSink
from app.services.task_queue import InMemoryTaskQueue, Task
from tests.conftest import FakeClock


def _sample(event_type: str, result: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "lms_events_total", {"event_type": event_type, "result": result}
        )
        or 0.0
    )


def test_every_event_type_has_a_handler() -> None:
    assert set(worker.HANDLERS) == set(lms_events.EVENT_TYPES)


def test_handle_task_dispatches_and_counts() -> None:
    before = _sample(lms_events.COURSE_COMPLETED, "processed")
    task = Task(
        id="t-1",
        queue="lms_events",
        payload={
            "event_type": lms_events.COURSE_COMPLETED,
            "learner_id": "learner-1",
            "data": {"course_id": "c1"},
        },
    )
    assert asyncio.run(worker.handle_task(task)) is True
    assert _sample(lms_events.COURSE_COMPLETED, "processed") - before == 1


def test_unknown_event_type_is_dropped() -> None:
    before = _sample("lms_unknown", "failed")
    task = Task(id="t-2", queue="lms_events", payload={"event_type": "lms_unknown"})
    assert asyncio.run(worker.handle_task(task)) is False
    assert _sample("lms_unknown", "failed") - before == 1


def test_failing_handler_is_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
    async def boom(payload: dict) -> None:
        raise RuntimeError("downstream unavailable")

    monkeypatch.setitem(worker.HANDLERS, lms_events.PATH_COMPLETED, boom)
    before = _sample(lms_events.PATH_COMPLETED, "failed")
    task = Task(id="t-3", queue="lms_events", payload={"event_type": lms_events.PATH_COMPLETED})
    assert asyncio.run(worker.handle_task(task)) is False
    assert _sample(lms_events.PATH_COMPLETED, "failed") - before == 1


def test_drain_processes_emitted_events() -> None:
    queue = InMemoryTaskQueue()
    emitter = EventEmitter(TaskQueueEventSink(queue, "lms_events"), clock=FakeClock())

    async def scenario() -> int:
        await emitter.emit(lms_events.LESSON_COMPLETED, "learner-1", lesson_id="l1")
        await emitter.emit(lms_events.CERTIFICATE_ISSUED, "learner-1", certificate_id="cert_x")
        return await worker.drain(queue, "lms_events")

    assert asyncio.run(scenario()) == 2
    assert asyncio.run(queue.queue_length("lms_events")) == 0
