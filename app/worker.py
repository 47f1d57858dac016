"""Notification worker.

RUN:  python -m app.worker

Consumes the LMS event queue filled by TaskQueueEventSink and dispatches
each event to the handler registered for its type.  Same image as the API,
different command:

  api:     uvicorn app.main:app --host 0.0.0.0 --port 8000
  worker:  python -m app.worker

Handlers here only log and count.  Delivery to downstream consumers
(analytics, email) plugs in by registering a handler for the event type.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.core.metrics import LMS_EVENTS
from app.db.redis import close_redis, create_redis
from app.services import lms_events
from app.services.task_queue import Task, TaskQueue, build_task_queue

EventHandler = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, EventHandler] = {}


def register_handler(*event_types: str):
    """Decorator: register a coroutine for one or more event types."""

    def decorator(func: EventHandler) -> EventHandler:
        for event_type in event_types:
            HANDLERS[event_type] = func
        return func

    return decorator


@register_handler(
    lms_events.PROGRESS_UPDATED,
    lms_events.LESSON_COMPLETED,
    lms_events.ENROLLMENT_CREATED,
    lms_events.PATH_STARTED,
    lms_events.PATH_PROGRESS_UPDATED,
    lms_events.PATH_PUBLISHED,
)
async def handle_activity(payload: dict[str, Any]) -> None:
    logger.info(
        "%s learner_id=%s data=%s",
        payload["event_type"],
        payload.get("learner_id"),
        payload.get("data", {}),
        extra={"event_type": payload["event_type"]},
    )


@register_handler(
    lms_events.COURSE_COMPLETED,
    lms_events.PATH_COMPLETED,
    lms_events.CERTIFICATE_ISSUED,
)
async def handle_milestone(payload: dict[str, Any]) -> None:
    data = payload.get("data", {})
    logger.info(
        "Milestone %s learner_id=%s target=%s",
        payload["event_type"],
        payload.get("learner_id"),
        data.get("course_id") or data.get("path_id") or data.get("certificate_id"),
        extra={
            "event_type": payload["event_type"],
            "learner_id": payload.get("learner_id") or "-",
            "course_id": data.get("course_id"),
            "path_id": data.get("path_id"),
        },
    )


async def handle_task(task: Task) -> bool:
    """Dispatch one task; return False if it was dropped."""
    event_type = task.payload.get("event_type")
    handler = HANDLERS.get(event_type) if isinstance(event_type, str) else None
    if handler is None:
        logger.warning("No handler for task %s event_type=%r", task.id, event_type)
        LMS_EVENTS.labels(event_type=str(event_type), result="failed").inc()
        return False
    try:
        await handler(task.payload)
    except Exception:
        # at-most-once: a failed task is logged and dropped
        logger.exception("Task %s (%s) failed", task.id, event_type)
        LMS_EVENTS.labels(event_type=event_type, result="failed").inc()
        return False
    LMS_EVENTS.labels(event_type=event_type, result="processed").inc()
    return True


async def drain(queue: TaskQueue, queue_name: str) -> int:
    """Process everything currently queued without blocking; return the count."""
    processed = 0
    # BRPOP with timeout=0 blocks forever, so check the length first
    while await queue.queue_length(queue_name) > 0:
        task = await queue.dequeue(queue_name, timeout=1)
        if task is None:
            break
        await handle_task(task)
        processed += 1
    return processed


async def run_worker(queue: TaskQueue, queue_name: str) -> None:
    logger.info("Worker started, listening on queue %s", queue_name)
    while True:
        task = await queue.dequeue(queue_name, timeout=1)
        if task is None:
            await queue.queue_length(queue_name)
            continue
        await handle_task(task)


async def main() -> None:
    if not SETTINGS.redis_url:
        raise SystemExit("REDIS_URL is required to run the worker")
    client = create_redis(SETTINGS.redis_url)
    try:
        await run_worker(build_task_queue(client), SETTINGS.lms_events_queue)
    finally:
        await close_redis(client)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(main())
