"""Outbound task queue using Redis lists.

The API side LPUSHes a JSON task onto ``tasks:<queue>``; the worker BRPOPs
from the other end, so tasks are consumed in FIFO order.  BRPOP blocks in
Redis until a task arrives instead of spinning.

Delivery is at-most-once: a worker that dies mid-task loses that task.
LMS notifications tolerate that, since nothing durable is derived from
them.  Moving to LMOVE with a processing list would give at-least-once.
"""

from __future__ import annotations

import json
import uuid
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Protocol, runtime_checkable

from app.core.metrics import QUEUE_DEPTH


@dataclass(frozen=True, slots=True)
class Task:
    """One queued message.

    queue:   logical queue name, e.g. "lms_events"
    payload: JSON-serializable body the handler receives
    """

    id: str
    queue: str
    payload: dict[str, Any]


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict[str, Any]) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


def _new_task(queue: str, payload: dict[str, Any]) -> Task:
    return Task(id=uuid.uuid4().hex, queue=queue, payload=payload)


class InMemoryTaskQueue:
    """Process-local queue for tests and runs without REDIS_URL."""

    def __init__(self) -> None:
        self._queues: dict[str, deque[Task]] = {}

    async def enqueue(self, queue: str, payload: dict[str, Any]) -> Task:
        task = _new_task(queue, payload)
        pending = self._queues.setdefault(queue, deque())
        pending.append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(pending))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        pending = self._queues.get(queue)
        if not pending:
            return None
        task = pending.popleft()
        QUEUE_DEPTH.labels(queue_name=queue).set(len(pending))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, ()))


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    def _key(self, queue: str) -> str:
        return f"{self._PREFIX}{queue}"

    async def enqueue(self, queue: str, payload: dict[str, Any]) -> Task:
        task = _new_task(queue, payload)
        # head in, tail out
        await self._redis.lpush(self._key(queue), json.dumps(asdict(task)))
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        result = await self._redis.brpop(self._key(queue), timeout=timeout)
        if result is None:
            return None
        _, raw = result
        return Task(**json.loads(raw))

    async def queue_length(self, queue: str) -> int:
        depth = await self._redis.llen(self._key(queue))
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return depth


def build_task_queue(redis_client=None) -> TaskQueue:
    if redis_client is None:
        return InMemoryTaskQueue()
    return RedisTaskQueue(redis_client)
