"""Lesson progress updates.

``apply_lesson_update`` is the pure state transition; ``ProgressUpdater``
wraps it with the fetch-or-enroll and the write.  Client telemetry is
clamped, never rejected: out-of-range percentages and negative positions
are pulled back into range so a retry or a buggy player cannot fail the
call.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

from app.core.clock import Clock, utc_now
from app.core.metrics import COMPLETIONS, PROGRESS_UPDATES
from app.models.progress import CourseProgress, LessonProgress
from app.repos.progress_repo import ProgressRepo
from app.services.path_rollup import round_half_up

logger = logging.getLogger(__name__)

# at most one "progress changed" notification per lesson per interval
PROGRESS_EVENT_INTERVAL_SECONDS = 30


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    lesson_id: str
    position_ms: int | None = None
    percent_complete: float | None = None
    completed: bool | None = None


@dataclass(frozen=True, slots=True)
class ProgressResult:
    progress: CourseProgress
    should_emit_event: bool
    lesson_just_completed: bool
    course_just_completed: bool


def _clamp_percent(value: float) -> int:
    if math.isnan(value):
        return 0
    return round_half_up(max(0.0, min(100.0, value)))


def apply_lesson_update(
    progress: CourseProgress, update: ProgressUpdate, *, now: int
) -> ProgressResult:
    lesson = progress.lesson_progress.get(update.lesson_id) or LessonProgress(
        lesson_id=update.lesson_id
    )

    percent = lesson.percent_complete
    if update.percent_complete is not None:
        percent = _clamp_percent(update.percent_complete)

    completed = lesson.completed
    completed_at = lesson.completed_at
    lesson_just_completed = False
    if lesson.completed:
        # completed=False from the client is ignored
        percent = 100
        if completed_at is None:
            completed_at = now
    elif update.completed:
        percent = 100
        completed = True
        completed_at = now
        lesson_just_completed = True

    position = lesson.current_position_ms
    if update.position_ms is not None:
        position = max(0, int(update.position_ms))

    last_event = lesson.last_progress_event_at
    should_emit = (
        lesson_just_completed
        or last_event is None
        or now - last_event >= PROGRESS_EVENT_INTERVAL_SECONDS
    )

    lesson = replace(
        lesson,
        percent_complete=percent,
        completed=completed,
        completed_at=completed_at,
        current_position_ms=position,
        started_at=lesson.started_at if lesson.started_at is not None else now,
        last_accessed_at=now,
        last_progress_event_at=now if should_emit else last_event,
    )

    lessons = dict(progress.lesson_progress)
    lessons[update.lesson_id] = lesson

    # mean over the lessons touched so far, not the course's full lesson list
    course_percent = round_half_up(
        sum(lp.percent_complete for lp in lessons.values()) / len(lessons)
    )

    course_completed = progress.completed
    course_completed_at = progress.completed_at
    course_just_completed = False
    if progress.completed:
        course_percent = 100
    elif course_percent == 100:
        course_completed = True
        course_completed_at = now
        course_just_completed = True

    updated = replace(
        progress,
        lesson_progress=lessons,
        percent_complete=course_percent,
        completed=course_completed,
        completed_at=course_completed_at,
        current_lesson_id=update.lesson_id,
        last_position_ms=(
            position if update.position_ms is not None else progress.last_position_ms
        ),
        started_at=progress.started_at if progress.started_at is not None else now,
        last_accessed_at=now,
        updated_at=now,
    )
    return ProgressResult(
        progress=updated,
        should_emit_event=should_emit,
        lesson_just_completed=lesson_just_completed,
        course_just_completed=course_just_completed,
    )


class ProgressUpdater:
    def __init__(self, progress_repo: ProgressRepo, *, clock: Clock = utc_now) -> None:
        self._progress = progress_repo
        self._clock = clock

    async def apply_progress(
        self, learner_id: str, course_id: str, update: ProgressUpdate
    ) -> ProgressResult:
        now = self._clock()
        progress = await self._progress.get_course_progress(learner_id, course_id)
        auto_enrolled = progress is None
        if progress is None:
            progress = await self._progress.insert_course_progress_if_absent(
                CourseProgress.new(
                    learner_id=learner_id,
                    course_id=course_id,
                    origin="self_enrolled",
                    now=now,
                )
            )
            logger.info(
                "Auto-enrolled learner_id=%s course_id=%s on first progress event",
                learner_id,
                course_id,
            )

        result = apply_lesson_update(progress, update, now=now)
        await self._progress.put_course_progress(result.progress)

        PROGRESS_UPDATES.labels(
            result="auto_enrolled" if auto_enrolled else "applied"
        ).inc()
        if result.lesson_just_completed:
            COMPLETIONS.labels(kind="lesson").inc()
            logger.info(
                "Lesson completed learner_id=%s course_id=%s lesson_id=%s",
                learner_id,
                course_id,
                update.lesson_id,
            )
        if result.course_just_completed:
            COMPLETIONS.labels(kind="course").inc()
            logger.info(
                "Course completed learner_id=%s course_id=%s", learner_id, course_id
            )
        return result
