"""Path-level rollup derived from course progress.

``compute_path_rollup`` is pure: given the same path, course snapshots and
existing record it returns the same result, so recomputing on every course
event is safe.  ``merge_rollup`` is the separate pass that folds a rollup
into the stored PathProgress, keeping enrollment fields and set-once
timestamps.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, replace

from app.models.catalog import LearningPath
from app.models.progress import (
    CourseProgress,
    EnrollmentOrigin,
    PathProgress,
    PathStatus,
)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class PathRollup:
    total_courses: int
    completed_courses: int
    percent_complete: int
    status: PathStatus
    next_course_id: str | None
    started_at: int | None
    completed_at: int | None
    last_activity_at: int | None


def _max_opt(*values: int | None) -> int | None:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def compute_path_rollup(
    path: LearningPath,
    course_progress: Mapping[str, CourseProgress],
    existing: PathProgress | None,
    *,
    now: int,
) -> PathRollup:
    refs = path.ordered_courses()
    total = len(refs)
    completed = 0
    started = False
    next_course_id: str | None = None
    earliest_start: int | None = None
    latest_access: int | None = None

    for ref in refs:
        progress = course_progress.get(ref.course_id)
        is_completed = progress is not None and progress.completed
        if is_completed:
            completed += 1
        elif ref.required and next_course_id is None:
            next_course_id = ref.course_id
        if progress is None:
            continue
        if progress.is_started:
            started = True
        if progress.started_at is not None and (
            earliest_start is None or progress.started_at < earliest_start
        ):
            earliest_start = progress.started_at
        latest_access = _max_opt(latest_access, progress.last_accessed_at)

    percent = round_half_up(100 * completed / total) if total else 0

    status: PathStatus
    if total > 0 and completed == total:
        status = "completed"
    elif started:
        status = "in_progress"
    else:
        status = "not_started"

    started_at = existing.started_at if existing is not None else None
    if started_at is None:
        started_at = earliest_start

    completed_at = existing.completed_at if existing is not None else None
    if completed_at is None and status == "completed":
        completed_at = now

    return PathRollup(
        total_courses=total,
        completed_courses=completed,
        percent_complete=percent,
        status=status,
        next_course_id=next_course_id,
        started_at=started_at,
        completed_at=completed_at,
        last_activity_at=_max_opt(
            existing.last_activity_at if existing is not None else None, latest_access
        ),
    )


def merge_rollup(
    existing: PathProgress | None,
    rollup: PathRollup,
    *,
    learner_id: str,
    path_id: str,
    now: int,
    origin: EnrollmentOrigin = "self_enrolled",
) -> PathProgress:
    base = existing or PathProgress(
        learner_id=learner_id,
        path_id=path_id,
        enrollment_origin=origin,
        enrolled_at=now,
    )
    return replace(
        base,
        total_courses=rollup.total_courses,
        completed_courses=rollup.completed_courses,
        percent_complete=rollup.percent_complete,
        status=rollup.status,
        next_course_id=rollup.next_course_id,
        started_at=rollup.started_at,
        completed_at=rollup.completed_at,
        last_activity_at=rollup.last_activity_at,
        updated_at=now,
    )
