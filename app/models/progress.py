from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

EnrollmentOrigin = Literal["self_enrolled", "assigned", "required", "recommended"]
PathStatus = Literal["not_started", "in_progress", "completed"]

ENROLLMENT_ORIGINS: tuple[str, ...] = (
    "self_enrolled",
    "assigned",
    "required",
    "recommended",
)


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """Per-lesson state embedded in a CourseProgress.

    ``completed`` and ``completed_at`` are monotonic: once set they never
    revert.  ``completed`` implies ``percent_complete == 100``.
    """

    lesson_id: str
    percent_complete: int = 0
    completed: bool = False
    completed_at: int | None = None
    current_position_ms: int | None = None
    started_at: int | None = None
    last_accessed_at: int | None = None
    # when a "progress changed" notification was last flagged for this lesson
    last_progress_event_at: int | None = None


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One record per (learner, course).

    ``percent_complete`` is the mean of the touched lessons' percentages.
    Created by enrollment, mutated only by the progress updater.
    """

    learner_id: str
    course_id: str
    enrollment_origin: EnrollmentOrigin = "self_enrolled"
    enrolled_at: int | None = None
    lesson_progress: dict[str, LessonProgress] = field(default_factory=dict)
    percent_complete: int = 0
    completed: bool = False
    completed_at: int | None = None
    current_lesson_id: str | None = None
    last_position_ms: int | None = None
    started_at: int | None = None
    last_accessed_at: int | None = None
    updated_at: int | None = None

    @staticmethod
    def new(
        *,
        learner_id: str,
        course_id: str,
        origin: EnrollmentOrigin,
        now: int,
    ) -> CourseProgress:
        return CourseProgress(
            learner_id=learner_id,
            course_id=course_id,
            enrollment_origin=origin,
            enrolled_at=now,
            last_accessed_at=now,
            updated_at=now,
        )

    @property
    def is_started(self) -> bool:
        return self.completed or self.started_at is not None or bool(self.lesson_progress)


@dataclass(frozen=True, slots=True)
class PathProgress:
    """One record per (learner, path), recomputed from course progress."""

    learner_id: str
    path_id: str
    enrollment_origin: EnrollmentOrigin = "self_enrolled"
    enrolled_at: int | None = None
    total_courses: int = 0
    completed_courses: int = 0
    percent_complete: int = 0
    status: PathStatus = "not_started"
    completed_at: int | None = None
    next_course_id: str | None = None
    started_at: int | None = None
    last_activity_at: int | None = None
    updated_at: int | None = None

    @property
    def completed(self) -> bool:
        return self.status == "completed"
