from __future__ import annotations

import logging
from dataclasses import replace

from app.core.clock import Clock, utc_now
from app.models.progress import CourseProgress, EnrollmentOrigin
from app.repos.catalog_repo import CatalogRepo
from app.repos.progress_repo import ProgressRepo

logger = logging.getLogger(__name__)


class CourseNotFoundError(LookupError):
    def __init__(self, course_id: str) -> None:
        self.course_id = course_id
        super().__init__(f"course {course_id} not found")


class EnrollmentService:
    """Creates course progress records.

    Enrolling twice is harmless: the first record wins and later calls only
    advance ``last_accessed_at``.
    """

    def __init__(
        self,
        progress_repo: ProgressRepo,
        catalog_repo: CatalogRepo,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._progress = progress_repo
        self._catalog = catalog_repo
        self._clock = clock

    async def enroll(
        self,
        learner_id: str,
        course_id: str,
        origin: EnrollmentOrigin = "self_enrolled",
    ) -> tuple[CourseProgress, bool]:
        """Return ``(progress, created)``."""
        now = self._clock()
        existing = await self._progress.get_course_progress(learner_id, course_id)
        if existing is None:
            candidate = CourseProgress.new(
                learner_id=learner_id, course_id=course_id, origin=origin, now=now
            )
            stored = await self._progress.insert_course_progress_if_absent(candidate)
            if stored == candidate:
                logger.info(
                    "Enrolled learner_id=%s course_id=%s origin=%s",
                    learner_id,
                    course_id,
                    origin,
                )
                return stored, True
            # a concurrent enroll or progress write got there first
            existing = stored

        await self._progress.touch_course_progress(learner_id, course_id, now)
        return replace(existing, last_accessed_at=now), False

    async def enroll_checked(
        self,
        learner_id: str,
        course_id: str,
        origin: EnrollmentOrigin = "self_enrolled",
    ) -> tuple[CourseProgress, bool]:
        course = await self._catalog.get_course(course_id)
        if course is None:
            logger.warning("Enrollment rejected: unknown course_id=%s", course_id)
            raise CourseNotFoundError(course_id)
        return await self.enroll(learner_id, course_id, origin)
