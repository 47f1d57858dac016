from __future__ import annotations

import logging
from dataclasses import replace

from app.core.clock import Clock, utc_now
from app.core.metrics import COMPLETIONS, PATH_ROLLUPS
from app.models.catalog import LearningPath
from app.models.progress import CourseProgress, PathProgress
from app.repos.catalog_repo import CatalogRepo
from app.repos.progress_repo import ProgressRepo
from app.services.enrollment_service import EnrollmentService
from app.services.path_rollup import compute_path_rollup, merge_rollup

logger = logging.getLogger(__name__)


class PathNotFoundError(LookupError):
    def __init__(self, path_id: str) -> None:
        self.path_id = path_id
        super().__init__(f"learning path {path_id} not found")


class PathProgressService:
    """Recomputes and reads PathProgress records."""

    def __init__(
        self,
        progress_repo: ProgressRepo,
        catalog_repo: CatalogRepo,
        enrollment: EnrollmentService,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._progress = progress_repo
        self._catalog = catalog_repo
        self._enrollment = enrollment
        self._clock = clock

    async def get_published_path(self, path_id: str) -> LearningPath:
        path = await self._catalog.get_path(path_id)
        if path is None or path.status != "published":
            raise PathNotFoundError(path_id)
        return path

    async def recompute(
        self, learner_id: str, path: LearningPath
    ) -> tuple[PathProgress, bool]:
        """Recompute and persist; return ``(progress, just_completed)``."""
        now = self._clock()
        snapshots: dict[str, CourseProgress] = {}
        for course_id in path.course_ids:
            progress = await self._progress.get_course_progress(learner_id, course_id)
            if progress is not None:
                snapshots[course_id] = progress

        existing = await self._progress.get_path_progress(learner_id, path.path_id)
        rollup = compute_path_rollup(path, snapshots, existing, now=now)
        updated = merge_rollup(
            existing, rollup, learner_id=learner_id, path_id=path.path_id, now=now
        )
        await self._progress.put_path_progress(updated)
        PATH_ROLLUPS.labels(result="ok").inc()

        just_completed = updated.completed and not (
            existing is not None and existing.completed
        )
        if just_completed:
            COMPLETIONS.labels(kind="path").inc()
            logger.info(
                "Path completed learner_id=%s path_id=%s", learner_id, path.path_id
            )
        return updated, just_completed

    async def start_path(
        self, learner_id: str, path_id: str
    ) -> tuple[PathProgress, bool]:
        """Return ``(progress, just_completed)``."""
        path = await self.get_published_path(path_id)
        for course_id in path.course_ids:
            await self._enrollment.enroll(learner_id, course_id, "self_enrolled")

        progress, just_completed = await self.recompute(learner_id, path)
        if progress.status == "not_started":
            now = self._clock()
            progress = replace(
                progress,
                status="in_progress",
                started_at=progress.started_at if progress.started_at is not None else now,
                last_activity_at=now,
                updated_at=now,
            )
            await self._progress.put_path_progress(progress)
        logger.info(
            "Path started learner_id=%s path_id=%s courses=%d",
            learner_id,
            path_id,
            progress.total_courses,
        )
        return progress, just_completed

    async def get_path_progress(self, learner_id: str, path_id: str) -> PathProgress | None:
        return await self._progress.get_path_progress(learner_id, path_id)

    async def list_path_progress(
        self, learner_id: str, limit: int = 50
    ) -> list[PathProgress]:
        return await self._progress.list_path_progress(learner_id, limit)
