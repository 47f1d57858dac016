"""Course -> published path reverse index.

Kept in step with each path's course list at publish time so that a course
completion can find the paths to recompute without scanning every path.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from app.core.clock import Clock, utc_now
from app.core.metrics import COURSE_PATH_INDEX_OPS
from app.models.course_path import CoursePathMapping
from app.repos.course_path_repo import CoursePathRepo
from app.repos.progress_repo import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


class CoursePathIndex:
    def __init__(self, repo: CoursePathRepo, *, clock: Clock = utc_now) -> None:
        self._repo = repo
        self._clock = clock

    async def sync_for_published_path(
        self, path_id: str, course_ids: Iterable[str]
    ) -> None:
        """Make the index hold exactly one entry per course in ``course_ids``.

        Not atomic.  A failure part way through propagates; republishing the
        path repairs the index.
        """
        now = self._clock()
        wanted = list(dict.fromkeys(course_ids))
        current = {m.course_id for m in await self._repo.list_for_path(path_id)}

        removed = sorted(current.difference(wanted))
        for course_id in removed:
            await self._repo.delete(course_id, path_id)
            COURSE_PATH_INDEX_OPS.labels(op="delete").inc()

        for course_id in wanted:
            await self._repo.upsert(
                CoursePathMapping(
                    course_id=course_id,
                    path_id=path_id,
                    path_status="published",
                    updated_at=now,
                )
            )
            COURSE_PATH_INDEX_OPS.labels(op="upsert").inc()

        logger.info(
            "Synced course-path index path_id=%s courses=%d removed=%d",
            path_id,
            len(wanted),
            len(removed),
        )

    async def lookup_published_path_ids(
        self, course_id: str, limit: int = MAX_PAGE_SIZE
    ) -> list[str]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        COURSE_PATH_INDEX_OPS.labels(op="lookup").inc()
        return await self._repo.list_path_ids_for_course(
            course_id, limit, status="published"
        )
