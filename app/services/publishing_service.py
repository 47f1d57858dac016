from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from app.core.clock import Clock, utc_now
from app.models.catalog import LearningPath, PathCourseRef
from app.repos.catalog_repo import CatalogRepo
from app.services.course_path_index import CoursePathIndex
from app.services.path_progress_service import PathNotFoundError

logger = logging.getLogger(__name__)


class PublishingService:
    """Publishes a learning path and refreshes the reverse index."""

    def __init__(
        self,
        catalog_repo: CatalogRepo,
        index: CoursePathIndex,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._catalog = catalog_repo
        self._index = index
        self._clock = clock

    async def publish_path(
        self,
        path_id: str,
        course_ids: Sequence[str],
        published_by: str | None = None,
    ) -> LearningPath:
        path = await self._catalog.get_path(path_id)
        if path is None:
            raise PathNotFoundError(path_id)

        required = {ref.course_id: ref.required for ref in path.courses}
        ordered = list(dict.fromkeys(course_ids))
        published = replace(
            path,
            status="published",
            version=path.version + 1,
            published_at=self._clock(),
            published_by=published_by,
            courses=tuple(
                PathCourseRef(
                    course_id=course_id,
                    order=order,
                    required=required.get(course_id, True),
                )
                for order, course_id in enumerate(ordered)
            ),
        )
        await self._catalog.save_path(published)
        await self._index.sync_for_published_path(path_id, ordered)
        logger.info(
            "Published path_id=%s version=%d courses=%d",
            path_id,
            published.version,
            len(ordered),
        )
        return published
