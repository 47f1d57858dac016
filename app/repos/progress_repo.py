from __future__ import annotations

import copy
from typing import Any, Protocol

from app.models.progress import CourseProgress, PathProgress
from app.repos.records import from_record, to_record

MAX_PAGE_SIZE = 200


class ProgressRepo(Protocol):
    async def get_course_progress(
        self, learner_id: str, course_id: str
    ) -> CourseProgress | None: ...
    async def insert_course_progress_if_absent(
        self, progress: CourseProgress
    ) -> CourseProgress: ...
    async def put_course_progress(self, progress: CourseProgress) -> None: ...
    async def touch_course_progress(
        self, learner_id: str, course_id: str, accessed_at: int
    ) -> None: ...
    async def get_path_progress(
        self, learner_id: str, path_id: str
    ) -> PathProgress | None: ...
    async def put_path_progress(self, progress: PathProgress) -> None: ...
    async def list_path_progress(
        self, learner_id: str, limit: int = 50
    ) -> list[PathProgress]: ...


class InMemoryProgressRepo:
    """Dict-backed store keyed like the table: (learner_id, sort key).

    Records are kept as tagged dicts and deep-copied in and out so callers
    never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._items: dict[tuple[str, str], dict[str, Any]] = {}

    @staticmethod
    def _course_key(learner_id: str, course_id: str) -> tuple[str, str]:
        return (learner_id, f"COURSE#{course_id}")

    @staticmethod
    def _path_key(learner_id: str, path_id: str) -> tuple[str, str]:
        return (learner_id, f"PATH#{path_id}")

    def _load(self, key: tuple[str, str]):
        item = self._items.get(key)
        if item is None:
            return None
        return from_record(copy.deepcopy(item))

    async def get_course_progress(
        self, learner_id: str, course_id: str
    ) -> CourseProgress | None:
        return self._load(self._course_key(learner_id, course_id))

    async def insert_course_progress_if_absent(
        self, progress: CourseProgress
    ) -> CourseProgress:
        key = self._course_key(progress.learner_id, progress.course_id)
        if key not in self._items:
            self._items[key] = to_record(progress)
        return self._load(key)

    async def put_course_progress(self, progress: CourseProgress) -> None:
        key = self._course_key(progress.learner_id, progress.course_id)
        self._items[key] = to_record(progress)

    async def touch_course_progress(
        self, learner_id: str, course_id: str, accessed_at: int
    ) -> None:
        item = self._items.get(self._course_key(learner_id, course_id))
        if item is None:
            raise KeyError("course progress not found")
        item["last_accessed_at"] = accessed_at

    async def get_path_progress(
        self, learner_id: str, path_id: str
    ) -> PathProgress | None:
        return self._load(self._path_key(learner_id, path_id))

    async def put_path_progress(self, progress: PathProgress) -> None:
        key = self._path_key(progress.learner_id, progress.path_id)
        self._items[key] = to_record(progress)

    async def list_path_progress(
        self, learner_id: str, limit: int = 50
    ) -> list[PathProgress]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        keys = sorted(
            key
            for key in self._items
            if key[0] == learner_id and key[1].startswith("PATH#")
        )
        return [self._load(key) for key in keys[:limit]]
