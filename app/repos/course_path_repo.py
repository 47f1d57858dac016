from __future__ import annotations

from typing import Protocol

from app.models.course_path import CoursePathMapping
from app.repos.records import from_record, to_record


class CoursePathRepo(Protocol):
    async def upsert(self, mapping: CoursePathMapping) -> None: ...
    async def delete(self, course_id: str, path_id: str) -> None: ...
    async def list_for_path(self, path_id: str) -> list[CoursePathMapping]: ...
    async def list_path_ids_for_course(
        self, course_id: str, limit: int, *, status: str = "published"
    ) -> list[str]: ...


class InMemoryCoursePathRepo:
    """Two dicts, one per access pattern, so neither lookup walks every entry.

    ``_by_course`` serves the hot-path lookup; ``_by_path`` serves the
    publish-time diff.
    """

    def __init__(self) -> None:
        self._by_course: dict[str, dict[str, dict]] = {}
        self._by_path: dict[str, set[str]] = {}

    async def upsert(self, mapping: CoursePathMapping) -> None:
        self._by_course.setdefault(mapping.course_id, {})[mapping.path_id] = to_record(
            mapping
        )
        self._by_path.setdefault(mapping.path_id, set()).add(mapping.course_id)

    async def delete(self, course_id: str, path_id: str) -> None:
        self._by_course.get(course_id, {}).pop(path_id, None)
        self._by_path.get(path_id, set()).discard(course_id)

    async def list_for_path(self, path_id: str) -> list[CoursePathMapping]:
        return [
            from_record(dict(self._by_course[course_id][path_id]))
            for course_id in sorted(self._by_path.get(path_id, set()))
        ]

    async def list_path_ids_for_course(
        self, course_id: str, limit: int, *, status: str = "published"
    ) -> list[str]:
        path_ids = [
            path_id
            for path_id, item in sorted(self._by_course.get(course_id, {}).items())
            if item.get("path_status") == status
        ]
        return path_ids[:limit]
