from __future__ import annotations

from typing import Protocol

from app.models.catalog import CertificateTemplate, Course, LearningPath


class CatalogRepo(Protocol):
    async def get_course(self, course_id: str) -> Course | None: ...
    async def get_path(self, path_id: str) -> LearningPath | None: ...
    async def save_path(self, path: LearningPath) -> None: ...
    async def list_published_templates(
        self, applies_to: str, applies_to_id: str
    ) -> list[CertificateTemplate]: ...


class InMemoryCatalogRepo:
    """Catalog double for tests and local runs without DATABASE_URL."""

    def __init__(self) -> None:
        self._courses: dict[str, Course] = {}
        self._paths: dict[str, LearningPath] = {}
        self._templates: dict[str, CertificateTemplate] = {}

    def add_course(self, course: Course) -> None:
        self._courses[course.course_id] = course

    def add_path(self, path: LearningPath) -> None:
        self._paths[path.path_id] = path

    def add_template(self, template: CertificateTemplate) -> None:
        self._templates[template.template_id] = template

    async def get_course(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    async def get_path(self, path_id: str) -> LearningPath | None:
        return self._paths.get(path_id)

    async def save_path(self, path: LearningPath) -> None:
        self._paths[path.path_id] = path

    async def list_published_templates(
        self, applies_to: str, applies_to_id: str
    ) -> list[CertificateTemplate]:
        return sorted(
            (
                t
                for t in self._templates.values()
                if t.status == "published"
                and t.applies_to == applies_to
                and t.applies_to_id == applies_to_id
            ),
            key=lambda t: t.template_id,
        )
