"""Catalog shapes the progress engine reads.

Courses, learning paths and certificate templates are owned by the catalog
(admin) side of the platform.  The engine only reads them, apart from path
publishing, which rewrites a path's course list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CatalogStatus = Literal["draft", "published", "archived"]
CompletionType = Literal["course", "path"]


@dataclass(frozen=True, slots=True)
class Course:
    course_id: str
    title: str
    status: CatalogStatus = "draft"
    lesson_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PathCourseRef:
    course_id: str
    order: int
    required: bool = True


@dataclass(frozen=True, slots=True)
class LearningPath:
    path_id: str
    title: str
    status: CatalogStatus = "draft"
    version: int = 1
    published_at: int | None = None
    published_by: str | None = None
    courses: tuple[PathCourseRef, ...] = ()

    @property
    def course_ids(self) -> list[str]:
        return [ref.course_id for ref in self.ordered_courses()]

    def ordered_courses(self) -> list[PathCourseRef]:
        return sorted(self.courses, key=lambda ref: ref.order)


@dataclass(frozen=True, slots=True)
class CertificateTemplate:
    template_id: str
    name: str
    applies_to: CompletionType
    applies_to_id: str
    badge_text: str
    issued_copy_title: str
    issued_copy_body: str
    status: CatalogStatus = "draft"
    signatory_name: str | None = None
    signatory_title: str | None = None
