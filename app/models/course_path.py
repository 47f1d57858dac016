from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MappingStatus = Literal["published", "draft"]


@dataclass(frozen=True, slots=True)
class CoursePathMapping:
    """Reverse-index entry: course_id -> a path that contains it.

    Derived from the path's course list at publish time.  Rebuildable by
    republishing the path.
    """

    course_id: str
    path_id: str
    path_status: MappingStatus = "published"
    updated_at: int | None = None
