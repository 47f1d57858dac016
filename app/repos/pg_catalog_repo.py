"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.engine import session_scope
from app.db.tables import CertificateTemplateRow, CourseRow, LearningPathRow
from app.models.catalog import (
    CertificateTemplate,
    Course,
    LearningPath,
    PathCourseRef,
)


class PgCatalogRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_course(self, course_id: str) -> Course | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(CourseRow, course_id)
            if row is None:
                return None
            return Course(
                course_id=row.course_id,
                title=row.title,
                status=row.status,  # type: ignore[arg-type]
                lesson_ids=tuple(row.lesson_ids or ()),
            )

    async def get_path(self, path_id: str) -> LearningPath | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(LearningPathRow, path_id)
            if row is None:
                return None
            return _row_to_path(row)

    async def save_path(self, path: LearningPath) -> None:
        values = {
            "path_id": path.path_id,
            "title": path.title,
            "status": path.status,
            "version": path.version,
            "published_at": path.published_at,
            "published_by": path.published_by,
            "courses": [
                {"course_id": ref.course_id, "order": ref.order, "required": ref.required}
                for ref in path.courses
            ],
        }
        stmt = insert(LearningPathRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["path_id"],
            set_={k: v for k, v in values.items() if k != "path_id"},
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)

    async def list_published_templates(
        self, applies_to: str, applies_to_id: str
    ) -> list[CertificateTemplate]:
        stmt = (
            select(CertificateTemplateRow)
            .where(
                CertificateTemplateRow.status == "published",
                CertificateTemplateRow.applies_to == applies_to,
                CertificateTemplateRow.applies_to_id == applies_to_id,
            )
            .order_by(CertificateTemplateRow.template_id)
        )
        async with session_scope(self._session_factory) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_row_to_template(row) for row in rows]


def _row_to_path(row: LearningPathRow) -> LearningPath:
    return LearningPath(
        path_id=row.path_id,
        title=row.title,
        status=row.status,  # type: ignore[arg-type]
        version=row.version,
        published_at=row.published_at,
        published_by=row.published_by,
        courses=tuple(
            PathCourseRef(
                course_id=ref["course_id"],
                order=int(ref.get("order", index)),
                required=bool(ref.get("required", True)),
            )
            for index, ref in enumerate(row.courses or ())
        ),
    )


def _row_to_template(row: CertificateTemplateRow) -> CertificateTemplate:
    return CertificateTemplate(
        template_id=row.template_id,
        name=row.name,
        applies_to=row.applies_to,  # type: ignore[arg-type]
        applies_to_id=row.applies_to_id,
        badge_text=row.badge_text,
        issued_copy_title=row.issued_copy_title,
        issued_copy_body=row.issued_copy_body,
        status=row.status,  # type: ignore[arg-type]
        signatory_name=row.signatory_name,
        signatory_title=row.signatory_title,
    )
