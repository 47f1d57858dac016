"""PostgreSQL implementation of CoursePathRepo."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.engine import session_scope
from app.db.tables import CoursePathRow, row_to_dict
from app.models.course_path import CoursePathMapping
from app.repos.records import COURSE_PATH, from_record


class PgCoursePathRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert(self, mapping: CoursePathMapping) -> None:
        stmt = insert(CoursePathRow).values(
            course_id=mapping.course_id,
            path_id=mapping.path_id,
            path_status=mapping.path_status,
            updated_at=mapping.updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["course_id", "path_id"],
            set_={
                "path_status": mapping.path_status,
                "updated_at": mapping.updated_at,
            },
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)

    async def delete(self, course_id: str, path_id: str) -> None:
        stmt = delete(CoursePathRow).where(
            CoursePathRow.course_id == course_id,
            CoursePathRow.path_id == path_id,
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)

    async def list_for_path(self, path_id: str) -> list[CoursePathMapping]:
        stmt = (
            select(CoursePathRow)
            .where(CoursePathRow.path_id == path_id)
            .order_by(CoursePathRow.course_id)
        )
        async with session_scope(self._session_factory) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_mapping_from_row(row) for row in rows]

    async def list_path_ids_for_course(
        self, course_id: str, limit: int, *, status: str = "published"
    ) -> list[str]:
        stmt = (
            select(CoursePathRow.path_id)
            .where(
                CoursePathRow.course_id == course_id,
                CoursePathRow.path_status == status,
            )
            .order_by(CoursePathRow.path_id)
            .limit(limit)
        )
        async with session_scope(self._session_factory) as session:
            return list((await session.execute(stmt)).scalars().all())


def _mapping_from_row(row: CoursePathRow) -> CoursePathMapping:
    return from_record({"entity_type": COURSE_PATH, **row_to_dict(row)})  # type: ignore[return-value]
