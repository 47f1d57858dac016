"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.engine import session_scope
from app.db.tables import CourseProgressRow, PathProgressRow, row_to_dict
from app.models.progress import CourseProgress, PathProgress
from app.repos.progress_repo import MAX_PAGE_SIZE
from app.repos.records import COURSE_PROGRESS, PATH_PROGRESS, from_record, to_record


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy.

    Each call runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_course_progress(
        self, learner_id: str, course_id: str
    ) -> CourseProgress | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(CourseProgressRow, (learner_id, course_id))
            if row is None:
                return None
            return _course_from_row(row)

    async def insert_course_progress_if_absent(
        self, progress: CourseProgress
    ) -> CourseProgress:
        values = _columns(to_record(progress))
        stmt = (
            insert(CourseProgressRow)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["learner_id", "course_id"])
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)
            row = (
                await session.execute(
                    select(CourseProgressRow).where(
                        CourseProgressRow.learner_id == progress.learner_id,
                        CourseProgressRow.course_id == progress.course_id,
                    )
                )
            ).scalar_one()
            return _course_from_row(row)

    async def put_course_progress(self, progress: CourseProgress) -> None:
        values = _columns(to_record(progress))
        stmt = insert(CourseProgressRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["learner_id", "course_id"],
            set_={k: v for k, v in values.items() if k not in ("learner_id", "course_id")},
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)

    async def touch_course_progress(
        self, learner_id: str, course_id: str, accessed_at: int
    ) -> None:
        stmt = (
            update(CourseProgressRow)
            .where(
                CourseProgressRow.learner_id == learner_id,
                CourseProgressRow.course_id == course_id,
            )
            .values(last_accessed_at=accessed_at)
        )
        async with session_scope(self._session_factory) as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise KeyError("course progress not found")

    async def get_path_progress(
        self, learner_id: str, path_id: str
    ) -> PathProgress | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(PathProgressRow, (learner_id, path_id))
            if row is None:
                return None
            return _path_from_row(row)

    async def put_path_progress(self, progress: PathProgress) -> None:
        values = _columns(to_record(progress))
        stmt = insert(PathProgressRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["learner_id", "path_id"],
            set_={k: v for k, v in values.items() if k not in ("learner_id", "path_id")},
        )
        async with session_scope(self._session_factory) as session:
            await session.execute(stmt)

    async def list_path_progress(
        self, learner_id: str, limit: int = 50
    ) -> list[PathProgress]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        stmt = (
            select(PathProgressRow)
            .where(PathProgressRow.learner_id == learner_id)
            .order_by(PathProgressRow.path_id)
            .limit(limit)
        )
        async with session_scope(self._session_factory) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_path_from_row(row) for row in rows]


def _columns(record: dict[str, Any]) -> dict[str, Any]:
    values = dict(record)
    values.pop("entity_type")
    return values


def _course_from_row(row: CourseProgressRow) -> CourseProgress:
    return from_record({"entity_type": COURSE_PROGRESS, **row_to_dict(row)})  # type: ignore[return-value]


def _path_from_row(row: PathProgressRow) -> PathProgress:
    return from_record({"entity_type": PATH_PROGRESS, **row_to_dict(row)})  # type: ignore[return-value]
