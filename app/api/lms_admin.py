"""Path publishing.

Callers are admin tooling behind the gateway; authorization is enforced
there.  The caller id, when present, is recorded as ``published_by``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import Services
from app.services.path_progress_service import PathNotFoundError

router = APIRouter(prefix="/v1/lms/admin", tags=["lms-admin"])


class PublishPathIn(BaseModel):
    course_ids: list[str]


class PathCourseOut(BaseModel):
    course_id: str
    order: int
    required: bool


class PublishedPathOut(BaseModel):
    path_id: str
    title: str
    status: str
    version: int
    published_at: int | None
    published_by: str | None
    courses: list[PathCourseOut]


@router.post("/paths/{path_id}/publish", response_model=PublishedPathOut)
async def publish_path(
    path_id: str,
    body: PublishPathIn,
    services: Services,
    x_learner_id: Annotated[str | None, Header()] = None,
) -> PublishedPathOut:
    try:
        path = await services.engine.publish_path(
            path_id, body.course_ids, published_by=x_learner_id
        )
    except PathNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
        ) from None
    return PublishedPathOut(
        path_id=path.path_id,
        title=path.title,
        status=path.status,
        version=path.version,
        published_at=path.published_at,
        published_by=path.published_by,
        courses=[
            PathCourseOut(course_id=ref.course_id, order=ref.order, required=ref.required)
            for ref in path.ordered_courses()
        ],
    )
