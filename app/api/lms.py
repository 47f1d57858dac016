"""Learner-facing LMS endpoints.

Inbound events (enroll, lesson progress, start path) and read-back of the
engine's own state.  The learner id comes from the gateway header; see
app/api/dependencies.py.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from app.api.dependencies import LearnerId, LearnerName, Services
from app.models.certificate import IssuedCertificate
from app.models.progress import CourseProgress, EnrollmentOrigin, PathProgress
from app.services.enrollment_service import CourseNotFoundError
from app.services.path_progress_service import PathNotFoundError
from app.services.progress_service import ProgressUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/lms", tags=["lms"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class EnrollmentIn(BaseModel):
    course_id: str = Field(min_length=1)
    enrollment_origin: EnrollmentOrigin = "self_enrolled"


class ProgressIn(BaseModel):
    course_id: str = Field(min_length=1)
    lesson_id: str = Field(min_length=1)
    position_ms: int | None = None
    percent_complete: float | None = None
    completed: bool | None = None


class LessonProgressOut(BaseModel):
    lesson_id: str
    percent_complete: int
    completed: bool
    completed_at: int | None
    current_position_ms: int | None
    started_at: int | None
    last_accessed_at: int | None


class CourseProgressOut(BaseModel):
    learner_id: str
    course_id: str
    enrollment_origin: str
    enrolled_at: int | None
    percent_complete: int
    completed: bool
    completed_at: int | None
    current_lesson_id: str | None
    last_position_ms: int | None
    started_at: int | None
    last_accessed_at: int | None
    updated_at: int | None
    lesson_progress: dict[str, LessonProgressOut]


class PathProgressOut(BaseModel):
    learner_id: str
    path_id: str
    enrollment_origin: str
    enrolled_at: int | None
    total_courses: int
    completed_courses: int
    percent_complete: int
    status: str
    completed: bool
    completed_at: int | None
    next_course_id: str | None
    started_at: int | None
    last_activity_at: int | None
    updated_at: int | None


class CertificateOut(BaseModel):
    certificate_id: str
    template_id: str
    completion_type: str
    target_id: str
    issued_at: int
    issued_by: str
    recipient_name: str
    title: str
    completion_date: str
    badge_text: str
    issued_copy_title: str
    issued_copy_body: str
    signatory_name: str | None
    signatory_title: str | None


class ProgressOut(BaseModel):
    progress: CourseProgressOut
    lesson_completed: bool
    course_completed: bool
    certificates: list[CertificateOut]
    paths: list[PathProgressOut]


def course_out(p: CourseProgress) -> CourseProgressOut:
    return CourseProgressOut(
        learner_id=p.learner_id,
        course_id=p.course_id,
        enrollment_origin=p.enrollment_origin,
        enrolled_at=p.enrolled_at,
        percent_complete=p.percent_complete,
        completed=p.completed,
        completed_at=p.completed_at,
        current_lesson_id=p.current_lesson_id,
        last_position_ms=p.last_position_ms,
        started_at=p.started_at,
        last_accessed_at=p.last_accessed_at,
        updated_at=p.updated_at,
        lesson_progress={
            lesson_id: LessonProgressOut(
                lesson_id=lp.lesson_id,
                percent_complete=lp.percent_complete,
                completed=lp.completed,
                completed_at=lp.completed_at,
                current_position_ms=lp.current_position_ms,
                started_at=lp.started_at,
                last_accessed_at=lp.last_accessed_at,
            )
            for lesson_id, lp in p.lesson_progress.items()
        },
    )


def path_out(p: PathProgress) -> PathProgressOut:
    return PathProgressOut(
        learner_id=p.learner_id,
        path_id=p.path_id,
        enrollment_origin=p.enrollment_origin,
        enrolled_at=p.enrolled_at,
        total_courses=p.total_courses,
        completed_courses=p.completed_courses,
        percent_complete=p.percent_complete,
        status=p.status,
        completed=p.completed,
        completed_at=p.completed_at,
        next_course_id=p.next_course_id,
        started_at=p.started_at,
        last_activity_at=p.last_activity_at,
        updated_at=p.updated_at,
    )


def certificate_out(c: IssuedCertificate) -> CertificateOut:
    data = c.certificate_data
    return CertificateOut(
        certificate_id=c.certificate_id,
        template_id=c.template_id,
        completion_type=c.completion_type,
        target_id=c.target_id,
        issued_at=c.issued_at,
        issued_by=c.issued_by,
        recipient_name=data.recipient_name,
        title=data.title,
        completion_date=data.completion_date,
        badge_text=data.badge_text,
        issued_copy_title=data.issued_copy_title,
        issued_copy_body=data.issued_copy_body,
        signatory_name=data.signatory_name,
        signatory_title=data.signatory_title,
    )


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@router.post(
    "/enrollments",
    response_model=CourseProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_enrollment(
    body: EnrollmentIn, learner_id: LearnerId, services: Services
) -> CourseProgressOut:
    try:
        progress = await services.engine.enroll(
            learner_id, body.course_id, body.enrollment_origin
        )
    except CourseNotFoundError as exc:
        raise _not_found(exc) from None
    return course_out(progress)


@router.post("/progress", response_model=ProgressOut)
async def record_progress(
    body: ProgressIn,
    learner_id: LearnerId,
    name: LearnerName,
    services: Services,
) -> ProgressOut:
    outcome = await services.engine.record_progress(
        learner_id,
        body.course_id,
        ProgressUpdate(
            lesson_id=body.lesson_id,
            position_ms=body.position_ms,
            percent_complete=body.percent_complete,
            completed=body.completed,
        ),
        recipient_name=name,
    )
    return ProgressOut(
        progress=course_out(outcome.progress),
        lesson_completed=outcome.lesson_just_completed,
        course_completed=outcome.course_just_completed,
        certificates=[certificate_out(c) for c in outcome.certificates],
        paths=[path_out(p) for p in outcome.paths],
    )


@router.get("/courses/{course_id}/progress", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str, learner_id: LearnerId, services: Services
) -> CourseProgressOut:
    progress = await services.progress_repo.get_course_progress(learner_id, course_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course progress not found",
        )
    return course_out(progress)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


@router.post("/paths/{path_id}/start", response_model=PathProgressOut)
async def start_path(
    path_id: str, learner_id: LearnerId, name: LearnerName, services: Services
) -> PathProgressOut:
    try:
        progress = await services.engine.start_path(learner_id, path_id, name)
    except PathNotFoundError as exc:
        raise _not_found(exc) from None
    return path_out(progress)


@router.get("/paths/{path_id}/progress", response_model=PathProgressOut)
async def get_path_progress(
    path_id: str, learner_id: LearnerId, services: Services
) -> PathProgressOut:
    progress = await services.paths.get_path_progress(learner_id, path_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Path progress not found",
        )
    return path_out(progress)


@router.get("/me/paths", response_model=list[PathProgressOut])
async def list_my_paths(
    learner_id: LearnerId, services: Services, limit: int = 50
) -> list[PathProgressOut]:
    return [
        path_out(p) for p in await services.paths.list_path_progress(learner_id, limit)
    ]


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


@router.get("/certificates", response_model=list[CertificateOut])
async def list_certificates(
    learner_id: LearnerId, services: Services, limit: int = 50
) -> list[CertificateOut]:
    certificates = await services.certificates.list_for_learner(learner_id, limit)
    return [certificate_out(c) for c in certificates]


@router.get("/certificates/{certificate_id}", response_model=CertificateOut)
async def get_certificate(
    certificate_id: str, learner_id: LearnerId, services: Services
) -> CertificateOut:
    certificate = await services.certificates.get(learner_id, certificate_id)
    if certificate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Certificate not found",
        )
    return certificate_out(certificate)
