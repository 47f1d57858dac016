"""LMS engine facade: the control flow from a learner event to its effects.

``record_progress`` splits its work into two tiers:

  primary:     the progress write and course certificates.  Errors
               propagate; retrying the same event is safe because lesson
               and course completion are monotonic and certificate ids
               are deterministic.

  best-effort: notifications and the path cascade (reverse-index lookup,
               rollup, path certificates).  Failures are logged and
               counted, never raised.  One failing path does not stop the
               rest.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from app.core.metrics import PATH_ROLLUPS
from app.models.catalog import CompletionType, LearningPath
from app.models.certificate import IssuedCertificate
from app.models.progress import CourseProgress, EnrollmentOrigin, PathProgress
from app.repos.catalog_repo import CatalogRepo
from app.services import lms_events
from app.services.certificate_service import CertificateIssuer, IssueResult
from app.services.course_path_index import CoursePathIndex
from app.services.enrollment_service import EnrollmentService
from app.services.lms_events import EventEmitter
from app.services.path_progress_service import PathProgressService
from app.services.progress_service import ProgressResult, ProgressUpdate, ProgressUpdater
from app.services.publishing_service import PublishingService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressOutcome:
    progress: CourseProgress
    lesson_just_completed: bool
    course_just_completed: bool
    certificates: list[IssuedCertificate] = field(default_factory=list)
    paths: list[PathProgress] = field(default_factory=list)


class CompletionService:
    def __init__(
        self,
        *,
        catalog: CatalogRepo,
        enrollment: EnrollmentService,
        updater: ProgressUpdater,
        paths: PathProgressService,
        index: CoursePathIndex,
        publishing: PublishingService,
        certificates: CertificateIssuer,
        events: EventEmitter,
    ) -> None:
        self._catalog = catalog
        self._enrollment = enrollment
        self._updater = updater
        self._paths = paths
        self._index = index
        self._publishing = publishing
        self._certificates = certificates
        self._events = events

    # -- inbound operations ------------------------------------------------

    async def enroll(
        self,
        learner_id: str,
        course_id: str,
        origin: EnrollmentOrigin = "self_enrolled",
    ) -> CourseProgress:
        progress, created = await self._enrollment.enroll_checked(
            learner_id, course_id, origin
        )
        if created:
            await self._events.emit(
                lms_events.ENROLLMENT_CREATED,
                learner_id,
                course_id=course_id,
                enrollment_origin=origin,
            )
        return progress

    async def start_path(
        self, learner_id: str, path_id: str, recipient_name: str | None = None
    ) -> PathProgress:
        progress, just_completed = await self._paths.start_path(learner_id, path_id)
        await self._events.emit(
            lms_events.PATH_STARTED,
            learner_id,
            path_id=path_id,
            course_count=progress.total_courses,
        )
        if progress.completed:
            # courses finished before the path was started
            path = await self._paths.get_published_path(path_id)
            await self._finish_path(
                learner_id,
                path,
                progress,
                just_completed,
                recipient_name or learner_id,
            )
        return progress

    async def publish_path(
        self,
        path_id: str,
        course_ids: Sequence[str],
        published_by: str | None = None,
    ) -> LearningPath:
        path = await self._publishing.publish_path(path_id, course_ids, published_by)
        await self._events.emit(
            lms_events.PATH_PUBLISHED,
            None,
            path_id=path_id,
            version=path.version,
            course_count=len(path.courses),
        )
        return path

    async def record_progress(
        self,
        learner_id: str,
        course_id: str,
        update: ProgressUpdate,
        recipient_name: str | None = None,
    ) -> ProgressOutcome:
        result = await self._updater.apply_progress(learner_id, course_id, update)
        await self._emit_progress_events(learner_id, course_id, update, result)

        progress = result.progress
        # repeated completion reports re-run issuance and the cascade
        finalize = result.course_just_completed or (
            bool(update.completed) and progress.completed
        )
        if not finalize:
            return ProgressOutcome(
                progress=progress,
                lesson_just_completed=result.lesson_just_completed,
                course_just_completed=False,
            )

        if result.course_just_completed:
            await self._events.emit(
                lms_events.COURSE_COMPLETED,
                learner_id,
                course_id=course_id,
                completed_at=progress.completed_at,
            )

        name = recipient_name or learner_id
        course = await self._catalog.get_course(course_id)
        issued = await self._issue(
            learner_id,
            "course",
            course_id,
            title=course.title if course is not None else course_id,
            recipient_name=name,
            completed_at=progress.completed_at or 0,
        )

        paths, path_certs = await self._cascade_to_paths(learner_id, course_id, name)
        return ProgressOutcome(
            progress=progress,
            lesson_just_completed=result.lesson_just_completed,
            course_just_completed=result.course_just_completed,
            certificates=[r.certificate for r in issued if r.is_new] + path_certs,
            paths=paths,
        )

    # -- internals -----------------------------------------------------------

    async def _emit_progress_events(
        self,
        learner_id: str,
        course_id: str,
        update: ProgressUpdate,
        result: ProgressResult,
    ) -> None:
        lesson = result.progress.lesson_progress[update.lesson_id]
        if result.should_emit_event:
            await self._events.emit(
                lms_events.PROGRESS_UPDATED,
                learner_id,
                course_id=course_id,
                lesson_id=update.lesson_id,
                percent_complete=lesson.percent_complete,
                course_percent_complete=result.progress.percent_complete,
                position_ms=lesson.current_position_ms,
            )
        if result.lesson_just_completed:
            await self._events.emit(
                lms_events.LESSON_COMPLETED,
                learner_id,
                course_id=course_id,
                lesson_id=update.lesson_id,
                completed_at=lesson.completed_at,
            )

    async def _issue(
        self,
        learner_id: str,
        completion_type: CompletionType,
        target_id: str,
        *,
        title: str,
        recipient_name: str,
        completed_at: int,
    ) -> list[IssueResult]:
        results = await self._certificates.issue_for_completion(
            learner_id,
            completion_type,
            target_id,
            target_title=title,
            recipient_name=recipient_name,
            completed_at=completed_at,
        )
        for r in results:
            if r.is_new:
                await self._events.emit(
                    lms_events.CERTIFICATE_ISSUED,
                    learner_id,
                    certificate_id=r.certificate.certificate_id,
                    template_id=r.certificate.template_id,
                    completion_type=completion_type,
                    target_id=target_id,
                )
        return results

    async def _cascade_to_paths(
        self, learner_id: str, course_id: str, recipient_name: str
    ) -> tuple[list[PathProgress], list[IssuedCertificate]]:
        try:
            path_ids = await self._index.lookup_published_path_ids(course_id)
        except Exception:
            PATH_ROLLUPS.labels(result="failed").inc()
            logger.exception(
                "Path cascade lookup failed for course_id=%s",
                course_id,
                extra={"course_id": course_id},
            )
            return [], []

        updated: list[PathProgress] = []
        certificates: list[IssuedCertificate] = []
        for path_id in path_ids:
            try:
                progress, certs = await self._rollup_path(
                    learner_id, path_id, recipient_name
                )
            except Exception:
                PATH_ROLLUPS.labels(result="failed").inc()
                logger.exception(
                    "Path rollup failed for path_id=%s",
                    path_id,
                    extra={"course_id": course_id, "path_id": path_id},
                )
                continue
            if progress is not None:
                updated.append(progress)
                certificates.extend(certs)
        return updated, certificates

    async def _rollup_path(
        self, learner_id: str, path_id: str, recipient_name: str
    ) -> tuple[PathProgress | None, list[IssuedCertificate]]:
        path = await self._catalog.get_path(path_id)
        if path is None or path.status != "published":
            # index entry outlived the path; republishing repairs it
            logger.warning("Skipping unpublished path_id=%s in cascade", path_id)
            return None, []

        progress, just_completed = await self._paths.recompute(learner_id, path)
        await self._events.emit(
            lms_events.PATH_PROGRESS_UPDATED,
            learner_id,
            path_id=path_id,
            percent_complete=progress.percent_complete,
            completed_courses=progress.completed_courses,
            total_courses=progress.total_courses,
            status=progress.status,
        )
        certs = await self._finish_path(
            learner_id, path, progress, just_completed, recipient_name
        )
        return progress, certs

    async def _finish_path(
        self,
        learner_id: str,
        path: LearningPath,
        progress: PathProgress,
        just_completed: bool,
        recipient_name: str,
    ) -> list[IssuedCertificate]:
        """Issue path certificates for a completed path; return the new ones."""
        if not progress.completed:
            return []
        if just_completed:
            await self._events.emit(
                lms_events.PATH_COMPLETED,
                learner_id,
                path_id=path.path_id,
                completed_at=progress.completed_at,
            )
        issued = await self._issue(
            learner_id,
            "path",
            path.path_id,
            title=path.title,
            recipient_name=recipient_name,
            completed_at=progress.completed_at or 0,
        )
        return [r.certificate for r in issued if r.is_new]
