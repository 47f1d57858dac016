"""Service wiring.

Repositories, services and external handles are built once here and hung
off ``app.state.lms``; nothing in the engine reads module-level singletons.
``build_in_memory_services`` is the test and local-dev variant,
``build_services`` picks Postgres and Redis when their URLs are configured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from app.core.clock import Clock, utc_now
from app.core.config import Settings
from app.db.engine import Database, create_database
from app.db.redis import check_redis, close_redis, create_redis
from app.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from app.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from app.repos.course_path_repo import CoursePathRepo, InMemoryCoursePathRepo
from app.repos.pg_catalog_repo import PgCatalogRepo
from app.repos.pg_certificate_repo import PgCertificateRepo
from app.repos.pg_course_path_repo import PgCoursePathRepo
from app.repos.pg_progress_repo import PgProgressRepo
from app.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from app.services.certificate_service import CertificateIssuer
from app.services.completion_service import CompletionService
from app.services.course_path_index import CoursePathIndex
from app.services.enrollment_service import EnrollmentService
from app.services.lms_events import EventEmitter, EventSink, TaskQueueEventSink
from app.services.path_progress_service import PathProgressService
from app.services.progress_service import ProgressUpdater
from app.services.publishing_service import PublishingService
from app.services.task_queue import TaskQueue, build_task_queue

logger = logging.getLogger(__name__)


@dataclass
class LmsServices:
    progress_repo: ProgressRepo
    catalog: CatalogRepo
    certificate_repo: CertificateRepo
    course_path_repo: CoursePathRepo
    enrollment: EnrollmentService
    updater: ProgressUpdater
    paths: PathProgressService
    index: CoursePathIndex
    publishing: PublishingService
    certificates: CertificateIssuer
    events: EventEmitter
    engine: CompletionService
    task_queue: TaskQueue | None = None
    database: Database | None = None
    redis: Any = None
    redis_ok: bool = field(default=True)

    async def close(self) -> None:
        if self.redis is not None:
            await close_redis(self.redis)
        if self.database is not None:
            await self.database.dispose()


def wire_services(
    *,
    progress_repo: ProgressRepo,
    catalog: CatalogRepo,
    certificate_repo: CertificateRepo,
    course_path_repo: CoursePathRepo,
    sink: EventSink,
    clock: Clock = utc_now,
) -> LmsServices:
    enrollment = EnrollmentService(progress_repo, catalog, clock=clock)
    updater = ProgressUpdater(progress_repo, clock=clock)
    paths = PathProgressService(progress_repo, catalog, enrollment, clock=clock)
    index = CoursePathIndex(course_path_repo, clock=clock)
    publishing = PublishingService(catalog, index, clock=clock)
    certificates = CertificateIssuer(certificate_repo, catalog, clock=clock)
    events = EventEmitter(sink, clock=clock)
    engine = CompletionService(
        catalog=catalog,
        enrollment=enrollment,
        updater=updater,
        paths=paths,
        index=index,
        publishing=publishing,
        certificates=certificates,
        events=events,
    )
    return LmsServices(
        progress_repo=progress_repo,
        catalog=catalog,
        certificate_repo=certificate_repo,
        course_path_repo=course_path_repo,
        enrollment=enrollment,
        updater=updater,
        paths=paths,
        index=index,
        publishing=publishing,
        certificates=certificates,
        events=events,
        engine=engine,
    )


def build_in_memory_services(
    *,
    sink: EventSink | None = None,
    clock: Clock = utc_now,
    queue_name: str = "lms_events",
) -> LmsServices:
    queue = None
    if sink is None:
        queue = build_task_queue()
        sink = TaskQueueEventSink(queue, queue_name)
    services = wire_services(
        progress_repo=InMemoryProgressRepo(),
        catalog=InMemoryCatalogRepo(),
        certificate_repo=InMemoryCertificateRepo(),
        course_path_repo=InMemoryCoursePathRepo(),
        sink=sink,
        clock=clock,
    )
    services.task_queue = queue
    return services


async def build_services(settings: Settings) -> LmsServices:
    redis_client = None
    redis_ok = True
    if settings.redis_url:
        redis_client = create_redis(settings.redis_url)
        redis_ok = await check_redis(redis_client)
    queue = build_task_queue(redis_client)
    sink = TaskQueueEventSink(queue, settings.lms_events_queue)

    if not settings.database_url:
        logger.warning("DATABASE_URL not set; using in-memory repositories")
        services = build_in_memory_services(sink=sink)
    else:
        database = create_database(settings.database_url)
        factory = database.session_factory
        services = wire_services(
            progress_repo=PgProgressRepo(factory),
            catalog=PgCatalogRepo(factory),
            certificate_repo=PgCertificateRepo(factory),
            course_path_repo=PgCoursePathRepo(factory),
            sink=sink,
        )
        services.database = database

    services.task_queue = queue
    services.redis = redis_client
    services.redis_ok = redis_ok
    return services
