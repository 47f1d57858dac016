from __future__ import annotations

import asyncio

import pytest

from app.repos.catalog_repo import InMemoryCatalogRepo
from app.services.container import LmsServices
from app.services.enrollment_service import CourseNotFoundError
from app.services.progress_service import ProgressUpdate
from tests.conftest import T0, FakeClock, add_course


def test_enroll_creates_empty_progress(services: LmsServices) -> None:
    progress, created = asyncio.run(services.enrollment.enroll("learner-1", "c1", "assigned"))
    assert created is True
    assert progress.percent_complete == 0
    assert progress.completed is False
    assert progress.lesson_progress == {}
    assert progress.enrollment_origin == "assigned"
    assert progress.enrolled_at == T0


def test_enroll_is_idempotent(services: LmsServices, clock: FakeClock) -> None:
    first, _ = asyncio.run(services.enrollment.enroll("learner-1", "c1", "assigned"))
    clock.advance(60)
    second, created = asyncio.run(
        services.enrollment.enroll("learner-1", "c1", "recommended")
    )
    assert created is False
    assert second.enrollment_origin == "assigned"
    assert second.enrolled_at == first.enrolled_at
    assert second.last_accessed_at == T0 + 60


def test_reenroll_does_not_clobber_progress(services: LmsServices, clock: FakeClock) -> None:
    asyncio.run(services.enrollment.enroll("learner-1", "c1"))
    asyncio.run(
        services.updater.apply_progress(
            "learner-1", "c1", ProgressUpdate("l1", percent_complete=40)
        )
    )
    clock.advance(5)
    asyncio.run(services.enrollment.enroll("learner-1", "c1"))

    stored = asyncio.run(services.progress_repo.get_course_progress("learner-1", "c1"))
    assert stored is not None
    assert stored.percent_complete == 40
    assert stored.lesson_progress["l1"].percent_complete == 40
    assert stored.last_accessed_at == T0 + 5


def test_enroll_checked_rejects_unknown_course(services: LmsServices) -> None:
    with pytest.raises(CourseNotFoundError):
        asyncio.run(services.enrollment.enroll_checked("learner-1", "nope"))


def test_enroll_checked_accepts_catalog_course(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_course(catalog, "c1")
    progress, created = asyncio.run(services.enrollment.enroll_checked("learner-1", "c1"))
    assert created is True
    assert progress.course_id == "c1"
