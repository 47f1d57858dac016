from __future__ import annotations

import asyncio

import pytest

from app.repos.catalog_repo import InMemoryCatalogRepo
from app.services.container import LmsServices
from app.services.path_progress_service import PathNotFoundError
from app.services.progress_service import ProgressUpdate
from tests.conftest import T0, FakeClock, add_path


def _complete(services: LmsServices, course_id: str) -> None:
    asyncio.run(
        services.updater.apply_progress(
            "learner-1", course_id, ProgressUpdate("l1", completed=True)
        )
    )


def test_start_path_enrolls_every_course(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_path(catalog, "p1", ["c1", "c2"], status="published")
    progress, done = asyncio.run(services.paths.start_path("learner-1", "p1"))

    assert done is False
    assert progress.status == "in_progress"
    assert progress.started_at == T0
    assert progress.total_courses == 2
    assert progress.next_course_id == "c1"
    for course_id in ("c1", "c2"):
        assert asyncio.run(
            services.progress_repo.get_course_progress("learner-1", course_id)
        ) is not None


def test_start_path_twice_keeps_started_at(
    services: LmsServices, catalog: InMemoryCatalogRepo, clock: FakeClock
) -> None:
    add_path(catalog, "p1", ["c1"], status="published")
    asyncio.run(services.paths.start_path("learner-1", "p1"))
    clock.advance(100)
    again, _ = asyncio.run(services.paths.start_path("learner-1", "p1"))
    assert again.started_at == T0
    assert again.enrolled_at == T0


def test_start_path_requires_published_path(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_path(catalog, "draft", ["c1"], status="draft")
    with pytest.raises(PathNotFoundError):
        asyncio.run(services.paths.start_path("learner-1", "draft"))
    with pytest.raises(PathNotFoundError):
        asyncio.run(services.paths.start_path("learner-1", "missing"))


def test_recompute_reports_completion_once(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    path = add_path(catalog, "p1", ["c1", "c2"], status="published")
    _complete(services, "c1")
    progress, done = asyncio.run(services.paths.recompute("learner-1", path))
    assert done is False
    assert progress.percent_complete == 50
    assert progress.next_course_id == "c2"

    _complete(services, "c2")
    progress, done = asyncio.run(services.paths.recompute("learner-1", path))
    assert done is True
    assert progress.completed is True
    assert progress.completed_at == T0

    _, done_again = asyncio.run(services.paths.recompute("learner-1", path))
    assert done_again is False


def test_list_path_progress(services: LmsServices, catalog: InMemoryCatalogRepo) -> None:
    for path_id in ("p2", "p1", "p3"):
        add_path(catalog, path_id, ["c1"], status="published")
        asyncio.run(services.paths.start_path("learner-1", path_id))

    listed = asyncio.run(services.paths.list_path_progress("learner-1", limit=2))
    assert [p.path_id for p in listed] == ["p1", "p2"]
    assert asyncio.run(services.paths.list_path_progress("someone-else")) == []


def test_start_path_reports_completion_of_finished_courses(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    _complete(services, "c1")
    add_path(catalog, "p1", ["c1"], status="published")

    progress, done = asyncio.run(services.paths.start_path("learner-1", "p1"))
    assert done is True
    assert progress.status == "completed"
    assert progress.completed_at == T0

    _, done_again = asyncio.run(services.paths.start_path("learner-1", "p1"))
    assert done_again is False
