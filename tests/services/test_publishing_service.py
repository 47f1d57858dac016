from __future__ import annotations

import asyncio

import pytest

from app.repos.catalog_repo import InMemoryCatalogRepo
from app.services.container import LmsServices
from app.services.path_progress_service import PathNotFoundError
from tests.conftest import T0, FakeClock, add_path


def test_publish_sets_status_version_and_order(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_path(catalog, "p1", ["c1"])
    path = asyncio.run(services.publishing.publish_path("p1", ["c3", "c1", "c2"], "admin-1"))

    assert path.status == "published"
    assert path.version == 2
    assert path.published_at == T0
    assert path.published_by == "admin-1"
    assert path.course_ids == ["c3", "c1", "c2"]

    stored = asyncio.run(catalog.get_path("p1"))
    assert stored == path


def test_publish_keeps_required_flags(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_path(catalog, "p1", ["c1", "c2"], optional=("c2",))
    path = asyncio.run(services.publishing.publish_path("p1", ["c2", "c3"]))
    required = {ref.course_id: ref.required for ref in path.courses}
    assert required == {"c2": False, "c3": True}


def test_publish_syncs_reverse_index(
    services: LmsServices, catalog: InMemoryCatalogRepo
) -> None:
    add_path(catalog, "p1", [])
    asyncio.run(services.publishing.publish_path("p1", ["c1", "c2"]))
    asyncio.run(services.publishing.publish_path("p1", ["c2"]))

    assert asyncio.run(services.index.lookup_published_path_ids("c1")) == []
    assert asyncio.run(services.index.lookup_published_path_ids("c2")) == ["p1"]


def test_republish_bumps_version(
    services: LmsServices, catalog: InMemoryCatalogRepo, clock: FakeClock
) -> None:
    add_path(catalog, "p1", [])
    asyncio.run(services.publishing.publish_path("p1", ["c1"]))
    clock.advance(30)
    again = asyncio.run(services.publishing.publish_path("p1", ["c1"]))
    assert again.version == 3
    assert again.published_at == T0 + 30


def test_publish_unknown_path(services: LmsServices) -> None:
    with pytest.raises(PathNotFoundError):
        asyncio.run(services.publishing.publish_path("missing", ["c1"]))
