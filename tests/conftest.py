from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.main import create_app  # noqa: E402
from app.models.catalog import (  # noqa: E402
    CertificateTemplate,
    Course,
    LearningPath,
    PathCourseRef,
)
from app.repos.catalog_repo import InMemoryCatalogRepo  # noqa: E402
from app.services.container import LmsServices, build_in_memory_services  # noqa: E402
from app.services.lms_events import InMemoryEventSink  # noqa: E402

T0 = 1_700_000_000


class FakeClock:
    """Epoch-seconds clock the tests move by hand."""

    def __init__(self, start: int = T0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def services(clock: FakeClock, sink: InMemoryEventSink) -> LmsServices:
    return build_in_memory_services(sink=sink, clock=clock)


@pytest.fixture
def catalog(services: LmsServices) -> InMemoryCatalogRepo:
    return services.catalog  # type: ignore[return-value]


@pytest.fixture
def client(services: LmsServices) -> TestClient:
    return TestClient(create_app(services))


def learner_headers(learner_id: str = "learner-1", name: str | None = None) -> dict:
    headers = {"X-Learner-Id": learner_id}
    if name is not None:
        headers["X-Learner-Name"] = name
    return headers


# ---------------------------------------------------------------------------
# Catalog seeding helpers
# ---------------------------------------------------------------------------


def add_course(
    catalog: InMemoryCatalogRepo,
    course_id: str,
    lesson_ids: Sequence[str] = ("l1", "l2"),
    title: str | None = None,
) -> Course:
    course = Course(
        course_id=course_id,
        title=title or f"Course {course_id}",
        status="published",
        lesson_ids=tuple(lesson_ids),
    )
    catalog.add_course(course)
    return course


def add_path(
    catalog: InMemoryCatalogRepo,
    path_id: str,
    course_ids: Sequence[str],
    *,
    status: str = "draft",
    optional: Sequence[str] = (),
    title: str | None = None,
) -> LearningPath:
    path = LearningPath(
        path_id=path_id,
        title=title or f"Path {path_id}",
        status=status,  # type: ignore[arg-type]
        courses=tuple(
            PathCourseRef(course_id=c, order=i, required=c not in optional)
            for i, c in enumerate(course_ids)
        ),
    )
    catalog.add_path(path)
    return path


def add_template(
    catalog: InMemoryCatalogRepo,
    template_id: str,
    applies_to: str,
    applies_to_id: str,
    *,
    status: str = "published",
) -> CertificateTemplate:
    template = CertificateTemplate(
        template_id=template_id,
        name=f"Template {template_id}",
        applies_to=applies_to,  # type: ignore[arg-type]
        applies_to_id=applies_to_id,
        badge_text="Completed",
        issued_copy_title="Certificate of Completion",
        issued_copy_body="Awarded for completing the coursework.",
        status=status,  # type: ignore[arg-type]
        signatory_name="Dana Reyes",
        signatory_title="Head of Learning",
    )
    catalog.add_template(template)
    return template


def publish(services: LmsServices, path_id: str, course_ids: Sequence[str]) -> LearningPath:
    """Publish through the service so the reverse index is populated."""
    return asyncio.run(services.publishing.publish_path(path_id, list(course_ids)))
