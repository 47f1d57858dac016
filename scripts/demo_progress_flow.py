"""Demo: enroll → progress → course certificate → path completion.

Runs the whole engine in-process on in-memory stores using FastAPI
TestClient.  Run with:
    python scripts/demo_progress_flow.py
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.main import create_app
from app.models.catalog import CertificateTemplate, Course, LearningPath
from app.repos.catalog_repo import InMemoryCatalogRepo
from app.services.container import build_in_memory_services
from app.services.lms_events import InMemoryEventSink
from app.services.task_queue import InMemoryTaskQueue
from app.worker import drain

LEARNER = {"X-Learner-Id": "demo-learner", "X-Learner-Name": "Demo Learner"}


def _seed(catalog: InMemoryCatalogRepo) -> None:
    catalog.add_course(
        Course("py-101", "Python Basics", status="published", lesson_ids=("intro", "types"))
    )
    catalog.add_course(
        Course("py-201", "Testing in Python", status="published", lesson_ids=("pytest",))
    )
    catalog.add_path(LearningPath("py-track", "Python Track"))
    for template_id, applies_to, target in (
        ("tpl-course", "course", "py-101"),
        ("tpl-path", "path", "py-track"),
    ):
        catalog.add_template(
            CertificateTemplate(
                template_id=template_id,
                name=f"{target} certificate",
                applies_to=applies_to,  # type: ignore[arg-type]
                applies_to_id=target,
                badge_text="Completed",
                issued_copy_title="Certificate of Completion",
                issued_copy_body="Awarded for completing the coursework.",
                status="published",
            )
        )


def main() -> None:
    sink = InMemoryEventSink()
    services = build_in_memory_services(sink=sink)
    _seed(services.catalog)  # type: ignore[arg-type]
    client = TestClient(create_app(services))

    # ── Step 1: publish the path (fills the reverse index) ──────────
    r = client.post(
        "/v1/lms/admin/paths/py-track/publish",
        json={"course_ids": ["py-101", "py-201"]},
        headers={"X-Learner-Id": "demo-admin"},
    )
    print(f"1. publish py-track        → {r.status_code}  version={r.json()['version']}")

    # ── Step 2: start the path ──────────────────────────────────────
    r = client.post("/v1/lms/paths/py-track/start", headers=LEARNER)
    print(f"2. start py-track          → {r.status_code}  status={r.json()['status']}")

    # ── Step 3: partial progress, then both lessons of py-101 ───────
    for lesson_id, body in (
        ("intro", {"percent_complete": 35, "position_ms": 42_000}),
        ("types", {"percent_complete": 0}),
        ("intro", {"completed": True}),
        ("types", {"completed": True}),
    ):
        r = client.post(
            "/v1/lms/progress",
            json={"course_id": "py-101", "lesson_id": lesson_id, **body},
            headers=LEARNER,
        )
        out = r.json()
        print(
            f"3. progress py-101/{lesson_id:<6} → {r.status_code}  "
            f"course={out['progress']['percent_complete']}% "
            f"certificates={len(out['certificates'])}"
        )

    # ── Step 4: finish py-201, which completes the path ─────────────
    r = client.post(
        "/v1/lms/progress",
        json={"course_id": "py-201", "lesson_id": "pytest", "completed": True},
        headers=LEARNER,
    )
    [path] = r.json()["paths"]
    print(f"4. progress py-201         → {r.status_code}  path={path['status']}")

    # ── Step 5: certificates ────────────────────────────────────────
    r = client.get("/v1/lms/certificates", headers=LEARNER)
    for cert in r.json():
        print(f"5. {cert['certificate_id']}  {cert['completion_type']:<6} {cert['title']}")

    # ── Step 6: hand the notifications to the worker ────────────────
    queue = InMemoryTaskQueue()

    async def forward() -> int:
        for event in sink.events:
            await queue.enqueue("lms_events", event.to_payload())
        return await drain(queue, "lms_events")

    print(f"6. {len(sink.events)} events emitted, worker processed {asyncio.run(forward())}")


if __name__ == "__main__":
    main()
