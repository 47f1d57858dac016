"""Record normalization at the store boundary."""

from __future__ import annotations

import pytest

from app.models.certificate import CertificateData, IssuedCertificate
from app.models.course_path import CoursePathMapping
from app.models.progress import CourseProgress, LessonProgress, PathProgress
from app.repos.records import (
    RecordValidationError,
    from_record,
    migrate_record,
    to_record,
)
from tests.conftest import T0


def test_current_records_convert_both_ways() -> None:
    progress = CourseProgress(
        learner_id="learner-1",
        course_id="c1",
        enrolled_at=T0,
        lesson_progress={"l1": LessonProgress("l1", percent_complete=40, started_at=T0)},
        percent_complete=40,
        started_at=T0,
    )
    record = to_record(progress)
    assert record["entity_type"] == "course_progress"
    assert from_record(record) == progress


def test_legacy_course_progress_is_upgraded() -> None:
    legacy = {
        "SK": "COURSE#c1",
        "user_id": "learner-1",
        "course_id": "c1",
        "enrolled_at": "2023-11-14T22:13:20Z",
        "last_activity_at": "2023-11-14T22:13:20.000Z",
        "current_section_id": "s1",
        "percent_complete": "50",
        "enrollment_origin": "bulk_import",
        "lesson_progress": {
            "l1": {"completed": True, "percent_complete": 80, "position_ms": 1200},
        },
    }

    progress = from_record(legacy)

    assert isinstance(progress, CourseProgress)
    assert progress.learner_id == "learner-1"
    assert progress.enrolled_at == T0
    assert progress.last_accessed_at == T0
    assert progress.percent_complete == 50
    assert progress.enrollment_origin == "self_enrolled"
    lesson = progress.lesson_progress["l1"]
    assert lesson.lesson_id == "l1"
    assert lesson.percent_complete == 100
    assert lesson.current_position_ms == 1200


def test_legacy_path_progress_status_from_completed_flag() -> None:
    progress = from_record(
        {
            "SK": "PATH#p1",
            "learner_id": "learner-1",
            "path_id": "p1",
            "completed": True,
            "total_courses": "2",
            "completed_courses": 2,
            "percent_complete": 100,
        }
    )
    assert isinstance(progress, PathProgress)
    assert progress.status == "completed"
    assert progress.completed is True
    assert progress.total_courses == 2


def test_legacy_certificate_is_flattened() -> None:
    cert = from_record(
        {
            "certificate_id": "cert_abc",
            "user_id": "learner-1",
            "template_id": "t1",
            "completion_type": "course",
            "course_id": "c1",
            "issued_at": T0,
            "created_at": T0,
            "certificate_data": {
                "recipient_name": "Ada",
                "course_title": "Intro",
                "completion_date": "2023-11-14T22:13:20Z",
                "badge_text": "Done",
                "issued_copy": {"title": "Certificate", "body": "Well done"},
            },
        }
    )
    assert isinstance(cert, IssuedCertificate)
    assert cert.target_id == "c1"
    assert cert.learner_id == "learner-1"
    assert cert.issued_by == "system"
    assert cert.certificate_data == CertificateData(
        recipient_name="Ada",
        title="Intro",
        completion_date="2023-11-14T22:13:20Z",
        badge_text="Done",
        issued_copy_title="Certificate",
        issued_copy_body="Well done",
    )


def test_course_path_entry_inferred_from_sort_key() -> None:
    mapping = from_record({"SK": "COURSEPATH#p1", "course_id": "c1", "path_id": "p1"})
    assert mapping == CoursePathMapping(course_id="c1", path_id="p1")


def test_migrate_does_not_mutate_input() -> None:
    item = {"SK": "COURSE#c1", "user_id": "learner-1", "course_id": "c1"}
    migrate_record(item)
    assert "learner_id" not in item


@pytest.mark.parametrize(
    "item",
    [
        {"learner_id": "learner-1"},
        {"entity_type": "badge", "learner_id": "learner-1"},
        {"entity_type": "course_progress", "learner_id": "learner-1"},
        {"entity_type": "issued_certificate", "certificate_id": "cert_x"},
    ],
)
def test_invalid_records_are_rejected(item: dict) -> None:
    with pytest.raises(RecordValidationError):
        from_record(item)


def test_unsupported_entity_is_rejected() -> None:
    with pytest.raises(RecordValidationError):
        to_record("not an entity")  # type: ignore[arg-type]
