"""Store boundary: domain dataclasses <-> tagged plain-dict records.

Every record written by a repository carries an ``entity_type`` tag.  On
the way back in, ``migrate_record`` upgrades older record shapes exactly
once, then ``from_record`` dispatches on the tag and builds the dataclass.
Nothing above the repositories ever sees a raw record.
"""

from __future__ import annotations

import datetime
from typing import Any

from app.models.certificate import CertificateData, IssuedCertificate
from app.models.course_path import CoursePathMapping
from app.models.progress import (
    ENROLLMENT_ORIGINS,
    CourseProgress,
    LessonProgress,
    PathProgress,
)

COURSE_PROGRESS = "course_progress"
PATH_PROGRESS = "path_progress"
COURSE_PATH = "course_path"
ISSUED_CERTIFICATE = "issued_certificate"

Entity = CourseProgress | PathProgress | CoursePathMapping | IssuedCertificate

_REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    COURSE_PROGRESS: ("learner_id", "course_id"),
    PATH_PROGRESS: ("learner_id", "path_id"),
    COURSE_PATH: ("course_id", "path_id"),
    ISSUED_CERTIFICATE: (
        "certificate_id",
        "learner_id",
        "template_id",
        "completion_type",
        "target_id",
        "issued_at",
    ),
}


class RecordValidationError(ValueError):
    pass


# ---------------------------------------------------------------------------
# Legacy normalization
# ---------------------------------------------------------------------------


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _as_opt_int(value: Any) -> int | None:
    """Timestamps: epoch seconds, or ISO-8601 strings from older records."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            pass
        try:
            parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=datetime.UTC)
        return int(parsed.timestamp())
    return _as_int(value)


def _migrate_lesson(lesson_id: str, raw: dict[str, Any]) -> dict[str, Any]:
    lesson = dict(raw)
    lesson.setdefault("lesson_id", lesson_id)
    if "position_ms" in lesson and "current_position_ms" not in lesson:
        lesson["current_position_ms"] = lesson.pop("position_ms")
    lesson["percent_complete"] = _as_int(lesson.get("percent_complete"))
    lesson["completed"] = bool(lesson.get("completed", False))
    if lesson["completed"]:
        lesson["percent_complete"] = 100
    return lesson


def migrate_record(item: dict[str, Any]) -> dict[str, Any]:
    """Upgrade an older record shape to the current one.

    Handles records written before the learner_id/target_id renames and
    before optional fields had defaults.  Returns a new dict.
    """
    record = dict(item)
    if "learner_id" not in record and "user_id" in record:
        record["learner_id"] = record.pop("user_id")

    entity_type = record.get("entity_type")
    if entity_type is None:
        entity_type = _infer_entity_type(record)
        record["entity_type"] = entity_type

    if entity_type == COURSE_PROGRESS:
        if "last_accessed_at" not in record and "last_activity_at" in record:
            record["last_accessed_at"] = record.pop("last_activity_at")
        record.pop("last_activity_at", None)
        record.pop("current_section_id", None)
        lessons = record.get("lesson_progress") or {}
        record["lesson_progress"] = {
            lesson_id: _migrate_lesson(lesson_id, raw)
            for lesson_id, raw in lessons.items()
        }
        record["percent_complete"] = _as_int(record.get("percent_complete"))
        record["completed"] = bool(record.get("completed", False))
        if record.get("enrollment_origin") not in ENROLLMENT_ORIGINS:
            record["enrollment_origin"] = "self_enrolled"
    elif entity_type == PATH_PROGRESS:
        # ``completed`` is derived from status now
        completed = bool(record.pop("completed", False))
        if not record.get("status"):
            record["status"] = "completed" if completed else "not_started"
        for key in ("total_courses", "completed_courses", "percent_complete"):
            record[key] = _as_int(record.get(key))
        if record.get("enrollment_origin") not in ENROLLMENT_ORIGINS:
            record["enrollment_origin"] = "self_enrolled"
    elif entity_type == ISSUED_CERTIFICATE:
        if "target_id" not in record:
            key = "course_id" if record.get("completion_type") == "course" else "path_id"
            record["target_id"] = record.get(key)
        record.pop("course_id", None)
        record.pop("path_id", None)
        record.pop("created_at", None)
        data = dict(record.get("certificate_data") or {})
        copy = data.pop("issued_copy", None)
        if isinstance(copy, dict):
            data.setdefault("issued_copy_title", copy.get("title", ""))
            data.setdefault("issued_copy_body", copy.get("body", ""))
        if "title" not in data:
            data["title"] = data.pop("course_title", None) or data.pop("path_title", "")
        data.pop("course_title", None)
        data.pop("path_title", None)
        record["certificate_data"] = data
    return record


def _infer_entity_type(record: dict[str, Any]) -> str:
    # older progress items only had a sort key to tell them apart
    sk = str(record.get("SK", ""))
    if sk.startswith("COURSEPATH#"):
        return COURSE_PATH
    if sk.startswith("PATH#"):
        return PATH_PROGRESS
    if sk.startswith("COURSE#"):
        return COURSE_PROGRESS
    if "certificate_id" in record:
        return ISSUED_CERTIFICATE
    raise RecordValidationError("record has no entity_type and cannot be inferred")


# ---------------------------------------------------------------------------
# Dataclass <-> record
# ---------------------------------------------------------------------------


def to_record(entity: Entity) -> dict[str, Any]:
    if isinstance(entity, CourseProgress):
        return {
            "entity_type": COURSE_PROGRESS,
            "learner_id": entity.learner_id,
            "course_id": entity.course_id,
            "enrollment_origin": entity.enrollment_origin,
            "enrolled_at": entity.enrolled_at,
            "lesson_progress": {
                lesson_id: _lesson_to_dict(lesson)
                for lesson_id, lesson in entity.lesson_progress.items()
            },
            "percent_complete": entity.percent_complete,
            "completed": entity.completed,
            "completed_at": entity.completed_at,
            "current_lesson_id": entity.current_lesson_id,
            "last_position_ms": entity.last_position_ms,
            "started_at": entity.started_at,
            "last_accessed_at": entity.last_accessed_at,
            "updated_at": entity.updated_at,
        }
    if isinstance(entity, PathProgress):
        return {
            "entity_type": PATH_PROGRESS,
            "learner_id": entity.learner_id,
            "path_id": entity.path_id,
            "enrollment_origin": entity.enrollment_origin,
            "enrolled_at": entity.enrolled_at,
            "total_courses": entity.total_courses,
            "completed_courses": entity.completed_courses,
            "percent_complete": entity.percent_complete,
            "status": entity.status,
            "completed_at": entity.completed_at,
            "next_course_id": entity.next_course_id,
            "started_at": entity.started_at,
            "last_activity_at": entity.last_activity_at,
            "updated_at": entity.updated_at,
        }
    if isinstance(entity, CoursePathMapping):
        return {
            "entity_type": COURSE_PATH,
            "course_id": entity.course_id,
            "path_id": entity.path_id,
            "path_status": entity.path_status,
            "updated_at": entity.updated_at,
        }
    if isinstance(entity, IssuedCertificate):
        data = entity.certificate_data
        return {
            "entity_type": ISSUED_CERTIFICATE,
            "certificate_id": entity.certificate_id,
            "learner_id": entity.learner_id,
            "template_id": entity.template_id,
            "completion_type": entity.completion_type,
            "target_id": entity.target_id,
            "issued_at": entity.issued_at,
            "issued_by": entity.issued_by,
            "certificate_data": {
                "recipient_name": data.recipient_name,
                "title": data.title,
                "completion_date": data.completion_date,
                "badge_text": data.badge_text,
                "issued_copy_title": data.issued_copy_title,
                "issued_copy_body": data.issued_copy_body,
                "signatory_name": data.signatory_name,
                "signatory_title": data.signatory_title,
            },
        }
    raise RecordValidationError(f"unsupported entity {type(entity).__name__}")


def from_record(item: dict[str, Any]) -> Entity:
    record = migrate_record(item)
    entity_type = record.get("entity_type")
    required = _REQUIRED_KEYS.get(entity_type)  # type: ignore[arg-type]
    if required is None:
        raise RecordValidationError(f"unknown entity_type {entity_type!r}")
    missing = [key for key in required if record.get(key) in (None, "")]
    if missing:
        raise RecordValidationError(
            f"{entity_type} record missing {', '.join(missing)}"
        )

    if entity_type == COURSE_PROGRESS:
        return CourseProgress(
            learner_id=record["learner_id"],
            course_id=record["course_id"],
            enrollment_origin=record["enrollment_origin"],
            enrolled_at=_as_opt_int(record.get("enrolled_at")),
            lesson_progress={
                lesson_id: _lesson_from_dict(raw)
                for lesson_id, raw in record["lesson_progress"].items()
            },
            percent_complete=record["percent_complete"],
            completed=record["completed"],
            completed_at=_as_opt_int(record.get("completed_at")),
            current_lesson_id=record.get("current_lesson_id"),
            last_position_ms=_as_opt_int(record.get("last_position_ms")),
            started_at=_as_opt_int(record.get("started_at")),
            last_accessed_at=_as_opt_int(record.get("last_accessed_at")),
            updated_at=_as_opt_int(record.get("updated_at")),
        )
    if entity_type == PATH_PROGRESS:
        return PathProgress(
            learner_id=record["learner_id"],
            path_id=record["path_id"],
            enrollment_origin=record["enrollment_origin"],
            enrolled_at=_as_opt_int(record.get("enrolled_at")),
            total_courses=record["total_courses"],
            completed_courses=record["completed_courses"],
            percent_complete=record["percent_complete"],
            status=record["status"],
            completed_at=_as_opt_int(record.get("completed_at")),
            next_course_id=record.get("next_course_id"),
            started_at=_as_opt_int(record.get("started_at")),
            last_activity_at=_as_opt_int(record.get("last_activity_at")),
            updated_at=_as_opt_int(record.get("updated_at")),
        )
    if entity_type == COURSE_PATH:
        return CoursePathMapping(
            course_id=record["course_id"],
            path_id=record["path_id"],
            path_status=record.get("path_status") or "published",
            updated_at=_as_opt_int(record.get("updated_at")),
        )
    data = record.get("certificate_data") or {}
    return IssuedCertificate(
        certificate_id=record["certificate_id"],
        learner_id=record["learner_id"],
        template_id=record["template_id"],
        completion_type=record["completion_type"],
        target_id=record["target_id"],
        issued_at=_as_opt_int(record["issued_at"]) or 0,
        issued_by=record.get("issued_by") or "system",
        certificate_data=CertificateData(
            recipient_name=data.get("recipient_name", ""),
            title=data.get("title", ""),
            completion_date=data.get("completion_date", ""),
            badge_text=data.get("badge_text", ""),
            issued_copy_title=data.get("issued_copy_title", ""),
            issued_copy_body=data.get("issued_copy_body", ""),
            signatory_name=data.get("signatory_name"),
            signatory_title=data.get("signatory_title"),
        ),
    )


def _lesson_to_dict(lesson: LessonProgress) -> dict[str, Any]:
    return {
        "lesson_id": lesson.lesson_id,
        "percent_complete": lesson.percent_complete,
        "completed": lesson.completed,
        "completed_at": lesson.completed_at,
        "current_position_ms": lesson.current_position_ms,
        "started_at": lesson.started_at,
        "last_accessed_at": lesson.last_accessed_at,
        "last_progress_event_at": lesson.last_progress_event_at,
    }


def _lesson_from_dict(raw: dict[str, Any]) -> LessonProgress:
    return LessonProgress(
        lesson_id=raw["lesson_id"],
        percent_complete=raw["percent_complete"],
        completed=raw["completed"],
        completed_at=_as_opt_int(raw.get("completed_at")),
        current_position_ms=_as_opt_int(raw.get("current_position_ms")),
        started_at=_as_opt_int(raw.get("started_at")),
        last_accessed_at=_as_opt_int(raw.get("last_accessed_at")),
        last_progress_event_at=_as_opt_int(raw.get("last_progress_event_at")),
    )
