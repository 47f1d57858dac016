"""SQLAlchemy table definitions.

Repositories convert rows to tagged records (app/repos/records.py) and from
there to the frozen dataclasses in app/models/, so legacy-shape handling
stays in one place for every backend.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base

# --- Catalog (read by the engine; owned by admin tooling) ---


class CourseRow(Base):
    __tablename__ = "courses"

    course_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="draft"
    )  # draft|published|archived
    lesson_ids: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)


class LearningPathRow(Base):
    __tablename__ = "learning_paths"

    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    published_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    published_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # [{"course_id": ..., "order": ..., "required": ...}, ...]
    courses: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )


class CertificateTemplateRow(Base):
    __tablename__ = "certificate_templates"

    template_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    applies_to: Mapped[str] = mapped_column(String(16), nullable=False)  # course|path
    applies_to_id: Mapped[str] = mapped_column(String(128), nullable=False)
    badge_text: Mapped[str] = mapped_column(String(255), nullable=False)
    signatory_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    signatory_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issued_copy_title: Mapped[str] = mapped_column(String(500), nullable=False)
    issued_copy_body: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("ix_certificate_templates_target", "applies_to", "applies_to_id"),
    )


# --- Learner progress ---


class CourseProgressRow(Base):
    __tablename__ = "course_progress"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    enrollment_origin: Mapped[str] = mapped_column(
        String(32), nullable=False, default="self_enrolled"
    )  # self_enrolled|assigned|required|recommended
    enrolled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    lesson_progress: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    current_lesson_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_position_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    started_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_accessed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class PathProgressRow(Base):
    __tablename__ = "path_progress"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    enrollment_origin: Mapped[str] = mapped_column(
        String(32), nullable=False, default="self_enrolled"
    )
    enrolled_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    total_courses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_courses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percent_complete: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="not_started"
    )  # not_started|in_progress|completed
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    next_course_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    started_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_activity_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class CoursePathRow(Base):
    """Reverse index: which published paths contain a course."""

    __tablename__ = "course_paths"

    course_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    path_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="published"
    )
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # the primary key already serves lookups by course_id
    __table_args__ = (Index("ix_course_paths_path_id", "path_id"),)


# --- Certificates ---


class IssuedCertificateRow(Base):
    __tablename__ = "issued_certificates"

    # derived from (learner, template, completion_type, target); the primary
    # key doubles as the conditional-create guard
    certificate_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    learner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    template_id: Mapped[str] = mapped_column(String(128), nullable=False)
    completion_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    issued_by: Mapped[str] = mapped_column(String(128), nullable=False, default="system")
    certificate_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    __table_args__ = (
        Index("ix_issued_certificates_learner", "learner_id", "issued_at"),
    )


def row_to_dict(row: Base) -> dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}
