from __future__ import annotations

from dataclasses import dataclass

from app.models.catalog import CompletionType


@dataclass(frozen=True, slots=True)
class CertificateData:
    """Snapshot captured at issuance; never rewritten afterwards."""

    recipient_name: str
    title: str
    completion_date: str  # ISO-8601
    badge_text: str
    issued_copy_title: str
    issued_copy_body: str
    signatory_name: str | None = None
    signatory_title: str | None = None


@dataclass(frozen=True, slots=True)
class IssuedCertificate:
    """Issued certificate instance, one per (learner, template, target)."""

    certificate_id: str
    learner_id: str
    template_id: str
    completion_type: CompletionType
    target_id: str
    issued_at: int
    certificate_data: CertificateData
    issued_by: str = "system"
