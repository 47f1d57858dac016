"""Exactly-once certificate issuance.

The certificate id is derived from (learner, template, completion type,
target), so every retry of the same completion lands on the same id.  The
existence check short-circuits the common case; the store's conditional
create settles the race between two concurrent issuers.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from app.core.clock import Clock, to_iso, utc_now
from app.core.metrics import CERTIFICATES
from app.models.catalog import CertificateTemplate, CompletionType
from app.models.certificate import CertificateData, IssuedCertificate
from app.repos.catalog_repo import CatalogRepo
from app.repos.certificate_repo import CertificateExistsError, CertificateRepo
from app.repos.progress_repo import MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


def certificate_id_for(
    learner_id: str,
    template_id: str,
    completion_type: CompletionType,
    target_id: str,
) -> str:
    key = f"{learner_id}|{template_id}|{completion_type}|{target_id}"
    return "cert_" + hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class IssueResult:
    certificate: IssuedCertificate
    is_new: bool


class CertificateIssuer:
    def __init__(
        self,
        certificate_repo: CertificateRepo,
        catalog_repo: CatalogRepo,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._certificates = certificate_repo
        self._catalog = catalog_repo
        self._clock = clock

    async def issue(
        self,
        learner_id: str,
        template_id: str,
        completion_type: CompletionType,
        target_id: str,
        data: CertificateData,
    ) -> IssueResult:
        certificate_id = certificate_id_for(
            learner_id, template_id, completion_type, target_id
        )
        existing = await self._certificates.get(certificate_id)
        if existing is not None:
            CERTIFICATES.labels(completion_type=completion_type, result="existing").inc()
            return IssueResult(certificate=existing, is_new=False)

        certificate = IssuedCertificate(
            certificate_id=certificate_id,
            learner_id=learner_id,
            template_id=template_id,
            completion_type=completion_type,
            target_id=target_id,
            issued_at=self._clock(),
            certificate_data=data,
        )
        try:
            await self._certificates.create(certificate)
        except CertificateExistsError:
            winner = await self._certificates.get(certificate_id)
            if winner is None:
                raise
            CERTIFICATES.labels(completion_type=completion_type, result="race").inc()
            logger.info("Certificate race settled certificate_id=%s", certificate_id)
            return IssueResult(certificate=winner, is_new=False)

        CERTIFICATES.labels(completion_type=completion_type, result="issued").inc()
        logger.info(
            "Issued certificate_id=%s learner_id=%s %s=%s template_id=%s",
            certificate_id,
            learner_id,
            completion_type,
            target_id,
            template_id,
        )
        return IssueResult(certificate=certificate, is_new=True)

    async def issue_for_completion(
        self,
        learner_id: str,
        completion_type: CompletionType,
        target_id: str,
        *,
        target_title: str,
        recipient_name: str,
        completed_at: int,
    ) -> list[IssueResult]:
        """Issue one certificate per published template for the target."""
        templates = await self._catalog.list_published_templates(
            completion_type, target_id
        )
        results = []
        for template in templates:
            data = _snapshot(template, target_title, recipient_name, completed_at)
            results.append(
                await self.issue(
                    learner_id, template.template_id, completion_type, target_id, data
                )
            )
        return results

    async def list_for_learner(
        self, learner_id: str, limit: int = 50
    ) -> list[IssuedCertificate]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return await self._certificates.list_for_learner(learner_id, limit)

    async def get(self, learner_id: str, certificate_id: str) -> IssuedCertificate | None:
        certificate = await self._certificates.get(certificate_id)
        if certificate is None or certificate.learner_id != learner_id:
            return None
        return certificate


def _snapshot(
    template: CertificateTemplate,
    title: str,
    recipient_name: str,
    completed_at: int,
) -> CertificateData:
    return CertificateData(
        recipient_name=recipient_name,
        title=title,
        completion_date=to_iso(completed_at),
        badge_text=template.badge_text,
        issued_copy_title=template.issued_copy_title,
        issued_copy_body=template.issued_copy_body,
        signatory_name=template.signatory_name,
        signatory_title=template.signatory_title,
    )
