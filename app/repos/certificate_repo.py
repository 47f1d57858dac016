from __future__ import annotations

from typing import Any, Protocol

from app.models.certificate import IssuedCertificate
from app.repos.records import from_record, to_record


class CertificateExistsError(Exception):
    """Conditional create lost: a certificate with this id is already stored."""

    def __init__(self, certificate_id: str) -> None:
        self.certificate_id = certificate_id
        super().__init__(f"certificate {certificate_id} already exists")


class CertificateRepo(Protocol):
    async def get(self, certificate_id: str) -> IssuedCertificate | None: ...
    async def create(self, certificate: IssuedCertificate) -> None:
        """Insert only if the id is new; raise CertificateExistsError otherwise."""
        ...

    async def list_for_learner(
        self, learner_id: str, limit: int
    ) -> list[IssuedCertificate]: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, dict[str, Any]] = {}
        self._by_learner: dict[str, list[str]] = {}

    async def get(self, certificate_id: str) -> IssuedCertificate | None:
        item = self._by_id.get(certificate_id)
        if item is None:
            return None
        return from_record(item)

    async def create(self, certificate: IssuedCertificate) -> None:
        if certificate.certificate_id in self._by_id:
            raise CertificateExistsError(certificate.certificate_id)
        self._by_id[certificate.certificate_id] = to_record(certificate)
        self._by_learner.setdefault(certificate.learner_id, []).append(
            certificate.certificate_id
        )

    async def list_for_learner(
        self, learner_id: str, limit: int
    ) -> list[IssuedCertificate]:
        certs = [
            from_record(self._by_id[cid]) for cid in self._by_learner.get(learner_id, [])
        ]
        certs.sort(key=lambda c: (c.issued_at, c.certificate_id), reverse=True)
        return certs[:limit]
