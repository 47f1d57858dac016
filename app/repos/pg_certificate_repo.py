"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.engine import session_scope
from app.db.tables import IssuedCertificateRow, row_to_dict
from app.models.certificate import IssuedCertificate
from app.repos.certificate_repo import CertificateExistsError
from app.repos.records import ISSUED_CERTIFICATE, from_record, to_record


class PgCertificateRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, certificate_id: str) -> IssuedCertificate | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(IssuedCertificateRow, certificate_id)
            if row is None:
                return None
            return _certificate_from_row(row)

    async def create(self, certificate: IssuedCertificate) -> None:
        values = to_record(certificate)
        values.pop("entity_type")
        try:
            async with session_scope(self._session_factory) as session:
                session.add(IssuedCertificateRow(**values))
                await session.flush()
        except IntegrityError as exc:
            raise CertificateExistsError(certificate.certificate_id) from exc

    async def list_for_learner(
        self, learner_id: str, limit: int
    ) -> list[IssuedCertificate]:
        stmt = (
            select(IssuedCertificateRow)
            .where(IssuedCertificateRow.learner_id == learner_id)
            .order_by(
                IssuedCertificateRow.issued_at.desc(),
                IssuedCertificateRow.certificate_id.desc(),
            )
            .limit(limit)
        )
        async with session_scope(self._session_factory) as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_certificate_from_row(row) for row in rows]


def _certificate_from_row(row: IssuedCertificateRow) -> IssuedCertificate:
    return from_record({"entity_type": ISSUED_CERTIFICATE, **row_to_dict(row)})  # type: ignore[return-value]
