"""Certificate service - issuing, verifying and managing award certificates"""

import logging
import os
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...errors import NotFoundError, StateConflictError
from ...models import CERTIFICATE_STATUSES, Nomination
from ...models_certificate import Certificate
from ...models_outbox import EVENT_CERTIFICATE_GENERATE, EVENT_CERTIFICATE_ISSUED
from ...outbox import record_event
from ...services.certificate_generator import (
    CertificateData,
    CertificateKind,
    certificate_filename,
    generate_certificate_id,
    render_certificate,
)
from ...utils import storage
from .repository import CertificateRepository

logger = logging.getLogger(__name__)


def verification_url(certificate_id: str) -> str:
    return f"{config.FRONTEND_URL.rstrip('/')}/verify/{certificate_id}"


class CertificateService:
    """Service layer for certificate business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CertificateRepository()

    # ------------------------------------------------------------------
    # Background issuing
    # ------------------------------------------------------------------

    def issue_for_nomination(self, nomination_id: int) -> Optional[Certificate]:
        """
        Render and store the certificate a nomination's status earns.

        Stages the Certificate row, the nomination's certificate fields and a
        certificate.issued event in the session; the caller commits. Returns
        None when nothing needs issuing.
        """
        nomination = (
            self.db.query(Nomination).filter(Nomination.id == nomination_id).with_for_update().first()
        )
        if not nomination:
            logger.info(f"⏭️ Nomination {nomination_id} no longer exists, no certificate issued")
            return None
        if nomination.certificate_file:
            logger.info(f"⏭️ Nomination {nomination_id} already has certificate {nomination.certificate_id}")
            return None
        if nomination.status not in CERTIFICATE_STATUSES:
            logger.info(f"⏭️ Nomination {nomination_id} is {nomination.status}, no certificate issued")
            return None

        kind = CertificateKind.for_status(nomination.status)
        certificate_id = generate_certificate_id(nomination.public_id, kind, config.AWARD_YEAR)
        filename = certificate_filename(certificate_id)
        category_name = nomination.category.name if nomination.category else "SAPHANIOX Awards"
        issue_date = datetime.utcnow()

        pdf_bytes = render_certificate(
            kind,
            CertificateData(
                recipient_name=nomination.nominee_name,
                category_name=category_name,
                award_year=config.AWARD_YEAR,
                issue_date=issue_date,
                certificate_id=certificate_id,
                verify_url=verification_url(certificate_id),
            ),
        )
        url = storage.store_certificate(pdf_bytes, filename)

        certificate = self.repo.add(
            self.db,
            certificate_id=certificate_id,
            nomination_id=nomination.id,
            recipient_name=nomination.nominee_name,
            recipient_email=nomination.nominator_email,
            category_name=category_name,
            kind=kind.value,
            award_year=config.AWARD_YEAR,
            issue_date=issue_date,
            filename=filename,
            url=url,
            status="active",
            verification_count=0,
        )
        nomination.certificate_id = certificate_id
        nomination.certificate_file = filename
        nomination.certificate_generated_at = issue_date
        logger.info(f"🏅 Issued {kind.value} certificate {certificate_id} for nomination {nomination.id}")
        return certificate

    def record_issued_event(self, certificate: Certificate) -> int:
        """Stage the certificate delivery email. Returns the event id."""
        nomination = self.db.get(Nomination, certificate.nomination_id) if certificate.nomination_id else None
        event = record_event(
            self.db,
            EVENT_CERTIFICATE_ISSUED,
            {
                "certificate_id": certificate.certificate_id,
                "recipient_name": certificate.recipient_name,
                "recipient_email": certificate.recipient_email,
                "nominator_name": nomination.nominator_name if nomination else None,
                "category_name": certificate.category_name,
                "kind": certificate.kind,
                "award_year": certificate.award_year,
                "filename": certificate.filename,
                "verify_url": verification_url(certificate.certificate_id),
            },
        )
        self.db.flush()
        return event.id

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def verify(self, certificate_id: str) -> Certificate:
        certificate = self.repo.get_by_certificate_id(self.db, certificate_id.strip().upper())
        if not certificate or certificate.status != "active":
            logger.info(f"🔎 Verification failed for certificate {certificate_id}")
            raise NotFoundError("Certificate not found or has been revoked")
        certificate = self.repo.record_verification(self.db, certificate)
        logger.info(f"🔎 Certificate {certificate.certificate_id} verified ({certificate.verification_count} times)")
        return certificate

    def get_download(self, filename: str) -> tuple[Optional[str], Optional[str]]:
        """Returns (local_path, redirect_url); exactly one is set"""
        path = storage.certificate_path(filename)
        if path is None:
            raise NotFoundError("Certificate not found")

        certificate = self.repo.get_by_filename(self.db, filename)
        if storage.use_r2():
            if not certificate:
                raise NotFoundError("Certificate not found")
            return None, certificate.url

        if not os.path.isfile(path):
            raise NotFoundError("Certificate not found")
        return path, None

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def get_nomination(self, nomination_id: int) -> Nomination:
        nomination = self.db.query(Nomination).filter(Nomination.id == nomination_id).first()
        if not nomination:
            raise NotFoundError("Nomination not found")
        return nomination

    def get_info(self, nomination_id: int) -> tuple[Nomination, Certificate]:
        nomination = self.get_nomination(nomination_id)
        if not nomination.certificate_id:
            raise NotFoundError("No certificate generated for this nomination")
        certificate = self.repo.get_by_certificate_id(self.db, nomination.certificate_id)
        if not certificate:
            raise NotFoundError("No certificate generated for this nomination")
        return nomination, certificate

    def history(self, nomination_id: int) -> list[Certificate]:
        """Every certificate ever issued for a nomination, newest first"""
        return self.repo.get_for_nomination(self.db, nomination_id)

    def list_certificates(self, page: int, limit: int, kind: Optional[str] = None):
        query = self.db.query(Certificate)
        if kind:
            query = query.filter(Certificate.kind == kind)
        total = query.count()
        items = (
            query.order_by(Certificate.created_at.desc(), Certificate.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def queue_generation(self, nomination_id: int) -> int:
        """Queue a certificate.generate event for an eligible nomination. Returns the event id."""
        nomination = self.get_nomination(nomination_id)
        if nomination.status not in CERTIFICATE_STATUSES:
            raise StateConflictError(
                "Certificate can only be generated for winners, finalists, or approved participants"
            )
        if nomination.certificate_file:
            raise StateConflictError("This nomination already has a certificate. Use regenerate instead.")
        event = record_event(self.db, EVENT_CERTIFICATE_GENERATE, {"nomination_id": nomination.id})
        self.db.commit()
        logger.info(f"📋 Queued certificate generation for nomination {nomination.id}")
        return event.id

    def _revoke_current(self, nomination: Nomination) -> Optional[Certificate]:
        certificate = None
        if nomination.certificate_id:
            certificate = self.repo.get_by_certificate_id(self.db, nomination.certificate_id)
        if certificate:
            certificate.status = "revoked"
            if not storage.use_r2():
                path = storage.certificate_path(certificate.filename)
                if path:
                    try:
                        os.remove(path)
                        logger.info(f"🗑️ Deleted certificate file {certificate.filename}")
                    except OSError as e:
                        logger.warning(f"⚠️ Could not delete certificate file {certificate.filename}: {e}")
        nomination.certificate_id = None
        nomination.certificate_file = None
        nomination.certificate_generated_at = None
        return certificate

    def regenerate(self, nomination_id: int) -> int:
        nomination = self.get_nomination(nomination_id)
        if nomination.status not in CERTIFICATE_STATUSES:
            raise StateConflictError(
                "Certificate can only be generated for winners, finalists, or approved participants"
            )
        self._revoke_current(nomination)
        event = record_event(self.db, EVENT_CERTIFICATE_GENERATE, {"nomination_id": nomination.id})
        self.db.commit()
        logger.info(f"♻️ Queued certificate regeneration for nomination {nomination.id}")
        return event.id

    def revoke(self, nomination_id: int) -> Certificate:
        nomination = self.get_nomination(nomination_id)
        if not nomination.certificate_id:
            raise NotFoundError("No certificate found for this nomination")
        certificate = self._revoke_current(nomination)
        self.db.commit()
        logger.info(f"🚫 Revoked certificate for nomination {nomination.id}")
        return certificate

    def queue_bulk_generation(self, status: Optional[str] = None) -> list[int]:
        """Queue certificates for every eligible nomination that has none"""
        statuses = [status] if status else list(CERTIFICATE_STATUSES)
        nominations = (
            self.db.query(Nomination)
            .filter(Nomination.status.in_(statuses), Nomination.certificate_file.is_(None))
            .all()
        )
        if not nominations:
            raise NotFoundError("No nominations found for certificate generation")
        events = [
            record_event(self.db, EVENT_CERTIFICATE_GENERATE, {"nomination_id": n.id}) for n in nominations
        ]
        self.db.commit()
        logger.info(f"📋 Queued {len(events)} certificate generations")
        return [event.id for event in events]
