"""Certificate repository - Database operations for certificates"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models_certificate import Certificate


class CertificateRepository:
    """Repository for certificate database operations"""

    @staticmethod
    def get_by_certificate_id(db: Session, certificate_id: str) -> Optional[Certificate]:
        return db.query(Certificate).filter(Certificate.certificate_id == certificate_id).first()

    @staticmethod
    def get_by_filename(db: Session, filename: str) -> Optional[Certificate]:
        return db.query(Certificate).filter(Certificate.filename == filename).first()

    @staticmethod
    def get_for_nomination(db: Session, nomination_id: int) -> list[Certificate]:
        return (
            db.query(Certificate)
            .filter(Certificate.nomination_id == nomination_id)
            .order_by(Certificate.created_at.desc(), Certificate.id.desc())
            .all()
        )

    @staticmethod
    def add(db: Session, **fields) -> Certificate:
        """Stage a certificate in the current transaction"""
        certificate = Certificate(**fields)
        db.add(certificate)
        return certificate

    @staticmethod
    def record_verification(db: Session, certificate: Certificate) -> Certificate:
        db.query(Certificate).filter(Certificate.id == certificate.id).update(
            {
                Certificate.verification_count: Certificate.verification_count + 1,
                Certificate.last_verified_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
        db.commit()
        db.refresh(certificate)
        return certificate
