"""Certificate domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class CertificatePublic(BaseModel):
    """What a verifier sees"""

    certificateId: str
    recipientName: str
    categoryName: str
    kind: str
    awardYear: int
    issueDate: datetime
    verificationCount: int
    lastVerifiedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, certificate):
        return cls(
            certificateId=certificate.certificate_id,
            recipientName=certificate.recipient_name,
            categoryName=certificate.category_name,
            kind=certificate.kind,
            awardYear=certificate.award_year,
            issueDate=certificate.issue_date,
            verificationCount=certificate.verification_count,
            lastVerifiedAt=certificate.last_verified_at,
        )


class CertificateAdmin(CertificatePublic):
    id: int
    nominationId: Optional[int] = None
    recipientEmail: Optional[str] = None
    filename: str
    url: str
    status: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, certificate):
        return cls(
            **CertificatePublic.from_model(certificate).model_dump(),
            id=certificate.id,
            nominationId=certificate.nomination_id,
            recipientEmail=certificate.recipient_email,
            filename=certificate.filename,
            url=certificate.url,
            status=certificate.status,
            createdAt=certificate.created_at,
        )


class BulkGenerateRequest(BaseModel):
    status: Optional[Literal["winner", "finalist", "approved"]] = None
