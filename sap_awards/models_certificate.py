"""
Certificate records for award winners, finalists and participants
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from .database import Base


class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String(50), unique=True, nullable=False, index=True)
    nomination_id = Column(
        Integer, ForeignKey("nominations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    recipient_name = Column(String(100), nullable=False)
    recipient_email = Column(String(255), nullable=True)
    category_name = Column(String(100), nullable=False)
    kind = Column(String(20), nullable=False)  # winner, finalist, participant
    award_year = Column(Integer, nullable=False)
    issue_date = Column(DateTime, nullable=False)

    filename = Column(String(255), nullable=False, unique=True)
    url = Column(String(500), nullable=False)

    status = Column(String(20), default="active", nullable=False)  # active, revoked
    verification_count = Column(Integer, default=0, nullable=False)
    last_verified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
