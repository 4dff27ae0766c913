import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import column_property, relationship
from sqlalchemy.sql import func

from .database import Base

NOMINATION_STATUSES = ("pending", "approved", "rejected", "winner", "finalist")
# Statuses visible on the public site
PUBLIC_STATUSES = ("approved", "winner", "finalist")
# Transitions into these statuses issue a certificate
CERTIFICATE_STATUSES = ("winner", "finalist", "approved")

CATEGORY_ICON_NAMES = (
    "trophy",
    "star",
    "medal",
    "crown",
    "rocket",
    "lightbulb",
    "heart",
    "users",
    "globe",
    "flag",
    "chart",
    "shield",
    "target",
    "briefcase",
    "sparkles",
    "check",
    "clock",
    "ballot",
)


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="user", nullable=False)  # user, admin
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AwardCategory(Base):
    __tablename__ = "award_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=False)
    icon = Column(String(10), default="🏆", nullable=False)
    icon_name = Column(String(20), default="trophy", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    nominations = relationship("Nomination", back_populates="category")


class Nomination(Base):
    __tablename__ = "nominations"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    slug = Column(String(80), unique=True, nullable=False, index=True)

    # Nominee
    nominee_name = Column(String(100), nullable=False, index=True)
    nominee_title = Column(String(150), nullable=True)
    nominee_company = Column(String(100), nullable=True)
    nominee_country = Column(String(100), default="Uganda", nullable=False)
    nominee_photo = Column(String(500), nullable=True)  # Local /uploads path or CDN URL

    category_id = Column(Integer, ForeignKey("award_categories.id"), nullable=False, index=True)

    # Nomination details
    nomination_reason = Column(Text, nullable=True)
    achievements = Column(Text, nullable=True)
    impact_description = Column(Text, nullable=True)

    # Nominator
    nominator_name = Column(String(100), nullable=False)
    nominator_email = Column(String(255), nullable=False, index=True)
    nominator_phone = Column(String(20), nullable=True)
    nominator_organization = Column(String(100), nullable=True)

    # Moderation: pending -> approved/rejected -> winner/finalist
    status = Column(String(20), default="pending", nullable=False, index=True)
    admin_notes = Column(String(500), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    # Certificate (set once by the certificate job)
    certificate_id = Column(String(50), nullable=True, unique=True)
    certificate_file = Column(String(500), nullable=True)
    certificate_generated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("AwardCategory", back_populates="nominations")
    reviewer = relationship("User")
    votes = relationship(
        "NominationVote",
        back_populates="nomination",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="NominationVote.voted_at",
    )


class NominationVote(Base):
    """One vote per normalized email per nomination, enforced by the unique constraint"""

    __tablename__ = "nomination_votes"
    __table_args__ = (
        UniqueConstraint("nomination_id", "voter_email", name="uq_nomination_votes_voter"),
    )

    id = Column(Integer, primary_key=True, index=True)
    nomination_id = Column(
        Integer, ForeignKey("nominations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    voter_email = Column(String(255), nullable=False)
    voter_name = Column(String(100), nullable=True)
    ip_address = Column(String(64), nullable=True)
    voted_at = Column(DateTime, server_default=func.now())

    nomination = relationship("Nomination", back_populates="votes")


# Derived from the vote rows so it can never drift from them
Nomination.total_votes = column_property(
    select(func.count(NominationVote.id))
    .where(NominationVote.nomination_id == Nomination.id)
    .correlate_except(NominationVote)
    .scalar_subquery()
)
