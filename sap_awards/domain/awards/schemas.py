"""Awards domain schemas - Pydantic models for validation and responses"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import CATEGORY_ICON_NAMES
from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import clean_text

NominationStatus = Literal["pending", "approved", "rejected", "winner", "finalist"]

# Longest allowed value per free-text field
NOMINATION_FIELD_LIMITS = {
    "nomineeName": 100,
    "nomineeTitle": 150,
    "nomineeCompany": 100,
    "nomineeCountry": 100,
    "nominationReason": 1000,
    "achievements": 1500,
    "impactDescription": 1000,
    "nominatorName": 100,
    "nominatorOrganization": 100,
}


def _required_text(value, field: str, min_length: int = 1) -> str:
    value = clean_text(None if value is None else str(value), NOMINATION_FIELD_LIMITS.get(field))
    if not value:
        raise ValueError(f"{field} is required")
    if len(value) < min_length:
        raise ValueError(f"must be at least {min_length} characters")
    return value


class NominationCreate(BaseModel):
    """Public nomination submission"""

    nomineeName: str
    category: int
    nominatorName: str
    nominatorEmail: str
    nomineeTitle: Optional[str] = None
    nomineeCompany: Optional[str] = None
    nomineeCountry: Optional[str] = None
    nominationReason: Optional[str] = None
    achievements: Optional[str] = None
    impactDescription: Optional[str] = None
    nominatorPhone: Optional[str] = None
    nominatorOrganization: Optional[str] = None

    @field_validator("nomineeName", mode="before")
    @classmethod
    def validate_nominee_name(cls, v):
        return _required_text(v, "nomineeName", min_length=2)

    @field_validator("nominatorName", mode="before")
    @classmethod
    def validate_nominator_name(cls, v):
        return _required_text(v, "nominatorName")

    @field_validator("nominatorEmail", mode="before")
    @classmethod
    def validate_nominator_email(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("nominatorEmail is required")
        return validate_email(str(v))

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("category is required")
        return v

    @field_validator(
        "nomineeTitle",
        "nomineeCompany",
        "nomineeCountry",
        "nominationReason",
        "achievements",
        "impactDescription",
        "nominatorOrganization",
        mode="before",
    )
    @classmethod
    def validate_optional_text(cls, v, info):
        return clean_text(v, NOMINATION_FIELD_LIMITS[info.field_name])

    @field_validator("nominatorPhone", mode="before")
    @classmethod
    def validate_nominator_phone(cls, v):
        return validate_phone(v)


class NominationUpdate(BaseModel):
    """Admin edit of a nomination; only provided fields change"""

    nomineeName: Optional[str] = None
    category: Optional[int] = None
    nominatorName: Optional[str] = None
    nominatorEmail: Optional[str] = None
    nomineeTitle: Optional[str] = None
    nomineeCompany: Optional[str] = None
    nomineeCountry: Optional[str] = None
    nominationReason: Optional[str] = None
    achievements: Optional[str] = None
    impactDescription: Optional[str] = None
    nominatorPhone: Optional[str] = None
    nominatorOrganization: Optional[str] = None

    @field_validator("nomineeName", "nominatorName", mode="before")
    @classmethod
    def validate_names(cls, v, info):
        if v is None:
            return None
        return _required_text(v, info.field_name, min_length=2 if info.field_name == "nomineeName" else 1)

    @field_validator("nominatorEmail", mode="before")
    @classmethod
    def validate_nominator_email(cls, v):
        if v is None:
            return None
        return validate_email(str(v))

    @field_validator(
        "nomineeTitle",
        "nomineeCompany",
        "nomineeCountry",
        "nominationReason",
        "achievements",
        "impactDescription",
        "nominatorOrganization",
        mode="before",
    )
    @classmethod
    def validate_optional_text(cls, v, info):
        if v is None:
            return None
        # Empty string clears the field
        return clean_text(v, NOMINATION_FIELD_LIMITS[info.field_name]) or ""

    @field_validator("nominatorPhone", mode="before")
    @classmethod
    def validate_nominator_phone(cls, v):
        if v is None:
            return None
        return validate_phone(v) or ""


class StatusUpdate(BaseModel):
    status: NominationStatus
    adminNotes: Optional[str] = None

    @field_validator("adminNotes", mode="before")
    @classmethod
    def validate_admin_notes(cls, v):
        return clean_text(v, 500)


class VoteCreate(BaseModel):
    voterEmail: str
    voterName: Optional[str] = None

    @field_validator("voterEmail", mode="before")
    @classmethod
    def validate_voter_email(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("voterEmail is required")
        return validate_email(str(v))

    @field_validator("voterName", mode="before")
    @classmethod
    def validate_voter_name(cls, v):
        return clean_text(v, 100)


def _category_name(v):
    v = clean_text(v, 100)
    if not v or len(v) < 2:
        raise ValueError("Category name must be between 2 and 100 characters")
    return v


def _category_description(v):
    v = clean_text(v, 500)
    if not v or len(v) < 10:
        raise ValueError("Description must be between 10 and 500 characters")
    return v


def _category_icon(v):
    v = (v or "").strip() or "🏆"
    if len(v) > 10:
        raise ValueError("Icon cannot exceed 10 characters")
    return v


def _category_icon_name(v):
    v = (v or "trophy").strip()
    if v not in CATEGORY_ICON_NAMES:
        raise ValueError(f"iconName must be one of: {', '.join(CATEGORY_ICON_NAMES)}")
    return v


class CategoryCreate(BaseModel):
    name: str
    description: str
    icon: str = "🏆"
    iconName: str = "trophy"
    isActive: bool = True

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _category_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return _category_description(v)

    @field_validator("icon", mode="before")
    @classmethod
    def validate_icon(cls, v):
        return _category_icon(v)

    @field_validator("iconName", mode="before")
    @classmethod
    def validate_icon_name(cls, v):
        return _category_icon_name(v)


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    iconName: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return None if v is None else _category_name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return None if v is None else _category_description(v)

    @field_validator("icon", mode="before")
    @classmethod
    def validate_icon(cls, v):
        return None if v is None else _category_icon(v)

    @field_validator("iconName", mode="before")
    @classmethod
    def validate_icon_name(cls, v):
        return None if v is None else _category_icon_name(v)


# ============================================================================
# RESPONSES
# ============================================================================


class CategoryRef(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None
    iconName: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    iconName: str
    isActive: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    totalNominations: Optional[int] = None
    approvedNominations: Optional[int] = None

    @classmethod
    def from_model(cls, category, total_nominations=None, approved_nominations=None):
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            icon=category.icon,
            iconName=category.icon_name,
            isActive=category.is_active,
            createdAt=category.created_at,
            updatedAt=category.updated_at,
            totalNominations=total_nominations,
            approvedNominations=approved_nominations,
        )


class NominationPublic(BaseModel):
    id: int
    publicId: str
    slug: str
    nomineeName: str
    nomineeTitle: Optional[str] = None
    nomineeCompany: Optional[str] = None
    nomineeCountry: str
    nomineePhoto: Optional[str] = None
    category: Optional[CategoryRef] = None
    nominationReason: Optional[str] = None
    achievements: Optional[str] = None
    impactDescription: Optional[str] = None
    nominatorName: str
    status: str
    totalVotes: int = 0
    certificateId: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @staticmethod
    def _fields(nomination) -> dict:
        category = nomination.category
        return {
            "id": nomination.id,
            "publicId": nomination.public_id,
            "slug": nomination.slug,
            "nomineeName": nomination.nominee_name,
            "nomineeTitle": nomination.nominee_title,
            "nomineeCompany": nomination.nominee_company,
            "nomineeCountry": nomination.nominee_country,
            "nomineePhoto": nomination.nominee_photo,
            "category": (
                CategoryRef(id=category.id, name=category.name, icon=category.icon, iconName=category.icon_name)
                if category
                else None
            ),
            "nominationReason": nomination.nomination_reason,
            "achievements": nomination.achievements,
            "impactDescription": nomination.impact_description,
            "nominatorName": nomination.nominator_name,
            "status": nomination.status,
            "totalVotes": nomination.total_votes or 0,
            "certificateId": nomination.certificate_id,
            "createdAt": nomination.created_at,
            "updatedAt": nomination.updated_at,
        }

    @classmethod
    def from_model(cls, nomination):
        return cls(**cls._fields(nomination))


class NominationAdmin(NominationPublic):
    nominatorEmail: str
    nominatorPhone: Optional[str] = None
    nominatorOrganization: Optional[str] = None
    adminNotes: Optional[str] = None
    reviewedBy: Optional[int] = None
    reviewedAt: Optional[datetime] = None
    certificateFile: Optional[str] = None
    certificateGeneratedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, nomination):
        return cls(
            **cls._fields(nomination),
            nominatorEmail=nomination.nominator_email,
            nominatorPhone=nomination.nominator_phone,
            nominatorOrganization=nomination.nominator_organization,
            adminNotes=nomination.admin_notes,
            reviewedBy=nomination.reviewed_by,
            reviewedAt=nomination.reviewed_at,
            certificateFile=nomination.certificate_file,
            certificateGeneratedAt=nomination.certificate_generated_at,
        )


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalItems: int
    hasNextPage: bool
    hasPrevPage: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int):
        total_pages = (total + limit - 1) // limit if total else 0
        return cls(
            currentPage=page,
            totalPages=total_pages,
            totalItems=total,
            hasNextPage=page < total_pages,
            hasPrevPage=page > 1,
        )
