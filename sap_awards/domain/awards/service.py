"""Awards service - Business logic for nominations, voting and categories"""

import logging
import re
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ... import config
from ...cache import (
    cache_award_categories,
    cache_nominations,
    get_cached_award_categories,
    get_cached_nominations,
    invalidate_award_categories,
    invalidate_nominations,
    nominations_cache_key,
)
from ...errors import NotFoundError, PersistenceError, StateConflictError, ValidationError
from ...models import CERTIFICATE_STATUSES, NOMINATION_STATUSES, PUBLIC_STATUSES, Nomination, User
from ...models_outbox import (
    EVENT_CERTIFICATE_GENERATE,
    EVENT_NOMINATION_ADMIN_ALERT,
    EVENT_NOMINATION_CONFIRMATION,
    EVENT_NOMINATION_DELETED,
    EVENT_NOMINATION_STATUS_CHANGED,
)
from ...outbox import record_event
from ...shared.validators import validate_email
from ...utils import storage
from .repository import AwardsRepository
from .schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    NominationAdmin,
    NominationCreate,
    NominationPublic,
    NominationUpdate,
    Pagination,
    StatusUpdate,
    VoteCreate,
)

logger = logging.getLogger(__name__)

# (contents, filename, content_type) of an uploaded photo
PhotoUpload = tuple[bytes, str, Optional[str]]

NOMINATION_FIELD_MAP = {
    "nomineeName": "nominee_name",
    "nomineeTitle": "nominee_title",
    "nomineeCompany": "nominee_company",
    "nomineeCountry": "nominee_country",
    "nominationReason": "nomination_reason",
    "achievements": "achievements",
    "impactDescription": "impact_description",
    "nominatorName": "nominator_name",
    "nominatorEmail": "nominator_email",
    "nominatorPhone": "nominator_phone",
    "nominatorOrganization": "nominator_organization",
}


def generate_slug(nominee_name: str) -> str:
    base = re.sub(r"[^a-z0-9 -]", "", nominee_name.lower())
    base = re.sub(r"\s+", "-", base)[:50]
    return f"{base}-{int(time.time() * 1000)}"


def nomination_email_payload(nomination: Nomination) -> dict:
    """Snapshot of a nomination for email events"""
    return {
        "nomination_id": nomination.id,
        "nominee_name": nomination.nominee_name,
        "nominee_title": nomination.nominee_title,
        "nominee_company": nomination.nominee_company,
        "nominee_country": nomination.nominee_country,
        "category_name": nomination.category.name if nomination.category else None,
        "nomination_reason": nomination.nomination_reason,
        "achievements": nomination.achievements,
        "impact_description": nomination.impact_description,
        "nominator_name": nomination.nominator_name,
        "nominator_email": nomination.nominator_email,
        "nominator_phone": nomination.nominator_phone,
        "nominator_organization": nomination.nominator_organization,
        "status": nomination.status,
        "admin_notes": nomination.admin_notes,
        "created_at": nomination.created_at.isoformat() if nomination.created_at else None,
        "updated_at": nomination.updated_at.isoformat() if nomination.updated_at else None,
    }


class AwardsService:
    """Service layer for awards business logic"""

    def __init__(self, db: Session, cache):
        self.db = db
        self.cache = cache
        self.repo = AwardsRepository()

    def _invalidate(self, categories: bool = True):
        invalidate_nominations(self.cache)
        if categories:
            invalidate_award_categories(self.cache)

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}") from e

    def _get_active_category(self, category_id: int):
        category = self.repo.get_category(self.db, category_id)
        if not category or not category.is_active:
            raise NotFoundError("Category not found")
        return category

    def _store_photo(self, photo: PhotoUpload) -> str:
        contents, filename, content_type = photo
        valid, error = storage.validate_image_file(filename, len(contents), content_type)
        if not valid:
            raise ValidationError(error)
        try:
            return storage.store_photo(contents, filename, content_type)
        except Exception as e:
            logger.error(f"❌ Failed to store nominee photo {filename}: {e}")
            raise PersistenceError("Failed to upload nominee photo") from e

    def get_nomination(self, nomination_id: int) -> Nomination:
        nomination = self.repo.get_nomination(self.db, nomination_id)
        if not nomination:
            raise NotFoundError("Nomination not found")
        return nomination

    # ------------------------------------------------------------------
    # Public nominations
    # ------------------------------------------------------------------

    def submit_nomination(self, data: NominationCreate, photo: Optional[PhotoUpload] = None):
        """
        Create a pending nomination. The confirmation and admin alert emails
        are staged as outbox events in the same transaction.

        Returns (nomination, event_ids); the caller dispatches the events.
        """
        logger.info(f"📥 New nomination for {data.nomineeName} in category {data.category}")
        self._get_active_category(data.category)

        photo_url = self._store_photo(photo) if photo else None

        try:
            nomination = self.repo.add_nomination(
                self.db,
                slug=generate_slug(data.nomineeName),
                nominee_name=data.nomineeName,
                nominee_title=data.nomineeTitle,
                nominee_company=data.nomineeCompany,
                nominee_country=data.nomineeCountry or config.DEFAULT_NOMINEE_COUNTRY,
                nominee_photo=photo_url,
                category_id=data.category,
                nomination_reason=data.nominationReason,
                achievements=data.achievements,
                impact_description=data.impactDescription,
                nominator_name=data.nominatorName,
                nominator_email=data.nominatorEmail,
                nominator_phone=data.nominatorPhone,
                nominator_organization=data.nominatorOrganization,
                status="pending",
            )
            self.db.flush()
            self.db.refresh(nomination)
            payload = nomination_email_payload(nomination)
            events = [
                record_event(self.db, EVENT_NOMINATION_CONFIRMATION, payload),
                record_event(self.db, EVENT_NOMINATION_ADMIN_ALERT, payload),
            ]
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save nomination for {data.nomineeName}: {e}")
            if photo_url:
                storage.delete_file(photo_url)
            raise PersistenceError("Failed to submit nomination") from e

        self._invalidate()
        logger.info(f"✅ Nomination {nomination.id} ({nomination.slug}) submitted")
        return nomination, [event.id for event in events]

    def list_public_nominations(
        self,
        category: Optional[int] = None,
        status: str = "approved",
        country: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "votes",
        sort_order: str = "desc",
    ) -> tuple[dict, bool]:
        """Returns ({nominations, pagination}, served_from_cache)"""
        if status not in PUBLIC_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(PUBLIC_STATUSES)}")

        key = nominations_cache_key(category, status, country, page, limit, sort_by, sort_order, search)
        cached = get_cached_nominations(self.cache, key)
        if cached is not None:
            return cached, True

        items, total = self.repo.list_nominations(
            self.db,
            statuses=[status],
            category_id=category,
            country=country,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        data = {
            "nominations": [NominationPublic.from_model(n).model_dump(mode="json") for n in items],
            "pagination": Pagination.build(page, limit, total).model_dump(),
        }
        cache_nominations(self.cache, key, data)
        return data, False

    def get_public_nomination(self, id_or_slug: str) -> Nomination:
        if id_or_slug.isdigit():
            nomination = self.repo.get_nomination(self.db, int(id_or_slug))
        else:
            nomination = self.repo.get_nomination_by_slug(self.db, id_or_slug)
        if not nomination or nomination.status not in PUBLIC_STATUSES:
            raise NotFoundError("Nomination not found")
        return nomination

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def vote(self, nomination_id: int, data: VoteCreate, ip_address: Optional[str]) -> dict:
        nomination = self.get_nomination(nomination_id)
        if nomination.status != "approved":
            raise StateConflictError("This nomination is not available for voting")

        try:
            self.repo.add_vote(self.db, nomination.id, data.voterEmail, data.voterName, ip_address)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"🚫 Duplicate vote on nomination {nomination_id} from {data.voterEmail}")
            raise StateConflictError("You have already voted for this nomination")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record vote on nomination {nomination_id}: {e}")
            raise PersistenceError("Failed to record vote") from e

        self.db.refresh(nomination)
        invalidate_nominations(self.cache)
        logger.info(f"🗳️ Vote recorded on nomination {nomination.id} (total {nomination.total_votes})")
        return {
            "nomination": {
                "id": nomination.id,
                "nomineeName": nomination.nominee_name,
                "totalVotes": nomination.total_votes,
            }
        }

    def vote_status(self, nomination_id: int, email: Optional[str]) -> dict:
        if not email or not email.strip():
            raise ValidationError("Email is required")
        try:
            email = validate_email(email)
        except ValueError as e:
            raise ValidationError(str(e))

        nomination = self.get_nomination(nomination_id)
        return {
            "hasVoted": self.repo.has_voted(self.db, nomination.id, email),
            "totalVotes": nomination.total_votes,
        }

    # ------------------------------------------------------------------
    # Admin nominations
    # ------------------------------------------------------------------

    def update_status(self, nomination_id: int, data: StatusUpdate, admin: User):
        """
        Apply a review decision. The status email and, for certificate-earning
        statuses without a certificate, certificate generation are staged as
        outbox events. Returns (nomination, event_ids).
        """
        nomination = self.get_nomination(nomination_id)
        previous = nomination.status

        nomination.status = data.status
        nomination.admin_notes = data.adminNotes
        nomination.reviewed_by = admin.id
        nomination.reviewed_at = datetime.utcnow()
        self.db.flush()

        events = [
            record_event(self.db, EVENT_NOMINATION_STATUS_CHANGED, nomination_email_payload(nomination))
        ]
        if data.status in CERTIFICATE_STATUSES and not nomination.certificate_file:
            events.append(record_event(self.db, EVENT_CERTIFICATE_GENERATE, {"nomination_id": nomination.id}))
        self._commit("update nomination status")

        self._invalidate()
        logger.info(f"✅ Nomination {nomination.id} status {previous} -> {data.status} by admin {admin.id}")
        self.db.refresh(nomination)
        return nomination, [event.id for event in events]

    def update_nomination(
        self, nomination_id: int, data: NominationUpdate, photo: Optional[PhotoUpload] = None
    ) -> Nomination:
        nomination = self.get_nomination(nomination_id)

        updates = {}
        for field, column in NOMINATION_FIELD_MAP.items():
            value = getattr(data, field)
            if value is not None:
                updates[column] = value or None
        if updates.get("nominee_country") is None and "nominee_country" in updates:
            updates["nominee_country"] = config.DEFAULT_NOMINEE_COUNTRY
        if data.category is not None:
            self._get_active_category(data.category)
            updates["category_id"] = data.category

        old_photo = None
        new_photo = self._store_photo(photo) if photo else None
        if new_photo:
            old_photo = nomination.nominee_photo
            updates["nominee_photo"] = new_photo

        for column, value in updates.items():
            setattr(nomination, column, value)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update nomination {nomination_id}: {e}")
            if new_photo:
                storage.delete_file(new_photo)
            raise PersistenceError("Failed to update nomination") from e

        if old_photo:
            storage.delete_file(old_photo)
        self._invalidate()
        logger.info(f"✏️ Nomination {nomination.id} updated ({', '.join(updates) or 'no changes'})")
        self.db.refresh(nomination)
        return nomination

    def delete_nomination(self, nomination_id: int) -> list[int]:
        nomination = self.get_nomination(nomination_id)

        payload = nomination_email_payload(nomination)
        payload["deleted_at"] = datetime.utcnow().isoformat()
        photo = nomination.nominee_photo

        event = record_event(self.db, EVENT_NOMINATION_DELETED, payload)
        self.db.delete(nomination)
        self._commit("delete nomination")

        if photo:
            storage.delete_file(photo)
        self._invalidate()
        logger.info(f"🗑️ Nomination {nomination_id} ({payload['nominee_name']}) deleted")
        return [event.id]

    def list_admin_nominations(
        self,
        status: Optional[str] = None,
        category: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> dict:
        if status and status not in NOMINATION_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(NOMINATION_STATUSES)}")

        items, total = self.repo.list_nominations(
            self.db,
            statuses=[status] if status else None,
            category_id=category,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        counts = self.repo.status_counts(self.db, category_id=category)
        return {
            "nominations": [NominationAdmin.from_model(n) for n in items],
            "pagination": Pagination.build(page, limit, total),
            "statusSummary": {s: counts.get(s, 0) for s in NOMINATION_STATUSES},
        }

    def get_stats(self) -> dict:
        return {
            "generalStats": self.repo.general_stats(self.db, config.DEFAULT_NOMINEE_COUNTRY),
            "categoryStats": self.repo.category_stats(self.db),
            "topNominations": [
                NominationPublic.from_model(n) for n in self.repo.top_nominations(self.db, limit=10)
            ],
        }

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> tuple[list, bool]:
        cached = get_cached_award_categories(self.cache)
        if cached is not None:
            return cached, True

        categories = [
            CategoryResponse.from_model(category, total, approved).model_dump(mode="json")
            for category, total, approved in self.repo.list_active_categories_with_counts(self.db)
        ]
        cache_award_categories(self.cache, categories)
        return categories, False

    def create_category(self, data: CategoryCreate):
        if self.repo.get_category_by_name(self.db, data.name):
            raise ValidationError("Category with this name already exists")

        category = self.repo.add_category(
            self.db,
            name=data.name,
            description=data.description,
            icon=data.icon,
            icon_name=data.iconName,
            is_active=data.isActive,
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("Category with this name already exists")
        self.db.refresh(category)

        invalidate_award_categories(self.cache)
        logger.info(f"🏆 Category {category.id} ({category.name}) created")
        return category

    def update_category(self, category_id: int, data: CategoryUpdate):
        category = self.repo.get_category(self.db, category_id)
        if not category:
            raise NotFoundError("Category not found")
        if data.name is not None and self.repo.get_category_by_name(self.db, data.name, exclude_id=category.id):
            raise ValidationError("Category with this name already exists")

        if data.name is not None:
            category.name = data.name
        if data.description is not None:
            category.description = data.description
        if data.icon is not None:
            category.icon = data.icon
        if data.iconName is not None:
            category.icon_name = data.iconName
        if data.isActive is not None:
            category.is_active = data.isActive

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationError("Category with this name already exists")
        self.db.refresh(category)

        # Nomination projections embed the category name
        self._invalidate()
        logger.info(f"✏️ Category {category.id} updated")
        return category

    def delete_category(self, category_id: int):
        category = self.repo.get_category(self.db, category_id)
        if not category:
            raise NotFoundError("Category not found")

        count = self.repo.count_category_nominations(self.db, category.id)
        if count:
            raise ValidationError(
                f"Cannot delete category. It has {count} nomination(s). "
                "Please reassign or delete the nominations first."
            )

        self.db.delete(category)
        self._commit("delete category")
        invalidate_award_categories(self.cache)
        logger.info(f"🗑️ Category {category_id} deleted")
