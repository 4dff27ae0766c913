"""Awards repository - Database operations for categories, nominations and votes"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import AwardCategory, Nomination, NominationVote

SORT_COLUMNS = {
    "votes": Nomination.total_votes,
    "totalVotes": Nomination.total_votes,
    "createdAt": Nomination.created_at,
    "updatedAt": Nomination.updated_at,
    "nomineeName": Nomination.nominee_name,
}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class AwardsRepository:
    """Repository for awards database operations. Writes are staged; the service commits."""

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @staticmethod
    def get_category(db: Session, category_id: int) -> Optional[AwardCategory]:
        return db.query(AwardCategory).filter(AwardCategory.id == category_id).first()

    @staticmethod
    def get_category_by_name(db: Session, name: str, exclude_id: Optional[int] = None) -> Optional[AwardCategory]:
        query = db.query(AwardCategory).filter(func.lower(AwardCategory.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(AwardCategory.id != exclude_id)
        return query.first()

    @staticmethod
    def list_active_categories_with_counts(db: Session) -> list[tuple[AwardCategory, int, int]]:
        """Active categories by name, each with (total, approved) nomination counts"""
        totals = dict(
            db.query(Nomination.category_id, func.count(Nomination.id)).group_by(Nomination.category_id).all()
        )
        approved = dict(
            db.query(Nomination.category_id, func.count(Nomination.id))
            .filter(Nomination.status == "approved")
            .group_by(Nomination.category_id)
            .all()
        )
        categories = (
            db.query(AwardCategory).filter(AwardCategory.is_active.is_(True)).order_by(AwardCategory.name).all()
        )
        return [(c, totals.get(c.id, 0), approved.get(c.id, 0)) for c in categories]

    @staticmethod
    def add_category(db: Session, **fields) -> AwardCategory:
        category = AwardCategory(**fields)
        db.add(category)
        return category

    @staticmethod
    def count_category_nominations(db: Session, category_id: int) -> int:
        return db.query(func.count(Nomination.id)).filter(Nomination.category_id == category_id).scalar()

    # ------------------------------------------------------------------
    # Nominations
    # ------------------------------------------------------------------

    @staticmethod
    def get_nomination(db: Session, nomination_id: int) -> Optional[Nomination]:
        return (
            db.query(Nomination)
            .options(joinedload(Nomination.category))
            .filter(Nomination.id == nomination_id)
            .first()
        )

    @staticmethod
    def get_nomination_by_slug(db: Session, slug: str) -> Optional[Nomination]:
        return (
            db.query(Nomination)
            .options(joinedload(Nomination.category))
            .filter(Nomination.slug == slug)
            .first()
        )

    @staticmethod
    def add_nomination(db: Session, **fields) -> Nomination:
        nomination = Nomination(**fields)
        db.add(nomination)
        return nomination

    @staticmethod
    def list_nominations(
        db: Session,
        statuses: Optional[list[str]] = None,
        category_id: Optional[int] = None,
        country: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "votes",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Nomination], int]:
        """Filtered, sorted page of nominations plus the total match count"""
        query = db.query(Nomination)
        if statuses:
            query = query.filter(Nomination.status.in_(statuses))
        if category_id is not None:
            query = query.filter(Nomination.category_id == category_id)
        if country:
            query = query.filter(Nomination.nominee_country.ilike(_like_pattern(country), escape="\\"))
        if search:
            pattern = _like_pattern(search)
            query = query.filter(
                or_(
                    Nomination.nominee_name.ilike(pattern, escape="\\"),
                    Nomination.nominee_title.ilike(pattern, escape="\\"),
                    Nomination.nominee_company.ilike(pattern, escape="\\"),
                    Nomination.nomination_reason.ilike(pattern, escape="\\"),
                )
            )

        total = query.order_by(None).count()

        column = SORT_COLUMNS.get(sort_by, Nomination.total_votes)
        descending = sort_order != "asc"
        ordering = [column.desc() if descending else column.asc()]
        if column is Nomination.created_at:
            ordering.append(Nomination.id.desc() if descending else Nomination.id.asc())
        else:
            ordering.extend([Nomination.created_at.desc(), Nomination.id.desc()])

        items = (
            query.options(joinedload(Nomination.category))
            .order_by(*ordering)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def status_counts(db: Session, category_id: Optional[int] = None) -> dict[str, int]:
        query = db.query(Nomination.status, func.count(Nomination.id))
        if category_id is not None:
            query = query.filter(Nomination.category_id == category_id)
        return dict(query.group_by(Nomination.status).all())

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    @staticmethod
    def add_vote(
        db: Session, nomination_id: int, voter_email: str, voter_name: Optional[str], ip_address: Optional[str]
    ) -> NominationVote:
        """Insert a vote and flush. The unique constraint rejects a repeat email with IntegrityError."""
        vote = NominationVote(
            nomination_id=nomination_id,
            voter_email=voter_email,
            voter_name=voter_name,
            ip_address=ip_address,
        )
        db.add(vote)
        db.flush()
        return vote

    @staticmethod
    def has_voted(db: Session, nomination_id: int, voter_email: str) -> bool:
        return (
            db.query(NominationVote.id)
            .filter(NominationVote.nomination_id == nomination_id, NominationVote.voter_email == voter_email)
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @staticmethod
    def general_stats(db: Session, home_country: str) -> dict:
        counts = AwardsRepository.status_counts(db)
        total = sum(counts.values())
        local = (
            db.query(func.count(Nomination.id))
            .filter(func.lower(Nomination.nominee_country) == home_country.lower())
            .scalar()
        )
        return {
            "totalNominations": total,
            "approvedNominations": counts.get("approved", 0),
            "pendingNominations": counts.get("pending", 0),
            "totalVotes": db.query(func.count(NominationVote.id)).scalar(),
            "localNominees": local,
            "internationalNominees": total - local,
        }

    @staticmethod
    def category_stats(db: Session) -> list[dict]:
        vote_totals = dict(
            db.query(Nomination.category_id, func.count(NominationVote.id))
            .join(NominationVote, NominationVote.nomination_id == Nomination.id)
            .group_by(Nomination.category_id)
            .all()
        )
        rows = (
            db.query(Nomination.category_id, AwardCategory.name, func.count(Nomination.id))
            .outerjoin(AwardCategory, AwardCategory.id == Nomination.category_id)
            .group_by(Nomination.category_id, AwardCategory.name)
            .order_by(AwardCategory.name)
            .all()
        )
        return [
            {
                "categoryId": category_id,
                "categoryName": name,
                "count": count,
                "totalVotes": vote_totals.get(category_id, 0),
            }
            for category_id, name, count in rows
        ]

    @staticmethod
    def top_nominations(db: Session, limit: int = 10) -> list[Nomination]:
        return (
            db.query(Nomination)
            .options(joinedload(Nomination.category))
            .filter(Nomination.status == "approved")
            .order_by(Nomination.total_votes.desc(), Nomination.created_at.desc(), Nomination.id.desc())
            .limit(limit)
            .all()
        )
