from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import case, or_
from sqlalchemy.orm import Session, joinedload

from app.models.agency import Agency
from app.models.user import User, UserTypeEnum


SORT_OPTIONS = ("relevance", "newest", "oldest", "escorts", "verified")


@dataclass
class AgencySearchFilters:
    """Optional filters for agency search; unset fields do not constrain the query."""
    query: Optional[str] = None
    location: Optional[str] = None
    verified_only: bool = False
    min_escorts: Optional[int] = None
    sort_by: str = "relevance"

    def clauses(self) -> list:
        clauses = [
            User.is_active.is_(True),
            User.is_banned.is_(False),
            User.user_type == UserTypeEnum.AGENCY,
        ]
        if self.query:
            pattern = f"%{self.query.strip()}%"
            clauses.append(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.username.ilike(pattern),
                User.bio.ilike(pattern),
            ))
        if self.location:
            pattern = f"%{self.location.strip()}%"
            clauses.append(or_(User.city.ilike(pattern), User.country.ilike(pattern)))
        if self.verified_only:
            clauses.append(Agency.is_verified.is_(True))
        if self.min_escorts is not None:
            clauses.append(Agency.total_escorts >= self.min_escorts)
        return clauses

    def ordering(self) -> list:
        if self.sort_by == "newest":
            return [User.created_at.desc()]
        if self.sort_by == "oldest":
            return [User.created_at.asc()]
        if self.sort_by == "escorts":
            return [Agency.total_escorts.desc()]
        if self.sort_by == "verified":
            return [Agency.is_verified.desc(), Agency.total_escorts.desc()]
        # relevance
        return [Agency.is_verified.desc(), Agency.total_escorts.desc(), User.profile_views.desc()]


def get_agency(db: Session, agency_id: str) -> Optional[Agency]:
    return db.query(Agency).options(joinedload(Agency.user)).filter(Agency.id == agency_id).first()


def get_agency_by_user_id(db: Session, user_id: str) -> Optional[Agency]:
    return db.query(Agency).options(joinedload(Agency.user)).filter(Agency.user_id == user_id).first()


def find_agency(db: Session, agency_ref: str) -> Optional[Agency]:
    """Resolve an agency by its own id, falling back to the owning user's id."""
    return get_agency(db, agency_ref) or get_agency_by_user_id(db, agency_ref)


def search_agencies(db: Session, filters: AgencySearchFilters, offset: int, limit: int) -> Tuple[List[Agency], int]:
    base = db.query(Agency).join(User, Agency.user_id == User.id).filter(*filters.clauses())
    total = base.count()
    items = (
        base.options(joinedload(Agency.user))
        .order_by(*filters.ordering())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def list_agencies_pending_verification(db: Session, offset: int, limit: int) -> Tuple[List[Agency], int]:
    base = (
        db.query(Agency)
        .join(User, Agency.user_id == User.id)
        .filter(Agency.is_verified.is_(False), User.is_active.is_(True), User.is_banned.is_(False))
    )
    total = base.count()
    items = base.options(joinedload(Agency.user)).order_by(Agency.created_at.asc()).offset(offset).limit(limit).all()
    return items, total


def adjust_counters(db: Session, agency_id: str, **deltas: int) -> None:
    """
    Apply counter deltas in a single UPDATE, e.g. ``adjust_counters(db, id, active_escorts=1)``.

    Decrements never take a counter below zero. Does not commit.
    """
    values = {}
    for name, delta in deltas.items():
        if not delta:
            continue
        column = getattr(Agency, name)
        if delta > 0:
            values[column] = column + delta
        else:
            values[column] = case((column + delta > 0, column + delta), else_=0)
    if values:
        db.query(Agency).filter(Agency.id == agency_id).update(values, synchronize_session=False)
