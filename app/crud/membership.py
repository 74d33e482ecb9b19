from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.models.agency_membership import AgencyMembership, MembershipStatusEnum
from app.models.escort import Escort
from app.models.user import User


def find_membership(
    db: Session,
    escort_id: str,
    agency_id: str,
    statuses: Optional[Iterable[MembershipStatusEnum]] = None,
) -> Optional[AgencyMembership]:
    """Most recently touched membership for an (escort, agency) pair."""
    query = db.query(AgencyMembership).filter(
        AgencyMembership.escort_id == escort_id,
        AgencyMembership.agency_id == agency_id,
    )
    if statuses is not None:
        query = query.filter(AgencyMembership.status.in_(list(statuses)))
    return query.order_by(AgencyMembership.updated_at.desc()).first()


def get_pending_membership_for_agency(db: Session, membership_id: str, agency_id: str) -> Optional[AgencyMembership]:
    return (
        db.query(AgencyMembership)
        .options(joinedload(AgencyMembership.escort).joinedload(Escort.user))
        .filter(
            AgencyMembership.id == membership_id,
            AgencyMembership.agency_id == agency_id,
            AgencyMembership.status == MembershipStatusEnum.PENDING,
        )
        .first()
    )


def get_active_membership(db: Session, escort_id: str) -> Optional[AgencyMembership]:
    return (
        db.query(AgencyMembership)
        .options(joinedload(AgencyMembership.agency))
        .filter(
            AgencyMembership.escort_id == escort_id,
            AgencyMembership.status == MembershipStatusEnum.ACTIVE,
        )
        .first()
    )


def list_pending_for_escort(db: Session, escort_id: str) -> List[AgencyMembership]:
    return (
        db.query(AgencyMembership)
        .options(joinedload(AgencyMembership.agency))
        .filter(
            AgencyMembership.escort_id == escort_id,
            AgencyMembership.status == MembershipStatusEnum.PENDING,
        )
        .order_by(AgencyMembership.created_at.desc())
        .all()
    )


def _escort_search_clause(search: str):
    pattern = f"%{search.strip()}%"
    return or_(
        User.first_name.ilike(pattern),
        User.last_name.ilike(pattern),
        User.username.ilike(pattern),
    )


def list_pending_requests(
    db: Session, agency_id: str, search: Optional[str], offset: int, limit: int
) -> Tuple[List[AgencyMembership], int]:
    """Join requests awaiting a decision, newest request first."""
    base = (
        db.query(AgencyMembership)
        .join(Escort, AgencyMembership.escort_id == Escort.id)
        .join(User, Escort.user_id == User.id)
        .filter(
            AgencyMembership.agency_id == agency_id,
            AgencyMembership.status == MembershipStatusEnum.PENDING,
            User.is_active.is_(True),
            User.is_banned.is_(False),
        )
    )
    if search:
        base = base.filter(_escort_search_clause(search))
    total = base.count()
    items = (
        base.options(joinedload(AgencyMembership.escort).joinedload(Escort.user))
        .order_by(AgencyMembership.updated_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def list_members(
    db: Session,
    agency_id: str,
    statuses: Optional[Iterable[MembershipStatusEnum]],
    search: Optional[str],
    offset: int,
    limit: int,
) -> Tuple[List[AgencyMembership], int]:
    """Members of an agency; ``statuses=None`` returns every membership row."""
    base = (
        db.query(AgencyMembership)
        .join(Escort, AgencyMembership.escort_id == Escort.id)
        .join(User, Escort.user_id == User.id)
        .filter(AgencyMembership.agency_id == agency_id)
    )
    if statuses is not None:
        base = base.filter(AgencyMembership.status.in_(list(statuses)))
    if search:
        base = base.filter(_escort_search_clause(search))
    total = base.count()
    items = (
        base.options(joinedload(AgencyMembership.escort).joinedload(Escort.user))
        .order_by(AgencyMembership.approved_at.desc(), AgencyMembership.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def count_by_status(db: Session, agency_id: str) -> Dict[str, int]:
    rows = (
        db.query(AgencyMembership.status, func.count(AgencyMembership.id))
        .filter(AgencyMembership.agency_id == agency_id)
        .group_by(AgencyMembership.status)
        .all()
    )
    return {status.value: count for status, count in rows}


def list_recently_verified_members(db: Session, agency_id: str, limit: int = 5) -> List[AgencyMembership]:
    """Active members ordered by most recent verification; never-verified escorts sort last."""
    return (
        db.query(AgencyMembership)
        .join(Escort, AgencyMembership.escort_id == Escort.id)
        .options(joinedload(AgencyMembership.escort).joinedload(Escort.user))
        .filter(
            AgencyMembership.agency_id == agency_id,
            AgencyMembership.status == MembershipStatusEnum.ACTIVE,
        )
        .order_by(Escort.verified_at.is_(None), Escort.verified_at.desc())
        .limit(limit)
        .all()
    )


def transition_status(
    db: Session,
    membership_id: str,
    expected: MembershipStatusEnum,
    values: dict,
) -> bool:
    """
    Compare-and-set a membership's status in one UPDATE. Does not commit.

    Returns False when the row is no longer in ``expected``, so two concurrent
    approvals cannot both apply their counter increments.
    """
    updated = (
        db.query(AgencyMembership)
        .filter(AgencyMembership.id == membership_id, AgencyMembership.status == expected)
        .update(values, synchronize_session=False)
    )
    return updated == 1
