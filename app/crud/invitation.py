from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models.agency import Agency
from app.models.agency_invitation import AgencyInvitation, InvitationStatusEnum


def find_open_invitation(db: Session, agency_id: str, escort_id: str, now: datetime) -> Optional[AgencyInvitation]:
    """Pending invitation for the pair that has not expired yet."""
    return (
        db.query(AgencyInvitation)
        .filter(
            AgencyInvitation.agency_id == agency_id,
            AgencyInvitation.escort_id == escort_id,
            AgencyInvitation.status == InvitationStatusEnum.PENDING,
            AgencyInvitation.expires_at > now,
        )
        .first()
    )


def get_open_invitation_for_escort(db: Session, invitation_id: str, escort_id: str, now: datetime) -> Optional[AgencyInvitation]:
    return (
        db.query(AgencyInvitation)
        .options(joinedload(AgencyInvitation.agency).joinedload(Agency.user))
        .filter(
            AgencyInvitation.id == invitation_id,
            AgencyInvitation.escort_id == escort_id,
            AgencyInvitation.status == InvitationStatusEnum.PENDING,
            AgencyInvitation.expires_at > now,
        )
        .first()
    )


def list_for_escort(
    db: Session,
    escort_id: str,
    status: Optional[InvitationStatusEnum],
    now: datetime,
    offset: int,
    limit: int,
) -> Tuple[List[AgencyInvitation], int]:
    base = db.query(AgencyInvitation).filter(AgencyInvitation.escort_id == escort_id)
    if status is not None:
        base = base.filter(AgencyInvitation.status == status)
        if status == InvitationStatusEnum.PENDING:
            base = base.filter(AgencyInvitation.expires_at > now)
    total = base.count()
    items = (
        base.options(joinedload(AgencyInvitation.agency).joinedload(Agency.user))
        .order_by(AgencyInvitation.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def count_open_for_escort(db: Session, escort_id: str, now: datetime) -> int:
    return (
        db.query(func.count(AgencyInvitation.id))
        .filter(
            AgencyInvitation.escort_id == escort_id,
            AgencyInvitation.status == InvitationStatusEnum.PENDING,
            AgencyInvitation.expires_at > now,
        )
        .scalar()
    )


def count_by_status(db: Session, agency_id: str) -> Dict[str, int]:
    rows = (
        db.query(AgencyInvitation.status, func.count(AgencyInvitation.id))
        .filter(AgencyInvitation.agency_id == agency_id)
        .group_by(AgencyInvitation.status)
        .all()
    )
    return {status.value: count for status, count in rows}


def close_invitation(
    db: Session,
    invitation_id: str,
    status: InvitationStatusEnum,
    now: datetime,
) -> bool:
    """Move an open invitation to ``status``; False if it was already answered or expired. Does not commit."""
    updated = (
        db.query(AgencyInvitation)
        .filter(
            AgencyInvitation.id == invitation_id,
            AgencyInvitation.status == InvitationStatusEnum.PENDING,
            AgencyInvitation.expires_at > now,
        )
        .update(
            {AgencyInvitation.status: status, AgencyInvitation.responded_at: now, AgencyInvitation.updated_at: now},
            synchronize_session=False,
        )
    )
    return updated == 1
