from datetime import datetime
from typing import List, Tuple

from sqlalchemy.orm import Session, joinedload

from app.models.escort import Escort
from app.models.escort_verification import EscortVerification, VerificationStatusEnum


def list_expiring(
    db: Session, agency_id: str, until: datetime, offset: int, limit: int
) -> Tuple[List[EscortVerification], int]:
    """
    Current verifications issued by the agency that expire on or before ``until``.

    A verification is current when its expiry is the one mirrored on the escort.
    Already-expired rows are included; expiry is only ever checked lazily.
    """
    base = (
        db.query(EscortVerification)
        .join(Escort, EscortVerification.escort_id == Escort.id)
        .filter(
            EscortVerification.agency_id == agency_id,
            EscortVerification.status == VerificationStatusEnum.COMPLETED,
            EscortVerification.expires_at.isnot(None),
            EscortVerification.expires_at <= until,
            Escort.is_verified.is_(True),
            Escort.verified_by == agency_id,
            Escort.verification_expires_at == EscortVerification.expires_at,
        )
    )
    total = base.count()
    items = (
        base.options(joinedload(EscortVerification.escort).joinedload(Escort.user))
        .order_by(EscortVerification.expires_at.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def list_completed_for_agency(db: Session, agency_id: str) -> List[EscortVerification]:
    return (
        db.query(EscortVerification)
        .filter(
            EscortVerification.agency_id == agency_id,
            EscortVerification.status == VerificationStatusEnum.COMPLETED,
        )
        .order_by(EscortVerification.completed_at.desc())
        .all()
    )
