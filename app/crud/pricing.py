from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.verification_pricing import VerificationPricing


def list_active(db: Session) -> List[VerificationPricing]:
    return (
        db.query(VerificationPricing)
        .filter(VerificationPricing.is_active.is_(True))
        .order_by(VerificationPricing.cost.asc())
        .all()
    )


def get_active(db: Session, pricing_id: str) -> Optional[VerificationPricing]:
    return (
        db.query(VerificationPricing)
        .filter(VerificationPricing.id == pricing_id, VerificationPricing.is_active.is_(True))
        .first()
    )
