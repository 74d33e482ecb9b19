from typing import Optional

from sqlalchemy.orm import Session, joinedload

from app.models.escort import Escort


def get_escort(db: Session, escort_id: str) -> Optional[Escort]:
    return db.query(Escort).options(joinedload(Escort.user)).filter(Escort.id == escort_id).first()
