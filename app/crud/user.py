from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.models.user import User


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_with_profiles(db: Session, user_id: str) -> Optional[User]:
    return (
        db.query(User)
        .options(joinedload(User.escort), joinedload(User.agency), joinedload(User.admin))
        .filter(User.id == user_id)
        .first()
    )


def list_banned(db: Session, offset: int, limit: int) -> Tuple[List[User], int]:
    base = db.query(User).filter(User.is_banned.is_(True))
    total = base.count()
    items = base.order_by(User.updated_at.desc()).offset(offset).limit(limit).all()
    return items, total
