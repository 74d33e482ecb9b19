from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.user_reputation import UserReputation
from app.core.logging_config import get_logger
from app.utils.time_utils import utc_now

logger = get_logger(__name__)

VERIFICATION_TRUST_BONUS = 25
VERIFICATION_OVERALL_BONUS = 15


def reward_verification(db: Session, user_id: str) -> bool:
    """
    Best-effort reputation bump for a freshly verified escort.

    Runs after the verification commit; failures are logged and reported as False.
    """
    try:
        reputation = db.query(UserReputation).filter(UserReputation.user_id == user_id).first()
        if reputation is None:
            reputation = UserReputation(user_id=user_id, overall_score=0.0, trust_score=0.0)
            db.add(reputation)
        reputation.trust_score = (reputation.trust_score or 0) + VERIFICATION_TRUST_BONUS
        reputation.overall_score = (reputation.overall_score or 0) + VERIFICATION_OVERALL_BONUS
        reputation.last_score_update = utc_now()
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.warning(f"Failed to update reputation for user {user_id}", exc_info=True)
        return False
