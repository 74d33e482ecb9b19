from typing import Dict, List

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.actor import AuthenticatedActor
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging_config import get_logger
from app.crud.user import get_user_with_profiles
from app.database.session import get_db
from app.models.user import UserTypeEnum

from .token_validation import validate_bearer_token

logger = get_logger(__name__)


class ActorResolver:
    """Resolve the bearer token into an ``AuthenticatedActor`` backed by a live user row."""

    def __call__(
        self,
        db: Session = Depends(get_db),
        token_data: Dict = Depends(validate_bearer_token(use_cache=True)),
    ) -> AuthenticatedActor:
        user = get_user_with_profiles(db, token_data["user_id"])
        if user is None or not user.is_active:
            logger.warning(f"Token for unknown or inactive user {token_data['user_id']}")
            raise AuthenticationError("User not found", code="USER_NOT_FOUND")
        if user.is_banned:
            logger.warning(f"Banned user {user.id} attempted access")
            raise AuthorizationError("Your account has been suspended", code="USER_BANNED")
        return AuthenticatedActor.from_user(user)


get_current_actor = ActorResolver()


class UserTypeChecker:
    def __init__(self, allowed_types: List[UserTypeEnum]):
        self.allowed_types = allowed_types

    async def __call__(self, actor: AuthenticatedActor = Depends(get_current_actor)) -> AuthenticatedActor:
        if actor.user_type not in self.allowed_types:
            logger.warning(
                f"Permission denied for user {actor.user_id}: type={actor.user_type.value}, "
                f"allowed={[t.value for t in self.allowed_types]}"
            )
            raise AuthorizationError(
                "You do not have permission to access this resource",
                code="INSUFFICIENT_PERMISSIONS",
            )
        return actor
