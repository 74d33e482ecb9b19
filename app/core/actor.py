from dataclasses import dataclass
from typing import Optional

from app.models.user import User, UserTypeEnum


@dataclass(frozen=True)
class AuthenticatedActor:
    """The caller of a service operation, resolved once per request from the bearer token."""
    user_id: str
    user_type: UserTypeEnum
    first_name: str = ""
    last_name: str = ""
    escort_id: Optional[str] = None
    agency_id: Optional[str] = None
    admin_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_escort(self) -> bool:
        return self.user_type == UserTypeEnum.ESCORT

    @property
    def is_agency(self) -> bool:
        return self.user_type == UserTypeEnum.AGENCY

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserTypeEnum.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedActor":
        return cls(
            user_id=user.id,
            user_type=user.user_type,
            first_name=user.first_name,
            last_name=user.last_name or "",
            escort_id=user.escort.id if user.escort else None,
            agency_id=user.agency.id if user.agency else None,
            admin_id=user.admin.id if user.admin else None,
        )
