from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from app.models.admin import BanSeverityEnum, ReportStatusEnum
from app.models.user import UserTypeEnum
from app.schemas.agency import UserSummaryRead
from app.schemas.base import ReadModel, RequestModel


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class BanUserRequest(RequestModel):
    reason: str = Field(..., max_length=1000)
    severity: BanSeverityEnum = BanSeverityEnum.TEMPORARY
    duration_days: Optional[int] = Field(None, ge=1, le=3650)
    evidence: Optional[Any] = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return _not_blank(v)


class UnbanUserRequest(RequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ResolveReportRequest(RequestModel):
    action: str = Field(..., description="approve, reject or ban_user")
    resolution: Optional[str] = Field(None, max_length=2000)
    ban_duration_days: Optional[int] = Field(None, ge=1, le=3650)


class CreateReportRequest(RequestModel):
    target_user_id: str
    reason: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        return _not_blank(v)


class ReviewAgencyRequest(RequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BanRead(ReadModel):
    id: str
    user_id: str
    banned_by: str
    reason: str
    severity: BanSeverityEnum
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime


class BannedUserRead(ReadModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    user_type: UserTypeEnum
    is_banned: bool
    ban_reason: Optional[str] = None
    updated_at: datetime


class ReportRead(ReadModel):
    id: str
    author_id: str
    target_user_id: Optional[str] = None
    reason: str
    description: Optional[str] = None
    status: ReportStatusEnum
    resolution: Optional[str] = None
    action_taken: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    author: Optional[UserSummaryRead] = None
    target_user: Optional[UserSummaryRead] = None
