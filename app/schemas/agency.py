from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, ConfigDict

from app.models.agency_invitation import InvitationStatusEnum
from app.models.agency_membership import MembershipRoleEnum, MembershipStatusEnum
from app.models.escort_verification import VerificationStatusEnum
from app.schemas.base import ReadModel, RequestModel


# -------------------
# Request bodies
# -------------------
class JoinAgencyRequest(RequestModel):
    message: Optional[str] = Field(None, max_length=1000)


class InviteEscortRequest(RequestModel):
    message: Optional[str] = Field(None, max_length=1000)
    proposed_commission: Optional[float] = None
    proposed_role: Optional[MembershipRoleEnum] = None
    proposed_benefits: Optional[Any] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "We would love to have you on board",
                "proposedCommission": 0.12,
                "proposedRole": "MEMBER",
                "proposedBenefits": ["Professional photos", "Featured listing"],
            }
        }
    )


class RespondInvitationRequest(RequestModel):
    action: str = Field(..., description="accept or reject")
    message: Optional[str] = Field(None, max_length=1000)


class ManageMembershipRequest(RequestModel):
    action: str = Field(..., description="approve or reject")
    message: Optional[str] = Field(None, max_length=1000)
    commission_rate: Optional[float] = None


class VerifyEscortRequest(RequestModel):
    pricing_id: str = "default-basic"
    verification_notes: Optional[str] = Field(None, max_length=2000)


class RenewVerificationRequest(RequestModel):
    pricing_id: str = "default-basic"


class LeaveAgencyRequest(RequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


# -------------------
# Read models
# -------------------
class UserSummaryRead(ReadModel):
    id: str
    username: str
    first_name: str
    last_name: str
    avatar: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class EscortRead(ReadModel):
    id: str
    user_id: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_expires_at: Optional[datetime] = None
    rating: float = 0.0
    user: Optional[UserSummaryRead] = None


class AgencyRead(ReadModel):
    id: str
    user_id: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    default_commission_rate: float
    total_escorts: int
    active_escorts: int
    verified_escorts: int
    total_verifications: int
    user: Optional[UserSummaryRead] = None


class MembershipRead(ReadModel):
    id: str
    escort_id: str
    agency_id: str
    status: MembershipStatusEnum
    role: MembershipRoleEnum
    commission_rate: Optional[float] = None
    message: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    leave_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MembershipWithAgencyRead(MembershipRead):
    agency: Optional[AgencyRead] = None


class MembershipWithEscortRead(MembershipRead):
    escort: Optional[EscortRead] = None


class InvitationRead(ReadModel):
    id: str
    agency_id: str
    escort_id: str
    status: InvitationStatusEnum
    message: Optional[str] = None
    proposed_commission: float
    proposed_role: MembershipRoleEnum
    proposed_benefits: Optional[Any] = None
    invited_by: str
    expires_at: datetime
    responded_at: Optional[datetime] = None
    created_at: datetime


class InvitationWithAgencyRead(InvitationRead):
    agency: Optional[AgencyRead] = None


class VerificationRead(ReadModel):
    id: str
    agency_id: str
    escort_id: str
    membership_id: Optional[str] = None
    pricing_id: str
    status: VerificationStatusEnum
    starts_at: datetime
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None
    is_renewal: bool


class ExpiringVerificationRead(VerificationRead):
    escort: Optional[EscortRead] = None


class PricingTierRead(ReadModel):
    id: str
    name: str
    description: Optional[str] = None
    cost: float
    duration: Optional[int] = None
    features: List[str] = []
    is_active: bool = True
    is_fallback: bool = False


class VerificationSummaryRead(ReadModel):
    is_verified: bool
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_expired: bool
    needs_renewal: bool
    days_remaining: Optional[int] = None


class MembershipStatusRead(ReadModel):
    status: str
    current_membership: Optional[MembershipWithAgencyRead] = None
    pending_requests: List[MembershipWithAgencyRead] = []
    pending_invitations: int
    verification: VerificationSummaryRead


class AgencyStatsRead(ReadModel):
    memberships: Dict[str, int]
    invitations: Dict[str, int]
    verification_count: int
    verification_revenue: float
    average_verification_cost: float
    counters: Dict[str, int]
    top_escorts: List[MembershipWithEscortRead] = []
