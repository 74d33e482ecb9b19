"""
Read-only policy checks for the membership and verification lifecycle.

None of these functions write to the session.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.crud.agency import get_agency
from app.crud.membership import find_membership
from app.models.agency import Agency
from app.models.agency_membership import AgencyMembership, MembershipStatusEnum
from app.models.escort import Escort
from app.utils.time_utils import utc_now


@dataclass
class VerificationEligibility:
    can_verify: bool
    is_renewal: bool = False
    code: Optional[str] = None
    reason: Optional[str] = None
    agency: Optional[Agency] = None
    escort: Optional[Escort] = None
    membership: Optional[AgencyMembership] = None


def is_agency_member(db: Session, escort_id: str, agency_id: str) -> bool:
    return find_membership(db, escort_id, agency_id, [MembershipStatusEnum.ACTIVE]) is not None


def needs_verification_renewal(
    escort: Escort,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
) -> bool:
    """
    True when a verified escort's verification has expired or expires within the window.

    Unverified escorts and verifications without an expiry never need renewal.
    """
    if not escort.is_verified or escort.verification_expires_at is None:
        return False
    now = now or utc_now()
    if window_days is None:
        window_days = settings.VERIFICATION_RENEWAL_WINDOW_DAYS
    return escort.verification_expires_at <= now + timedelta(days=window_days)


def is_verification_expired(escort: Escort, now: Optional[datetime] = None) -> bool:
    if not escort.is_verified or escort.verification_expires_at is None:
        return False
    return escort.verification_expires_at <= (now or utc_now())


def can_verify_escort(
    db: Session,
    agency_id: str,
    escort_id: str,
    now: Optional[datetime] = None,
) -> VerificationEligibility:
    agency = get_agency(db, agency_id)
    if not agency or not agency.user.is_active or agency.user.is_banned:
        return VerificationEligibility(
            can_verify=False,
            code="AGENCY_NOT_FOUND",
            reason="Agency not found or inactive",
        )

    membership = find_membership(db, escort_id, agency_id, [MembershipStatusEnum.ACTIVE])
    if not membership:
        return VerificationEligibility(
            can_verify=False,
            code="ESCORT_NOT_MEMBER",
            reason="Escort is not an active member of this agency",
            agency=agency,
        )

    escort = membership.escort
    if not escort.is_verified:
        return VerificationEligibility(
            can_verify=True, is_renewal=False, agency=agency, escort=escort, membership=membership
        )

    if needs_verification_renewal(escort, now):
        return VerificationEligibility(
            can_verify=True, is_renewal=True, agency=agency, escort=escort, membership=membership
        )

    return VerificationEligibility(
        can_verify=False,
        code="ESCORT_ALREADY_VERIFIED",
        reason="Escort is already verified",
        agency=agency,
        escort=escort,
        membership=membership,
    )
