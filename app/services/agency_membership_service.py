"""
Agency Membership Service

Owns every state transition between escorts and agencies:

    (none) --request / invite-accept--> PENDING --approve--> ACTIVE
    PENDING --reject--> REJECTED
    ACTIVE --leave--> REJECTED --re-request--> PENDING

plus verification issuance and renewal. Each transition commits once, with the
status change, escort fields and agency counters in the same transaction.
Notifications and reputation updates run after the commit and never fail the
operation.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.actor import AuthenticatedActor
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalAppError,
    NotFoundError,
    ValidationAppError,
)
from app.core.logging_config import get_logger
from app.crud import agency as agency_crud
from app.crud import invitation as invitation_crud
from app.crud import membership as membership_crud
from app.crud import verification as verification_crud
from app.crud.escort import get_escort
from app.models.agency import Agency
from app.models.agency_invitation import AgencyInvitation, InvitationStatusEnum
from app.models.agency_membership import AgencyMembership, MembershipRoleEnum, MembershipStatusEnum
from app.models.escort import Escort
from app.models.escort_verification import EscortVerification, VerificationStatusEnum
from app.models.notification import NotificationTypeEnum, NotificationPriorityEnum
from app.services.notification_service import NotificationService
from app.services.pricing_service import PricingTier, list_verification_pricing, resolve_pricing
from app.services.reputation_service import reward_verification
from app.services.validators import can_verify_escort, is_verification_expired, needs_verification_renewal
from app.utils.time_utils import utc_now

logger = get_logger(__name__)

LISTING_STATUSES = ("pending", "active", "all")
INVITATION_ACTIONS = ("accept", "reject")
MEMBERSHIP_ACTIONS = ("approve", "reject")


def clamp_rate(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    return min(max(float(value), 0.0), 1.0)


@dataclass
class VerificationOutcome:
    verification: EscortVerification
    escort: Escort
    pricing: PricingTier
    is_renewal: bool


@dataclass
class VerificationSummary:
    is_verified: bool
    verified_at: Optional[datetime]
    verified_by: Optional[str]
    expires_at: Optional[datetime]
    is_expired: bool
    needs_renewal: bool
    days_remaining: Optional[int]


@dataclass
class MembershipStatusSummary:
    status: str  # "agency", "pending" or "independent"
    current_membership: Optional[AgencyMembership]
    pending_requests: List[AgencyMembership]
    pending_invitations: int
    verification: VerificationSummary


@dataclass
class AgencyStats:
    memberships: Dict[str, int]
    invitations: Dict[str, int]
    verification_count: int
    verification_revenue: float
    average_verification_cost: float
    counters: Dict[str, int]
    top_escorts: List[AgencyMembership] = field(default_factory=list)


class AgencyMembershipService:

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _require_escort(self, actor: AuthenticatedActor) -> Escort:
        if not actor.is_escort:
            raise AuthorizationError("Only escorts can perform this action", code="ESCORT_ONLY")
        escort = get_escort(self.db, actor.escort_id) if actor.escort_id else None
        if escort is None:
            logger.error(f"Escort user {actor.user_id} has no escort profile")
            raise InternalAppError("Escort profile data is missing", code="ESCORT_DATA_MISSING")
        return escort

    def _require_agency(self, actor: AuthenticatedActor) -> Agency:
        if not actor.is_agency:
            raise AuthorizationError("Only agencies can perform this action", code="AGENCY_ONLY")
        agency = agency_crud.get_agency(self.db, actor.agency_id) if actor.agency_id else None
        if agency is None:
            logger.error(f"Agency user {actor.user_id} has no agency profile")
            raise InternalAppError("Agency profile data is missing", code="AGENCY_DATA_MISSING")
        return agency

    def _ensure_no_active_membership(self, escort_id: str) -> None:
        active = membership_crud.get_active_membership(self.db, escort_id)
        if active is not None:
            raise ConflictError(
                "Escort already belongs to an agency",
                code="ESCORT_HAS_ACTIVE_MEMBERSHIP",
                details={"agencyId": active.agency_id},
            )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # escort -> agency
    # ------------------------------------------------------------------

    def request_to_join(
        self, actor: AuthenticatedActor, agency_ref: str, message: Optional[str] = None
    ) -> AgencyMembership:
        """
        Ask to join an agency.

        A REJECTED row for the same pair is reopened as PENDING instead of
        inserting a second row.
        """
        escort = self._require_escort(actor)
        agency = agency_crud.find_agency(self.db, agency_ref)
        if agency is None or not agency.user.is_active or agency.user.is_banned:
            raise NotFoundError("Agency not found or inactive", code="AGENCY_NOT_FOUND")

        blocking = membership_crud.find_membership(
            self.db, escort.id, agency.id, [MembershipStatusEnum.PENDING, MembershipStatusEnum.ACTIVE]
        )
        if blocking is not None:
            if blocking.status == MembershipStatusEnum.PENDING:
                raise ConflictError("A membership request is already pending", code="MEMBERSHIP_PENDING")
            raise ConflictError("You are already a member of this agency", code="MEMBERSHIP_ACTIVE")

        now = utc_now()
        membership = membership_crud.find_membership(
            self.db, escort.id, agency.id, [MembershipStatusEnum.REJECTED]
        )
        if membership is not None:
            membership.status = MembershipStatusEnum.PENDING
            membership.message = message
            membership.approved_by = None
            membership.approved_at = None
            membership.left_at = None
            membership.leave_reason = None
            membership.updated_at = now
        else:
            membership = AgencyMembership(
                escort_id=escort.id,
                agency_id=agency.id,
                status=MembershipStatusEnum.PENDING,
                role=MembershipRoleEnum.MEMBER,
                message=message,
                created_at=now,
                updated_at=now,
            )
            self.db.add(membership)
        self._commit()
        self.db.refresh(membership)
        logger.info(
            f"Membership request {membership.id}: escort={escort.id} agency={agency.id} status=PENDING"
        )

        self.notifications.notify(
            agency.user_id,
            NotificationTypeEnum.MEMBERSHIP_REQUEST,
            title="New membership request",
            message=f"{actor.display_name or 'An escort'} wants to join your agency",
            data={"membershipId": membership.id, "escortId": escort.id},
            action_url="/agency/escorts?status=pending",
        )
        return membership

    def leave_current_agency(self, actor: AuthenticatedActor, reason: Optional[str] = None) -> AgencyMembership:
        """
        End the caller's ACTIVE membership; verification is always stripped.

        ``verified_escorts`` is decremented only when this agency is the one that
        verified the escort, so the counter keeps matching verified active members.
        """
        escort = self._require_escort(actor)
        membership = membership_crud.get_active_membership(self.db, escort.id)
        if membership is None:
            raise NotFoundError("You are not a member of any agency", code="NO_ACTIVE_MEMBERSHIP")

        now = utc_now()
        agency_id = membership.agency_id
        counted_as_verified = escort.is_verified and escort.verified_by == agency_id

        moved = membership_crud.transition_status(
            self.db,
            membership.id,
            MembershipStatusEnum.ACTIVE,
            {
                AgencyMembership.status: MembershipStatusEnum.REJECTED,
                AgencyMembership.left_at: now,
                AgencyMembership.leave_reason: reason,
                AgencyMembership.updated_at: now,
            },
        )
        if not moved:
            self.db.rollback()
            raise NotFoundError("You are not a member of any agency", code="NO_ACTIVE_MEMBERSHIP")

        escort.is_verified = False
        escort.verified_at = None
        escort.verified_by = None
        escort.verification_expires_at = None
        agency_crud.adjust_counters(
            self.db,
            agency_id,
            active_escorts=-1,
            verified_escorts=-1 if counted_as_verified else 0,
        )
        self._commit()
        self.db.refresh(membership)
        logger.info(
            f"Escort {escort.id} left agency {agency_id} (membership {membership.id}, "
            f"was_verified={counted_as_verified})"
        )

        self.notifications.notify(
            membership.agency.user_id,
            NotificationTypeEnum.MEMBERSHIP_ENDED,
            title="Escort left your agency",
            message=f"{actor.display_name or 'An escort'} has left your agency"
            + (f": {reason}" if reason else ""),
            data={"membershipId": membership.id, "escortId": escort.id, "reason": reason},
        )
        return membership

    # ------------------------------------------------------------------
    # agency -> escort
    # ------------------------------------------------------------------

    def invite_escort(
        self,
        actor: AuthenticatedActor,
        escort_id: str,
        message: Optional[str] = None,
        proposed_commission: Optional[float] = None,
        proposed_role: Optional[MembershipRoleEnum] = None,
        proposed_benefits: Optional[Any] = None,
        now: Optional[datetime] = None,
    ) -> AgencyInvitation:
        agency = self._require_agency(actor)
        escort = get_escort(self.db, escort_id)
        if escort is None or not escort.user.is_active or escort.user.is_banned:
            raise NotFoundError("Escort not found", code="ESCORT_NOT_FOUND")

        now = now or utc_now()
        if invitation_crud.find_open_invitation(self.db, agency.id, escort.id, now):
            raise ConflictError("An invitation is already pending for this escort", code="INVITATION_EXISTS")
        if membership_crud.find_membership(
            self.db, escort.id, agency.id, [MembershipStatusEnum.PENDING, MembershipStatusEnum.ACTIVE]
        ):
            raise ConflictError(
                "Escort is already a member or has a pending request", code="ESCORT_ALREADY_MEMBER"
            )

        invitation = AgencyInvitation(
            agency_id=agency.id,
            escort_id=escort.id,
            status=InvitationStatusEnum.PENDING,
            message=message,
            proposed_commission=clamp_rate(proposed_commission, settings.DEFAULT_INVITATION_COMMISSION),
            proposed_role=proposed_role or MembershipRoleEnum.MEMBER,
            proposed_benefits=proposed_benefits,
            invited_by=actor.user_id,
            expires_at=now + timedelta(days=settings.INVITATION_EXPIRY_DAYS),
            created_at=now,
            updated_at=now,
        )
        self.db.add(invitation)
        self._commit()
        self.db.refresh(invitation)
        logger.info(
            f"Invitation {invitation.id}: agency={agency.id} escort={escort.id} expires={invitation.expires_at.isoformat()}"
        )

        self.notifications.notify(
            escort.user_id,
            NotificationTypeEnum.AGENCY_INVITE,
            title="Agency invitation",
            message=f"{actor.display_name or 'An agency'} invited you to join",
            data={"invitationId": invitation.id, "agencyId": agency.id},
            action_url="/escort/invitations",
            priority=NotificationPriorityEnum.HIGH,
        )
        return invitation

    def respond_to_invitation(
        self,
        actor: AuthenticatedActor,
        invitation_id: str,
        action: str,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[AgencyInvitation, Optional[AgencyMembership]]:
        """
        Accept or reject an open invitation.

        Accepting creates the ACTIVE membership (or promotes a PENDING request
        for the same pair), bumps the agency counters and closes the
        invitation in one transaction.
        """
        escort = self._require_escort(actor)
        action = (action or "").strip().lower()
        if action not in INVITATION_ACTIONS:
            raise ValidationAppError("Action must be 'accept' or 'reject'", code="INVALID_ACTION")

        now = now or utc_now()
        invitation = invitation_crud.get_open_invitation_for_escort(self.db, invitation_id, escort.id, now)
        if invitation is None:
            raise NotFoundError("Invitation not found or expired", code="INVITATION_NOT_FOUND")

        membership = None
        if action == "accept":
            self._ensure_no_active_membership(escort.id)
            membership = membership_crud.find_membership(
                self.db, escort.id, invitation.agency_id, [MembershipStatusEnum.PENDING]
            )
            if membership is None:
                membership = AgencyMembership(
                    escort_id=escort.id, agency_id=invitation.agency_id, created_at=now
                )
                self.db.add(membership)
            membership.status = MembershipStatusEnum.ACTIVE
            membership.role = invitation.proposed_role
            membership.commission_rate = invitation.proposed_commission
            membership.approved_by = invitation.invited_by
            membership.approved_at = now
            membership.updated_at = now
            agency_crud.adjust_counters(self.db, invitation.agency_id, total_escorts=1, active_escorts=1)
            new_status = InvitationStatusEnum.ACCEPTED
        else:
            new_status = InvitationStatusEnum.REJECTED

        if not invitation_crud.close_invitation(self.db, invitation.id, new_status, now):
            self.db.rollback()
            raise NotFoundError("Invitation not found or expired", code="INVITATION_NOT_FOUND")
        self._commit()
        self.db.refresh(invitation)
        if membership is not None:
            self.db.refresh(membership)
        logger.info(
            f"Invitation {invitation.id} {new_status.value} by escort {escort.id}"
            + (f"; membership {membership.id} ACTIVE" if membership is not None else "")
        )

        accepted = new_status == InvitationStatusEnum.ACCEPTED
        self.notifications.notify(
            invitation.agency.user_id,
            NotificationTypeEnum.AGENCY_INVITE,
            title="Invitation accepted" if accepted else "Invitation declined",
            message=f"{actor.display_name or 'The escort'} {'accepted' if accepted else 'declined'} your invitation"
            + (f": {message}" if message else ""),
            data={
                "invitationId": invitation.id,
                "escortId": escort.id,
                "membershipId": membership.id if membership is not None else None,
            },
        )
        return invitation, membership

    def manage_membership_request(
        self,
        actor: AuthenticatedActor,
        membership_id: str,
        action: str,
        message: Optional[str] = None,
        commission_rate: Optional[float] = None,
    ) -> AgencyMembership:
        agency = self._require_agency(actor)
        action = (action or "").strip().lower()
        if action not in MEMBERSHIP_ACTIONS:
            raise ValidationAppError("Action must be 'approve' or 'reject'", code="INVALID_ACTION")

        membership = membership_crud.get_pending_membership_for_agency(self.db, membership_id, agency.id)
        if membership is None:
            raise NotFoundError("Membership request not found", code="MEMBERSHIP_NOT_FOUND")

        now = utc_now()
        if action == "approve":
            self._ensure_no_active_membership(membership.escort_id)
            values = {
                AgencyMembership.status: MembershipStatusEnum.ACTIVE,
                AgencyMembership.role: MembershipRoleEnum.MEMBER,
                AgencyMembership.commission_rate: clamp_rate(commission_rate, settings.DEFAULT_COMMISSION_RATE),
                AgencyMembership.approved_by: actor.user_id,
                AgencyMembership.approved_at: now,
                AgencyMembership.updated_at: now,
            }
        else:
            values = {
                AgencyMembership.status: MembershipStatusEnum.REJECTED,
                AgencyMembership.updated_at: now,
            }

        if not membership_crud.transition_status(self.db, membership.id, MembershipStatusEnum.PENDING, values):
            self.db.rollback()
            raise NotFoundError("Membership request not found", code="MEMBERSHIP_NOT_FOUND")
        if action == "approve":
            agency_crud.adjust_counters(self.db, agency.id, total_escorts=1, active_escorts=1)
        self._commit()
        self.db.refresh(membership)
        logger.info(
            f"Membership {membership.id} {membership.status.value} by agency {agency.id} (user {actor.user_id})"
        )

        approved = membership.status == MembershipStatusEnum.ACTIVE
        self.notifications.notify(
            membership.escort.user_id,
            NotificationTypeEnum.MEMBERSHIP_REQUEST,
            title="Membership approved" if approved else "Membership rejected",
            message=(
                f"{actor.display_name or 'The agency'} "
                f"{'approved' if approved else 'rejected'} your membership request"
                + (f": {message}" if message else "")
            ),
            data={"membershipId": membership.id, "agencyId": agency.id, "status": membership.status.value},
        )
        return membership

    # ------------------------------------------------------------------
    # verification
    # ------------------------------------------------------------------

    def verify_escort(
        self,
        actor: AuthenticatedActor,
        escort_id: str,
        pricing_id: str,
        notes: Optional[str] = None,
        renewal: bool = False,
        now: Optional[datetime] = None,
    ) -> VerificationOutcome:
        """
        Issue a verification (or renewal) for a member escort.

        ``renewal=True`` only asserts that the escort is inside the renewal
        window; the write path is the same for both.
        """
        agency = self._require_agency(actor)
        now = now or utc_now()

        eligibility = can_verify_escort(self.db, agency.id, escort_id, now)
        if not eligibility.can_verify:
            if eligibility.code == "ESCORT_ALREADY_VERIFIED":
                if renewal:
                    raise ConflictError(
                        "Escort verification is not yet due for renewal", code="VERIFICATION_NOT_RENEWABLE"
                    )
                raise ConflictError(eligibility.reason, code=eligibility.code)
            raise NotFoundError(eligibility.reason, code=eligibility.code)
        if renewal and not eligibility.is_renewal:
            raise ConflictError(
                "Escort has no verification due for renewal", code="VERIFICATION_NOT_RENEWABLE"
            )

        pricing = resolve_pricing(self.db, pricing_id)
        if pricing is None:
            raise NotFoundError(f"Verification pricing '{pricing_id}' not found", code="PRICING_NOT_FOUND")

        escort = eligibility.escort
        expires_at = now + timedelta(days=pricing.duration_days)
        verification = EscortVerification(
            agency_id=agency.id,
            escort_id=escort.id,
            membership_id=eligibility.membership.id,
            pricing_id=pricing.id,
            status=VerificationStatusEnum.COMPLETED,
            starts_at=now,
            expires_at=expires_at,
            completed_at=now,
            verified_by=actor.user_id,
            verification_notes=notes,
            is_renewal=eligibility.is_renewal,
            created_at=now,
        )
        self.db.add(verification)
        escort.is_verified = True
        escort.verified_at = now
        escort.verified_by = agency.id
        escort.verification_expires_at = expires_at
        agency_crud.adjust_counters(
            self.db,
            agency.id,
            total_verifications=1,
            verified_escorts=0 if eligibility.is_renewal else 1,
        )
        self._commit()
        self.db.refresh(verification)
        self.db.refresh(escort)
        logger.info(
            f"Escort {escort.id} verified by agency {agency.id}: pricing={pricing.id} "
            f"renewal={eligibility.is_renewal} expires={expires_at.isoformat()}"
        )

        reward_verification(self.db, escort.user_id)
        self.notifications.notify(
            escort.user_id,
            NotificationTypeEnum.VERIFICATION_COMPLETED,
            title="Verification renewed" if eligibility.is_renewal else "You are verified",
            message=f"Your verification is valid until {expires_at.date().isoformat()}",
            data={"verificationId": verification.id, "agencyId": agency.id, "expiresAt": expires_at.isoformat()},
        )
        return VerificationOutcome(
            verification=verification,
            escort=escort,
            pricing=pricing,
            is_renewal=eligibility.is_renewal,
        )

    def get_verification_pricing(self) -> List[PricingTier]:
        return list_verification_pricing(self.db)

    def list_expiring_verifications(
        self,
        actor: AuthenticatedActor,
        within_days: Optional[int] = None,
        offset: int = 0,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> Tuple[List[EscortVerification], int]:
        """Verifications this agency issued that expire within ``within_days`` (expired ones included)."""
        agency = self._require_agency(actor)
        if within_days is None:
            within_days = settings.VERIFICATION_RENEWAL_WINDOW_DAYS
        until = (now or utc_now()) + timedelta(days=within_days)
        try:
            return verification_crud.list_expiring(self.db, agency.id, until, offset, limit)
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning(f"Could not load expiring verifications for agency {agency.id}", exc_info=True)
            return [], 0

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def search_agencies(
        self, filters: agency_crud.AgencySearchFilters, offset: int, limit: int
    ) -> Tuple[List[Agency], int]:
        if filters.sort_by not in agency_crud.SORT_OPTIONS:
            raise ValidationAppError(
                f"sortBy must be one of {', '.join(agency_crud.SORT_OPTIONS)}", code="INVALID_SORT"
            )
        return agency_crud.search_agencies(self.db, filters, offset, limit)

    def list_agency_escorts(
        self,
        actor: AuthenticatedActor,
        status: str = "active",
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[AgencyMembership], int]:
        agency = self._require_agency(actor)
        status = (status or "active").lower()
        if status not in LISTING_STATUSES:
            raise ValidationAppError("status must be pending, active or all", code="INVALID_STATUS")
        if status == "pending":
            return membership_crud.list_pending_requests(self.db, agency.id, search, offset, limit)
        statuses = [MembershipStatusEnum.ACTIVE] if status == "active" else None
        return membership_crud.list_members(self.db, agency.id, statuses, search, offset, limit)

    def list_escort_invitations(
        self,
        actor: AuthenticatedActor,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> Tuple[List[AgencyInvitation], int]:
        escort = self._require_escort(actor)
        status_filter = None
        if status:
            try:
                status_filter = InvitationStatusEnum(status.upper())
            except ValueError:
                raise ValidationAppError("status must be PENDING, ACCEPTED or REJECTED", code="INVALID_STATUS")
        return invitation_crud.list_for_escort(self.db, escort.id, status_filter, now or utc_now(), offset, limit)

    def get_membership_status(
        self, actor: AuthenticatedActor, now: Optional[datetime] = None
    ) -> MembershipStatusSummary:
        escort = self._require_escort(actor)
        now = now or utc_now()
        current = membership_crud.get_active_membership(self.db, escort.id)
        pending = membership_crud.list_pending_for_escort(self.db, escort.id)
        open_invitations = invitation_crud.count_open_for_escort(self.db, escort.id, now)

        days_remaining = None
        if escort.is_verified and escort.verification_expires_at is not None:
            days_remaining = max((escort.verification_expires_at - now).days, 0)

        if current is not None:
            status = "agency"
        elif pending:
            status = "pending"
        else:
            status = "independent"

        return MembershipStatusSummary(
            status=status,
            current_membership=current,
            pending_requests=pending,
            pending_invitations=open_invitations,
            verification=VerificationSummary(
                is_verified=escort.is_verified,
                verified_at=escort.verified_at,
                verified_by=escort.verified_by,
                expires_at=escort.verification_expires_at,
                is_expired=is_verification_expired(escort, now),
                needs_renewal=needs_verification_renewal(escort, now),
                days_remaining=days_remaining,
            ),
        )

    def get_agency_stats(self, actor: AuthenticatedActor) -> AgencyStats:
        agency = self._require_agency(actor)
        memberships = {status.value: 0 for status in MembershipStatusEnum}
        memberships.update(membership_crud.count_by_status(self.db, agency.id))
        invitations = {status.value: 0 for status in InvitationStatusEnum}
        invitations.update(invitation_crud.count_by_status(self.db, agency.id))

        verifications = verification_crud.list_completed_for_agency(self.db, agency.id)
        costs: Dict[str, float] = {}
        for verification in verifications:
            if verification.pricing_id not in costs:
                tier = resolve_pricing(self.db, verification.pricing_id)
                costs[verification.pricing_id] = tier.cost if tier is not None else 0.0
        revenue = sum(costs[v.pricing_id] for v in verifications)

        return AgencyStats(
            memberships=memberships,
            invitations=invitations,
            verification_count=len(verifications),
            verification_revenue=revenue,
            average_verification_cost=revenue / len(verifications) if verifications else 0.0,
            counters={
                "totalEscorts": agency.total_escorts,
                "activeEscorts": agency.active_escorts,
                "verifiedEscorts": agency.verified_escorts,
                "totalVerifications": agency.total_verifications,
            },
            top_escorts=membership_crud.list_recently_verified_members(self.db, agency.id),
        )
