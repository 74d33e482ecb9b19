from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.actor import AuthenticatedActor
from app.core.exceptions import AppError
from app.core.logging_config import get_logger
from app.crud.agency import AgencySearchFilters
from app.database.session import get_db
from app.models.user import UserTypeEnum
from app.schemas.agency import (
    AgencyRead,
    AgencyStatsRead,
    EscortRead,
    ExpiringVerificationRead,
    InvitationRead,
    InvitationWithAgencyRead,
    InviteEscortRequest,
    JoinAgencyRequest,
    LeaveAgencyRequest,
    ManageMembershipRequest,
    MembershipRead,
    MembershipStatusRead,
    MembershipWithEscortRead,
    PricingTierRead,
    RenewVerificationRequest,
    RespondInvitationRequest,
    VerificationRead,
    VerifyEscortRequest,
)
from app.services.agency_membership_service import AgencyMembershipService, VerificationOutcome
from app.utils.response_utils import ResponseWrapper, handle_db_error, normalize_pagination
from common_utils.auth.permission_checker import UserTypeChecker

logger = get_logger(__name__)
router = APIRouter(prefix="/agencies", tags=["agencies"])

escort_only = UserTypeChecker([UserTypeEnum.ESCORT])
agency_only = UserTypeChecker([UserTypeEnum.AGENCY])
any_user = UserTypeChecker(list(UserTypeEnum))


def _page(page: Optional[int], limit: Optional[int]):
    return normalize_pagination(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


def _verification_payload(outcome: VerificationOutcome) -> dict:
    return {
        "verification": VerificationRead.render(outcome.verification),
        "escort": EscortRead.render(outcome.escort),
        "pricing": PricingTierRead.render(outcome.pricing),
        "isRenewal": outcome.is_renewal,
    }


def _unexpected(db: Session, e: Exception, operation: str, actor: Optional[AuthenticatedActor] = None) -> HTTPException:
    db.rollback()
    logger.exception(f"Unexpected error during {operation} (user={actor.user_id if actor else None}): {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=ResponseWrapper.error(message="Unexpected server error", code="INTERNAL_ERROR"),
    )


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

@router.get("/search", status_code=status.HTTP_200_OK)
def search_agencies(
    q: Optional[str] = Query(None, description="Free text over name, username and bio"),
    location: Optional[str] = Query(None),
    verified: bool = Query(False, description="Only verified agencies"),
    min_escorts: Optional[int] = Query(None, alias="minEscorts", ge=0),
    sort_by: str = Query("relevance", alias="sortBy"),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(any_user),
):
    """Search public agencies, sorted by relevance, newest, oldest, escorts or verified."""
    try:
        page, limit, offset = _page(page, limit)
        filters = AgencySearchFilters(
            query=q,
            location=location,
            verified_only=verified,
            min_escorts=min_escorts,
            sort_by=sort_by,
        )
        agencies, total = AgencyMembershipService(db).search_agencies(filters, offset, limit)
        return ResponseWrapper.paginated(
            items=AgencyRead.render_many(agencies),
            total=total,
            page=page,
            limit=limit,
            message="Agencies retrieved successfully",
            key="agencies",
            extra={"filters": {"q": q, "location": location, "verified": verified, "minEscorts": min_escorts, "sortBy": sort_by}},
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error while searching agencies: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "agency search", actor)


@router.get("/verification-pricing", status_code=status.HTTP_200_OK)
def get_verification_pricing(
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(any_user),
):
    try:
        tiers = AgencyMembershipService(db).get_verification_pricing()
        return ResponseWrapper.success(
            data={"pricing": PricingTierRead.render_many(tiers)},
            message="Verification pricing retrieved successfully",
        )
    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise _unexpected(db, e, "pricing lookup", actor)


# ---------------------------------------------------------------------------
# Escort side
# ---------------------------------------------------------------------------

@router.post("/{agency_id}/join", status_code=status.HTTP_201_CREATED)
def request_to_join(
    agency_id: str,
    body: JoinAgencyRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(escort_only),
):
    """
    Ask to join an agency.

    ``agency_id`` may be the agency id or the id of the agency's user.
    A previously rejected request is reopened rather than duplicated.
    """
    try:
        membership = AgencyMembershipService(db).request_to_join(actor, agency_id, body.message)
        return ResponseWrapper.created(
            data={"membership": MembershipRead.render(membership)},
            message="Membership request sent",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error on join request escort={actor.escort_id} agency={agency_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "join request", actor)


@router.post("/invitations/{invitation_id}/respond", status_code=status.HTTP_200_OK)
def respond_to_invitation(
    invitation_id: str,
    body: RespondInvitationRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(escort_only),
):
    try:
        invitation, membership = AgencyMembershipService(db).respond_to_invitation(
            actor, invitation_id, body.action, body.message
        )
        accepted = membership is not None
        return ResponseWrapper.success(
            data={
                "invitation": InvitationRead.render(invitation),
                "membership": MembershipRead.render(membership) if accepted else None,
            },
            message="Invitation accepted" if accepted else "Invitation rejected",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error responding to invitation {invitation_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "invitation response", actor)


@router.get("/escort/invitations", status_code=status.HTTP_200_OK)
def list_escort_invitations(
    status_filter: Optional[str] = Query(None, alias="status", description="PENDING, ACCEPTED or REJECTED"),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(escort_only),
):
    try:
        page, limit, offset = _page(page, limit)
        invitations, total = AgencyMembershipService(db).list_escort_invitations(
            actor, status_filter, offset, limit
        )
        return ResponseWrapper.paginated(
            items=InvitationWithAgencyRead.render_many(invitations),
            total=total,
            page=page,
            limit=limit,
            message="Invitations retrieved successfully",
            key="invitations",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing invitations for escort {actor.escort_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "invitation listing", actor)


@router.get("/escort/membership-status", status_code=status.HTTP_200_OK)
def get_membership_status(
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(escort_only),
):
    try:
        summary = AgencyMembershipService(db).get_membership_status(actor)
        return ResponseWrapper.success(
            data=MembershipStatusRead.render(summary),
            message="Membership status retrieved successfully",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error loading membership status for escort {actor.escort_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "membership status", actor)


@router.post("/escort/leave", status_code=status.HTTP_200_OK)
def leave_current_agency(
    body: Optional[LeaveAgencyRequest] = None,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(escort_only),
):
    """Leave the current agency. Verification granted by the agency is removed."""
    try:
        reason = body.reason if body else None
        membership = AgencyMembershipService(db).leave_current_agency(actor, reason)
        return ResponseWrapper.success(
            data={"membership": MembershipRead.render(membership), "verificationRemoved": True},
            message="You have left the agency",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error while escort {actor.escort_id} leaving agency: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "leave agency", actor)


# ---------------------------------------------------------------------------
# Agency side
# ---------------------------------------------------------------------------

@router.get("/escorts", status_code=status.HTTP_200_OK)
def list_agency_escorts(
    status_filter: str = Query("active", alias="status", description="pending, active or all"),
    search: Optional[str] = Query(None),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    """
    List the agency's escorts.

    ``status=pending`` returns join requests under ``requests``; ``active`` and
    ``all`` return memberships under ``escorts``.
    """
    try:
        page, limit, offset = _page(page, limit)
        memberships, total = AgencyMembershipService(db).list_agency_escorts(
            actor, status_filter, search, offset, limit
        )
        key = "requests" if status_filter.lower() == "pending" else "escorts"
        return ResponseWrapper.paginated(
            items=MembershipWithEscortRead.render_many(memberships),
            total=total,
            page=page,
            limit=limit,
            message="Agency escorts retrieved successfully",
            key=key,
            extra={"status": status_filter.lower()},
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing escorts for agency {actor.agency_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "agency escort listing", actor)


@router.post("/escorts/{escort_id}/invite", status_code=status.HTTP_201_CREATED)
def invite_escort(
    escort_id: str,
    body: InviteEscortRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    try:
        invitation = AgencyMembershipService(db).invite_escort(
            actor,
            escort_id,
            message=body.message,
            proposed_commission=body.proposed_commission,
            proposed_role=body.proposed_role,
            proposed_benefits=body.proposed_benefits,
        )
        return ResponseWrapper.created(
            data={"invitation": InvitationRead.render(invitation)},
            message="Invitation sent",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error inviting escort {escort_id} to agency {actor.agency_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "invite escort", actor)


@router.post("/memberships/{membership_id}/manage", status_code=status.HTTP_200_OK)
def manage_membership_request(
    membership_id: str,
    body: ManageMembershipRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    try:
        membership = AgencyMembershipService(db).manage_membership_request(
            actor, membership_id, body.action, body.message, body.commission_rate
        )
        return ResponseWrapper.success(
            data={"membership": MembershipWithEscortRead.render(membership)},
            message=f"Membership {membership.status.value.lower()}",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error managing membership {membership_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "manage membership", actor)


@router.post("/escorts/{escort_id}/verify", status_code=status.HTTP_201_CREATED)
def verify_escort(
    escort_id: str,
    body: VerifyEscortRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    """Verify a member escort, or renew a verification inside the renewal window."""
    try:
        outcome = AgencyMembershipService(db).verify_escort(
            actor, escort_id, body.pricing_id, body.verification_notes
        )
        return ResponseWrapper.created(
            data=_verification_payload(outcome),
            message="Verification renewed" if outcome.is_renewal else "Escort verified",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error verifying escort {escort_id} by agency {actor.agency_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "verify escort", actor)


@router.post("/escorts/{escort_id}/verify/renew", status_code=status.HTTP_201_CREATED)
def renew_verification(
    escort_id: str,
    body: RenewVerificationRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    try:
        outcome = AgencyMembershipService(db).verify_escort(actor, escort_id, body.pricing_id, renewal=True)
        return ResponseWrapper.created(data=_verification_payload(outcome), message="Verification renewed")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error renewing verification for escort {escort_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "renew verification", actor)


@router.get("/verifications/expiring", status_code=status.HTTP_200_OK)
def list_expiring_verifications(
    days: int = Query(settings.VERIFICATION_RENEWAL_WINDOW_DAYS, ge=0, le=365),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    try:
        page, limit, offset = _page(page, limit)
        verifications, total = AgencyMembershipService(db).list_expiring_verifications(
            actor, days, offset, limit
        )
        return ResponseWrapper.paginated(
            items=ExpiringVerificationRead.render_many(verifications),
            total=total,
            page=page,
            limit=limit,
            message="Expiring verifications retrieved successfully",
            key="verifications",
            extra={"withinDays": days},
        )
    except (HTTPException, AppError):
        raise
    except Exception as e:
        raise _unexpected(db, e, "expiring verifications", actor)


@router.get("/stats", status_code=status.HTTP_200_OK)
def get_agency_stats(
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(agency_only),
):
    try:
        stats = AgencyMembershipService(db).get_agency_stats(actor)
        return ResponseWrapper.success(data=AgencyStatsRead.render(stats), message="Agency statistics retrieved")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error loading stats for agency {actor.agency_id}: {e}")
        raise handle_db_error(e)
    except Exception as e:
        raise _unexpected(db, e, "agency stats", actor)
