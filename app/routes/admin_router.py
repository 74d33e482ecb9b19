from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.actor import AuthenticatedActor
from app.core.exceptions import AppError, ValidationAppError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.models.admin import ReportStatusEnum
from app.models.user import UserTypeEnum
from app.schemas.admin import (
    BanRead,
    BanUserRequest,
    BannedUserRead,
    ReportRead,
    ResolveReportRequest,
    ReviewAgencyRequest,
    UnbanUserRequest,
)
from app.schemas.agency import AgencyRead
from app.services.admin_service import AdminService
from app.utils.response_utils import ResponseWrapper, handle_db_error, normalize_pagination
from common_utils.auth.permission_checker import UserTypeChecker

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])

admin_only = UserTypeChecker([UserTypeEnum.ADMIN])


def _page(page: Optional[int], limit: Optional[int]):
    return normalize_pagination(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


# ---------------------------------------------------------------------------
# Bans
# ---------------------------------------------------------------------------

@router.post("/users/{user_id}/ban", status_code=status.HTTP_201_CREATED)
def ban_user(
    user_id: str,
    body: BanUserRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    """
    Ban a user.

    TEMPORARY bans expire after ``durationDays`` when given; PERMANENT bans never expire.
    Administrators cannot be banned.
    """
    try:
        ban = AdminService(db).ban_user(
            actor, user_id, body.reason, body.severity, body.duration_days, body.evidence
        )
        return ResponseWrapper.created(data={"ban": BanRead.render(ban)}, message="User banned")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error banning user {user_id}: {e}")
        raise handle_db_error(e)


@router.post("/users/{user_id}/unban", status_code=status.HTTP_200_OK)
def unban_user(
    user_id: str,
    body: Optional[UnbanUserRequest] = None,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        user = AdminService(db).unban_user(actor, user_id, body.reason if body else None)
        return ResponseWrapper.updated(data={"user": BannedUserRead.render(user)}, message="User unbanned")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error unbanning user {user_id}: {e}")
        raise handle_db_error(e)


@router.get("/users/banned", status_code=status.HTTP_200_OK)
def list_banned_users(
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        page, limit, offset = _page(page, limit)
        users, total = AdminService(db).list_banned_users(actor, offset, limit)
        return ResponseWrapper.paginated(
            items=BannedUserRead.render_many(users),
            total=total,
            page=page,
            limit=limit,
            message="Banned users retrieved successfully",
            key="users",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing banned users: {e}")
        raise handle_db_error(e)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@router.get("/reports", status_code=status.HTTP_200_OK)
def list_reports(
    status_filter: Optional[str] = Query("PENDING", alias="status", description="PENDING, RESOLVED or ALL"),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        page, limit, offset = _page(page, limit)
        report_status = None
        if status_filter and status_filter.upper() != "ALL":
            try:
                report_status = ReportStatusEnum(status_filter.upper())
            except ValueError:
                raise ValidationAppError("status must be PENDING, RESOLVED or ALL", code="INVALID_STATUS")
        reports, total = AdminService(db).list_reports(actor, report_status, offset, limit)
        return ResponseWrapper.paginated(
            items=ReportRead.render_many(reports),
            total=total,
            page=page,
            limit=limit,
            message="Reports retrieved successfully",
            key="reports",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing reports: {e}")
        raise handle_db_error(e)


@router.post("/reports/{report_id}/resolve", status_code=status.HTTP_200_OK)
def resolve_report(
    report_id: str,
    body: ResolveReportRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        report = AdminService(db).resolve_report(
            actor, report_id, body.action, body.resolution, body.ban_duration_days
        )
        return ResponseWrapper.updated(data={"report": ReportRead.render(report)}, message="Report resolved")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error resolving report {report_id}: {e}")
        raise handle_db_error(e)


# ---------------------------------------------------------------------------
# Agency approval
# ---------------------------------------------------------------------------

@router.get("/agencies/pending", status_code=status.HTTP_200_OK)
def list_pending_agencies(
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        page, limit, offset = _page(page, limit)
        agencies, total = AdminService(db).list_pending_agencies(actor, offset, limit)
        return ResponseWrapper.paginated(
            items=AgencyRead.render_many(agencies),
            total=total,
            page=page,
            limit=limit,
            message="Pending agencies retrieved successfully",
            key="agencies",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing pending agencies: {e}")
        raise handle_db_error(e)


@router.post("/agencies/{agency_id}/approve", status_code=status.HTTP_200_OK)
def approve_agency(
    agency_id: str,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        agency = AdminService(db).review_agency(actor, agency_id, approve=True)
        return ResponseWrapper.updated(data={"agency": AgencyRead.render(agency)}, message="Agency approved")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error approving agency {agency_id}: {e}")
        raise handle_db_error(e)


@router.post("/agencies/{agency_id}/reject", status_code=status.HTTP_200_OK)
def reject_agency(
    agency_id: str,
    body: Optional[ReviewAgencyRequest] = None,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(admin_only),
):
    try:
        agency = AdminService(db).review_agency(
            actor, agency_id, approve=False, reason=body.reason if body else None
        )
        return ResponseWrapper.updated(data={"agency": AgencyRead.render(agency)}, message="Agency rejected")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error rejecting agency {agency_id}: {e}")
        raise handle_db_error(e)
