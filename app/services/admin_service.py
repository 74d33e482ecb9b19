"""
Admin moderation: bans, user reports and agency approval.

Same shape as the membership service: validate, write, commit once, then
notify the affected user best-effort.
"""
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.actor import AuthenticatedActor
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InternalAppError,
    NotFoundError,
    ValidationAppError,
)
from app.core.logging_config import get_logger
from app.crud import admin as admin_crud
from app.crud.agency import get_agency, list_agencies_pending_verification
from app.crud.user import get_user, list_banned
from app.models.admin import Admin, Ban, BanSeverityEnum, Report, ReportStatusEnum
from app.models.agency import Agency
from app.models.notification import NotificationTypeEnum, NotificationPriorityEnum
from app.models.user import User, UserTypeEnum
from app.services.notification_service import NotificationService
from app.utils.time_utils import utc_now

logger = get_logger(__name__)

REPORT_ACTIONS = ("approve", "reject", "ban_user")


class AdminService:

    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def _require_admin(self, actor: AuthenticatedActor) -> str:
        if not actor.is_admin:
            raise AuthorizationError("Admin access required", code="ADMIN_ONLY")
        if not actor.admin_id:
            logger.error(f"Admin user {actor.user_id} has no admin profile")
            raise InternalAppError("Admin profile data is missing", code="ADMIN_DATA_MISSING")
        return actor.admin_id

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _bump(self, admin_id: str, column) -> None:
        self.db.query(Admin).filter(Admin.id == admin_id).update(
            {column: column + 1}, synchronize_session=False
        )

    def _apply_ban(
        self,
        actor: AuthenticatedActor,
        admin_id: str,
        target: User,
        reason: str,
        severity: BanSeverityEnum,
        duration_days: Optional[int],
        evidence=None,
    ) -> Ban:
        if target.user_type == UserTypeEnum.ADMIN:
            raise AuthorizationError("Administrators cannot be banned", code="CANNOT_BAN_ADMIN")
        if target.is_banned:
            raise ConflictError("User is already banned", code="USER_ALREADY_BANNED")

        now = utc_now()
        expires_at = None
        if severity == BanSeverityEnum.TEMPORARY and duration_days:
            expires_at = now + timedelta(days=duration_days)
        ban = Ban(
            user_id=target.id,
            admin_id=admin_id,
            banned_by=actor.user_id,
            reason=reason,
            severity=severity,
            evidence=evidence,
            expires_at=expires_at,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(ban)
        target.is_banned = True
        target.ban_reason = reason
        self._bump(admin_id, Admin.total_bans)
        return ban

    def _notify_banned(self, ban: Ban) -> None:
        until = f" until {ban.expires_at.date().isoformat()}" if ban.expires_at else ""
        self.notifications.notify(
            ban.user_id,
            NotificationTypeEnum.SECURITY_ALERT,
            title="Account suspended",
            message=f"Your account has been suspended{until}. Reason: {ban.reason}",
            data={"banId": ban.id, "severity": ban.severity.value},
            priority=NotificationPriorityEnum.HIGH,
        )

    # ------------------------------------------------------------------
    # bans
    # ------------------------------------------------------------------

    def ban_user(
        self,
        actor: AuthenticatedActor,
        user_id: str,
        reason: str,
        severity: BanSeverityEnum = BanSeverityEnum.TEMPORARY,
        duration_days: Optional[int] = None,
        evidence=None,
    ) -> Ban:
        admin_id = self._require_admin(actor)
        target = get_user(self.db, user_id)
        if target is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if target.id == actor.user_id:
            raise ValidationAppError("You cannot ban yourself", code="CANNOT_BAN_SELF")

        ban = self._apply_ban(actor, admin_id, target, reason, severity, duration_days, evidence)
        self._commit()
        self.db.refresh(ban)
        logger.info(f"User {target.id} banned by admin {actor.user_id} ({severity.value}, ban {ban.id})")
        self._notify_banned(ban)
        return ban

    def unban_user(self, actor: AuthenticatedActor, user_id: str, reason: Optional[str] = None) -> User:
        self._require_admin(actor)
        target = get_user(self.db, user_id)
        if target is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if not target.is_banned:
            raise ValidationAppError("User is not banned", code="USER_NOT_BANNED")

        admin_crud.deactivate_bans(self.db, target.id)
        target.is_banned = False
        target.ban_reason = None
        self._commit()
        self.db.refresh(target)
        logger.info(f"User {target.id} unbanned by admin {actor.user_id}")

        self.notifications.notify(
            target.id,
            NotificationTypeEnum.SECURITY_ALERT,
            title="Account restored",
            message="Your account suspension has been lifted" + (f": {reason}" if reason else ""),
        )
        return target

    def list_banned_users(self, actor: AuthenticatedActor, offset: int, limit: int) -> Tuple[List[User], int]:
        self._require_admin(actor)
        return list_banned(self.db, offset, limit)

    # ------------------------------------------------------------------
    # reports
    # ------------------------------------------------------------------

    def create_report(
        self,
        actor: AuthenticatedActor,
        target_user_id: str,
        reason: str,
        description: Optional[str] = None,
    ) -> Report:
        target = get_user(self.db, target_user_id)
        if target is None:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if target.id == actor.user_id:
            raise ValidationAppError("You cannot report yourself", code="CANNOT_REPORT_SELF")

        report = Report(
            author_id=actor.user_id,
            target_user_id=target.id,
            reason=reason,
            description=description,
            status=ReportStatusEnum.PENDING,
        )
        self.db.add(report)
        self._commit()
        self.db.refresh(report)
        logger.info(f"Report {report.id} filed by {actor.user_id} against {target.id}")
        return report

    def list_reports(
        self, actor: AuthenticatedActor, status: Optional[ReportStatusEnum], offset: int, limit: int
    ) -> Tuple[List[Report], int]:
        self._require_admin(actor)
        return admin_crud.list_reports(self.db, status, offset, limit)

    def resolve_report(
        self,
        actor: AuthenticatedActor,
        report_id: str,
        action: str,
        resolution: Optional[str] = None,
        ban_duration_days: Optional[int] = None,
    ) -> Report:
        """
        Close a pending report.

        ``ban_user`` also bans the reported user in the same transaction.
        """
        admin_id = self._require_admin(actor)
        report = admin_crud.get_report(self.db, report_id)
        if report is None:
            raise NotFoundError("Report not found", code="REPORT_NOT_FOUND")
        if report.status != ReportStatusEnum.PENDING:
            raise ValidationAppError("Report has already been processed", code="REPORT_ALREADY_PROCESSED")
        action = (action or "").strip().lower()
        if action not in REPORT_ACTIONS:
            raise ValidationAppError("Action must be approve, reject or ban_user", code="INVALID_ACTION")

        ban = None
        if action == "ban_user":
            if report.target_user is None:
                raise ValidationAppError("Report has no target user", code="NO_TARGET_USER")
            ban = self._apply_ban(
                actor,
                admin_id,
                report.target_user,
                reason=f"Report: {report.reason}",
                severity=BanSeverityEnum.TEMPORARY if ban_duration_days else BanSeverityEnum.PERMANENT,
                duration_days=ban_duration_days,
            )

        report.status = ReportStatusEnum.RESOLVED
        report.resolution = resolution
        report.action_taken = action
        report.resolved_by = actor.user_id
        report.resolved_at = utc_now()
        self._bump(admin_id, Admin.total_reports)
        self._commit()
        self.db.refresh(report)
        logger.info(f"Report {report.id} resolved by admin {actor.user_id}: action={action}")

        if ban is not None:
            self.db.refresh(ban)
            self._notify_banned(ban)
        self.notifications.notify(
            report.author_id,
            NotificationTypeEnum.SYSTEM,
            title="Report reviewed",
            message="Your report has been reviewed by our moderation team",
            data={"reportId": report.id, "action": action},
        )
        return report

    # ------------------------------------------------------------------
    # agency approval
    # ------------------------------------------------------------------

    def list_pending_agencies(self, actor: AuthenticatedActor, offset: int, limit: int) -> Tuple[List[Agency], int]:
        self._require_admin(actor)
        return list_agencies_pending_verification(self.db, offset, limit)

    def review_agency(
        self, actor: AuthenticatedActor, agency_id: str, approve: bool, reason: Optional[str] = None
    ) -> Agency:
        self._require_admin(actor)
        agency = get_agency(self.db, agency_id)
        if agency is None:
            raise NotFoundError("Agency not found", code="AGENCY_NOT_FOUND")
        if approve and agency.is_verified:
            raise ConflictError("Agency is already verified", code="AGENCY_ALREADY_VERIFIED")

        agency.is_verified = approve
        agency.verified_at = utc_now() if approve else None
        self._commit()
        self.db.refresh(agency)
        logger.info(f"Agency {agency.id} {'approved' if approve else 'rejected'} by admin {actor.user_id}")

        self.notifications.notify(
            agency.user_id,
            NotificationTypeEnum.AGENCY_VERIFICATION,
            title="Agency approved" if approve else "Agency verification declined",
            message=(
                "Your agency is now verified"
                if approve
                else "Your agency verification was declined" + (f": {reason}" if reason else "")
            ),
            data={"agencyId": agency.id, "approved": approve},
        )
        return agency
