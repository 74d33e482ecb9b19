from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.actor import AuthenticatedActor
from app.core.exceptions import AppError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.schemas.notification import NotificationRead
from app.services.notification_service import NotificationService
from app.utils.response_utils import ResponseWrapper, handle_db_error, normalize_pagination
from common_utils.auth.permission_checker import get_current_actor

logger = get_logger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", status_code=status.HTTP_200_OK)
def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: Optional[int] = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    try:
        page, limit, offset = normalize_pagination(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        notifications, total = NotificationService(db).list_notifications(actor.user_id, unread_only, offset, limit)
        return ResponseWrapper.paginated(
            items=NotificationRead.render_many(notifications),
            total=total,
            page=page,
            limit=limit,
            message="Notifications retrieved successfully",
            key="notifications",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error listing notifications for user {actor.user_id}: {e}")
        raise handle_db_error(e)


@router.post("/{notification_id}/read", status_code=status.HTTP_200_OK)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    try:
        notification = NotificationService(db).mark_read(actor.user_id, notification_id)
        return ResponseWrapper.updated(
            data={"notification": NotificationRead.render(notification)},
            message="Notification marked as read",
        )
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Database error marking notification {notification_id} read: {e}")
        raise handle_db_error(e)
