from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.actor import AuthenticatedActor
from app.core.exceptions import AppError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.schemas.admin import CreateReportRequest, ReportRead
from app.services.admin_service import AdminService
from app.utils.response_utils import ResponseWrapper, handle_db_error
from common_utils.auth.permission_checker import get_current_actor

logger = get_logger(__name__)
router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_report(
    body: CreateReportRequest,
    db: Session = Depends(get_db),
    actor: AuthenticatedActor = Depends(get_current_actor),
):
    """File a report against another user for moderator review."""
    try:
        report = AdminService(db).create_report(actor, body.target_user_id, body.reason, body.description)
        return ResponseWrapper.created(data={"report": ReportRead.render(report)}, message="Report submitted")
    except (HTTPException, AppError):
        raise
    except SQLAlchemyError as e:
        logger.exception(f"Database error filing report by {actor.user_id}: {e}")
        raise handle_db_error(e)
