from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.models.admin import Ban, Report, ReportStatusEnum
from app.utils.time_utils import utc_now


def deactivate_bans(db: Session, user_id: str) -> int:
    """Mark every active ban for the user inactive. Does not commit."""
    return (
        db.query(Ban)
        .filter(Ban.user_id == user_id, Ban.is_active.is_(True))
        .update({Ban.is_active: False, Ban.updated_at: utc_now()}, synchronize_session=False)
    )


def get_report(db: Session, report_id: str) -> Optional[Report]:
    return (
        db.query(Report)
        .options(joinedload(Report.target_user))
        .filter(Report.id == report_id)
        .first()
    )


def list_reports(
    db: Session, status: Optional[ReportStatusEnum], offset: int, limit: int
) -> Tuple[List[Report], int]:
    base = db.query(Report)
    if status is not None:
        base = base.filter(Report.status == status)
    total = base.count()
    items = (
        base.options(joinedload(Report.author), joinedload(Report.target_user))
        .order_by(Report.created_at.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total
