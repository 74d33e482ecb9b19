# ── Agencies, memberships & verification ─────────────────────
from app.routes.agency_router import router as agency_router

# ── Notifications ─────────────────────────────────────────────
from app.routes.notification_router import router as notification_router

# ── Moderation ────────────────────────────────────────────────
from app.routes.admin_router import router as admin_router
from app.routes.report_router import router as report_router

__all__ = [
    "agency_router",
    "notification_router",
    "admin_router",
    "report_router",
]
