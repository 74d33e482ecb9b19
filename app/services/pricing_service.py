"""
Verification pricing lookup with hardcoded fallback tiers.

The listing fallback is priced 50/75/100; the verify-time fallback charges a
flat renewal cost of 10 for every tier. Both apply only when no active
pricing row matches.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.crud.pricing import list_active, get_active
from app.models.verification_pricing import VerificationPricing
from app.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PricingTier:
    id: str
    name: str
    cost: float
    duration: Optional[int]
    features: List[str] = field(default_factory=list)
    description: Optional[str] = None
    is_active: bool = True
    is_fallback: bool = False

    @property
    def duration_days(self) -> int:
        return self.duration or settings.DEFAULT_VERIFICATION_DURATION_DAYS

    @classmethod
    def from_row(cls, row: VerificationPricing) -> "PricingTier":
        return cls(
            id=row.id,
            name=row.name,
            cost=row.cost,
            duration=row.duration,
            features=list(row.features or []),
            description=row.description,
            is_active=row.is_active,
        )


_TIER_SHAPES = (
    ("basic", "Basic Verification", 30, ["Verified badge"]),
    ("premium", "Premium Verification", 60, ["Verified badge", "Search priority"]),
    ("vip", "VIP Verification", 90, ["Verified badge", "Search priority", "Featured listing"]),
)
LISTING_COSTS = {"basic": 50.0, "premium": 75.0, "vip": 100.0}
RENEWAL_COST = 10.0


def _fallback_tiers(costs: Dict[str, float]) -> List[PricingTier]:
    return [
        PricingTier(
            id=f"default-{key}",
            name=name,
            cost=costs[key],
            duration=duration,
            features=list(features),
            is_fallback=True,
        )
        for key, name, duration, features in _TIER_SHAPES
    ]


def listing_fallback_tiers() -> List[PricingTier]:
    return _fallback_tiers(LISTING_COSTS)


def verification_fallback_tiers() -> List[PricingTier]:
    return _fallback_tiers({key: RENEWAL_COST for key in LISTING_COSTS})


def list_verification_pricing(db: Session) -> List[PricingTier]:
    try:
        rows = list_active(db)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Verification pricing table unavailable, serving fallback tiers", exc_info=True)
        return listing_fallback_tiers()
    if not rows:
        return listing_fallback_tiers()
    return [PricingTier.from_row(row) for row in rows]


def resolve_pricing(db: Session, pricing_id: str) -> Optional[PricingTier]:
    """Pricing row by id, else the matching verification fallback tier (``default-basic`` or ``basic``)."""
    try:
        row = get_active(db, pricing_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Verification pricing table unavailable, resolving %s from fallback", pricing_id, exc_info=True)
        row = None
    if row is not None:
        return PricingTier.from_row(row)

    key = pricing_id[len("default-"):] if pricing_id.startswith("default-") else pricing_id
    for tier in verification_fallback_tiers():
        if tier.id == f"default-{key}":
            return tier
    return None
