#!/usr/bin/env python3
"""
Create database tables from the models and optionally seed default verification pricing

Usage:
    python -m app.database.create_tables [--seed]
"""
import sys

from sqlalchemy.orm import Session

import app.models  # noqa: F401  registers every model on Base.metadata
from app.core.logging_config import setup_logging, get_logger
from app.database.session import engine, SessionLocal, Base
from app.models.verification_pricing import VerificationPricing
from app.services.pricing_service import listing_fallback_tiers

logger = get_logger(__name__)


def create_tables():
    """Initialize the database and create all tables."""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


def seed_default_pricing(db: Session) -> int:
    """Insert the default basic/premium/vip tiers that are missing; returns how many were added."""
    added = 0
    for tier in listing_fallback_tiers():
        if db.get(VerificationPricing, tier.id) is not None:
            continue
        db.add(VerificationPricing(
            id=tier.id,
            name=tier.name,
            description=tier.description,
            cost=tier.cost,
            duration=tier.duration,
            features=list(tier.features),
            is_active=True,
        ))
        added += 1
    db.commit()
    logger.info(f"Seeded {added} verification pricing tiers")
    return added


if __name__ == "__main__":
    setup_logging(force_configure=True)
    create_tables()
    if "--seed" in sys.argv[1:]:
        session = SessionLocal()
        try:
            seed_default_pricing(session)
        finally:
            session.close()
