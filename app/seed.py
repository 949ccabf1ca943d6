"""Initial catalog and administrator account created at startup."""
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

import accounts
import models_sqlalchemy as models
from config import Config

logger = logging.getLogger(__name__)

SEED_PACKAGES = [
    ("Kyoto, Japan", "Philosopher's Path Walk", "4200", "spring", date(2025, 4, 1), date(2025, 4, 15)),
    ("Keukenhof, Holland", "Private Tulip Fields Tour", "3100", "spring", date(2025, 4, 20), date(2025, 5, 5)),
    ("Patagonia, Chile", "Austral Spring Trek", "5800", "spring", date(2025, 10, 10), date(2025, 10, 25)),
    ("Amalfi Coast, Italy", "Private Yacht Charter", "6500", "summer", date(2025, 6, 15), date(2025, 6, 30)),
    ("Santorini, Greece", "Caldera Sunset Villas", "5200", "summer", date(2025, 7, 10), date(2025, 7, 25)),
    ("Baa Atoll, Maldives", "Overwater Sanctuary", "8900", "summer", date(2025, 8, 5), date(2025, 8, 15)),
    ("Vermont, USA", "New England Foliage Tour", "3800", "autumn", date(2025, 9, 25), date(2025, 10, 10)),
    ("Bavaria, Germany", "Castle & Forest Route", "4500", "autumn", date(2025, 10, 1), date(2025, 10, 15)),
    ("Arashiyama, Japan", "Momiji Maple Viewing", "4800", "autumn", date(2025, 11, 15), date(2025, 11, 30)),
    ("Lapland, Finland", "Aurora Glass Igloos", "5500", "winter", date(2025, 12, 10), date(2026, 1, 5)),
    ("Zermatt, Switzerland", "Matterhorn Ski Chalet", "7200", "winter", date(2026, 1, 15), date(2026, 2, 10)),
    ("Aspen, USA", "Luxury Winter Retreat", "9500", "winter", date(2026, 2, 20), date(2026, 3, 5)),
]


def seed_travel_packages(db: Session) -> int:
    if db.query(models.TravelPackage).first() is not None:
        return 0
    for destination, description, price, season, start, end in SEED_PACKAGES:
        db.add(models.TravelPackage(
            destination=destination,
            description=description,
            price=Decimal(price),
            season=season,
            image_url="",
            default_start_date=start,
            default_end_date=end,
            duration_days=(end - start).days,
            is_active=True,
        ))
    db.commit()
    logger.info("Seeded %d travel packages", len(SEED_PACKAGES))
    return len(SEED_PACKAGES)


def seed_admin_user(db: Session, email=None, password=None):
    email = email or Config.ADMIN_EMAIL
    password = password or Config.ADMIN_PASSWORD
    if not email or not password:
        logger.info("ADMIN_EMAIL/ADMIN_PASSWORD not set, skipping admin seeding")
        return None

    user = accounts.get_by_email(db, email)
    if user is None:
        user = models.User(
            first_name="Site",
            last_name="Admin",
            email=accounts.normalize_email(email),
            password_hash=accounts.hash_password(password),
            is_admin=True,
        )
        db.add(user)
        logger.info("Admin user created: %s", user.email)
    elif not user.is_admin:
        user.is_admin = True
        logger.info("Existing user promoted to admin: %s", user.email)
    db.commit()
    db.refresh(user)
    return user
