"""Travel package catalog: read paths for everyone, write paths used by admin."""
import logging
from decimal import InvalidOperation

from sqlalchemy.orm import Session

import models_sqlalchemy as models
import pricing
from service_results import ServiceResult

logger = logging.getLogger(__name__)

PACKAGE_FIELDS = (
    "destination", "description", "price", "season", "image_url",
    "default_start_date", "default_end_date", "duration_days", "is_active",
)


def _ordered(query):
    return query.order_by(models.TravelPackage.season, models.TravelPackage.destination, models.TravelPackage.id)


def list_active(db: Session):
    return _ordered(db.query(models.TravelPackage).filter(models.TravelPackage.is_active.is_(True))).all()


def list_by_season(db: Session, season):
    season = pricing.normalize_season(season)
    if season is None:
        return []
    return (
        db.query(models.TravelPackage)
        .filter(models.TravelPackage.is_active.is_(True), models.TravelPackage.season == season)
        .order_by(models.TravelPackage.destination, models.TravelPackage.id)
        .all()
    )


def list_all(db: Session, include_inactive=True):
    query = db.query(models.TravelPackage)
    if not include_inactive:
        query = query.filter(models.TravelPackage.is_active.is_(True))
    return _ordered(query).all()


def get_by_id(db: Session, package_id):
    return db.query(models.TravelPackage).filter(models.TravelPackage.id == package_id).first()


def _clean_fields(fields):
    """Validate and normalize a full set of package fields, returning (values, error)."""
    values = {name: fields.get(name) for name in PACKAGE_FIELDS}
    for required in ("destination", "description"):
        if not values[required] or not str(values[required]).strip():
            return None, f"{required} is required"
    try:
        price = None if values["price"] is None else pricing.to_money(values["price"])
        valid_price = price is not None and price >= 0
    except InvalidOperation:
        valid_price = False
    if not valid_price:
        return None, "price must be zero or greater"
    season = pricing.normalize_season(values["season"])
    if season is None:
        return None, "season must be one of: " + ", ".join(models.SEASONS)
    error = pricing.validate_date_range(values["default_start_date"], values["default_end_date"])
    if error:
        return None, error
    values["price"] = price
    values["season"] = season
    values["image_url"] = values["image_url"] or ""
    values["duration_days"] = pricing.default_duration(
        values["default_start_date"], values["default_end_date"], values["duration_days"]
    )
    values["is_active"] = True if values["is_active"] is None else bool(values["is_active"])
    return values, None


def create(db: Session, fields) -> ServiceResult:
    values, error = _clean_fields(fields)
    if error:
        return ServiceResult.invalid(error)
    package = models.TravelPackage(**values)
    db.add(package)
    db.commit()
    db.refresh(package)
    logger.info("Created travel package %s (%s)", package.id, package.destination)
    return ServiceResult.success(package)


def update(db: Session, package_id, fields) -> ServiceResult:
    package = get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")
    values, error = _clean_fields(fields)
    if error:
        return ServiceResult.invalid(error)
    for name, value in values.items():
        setattr(package, name, value)
    db.commit()
    db.refresh(package)
    return ServiceResult.success(package)


def delete(db: Session, package_id) -> ServiceResult:
    """Hard delete; the package's cart items and bookings go with it in one transaction."""
    package = get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")
    removed_items = (
        db.query(models.CartItem)
        .filter(models.CartItem.travel_package_id == package_id)
        .delete(synchronize_session=False)
    )
    removed_bookings = (
        db.query(models.Booking)
        .filter(models.Booking.travel_package_id == package_id)
        .delete(synchronize_session=False)
    )
    db.delete(package)
    db.commit()
    logger.info(
        "Deleted travel package %s with %d cart items and %d bookings",
        package_id, removed_items, removed_bookings,
    )
    return ServiceResult.success()


def toggle_active(db: Session, package_id) -> ServiceResult:
    package = get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")
    package.is_active = not package.is_active
    db.commit()
    db.refresh(package)
    return ServiceResult.success(package)
