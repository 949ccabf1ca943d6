"""Per-user cart of pending package selections."""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import catalog
import models_sqlalchemy as models
import pricing
from service_results import CallerContext, ServiceResult

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    item: models.CartItem
    package: models.TravelPackage

    @property
    def total_price(self) -> Decimal:
        return pricing.line_total(self.package.price, self.item.number_of_guests)


def _validate(start_date, end_date, guests):
    return pricing.validate_guests(guests) or pricing.validate_date_range(start_date, end_date)


def _owned_item(db: Session, caller: CallerContext, item_id):
    return (
        db.query(models.CartItem)
        .filter(models.CartItem.id == item_id, models.CartItem.user_id == caller.user_id)
        .first()
    )


def _find_line(db: Session, user_id, package_id):
    return (
        db.query(models.CartItem)
        .filter(models.CartItem.user_id == user_id, models.CartItem.travel_package_id == package_id)
        .first()
    )


def _apply_selection(item, start_date, end_date, guests, special_requests):
    item.selected_start_date = start_date
    item.selected_end_date = end_date
    item.number_of_guests = guests
    item.special_requests = special_requests


def _line_for(db: Session, item):
    return CartLine(item=item, package=catalog.get_by_id(db, item.travel_package_id))


def list_items(db: Session, caller: CallerContext):
    rows = (
        db.query(models.CartItem, models.TravelPackage)
        .join(models.TravelPackage, models.TravelPackage.id == models.CartItem.travel_package_id)
        .filter(models.CartItem.user_id == caller.user_id)
        .order_by(models.CartItem.added_at.desc(), models.CartItem.id.desc())
        .all()
    )
    return [CartLine(item=item, package=package) for item, package in rows]


def add(db: Session, caller: CallerContext, package_id, start_date, end_date, guests, special_requests=None) -> ServiceResult:
    """Add a package to the cart, overwriting the existing line for the same package."""
    error = _validate(start_date, end_date, guests)
    if error:
        return ServiceResult.invalid(error)
    package = catalog.get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")

    item = _find_line(db, caller.user_id, package_id)
    if item is None:
        item = models.CartItem(user_id=caller.user_id, travel_package_id=package_id)
        db.add(item)
    _apply_selection(item, start_date, end_date, guests, special_requests)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same (user, package) line first; overwrite it.
        db.rollback()
        item = _find_line(db, caller.user_id, package_id)
        _apply_selection(item, start_date, end_date, guests, special_requests)
        db.commit()
    db.refresh(item)
    logger.info("Cart of user %s now holds package %s x%d", caller.user_id, package_id, guests)
    return ServiceResult.success(CartLine(item=item, package=package))


def update(db: Session, caller: CallerContext, item_id, start_date, end_date, guests, special_requests=None) -> ServiceResult:
    error = _validate(start_date, end_date, guests)
    if error:
        return ServiceResult.invalid(error)
    item = _owned_item(db, caller, item_id)
    if not item:
        return ServiceResult.not_found("Cart item not found")
    _apply_selection(item, start_date, end_date, guests, special_requests)
    db.commit()
    db.refresh(item)
    return ServiceResult.success(_line_for(db, item))


def remove(db: Session, caller: CallerContext, item_id) -> ServiceResult:
    item = _owned_item(db, caller, item_id)
    if not item:
        return ServiceResult.not_found("Cart item not found")
    db.delete(item)
    db.commit()
    return ServiceResult.success()


def clear(db: Session, caller: CallerContext) -> ServiceResult:
    removed = (
        db.query(models.CartItem)
        .filter(models.CartItem.user_id == caller.user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return ServiceResult.success(removed)


def count(db: Session, caller: CallerContext) -> int:
    return db.query(models.CartItem).filter(models.CartItem.user_id == caller.user_id).count()


def total(db: Session, caller: CallerContext) -> Decimal:
    return sum((line.total_price for line in list_items(db, caller)), pricing.to_money(0))
