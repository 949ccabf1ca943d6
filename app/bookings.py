"""Booking ledger: direct bookings, cart checkout and the user-facing status transitions.

Status lifecycle::

    Pending -> Confirmed -> Completed
    Pending | Confirmed -> Cancelled

Users may cancel any booking that is not already cancelled and may edit any
booking that is not cancelled. Administrators set status unconditionally
through ``admin.set_booking_status``.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import catalog
import models_sqlalchemy as models
import pricing
from models_sqlalchemy import BookingStatus, utcnow
from service_results import CallerContext, ServiceResult

logger = logging.getLogger(__name__)


@dataclass
class BookingLine:
    booking: models.Booking
    package: models.TravelPackage


def with_packages(query):
    """Join a Booking query with its packages, newest booking first."""
    rows = (
        query.add_entity(models.TravelPackage)
        .join(models.TravelPackage, models.TravelPackage.id == models.Booking.travel_package_id)
        .order_by(models.Booking.booked_at.desc(), models.Booking.id.desc())
        .all()
    )
    return [BookingLine(booking=booking, package=package) for booking, package in rows]


def _owned_booking(db: Session, caller: CallerContext, booking_id):
    return (
        db.query(models.Booking)
        .filter(models.Booking.id == booking_id, models.Booking.user_id == caller.user_id)
        .first()
    )


def list_for_user(db: Session, caller: CallerContext):
    return with_packages(db.query(models.Booking).filter(models.Booking.user_id == caller.user_id))


def get_for_user(db: Session, caller: CallerContext, booking_id) -> ServiceResult:
    booking = _owned_booking(db, caller, booking_id)
    if not booking:
        return ServiceResult.not_found("Booking not found")
    return ServiceResult.success(BookingLine(booking=booking, package=catalog.get_by_id(db, booking.travel_package_id)))


def create_direct(db: Session, caller: CallerContext, package_id, start_date, end_date, guests, special_requests=None) -> ServiceResult:
    error = pricing.validate_guests(guests) or pricing.validate_date_range(start_date, end_date)
    if error:
        return ServiceResult.invalid(error)
    package = catalog.get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")
    booking = models.Booking(
        user_id=caller.user_id,
        travel_package_id=package.id,
        start_date=start_date,
        end_date=end_date,
        number_of_guests=guests,
        special_requests=special_requests,
        total_price=pricing.line_total(package.price, guests),
        status=BookingStatus.PENDING,
        booked_at=utcnow(),
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info("User %s booked package %s (booking %s)", caller.user_id, package.id, booking.id)
    return ServiceResult.success(BookingLine(booking=booking, package=package))


def checkout_cart(db: Session, caller: CallerContext) -> ServiceResult:
    """Convert every cart item of the caller into a pending booking.

    The cart rows are locked for the duration of the transaction, so two
    concurrent checkouts for the same user cannot both convert them. Either all
    items become bookings and the cart is emptied, or nothing changes.
    """
    try:
        rows = (
            db.query(models.CartItem, models.TravelPackage)
            .join(models.TravelPackage, models.TravelPackage.id == models.CartItem.travel_package_id)
            .filter(models.CartItem.user_id == caller.user_id)
            .order_by(models.CartItem.added_at, models.CartItem.id)
            .with_for_update(of=models.CartItem)
            .all()
        )
        if not rows:
            db.commit()
            return ServiceResult.success([])

        now = utcnow()
        lines = []
        for item, package in rows:
            booking = models.Booking(
                user_id=caller.user_id,
                travel_package_id=package.id,
                start_date=item.selected_start_date,
                end_date=item.selected_end_date,
                number_of_guests=item.number_of_guests,
                special_requests=item.special_requests,
                total_price=pricing.line_total(package.price, item.number_of_guests),
                status=BookingStatus.PENDING,
                booked_at=now,
            )
            db.add(booking)
            db.delete(item)
            lines.append(BookingLine(booking=booking, package=package))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Checkout failed for user %s, cart left untouched", caller.user_id)
        raise

    for line in lines:
        db.refresh(line.booking)
    logger.info("User %s checked out %d cart items", caller.user_id, len(lines))
    return ServiceResult.success(lines)


def cancel(db: Session, caller: CallerContext, booking_id) -> ServiceResult:
    booking = _owned_booking(db, caller, booking_id)
    if not booking:
        return ServiceResult.not_found("Booking not found")
    if booking.status == BookingStatus.CANCELLED:
        return ServiceResult.conflict("Booking is already cancelled")
    booking.status = BookingStatus.CANCELLED
    booking.cancelled_at = utcnow()
    db.commit()
    db.refresh(booking)
    logger.info("User %s cancelled booking %s", caller.user_id, booking.id)
    return ServiceResult.success(booking)


def update(db: Session, caller: CallerContext, booking_id, start_date, end_date, guests, special_requests=None) -> ServiceResult:
    """Edit dates, guests and notes; the total is repriced from the package's current price."""
    error = pricing.validate_guests(guests) or pricing.validate_date_range(start_date, end_date)
    if error:
        return ServiceResult.invalid(error)
    booking = _owned_booking(db, caller, booking_id)
    if not booking:
        return ServiceResult.not_found("Booking not found")
    if booking.status == BookingStatus.CANCELLED:
        return ServiceResult.conflict("Cancelled bookings cannot be modified")
    package = catalog.get_by_id(db, booking.travel_package_id)
    booking.start_date = start_date
    booking.end_date = end_date
    booking.number_of_guests = guests
    booking.special_requests = special_requests
    booking.total_price = pricing.line_total(package.price, guests)
    db.commit()
    db.refresh(booking)
    return ServiceResult.success(BookingLine(booking=booking, package=package))
