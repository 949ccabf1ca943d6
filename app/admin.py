"""Privileged operations over the catalog, the booking ledger and user accounts.

Every function takes the caller's context and refuses non-administrators.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from functools import wraps
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

import bookings
import catalog
import models_sqlalchemy as models
import pricing
from models_sqlalchemy import BookingStatus, utcnow
from service_results import CallerContext, ServiceResult

logger = logging.getLogger(__name__)

RECENT_BOOKINGS_LIMIT = 10


@dataclass
class DashboardStats:
    total_bookings: int = 0
    pending_bookings: int = 0
    confirmed_bookings: int = 0
    cancelled_bookings: int = 0
    total_packages: int = 0
    active_packages: int = 0
    total_users: int = 0
    total_revenue: Decimal = Decimal("0.00")
    monthly_revenue: Decimal = Decimal("0.00")
    bookings_by_season: Dict[str, int] = field(default_factory=dict)
    recent_bookings: List[bookings.BookingLine] = field(default_factory=list)


def admin_only(func):
    @wraps(func)
    def wrapper(db: Session, caller: CallerContext, *args, **kwargs):
        if not caller.is_admin:
            logger.warning("User %s denied access to %s", caller.user_id, func.__name__)
            return ServiceResult.forbidden()
        return func(db, caller, *args, **kwargs)
    return wrapper


# ---------- Packages ----------

@admin_only
def list_packages(db: Session, caller: CallerContext, include_inactive=True) -> ServiceResult:
    return ServiceResult.success(catalog.list_all(db, include_inactive=include_inactive))


@admin_only
def get_package(db: Session, caller: CallerContext, package_id) -> ServiceResult:
    package = catalog.get_by_id(db, package_id)
    if not package:
        return ServiceResult.not_found("Package not found")
    return ServiceResult.success(package)


@admin_only
def create_package(db: Session, caller: CallerContext, fields) -> ServiceResult:
    return catalog.create(db, fields)


@admin_only
def update_package(db: Session, caller: CallerContext, package_id, fields) -> ServiceResult:
    return catalog.update(db, package_id, fields)


@admin_only
def delete_package(db: Session, caller: CallerContext, package_id) -> ServiceResult:
    return catalog.delete(db, package_id)


@admin_only
def toggle_package(db: Session, caller: CallerContext, package_id) -> ServiceResult:
    return catalog.toggle_active(db, package_id)


# ---------- Bookings ----------

@admin_only
def list_bookings(db: Session, caller: CallerContext) -> ServiceResult:
    return ServiceResult.success(bookings.with_packages(db.query(models.Booking)))


@admin_only
def list_bookings_by_status(db: Session, caller: CallerContext, status: BookingStatus) -> ServiceResult:
    return ServiceResult.success(bookings.with_packages(db.query(models.Booking).filter(models.Booking.status == status)))


@admin_only
def get_booking(db: Session, caller: CallerContext, booking_id) -> ServiceResult:
    booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    if not booking:
        return ServiceResult.not_found("Booking not found")
    return ServiceResult.success(
        bookings.BookingLine(booking=booking, package=catalog.get_by_id(db, booking.travel_package_id))
    )


@admin_only
def set_booking_status(db: Session, caller: CallerContext, booking_id, status: BookingStatus) -> ServiceResult:
    """Set any status from any status. Only Confirmed and Cancelled stamp a timestamp."""
    booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    if not booking:
        return ServiceResult.not_found("Booking not found")
    previous = booking.status
    booking.status = status
    if status == BookingStatus.CONFIRMED:
        booking.confirmed_at = utcnow()
    elif status == BookingStatus.CANCELLED:
        booking.cancelled_at = utcnow()
    db.commit()
    db.refresh(booking)
    logger.info("Admin %s moved booking %s from %s to %s", caller.user_id, booking.id, previous.value, status.value)
    return ServiceResult.success(booking)


@admin_only
def dashboard_stats(db: Session, caller: CallerContext, now: Optional[datetime] = None) -> ServiceResult:
    now = now or utcnow()
    start_of_month = datetime(now.year, now.month, 1)

    lines = bookings.with_packages(db.query(models.Booking))
    statuses = Counter(line.booking.status for line in lines)
    billable = [line.booking for line in lines if line.booking.status != BookingStatus.CANCELLED]

    stats = DashboardStats(
        total_bookings=len(lines),
        pending_bookings=statuses[BookingStatus.PENDING],
        confirmed_bookings=statuses[BookingStatus.CONFIRMED],
        cancelled_bookings=statuses[BookingStatus.CANCELLED],
        total_packages=db.query(models.TravelPackage).count(),
        active_packages=db.query(models.TravelPackage).filter(models.TravelPackage.is_active.is_(True)).count(),
        total_users=db.query(models.User).count(),
        total_revenue=sum((pricing.to_money(b.total_price) for b in billable), pricing.to_money(0)),
        monthly_revenue=sum(
            (pricing.to_money(b.total_price) for b in billable if b.booked_at >= start_of_month),
            pricing.to_money(0),
        ),
        bookings_by_season=dict(Counter(line.package.season for line in lines)),
        recent_bookings=lines[:RECENT_BOOKINGS_LIMIT],
    )
    return ServiceResult.success(stats)


# ---------- Users ----------

@admin_only
def list_users(db: Session, caller: CallerContext) -> ServiceResult:
    users = db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).all()
    return ServiceResult.success(users)


@admin_only
def toggle_admin(db: Session, caller: CallerContext, user_id) -> ServiceResult:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        return ServiceResult.not_found("User not found")
    user.is_admin = not user.is_admin
    db.commit()
    db.refresh(user)
    logger.info("Admin %s set is_admin=%s for user %s", caller.user_id, user.is_admin, user.id)
    return ServiceResult.success(user)
