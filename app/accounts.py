"""User registration, login and profile management."""
import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models_sqlalchemy as models
import pricing
from config import Config
from models_sqlalchemy import BookingStatus
from service_results import CallerContext, ServiceResult

logger = logging.getLogger(__name__)


@dataclass
class ProfileSummary:
    total_bookings: int
    completed_bookings: int
    upcoming_bookings: int
    total_spent: Decimal


def hash_password(password: str) -> str:
    """Keyed SHA-256 digest of the password.

    Unsalted and fast, so it stands in for a real password KDF (bcrypt, argon2)
    until the session and credential layer is built.
    """
    digest = hmac.new(Config.SECRET_KEY.encode("utf-8"), password.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    return hmac.compare_digest(hash_password(password), password_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_by_email(db: Session, email):
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


def get_by_id(db: Session, user_id):
    return db.query(models.User).filter(models.User.id == user_id).first()


def register(db: Session, first_name, last_name, email, password, phone_number=None) -> ServiceResult:
    if not first_name or not last_name or not email or not password:
        return ServiceResult.invalid("first_name, last_name, email and password are required")
    email = normalize_email(email)
    if get_by_email(db, email):
        return ServiceResult.conflict("Email already registered")
    user = models.User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        phone_number=phone_number,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return ServiceResult.conflict("Email already registered")
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return ServiceResult.success(user)


def login(db: Session, email, password) -> ServiceResult:
    user = get_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return ServiceResult.not_found("Invalid email or password")
    return ServiceResult.success(user)


def get_profile(db: Session, caller: CallerContext) -> ServiceResult:
    user = get_by_id(db, caller.user_id)
    if not user:
        return ServiceResult.not_found("User not found")
    return ServiceResult.success(user)


def update_profile(db: Session, caller: CallerContext, fields) -> ServiceResult:
    user = get_by_id(db, caller.user_id)
    if not user:
        return ServiceResult.not_found("User not found")
    if fields.get("email"):
        email = normalize_email(fields["email"])
        existing = get_by_email(db, email)
        if existing and existing.id != user.id:
            return ServiceResult.conflict("Email already registered by another user")
        user.email = email
    for name in ("first_name", "last_name", "phone_number"):
        if fields.get(name) is not None:
            setattr(user, name, fields[name])
    if fields.get("password"):
        user.password_hash = hash_password(fields["password"])
    db.commit()
    db.refresh(user)
    return ServiceResult.success(user)


def profile_summary(db: Session, caller: CallerContext) -> ServiceResult:
    user_bookings = db.query(models.Booking).filter(models.Booking.user_id == caller.user_id).all()
    summary = ProfileSummary(
        total_bookings=len(user_bookings),
        completed_bookings=sum(1 for b in user_bookings if b.status == BookingStatus.COMPLETED),
        upcoming_bookings=sum(
            1 for b in user_bookings if b.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)
        ),
        total_spent=sum(
            (pricing.to_money(b.total_price) for b in user_bookings if b.status != BookingStatus.CANCELLED),
            pricing.to_money(0),
        ),
    )
    return ServiceResult.success(summary)
