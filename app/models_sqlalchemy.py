import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text,
    UniqueConstraint
)
from sqlalchemy.orm import declarative_base

from config import Config

DATABASE_URL = Config.DATABASE_URL

Base = declarative_base()

SEASONS = ("spring", "summer", "autumn", "winter")


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class User(Base):
    __tablename__ = "Users"
    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)  # always lowercase
    password_hash = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TravelPackage(Base):
    __tablename__ = "TravelPackages"
    id = Column(Integer, primary_key=True, index=True)
    destination = Column(String(100), nullable=False)
    description = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    season = Column(String(10), nullable=False, index=True)
    image_url = Column(String(500), nullable=False, default="")
    default_start_date = Column(Date, nullable=False)
    default_end_date = Column(Date, nullable=False)
    duration_days = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_travel_packages_price"),
    )


class CartItem(Base):
    __tablename__ = "CartItems"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("Users.id", ondelete="CASCADE"), nullable=False, index=True)
    travel_package_id = Column(Integer, ForeignKey("TravelPackages.id", ondelete="CASCADE"), nullable=False)
    selected_start_date = Column(Date, nullable=False)
    selected_end_date = Column(Date, nullable=False)
    number_of_guests = Column(Integer, nullable=False, default=1)
    special_requests = Column(Text, nullable=True)
    added_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "travel_package_id", name="uq_cart_items_user_package"),
        CheckConstraint("number_of_guests BETWEEN 1 AND 20", name="ck_cart_items_guests"),
    )


class Booking(Base):
    __tablename__ = "Bookings"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("Users.id", ondelete="CASCADE"), nullable=False, index=True)
    travel_package_id = Column(Integer, ForeignKey("TravelPackages.id", ondelete="CASCADE"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    number_of_guests = Column(Integer, nullable=False)
    special_requests = Column(Text, nullable=True)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    booked_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("number_of_guests BETWEEN 1 AND 20", name="ck_bookings_guests"),
    )
