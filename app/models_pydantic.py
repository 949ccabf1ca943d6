from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models_sqlalchemy import SEASONS, BookingStatus


# ---------- Users ----------

class UserRegister(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone_number: Optional[str] = Field(None, max_length=30)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    phone_number: Optional[str] = Field(None, max_length=30)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    is_admin: bool
    created_at: datetime


class ProfileSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_bookings: int
    completed_bookings: int
    upcoming_bookings: int
    total_spent: Decimal


# ---------- Travel packages ----------

class PackageBase(BaseModel):
    destination: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    season: str
    image_url: str = Field("", max_length=500)
    default_start_date: date
    default_end_date: date
    duration_days: int = 0
    is_active: bool = True

    @field_validator("season")
    @classmethod
    def season_is_known(cls, value):
        value = value.strip().lower()
        if value not in SEASONS:
            raise ValueError("season must be one of: " + ", ".join(SEASONS))
        return value


class PackageCreate(PackageBase):
    pass


class PackageUpdate(PackageBase):
    pass


class PackageResponse(PackageBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


# ---------- Cart ----------

class CartItemCreate(BaseModel):
    travel_package_id: int
    start_date: date
    end_date: date
    number_of_guests: int = Field(1, ge=1, le=20)
    special_requests: Optional[str] = None


class CartItemUpdate(BaseModel):
    start_date: date
    end_date: date
    number_of_guests: int = Field(..., ge=1, le=20)
    special_requests: Optional[str] = None


class CartItemResponse(BaseModel):
    id: int
    travel_package_id: int
    selected_start_date: date
    selected_end_date: date
    number_of_guests: int
    special_requests: Optional[str] = None
    added_at: datetime
    total_price: Decimal
    package: PackageResponse


class CartSummaryResponse(BaseModel):
    count: int
    total: Decimal


# ---------- Bookings ----------

class BookingCreate(CartItemCreate):
    pass


class BookingUpdate(CartItemUpdate):
    pass


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    user_id: int
    travel_package_id: int
    destination: str
    season: str
    start_date: date
    end_date: date
    number_of_guests: int
    special_requests: Optional[str] = None
    total_price: Decimal
    status: BookingStatus
    booked_at: datetime
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class DashboardStatsResponse(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    total_packages: int
    active_packages: int
    total_users: int
    total_revenue: Decimal
    monthly_revenue: Decimal
    bookings_by_season: Dict[str, int]
    recent_bookings: List[BookingResponse]


# ---------- Destinations ----------

class DestinationSuggestionResponse(BaseModel):
    name: str
    country: str
    full_name: str
    description: str
    latitude: float
    longitude: float
    suggested_season: str
