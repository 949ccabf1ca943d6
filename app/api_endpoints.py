import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

import accounts
import admin
import bookings
import cart
import catalog
import destinations
import models_pydantic as schemas
import models_sqlalchemy as models
import seed
from config import Config
from models_sqlalchemy import BookingStatus
from service_results import CallerContext, ErrorKind

logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DATABASE_URL = models.DATABASE_URL
IS_SQLITE = DATABASE_URL.startswith("sqlite")

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if IS_SQLITE else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

if IS_SQLITE:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    models.Base.metadata.create_all(bind=engine)
    if Config.SEED_DATA:
        db = SessionLocal()
        try:
            seed.seed_travel_packages(db)
            seed.seed_admin_user(db)
        except SQLAlchemyError:
            logger.exception("An error occurred while seeding the database")
        finally:
            db.close()
    yield


app = FastAPI(title="Odyssey Travel", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong, please try again later"},
    )


# Dependency to get a DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_caller(x_user_id: Optional[int] = Header(None), db: Session = Depends(get_db)) -> CallerContext:
    """Resolve the user id header into an explicit caller context.

    The header is trusted as-is and stands in for a real session, so any client
    can act as any user until authentication is added in front of it.
    Admin rights always come from the stored user, never from the request.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = accounts.get_by_id(db, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Authentication required")
    return CallerContext(user_id=user.id, is_admin=user.is_admin)


# ---------- Utility Functions ----------
ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    # reserved: destination search degrades to curated results instead
    ErrorKind.UPSTREAM_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap(result):
    if not result.ok:
        raise HTTPException(status_code=ERROR_STATUS[result.error], detail=result.message)
    return result.value


def package_response(p):
    return schemas.PackageResponse.model_validate(p)


def cart_item_response(line):
    item = line.item
    return schemas.CartItemResponse(
        id=item.id,
        travel_package_id=item.travel_package_id,
        selected_start_date=item.selected_start_date,
        selected_end_date=item.selected_end_date,
        number_of_guests=item.number_of_guests,
        special_requests=item.special_requests,
        added_at=item.added_at,
        total_price=line.total_price,
        package=package_response(line.package),
    )


def booking_response(booking, package=None):
    return schemas.BookingResponse(
        id=booking.id,
        user_id=booking.user_id,
        travel_package_id=booking.travel_package_id,
        destination=package.destination if package else "",
        season=package.season if package else "",
        start_date=booking.start_date,
        end_date=booking.end_date,
        number_of_guests=booking.number_of_guests,
        special_requests=booking.special_requests,
        total_price=booking.total_price,
        status=booking.status,
        booked_at=booking.booked_at,
        confirmed_at=booking.confirmed_at,
        cancelled_at=booking.cancelled_at,
    )


def booking_line_response(line):
    return booking_response(line.booking, line.package)


# ---------- Account Endpoints ----------
@app.post("/auth/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserRegister, db: Session = Depends(get_db)):
    result = accounts.register(
        db, user.first_name, user.last_name, user.email, user.password, user.phone_number
    )
    return schemas.UserResponse.model_validate(unwrap(result))


@app.post("/auth/login", response_model=schemas.UserResponse)
def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    result = accounts.login(db, credentials.email, credentials.password)
    if not result.ok:
        raise HTTPException(status_code=401, detail=result.message)
    return schemas.UserResponse.model_validate(result.value)


@app.get("/profile", response_model=schemas.UserResponse)
def get_profile(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return schemas.UserResponse.model_validate(unwrap(accounts.get_profile(db, caller)))


@app.put("/profile", response_model=schemas.UserResponse)
def update_profile(user_update: schemas.UserUpdate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    result = accounts.update_profile(db, caller, user_update.model_dump(exclude_unset=True))
    return schemas.UserResponse.model_validate(unwrap(result))


@app.get("/profile/summary", response_model=schemas.ProfileSummaryResponse)
def get_profile_summary(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return schemas.ProfileSummaryResponse.model_validate(unwrap(accounts.profile_summary(db, caller)))


# ---------- Catalog Endpoints ----------
@app.get("/packages/", response_model=List[schemas.PackageResponse])
def list_packages(season: Optional[str] = None, db: Session = Depends(get_db)):
    packages = catalog.list_by_season(db, season) if season else catalog.list_active(db)
    return [package_response(p) for p in packages]


@app.get("/packages/{package_id}", response_model=schemas.PackageResponse)
def get_package(package_id: int, db: Session = Depends(get_db)):
    package = catalog.get_by_id(db, package_id)
    if not package:
        raise HTTPException(status_code=404, detail="Package not found")
    return package_response(package)


# ---------- Cart Endpoints ----------
@app.get("/cart/", response_model=List[schemas.CartItemResponse])
def list_cart(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return [cart_item_response(line) for line in cart.list_items(db, caller)]


@app.get("/cart/summary", response_model=schemas.CartSummaryResponse)
def cart_summary(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return schemas.CartSummaryResponse(count=cart.count(db, caller), total=cart.total(db, caller))


@app.post("/cart/", response_model=schemas.CartItemResponse)
def add_to_cart(item: schemas.CartItemCreate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    result = cart.add(
        db, caller, item.travel_package_id, item.start_date, item.end_date,
        item.number_of_guests, item.special_requests,
    )
    return cart_item_response(unwrap(result))


@app.put("/cart/{item_id}", response_model=schemas.CartItemResponse)
def update_cart_item(item_id: int, item: schemas.CartItemUpdate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    result = cart.update(
        db, caller, item_id, item.start_date, item.end_date, item.number_of_guests, item.special_requests
    )
    return cart_item_response(unwrap(result))


@app.delete("/cart/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_cart_item(item_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    unwrap(cart.remove(db, caller, item_id))
    return


@app.delete("/cart/", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    unwrap(cart.clear(db, caller))
    return


@app.post("/cart/checkout", response_model=List[schemas.BookingResponse])
def checkout(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return [booking_line_response(line) for line in unwrap(bookings.checkout_cart(db, caller))]


# ---------- Booking Endpoints ----------
@app.get("/bookings/", response_model=List[schemas.BookingResponse])
def list_bookings(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return [booking_line_response(line) for line in bookings.list_for_user(db, caller)]


@app.get("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def get_booking(booking_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return booking_line_response(unwrap(bookings.get_for_user(db, caller, booking_id)))


@app.post("/bookings/", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(booking: schemas.BookingCreate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    result = bookings.create_direct(
        db, caller, booking.travel_package_id, booking.start_date, booking.end_date,
        booking.number_of_guests, booking.special_requests,
    )
    return booking_line_response(unwrap(result))


@app.put("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def update_booking(booking_id: int, booking: schemas.BookingUpdate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    result = bookings.update(
        db, caller, booking_id, booking.start_date, booking.end_date,
        booking.number_of_guests, booking.special_requests,
    )
    return booking_line_response(unwrap(result))


@app.post("/bookings/{booking_id}/cancel", response_model=schemas.BookingResponse)
def cancel_booking(booking_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    booking = unwrap(bookings.cancel(db, caller, booking_id))
    return booking_response(booking, catalog.get_by_id(db, booking.travel_package_id))


# ---------- Admin Endpoints ----------
@app.get("/admin/stats", response_model=schemas.DashboardStatsResponse)
def dashboard_stats(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    stats = unwrap(admin.dashboard_stats(db, caller))
    return schemas.DashboardStatsResponse(
        total_bookings=stats.total_bookings,
        pending_bookings=stats.pending_bookings,
        confirmed_bookings=stats.confirmed_bookings,
        cancelled_bookings=stats.cancelled_bookings,
        total_packages=stats.total_packages,
        active_packages=stats.active_packages,
        total_users=stats.total_users,
        total_revenue=stats.total_revenue,
        monthly_revenue=stats.monthly_revenue,
        bookings_by_season=stats.bookings_by_season,
        recent_bookings=[booking_line_response(line) for line in stats.recent_bookings],
    )


@app.get("/admin/packages/", response_model=List[schemas.PackageResponse])
def admin_list_packages(include_inactive: bool = True, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return [package_response(p) for p in unwrap(admin.list_packages(db, caller, include_inactive=include_inactive))]


@app.post("/admin/packages/", response_model=schemas.PackageResponse, status_code=status.HTTP_201_CREATED)
def admin_create_package(package: schemas.PackageCreate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return package_response(unwrap(admin.create_package(db, caller, package.model_dump())))


@app.get("/admin/packages/{package_id}", response_model=schemas.PackageResponse)
def admin_get_package(package_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return package_response(unwrap(admin.get_package(db, caller, package_id)))


@app.put("/admin/packages/{package_id}", response_model=schemas.PackageResponse)
def admin_update_package(package_id: int, package: schemas.PackageUpdate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return package_response(unwrap(admin.update_package(db, caller, package_id, package.model_dump())))


@app.delete("/admin/packages/{package_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_package(package_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    unwrap(admin.delete_package(db, caller, package_id))
    return


@app.post("/admin/packages/{package_id}/toggle", response_model=schemas.PackageResponse)
def admin_toggle_package(package_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return package_response(unwrap(admin.toggle_package(db, caller, package_id)))


@app.get("/admin/bookings/", response_model=List[schemas.BookingResponse])
def admin_list_bookings(status_filter: Optional[BookingStatus] = Query(None, alias="status"), caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    if status_filter is None:
        result = admin.list_bookings(db, caller)
    else:
        result = admin.list_bookings_by_status(db, caller, status_filter)
    return [booking_line_response(line) for line in unwrap(result)]


@app.get("/admin/bookings/{booking_id}", response_model=schemas.BookingResponse)
def admin_get_booking(booking_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return booking_line_response(unwrap(admin.get_booking(db, caller, booking_id)))


@app.put("/admin/bookings/{booking_id}/status", response_model=schemas.BookingResponse)
def admin_set_booking_status(booking_id: int, update: schemas.BookingStatusUpdate, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    booking = unwrap(admin.set_booking_status(db, caller, booking_id, update.status))
    return booking_response(booking, catalog.get_by_id(db, booking.travel_package_id))


@app.get("/admin/users/", response_model=List[schemas.UserResponse])
def admin_list_users(caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return [schemas.UserResponse.model_validate(u) for u in unwrap(admin.list_users(db, caller))]


@app.post("/admin/users/{user_id}/toggle-admin", response_model=schemas.UserResponse)
def admin_toggle_user(user_id: int, caller: CallerContext = Depends(get_caller), db: Session = Depends(get_db)):
    return schemas.UserResponse.model_validate(unwrap(admin.toggle_admin(db, caller, user_id)))


# ---------- Destination Search ----------
@app.get("/destinations/search", response_model=List[schemas.DestinationSuggestionResponse])
def search_destinations(query: str = "", season: Optional[str] = None):
    return [
        schemas.DestinationSuggestionResponse(
            name=s.name,
            country=s.country,
            full_name=s.full_name,
            description=s.description,
            latitude=s.latitude,
            longitude=s.longitude,
            suggested_season=s.suggested_season,
        )
        for s in destinations.search_destinations(query, season)
    ]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
