import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine, or_, select
from sqlalchemy.orm import Session, sessionmaker

import config
import models_sqlalchemy as models
import models_pydantic as schemas
import permissions
import pricing
from booking_service import BookingService
from date_range import DateRange
from errors import BookingError
from locks import ListingLocks
from permissions import Actor

config.configure_logging()
logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(config.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Shared by every request handled by this process
listing_locks = ListingLocks()


@asynccontextmanager
async def lifespan(app: FastAPI):
    models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    headers = {"Retry-After": str(config.RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


# Dependency to get a DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_booking_service(db: Session = Depends(get_db)):
    return BookingService(db, listing_locks)

# The id is trusted as already verified by the auth layer in front of the API
def get_current_actor(x_user_id: Optional[int] = Header(None), db: Session = Depends(get_db)) -> Actor:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = db.get(models.User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor(id=user.id, role=user.role)

# ---------- Utility Functions ----------
def list_to_comma_string(lst):
    if lst is None:
        return None
    return ",".join([v.strip() for v in lst if v.strip()])

def comma_string_to_list(s):
    if s is None or s.strip() == "":
        return []
    return [v.strip() for v in s.split(",") if v.strip()]

def listing_to_response(listing):
    return schemas.ListingResponse(
        id=listing.id,
        host_id=listing.host_id,
        title=listing.title,
        description=listing.description,
        address_line1=listing.address_line1,
        city=listing.city,
        state=listing.state,
        country=listing.country,
        latitude=listing.latitude,
        longitude=listing.longitude,
        price_per_night=pricing.from_minor_units(listing.price_per_night_cents),
        max_guests=listing.max_guests,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        amenities=comma_string_to_list(listing.amenities),
        image_urls=comma_string_to_list(listing.image_urls),
        created_at=listing.created_at,
    )

def booking_to_response(booking):
    return schemas.BookingResponse(
        id=booking.id,
        listing_id=booking.listing_id,
        guest_id=booking.guest_id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        guest_count=booking.guest_count,
        nights=booking.date_range.nights(),
        total_price=pricing.from_minor_units(booking.total_price_cents),
        status=booking.status,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )

def get_listing_or_404(db, listing_id):
    listing = db.get(models.Listing, listing_id)
    if not listing or listing.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing

# ---------- User Endpoints ----------
@app.post("/users/", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    db_user = db.query(models.User).filter(models.User.email == user.email).first()
    if db_user:
        raise HTTPException(status_code=400, detail="Email already registered")
    db_user = models.User(name=user.name, email=user.email, role=permissions.GUEST)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return db_user

@app.get("/users/me", response_model=schemas.ProfileResponse)
def get_me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    return db.get(models.User, actor.id)

@app.put("/users/me", response_model=schemas.ProfileResponse)
def update_me(user_update: schemas.UserUpdate, actor: Actor = Depends(get_current_actor),
              db: Session = Depends(get_db)):
    user = db.get(models.User, actor.id)
    if user_update.email:
        existing = db.query(models.User).filter(models.User.email == user_update.email,
                                                models.User.id != user.id).first()
        if existing:
            raise HTTPException(status_code=400, detail="Email already registered by another user")
    for field, value in user_update.model_dump(exclude_unset=True).items():
        # name and email are required columns, the profile fields can be cleared
        if value is None and field in ("name", "email"):
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("User %s updated their profile", user.id)
    return user

@app.post("/users/me/become-host", response_model=schemas.UserResponse)
def become_host(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    if not permissions.can(actor, permissions.BECOME_HOST):
        raise HTTPException(status_code=400, detail="User can already host listings")
    user = db.get(models.User, actor.id)
    user.role = permissions.HOST
    db.commit()
    db.refresh(user)
    logger.info("User %s became a host", user.id)
    return user

@app.get("/users/{user_id}", response_model=schemas.UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

# ---------- Listing Endpoints ----------
@app.post("/listings/", response_model=schemas.ListingResponse, status_code=status.HTTP_201_CREATED)
def create_listing(listing: schemas.ListingCreate, actor: Actor = Depends(get_current_actor),
                   db: Session = Depends(get_db)):
    permissions.authorize(actor, permissions.CREATE_LISTING)
    db_listing = models.Listing(
        host_id=actor.id,
        title=listing.title,
        description=listing.description,
        address_line1=listing.address_line1,
        city=listing.city,
        state=listing.state,
        country=listing.country,
        latitude=listing.latitude,
        longitude=listing.longitude,
        price_per_night_cents=pricing.to_minor_units(listing.price_per_night),
        max_guests=listing.max_guests,
        bedrooms=listing.bedrooms,
        bathrooms=listing.bathrooms,
        amenities=list_to_comma_string(listing.amenities),
        image_urls=list_to_comma_string(listing.image_urls),
    )
    db.add(db_listing)
    db.commit()
    db.refresh(db_listing)
    logger.info("Host %s created listing %s", actor.id, db_listing.id)
    return listing_to_response(db_listing)

@app.get("/listings/", response_model=List[schemas.ListingResponse])
def list_listings(location: Optional[str] = None, min_price: Optional[Decimal] = None,
                  max_price: Optional[Decimal] = None, guests: Optional[int] = None,
                  amenities: Optional[str] = None, db: Session = Depends(get_db)):
    stmt = select(models.Listing).where(models.Listing.deleted_at.is_(None))
    if location:
        pattern = f"%{location}%"
        stmt = stmt.where(or_(
            models.Listing.city.ilike(pattern),
            models.Listing.country.ilike(pattern),
            models.Listing.address_line1.ilike(pattern),
        ))
    if min_price is not None:
        stmt = stmt.where(models.Listing.price_per_night_cents >= pricing.to_minor_units(min_price))
    if max_price is not None:
        stmt = stmt.where(models.Listing.price_per_night_cents <= pricing.to_minor_units(max_price))
    if guests is not None:
        stmt = stmt.where(models.Listing.max_guests >= guests)
    listings = db.scalars(stmt.order_by(models.Listing.id)).all()
    if amenities:
        wanted = {a.lower() for a in comma_string_to_list(amenities)}
        listings = [
            listing for listing in listings
            if wanted <= {a.lower() for a in comma_string_to_list(listing.amenities)}
        ]
    return [listing_to_response(listing) for listing in listings]

@app.get("/listings/{listing_id}", response_model=schemas.ListingResponse)
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    return listing_to_response(get_listing_or_404(db, listing_id))

@app.put("/listings/{listing_id}", response_model=schemas.ListingResponse)
def update_listing(listing_id: int, listing_update: schemas.ListingUpdate,
                   actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    listing = get_listing_or_404(db, listing_id)
    if not permissions.can_manage_listing(actor, listing):
        raise HTTPException(status_code=403, detail="Not authorized to update this listing")
    for field, value in listing_update.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if field == "price_per_night":
            listing.price_per_night_cents = pricing.to_minor_units(value)
        elif field in ("amenities", "image_urls"):
            setattr(listing, field, list_to_comma_string(value))
        else:
            setattr(listing, field, value)
    db.commit()
    db.refresh(listing)
    return listing_to_response(listing)

@app.delete("/listings/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_listing(listing_id: int, actor: Actor = Depends(get_current_actor),
                   service: BookingService = Depends(get_booking_service)):
    listing = get_listing_or_404(service.db, listing_id)
    if not permissions.can_manage_listing(actor, listing):
        raise HTTPException(status_code=403, detail="Not authorized to delete this listing")
    service.delete_listing(listing_id, actor.id)
    return

@app.get("/listings/{listing_id}/availability", response_model=List[schemas.BookedRange])
def get_listing_availability(listing_id: int, service: BookingService = Depends(get_booking_service)):
    get_listing_or_404(service.db, listing_id)
    return [
        schemas.BookedRange(check_in_date=r.check_in, check_out_date=r.check_out)
        for r in service.index.booked_ranges(listing_id)
    ]

@app.get("/listings/{listing_id}/quote", response_model=schemas.QuoteResponse)
def get_listing_quote(listing_id: int, check_in_date: date, check_out_date: date,
                      db: Session = Depends(get_db)):
    listing = get_listing_or_404(db, listing_id)
    date_range = DateRange(check_in_date, check_out_date)
    quote = pricing.quote(date_range.nights(), listing.price_per_night_cents)
    return schemas.QuoteResponse(
        listing_id=listing.id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        nights=quote.nights,
        price_per_night=pricing.from_minor_units(quote.nightly_rate),
        subtotal=pricing.from_minor_units(quote.subtotal),
        service_fee=pricing.from_minor_units(quote.service_fee),
        total=pricing.from_minor_units(quote.total),
        currency=config.CURRENCY,
    )

# ---------- Booking Endpoints ----------
@app.post("/bookings/", response_model=schemas.BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(booking: schemas.BookingCreate, actor: Actor = Depends(get_current_actor),
                   service: BookingService = Depends(get_booking_service)):
    permissions.authorize(actor, permissions.BOOK)
    date_range = DateRange(booking.check_in_date, booking.check_out_date)
    db_booking = service.create_booking(booking.listing_id, actor.id, date_range, booking.guest_count)
    return booking_to_response(db_booking)

@app.get("/bookings/", response_model=List[schemas.BookingResponse])
def list_my_bookings(actor: Actor = Depends(get_current_actor),
                     service: BookingService = Depends(get_booking_service)):
    permissions.authorize(actor, permissions.VIEW_OWN_BOOKINGS)
    return [booking_to_response(b) for b in service.list_guest_bookings(actor.id)]

@app.get("/bookings/host", response_model=List[schemas.BookingResponse])
def list_host_bookings(actor: Actor = Depends(get_current_actor),
                       service: BookingService = Depends(get_booking_service)):
    permissions.authorize(actor, permissions.VIEW_HOST_BOOKINGS)
    return [booking_to_response(b) for b in service.list_host_bookings(actor.id)]

@app.get("/bookings/all", response_model=List[schemas.BookingResponse])
def list_all_bookings(actor: Actor = Depends(get_current_actor),
                      service: BookingService = Depends(get_booking_service)):
    permissions.authorize(actor, permissions.VIEW_ALL_BOOKINGS)
    return [booking_to_response(b) for b in service.list_all_bookings()]

@app.get("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def get_booking(booking_id: int, actor: Actor = Depends(get_current_actor),
                service: BookingService = Depends(get_booking_service)):
    return booking_to_response(service.get_booking(booking_id, actor))

@app.put("/bookings/{booking_id}/status", response_model=schemas.BookingResponse)
def update_booking_status(booking_id: int, status_update: schemas.BookingStatusUpdate,
                          actor: Actor = Depends(get_current_actor),
                          service: BookingService = Depends(get_booking_service)):
    if status_update.status == "cancelled":
        permissions.authorize(actor, permissions.CANCEL_BOOKING)
    elif status_update.status in ("confirmed", "rejected"):
        permissions.authorize(actor, permissions.DECIDE_BOOKING)
    booking = service.set_status(booking_id, actor.id, status_update.status)
    return booking_to_response(booking)

# Bookings are never removed, deleting one cancels it
@app.delete("/bookings/{booking_id}", response_model=schemas.BookingResponse)
def cancel_booking(booking_id: int, actor: Actor = Depends(get_current_actor),
                   service: BookingService = Depends(get_booking_service)):
    permissions.authorize(actor, permissions.CANCEL_BOOKING)
    return booking_to_response(service.cancel_booking(booking_id, actor.id))
