from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Float, Date, DateTime, ForeignKey, Text, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship

from date_range import DateRange

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "Users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(10), nullable=False, default="guest")
    phone_number = Column(String(20), nullable=True)
    gender = Column(String(20), nullable=True)
    alternate_email = Column(String(255), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address_street = Column(String(255), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_state = Column(String(100), nullable=True)
    address_zip_code = Column(String(20), nullable=True)
    address_country = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    listings = relationship("Listing", back_populates="host")
    bookings = relationship("Booking", back_populates="guest")

    __table_args__ = (
        CheckConstraint("role IN ('guest', 'host', 'admin')", name="ck_users_role"),
    )


class Listing(Base):
    __tablename__ = "Listings"
    id = Column(Integer, primary_key=True, index=True)
    host_id = Column(Integer, ForeignKey("Users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    address_line1 = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    price_per_night_cents = Column(Integer, nullable=False)
    max_guests = Column(Integer, nullable=False)
    bedrooms = Column(Integer, nullable=False, default=0)
    bathrooms = Column(Integer, nullable=False, default=0)
    amenities = Column(Text, nullable=True)  # comma-separated
    image_urls = Column(Text, nullable=True)  # comma-separated
    created_at = Column(DateTime, nullable=False, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)  # set instead of removing the row

    host = relationship("User", back_populates="listings")
    bookings = relationship("Booking", back_populates="listing")

    __table_args__ = (
        CheckConstraint("price_per_night_cents > 0", name="ck_listings_price_positive"),
        CheckConstraint("max_guests >= 1", name="ck_listings_max_guests"),
    )


class Booking(Base):
    __tablename__ = "Bookings"
    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("Listings.id"), nullable=False)
    guest_id = Column(Integer, ForeignKey("Users.id"), nullable=False, index=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    guest_count = Column(Integer, nullable=False)
    total_price_cents = Column(Integer, nullable=False)  # fixed at creation
    status = Column(String(10), nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    listing = relationship("Listing", back_populates="bookings")
    guest = relationship("User", back_populates="bookings")
    block = relationship("AvailabilityBlock", back_populates="booking", uselist=False,
                         cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_bookings_dates"),
        CheckConstraint("guest_count >= 1", name="ck_bookings_guest_count"),
        CheckConstraint("total_price_cents >= 0", name="ck_bookings_total"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'rejected', 'cancelled')", name="ck_bookings_status"
        ),
        Index("ix_bookings_listing_status", "listing_id", "status"),
    )

    @property
    def date_range(self):
        return DateRange(self.check_in_date, self.check_out_date)


class AvailabilityBlock(Base):
    """The nights held by one pending or confirmed booking."""
    __tablename__ = "AvailabilityBlocks"
    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("Listings.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("Bookings.id"), nullable=False, unique=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)

    booking = relationship("Booking", back_populates="block")

    __table_args__ = (
        Index("ix_blocks_listing_dates", "listing_id", "check_in_date", "check_out_date"),
    )

    @property
    def date_range(self):
        return DateRange(self.check_in_date, self.check_out_date)
