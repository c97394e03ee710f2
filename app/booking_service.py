"""
Booking service.

Creates bookings and moves them through their lifecycle while keeping the
availability index consistent:

- a listing never has two pending/confirmed bookings on the same night
- the availability check and the insert happen under the listing's lock,
  inside one database transaction
- status changes read, validate and write the booking under the same lock
"""
import logging
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

import booking_lifecycle
import models_sqlalchemy as models
import permissions
import pricing
from availability import AvailabilityIndex
from date_range import DateRange
from errors import (
    CapacityExceededError,
    ConcurrencyError,
    DateConflictError,
    ListingInUseError,
    NotAuthorizedError,
    NotFoundError,
)
from locks import ListingLocks

logger = logging.getLogger(__name__)


class BookingService:

    def __init__(self, db: Session, locks: ListingLocks):
        self.db = db
        self.locks = locks
        self.index = AvailabilityIndex(db)

    # ---------- Loading ----------
    def get_listing(self, listing_id, for_update=False, include_deleted=False):
        listing = self.db.get(
            models.Listing,
            listing_id,
            with_for_update=True if for_update else None,
            populate_existing=for_update,
        )
        if listing is None or (listing.deleted_at is not None and not include_deleted):
            raise NotFoundError(f"Listing {listing_id} not found")
        return listing

    def _get_booking(self, booking_id, for_update=False):
        booking = self.db.get(
            models.Booking,
            booking_id,
            with_for_update=True if for_update else None,
            populate_existing=for_update,
        )
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    @contextmanager
    def _atomic(self, listing_id):
        """Hold the listing lock for one transaction; commit on success, roll back otherwise."""
        with self.locks.hold(listing_id):
            try:
                yield
                self.db.commit()
            except (IntegrityError, OperationalError) as exc:
                self.db.rollback()
                logger.warning("Write on listing %s rolled back: %s", listing_id, exc)
                raise ConcurrencyError(
                    f"Could not save changes for listing {listing_id}, please retry"
                ) from exc
            except Exception:
                self.db.rollback()
                raise

    # ---------- Commands ----------
    def create_booking(self, listing_id, guest_id, date_range: DateRange, guest_count: int):
        listing = self.get_listing(listing_id)
        if listing.host_id == guest_id:
            raise NotAuthorizedError("Hosts cannot book their own listing")
        if guest_count < 1:
            raise CapacityExceededError("A booking needs at least one guest")
        if guest_count > listing.max_guests:
            raise CapacityExceededError(
                f"This listing allows at most {listing.max_guests} guests, {guest_count} requested"
            )

        with self._atomic(listing_id):
            listing = self.get_listing(listing_id, for_update=True)
            if not self.index.is_available(listing_id, date_range):
                taken = ", ".join(str(block.date_range) for block in self.index.conflicts(listing_id, date_range))
                logger.warning(
                    "Refused booking of listing %s for %s by user %s, overlaps %s",
                    listing_id, date_range, guest_id, taken,
                )
                raise DateConflictError(f"These dates are no longer available ({taken} already booked)")

            booking = models.Booking(
                listing_id=listing_id,
                guest_id=guest_id,
                check_in_date=date_range.check_in,
                check_out_date=date_range.check_out,
                guest_count=guest_count,
                total_price_cents=pricing.compute_total(date_range.nights(), listing.price_per_night_cents),
                status=booking_lifecycle.PENDING,
            )
            self.db.add(booking)
            self.db.flush()
            self.index.add(booking)

        self.db.refresh(booking)
        logger.info(
            "Booking %s created on listing %s for %s by user %s",
            booking.id, listing_id, date_range, guest_id,
        )
        return booking

    def set_status(self, booking_id, actor_id, new_status):
        listing_id = self._get_booking(booking_id).listing_id

        with self._atomic(listing_id):
            booking = self._get_booking(booking_id, for_update=True)
            listing = self.get_listing(booking.listing_id, include_deleted=True)
            transition = booking_lifecycle.plan_transition(
                booking.status,
                new_status,
                actor_id,
                guest_id=booking.guest_id,
                host_id=listing.host_id,
            )
            booking.status = transition.target
            if transition.frees_dates:
                self.index.remove(booking.id)
            self.db.flush()

        self.db.refresh(booking)
        logger.info(
            "Booking %s moved from %s to %s by user %s",
            booking.id, transition.current, transition.target, actor_id,
        )
        return booking

    def cancel_booking(self, booking_id, actor_id):
        return self.set_status(booking_id, actor_id, booking_lifecycle.CANCELLED)

    def delete_listing(self, listing_id, actor_id):
        """Hide a listing from search and new bookings. Its bookings stay on record."""
        with self._atomic(listing_id):
            listing = self.get_listing(listing_id, for_update=True)
            if self.has_active_bookings(listing_id):
                logger.warning("Refused delete of listing %s by user %s, it has active bookings", listing_id, actor_id)
                raise ListingInUseError("Listing has pending or confirmed bookings")
            listing.deleted_at = models.utcnow()
            self.db.flush()

        logger.info("Listing %s deleted by user %s", listing_id, actor_id)
        return listing

    # ---------- Queries ----------
    def get_booking(self, booking_id, actor: permissions.Actor):
        booking = self._get_booking(booking_id)
        if actor.id == booking.guest_id or permissions.can(actor, permissions.VIEW_ALL_BOOKINGS):
            return booking
        if booking.listing.host_id == actor.id:
            return booking
        raise NotAuthorizedError("Not authorized to access this booking")

    def list_guest_bookings(self, guest_id):
        stmt = (
            select(models.Booking)
            .where(models.Booking.guest_id == guest_id)
            .order_by(models.Booking.check_in_date)
        )
        return list(self.db.scalars(stmt))

    def list_host_bookings(self, host_id):
        stmt = (
            select(models.Booking)
            .join(models.Listing, models.Booking.listing_id == models.Listing.id)
            .where(models.Listing.host_id == host_id)
            .order_by(models.Booking.check_in_date)
        )
        return list(self.db.scalars(stmt))

    def list_all_bookings(self):
        return list(self.db.scalars(select(models.Booking).order_by(models.Booking.id)))

    def has_active_bookings(self, listing_id) -> bool:
        return bool(self.index.booked_ranges(listing_id))
