from sqlalchemy import select
from sqlalchemy.orm import Session

import models_sqlalchemy as models
from date_range import DateRange


class AvailabilityIndex:
    """
    Calendar of the dates held on each listing.

    Every pending or confirmed booking owns exactly one AvailabilityBlock.
    Rejected and cancelled bookings keep their Booking row but lose the
    block, which is what makes their nights bookable again.

    The index does not lock anything: callers must run is_available() and
    add() for a listing inside one atomic unit (see BookingService).
    """

    def __init__(self, db: Session):
        self.db = db

    def _overlapping(self, listing_id, date_range: DateRange):
        Block = models.AvailabilityBlock
        return select(Block).where(
            Block.listing_id == listing_id,
            Block.check_in_date < date_range.check_out,
            Block.check_out_date > date_range.check_in,
        )

    def is_available(self, listing_id, date_range: DateRange) -> bool:
        return self.db.scalars(self._overlapping(listing_id, date_range).limit(1)).first() is None

    def conflicts(self, listing_id, date_range: DateRange):
        stmt = self._overlapping(listing_id, date_range).order_by(models.AvailabilityBlock.check_in_date)
        return list(self.db.scalars(stmt))

    def add(self, booking):
        block = models.AvailabilityBlock(
            listing_id=booking.listing_id,
            booking=booking,
            check_in_date=booking.check_in_date,
            check_out_date=booking.check_out_date,
        )
        self.db.add(block)
        self.db.flush()
        return block

    def remove(self, booking_id) -> bool:
        block = self.db.scalars(
            select(models.AvailabilityBlock).where(models.AvailabilityBlock.booking_id == booking_id)
        ).first()
        if block is None:
            return False
        self.db.delete(block)
        self.db.flush()
        return True

    def booked_ranges(self, listing_id):
        Block = models.AvailabilityBlock
        stmt = select(Block).where(Block.listing_id == listing_id).order_by(Block.check_in_date)
        return [block.date_range for block in self.db.scalars(stmt)]
