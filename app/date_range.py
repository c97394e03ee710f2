import math
from dataclasses import dataclass
from datetime import date

from errors import InvalidRangeError

SECONDS_PER_NIGHT = 24 * 60 * 60


@dataclass(frozen=True)
class DateRange:
    """
    A stay from check_in (inclusive) to check_out (exclusive).

    The guest occupies the nights starting on check_in up to the night before
    check_out, so a stay ending on a day does not collide with one starting
    on that same day.
    """
    check_in: date
    check_out: date

    def __post_init__(self):
        if self.check_out <= self.check_in:
            raise InvalidRangeError("check_out_date must be after check_in_date")

    def nights(self) -> int:
        delta = self.check_out - self.check_in
        return math.ceil(delta.total_seconds() / SECONDS_PER_NIGHT)

    def overlaps(self, other: "DateRange") -> bool:
        return self.check_in < other.check_out and other.check_in < self.check_out

    def contains(self, day: date) -> bool:
        return self.check_in <= day < self.check_out

    def __str__(self):
        return f"{self.check_in.isoformat()}..{self.check_out.isoformat()}"
