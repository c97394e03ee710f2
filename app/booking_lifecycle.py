"""
Booking status transitions.

    pending -> confirmed    host of the listing
    pending -> rejected     host of the listing
    pending -> cancelled    guest who booked
    confirmed -> cancelled  guest who booked

rejected and cancelled are final, and confirmed can only be cancelled.
"""
from dataclasses import dataclass

from errors import InvalidTransitionError, NotAuthorizedError

PENDING = "pending"
CONFIRMED = "confirmed"
REJECTED = "rejected"
CANCELLED = "cancelled"

# Bookings in these states hold their dates on the listing calendar
ACTIVE_STATUSES = frozenset({PENDING, CONFIRMED})

HOST_PARTY = "host"
GUEST_PARTY = "guest"

TRANSITIONS = {
    (PENDING, CONFIRMED): HOST_PARTY,
    (PENDING, REJECTED): HOST_PARTY,
    (PENDING, CANCELLED): GUEST_PARTY,
    (CONFIRMED, CANCELLED): GUEST_PARTY,
}

_PARTY_FOR_TARGET = {target: party for (_, target), party in TRANSITIONS.items()}


@dataclass(frozen=True)
class Transition:
    current: str
    target: str
    party: str

    @property
    def frees_dates(self) -> bool:
        return self.current in ACTIVE_STATUSES and self.target not in ACTIVE_STATUSES


def plan_transition(current: str, target: str, actor_id: int, guest_id: int, host_id: int) -> Transition:
    """
    Validate a status change requested by ``actor_id``.

    The actor is checked before the transition table, so someone who is
    neither the guest nor the host cannot learn a booking's state from the error.
    """
    party = _PARTY_FOR_TARGET.get(target)
    if party is None:
        raise InvalidTransitionError(current, target, f"Bookings cannot be moved to {target!r}")

    expected_actor = host_id if party == HOST_PARTY else guest_id
    if actor_id != expected_actor:
        if party == HOST_PARTY:
            raise NotAuthorizedError("Only the host of the listing can confirm or reject a booking")
        raise NotAuthorizedError("Only the guest who made the booking can cancel it")

    if (current, target) not in TRANSITIONS:
        raise InvalidTransitionError(current, target)
    return Transition(current=current, target=target, party=party)
