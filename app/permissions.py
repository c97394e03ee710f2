"""
Role capabilities.

The capability table is the only place that says which role may attempt
which action. Whether the actor owns the listing or booking in question is
checked by the caller afterwards.
"""
from dataclasses import dataclass

from errors import NotAuthorizedError

GUEST = "guest"
HOST = "host"
ADMIN = "admin"

BOOK = "book"
CANCEL_BOOKING = "cancel_booking"
VIEW_OWN_BOOKINGS = "view_own_bookings"
BECOME_HOST = "become_host"
CREATE_LISTING = "create_listing"
MANAGE_LISTING = "manage_listing"
DECIDE_BOOKING = "decide_booking"
VIEW_HOST_BOOKINGS = "view_host_bookings"
MANAGE_ANY_LISTING = "manage_any_listing"
VIEW_ALL_BOOKINGS = "view_all_bookings"

_GUEST_ACTIONS = frozenset({BOOK, CANCEL_BOOKING, VIEW_OWN_BOOKINGS, BECOME_HOST})
_HOST_ACTIONS = (_GUEST_ACTIONS - {BECOME_HOST}) | {
    CREATE_LISTING,
    MANAGE_LISTING,
    DECIDE_BOOKING,
    VIEW_HOST_BOOKINGS,
}
_ADMIN_ACTIONS = _HOST_ACTIONS | {MANAGE_ANY_LISTING, VIEW_ALL_BOOKINGS}

CAPABILITIES = {
    GUEST: _GUEST_ACTIONS,
    HOST: _HOST_ACTIONS,
    ADMIN: _ADMIN_ACTIONS,
}


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a request."""
    id: int
    role: str


def can(actor: Actor, action: str) -> bool:
    return action in CAPABILITIES.get(actor.role, frozenset())


def authorize(actor: Actor, action: str):
    if not can(actor, action):
        raise NotAuthorizedError(f"A {actor.role} is not allowed to {action.replace('_', ' ')}")


def can_manage_listing(actor: Actor, listing) -> bool:
    if can(actor, MANAGE_ANY_LISTING):
        return True
    return can(actor, MANAGE_LISTING) and listing.host_id == actor.id
