"""
access.py
---------
Explicit tenant authorization checks.

Every mutating scheduling operation calls one of these before it touches the
store; nothing relies on ambient row-level bypasses.
"""

from ..exceptions import Unauthorized
from ..models import Booking, Business


def ensure_owner(user, business: Business):
    """Raise Unauthorized unless `user` owns `business`."""
    if business is None or not business.is_owned_by(user):
        raise Unauthorized()


def booking_source_for(user, business: Business) -> str:
    """
    Decide whether `user` may book at `business`, and through which surface.

    - the owner books through the internal UI, always allowed
    - anyone else (anonymous included) books through the public funnel,
      which only online businesses expose
    """
    if business is None:
        raise Unauthorized()
    if business.is_owned_by(user):
        return Booking.SOURCE_INTERNAL
    if business.booking_mode == Business.MODE_ONLINE:
        return Booking.SOURCE_ONLINE
    raise Unauthorized("This business does not accept online bookings.")
