"""
Booking Domain Events

Events that represent things that have happened in the reservation domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from shared.domain.base import DomainEvent


# ===== Spot calendar events =====

@dataclass(kw_only=True)
class HoldCreated(DomainEvent):
    """
    Event: A renter placed a short-lived hold on a window

    Triggers:
    - Realtime broadcast so other viewers see the window as taken
    """
    hold_id: str
    spot_id: int
    requester_id: int
    start_at: datetime
    end_at: datetime


@dataclass(kw_only=True)
class BookingCommitted(DomainEvent):
    """
    Event: A reservation row was written (-> HELD)

    Triggers:
    - Realtime broadcast so competing clients drop their holds
    """
    booking_id: int
    spot_id: int
    requester_id: int
    start_at: datetime
    end_at: datetime


@dataclass(kw_only=True)
class BookingExtended(DomainEvent):
    """
    Event: A reservation's end time moved later

    Triggers:
    - Realtime broadcast of the newly occupied slice
    """
    booking_id: int
    spot_id: int
    requester_id: int
    start_at: datetime
    end_at: datetime
    amount_charged: Decimal
