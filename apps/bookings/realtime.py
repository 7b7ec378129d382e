"""Realtime conflict signaling over Redis pub/sub.

Subscribers watching a spot (``spot:<id>`` channel) learn that a window
was just held or booked and can refresh their view before the user
submits. Delivery is best-effort: nothing here may fail a booking.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

import redis
from django.conf import settings

from shared.application.message_bus import message_bus

from .domain.events import BookingCommitted, BookingExtended, HoldCreated

logger = logging.getLogger(__name__)

EVENT_HOLD_CREATED = "hold_created"
EVENT_BOOKING_COMMITTED = "booking_committed"
EVENT_BOOKING_EXTENDED = "booking_extended"

_client: redis.Redis | None = None


def channel_for_spot(spot_id: int) -> str:
    return f"spot:{spot_id}"


def get_client() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.Redis.from_url(
            settings.REALTIME_REDIS_URL,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
    return _client


def broadcast(event: str, spot_id: int, requester_id: int, start_at: datetime, end_at: datetime) -> bool:
    """
    Publish a conflict signal to everyone watching the spot.

    Returns:
        bool: True if the message reached Redis. Never raises.
    """
    if not getattr(settings, "REALTIME_ENABLED", False):
        logger.debug(f"Realtime disabled, skipping {event} for spot {spot_id}")
        return False

    payload = json.dumps(
        {
            "event": event,
            "spot_id": spot_id,
            "requester_id": requester_id,
            "start_at": start_at.isoformat(),
            "end_at": end_at.isoformat(),
        }
    )
    try:
        receivers = get_client().publish(channel_for_spot(spot_id), payload)
        logger.debug(f"Broadcast {event} for spot {spot_id} to {receivers} subscribers")
        return True
    except Exception as e:
        logger.warning(f"Realtime broadcast {event} for spot {spot_id} failed: {e}")
        return False


def on_hold_created(event: HoldCreated) -> None:
    broadcast(EVENT_HOLD_CREATED, event.spot_id, event.requester_id, event.start_at, event.end_at)


def on_booking_committed(event: BookingCommitted) -> None:
    broadcast(EVENT_BOOKING_COMMITTED, event.spot_id, event.requester_id, event.start_at, event.end_at)


def on_booking_extended(event: BookingExtended) -> None:
    broadcast(EVENT_BOOKING_EXTENDED, event.spot_id, event.requester_id, event.start_at, event.end_at)


def register_handlers() -> None:
    """Subscribe the broadcasts to booking domain events."""
    message_bus.register_event_handler(HoldCreated, on_hold_created)
    message_bus.register_event_handler(BookingCommitted, on_booking_committed)
    message_bus.register_event_handler(BookingExtended, on_booking_extended)
