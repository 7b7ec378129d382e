from __future__ import annotations

import json
from datetime import datetime, timezone as dt_timezone

import pytest
import redis

from apps.bookings import realtime
from apps.bookings.domain.events import BookingCommitted
from shared.application.message_bus import message_bus

START = datetime(2030, 1, 7, 14, tzinfo=dt_timezone.utc)
END = datetime(2030, 1, 7, 15, tzinfo=dt_timezone.utc)


class FakeRedis:
    def __init__(self, error=None):
        self.published = []
        self.error = error

    def publish(self, channel, message):
        if self.error:
            raise self.error
        self.published.append((channel, json.loads(message)))
        return 1


@pytest.fixture
def fake_redis(monkeypatch, settings):
    settings.REALTIME_ENABLED = True
    client = FakeRedis()
    monkeypatch.setattr(realtime, "get_client", lambda: client)
    return client


def test_broadcast_disabled_is_skipped(settings, monkeypatch):
    settings.REALTIME_ENABLED = False
    monkeypatch.setattr(realtime, "get_client", lambda: pytest.fail("client must not be used"))

    assert realtime.broadcast("hold_created", 1, 2, START, END) is False


def test_broadcast_publishes_to_spot_channel(fake_redis):
    assert realtime.broadcast("hold_created", 7, 3, START, END) is True

    assert fake_redis.published == [
        (
            "spot:7",
            {
                "event": "hold_created",
                "spot_id": 7,
                "requester_id": 3,
                "start_at": "2030-01-07T14:00:00+00:00",
                "end_at": "2030-01-07T15:00:00+00:00",
            },
        )
    ]


def test_broadcast_failure_is_swallowed(fake_redis):
    fake_redis.error = redis.ConnectionError("connection refused")

    assert realtime.broadcast("hold_created", 7, 3, START, END) is False


def test_committed_event_is_broadcast_through_message_bus(fake_redis):
    realtime.register_handlers()

    message_bus.publish_events(
        [
            BookingCommitted(
                aggregate_id="10",
                booking_id=10,
                spot_id=7,
                requester_id=3,
                start_at=START,
                end_at=END,
            )
        ]
    )

    assert [message["event"] for _, message in fake_redis.published] == ["booking_committed"]
