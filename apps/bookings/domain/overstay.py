"""
Overstay escalation state machine.

    none ──▶ detected ──▶ pending_action ──▶ charging ──▶ completed
      │                        │  ▲
      │                        ▼  │ (tow withdrawn)
      │                      towing
      └──────────────▶ completed   (clean path)

The persisted ``overstay_action`` column only stores the last three
states; "detected" is inferred from ``overstay_detected_at`` with a null
action. Transitions driven by the sweep live in ``apps.bookings.sweep``;
this module holds the pure rules both the sweep and the owner-facing
services agree on.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

ACTION_PENDING = "pending_action"
ACTION_CHARGING = "charging"
ACTION_TOWING = "towing"

OWNER_ACTIONS = (ACTION_CHARGING, ACTION_TOWING)


class OverstayStage(str, Enum):
    NONE = "none"
    DETECTED = "detected"
    PENDING_ACTION = ACTION_PENDING
    CHARGING = ACTION_CHARGING
    TOWING = ACTION_TOWING


@dataclass(frozen=True)
class OverstaySnapshot:
    """The overstay columns of one reservation."""

    detected_at: datetime | None
    grace_end: datetime | None
    action: str | None

    @property
    def stage(self) -> OverstayStage:
        if self.action:
            return OverstayStage(self.action)
        if self.detected_at is not None:
            return OverstayStage.DETECTED
        return OverstayStage.NONE


def grace_window(detected_at: datetime, grace_minutes: int) -> tuple[datetime, datetime]:
    """Detection instant and the end of its grace period."""
    return detected_at, detected_at + timedelta(minutes=grace_minutes)


def action_error(snapshot: OverstaySnapshot, action: str, now: datetime) -> str | None:
    """Why the owner may not pick ``action`` right now, or None if they may."""
    if action not in OWNER_ACTIONS:
        return f"Unsupported overstay action: {action}"
    if snapshot.detected_at is None or snapshot.grace_end is None:
        return "No overstay has been detected for this reservation"
    if now < snapshot.grace_end:
        return "Grace period has not ended yet"
    if snapshot.action == action:
        return f"Overstay action is already {action}"
    if snapshot.action == ACTION_CHARGING:
        return "Overtime charging is already running"
    return None


def can_extend(snapshot: OverstaySnapshot) -> bool:
    """Extensions are refused once the owner has acted on an overstay."""
    return snapshot.action in (None, ACTION_PENDING)
