"""Bookings app package.

This app encapsulates the reservation core: availability checks, short
lived holds, commit-time conflict resolution, realtime conflict signals
and the overstay sweep with its overtime billing. Double booking is
prevented inside a database transaction that locks the spot row.
"""
