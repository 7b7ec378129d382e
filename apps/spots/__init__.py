"""Parking spots app: the time-shared resource and its declared schedule."""
