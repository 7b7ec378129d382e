"""Notifications app package.

Stores in-app notifications and delivers reservation events to renters
and spot owners by push message and email.
"""
