"""ASGI config for ParkShare project.

This module exposes the ASGI application for ASGI servers. Realtime
conflict signals are published to Redis and served by a separate gateway,
so only the HTTP interface is mounted here.
"""

import os
from django.core.asgi import get_asgi_application  # type: ignore

# Use the development settings by default. Production servers should set
# DJANGO_SETTINGS_MODULE accordingly.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_asgi_application()
