"""WSGI config for ParkShare project.

This module exposes the WSGI application for use by Django's runserver and
production WSGI servers. It points to our settings package and defaults
to the development settings.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
