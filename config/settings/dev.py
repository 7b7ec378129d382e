"""Development settings for ParkShare project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts, a local
memory cache when no Redis is configured and the console email backend.
Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403
from .base import get_bool_env, get_env

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Work without Redis unless explicitly enabled
if not get_bool_env('DEV_USE_REDIS'):
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'parkshare-dev',
        }
    }
    REALTIME_ENABLED = False

# Use console email backend during development
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

INTERNAL_TASK_SECRET = get_env('INTERNAL_TASK_SECRET', 'dev-internal-secret')
