"""Test settings for the ParkShare project.

In-memory SQLite, local memory cache, eager Celery and no outbound
network: realtime broadcasts are off and the payment and push
collaborators run in their emulated mode.
"""

from decimal import Decimal

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'parkshare-tests',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

REALTIME_ENABLED = False
PUSH_GATEWAY_URL = ''
PAYMENT_API_KEY = ''
INTERNAL_TASK_SECRET = 'test-internal-secret'

OVERSTAY_HOURLY_RATE = Decimal('25.00')
BOOKING_SERVICE_FEE_RATE = Decimal('0.10')
BOOKING_CURRENCY = 'USD'
TIME_ZONE = 'UTC'
