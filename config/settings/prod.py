"""Production settings for ParkShare project.

This module extends the base settings with production specific
configuration. Sensitive values must be provided via environment
variables; startup fails when a required one is missing.
"""

from .base import *  # noqa: F401,F403
from .base import get_bool_env, get_env

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', required=True).split(',')

# The sweep endpoint is unusable without a shared secret
INTERNAL_TASK_SECRET = get_env('INTERNAL_TASK_SECRET', required=True)

# Configure secure proxies and cookies
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True

# Email backend (e.g. SMTP) should be configured via environment variables
EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = get_env('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(get_env('EMAIL_PORT', '25'))
EMAIL_USE_TLS = get_bool_env('EMAIL_USE_TLS')
EMAIL_HOST_USER = get_env('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = get_env('EMAIL_HOST_PASSWORD', '')
