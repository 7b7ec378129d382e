import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("parkshare")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Overstay detection, overtime billing and completion
    "run-overstay-sweep": {
        "task": "bookings.run_overstay_sweep",
        "schedule": float(os.environ.get("OVERSTAY_SWEEP_INTERVAL_SECONDS", "60")),
        "options": {"expires": 50},
    },
    # Paid reservations become active at their start time
    "activate-started-bookings": {
        "task": "bookings.activate_started_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
    # Abandoned payments release their slot
    "expire-unpaid-bookings": {
        "task": "bookings.expire_unpaid_bookings",
        "schedule": 60.0,
        "options": {"expires": 50},
    },
}

app.conf.timezone = "UTC"
