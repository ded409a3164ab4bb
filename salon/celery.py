# salon/celery.py
import os
from celery import Celery
from celery.schedules import crontab

# Set default Django settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "salon.settings")

app = Celery("salon")
# Read config from Django settings, using `CELERY_` namespace
app.config_from_object("django.conf:settings", namespace="CELERY")
# Auto-discover tasks from all installed apps
app.autodiscover_tasks()

NO_SHOW_SWEEP_INTERVAL_HOURS = int(os.getenv("NO_SHOW_SWEEP_INTERVAL_HOURS", 2))

# Celery Beat schedule: periodic tasks
app.conf.beat_schedule = {
    # Mark missed appointments as no-show
    "detect-no-show-bookings": {
        "task": "bookings.tasks.detect_no_show_bookings",
        "schedule": crontab(minute=0, hour=f"*/{NO_SHOW_SWEEP_INTERVAL_HOURS}"),
    },
}
