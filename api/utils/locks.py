"""
Per-location, per-day schedule locks.

Writers that check conflicts and then insert/update bookings hold the
ScheduleLock row(s) of every local date they touch, so two requests for the
same location and day run one after the other and the second one sees the
first one's booking.
"""
import logging
from contextlib import contextmanager
from datetime import datetime

from django.db import OperationalError, transaction

from api.exceptions import TransientInfrastructureError
from api.models import ScheduleLock
from .timezone_helpers import location_tz

logger = logging.getLogger(__name__)


def local_date(location, dt: datetime):
    return dt.astimezone(location_tz(location)).date()


@contextmanager
def schedule_lock(location, *dates):
    """
    transaction.atomic() block holding select_for_update locks on the
    ScheduleLock rows of `dates`, taken in sorted order.
    Lock timeouts and deadlocks surface as TransientInfrastructureError.
    """
    try:
        with transaction.atomic():
            for d in sorted(set(dates)):
                lock_obj, _ = ScheduleLock.objects.get_or_create(location=location, date=d)
                # select_for_update blocks concurrent writers for this location/date
                ScheduleLock.objects.select_for_update().get(id=lock_obj.id)
            yield
    except OperationalError as exc:
        logger.warning("Schedule lock failed for location=%s dates=%s: %s", location.pk, dates, exc)
        raise TransientInfrastructureError() from exc
