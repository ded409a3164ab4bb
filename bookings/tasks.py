# bookings/tasks.py

from celery import shared_task
import logging

from bookings.utils.no_show import detect_no_shows

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="bookings.tasks.detect_no_show_bookings", max_retries=3, default_retry_delay=60)
def detect_no_show_bookings(self):
    """
    Mark pending/confirmed bookings without a check-in as 'no_show' once they
    are NO_SHOW_GRACE_HOURS past their start time.
    """
    result = detect_no_shows()
    msg = f"{result.detected} bookings marked no-show ({result.processed} processed, {result.failed} failed)"
    logger.info(msg)
    return msg
