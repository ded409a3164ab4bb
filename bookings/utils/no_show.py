# bookings/utils/no_show.py
"""
No-show handling: the manual penalty endpoint and the periodic sweep.

A booking is a no-show candidate when it is pending/confirmed, has no check-in
and started more than NO_SHOW_GRACE_HOURS ago. The sweep re-checks that
predicate under a row lock for every booking, so running it twice changes
nothing the second time.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from api.exceptions import NotFoundError, ValidationError
from api.models import Staff
from bookings.models import Booking
from .audit import booking_snapshot, record_audit
from .booking_flow import get_booking
from .pricing import calculate_no_show_penalty

logger = logging.getLogger(__name__)

NO_SHOW_ELIGIBLE_STATUSES = ('pending', 'confirmed')
OVERRIDE_ROLES = ('admin', 'manager')


@dataclass
class NoShowSweepResult:
    processed: int = 0
    detected: int = 0
    failed: int = 0
    booking_ids: List[str] = field(default_factory=list)

    def as_dict(self):
        return {
            "processedCount": self.processed,
            "detectedCount": self.detected,
            "failedCount": self.failed,
        }


def no_show_candidates(now=None, grace_hours=None):
    now = now or timezone.now()
    grace = timedelta(hours=settings.NO_SHOW_GRACE_HOURS if grace_hours is None else grace_hours)
    return Booking.objects.filter(
        status__in=NO_SHOW_ELIGIBLE_STATUSES,
        check_in_time__isnull=True,
        start_time__lt=now - grace,
    )


def _resolve_override(override_by):
    if override_by in (None, ""):
        return None
    try:
        staff = Staff.objects.get(id=override_by)
    except (Staff.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Override staff member not found.")
    if not staff.is_active or staff.role not in OVERRIDE_ROLES:
        raise ValidationError("Only an active admin or manager can waive a no-show penalty.")
    return staff


def _mark_no_show(booking, override_staff=None, user=None, actor=None):
    old = booking_snapshot(booking)
    booking.status = 'no_show'
    if override_staff is not None:
        booking.no_show_penalty_amount = 0
        booking.no_show_penalty_waived_by = override_staff
    else:
        booking.no_show_penalty_amount = calculate_no_show_penalty(booking.deposit_amount)
    booking.save(update_fields=['status', 'no_show_penalty_amount', 'no_show_penalty_waived_by', 'updated_at'])

    new = booking_snapshot(booking)
    new['penalty_waived'] = override_staff is not None
    record_audit('booking', booking.id, 'no_show', old, new, user=user, actor=actor)
    return booking


def apply_no_show_penalty(booking_id, override_by=None, user=None):
    """
    Mark a booking as no-show and retain NO_SHOW_PENALTY_PERCENTAGE of its deposit.
    override_by (an admin/manager staff id) waives the penalty.
    """
    override_staff = _resolve_override(override_by)

    with transaction.atomic():
        booking = get_booking(booking_id, for_update=True)
        if booking.status not in NO_SHOW_ELIGIBLE_STATUSES:
            raise ValidationError(f"Booking is {booking.status}; only pending or confirmed bookings can be marked no-show.")
        if booking.check_in_time:
            raise ValidationError("Customer already checked in.")
        _mark_no_show(booking, override_staff=override_staff, user=user)

    logger.info(
        "Booking %s marked no-show (penalty=%s, waived_by=%s)",
        booking.short_id, booking.no_show_penalty_amount, booking.no_show_penalty_waived_by_id,
    )
    return booking


def detect_no_shows(now=None, grace_hours=None) -> NoShowSweepResult:
    """
    Sweep all no-show candidates. Each booking is handled in its own
    transaction; a failure is logged and counted and the sweep goes on.
    """
    now = now or timezone.now()
    result = NoShowSweepResult()
    candidate_ids = list(
        no_show_candidates(now, grace_hours).order_by('start_time').values_list('id', flat=True)
    )

    for booking_id in candidate_ids:
        result.processed += 1
        try:
            with transaction.atomic():
                fresh = (
                    no_show_candidates(now, grace_hours)
                    .select_for_update()
                    .filter(id=booking_id)
                    .first()
                )
                if not fresh:
                    # checked in or changed since the scan
                    continue
                _mark_no_show(fresh, actor="cron")
            result.detected += 1
            result.booking_ids.append(str(booking_id))
            logger.info("Booking %s marked as no_show (start=%s)", fresh.short_id, fresh.start_time.isoformat())
        except Exception:
            result.failed += 1
            logger.exception("No-show transition failed for booking %s", booking_id)

    logger.info(
        "No-show sweep: processed=%s detected=%s failed=%s",
        result.processed, result.detected, result.failed,
    )
    return result

