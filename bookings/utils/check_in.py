import logging

from django.db import transaction
from django.utils import timezone

from api.exceptions import NotFoundError, ValidationError
from api.models import Staff
from .audit import booking_snapshot, record_audit
from .booking_flow import get_booking

logger = logging.getLogger(__name__)


def record_booking_checkin(booking_id, staff_id, user=None, now=None):
    """
    Record the customer's arrival. Only pending/confirmed bookings that have not
    been checked in yet qualify; a pending booking becomes confirmed.
    """
    try:
        staff = Staff.objects.get(id=staff_id, is_active=True)
    except (Staff.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Staff member not found.")

    with transaction.atomic():
        booking = get_booking(booking_id, for_update=True)
        if booking.check_in_time:
            raise ValidationError("Booking is already checked in.")
        if booking.status not in ('pending', 'confirmed'):
            raise ValidationError(f"Cannot check in a {booking.status} booking.")
        if staff.location_id != booking.location_id:
            raise ValidationError("Staff member does not belong to the booking's location.")

        old = booking_snapshot(booking)
        booking.check_in_time = now or timezone.now()
        booking.check_in_staff = staff
        if booking.status == 'pending':
            booking.status = 'confirmed'
        booking.save(update_fields=['check_in_time', 'check_in_staff', 'status', 'updated_at'])
        record_audit('booking', booking.id, 'check_in', old, booking_snapshot(booking), user=user)

    logger.info("Booking %s checked in by staff %s", booking.short_id, staff.id)
    return booking
