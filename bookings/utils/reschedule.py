# bookings/utils/reschedule.py
"""
Reschedule coordinator.

    validate -> check conflicts (booking itself excluded) -> reject | apply

Check and apply run under the schedule locks of both the old and the new
local dates; staff, resource and times are written in one UPDATE.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List

from django.utils import timezone

from api.exceptions import ConflictError, NotFoundError, ValidationError
from api.models import Resource, Staff
from api.utils.conflicts import ConflictIndex
from api.utils.locks import local_date, schedule_lock
from .audit import record_audit
from .booking_flow import get_booking

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
RESCHEDULE_FIELDS = ('start_time', 'end_time', 'staff_id', 'secondary_staff_id', 'resource_id')


@dataclass
class RescheduleConflict:
    dimension: str
    entity_id: int
    booking_ids: List[str]

    def as_dict(self):
        return {"dimension": self.dimension, "entity_id": self.entity_id, "booking_ids": self.booking_ids}


class RescheduleConflictError(ConflictError):
    def __init__(self, conflicts, detail=None):
        self.conflicts = conflicts
        dims = ", ".join(sorted({c.dimension for c in conflicts}))
        super().__init__(detail or f"Requested time conflicts with existing bookings ({dims}).")


def _resolve_staff(staff_id, location):
    try:
        staff = Staff.objects.get(id=staff_id)
    except (Staff.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Staff member not found.")
    if not staff.is_bookable or staff.location_id != location.id:
        raise ValidationError("Staff member cannot be booked at this location.")
    return staff


def _resolve_resource(resource_id, location, service):
    try:
        resource = Resource.objects.get(id=resource_id)
    except (Resource.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Resource not found.")
    if not resource.is_active or resource.location_id != location.id:
        raise ValidationError("Resource is not available at this location.")
    if service.requires_dual_artist and resource.type != 'room':
        raise ValidationError("Dual-artist services must be held in a room.")
    return resource


def find_conflicts(index, start, end, staff, secondary_staff, resource) -> List[RescheduleConflict]:
    conflicts = []
    for dimension, member in (("staff", staff), ("secondary_staff", secondary_staff)):
        if member is None:
            continue
        hits = index.staff_conflicts(member.id, start, end)
        if hits:
            conflicts.append(RescheduleConflict(dimension, member.id, [str(h.booking_id) for h in hits]))
    if resource is not None and not index.is_resource_free(resource, start, end):
        hits = [b for b in index.resource_busy.get(resource.id, ()) if b.start < end and start < b.end]
        conflicts.append(RescheduleConflict("resource", resource.id, [str(h.booking_id) for h in hits]))
    return conflicts


def _booking_dates(location, booking, new_start_time, new_end_time):
    return {
        local_date(location, booking.start_time), local_date(location, booking.end_time),
        local_date(location, new_start_time), local_date(location, new_end_time),
    }


def reschedule_booking(booking_id, new_start_time, staff_id=None, resource_id=None, user=None):
    """
    Move a booking to new_start_time (end recomputed from the service duration),
    optionally onto another staff member and/or resource.
    Raises RescheduleConflictError (a ConflictError) when any dimension is taken.
    """
    # --- validate -------------------------------------------------------
    if new_start_time is None or timezone.is_naive(new_start_time):
        raise ValidationError("new_start_time must be a timezone-aware datetime.")

    booking = get_booking(booking_id)
    if booking.is_terminal:
        raise ValidationError(f"Booking is {booking.status} and cannot be rescheduled.")

    location = booking.location
    duration = booking.service.duration_minutes or DEFAULT_DURATION_MINUTES
    if duration <= 0:
        raise ValidationError("Service duration must be positive.")
    new_end_time = new_start_time + timedelta(minutes=duration)

    new_staff = None if staff_id is None else _resolve_staff(staff_id, location)
    new_resource = None if resource_id is None else _resolve_resource(resource_id, location, booking.service)
    dates = _booking_dates(location, booking, new_start_time, new_end_time)

    with schedule_lock(location, *dates):
        # Everything below works on the locked row, not the read above.
        booking = get_booking(booking_id, for_update=True)
        if booking.is_terminal:
            raise ValidationError(f"Booking is {booking.status} and cannot be rescheduled.")
        if not _booking_dates(location, booking, new_start_time, new_end_time) <= dates:
            raise ConflictError("Booking was changed by another request; reload and try again.")

        staff = new_staff or booking.staff
        resource = new_resource or booking.resource
        secondary = booking.secondary_staff
        if staff is not None and secondary is not None and staff.id == secondary.id:
            raise ValidationError("Primary and secondary artist must be different people.")

        # --- check conflicts (old interval cleared) ---------------------
        index = ConflictIndex(location, new_start_time, new_end_time, exclude_booking_id=booking.id)
        conflicts = find_conflicts(index, new_start_time, new_end_time, staff, secondary, resource)
        if conflicts:
            logger.info(
                "Reschedule of %s to %s rejected: %s",
                booking.short_id, new_start_time, [c.as_dict() for c in conflicts],
            )
            raise RescheduleConflictError(conflicts)

        # --- apply ------------------------------------------------------
        old = {f: getattr(booking, f) for f in RESCHEDULE_FIELDS}
        booking.start_time = new_start_time
        booking.end_time = new_end_time
        booking.staff = staff
        booking.resource = resource
        booking.save(update_fields=['start_time', 'end_time', 'staff', 'resource', 'updated_at'])
        new = {f: getattr(booking, f) for f in RESCHEDULE_FIELDS}
        record_audit('booking', booking.id, 'reschedule', old, new, user=user)

    logger.info("Booking %s rescheduled %s -> %s", booking.short_id, old['start_time'], new_start_time)
    return booking
