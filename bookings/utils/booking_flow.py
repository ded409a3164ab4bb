# bookings/utils/booking_flow.py
"""
Booking creation (online, kiosk, walk-in), status changes and auto-assignment.

Every write that depends on a conflict check runs inside schedule_lock(), so
the check and the insert/update commit together or not at all.
"""
import logging
from datetime import timedelta

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from api.exceptions import (
    AssignmentExhaustedError, ConflictError, NotFoundError, ValidationError,
)
from api.models import Customer
from api.utils.assignment import SLOT_UNAVAILABLE, assign_staff_and_resource
from api.utils.availability import build_day_index
from api.utils.business_hours import is_open_for
from api.utils.locks import local_date, schedule_lock
from bookings.models import Booking
from .audit import booking_snapshot, record_audit
from .pricing import calculate_deposit, calculate_service_total
from .short_id import generate_short_id

logger = logging.getLogger(__name__)

WALK_IN_TAG = "[Walk-in]"


def get_booking(booking_id, for_update=False):
    qs = Booking.objects.select_related('location', 'service', 'staff', 'secondary_staff', 'resource', 'customer')
    if for_update:
        qs = qs.select_for_update(of=('self',))
    try:
        return qs.get(id=booking_id)
    except (Booking.DoesNotExist, DjangoValidationError, ValueError, TypeError):
        raise NotFoundError("Booking not found.")


def upsert_customer(email, first_name="", last_name="", phone=""):
    """Find the customer by email, creating it (or filling in blanks) as needed."""
    if not email:
        raise ValidationError("Customer email is required.")
    email = email.strip().lower()

    customer, created = Customer.objects.get_or_create(
        email=email,
        defaults={
            "first_name": first_name or email.split("@")[0],
            "last_name": last_name or "",
            "phone": phone or "",
        },
    )
    if not created:
        changed = []
        for field, value in (("first_name", first_name), ("last_name", last_name), ("phone", phone)):
            if value and getattr(customer, field) != value:
                setattr(customer, field, value)
                changed.append(field)
        if changed:
            customer.save(update_fields=changed + ["updated_at"])
    return customer


def raise_for_assignment(result):
    if result.success:
        return
    if result.code == SLOT_UNAVAILABLE:
        raise ConflictError(result.error)
    raise AssignmentExhaustedError(result.error)


def _validate_request(location, service, staff=None, resource=None):
    if not location.is_active:
        raise ValidationError("Location is not active.")
    if not service.is_active:
        raise ValidationError("Service is not active.")
    if staff is not None:
        if staff.location_id != location.id or not staff.is_bookable:
            raise ValidationError("Staff member cannot be booked at this location.")
        if not staff.qualifications.filter(service=service, is_active=True).exists():
            raise ValidationError("Staff member is not qualified for this service.")
    if resource is not None and (resource.location_id != location.id or not resource.is_active):
        raise ValidationError("Resource is not available at this location.")


def create_booking(
    *,
    location,
    service,
    start_time,
    customer,
    staff=None,
    resource=None,
    exclude_staff_ids=(),
    source="online",
    status="pending",
    deposit_amount=None,
    notes="",
    user=None,
):
    """
    Assign staff/resource and insert the booking as one locked unit.

    Raises ConflictError when the slot is taken, AssignmentExhaustedError when
    nobody/nothing eligible exists, ValidationError for bad input.
    """
    _validate_request(location, service, staff, resource)
    if timezone.is_naive(start_time):
        raise ValidationError("start_time must include a timezone.")

    end_time = start_time + timedelta(minutes=service.duration_minutes)
    if not is_open_for(location, start_time, end_time):
        raise ConflictError("Location is closed at the requested time.")

    total = calculate_service_total(service)
    deposit = calculate_deposit(service) if deposit_amount is None else deposit_amount

    with schedule_lock(location, local_date(location, start_time), local_date(location, end_time)):
        result = assign_staff_and_resource(
            location, service, start_time, end_time,
            exclude_staff_ids=exclude_staff_ids,
            preferred_staff=staff,
            preferred_resource=resource,
        )
        raise_for_assignment(result)

        booking = Booking.objects.create(
            short_id=generate_short_id(),
            customer=customer,
            location=location,
            service=service,
            staff=result.staff,
            secondary_staff=result.secondary_staff,
            resource=result.resource,
            start_time=start_time,
            end_time=end_time,
            status=status,
            source=source,
            total_amount=total,
            deposit_amount=deposit,
            notes=notes or "",
        )
        record_audit('booking', booking.id, 'create', None, booking_snapshot(booking), user=user)

    logger.info(
        "Booking %s created (%s) staff=%s secondary=%s resource=%s %s-%s",
        booking.short_id, source, booking.staff_id, booking.secondary_staff_id,
        booking.resource_id, start_time, end_time,
    )
    return booking


def create_walk_in_booking(*, location, service, customer, staff=None, notes="", user=None, now=None):
    """Walk-in starting now: confirmed immediately, no deposit, notes tagged."""
    start = (now or timezone.now()).replace(second=0, microsecond=0)
    tagged = f"{WALK_IN_TAG} {notes}".strip()
    return create_booking(
        location=location,
        service=service,
        start_time=start,
        customer=customer,
        staff=staff,
        source="walk_in",
        status="confirmed",
        deposit_amount=0,
        notes=tagged,
        user=user,
    )


def update_booking_status(booking_id, new_status, user=None):
    """Lifecycle-checked status change. Terminal bookings never change."""
    if new_status not in dict(Booking.STATUS_CHOICES):
        raise ValidationError(f"Unknown status '{new_status}'.")

    if new_status == "no_show":
        from .no_show import apply_no_show_penalty
        return apply_no_show_penalty(booking_id, user=user)

    with transaction.atomic():
        booking = get_booking(booking_id, for_update=True)
        if booking.is_terminal:
            raise ValidationError(f"Booking is already {booking.status} and cannot change.")
        if not booking.can_transition_to(new_status):
            raise ValidationError(f"Cannot move booking from {booking.status} to {new_status}.")

        old = booking_snapshot(booking, ('status',))
        booking.status = new_status
        booking.save(update_fields=['status', 'updated_at'])
        record_audit('booking', booking.id, 'update', old, booking_snapshot(booking, ('status',)), user=user)

    logger.info("Booking %s status %s -> %s", booking.short_id, old['status'], new_status)
    return booking


def auto_assign_staff_to_booking(booking_id, exclude_staff_ids=(), user=None):
    """Fill in staff (and resource, if missing) on a booking that has no staff yet."""
    booking = get_booking(booking_id)
    if booking.is_terminal:
        raise ValidationError(f"Booking is already {booking.status}.")
    if booking.staff_id:
        raise ValidationError("Booking already has staff assigned.")

    location = booking.location
    with schedule_lock(location, local_date(location, booking.start_time), local_date(location, booking.end_time)):
        booking = get_booking(booking_id, for_update=True)
        if booking.staff_id:
            raise ConflictError("Booking was assigned by another request.")

        index = build_day_index(location, booking.start_time, booking.end_time, exclude_booking_id=booking.id)
        result = assign_staff_and_resource(
            location, booking.service, booking.start_time, booking.end_time,
            exclude_staff_ids=exclude_staff_ids,
            preferred_resource=booking.resource,
            index=index,
        )
        raise_for_assignment(result)

        old = booking_snapshot(booking)
        booking.staff = result.staff
        booking.secondary_staff = result.secondary_staff
        booking.resource = result.resource
        booking.save(update_fields=['staff', 'secondary_staff', 'resource', 'updated_at'])
        record_audit('booking', booking.id, 'assign', old, booking_snapshot(booking), user=user)

    logger.info("Booking %s auto-assigned staff=%s resource=%s", booking.short_id, booking.staff_id, booking.resource_id)
    return booking, result
