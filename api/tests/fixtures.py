"""
Shared builders for scheduling tests.

All dates are fixed in the future; DAY is a Monday.
"""
from datetime import date, datetime, time, timedelta, timezone as dt_tz
from decimal import Decimal

from django.db.models import Q

from api.models import (
    DAY_KEYS, Customer, Location, Resource, Service, Staff, StaffAvailability, StaffService,
)
from api.utils.intervals import overlaps
from bookings.models import Booking
from bookings.utils.short_id import generate_short_id

UTC = dt_tz.utc
DAY = date(2030, 1, 7)


def at(hour, minute=0, day=DAY):
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def hours(open_at="09:00", close_at="17:00", closed=()):
    return {
        day: {"open": open_at, "close": close_at, "is_closed": day in closed}
        for day in DAY_KEYS
    }


def make_location(name="Main", tz="UTC", open_at="09:00", close_at="17:00", closed=()):
    return Location.objects.create(name=name, timezone=tz, business_hours=hours(open_at, close_at, closed))


def make_service(name="Cut", duration=60, price="100.00", dual=False, premium_fee="0", premium=False):
    return Service.objects.create(
        name=name,
        duration_minutes=duration,
        base_price=Decimal(price),
        premium_fee=Decimal(premium_fee),
        premium_fee_enabled=premium,
        requires_dual_artist=dual,
    )


def make_staff(location, name, services=None, role="artist", shift=(time(9), time(17)), day=DAY):
    """services: {service: proficiency_level}. shift=None leaves the day unscheduled."""
    staff = Staff.objects.create(location=location, display_name=name, role=role)
    for service, level in (services or {}).items():
        StaffService.objects.create(staff=staff, service=service, proficiency_level=level)
    if shift:
        StaffAvailability.objects.create(staff=staff, date=day, start_time=shift[0], end_time=shift[1])
    return staff


def make_resource(location, name="Chair 1", type="station", capacity=1):
    return Resource.objects.create(location=location, name=name, type=type, capacity=capacity)


def make_customer(email="client@example.com"):
    return Customer.objects.get_or_create(email=email, defaults={"first_name": "Client"})[0]


def make_booking(location, service, start, staff=None, resource=None, status="confirmed",
                 secondary_staff=None, customer=None, end=None, **extra):
    return Booking.objects.create(
        short_id=generate_short_id(),
        customer=customer or make_customer(),
        location=location,
        service=service,
        staff=staff,
        secondary_staff=secondary_staff,
        resource=resource,
        start_time=start,
        end_time=end or start + timedelta(minutes=service.duration_minutes),
        status=status,
        **extra
    )


def find_staff_overlaps(staff_id):
    """Pairs of overlapping non-cancelled bookings held by one staff member (primary or secondary)."""
    rows = list(
        Booking.objects.filter(
            Q(staff_id=staff_id) | Q(secondary_staff_id=staff_id),
            status__in=Booking.ACTIVE_STATUSES,
        ).order_by('start_time').values_list('id', 'start_time', 'end_time')
    )
    pairs = []
    for i, (a_id, a_start, a_end) in enumerate(rows):
        for b_id, b_start, b_end in rows[i + 1:]:
            if overlaps(a_start, a_end, b_start, b_end):
                pairs.append((a_id, b_id))
    return pairs
