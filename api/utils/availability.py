import logging
from datetime import datetime, timedelta, date
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from django.conf import settings

from api.models import Location, Resource, Service, Staff, StaffAvailability
from .business_hours import day_window_minutes
from .conflicts import ConflictIndex
from .intervals import Interval, overlaps
from .timezone_helpers import (
    get_valid_iana_timezone, safe_localize, safe_localize_minutes,
    local_day_bounds_utc, location_tz, UTC,
)

logger = logging.getLogger(__name__)

# ==========================================
# 1. Primitives
# ==========================================

class StaffCandidate(NamedTuple):
    staff: Staff
    proficiency_level: int


class StaffSchedule(NamedTuple):
    """Declared windows of one staff member on one local date."""
    available: List[Interval]
    unavailable: List[Interval]

    def covers(self, start: datetime, end: datetime) -> bool:
        if not any(w.start <= start and end <= w.end for w in self.available):
            return False
        return not any(overlaps(u.start, u.end, start, end) for u in self.unavailable)


class Slot(NamedTuple):
    start: datetime
    end: datetime
    available_staff: int
    available_resources: int
    is_available: bool
    staff_ids: Tuple[int, ...] = ()
    resource_ids: Tuple[int, ...] = ()


EMPTY_SCHEDULE = StaffSchedule([], [])


# ==========================================
# 2. Staff & resource pools
# ==========================================

def qualified_staff(location: Location, service: Optional[Service], exclude_staff_ids: Sequence = ()) -> List[StaffCandidate]:
    """
    Active, bookable staff of the location. With a service, only staff holding an
    active qualification for it, carrying their proficiency level.
    """
    qs = Staff.objects.filter(location=location, is_active=True, role__in=Staff.BOOKABLE_ROLES)
    if exclude_staff_ids:
        qs = qs.exclude(id__in=list(exclude_staff_ids))

    if service is None:
        return [StaffCandidate(s, 0) for s in qs.order_by('id')]

    levels = dict(
        service.qualifications
        .filter(is_active=True, staff__in=qs)
        .values_list('staff_id', 'proficiency_level')
    )
    return [StaffCandidate(s, levels[s.id]) for s in qs.filter(id__in=list(levels)).order_by('id')]


def active_resources(location: Location, types: Optional[Sequence[str]] = None) -> List[Resource]:
    """Active resources sorted by assignment priority: station > room > equipment, then id."""
    qs = Resource.objects.filter(location=location, is_active=True)
    if types:
        qs = qs.filter(type__in=list(types))
    return sorted(qs, key=lambda r: (r.priority, r.id))


# ==========================================
# 3. Declared staff windows
# ==========================================

def load_staff_schedules(staff_ids: Sequence[int], date_obj: date, tz_id: str) -> Dict[int, StaffSchedule]:
    """
    Staff windows for a local date, localized DST-safely.
    Windows whose wall times fall into a DST gap are skipped.
    """
    schedules: Dict[int, StaffSchedule] = {}
    records = StaffAvailability.objects.filter(staff_id__in=list(staff_ids), date=date_obj)
    for rec in records:
        start = safe_localize(date_obj, rec.start_time, tz_id)
        end = safe_localize(date_obj, rec.end_time, tz_id)
        if start is None or end is None:
            logger.warning("Skipping availability %s on %s - time doesn't exist (DST gap)", rec.pk, date_obj)
            continue
        if start >= end:
            continue
        schedule = schedules.setdefault(rec.staff_id, StaffSchedule([], []))
        if rec.is_available:
            schedule.available.append(Interval(start, end))
        else:
            schedule.unavailable.append(Interval(start, end))
    return schedules


def is_staff_scheduled(staff: Staff, start: datetime, end: datetime) -> bool:
    """True when the staff member declared availability covering [start, end) with no unavailability inside."""
    tz_id = get_valid_iana_timezone(staff.location.timezone)
    local_date = start.astimezone(location_tz(staff.location)).date()
    schedule = load_staff_schedules([staff.id], local_date, tz_id).get(staff.id, EMPTY_SCHEDULE)
    return schedule.covers(start, end)


# ==========================================
# 4. Point-in-time checks (single window)
# ==========================================

def build_day_index(location: Location, start: datetime, end: datetime, exclude_booking_id=None) -> ConflictIndex:
    """Conflict index covering the local day of `start` (and the whole window)."""
    tz_id = get_valid_iana_timezone(location.timezone)
    local_date = start.astimezone(location_tz(location)).date()
    day_start, day_end = local_day_bounds_utc(local_date, tz_id)
    return ConflictIndex(location, min(day_start, start), max(day_end, end), exclude_booking_id=exclude_booking_id)


def free_staff_for_window(
    location: Location,
    service: Optional[Service],
    start: datetime,
    end: datetime,
    exclude_staff_ids: Sequence = (),
    index: Optional[ConflictIndex] = None,
) -> Tuple[List[StaffCandidate], List[StaffCandidate]]:
    """
    Returns (scheduled, free): qualified staff whose declared windows cover the
    range, and the subset of those with no conflicting booking.
    """
    index = index or build_day_index(location, start, end)
    tz_id = get_valid_iana_timezone(location.timezone)
    local_date = start.astimezone(location_tz(location)).date()

    candidates = qualified_staff(location, service, exclude_staff_ids)
    schedules = load_staff_schedules([c.staff.id for c in candidates], local_date, tz_id)

    scheduled = [c for c in candidates if schedules.get(c.staff.id, EMPTY_SCHEDULE).covers(start, end)]
    free = [c for c in scheduled if index.is_staff_free(c.staff.id, start, end)]
    return scheduled, free


def free_resources_for_window(
    location: Location,
    start: datetime,
    end: datetime,
    types: Optional[Sequence[str]] = None,
    index: Optional[ConflictIndex] = None,
) -> List[Resource]:
    """Resources with spare capacity over [start, end), in priority order."""
    index = index or build_day_index(location, start, end)
    return [r for r in active_resources(location, types) if index.is_resource_free(r, start, end)]


# ==========================================
# 5. Slot grid
# ==========================================

class DetailedAvailability:
    """
    Slot grid of one location for one local date.

    Iterating yields Slot tuples lazily; every new iteration reloads bookings,
    blocks and staff windows, so the object can be iterated again for a fresh pass.
    """

    def __init__(
        self,
        location: Location,
        date_obj: date,
        service: Optional[Service] = None,
        slot_minutes: Optional[int] = None,
        not_before: Optional[datetime] = None,
    ):
        self.location = location
        self.date = date_obj
        self.service = service
        self.slot_minutes = int(slot_minutes or settings.AVAILABILITY_SLOT_MINUTES)
        if self.slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        self.duration_minutes = service.duration_minutes if service else self.slot_minutes
        self.not_before = not_before

    @property
    def needs_dual_artist(self) -> bool:
        return bool(self.service and self.service.requires_dual_artist)

    def __iter__(self) -> Iterator[Slot]:
        return self._iter_slots()

    def available_slots(self) -> List[Slot]:
        return [s for s in self if s.is_available]

    def _iter_slots(self) -> Iterator[Slot]:
        minutes = day_window_minutes(self.location, self.date)
        if minutes is None:
            return
        open_mins, close_mins = minutes
        tz_id = get_valid_iana_timezone(self.location.timezone)
        window_end = safe_localize_minutes(self.date, close_mins, tz_id)
        if window_end is None:
            logger.warning("Closing time of location %s on %s falls in a DST gap", self.location.pk, self.date)
            return

        day_start, day_end = local_day_bounds_utc(self.date, tz_id)
        index = ConflictIndex(self.location, day_start, max(day_end, window_end))

        candidates = qualified_staff(self.location, self.service)
        schedules = load_staff_schedules([c.staff.id for c in candidates], self.date, tz_id)
        resource_types = ['room'] if self.needs_dual_artist else None
        resources = active_resources(self.location, resource_types)
        duration = timedelta(minutes=self.duration_minutes)

        current_mins = open_mins
        while current_mins < close_mins:
            start_local = safe_localize_minutes(self.date, current_mins, tz_id)
            current_mins += self.slot_minutes
            if start_local is None:
                # Wall time doesn't exist (spring-forward gap)
                continue

            start = start_local.astimezone(UTC)
            end = start + duration
            if end > window_end:
                break
            if self.not_before is not None and start < self.not_before:
                continue

            staff_ids = tuple(
                c.staff.id for c in candidates
                if schedules.get(c.staff.id, EMPTY_SCHEDULE).covers(start, end)
                and index.is_staff_free(c.staff.id, start, end)
            )
            resource_ids = tuple(r.id for r in resources if index.is_resource_free(r, start, end))

            needed_staff = 2 if self.needs_dual_artist else 1
            yield Slot(
                start=start,
                end=end,
                available_staff=len(staff_ids),
                available_resources=len(resource_ids),
                is_available=len(staff_ids) >= needed_staff and len(resource_ids) >= 1,
                staff_ids=staff_ids,
                resource_ids=resource_ids,
            )


def get_detailed_availability(location, date_obj, service=None, slot_minutes=None, not_before=None) -> DetailedAvailability:
    return DetailedAvailability(location, date_obj, service=service, slot_minutes=slot_minutes, not_before=not_before)
