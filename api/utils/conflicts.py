"""
Conflict index.

Answers "is this staff member / resource free over [start, end)?" against the
non-cancelled bookings and booking blocks of a location. A snapshot is loaded
once per request and then queried many times by the availability and
assignment engines.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List

from django.db.models import Q

from api.models import BookingBlock, Resource
from bookings.models import Booking
from .intervals import BusyInterval, overlaps, peak_concurrency

logger = logging.getLogger(__name__)


class ConflictIndex:
    def __init__(self, location, window_start: datetime, window_end: datetime, exclude_booking_id=None):
        self.location = location
        self.window_start = window_start
        self.window_end = window_end
        self.exclude_booking_id = exclude_booking_id

        self.staff_busy: Dict[int, List[BusyInterval]] = defaultdict(list)
        self.resource_busy: Dict[int, List[BusyInterval]] = defaultdict(list)
        self.resource_blocks: Dict[int, List[BusyInterval]] = defaultdict(list)
        self.location_blocks: List[BusyInterval] = []
        self._load()

    def _load(self):
        bookings = (
            Booking.objects
            .filter(
                Q(location=self.location)
                | Q(staff__location=self.location)
                | Q(secondary_staff__location=self.location),
                status__in=Booking.ACTIVE_STATUSES,
                start_time__lt=self.window_end,
                end_time__gt=self.window_start,
            )
            .values_list('id', 'staff_id', 'secondary_staff_id', 'resource_id', 'start_time', 'end_time')
        )
        if self.exclude_booking_id is not None:
            bookings = bookings.exclude(id=self.exclude_booking_id)

        for booking_id, staff_id, secondary_id, resource_id, start, end in bookings:
            busy = BusyInterval(start, end, booking_id=booking_id)
            if staff_id:
                self.staff_busy[staff_id].append(busy)
            if secondary_id:
                self.staff_busy[secondary_id].append(busy)
            if resource_id:
                self.resource_busy[resource_id].append(busy)

        blocks = BookingBlock.objects.filter(
            location=self.location,
            start_time__lt=self.window_end,
            end_time__gt=self.window_start,
        ).values_list('resource_id', 'start_time', 'end_time')
        for resource_id, start, end in blocks:
            busy = BusyInterval(start, end, is_block=True)
            if resource_id:
                self.resource_blocks[resource_id].append(busy)
            else:
                self.location_blocks.append(busy)

    # ------------------------------------------------------------------
    # Staff dimension
    # ------------------------------------------------------------------
    def staff_conflicts(self, staff_id, start: datetime, end: datetime) -> List[BusyInterval]:
        return [b for b in self.staff_busy.get(staff_id, ()) if overlaps(b.start, b.end, start, end)]

    def is_staff_free(self, staff_id, start: datetime, end: datetime) -> bool:
        return not self.staff_conflicts(staff_id, start, end)

    def staff_booking_count(self, staff_id) -> int:
        return len(self.staff_busy.get(staff_id, ()))

    # ------------------------------------------------------------------
    # Resource dimension
    # ------------------------------------------------------------------
    def is_resource_blocked(self, resource_id, start: datetime, end: datetime) -> bool:
        for b in self.location_blocks:
            if overlaps(b.start, b.end, start, end):
                return True
        return any(overlaps(b.start, b.end, start, end) for b in self.resource_blocks.get(resource_id, ()))

    def resource_load(self, resource_id, start: datetime, end: datetime) -> int:
        """Peak number of concurrent bookings on the resource inside [start, end)."""
        return peak_concurrency(self.resource_busy.get(resource_id, ()), start, end)

    def free_capacity(self, resource: Resource, start: datetime, end: datetime) -> int:
        if self.is_resource_blocked(resource.id, start, end):
            return 0
        return max(resource.capacity - self.resource_load(resource.id, start, end), 0)

    def is_resource_free(self, resource: Resource, start: datetime, end: datetime) -> bool:
        return self.free_capacity(resource, start, end) > 0
