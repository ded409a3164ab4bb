"""
Assignment engine: picks staff (or an artist pair) and a resource for a window.

Staff ranking: proficiency for the service descending, then fewer bookings
that local day, then lowest id. Resource ranking: station > room > equipment,
then lowest id. Dual-artist services take two distinct artists plus a room,
all three conflict-free, or nothing at all.

Failures come back as an AssignmentResult with success=False; callers decide
whether to raise, retry with other exclusions, or show suggestions.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, NamedTuple, Optional, Sequence

from api.models import Location, Resource, Service, Staff
from .availability import (
    StaffCandidate, build_day_index, free_resources_for_window, free_staff_for_window,
)
from .conflicts import ConflictIndex

logger = logging.getLogger(__name__)

# Result codes, matching the API error codes
SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
NO_AVAILABILITY = "NO_AVAILABILITY"


class StaffSuggestion(NamedTuple):
    staff: Staff
    proficiency_level: int
    bookings_today: int

    def as_dict(self):
        return {
            "staff_id": self.staff.id,
            "display_name": self.staff.display_name,
            "role": self.staff.role,
            "proficiency_level": self.proficiency_level,
            "bookings_today": self.bookings_today,
        }


@dataclass
class AssignmentResult:
    success: bool
    staff: Optional[Staff] = None
    secondary_staff: Optional[Staff] = None
    resource: Optional[Resource] = None
    code: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, code: str, error: str) -> "AssignmentResult":
        return cls(success=False, code=code, error=error)

    def as_dict(self):
        return {
            "success": self.success,
            "staff_id": self.staff.id if self.staff else None,
            "secondary_staff_id": self.secondary_staff.id if self.secondary_staff else None,
            "resource_id": self.resource.id if self.resource else None,
            "code": self.code,
            "error": self.error,
        }


# ==========================================
# Ranking
# ==========================================

def rank_candidates(candidates: Sequence[StaffCandidate], index: ConflictIndex) -> List[StaffSuggestion]:
    ranked = [
        StaffSuggestion(c.staff, c.proficiency_level, index.staff_booking_count(c.staff.id))
        for c in candidates
    ]
    ranked.sort(key=lambda s: (-s.proficiency_level, s.bookings_today, s.staff.id))
    return ranked


def get_staff_assignment_suggestions(
    location: Location,
    service: Service,
    start: datetime,
    end: datetime,
    exclude_staff_ids: Sequence = (),
    index: Optional[ConflictIndex] = None,
) -> List[StaffSuggestion]:
    """Free, qualified, scheduled staff for the window, best first."""
    index = index or build_day_index(location, start, end)
    _, free = free_staff_for_window(location, service, start, end, exclude_staff_ids, index=index)
    return rank_candidates(free, index)


def check_staff_availability(location, start, end, service=None, exclude_staff_ids=()):
    # Without a service every bookable staff member of the location qualifies.
    index = build_day_index(location, start, end)
    _, free = free_staff_for_window(location, service, start, end, exclude_staff_ids, index=index)
    return rank_candidates(free, index)


def get_available_resources_with_priority(
    location: Location,
    start: datetime,
    end: datetime,
    types: Optional[Sequence[str]] = None,
    index: Optional[ConflictIndex] = None,
) -> List[Resource]:
    return free_resources_for_window(location, start, end, types=types, index=index)


# ==========================================
# Assignment
# ==========================================

def _staff_failure(scheduled, what="staff member"):
    # Someone could have done it but is busy -> the slot is taken.
    # Nobody is qualified and on shift -> there is no availability at all.
    if scheduled:
        return AssignmentResult.failure(SLOT_UNAVAILABLE, f"No qualified {what} is free at the requested time.")
    return AssignmentResult.failure(NO_AVAILABILITY, f"No qualified {what} is scheduled at the requested time.")


def _resource_failure(location, types, what):
    exists = Resource.objects.filter(location=location, is_active=True)
    if types:
        exists = exists.filter(type__in=list(types))
    if exists.exists():
        return AssignmentResult.failure(SLOT_UNAVAILABLE, f"No {what} is free at the requested time.")
    return AssignmentResult.failure(NO_AVAILABILITY, f"Location has no active {what}.")


def assign_staff_and_resource(
    location: Location,
    service: Service,
    start: datetime,
    end: datetime,
    exclude_staff_ids: Sequence = (),
    preferred_staff: Optional[Staff] = None,
    preferred_resource: Optional[Resource] = None,
    index: Optional[ConflictIndex] = None,
) -> AssignmentResult:
    """Single-artist assignment (delegates to assign_dual_artists when the service needs two)."""
    if service.requires_dual_artist:
        return assign_dual_artists(
            location, service, start, end,
            exclude_staff_ids=exclude_staff_ids,
            preferred_staff=preferred_staff,
            index=index,
        )

    index = index or build_day_index(location, start, end)
    scheduled, free = free_staff_for_window(location, service, start, end, exclude_staff_ids, index=index)

    if preferred_staff is not None:
        free = [c for c in free if c.staff.id == preferred_staff.id]
        scheduled = [c for c in scheduled if c.staff.id == preferred_staff.id]
        if not free:
            return _staff_failure(scheduled, what=f"staff member ({preferred_staff.display_name})")

    ranked = rank_candidates(free, index)
    if not ranked:
        return _staff_failure(scheduled)

    if preferred_resource is not None:
        if not index.is_resource_free(preferred_resource, start, end):
            return AssignmentResult.failure(SLOT_UNAVAILABLE, f"Resource {preferred_resource.name} is not free at the requested time.")
        resource = preferred_resource
    else:
        resources = get_available_resources_with_priority(location, start, end, index=index)
        if not resources:
            return _resource_failure(location, None, "resource")
        resource = resources[0]

    chosen = ranked[0]
    logger.info(
        "Assigned staff=%s (L%s, %s today) resource=%s for service=%s %s-%s",
        chosen.staff.id, chosen.proficiency_level, chosen.bookings_today, resource.id, service.id, start, end,
    )
    return AssignmentResult(success=True, staff=chosen.staff, resource=resource)


def assign_dual_artists(
    location: Location,
    service: Service,
    start: datetime,
    end: datetime,
    exclude_staff_ids: Sequence = (),
    preferred_staff: Optional[Staff] = None,
    index: Optional[ConflictIndex] = None,
) -> AssignmentResult:
    """
    Two distinct artists plus one room, all free over [start, end).
    Either the full triple is returned or a failure with nothing assigned.
    """
    index = index or build_day_index(location, start, end)
    scheduled, free = free_staff_for_window(location, service, start, end, exclude_staff_ids, index=index)
    ranked = rank_candidates(free, index)

    if preferred_staff is not None:
        primary = next((s for s in ranked if s.staff.id == preferred_staff.id), None)
        if primary is None:
            return _staff_failure(
                [c for c in scheduled if c.staff.id == preferred_staff.id],
                what=f"staff member ({preferred_staff.display_name})",
            )
        ranked = [primary] + [s for s in ranked if s.staff.id != preferred_staff.id]

    if len(ranked) < 2:
        return _staff_failure(scheduled if len(scheduled) >= 2 else [], what="artist pair")

    rooms = get_available_resources_with_priority(location, start, end, types=['room'], index=index)
    if not rooms:
        return _resource_failure(location, ['room'], "room")

    primary, secondary, room = ranked[0].staff, ranked[1].staff, rooms[0]

    # Re-verify the whole triple against the index before handing it out
    if not (
        primary.id != secondary.id
        and index.is_staff_free(primary.id, start, end)
        and index.is_staff_free(secondary.id, start, end)
        and index.is_resource_free(room, start, end)
    ):
        return AssignmentResult.failure(SLOT_UNAVAILABLE, "Dual-artist assignment could not be completed.")

    logger.info(
        "Assigned dual artists %s + %s in room %s for service=%s %s-%s",
        primary.id, secondary.id, room.id, service.id, start, end,
    )
    return AssignmentResult(success=True, staff=primary, secondary_staff=secondary, resource=room)
