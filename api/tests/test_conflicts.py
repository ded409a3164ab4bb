from django.test import TestCase

from api.models import BookingBlock
from api.tests.fixtures import (
    at, make_booking, make_location, make_resource, make_service, make_staff,
)
from api.utils.conflicts import ConflictIndex


class ConflictIndexTests(TestCase):
    def setUp(self):
        self.location = make_location()
        self.service = make_service()
        self.staff = make_staff(self.location, "Ana", {self.service: 3})
        self.other = make_staff(self.location, "Bea", {self.service: 3})
        self.chair = make_resource(self.location, "Chair 1")
        self.booking = make_booking(self.location, self.service, at(10), staff=self.staff, resource=self.chair)

    def index(self, **kwargs):
        return ConflictIndex(self.location, at(0), at(23), **kwargs)

    def test_touching_boundary_is_not_a_conflict(self):
        index = self.index()
        self.assertTrue(index.is_staff_free(self.staff.id, at(11), at(12)))
        self.assertTrue(index.is_staff_free(self.staff.id, at(9), at(10)))

    def test_overlap_is_a_conflict(self):
        index = self.index()
        conflicts = index.staff_conflicts(self.staff.id, at(10, 30), at(11, 30))
        self.assertEqual([c.booking_id for c in conflicts], [self.booking.id])
        self.assertTrue(index.is_staff_free(self.other.id, at(10, 30), at(11, 30)))

    def test_cancelled_bookings_are_ignored(self):
        self.booking.status = "cancelled"
        self.booking.save()
        self.assertTrue(self.index().is_staff_free(self.staff.id, at(10), at(11)))

    def test_no_show_and_completed_bookings_still_occupy(self):
        for status in ("no_show", "completed", "pending"):
            self.booking.status = status
            self.booking.save()
            self.assertFalse(self.index().is_staff_free(self.staff.id, at(10), at(11)), status)

    def test_excluded_booking_is_cleared(self):
        index = self.index(exclude_booking_id=self.booking.id)
        self.assertTrue(index.is_staff_free(self.staff.id, at(10), at(11)))
        self.assertTrue(index.is_resource_free(self.chair, at(10), at(11)))

    def test_secondary_staff_is_busy_too(self):
        make_booking(self.location, self.service, at(13), staff=self.staff, secondary_staff=self.other)
        self.assertFalse(self.index().is_staff_free(self.other.id, at(13, 30), at(14, 30)))

    def test_bookings_of_staff_at_another_location_are_seen(self):
        elsewhere = make_location(name="Second")
        make_booking(elsewhere, self.service, at(15), staff=self.other)
        self.assertFalse(self.index().is_staff_free(self.other.id, at(15), at(16)))

    def test_staff_booking_count(self):
        make_booking(self.location, self.service, at(14), staff=self.staff)
        self.assertEqual(self.index().staff_booking_count(self.staff.id), 2)
        self.assertEqual(self.index().staff_booking_count(self.other.id), 0)


class ResourceCapacityTests(TestCase):
    def setUp(self):
        self.location = make_location()
        self.service = make_service()

    def test_capacity_one_rejects_overlap_but_allows_back_to_back(self):
        chair = make_resource(self.location, capacity=1)
        make_booking(self.location, self.service, at(10), resource=chair)
        index = ConflictIndex(self.location, at(0), at(23))
        self.assertFalse(index.is_resource_free(chair, at(10, 30), at(11, 30)))
        self.assertTrue(index.is_resource_free(chair, at(11), at(12)))

    def test_capacity_two_allows_two_concurrent_bookings(self):
        room = make_resource(self.location, "Room", type="room", capacity=2)
        make_booking(self.location, self.service, at(10), resource=room)
        index = ConflictIndex(self.location, at(0), at(23))
        self.assertEqual(index.free_capacity(room, at(10), at(11)), 1)

        make_booking(self.location, self.service, at(10, 30), resource=room)
        index = ConflictIndex(self.location, at(0), at(23))
        self.assertEqual(index.resource_load(room.id, at(10), at(12)), 2)
        self.assertFalse(index.is_resource_free(room, at(10, 45), at(11, 15)))
        # only one booking active from 11:00 onwards
        self.assertTrue(index.is_resource_free(room, at(11), at(12)))

    def test_resource_block_takes_whole_capacity(self):
        room = make_resource(self.location, "Room", type="room", capacity=3)
        BookingBlock.objects.create(location=self.location, resource=room, start_time=at(12), end_time=at(13))
        index = ConflictIndex(self.location, at(0), at(23))
        self.assertFalse(index.is_resource_free(room, at(12, 30), at(13, 30)))
        self.assertTrue(index.is_resource_free(room, at(13), at(14)))

    def test_location_block_blocks_every_resource(self):
        a = make_resource(self.location, "Chair A")
        b = make_resource(self.location, "Chair B")
        BookingBlock.objects.create(location=self.location, start_time=at(9), end_time=at(10), reason="Staff meeting")
        index = ConflictIndex(self.location, at(0), at(23))
        self.assertTrue(index.is_resource_blocked(a.id, at(9, 30), at(10, 30)))
        self.assertTrue(index.is_resource_blocked(b.id, at(9, 30), at(10, 30)))
        self.assertFalse(index.is_resource_blocked(b.id, at(10), at(11)))
