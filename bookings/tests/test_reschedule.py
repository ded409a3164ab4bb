from datetime import timedelta
from unittest import mock

from django.test import TestCase

from api.exceptions import ConflictError, NotFoundError, ValidationError
from api.tests.fixtures import (
    at, make_booking, make_location, make_resource, make_service, make_staff,
)
from bookings.models import AuditLog, Booking
from bookings.utils import reschedule as reschedule_module
from bookings.utils.reschedule import RescheduleConflictError, reschedule_booking


class RescheduleTests(TestCase):
    def setUp(self):
        self.location = make_location()
        self.service = make_service(duration=60)
        self.ana = make_staff(self.location, "Ana", {self.service: 4})
        self.bea = make_staff(self.location, "Bea", {self.service: 3})
        self.chair = make_resource(self.location, "Chair 1")
        self.chair2 = make_resource(self.location, "Chair 2")
        self.booking = make_booking(self.location, self.service, at(10), staff=self.ana, resource=self.chair)

    def test_move_into_free_slot(self):
        booking = reschedule_booking(self.booking.id, at(14))
        self.assertEqual((booking.start_time, booking.end_time), (at(14), at(15)))
        self.assertEqual(booking.staff, self.ana)
        self.assertEqual(booking.resource, self.chair)

    def test_small_shift_overlapping_itself_is_allowed(self):
        booking = reschedule_booking(self.booking.id, at(10, 30))
        self.assertEqual(booking.end_time, at(11, 30))

    def test_staff_conflict(self):
        other = make_booking(self.location, self.service, at(14), staff=self.ana, resource=self.chair2)
        with self.assertRaises(RescheduleConflictError) as ctx:
            reschedule_booking(self.booking.id, at(14, 30))
        self.assertIsInstance(ctx.exception, ConflictError)
        conflict = ctx.exception.conflicts[0]
        self.assertEqual((conflict.dimension, conflict.entity_id), ("staff", self.ana.id))
        self.assertEqual(conflict.booking_ids, [str(other.id)])

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.start_time, at(10))

    def test_resource_conflict(self):
        make_booking(self.location, self.service, at(14), staff=self.bea, resource=self.chair)
        with self.assertRaises(RescheduleConflictError) as ctx:
            reschedule_booking(self.booking.id, at(14))
        self.assertEqual([c.dimension for c in ctx.exception.conflicts], ["resource"])

    def test_move_to_other_staff_and_resource(self):
        make_booking(self.location, self.service, at(14), staff=self.ana, resource=self.chair)
        booking = reschedule_booking(self.booking.id, at(14), staff_id=self.bea.id, resource_id=self.chair2.id)
        self.assertEqual((booking.staff, booking.resource), (self.bea, self.chair2))

    def test_conflict_detection_does_not_depend_on_order(self):
        first = make_booking(self.location, self.service, at(13), staff=self.bea, resource=self.chair2)
        with self.assertRaises(ConflictError):
            reschedule_booking(self.booking.id, at(13), staff_id=self.bea.id)
        with self.assertRaises(ConflictError):
            reschedule_booking(first.id, at(10), staff_id=self.ana.id)

    def test_touching_boundary_is_allowed(self):
        make_booking(self.location, self.service, at(14), staff=self.ana, resource=self.chair)
        booking = reschedule_booking(self.booking.id, at(13))
        self.assertEqual(booking.end_time, at(14))

    def test_cancelled_bookings_do_not_block(self):
        make_booking(self.location, self.service, at(14), staff=self.ana, resource=self.chair, status="cancelled")
        self.assertEqual(reschedule_booking(self.booking.id, at(14)).start_time, at(14))

    def test_audit_records_before_and_after(self):
        reschedule_booking(self.booking.id, at(15), staff_id=self.bea.id)
        entry = AuditLog.objects.get(entity_id=str(self.booking.id), action="reschedule")
        self.assertEqual(entry.old_values["staff_id"], self.ana.id)
        self.assertEqual(entry.new_values["staff_id"], self.bea.id)
        self.assertTrue(entry.old_values["start_time"].startswith("2030-01-07T10:00:00"))
        self.assertTrue(entry.new_values["end_time"].startswith("2030-01-07T16:00:00"))

    def test_terminal_booking_cannot_move(self):
        self.booking.status = "completed"
        self.booking.save()
        with self.assertRaises(ValidationError):
            reschedule_booking(self.booking.id, at(14))

    def test_naive_start_rejected(self):
        with self.assertRaises(ValidationError):
            reschedule_booking(self.booking.id, at(14).replace(tzinfo=None))

    def test_unknown_staff(self):
        with self.assertRaises(NotFoundError):
            reschedule_booking(self.booking.id, at(14), staff_id=99999)

    def test_staff_from_another_location(self):
        zoe = make_staff(make_location(name="Other"), "Zoe", {self.service: 3})
        with self.assertRaises(ValidationError):
            reschedule_booking(self.booking.id, at(14), staff_id=zoe.id)


class DualArtistRescheduleTests(TestCase):
    def setUp(self):
        self.location = make_location()
        self.service = make_service("Sleeve", duration=120, dual=True)
        self.ana = make_staff(self.location, "Ana", {self.service: 4})
        self.bea = make_staff(self.location, "Bea", {self.service: 4})
        self.room = make_resource(self.location, "Room 1", type="room")
        self.room2 = make_resource(self.location, "Room 2", type="room")
        self.station = make_resource(self.location, "Station 1")
        self.booking = make_booking(
            self.location, self.service, at(10), staff=self.ana, secondary_staff=self.bea, resource=self.room,
        )

    def test_move_keeps_both_artists_and_room(self):
        booking = reschedule_booking(self.booking.id, at(13))
        self.assertEqual((booking.staff, booking.secondary_staff, booking.resource), (self.ana, self.bea, self.room))
        self.assertEqual(booking.end_time, at(15))

    def test_move_to_another_room(self):
        booking = reschedule_booking(self.booking.id, at(13), resource_id=self.room2.id)
        self.assertEqual(booking.resource, self.room2)

    def test_station_is_rejected(self):
        with self.assertRaises(ValidationError):
            reschedule_booking(self.booking.id, at(13), resource_id=self.station.id)
        self.booking.refresh_from_db()
        self.assertEqual((self.booking.start_time, self.booking.resource), (at(10), self.room))

    def test_secondary_artist_conflict(self):
        make_booking(self.location, make_service(), at(13), staff=self.bea)
        with self.assertRaises(RescheduleConflictError) as ctx:
            reschedule_booking(self.booking.id, at(13))
        self.assertEqual([c.dimension for c in ctx.exception.conflicts], ["secondary_staff"])

    def test_primary_cannot_become_the_secondary(self):
        with self.assertRaises(ValidationError):
            reschedule_booking(self.booking.id, at(13), staff_id=self.bea.id)


class ConcurrentChangeRescheduleTests(TestCase):
    """The booking row is changed by another writer just before the lock is taken."""

    def setUp(self):
        self.location = make_location()
        self.service = make_service(duration=60)
        self.ana = make_staff(self.location, "Ana", {self.service: 4})
        self.bea = make_staff(self.location, "Bea", {self.service: 3})
        self.chair = make_resource(self.location, "Chair 1")
        self.chair2 = make_resource(self.location, "Chair 2")
        self.booking = make_booking(self.location, self.service, at(10))

    def reschedule_after(self, concurrent_update, *args, **kwargs):
        real_lock = reschedule_module.schedule_lock

        def lock_after_write(location, *dates):
            Booking.objects.filter(id=self.booking.id).update(**concurrent_update)
            return real_lock(location, *dates)

        with mock.patch.object(reschedule_module, "schedule_lock", side_effect=lock_after_write):
            return reschedule_booking(self.booking.id, *args, **kwargs)

    def test_assignment_made_meanwhile_is_kept(self):
        booking = self.reschedule_after({"staff": self.ana, "resource": self.chair}, at(14))
        booking.refresh_from_db()
        self.assertEqual((booking.staff, booking.resource), (self.ana, self.chair))
        self.assertEqual(booking.start_time, at(14))

    def test_conflict_check_uses_the_fresh_assignment(self):
        other = make_booking(self.location, self.service, at(14), staff=self.bea, resource=self.chair2)
        with self.assertRaises(RescheduleConflictError) as ctx:
            self.reschedule_after({"staff": self.bea}, at(14))
        conflict = ctx.exception.conflicts[0]
        self.assertEqual((conflict.dimension, conflict.entity_id), ("staff", self.bea.id))
        self.assertEqual(conflict.booking_ids, [str(other.id)])

    def test_booking_moved_to_another_day_meanwhile(self):
        moved = {"start_time": at(10) + timedelta(days=1), "end_time": at(11) + timedelta(days=1)}
        with self.assertRaises(ConflictError):
            self.reschedule_after(moved, at(14))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.start_time, at(10) + timedelta(days=1))
