from datetime import date, timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import OperationalError
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from api.models import BookingBlock, Kiosk, StaffAvailability
from api.tests.fixtures import (
    DAY, at, make_booking, make_location, make_resource, make_service, make_staff,
)
from bookings.models import AuditLog, Booking

User = get_user_model()


class ApiTestBase(APITestCase):
    def setUp(self):
        self.location = make_location()
        self.service = make_service(price="100.00")
        self.artist = make_staff(self.location, "Ana", {self.service: 4})
        self.chair = make_resource(self.location)
        self.manager = User.objects.create_user(email="manager@example.com", password="password", role="manager")
        self.staff_user = User.objects.create_user(email="artist@example.com", password="password", role="artist")
        self.customer_user = User.objects.create_user(email="client@example.com", password="password", role="user")

    def booking_payload(self, start=None, **extra):
        payload = {
            "customer_email": "New.Client@example.com",
            "customer_first_name": "New",
            "location_id": self.location.id,
            "service_id": self.service.id,
            "start_time": (start or at(10)).isoformat(),
        }
        payload.update(extra)
        return payload


class BookingCreateApiTests(ApiTestBase):

    def test_public_booking(self):
        response = self.client.post(reverse("booking-create"), self.booking_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["booking"]["staff_id"], self.artist.id)
        self.assertEqual(body["booking"]["resource_id"], self.chair.id)
        self.assertEqual(len(body["booking"]["short_id"]), 6)
        self.assertEqual(body["booking"]["deposit_amount"], "50.00")
        self.assertEqual(Booking.objects.get().customer.email, "new.client@example.com")

    def test_taken_slot_returns_structured_conflict(self):
        make_booking(self.location, self.service, at(10), staff=self.artist, resource=self.chair)
        response = self.client.post(reverse("booking-create"), self.booking_payload(at(10, 30)), format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["code"], "SLOT_UNAVAILABLE")
        self.assertFalse(response.json()["success"])

    def test_no_qualified_staff_is_no_availability(self):
        tattoo = make_service("Tattoo")
        response = self.client.post(
            reverse("booking-create"), self.booking_payload(service_id=tattoo.id), format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["code"], "NO_AVAILABILITY")

    def test_missing_fields_are_validation_errors(self):
        response = self.client.post(reverse("booking-create"), {"location_id": self.location.id}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        body = response.json()
        self.assertEqual(body["code"], "VALIDATION_ERROR")
        self.assertIn("customer_email", body["errors"])

    def test_unknown_service_is_not_found(self):
        response = self.client.post(reverse("booking-create"), self.booking_payload(service_id=9999), format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["code"], "NOT_FOUND")

    def test_lock_failure_is_transient(self):
        with mock.patch("api.models.ScheduleLock.objects.get_or_create", side_effect=OperationalError("locked")):
            response = self.client.post(reverse("booking-create"), self.booking_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.json()["code"], "TRANSIENT_ERROR")
        self.assertEqual(Booking.objects.count(), 0)


class BookingDetailApiTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.location, self.service, at(10), staff=self.artist, status="pending")
        self.url = reverse("booking-detail", kwargs={"booking_id": self.booking.id})

    def test_staff_can_read(self):
        self.client.force_authenticate(user=self.staff_user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["booking"]["short_id"], self.booking.short_id)
        self.assertEqual(response.json()["booking"]["staff"]["id"], self.artist.id)

    def test_customer_cannot_read(self):
        self.client.force_authenticate(user=self.customer_user)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.json()["success"])

    def test_manager_updates_status(self):
        self.client.force_authenticate(user=self.manager)
        response = self.client.patch(self.url, {"status": "confirmed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["booking"]["status"], "confirmed")
        entry = AuditLog.objects.get(entity_id=str(self.booking.id), action="update")
        self.assertEqual(entry.actor, "manager@example.com")
        self.assertEqual(entry.performed_by, self.manager)

    def test_artist_cannot_update_status(self):
        self.client.force_authenticate(user=self.staff_user)
        response = self.client.patch(self.url, {"status": "confirmed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_transition(self):
        self.booking.status = "cancelled"
        self.booking.save()
        self.client.force_authenticate(user=self.manager)
        response = self.client.patch(self.url, {"status": "confirmed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["code"], "VALIDATION_ERROR")


class ApertureApiTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.booking = make_booking(self.location, self.service, at(10), staff=self.artist, resource=self.chair)
        self.client.force_authenticate(user=self.manager)

    def test_reschedule(self):
        url = reverse("booking-reschedule", kwargs={"booking_id": self.booking.id})
        response = self.client.post(url, {"new_start_time": at(14).isoformat()}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.start_time, at(14))

    def test_reschedule_conflict_lists_dimensions(self):
        other = make_booking(self.location, self.service, at(14), staff=self.artist)
        url = reverse("booking-reschedule", kwargs={"booking_id": self.booking.id})
        response = self.client.post(url, {"new_start_time": at(14, 30).isoformat()}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        body = response.json()
        self.assertEqual(body["code"], "SLOT_UNAVAILABLE")
        self.assertEqual(body["conflicts"][0]["booking_ids"], [str(other.id)])

    def test_check_in_by_staff(self):
        self.client.force_authenticate(user=self.staff_user)
        response = self.client.post(
            reverse("booking-check-in"), {"booking_id": str(self.booking.id), "staff_id": self.artist.id}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "confirmed")

    def test_no_show_with_override(self):
        boss = make_staff(self.location, "Max", role="manager", shift=None)
        response = self.client.post(
            reverse("booking-no-show"), {"booking_id": str(self.booking.id), "override_by": boss.id}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.json()["penalty_waived"])

    def test_auto_assign_suggestions_and_assignment(self):
        bea = make_staff(self.location, "Bea", {self.service: 5})
        unassigned = make_booking(self.location, self.service, at(12), status="pending")
        url = reverse("calendar-auto-assign")

        response = self.client.get(url, {"booking_id": str(unassigned.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s["staff_id"] for s in response.json()["staff"]], [bea.id, self.artist.id])

        response = self.client.post(
            url, {"booking_id": str(unassigned.id), "exclude_staff_ids": [bea.id]}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["staff_id"], self.artist.id)

    def test_calendar_feed(self):
        make_booking(self.location, self.service, at(10), status="cancelled")
        response = self.client.get(reverse("calendar"), {
            "start_date": DAY.isoformat(), "end_date": DAY.isoformat(), "statuses": "confirmed",
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual([b["id"] for b in body["bookings"]], [str(self.booking.id)])
        self.assertEqual(body["bookings"][0]["customer"]["email"], "client@example.com")
        self.assertEqual(body["locations"][0]["business_hours"]["monday"]["open"], "09:00")
        self.assertIn(self.artist.id, [s["id"] for s in body["staff"]])

    def test_calendar_requires_manager(self):
        self.client.force_authenticate(user=self.staff_user)
        response = self.client.get(reverse("calendar"), {"start_date": DAY.isoformat(), "end_date": DAY.isoformat()})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AvailabilityApiTests(ApiTestBase):

    def test_time_slots_are_public(self):
        response = self.client.get(reverse("availability-time-slots"), {
            "location_id": self.location.id, "date": DAY.isoformat(), "service_id": self.service.id,
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        slots = response.json()["slots"]
        self.assertEqual(slots[0]["start_time"], "2030-01-07T09:00:00Z")
        self.assertEqual(slots[0]["local_time"], "09:00")
        self.assertTrue(slots[0]["is_available"])

    def test_time_slots_hide_past_dates(self):
        past_day = date(2020, 1, 6)
        make_staff(self.location, "Bea", {self.service: 3}, day=past_day)
        response = self.client.get(reverse("availability-time-slots"), {
            "location_id": self.location.id, "date": past_day.isoformat(), "service_id": self.service.id,
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["slots"], [])

    def test_time_slots_today_start_after_now(self):
        with mock.patch("django.utils.timezone.now", return_value=at(12, 30)):
            response = self.client.get(reverse("availability-time-slots"), {
                "location_id": self.location.id, "date": DAY.isoformat(), "service_id": self.service.id,
            })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        starts = [s["start_time"] for s in response.json()["slots"]]
        self.assertEqual(starts[0], "2030-01-07T13:00:00Z")
        self.assertEqual(len(starts), 4)

    def test_time_slots_bad_date(self):
        response = self.client.get(reverse("availability-time-slots"), {"location_id": self.location.id, "date": "tomorrow"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("date", response.json()["errors"])

    def test_available_staff_and_resources(self):
        self.client.force_authenticate(user=self.staff_user)
        params = {
            "location_id": self.location.id, "service_id": self.service.id,
            "start_time_utc": at(10).isoformat(), "end_time_utc": at(11).isoformat(),
        }
        response = self.client.get(reverse("availability-staff"), params)
        self.assertEqual([s["staff_id"] for s in response.json()["staff"]], [self.artist.id])

        response = self.client.get(reverse("availability-resources"), params)
        self.assertEqual([r["id"] for r in response.json()["resources"]], [self.chair.id])

    def test_staff_unavailable_rejects_overlap(self):
        self.client.force_authenticate(user=self.manager)
        url = reverse("availability-staff-unavailable")
        payload = {"staff_id": self.artist.id, "date": DAY.isoformat(), "start_time": "12:00", "end_time": "13:00"}
        self.assertEqual(self.client.post(url, payload, format="json").status_code, status.HTTP_201_CREATED)
        self.assertTrue(StaffAvailability.objects.filter(staff=self.artist, is_available=False).exists())

        payload.update(start_time="12:30", end_time="14:00")
        response = self.client.post(url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(url, {"staff_id": self.artist.id})
        self.assertEqual(len(response.json()["results"]), 1)

    def test_blocks_crud(self):
        self.client.force_authenticate(user=self.manager)
        url = reverse("availability-blocks")
        response = self.client.post(url, {
            "location_id": self.location.id, "resource_id": self.chair.id,
            "start_time": at(12).isoformat(), "end_time": at(13).isoformat(), "reason": "Repair",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        block_id = response.json()["block"]["id"]

        response = self.client.get(url, {"location_id": self.location.id, "date": DAY.isoformat()})
        self.assertEqual([b["id"] for b in response.json()["results"]], [block_id])

        response = self.client.delete(f"{url}?id={block_id}")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BookingBlock.objects.exists())

    def test_blocks_require_manager(self):
        self.client.force_authenticate(user=self.staff_user)
        response = self.client.get(reverse("availability-blocks"), {"location_id": self.location.id})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class KioskApiTests(ApiTestBase):
    def setUp(self):
        super().setUp()
        self.kiosk = Kiosk.objects.create(location=self.location, name="Front door")

    def auth(self):
        self.client.credentials(HTTP_X_KIOSK_API_KEY=self.kiosk.api_key)

    def test_missing_key_is_unauthorized(self):
        response = self.client.get(reverse("kiosk-bookings"), {"date": DAY.isoformat()})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_wrong_key_is_unauthorized(self):
        self.client.credentials(HTTP_X_KIOSK_API_KEY="nope")
        response = self.client.get(reverse("kiosk-bookings"), {"date": DAY.isoformat()})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_kiosk_booking_is_pending_without_deposit(self):
        self.auth()
        response = self.client.post(reverse("kiosk-bookings"), {
            "customer_email": "walker@example.com", "service_id": self.service.id,
            "start_time": at(15).isoformat(),
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = Booking.objects.get(short_id=response.json()["booking"]["short_id"])
        self.assertEqual((booking.status, booking.source), ("pending", "kiosk"))
        self.assertEqual(booking.deposit_amount, 0)
        self.assertEqual(AuditLog.objects.get(entity_id=str(booking.id)).actor, f"kiosk:{self.kiosk.id}")

    def test_lookup_by_short_id(self):
        booking = make_booking(self.location, self.service, at(10), staff=self.artist)
        self.auth()
        response = self.client.get(reverse("kiosk-bookings"), {"short_id": booking.short_id.lower()})
        self.assertEqual([b["id"] for b in response.json()["bookings"]], [str(booking.id)])

    def test_walk_in(self):
        self.auth()
        with mock.patch("bookings.utils.booking_flow.timezone.now", return_value=at(11, 5)):
            response = self.client.post(reverse("kiosk-walkin"), {
                "customer_email": "walker@example.com", "service_id": self.service.id, "notes": "haircut",
            }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = Booking.objects.get()
        self.assertEqual(booking.status, "confirmed")
        self.assertEqual(booking.start_time, at(11, 5))
        self.assertTrue(booking.notes.startswith("[Walk-in]"))


@override_settings(CRON_SECRET="s3cret", NO_SHOW_GRACE_HOURS=12)
class CronApiTests(ApiTestBase):

    def test_missing_secret(self):
        response = self.client.get(reverse("cron-detect-no-shows"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["code"], "UNAUTHORIZED")

    def test_wrong_secret(self):
        response = self.client.get(reverse("cron-detect-no-shows"), HTTP_AUTHORIZATION="Bearer wrong")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()["code"], "FORBIDDEN")

    def test_sweep_counts(self):
        booking = make_booking(self.location, self.service, at(10), staff=self.artist)
        with mock.patch("bookings.utils.no_show.timezone.now", return_value=at(10) + timedelta(hours=13)):
            response = self.client.get(reverse("cron-detect-no-shows"), HTTP_AUTHORIZATION="Bearer s3cret")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"success": True, "processedCount": 1, "detectedCount": 1, "failedCount": 0})
        booking.refresh_from_db()
        self.assertEqual(booking.status, "no_show")
