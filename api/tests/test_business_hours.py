from datetime import date, datetime, timedelta

from django.test import TestCase

from api.models import Location, default_business_hours
from api.tests.fixtures import UTC, at, make_location
from api.utils.business_hours import (
    day_window, is_open_at, is_open_for, next_open_time, parse_hhmm,
)


class ParseHHMMTests(TestCase):

    def test_valid_values(self):
        self.assertEqual(parse_hhmm("10:30"), 630)
        self.assertEqual(parse_hhmm("00:00"), 0)
        self.assertEqual(parse_hhmm("24:00"), 1440)

    def test_invalid_values(self):
        for bad in ("25:00", "10:60", "24:30", "ten", ""):
            with self.assertRaises(ValueError):
                parse_hhmm(bad)


class BusinessHoursTests(TestCase):
    def setUp(self):
        # default hours: 10:00-19:00, Sunday closed
        self.location = Location.objects.create(name="Default", timezone="UTC", business_hours=default_business_hours())

    def test_day_window_for_open_and_closed_days(self):
        window = day_window(self.location, date(2030, 1, 7))
        self.assertEqual((window.start, window.end), (at(10), at(19)))
        self.assertIsNone(day_window(self.location, date(2030, 1, 6)))  # Sunday

    def test_day_window_in_location_timezone(self):
        location = make_location(tz="America/New_York", open_at="10:00", close_at="19:00")
        window = day_window(location, date(2030, 1, 7))
        self.assertEqual(window.start.astimezone(UTC), at(15))
        self.assertEqual(window.end.astimezone(UTC), at(0, day=date(2030, 1, 8)))

    def test_is_open_at_uses_half_open_window(self):
        self.assertTrue(is_open_at(self.location, at(10)))
        self.assertTrue(is_open_at(self.location, at(18, 59)))
        self.assertFalse(is_open_at(self.location, at(19)))
        self.assertFalse(is_open_at(self.location, at(9, 59)))

    def test_is_open_for_requires_the_whole_range(self):
        self.assertTrue(is_open_for(self.location, at(18), at(19)))
        self.assertFalse(is_open_for(self.location, at(18, 30), at(19, 30)))

    def test_next_open_time_skips_closed_days(self):
        saturday_evening = datetime(2030, 1, 5, 20, 0, tzinfo=UTC)
        self.assertEqual(next_open_time(self.location, saturday_evening), at(10))
        self.assertEqual(next_open_time(self.location, at(12)), at(12))

    def test_next_open_time_gives_up_when_always_closed(self):
        location = make_location(closed=("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"))
        self.assertIsNone(next_open_time(location, at(12), max_days=3))

    def test_malformed_entry_is_treated_as_closed(self):
        self.location.business_hours["monday"] = {"open": "late", "close": "19:00", "is_closed": False}
        self.location.save()
        self.assertIsNone(day_window(self.location, date(2030, 1, 7)))
        self.assertFalse(is_open_at(self.location, at(12) + timedelta(minutes=1)))
