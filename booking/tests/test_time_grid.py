from datetime import date, timezone as dt_timezone

from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from configmgr.models import SystemSetting
from booking.services.time_grid import (
    date_key,
    date_to_range,
    expand_dates,
    format_minutes,
    generate_candidate_starts,
    get_default_work_hours,
    get_lead_minutes,
    hhmm_to_minutes,
    local_datetime,
    minutes_of_day,
    parse_date_key,
    week_days,
    weekday_of,
)


class TimeGridTests(SimpleTestCase):

    def test_minutes_helpers(self):
        self.assertEqual(minutes_of_day(8, 30), 510)
        self.assertEqual(minutes_of_day(19), 1140)
        self.assertEqual(hhmm_to_minutes("13:45"), 825)
        self.assertEqual(format_minutes(480), "08:00")
        self.assertEqual(format_minutes(1110), "18:30")

    def test_date_key_is_zero_padded(self):
        self.assertEqual(date_key(date(2030, 3, 5)), "2030-03-05")
        self.assertEqual(date_key("2030-03-05T10:00"), "2030-03-05")
        self.assertEqual(date_key("2030-03-05 10:00:00"), "2030-03-05")

    def test_date_key_uses_local_calendar(self):
        """23:30 in Zurich is 21:30 UTC; the key stays on the local day."""
        evening = local_datetime("2030-06-03", minutes_of_day(23, 30))
        self.assertEqual(date_key(evening), "2030-06-03")
        self.assertEqual(date_key(evening.astimezone(dt_timezone.utc)), "2030-06-03")

    def test_parse_date_key_rejects_garbage(self):
        with self.assertRaises(ValueError):
            parse_date_key("03/05/2030")
        with self.assertRaises(ValueError):
            parse_date_key("")

    def test_weekday_is_sunday_based(self):
        self.assertEqual(weekday_of("2030-06-02"), 0)  # Sunday
        self.assertEqual(weekday_of("2030-06-03"), 1)  # Monday
        self.assertEqual(weekday_of("2030-06-08"), 6)  # Saturday

    def test_expand_dates_inclusive(self):
        self.assertEqual(
            expand_dates("2030-02-27", "2030-03-02"),
            ["2030-02-27", "2030-02-28", "2030-03-01", "2030-03-02"],
        )
        self.assertEqual(expand_dates("2030-03-02", "2030-03-01"), [])

    def test_week_days_monday_to_sunday(self):
        days = week_days("2030-06-05")
        self.assertEqual(days[0], date(2030, 6, 3))
        self.assertEqual(days[-1], date(2030, 6, 9))
        self.assertEqual(len(days), 7)

    def test_date_to_range_is_aware_local_day(self):
        start, end = date_to_range("2030-06-03")
        self.assertTrue(timezone.is_aware(start))
        self.assertEqual(timezone.localtime(start).hour, 0)
        self.assertEqual((end - start).total_seconds(), 24 * 3600)

    def test_candidate_starts_cover_whole_hours(self):
        """08:30-19:00 -> 08:00, 08:30, ..., 19:00, 19:30 (filtered later)."""
        starts = generate_candidate_starts("08:30", "19:00")
        self.assertEqual(starts[0], minutes_of_day(8))
        self.assertEqual(starts[-1], minutes_of_day(19, 30))
        self.assertEqual(len(starts), 24)


class SalonSettingsTests(TestCase):

    @override_settings(SALON_DEFAULT_WORK_START="09:00", SALON_DEFAULT_WORK_END="18:00")
    def test_defaults_come_from_settings(self):
        self.assertEqual(get_default_work_hours(), ("09:00", "18:00"))

    def test_system_setting_overrides_defaults(self):
        SystemSetting.objects.create(key="WORK_START", value="10:00")
        SystemSetting.objects.create(key="BOOKING_LEAD_MINUTES", value="45")
        start, _end = get_default_work_hours()
        self.assertEqual(start, "10:00")
        self.assertEqual(get_lead_minutes(), 45)

    def test_unparsable_override_falls_back(self):
        SystemSetting.objects.create(key="BOOKING_LEAD_MINUTES", value="soon")
        with self.assertLogs("booking.services.time_grid", level="WARNING"):
            self.assertEqual(get_lead_minutes(), 15)
