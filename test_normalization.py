"""Tests for the pure normalization pieces: datetimes, timezones, identity and decoding."""

import re
import unittest
from datetime import date, datetime

from txt2ics.core.datetime_normalizer import (
    format_ics_date,
    has_inline_offset,
    normalize_datetime,
    normalize_time_string,
    strip_inline_offset,
)
from txt2ics.core.event_model import ExtractedEvent, NormalizedEvent
from txt2ics.core.identity import IdentityAssigner, event_hash
from txt2ics.core.schema import build_user_prompt, decode_events, parse_payload
from txt2ics.core.timezone_utils import (
    build_vtimezone,
    canonical_timezone,
    resolve_timezone,
)
from txt2ics.exceptions.errors import (
    CompletionTimeoutError,
    EventValidationError,
    InvalidDateTimeError,
    MalformedResponseError,
    Txt2IcsError,
)


class TestDatetimeNormalizer(unittest.TestCase):

    def test_strip_inline_offset(self):
        self.assertEqual(strip_inline_offset("2024-03-01T10:00:00-05:00"), "2024-03-01T10:00:00")
        self.assertEqual(strip_inline_offset("2024-03-01T10:00:00+0530"), "2024-03-01T10:00:00")
        self.assertEqual(strip_inline_offset("2024-03-01T10:00:00Z"), "2024-03-01T10:00:00")
        self.assertEqual(strip_inline_offset("2024-03-01"), "2024-03-01")

    def test_has_inline_offset(self):
        self.assertTrue(has_inline_offset("2024-03-01T10:00:00+01:00"))
        self.assertFalse(has_inline_offset("2024-03-01T10:00:00"))
        self.assertFalse(has_inline_offset("2024-03-01"))

    def test_offset_is_discarded_not_applied(self):
        result = normalize_datetime("2024-03-01T10:00:00-05:00", all_day=False)
        self.assertEqual(result, datetime(2024, 3, 1, 10, 0))
        self.assertIsNone(result.tzinfo)

    def test_offset_applied_when_not_stripped(self):
        result = normalize_datetime("2024-03-01T10:00:00+01:00", all_day=False, strip_offset=False)
        self.assertEqual(result, datetime(2024, 3, 1, 9, 0))
        self.assertIsNone(result.tzinfo)

    def test_fractional_seconds_are_dropped(self):
        result = normalize_datetime("2024-06-02T09:00:00.789", all_day=False)
        self.assertEqual(result, datetime(2024, 6, 2, 9, 0, 0))

    def test_all_day_keeps_date_only(self):
        self.assertEqual(normalize_datetime("2024-06-02T09:30:00", all_day=True), date(2024, 6, 2))
        self.assertEqual(normalize_datetime("2024-06-02", all_day=True), date(2024, 6, 2))

    def test_human_formats_fall_back_to_dateutil(self):
        result = normalize_datetime("June 2, 2024 9:15 PM", all_day=False)
        self.assertEqual(result, datetime(2024, 6, 2, 21, 15))

    def test_unparseable_value_raises(self):
        with self.assertRaises(InvalidDateTimeError) as ctx:
            normalize_datetime("sometime next week", all_day=False, field="timeEnd", event_title="Trip")
        self.assertEqual(ctx.exception.field, "timeEnd")
        self.assertEqual(ctx.exception.event_title, "Trip")
        self.assertIn("sometime next week", str(ctx.exception))

    def test_empty_value_raises(self):
        with self.assertRaises(InvalidDateTimeError):
            normalize_datetime("   ", all_day=False)

    def test_normalize_time_string(self):
        self.assertEqual(normalize_time_string("20h15"), "20:15")
        self.assertEqual(normalize_time_string("20:00h"), "20:00")
        self.assertEqual(normalize_time_string("9h"), "09:00")
        self.assertEqual(normalize_time_string("20.30"), "20:30")

    def test_format_ics_date(self):
        self.assertEqual(format_ics_date(datetime(2024, 6, 2, 9, 5, 7), False), "20240602T090507")
        self.assertEqual(format_ics_date(datetime(2024, 6, 2, 9, 5, 7), True), "20240602")
        self.assertEqual(format_ics_date(date(2024, 6, 2), False), "20240602")


class TestTimezoneResolution(unittest.TestCase):

    def test_canonical_timezone(self):
        self.assertEqual(canonical_timezone("America/New_York"), "America/New_York")
        self.assertEqual(canonical_timezone("america/new_york"), "America/New_York")
        self.assertEqual(canonical_timezone("PDT"), "America/Los_Angeles")
        self.assertEqual(canonical_timezone(" Europe/Paris "), "Europe/Paris")
        self.assertIsNone(canonical_timezone("Mars/Olympus_Mons"))
        self.assertIsNone(canonical_timezone(""))
        self.assertIsNone(canonical_timezone(None))

    def test_event_zone_wins_over_default(self):
        resolution = resolve_timezone("Asia/Tokyo", "Europe/Paris")
        self.assertEqual(resolution.tzid, "Asia/Tokyo")
        self.assertTrue(resolution.known)

    def test_default_zone_used_when_event_has_none(self):
        resolution = resolve_timezone(None, "Europe/Paris")
        self.assertEqual(resolution.tzid, "Europe/Paris")

    def test_floating_when_no_zone_at_all(self):
        resolution = resolve_timezone(None, None)
        self.assertTrue(resolution.floating)
        self.assertIsNone(resolution.tzid)

    def test_unknown_zone_passes_through(self):
        with self.assertLogs("txt2ics.core.timezone_utils", level="WARNING"):
            resolution = resolve_timezone("Mars/Olympus_Mons", "Europe/Paris")
        self.assertEqual(resolution.tzid, "Mars/Olympus_Mons")
        self.assertFalse(resolution.known)

    def test_unknown_zone_falls_back_when_pass_through_disabled(self):
        with self.assertLogs("txt2ics.core.timezone_utils", level="WARNING"):
            resolution = resolve_timezone("Mars/Olympus_Mons", "Europe/Paris", pass_through_unknown=False)
        self.assertEqual(resolution.tzid, "Europe/Paris")

    def test_build_vtimezone(self):
        component = build_vtimezone("Europe/Paris")
        self.assertEqual(component.name, "VTIMEZONE")
        self.assertEqual(str(component["TZID"]), "Europe/Paris")
        self.assertIsNone(build_vtimezone("Mars/Olympus_Mons"))


class TestEventModels(unittest.TestCase):

    def test_from_dict_trims_and_nulls_empty_optionals(self):
        event = ExtractedEvent.from_dict({
            "title": "  Lunch ",
            "timeStart": "2024-06-05T12:30:00",
            "location": "   ",
            "emoji": "",
        })
        self.assertEqual(event.title, "Lunch")
        self.assertIsNone(event.location)
        self.assertIsNone(event.emoji)
        self.assertFalse(event.all_day)

    def test_from_dict_requires_title_and_start(self):
        with self.assertRaises(EventValidationError) as ctx:
            ExtractedEvent.from_dict({"title": "Lunch"})
        self.assertEqual(ctx.exception.missing_fields, {"timeStart"})
        self.assertEqual(ctx.exception.event_title, "Lunch")
        self.assertIsInstance(ctx.exception, MalformedResponseError)

    def test_to_dict_uses_wire_names(self):
        event = ExtractedEvent(title="Lunch", time_start="2024-06-05T12:30:00", all_day=False)
        data = event.to_dict()
        self.assertEqual(data["timeStart"], "2024-06-05T12:30:00")
        self.assertIn("recurrenceRule", data)

    def test_description_matching_title_is_dropped(self):
        event = NormalizedEvent(title="Dentist", start=datetime(2024, 6, 4, 15, 0), description="Dentist")
        self.assertIsNone(event.description)

    def test_to_record(self):
        event = NormalizedEvent(title="Holiday", start=date(2024, 12, 25), all_day=True)
        record = event.to_record()
        self.assertEqual(record["timeStart"], "2024-12-25")
        self.assertIsNone(record["timeEnd"])
        self.assertTrue(record["allDay"])


class TestIdentity(unittest.TestCase):

    def setUp(self):
        self.event = NormalizedEvent(title="Standup", start=datetime(2024, 6, 3, 9, 0))

    def test_hash_is_short_hex(self):
        self.assertRegex(event_hash(self.event), re.compile(r"^[0-9a-f]{16}$"))

    def test_hash_depends_only_on_content(self):
        twin = NormalizedEvent(title="Standup", start=datetime(2024, 6, 3, 9, 0))
        other = NormalizedEvent(title="Standup", start=datetime(2024, 6, 3, 9, 30))
        self.assertEqual(event_hash(self.event), event_hash(twin))
        self.assertNotEqual(event_hash(self.event), event_hash(other))

    def test_hash_is_fixed_for_known_content(self):
        event = NormalizedEvent(title="A", start=datetime(2024, 6, 2, 9, 0))
        self.assertEqual(event_hash(event), "f237e990dacae706")
        self.assertEqual(IdentityAssigner().assign(event).uid, "f237e990dacae706-0")

    def test_counters_increase_per_digest(self):
        assigner = IdentityAssigner()
        other = NormalizedEvent(title="Retro", start=datetime(2024, 6, 7, 16, 0))
        uids = [assigner.assign(e).uid for e in (self.event, other, self.event, self.event)]
        digest = event_hash(self.event)
        self.assertEqual(uids[0], f"{digest}-0")
        self.assertEqual(uids[1], f"{event_hash(other)}-0")
        self.assertEqual(uids[2:], [f"{digest}-1", f"{digest}-2"])

    def test_new_assigner_starts_over(self):
        IdentityAssigner().assign(self.event)
        self.assertEqual(IdentityAssigner().assign(self.event).counter, 0)


class TestPayloadDecoding(unittest.TestCase):

    def test_parse_payload_passes_decoded_data_through(self):
        data = {"events": []}
        self.assertIs(parse_payload(data), data)

    def test_parse_payload_accepts_bytes(self):
        self.assertEqual(parse_payload(b'{"events": []}'), {"events": []})

    def test_parse_payload_rejects_empty_and_garbage(self):
        for raw in (None, "", "```json\n```"):
            with self.assertRaises(MalformedResponseError):
                parse_payload(raw)
        with self.assertRaises(MalformedResponseError) as ctx:
            parse_payload("{events: [")
        self.assertIn("could not decode payload", str(ctx.exception))

    def test_decode_events_requires_events_array(self):
        result = decode_events({"items": []})
        self.assertFalse(result.ok)
        self.assertEqual(result.violations[0].field, "events")

        result = decode_events({"events": "none"})
        self.assertFalse(result.ok)

        result = decode_events("just text")
        self.assertFalse(result.ok)

    def test_decode_events_collects_every_violation(self):
        result = decode_events({"events": [
            {"title": "Ok", "timeStart": "2024-06-03T09:00:00", "allDay": False},
            {"title": "", "timeStart": 12, "location": 3},
            "not an object",
        ]})
        self.assertFalse(result.ok)
        described = [str(v) for v in result.violations]
        self.assertEqual(described, [
            "events[1].title: must not be empty",
            "events[1].timeStart: required string",
            "events[1].location: expected a string or null",
            "events[2]: expected an object",
        ])

    def test_decode_events_returns_events(self):
        result = decode_events({"events": [
            {"title": "Ok", "timeStart": "2024-06-03T09:00:00", "allDay": True, "timeZone": None},
        ]})
        self.assertTrue(result.ok)
        self.assertEqual(result.events[0].title, "Ok")
        self.assertTrue(result.events[0].all_day)

    def test_build_user_prompt(self):
        prompt = build_user_prompt("Coffee at 10", datetime(2024, 6, 3, 8, 0), "Europe/Paris")
        self.assertTrue(prompt.startswith("Coffee at 10"))
        self.assertIn("Monday, June 03, 2024", prompt)
        self.assertIn("Current timezone: Europe/Paris", prompt)


class TestErrors(unittest.TestCase):

    def test_hierarchy(self):
        for error in (
            MalformedResponseError("x"),
            InvalidDateTimeError("x"),
            CompletionTimeoutError(5),
        ):
            self.assertIsInstance(error, Txt2IcsError)

    def test_malformed_response_message(self):
        self.assertEqual(str(MalformedResponseError()), "Invalid response: unknown reason")
        error = MalformedResponseError("bad", ["a", "b"])
        self.assertEqual(str(error), "Invalid response: bad (a; b)")

    def test_timeout_message(self):
        self.assertIn("2.5 seconds", str(CompletionTimeoutError(2.5)))


if __name__ == "__main__":
    unittest.main()
