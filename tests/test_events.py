"""Tests for event log collection (PowerShell is mocked)."""

import datetime
import json
from unittest.mock import MagicMock, patch

import pytest

from bluebox.errors import PowerShellError
from bluebox.events import (
    HARDWARE_PROVIDERS,
    build_filter,
    build_query,
    collect_all_events,
    collect_events,
    collect_hardware_events,
    event_matches,
    normalize_event,
    registered_providers,
)
from bluebox.models import EventCategory

UTC = datetime.timezone.utc
START = datetime.datetime(2026, 1, 1, tzinfo=UTC)
END = datetime.datetime(2026, 2, 3, tzinfo=UTC)


def raw_event(event_id=41, when="2026-01-15T12:00:00.0000000+00:00", **extra):
    row = {
        "TimeCreated": when,
        "Id": event_id,
        "Level": 1,
        "LevelDisplayName": "Critical",
        "ProviderName": "Microsoft-Windows-Kernel-Power",
        "TaskDisplayName": "(63)",
        "RecordId": 99,
        "LogName": "System",
        "Message": "The system has rebooted without cleanly shutting down first.",
    }
    row.update(extra)
    return row


class TestBuildFilter:
    def test_minimal_filter_has_only_log_and_levels(self):
        fh = build_filter("Application")
        assert fh == "@{ LogName = 'Application'; Level = 1, 2, 3 }"

    def test_all_constraints(self):
        fh = build_filter(
            "System",
            providers=["disk", "Ntfs"],
            start_time=START,
            end_time=END,
            event_ids=[41, 1000],
        )
        assert "ProviderName = 'disk', 'Ntfs'" in fh
        assert "StartTime = ([DateTimeOffset]::Parse('2026-01-01T00:00:00+00:00').LocalDateTime)" in fh
        assert "EndTime = ([DateTimeOffset]::Parse('2026-02-03T00:00:00+00:00').LocalDateTime)" in fh
        assert "Id = 41, 1000" in fh

    def test_empty_allowlists_are_not_sent(self):
        fh = build_filter("System", providers=[], event_ids=[])
        assert "ProviderName" not in fh
        assert "Id =" not in fh

    def test_query_treats_no_match_as_empty(self):
        q = build_query("@{ LogName = 'System' }", 50)
        assert "-MaxEvents 50" in q
        assert "NoMatchingEventsFound" in q
        assert "'[]'" in q


class TestNormalizeEvent:
    def test_flattens_row(self):
        rec = normalize_event(raw_event(), EventCategory.SYSTEM)
        assert rec.category is EventCategory.SYSTEM
        assert rec.event_id == 41
        assert rec.level == "Critical"
        assert rec.time_created == datetime.datetime(2026, 1, 15, 12, tzinfo=UTC)
        assert rec.task_name == "(63)"
        assert rec.record_id == 99

    def test_level_name_falls_back_to_number(self):
        rec = normalize_event(raw_event(LevelDisplayName=None, Level=3), EventCategory.SYSTEM)
        assert rec.level == "Warning"

    def test_missing_optional_fields_are_none(self):
        rec = normalize_event(raw_event(TaskDisplayName="", Message=None), EventCategory.SYSTEM)
        assert rec.task_name is None
        assert rec.message is None

    def test_row_without_time_is_dropped(self):
        assert normalize_event(raw_event(when=None), EventCategory.SYSTEM) is None


class TestEventMatches:
    @pytest.mark.parametrize(
        "when, expected",
        [
            (START, True),
            (END, True),
            (START - datetime.timedelta(microseconds=1), False),
            (END + datetime.timedelta(microseconds=1), False),
            (datetime.datetime(2026, 1, 20, tzinfo=UTC), True),
        ],
    )
    def test_window_is_inclusive(self, make_event, when, expected):
        assert event_matches(make_event(when=when), start_time=START, end_time=END) is expected

    def test_other_offsets_compare_by_instant(self, make_event):
        plus_two = datetime.timezone(datetime.timedelta(hours=2))
        when = datetime.datetime(2026, 1, 1, 1, 59, tzinfo=plus_two)  # 2025-12-31 23:59 UTC
        assert event_matches(make_event(when=when), start_time=START) is False

    @pytest.mark.parametrize("event_id, expected", [(41, True), (1000, True), (6008, False)])
    def test_id_allowlist(self, make_event, event_id, expected):
        assert event_matches(make_event(event_id), event_ids=[41, 1000]) is expected

    def test_unconstrained_matches_everything(self, make_event):
        assert event_matches(make_event(6008)) is True


class TestCollectEvents:
    @patch("bluebox.events.run_ps")
    def test_returns_records(self, mock_ps):
        mock_ps.return_value = json.dumps([raw_event(41), raw_event(1000)])
        errors = []
        records = collect_events("System", EventCategory.SYSTEM, errors=errors)
        assert [r.event_id for r in records] == [41, 1000]
        assert errors == []
        assert mock_ps.call_args.kwargs["check"] is True

    @patch("bluebox.events.run_ps", return_value="[]")
    def test_no_matching_events_is_not_an_error(self, mock_ps):
        errors = []
        assert collect_events("Application", EventCategory.APPLICATION, errors=errors) == []
        assert errors == []

    @patch("bluebox.events.run_ps", return_value=json.dumps(raw_event(41)))
    def test_single_result_object(self, mock_ps):
        records = collect_events("System", EventCategory.SYSTEM, errors=[])
        assert len(records) == 1

    @patch("bluebox.events.run_ps", side_effect=PowerShellError("The RPC server is unavailable."))
    def test_failure_is_recorded_and_isolated(self, mock_ps):
        errors = []
        assert collect_events("System", EventCategory.SYSTEM, errors=errors) == []
        assert errors == ["System events (System): The RPC server is unavailable."]

    @patch("bluebox.events.run_ps", return_value="{not json")
    def test_unreadable_output_is_recorded(self, mock_ps):
        errors = []
        assert collect_events("System", EventCategory.SYSTEM, errors=errors) == []
        assert len(errors) == 1

    @patch("bluebox.events.run_ps")
    def test_results_respect_window_and_ids(self, mock_ps):
        mock_ps.return_value = json.dumps(
            [
                raw_event(41, "2026-01-01T00:00:00.0000000+00:00"),
                raw_event(41, "2025-12-31T23:59:59.0000000+00:00"),
                raw_event(7, "2026-01-10T00:00:00.0000000+00:00"),
                raw_event(1000, "2026-02-03T00:00:00.0000000+00:00"),
            ]
        )
        records = collect_events(
            "System",
            EventCategory.SYSTEM,
            start_time=START,
            end_time=END,
            event_ids=[41, 1000],
            errors=[],
        )
        assert [r.event_id for r in records] == [41, 1000]
        assert all(START <= r.time_created <= END for r in records)

    @patch("bluebox.events.run_ps")
    def test_capped_at_max_events(self, mock_ps):
        mock_ps.return_value = json.dumps([raw_event(i) for i in range(10)])
        records = collect_events("System", EventCategory.SYSTEM, max_events=3, errors=[])
        assert len(records) == 3
        assert "-MaxEvents 3" in mock_ps.call_args[0][0]


def fake_host(providers, events=()):
    """Answer the provider listing and the event query like PowerShell would."""

    def run(command, **kwargs):
        if "-ListProvider" in command:
            return json.dumps([{"Name": p} for p in providers])
        return json.dumps(list(events))

    return run


class TestHardwareEvents:
    @patch("bluebox.events.run_ps", side_effect=fake_host(["disk", "Microsoft-Windows-WHEA-Logger"]))
    def test_registered_providers_keep_candidate_order(self, mock_ps):
        assert registered_providers(HARDWARE_PROVIDERS) == ["Microsoft-Windows-WHEA-Logger", "disk"]

    @patch("bluebox.events.run_ps", return_value="[]")
    def test_provider_listing_ends_with_json_conversion(self, mock_ps):
        registered_providers(HARDWARE_PROVIDERS)
        command = mock_ps.call_args[0][0]
        assert "-ErrorAction SilentlyContinue" in command
        assert command.rstrip().endswith("ConvertTo-Json -InputObject @($found | Select-Object Name) -Compress")

    @patch("bluebox.helpers.subprocess.run")
    def test_partial_provider_match_survives_nonzero_exit(self, mock_run):
        listing = MagicMock(
            stdout=b'[{"Name":"disk"},{"Name":"Microsoft-Windows-WHEA-Logger"}]',
            stderr=b"There is not an event provider on the localhost computer that matches \"iaStorA\".",
            returncode=1,
        )
        query = MagicMock(stdout=json.dumps([raw_event(7, ProviderName="disk")]).encode(), stderr=b"", returncode=0)
        mock_run.side_effect = [listing, query]
        errors = []
        records = collect_hardware_events(errors=errors)
        assert errors == []
        assert [r.event_id for r in records] == [7]
        assert mock_run.call_count == 2

    @patch("bluebox.events.run_ps", side_effect=fake_host([]))
    def test_no_providers_records_one_error_and_does_not_query(self, mock_ps):
        errors = []
        assert collect_hardware_events(errors=errors) == []
        assert len(errors) == 1
        assert "no matching event providers" in errors[0]
        assert mock_ps.call_count == 1

    @patch("bluebox.events.run_ps", side_effect=fake_host(["disk"], [raw_event(7, ProviderName="disk")]))
    def test_queries_only_registered_providers(self, mock_ps):
        records = collect_hardware_events(errors=[])
        assert records[0].category is EventCategory.HARDWARE
        query = mock_ps.call_args[0][0]
        assert "LogName = 'System'" in query
        assert "ProviderName = 'disk' " in query or "ProviderName = 'disk';" in query


class TestCollectAllEvents:
    @patch("bluebox.events.registered_providers", return_value=[])
    @patch("bluebox.events.run_ps")
    def test_one_failing_category_does_not_affect_others(self, mock_ps, mock_providers):
        mock_ps.side_effect = [
            PowerShellError("Application log is corrupt"),
            json.dumps([raw_event(41)]),
        ]
        errors = []
        events = collect_all_events(errors=errors)
        assert set(events) == set(EventCategory)
        assert events[EventCategory.APPLICATION] == []
        assert [r.event_id for r in events[EventCategory.SYSTEM]] == [41]
        assert events[EventCategory.HARDWARE] == []
        assert len(errors) == 2
