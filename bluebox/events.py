"""Event log collection through ``Get-WinEvent -FilterHashtable``."""

import datetime
from collections.abc import Iterable, Sequence

from .errors import PowerShellError
from .helpers import clean_str, parse_json_rows, parse_ps_datetime, ps_quote, run_ps, to_int
from .models import EventCategory, EventRecord

EVENT_QUERY_TIMEOUT = 600

# Critical, Error, Warning. Warnings are always collected.
SEVERITY_LEVELS: tuple[int, ...] = (1, 2, 3)
LEVEL_NAMES = {1: "Critical", 2: "Error", 3: "Warning"}

# System-log providers that report hardware trouble (WHEA, storage, power).
HARDWARE_PROVIDERS: tuple[str, ...] = (
    "Microsoft-Windows-WHEA-Logger",
    "Microsoft-Windows-Kernel-Power",
    "Microsoft-Windows-Kernel-Processor-Power",
    "Microsoft-Windows-Resource-Exhaustion-Detector",
    "Microsoft-Windows-Ntfs",
    "Microsoft-Windows-StorDiag",
    "Microsoft-Windows-Disk",
    "disk",
    "Ntfs",
    "volmgr",
    "storahci",
    "stornvme",
    "iaStorA",
    "iaStorAC",
    "nvlddmkm",
    "amdkmdag",
    "Display",
    "BugCheck",
)

_NO_MATCH_ID = "NoMatchingEventsFound"

_SELECT = (
    "Select-Object "
    "@{n='TimeCreated';e={$_.TimeCreated.ToString('o')}}, "
    "Id, Level, LevelDisplayName, ProviderName, TaskDisplayName, RecordId, LogName, Message"
)


def _ps_date(dt: datetime.datetime) -> str:
    # DateTimeOffset keeps the caller's offset; FilterHashtable wants local time.
    return f"([DateTimeOffset]::Parse({ps_quote(dt.isoformat())}).LocalDateTime)"


def build_filter(
    log_name: str,
    *,
    providers: Sequence[str] | None = None,
    levels: Sequence[int] = SEVERITY_LEVELS,
    start_time: datetime.datetime | None = None,
    end_time: datetime.datetime | None = None,
    event_ids: Sequence[int] | None = None,
) -> str:
    """Build the ``-FilterHashtable`` literal. Omitted constraints are left out."""
    parts = [f"LogName = {ps_quote(log_name)}"]
    if providers:
        parts.append("ProviderName = " + ", ".join(ps_quote(p) for p in providers))
    parts.append("Level = " + ", ".join(str(int(lv)) for lv in levels))
    if start_time is not None:
        parts.append(f"StartTime = {_ps_date(start_time)}")
    if end_time is not None:
        parts.append(f"EndTime = {_ps_date(end_time)}")
    if event_ids:
        parts.append("Id = " + ", ".join(str(int(i)) for i in event_ids))
    return "@{ " + "; ".join(parts) + " }"


def build_query(filter_hashtable: str, max_events: int) -> str:
    """Wrap the filter so that an empty match prints ``[]`` instead of failing."""
    return (
        "try { "
        f"$events = @(Get-WinEvent -FilterHashtable {filter_hashtable} "
        f"-MaxEvents {int(max_events)} -ErrorAction Stop) "
        "} catch { "
        f"if ($_.FullyQualifiedErrorId -match '{_NO_MATCH_ID}') {{ '[]'; exit 0 }}; "
        "[Console]::Error.WriteLine($_.Exception.Message); exit 1 "
        "}; "
        "if ($events.Count -eq 0) { '[]'; exit 0 }; "
        f"ConvertTo-Json -InputObject @($events | {_SELECT}) -Compress -Depth 3"
    )


def normalize_event(raw: dict, category: EventCategory) -> EventRecord | None:
    """Flatten one ``Get-WinEvent`` row. Rows without a timestamp or ID are dropped."""
    created = parse_ps_datetime(raw.get("TimeCreated"))
    event_id = to_int(raw.get("Id"))
    if created is None or event_id is None:
        return None
    level = clean_str(raw.get("LevelDisplayName")) or LEVEL_NAMES.get(to_int(raw.get("Level")), "Unknown")
    return EventRecord(
        category=category,
        log_name=clean_str(raw.get("LogName")) or "",
        time_created=created,
        level=level,
        event_id=event_id,
        provider_name=clean_str(raw.get("ProviderName")),
        task_name=clean_str(raw.get("TaskDisplayName")),
        record_id=to_int(raw.get("RecordId")),
        message=clean_str(raw.get("Message")),
    )


def event_matches(
    record: EventRecord,
    *,
    start_time: datetime.datetime | None = None,
    end_time: datetime.datetime | None = None,
    event_ids: Iterable[int] | None = None,
) -> bool:
    """Inclusive time window and ID allowlist check."""
    if start_time is not None and record.time_created < start_time:
        return False
    if end_time is not None and record.time_created > end_time:
        return False
    if event_ids is not None and record.event_id not in set(event_ids):
        return False
    return True


def collect_events(
    log_name: str,
    category: EventCategory,
    *,
    providers: Sequence[str] | None = None,
    levels: Sequence[int] = SEVERITY_LEVELS,
    start_time: datetime.datetime | None = None,
    end_time: datetime.datetime | None = None,
    event_ids: Sequence[int] | None = None,
    max_events: int = 2000,
    errors: list[str],
) -> list[EventRecord]:
    """Query one log. Failures are appended to *errors* and yield ``[]``."""
    fh = build_filter(
        log_name,
        providers=providers,
        levels=levels,
        start_time=start_time,
        end_time=end_time,
        event_ids=event_ids,
    )
    try:
        raw = run_ps(build_query(fh, max_events), timeout=EVENT_QUERY_TIMEOUT, check=True)
        rows = parse_json_rows(raw, check=True)
    except PowerShellError as e:
        errors.append(f"{category.value} events ({log_name}): {e}")
        return []

    records = []
    for row in rows:
        record = normalize_event(row, category)
        if record is None:
            continue
        if not event_matches(record, start_time=start_time, end_time=end_time, event_ids=event_ids):
            continue
        records.append(record)
    return records[:max_events]


def registered_providers(candidates: Sequence[str]) -> list[str]:
    """Return the subset of *candidates* registered on this host, in order."""
    names = ", ".join(ps_quote(c) for c in candidates)
    # Missing names leave $? false; the final statement must succeed or stdout is lost.
    rows = parse_json_rows(
        run_ps(
            f"$found = @(Get-WinEvent -ListProvider {names} -ErrorAction SilentlyContinue); "
            "if ($found.Count -eq 0) { '[]'; exit 0 }; "
            "ConvertTo-Json -InputObject @($found | Select-Object Name) -Compress"
        )
    )
    found = {str(r.get("Name", "")).casefold() for r in rows}
    return [c for c in candidates if c.casefold() in found]


def collect_hardware_events(
    *,
    providers: Sequence[str] = HARDWARE_PROVIDERS,
    start_time: datetime.datetime | None = None,
    end_time: datetime.datetime | None = None,
    event_ids: Sequence[int] | None = None,
    max_events: int = 2000,
    errors: list[str],
) -> list[EventRecord]:
    """System-log events from hardware providers that exist on this host.

    Never falls back to an unfiltered query: with no registered providers
    the category is empty and one error is recorded.
    """
    available = registered_providers(providers)
    if not available:
        errors.append("Hardware events: no matching event providers found on this host")
        return []
    return collect_events(
        "System",
        EventCategory.HARDWARE,
        providers=available,
        start_time=start_time,
        end_time=end_time,
        event_ids=event_ids,
        max_events=max_events,
        errors=errors,
    )


def collect_all_events(
    *,
    start_time: datetime.datetime | None = None,
    end_time: datetime.datetime | None = None,
    event_ids: Sequence[int] | None = None,
    max_events: int = 2000,
    errors: list[str],
    progress=None,
) -> dict[EventCategory, list[EventRecord]]:
    """Collect Application, System and Hardware events in that order."""
    window = dict(start_time=start_time, end_time=end_time, event_ids=event_ids, max_events=max_events)
    out: dict[EventCategory, list[EventRecord]] = {}

    if progress:
        progress.step("Application event log")
    out[EventCategory.APPLICATION] = collect_events(
        "Application", EventCategory.APPLICATION, errors=errors, **window
    )

    if progress:
        progress.step("System event log")
    out[EventCategory.SYSTEM] = collect_events("System", EventCategory.SYSTEM, errors=errors, **window)

    if progress:
        progress.step("Hardware events")
    out[EventCategory.HARDWARE] = collect_hardware_events(errors=errors, **window)
    return out
