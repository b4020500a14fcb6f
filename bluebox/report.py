"""Assemble collected data into one document and (de)serialize it."""

import json
from collections.abc import Mapping, Sequence

from .models import (
    EventCategory,
    EventRecord,
    HardwareProfile,
    InstalledApplication,
    ReportDocument,
    RunMetadata,
)


def assemble(
    metadata: RunMetadata,
    events: Mapping[EventCategory, Sequence[EventRecord]],
    hardware: HardwareProfile,
    applications: Sequence[InstalledApplication],
) -> ReportDocument:
    """Merge collector output. Every category is present, possibly empty."""
    return ReportDocument(
        metadata=metadata,
        events={cat: list(events.get(cat) or []) for cat in EventCategory},
        hardware=hardware,
        applications=list(applications),
    )


def to_json(document: ReportDocument, *, indent: int | None = 2) -> str:
    return json.dumps(document.to_dict(), indent=indent, ensure_ascii=False)


def from_json(text: str) -> ReportDocument:
    return ReportDocument.from_dict(json.loads(text))


def summary_counts(document: ReportDocument) -> dict[str, int]:
    counts = {cat.value: len(document.events[cat]) for cat in EventCategory}
    counts["Applications"] = len(document.applications)
    counts["Errors"] = len(document.metadata.errors)
    return counts
