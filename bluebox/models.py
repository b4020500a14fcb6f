"""Fixed-shape records that make up a report document.

Every record serializes to the PascalCase JSON shape the dashboard reads
(``to_dict``) and can be rebuilt from it (``from_dict``). Optional values
stay ``None`` in both directions.
"""

from __future__ import annotations

import dataclasses
import datetime
import enum
from typing import Any


class EventCategory(str, enum.Enum):
    APPLICATION = "Application"
    SYSTEM = "System"
    HARDWARE = "Hardware"


def _iso(dt: datetime.datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _from_iso(value: str | None) -> datetime.datetime | None:
    return datetime.datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class EventRecord:
    category: EventCategory
    log_name: str
    time_created: datetime.datetime
    level: str
    event_id: int
    provider_name: str | None
    task_name: str | None
    record_id: int | None
    message: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "Category": self.category.value,
            "LogName": self.log_name,
            "TimeCreated": _iso(self.time_created),
            "Level": self.level,
            "EventId": self.event_id,
            "ProviderName": self.provider_name,
            "TaskName": self.task_name,
            "RecordId": self.record_id,
            "Message": self.message,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EventRecord:
        return cls(
            category=EventCategory(d["Category"]),
            log_name=d["LogName"],
            time_created=_from_iso(d["TimeCreated"]),
            level=d["Level"],
            event_id=d["EventId"],
            provider_name=d.get("ProviderName"),
            task_name=d.get("TaskName"),
            record_id=d.get("RecordId"),
            message=d.get("Message"),
        )


# ---------------------------------------------------------------------------
# Hardware
# ---------------------------------------------------------------------------
class _Record:
    """Mixin mapping snake_case fields to PascalCase keys and back."""

    _KEYS: dict[str, str] = {}

    def to_dict(self) -> dict[str, Any]:
        out = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime.datetime):
                value = _iso(value)
            out[self._KEYS.get(f.name, _pascal(f.name))] = value
        return out

    @classmethod
    def from_dict(cls, d: dict[str, Any]):
        kwargs = {}
        for f in dataclasses.fields(cls):
            value = d.get(cls._KEYS.get(f.name, _pascal(f.name)))
            if f.type == "datetime.datetime | None":
                value = _from_iso(value)
            kwargs[f.name] = value
        return cls(**kwargs)


def _pascal(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_"))


@dataclasses.dataclass(frozen=True)
class SystemInfo(_Record):
    manufacturer: str | None
    model: str | None
    chassis_type: str | None
    total_ram_gb: float | None

    _KEYS = {"total_ram_gb": "TotalRamGB"}


@dataclasses.dataclass(frozen=True)
class OperatingSystemInfo(_Record):
    caption: str | None
    version: str | None
    build_number: str | None
    install_date: datetime.datetime | None
    last_boot_up_time: datetime.datetime | None
    architecture: str | None


@dataclasses.dataclass(frozen=True)
class BiosInfo(_Record):
    manufacturer: str | None
    version: str | None
    release_date: datetime.datetime | None
    serial_number: str | None


@dataclasses.dataclass(frozen=True)
class BaseboardInfo(_Record):
    manufacturer: str | None
    product: str | None
    version: str | None
    serial_number: str | None


@dataclasses.dataclass(frozen=True)
class CpuInfo(_Record):
    name: str | None
    cores: int | None
    logical_processors: int | None
    max_clock_mhz: int | None

    _KEYS = {"max_clock_mhz": "MaxClockMHz"}


@dataclasses.dataclass(frozen=True)
class MemoryModule(_Record):
    slot: str | None
    manufacturer: str | None
    part_number: str | None
    capacity_gb: float | None
    speed_mhz: int | None
    memory_type: str | None

    _KEYS = {"capacity_gb": "CapacityGB", "speed_mhz": "SpeedMHz"}


@dataclasses.dataclass(frozen=True)
class DiskInfo(_Record):
    model: str | None
    interface_type: str | None
    media_type: str | None
    size_gb: float | None
    serial_number: str | None

    _KEYS = {"size_gb": "SizeGB"}


@dataclasses.dataclass(frozen=True)
class GpuInfo(_Record):
    name: str | None
    driver_version: str | None
    vram_gb: float | None

    _KEYS = {"vram_gb": "VramGB"}


@dataclasses.dataclass(frozen=True)
class NetworkAdapterInfo(_Record):
    name: str | None
    mac_address: str | None
    speed_mbps: float | None

    _KEYS = {"mac_address": "MACAddress", "speed_mbps": "SpeedMbps"}


@dataclasses.dataclass(frozen=True)
class HardwareProfile:
    system: SystemInfo
    os: OperatingSystemInfo
    bios: BiosInfo
    baseboard: BaseboardInfo
    cpus: tuple[CpuInfo, ...]
    memory: tuple[MemoryModule, ...]
    disks: tuple[DiskInfo, ...]
    gpus: tuple[GpuInfo, ...]
    network_adapters: tuple[NetworkAdapterInfo, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "System": self.system.to_dict(),
            "OS": self.os.to_dict(),
            "BIOS": self.bios.to_dict(),
            "Baseboard": self.baseboard.to_dict(),
            "CPU": [c.to_dict() for c in self.cpus],
            "Memory": [m.to_dict() for m in self.memory],
            "Disks": [d.to_dict() for d in self.disks],
            "GPU": [g.to_dict() for g in self.gpus],
            "Network": [n.to_dict() for n in self.network_adapters],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HardwareProfile:
        return cls(
            system=SystemInfo.from_dict(d["System"]),
            os=OperatingSystemInfo.from_dict(d["OS"]),
            bios=BiosInfo.from_dict(d["BIOS"]),
            baseboard=BaseboardInfo.from_dict(d["Baseboard"]),
            cpus=tuple(CpuInfo.from_dict(c) for c in d["CPU"]),
            memory=tuple(MemoryModule.from_dict(m) for m in d["Memory"]),
            disks=tuple(DiskInfo.from_dict(x) for x in d["Disks"]),
            gpus=tuple(GpuInfo.from_dict(g) for g in d["GPU"]),
            network_adapters=tuple(NetworkAdapterInfo.from_dict(n) for n in d["Network"]),
        )


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------
@dataclasses.dataclass(frozen=True)
class InstalledApplication(_Record):
    name: str
    version: str | None = None
    publisher: str | None = None
    install_date: str | None = None
    install_location: str | None = None
    uninstall_string: str | None = None


# ---------------------------------------------------------------------------
# Run metadata and document
# ---------------------------------------------------------------------------
@dataclasses.dataclass
class RunMetadata:
    generated_at: datetime.datetime
    machine_name: str
    user_name: str
    start_time: datetime.datetime | None = None
    end_time: datetime.datetime | None = None
    event_ids: list[int] | None = None
    max_events: int = 2000
    include_warnings: bool = True
    tool_version: str | None = None
    errors: list[str] = dataclasses.field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "GeneratedAt": _iso(self.generated_at),
            "MachineName": self.machine_name,
            "UserName": self.user_name,
            "StartTime": _iso(self.start_time),
            "EndTime": _iso(self.end_time),
            "EventIds": list(self.event_ids) if self.event_ids is not None else None,
            "MaxEvents": self.max_events,
            "IncludeWarnings": self.include_warnings,
            "ToolVersion": self.tool_version,
            "Errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RunMetadata:
        return cls(
            generated_at=_from_iso(d["GeneratedAt"]),
            machine_name=d["MachineName"],
            user_name=d["UserName"],
            start_time=_from_iso(d.get("StartTime")),
            end_time=_from_iso(d.get("EndTime")),
            event_ids=d.get("EventIds"),
            max_events=d["MaxEvents"],
            include_warnings=d["IncludeWarnings"],
            tool_version=d.get("ToolVersion"),
            errors=list(d.get("Errors") or []),
        )


@dataclasses.dataclass
class ReportDocument:
    metadata: RunMetadata
    events: dict[EventCategory, list[EventRecord]]
    hardware: HardwareProfile
    applications: list[InstalledApplication]

    def to_dict(self) -> dict[str, Any]:
        return {
            "Metadata": self.metadata.to_dict(),
            "Events": {
                cat.value: [e.to_dict() for e in self.events.get(cat, [])]
                for cat in EventCategory
            },
            "Hardware": self.hardware.to_dict(),
            "Applications": [a.to_dict() for a in self.applications],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ReportDocument:
        events = d.get("Events") or {}
        return cls(
            metadata=RunMetadata.from_dict(d["Metadata"]),
            events={
                cat: [EventRecord.from_dict(e) for e in events.get(cat.value) or []]
                for cat in EventCategory
            },
            hardware=HardwareProfile.from_dict(d["Hardware"]),
            applications=[InstalledApplication.from_dict(a) for a in d["Applications"]],
        )
