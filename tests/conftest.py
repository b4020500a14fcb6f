import datetime

import pytest

from bluebox.models import (
    BaseboardInfo,
    BiosInfo,
    CpuInfo,
    DiskInfo,
    EventCategory,
    EventRecord,
    GpuInfo,
    HardwareProfile,
    InstalledApplication,
    MemoryModule,
    NetworkAdapterInfo,
    OperatingSystemInfo,
    ReportDocument,
    RunMetadata,
    SystemInfo,
)

UTC = datetime.timezone.utc


@pytest.fixture
def hardware_profile():
    return HardwareProfile(
        system=SystemInfo(manufacturer="Contoso", model="Büro PC 9000", chassis_type="Desktop", total_ram_gb=31.86),
        os=OperatingSystemInfo(
            caption="Microsoft Windows 11 Pro",
            version="10.0.22631",
            build_number="22631",
            install_date=datetime.datetime(2024, 3, 1, 9, 30, tzinfo=UTC),
            last_boot_up_time=None,
            architecture="64-bit",
        ),
        bios=BiosInfo(manufacturer="AMI", version="F12", release_date=None, serial_number=None),
        baseboard=BaseboardInfo(manufacturer="Contoso", product="B650", version=None, serial_number="SN-1"),
        cpus=(CpuInfo(name="Ryzen 7 7700", cores=8, logical_processors=16, max_clock_mhz=3800),),
        memory=(
            MemoryModule(slot="DIMM 1", manufacturer="Kingston", part_number="KF560", capacity_gb=16.0, speed_mhz=6000, memory_type="DDR5"),
            MemoryModule(slot="DIMM 2", manufacturer=None, part_number=None, capacity_gb=16.0, speed_mhz=None, memory_type=None),
        ),
        disks=(DiskInfo(model="NVMe 1TB", interface_type="SCSI", media_type="Fixed hard disk media", size_gb=931.51, serial_number=None),),
        gpus=(GpuInfo(name="Radeon RX 7800 XT", driver_version="31.0.24027.1012", vram_gb=16.0),),
        network_adapters=(NetworkAdapterInfo(name="Intel(R) Ethernet", mac_address="00:11:22:33:44:55", speed_mbps=1000.0),),
    )


@pytest.fixture
def make_event():
    def _make(event_id=41, when=None, category=EventCategory.SYSTEM, message="Kernel-Power"):
        return EventRecord(
            category=category,
            log_name="System",
            time_created=when or datetime.datetime(2026, 1, 15, 12, 0, tzinfo=UTC),
            level="Critical",
            event_id=event_id,
            provider_name="Microsoft-Windows-Kernel-Power",
            task_name=None,
            record_id=1234,
            message=message,
        )

    return _make


@pytest.fixture
def metadata():
    return RunMetadata(
        generated_at=datetime.datetime(2026, 2, 3, 10, 0, tzinfo=UTC),
        machine_name="WS-01",
        user_name="tester",
        start_time=datetime.datetime(2026, 1, 1, tzinfo=UTC),
        end_time=datetime.datetime(2026, 2, 3, tzinfo=UTC),
        event_ids=[41, 1000],
        max_events=5000,
        tool_version="1.0.0",
    )


@pytest.fixture
def document(metadata, hardware_profile, make_event):
    return ReportDocument(
        metadata=metadata,
        events={
            EventCategory.APPLICATION: [
                make_event(1000, category=EventCategory.APPLICATION, message="Faulting application name: app.exe")
            ],
            EventCategory.SYSTEM: [make_event(41)],
            EventCategory.HARDWARE: [],
        },
        hardware=hardware_profile,
        applications=[
            InstalledApplication(name="7-Zip 23.01 (x64)", version="23.01", publisher="Igor Pavlov"),
            InstalledApplication(name="Café Viewer", publisher="Ünïcode Ltd"),
        ],
    )
