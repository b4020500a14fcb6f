"""Hardware inventory from CIM (``Get-CimInstance``)."""

import datetime

import psutil

from .errors import HardwareQueryError, PowerShellError
from .helpers import clean_str, parse_json_rows, parse_ps_datetime, ps_json, run_ps, to_gib, to_int
from .models import (
    BaseboardInfo,
    BiosInfo,
    CpuInfo,
    DiskInfo,
    GpuInfo,
    HardwareProfile,
    MemoryModule,
    NetworkAdapterInfo,
    OperatingSystemInfo,
    SystemInfo,
)

# SMBIOS System Enclosure chassis types
CHASSIS_TYPES = {
    1: "Other",
    2: "Unknown",
    3: "Desktop",
    4: "Low Profile Desktop",
    5: "Pizza Box",
    6: "Mini Tower",
    7: "Tower",
    8: "Portable",
    9: "Laptop",
    10: "Notebook",
    11: "Hand Held",
    12: "Docking Station",
    13: "All in One",
    14: "Sub Notebook",
    15: "Space-Saving",
    16: "Lunch Box",
    17: "Main System Chassis",
    18: "Expansion Chassis",
    19: "SubChassis",
    20: "Bus Expansion Chassis",
    21: "Peripheral Chassis",
    22: "Storage Chassis",
    23: "Rack Mount Chassis",
    24: "Sealed-Case PC",
    30: "Tablet",
    31: "Convertible",
    32: "Detachable",
    35: "Mini PC",
    36: "Stick PC",
}

MEMORY_TYPES = {
    20: "DDR",
    21: "DDR2",
    22: "DDR2 FB-DIMM",
    24: "DDR3",
    26: "DDR4",
    30: "LPDDR4",
    34: "DDR5",
    35: "LPDDR5",
}

# Display adapter device class; each numbered subkey holds one driver.
_GPU_REG_BASE = (
    r"HKLM:\SYSTEM\CurrentControlSet\Control\Class"
    r"\{4d36e968-e325-11ce-bfc1-08002be10318}"
)

# Win32_NetworkAdapter.Speed when the link speed is unknown.
UNKNOWN_LINK_SPEED = 2**63 - 1


def _date(prop: str) -> str:
    return f"@{{n='{prop}';e={{ if ($_.{prop}) {{ $_.{prop}.ToString('o') }} }}}}"


QUERIES = {
    "system": (
        "Get-CimInstance Win32_ComputerSystem | "
        "Select-Object Manufacturer, Model, TotalPhysicalMemory"
    ),
    "enclosure": "Get-CimInstance Win32_SystemEnclosure | Select-Object ChassisTypes",
    "os": (
        "Get-CimInstance Win32_OperatingSystem | "
        f"Select-Object Caption, Version, BuildNumber, OSArchitecture, "
        f"{_date('InstallDate')}, {_date('LastBootUpTime')}"
    ),
    "bios": (
        "Get-CimInstance Win32_BIOS | "
        f"Select-Object Manufacturer, SMBIOSBIOSVersion, SerialNumber, {_date('ReleaseDate')}"
    ),
    "baseboard": (
        "Get-CimInstance Win32_BaseBoard | "
        "Select-Object Manufacturer, Product, Version, SerialNumber"
    ),
    "cpu": (
        "Get-CimInstance Win32_Processor | "
        "Select-Object Name, NumberOfCores, NumberOfLogicalProcessors, MaxClockSpeed"
    ),
    "memory": (
        "Get-CimInstance Win32_PhysicalMemory | "
        "Select-Object DeviceLocator, Manufacturer, PartNumber, Capacity, Speed, SMBIOSMemoryType"
    ),
    "disks": (
        "Get-CimInstance Win32_DiskDrive | "
        "Select-Object Model, InterfaceType, MediaType, Size, SerialNumber"
    ),
    "gpus": (
        "Get-CimInstance Win32_VideoController | "
        "Select-Object Name, DriverVersion, AdapterRAM"
    ),
    "network": (
        "Get-CimInstance Win32_NetworkAdapter | "
        "Select-Object Name, MACAddress, Speed, PhysicalAdapter, NetEnabled"
    ),
}


def _query(key: str) -> list[dict]:
    try:
        return ps_json(QUERIES[key], check=True)
    except PowerShellError as e:
        raise HardwareQueryError(f"{key} inventory query failed: {e}") from e


def _first(rows: list[dict]) -> dict:
    return rows[0] if rows else {}


def chassis_label(value: object) -> str | None:
    """Label for the first chassis code (CIM reports a list)."""
    if isinstance(value, list):
        value = value[0] if value else None
    code = to_int(value)
    if code is None:
        return None
    return CHASSIS_TYPES.get(code, f"Type {code}")


def memory_type_label(value: object) -> str | None:
    code = to_int(value)
    if not code:
        return None
    return MEMORY_TYPES.get(code, f"Type {code}")


def read_registry_vram() -> dict[str, int]:
    """Map driver description to 64-bit VRAM size from the display class key.

    Registry subkey order does not match CIM order, so callers match by name.
    """
    # The Properties subkey denies access, so the pipeline always ends with $? false.
    rows = parse_json_rows(
        run_ps(
            f"$keys = @(Get-ChildItem '{_GPU_REG_BASE}' -ErrorAction SilentlyContinue | "
            "ForEach-Object { Get-ItemProperty $_.PSPath -ErrorAction SilentlyContinue } | "
            "Where-Object { $_.DriverDesc -and $_.'HardwareInformation.qwMemorySize' }); "
            "if ($keys.Count -eq 0) { '[]'; exit 0 }; "
            "ConvertTo-Json -InputObject @($keys | Select-Object DriverDesc, "
            "@{n='MemorySize';e={[int64]$_.'HardwareInformation.qwMemorySize'}}) -Compress"
        )
    )
    vram: dict[str, int] = {}
    for r in rows:
        size = to_int(r.get("MemorySize"))
        desc = clean_str(r.get("DriverDesc"))
        if desc and size:
            vram[desc] = size
    return vram


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
def build_system(system: dict, enclosure: dict) -> SystemInfo:
    total = system.get("TotalPhysicalMemory")
    if total is None:
        total = psutil.virtual_memory().total
    return SystemInfo(
        manufacturer=clean_str(system.get("Manufacturer")),
        model=clean_str(system.get("Model")),
        chassis_type=chassis_label(enclosure.get("ChassisTypes")),
        total_ram_gb=to_gib(total),
    )


def build_os(o: dict) -> OperatingSystemInfo:
    boot = parse_ps_datetime(o.get("LastBootUpTime"))
    if boot is None and o:
        boot = _psutil_boot_time()
    return OperatingSystemInfo(
        caption=clean_str(o.get("Caption")),
        version=clean_str(o.get("Version")),
        build_number=clean_str(o.get("BuildNumber")),
        install_date=parse_ps_datetime(o.get("InstallDate")),
        last_boot_up_time=boot,
        architecture=clean_str(o.get("OSArchitecture")),
    )


def _psutil_boot_time() -> datetime.datetime:
    return datetime.datetime.fromtimestamp(psutil.boot_time()).astimezone()


def build_bios(b: dict) -> BiosInfo:
    return BiosInfo(
        manufacturer=clean_str(b.get("Manufacturer")),
        version=clean_str(b.get("SMBIOSBIOSVersion")),
        release_date=parse_ps_datetime(b.get("ReleaseDate")),
        serial_number=clean_str(b.get("SerialNumber")),
    )


def build_baseboard(b: dict) -> BaseboardInfo:
    return BaseboardInfo(
        manufacturer=clean_str(b.get("Manufacturer")),
        product=clean_str(b.get("Product")),
        version=clean_str(b.get("Version")),
        serial_number=clean_str(b.get("SerialNumber")),
    )


def build_cpu(c: dict) -> CpuInfo:
    return CpuInfo(
        name=clean_str(c.get("Name")),
        cores=to_int(c.get("NumberOfCores")),
        logical_processors=to_int(c.get("NumberOfLogicalProcessors")),
        max_clock_mhz=to_int(c.get("MaxClockSpeed")),
    )


def build_memory_module(m: dict) -> MemoryModule:
    return MemoryModule(
        slot=clean_str(m.get("DeviceLocator")),
        manufacturer=clean_str(m.get("Manufacturer")),
        part_number=clean_str(m.get("PartNumber")),
        capacity_gb=to_gib(m.get("Capacity")),
        speed_mhz=to_int(m.get("Speed")),
        memory_type=memory_type_label(m.get("SMBIOSMemoryType")),
    )


def build_disk(d: dict) -> DiskInfo:
    return DiskInfo(
        model=clean_str(d.get("Model")),
        interface_type=clean_str(d.get("InterfaceType")),
        media_type=clean_str(d.get("MediaType")),
        size_gb=to_gib(d.get("Size")),
        serial_number=clean_str(d.get("SerialNumber")),
    )


def build_gpu(g: dict, registry_vram: dict[str, int]) -> GpuInfo:
    name = clean_str(g.get("Name"))
    # Prefer registry (64-bit) over AdapterRAM (uint32, caps at 4 GiB).
    raw_vram = registry_vram.get(name) if name else None
    if raw_vram is None:
        raw_vram = g.get("AdapterRAM")
    return GpuInfo(
        name=name,
        driver_version=clean_str(g.get("DriverVersion")),
        vram_gb=to_gib(raw_vram),
    )


def is_active_physical(adapter: dict) -> bool:
    return adapter.get("PhysicalAdapter") is True and adapter.get("NetEnabled") is True


def build_adapter(a: dict) -> NetworkAdapterInfo:
    speed = to_int(a.get("Speed"))
    if speed is None or speed >= UNKNOWN_LINK_SPEED:
        speed_mbps = None
    else:
        speed_mbps = round(speed / 1_000_000, 2)
    return NetworkAdapterInfo(
        name=clean_str(a.get("Name")),
        mac_address=clean_str(a.get("MACAddress")),
        speed_mbps=speed_mbps,
    )


def collect_hardware() -> HardwareProfile:
    """Snapshot the machine's hardware. Raises HardwareQueryError on failure."""
    registry_vram = read_registry_vram()
    return HardwareProfile(
        system=build_system(_first(_query("system")), _first(_query("enclosure"))),
        os=build_os(_first(_query("os"))),
        bios=build_bios(_first(_query("bios"))),
        baseboard=build_baseboard(_first(_query("baseboard"))),
        cpus=tuple(build_cpu(c) for c in _query("cpu")),
        memory=tuple(build_memory_module(m) for m in _query("memory")),
        disks=tuple(build_disk(d) for d in _query("disks")),
        gpus=tuple(build_gpu(g, registry_vram) for g in _query("gpus")),
        network_adapters=tuple(build_adapter(a) for a in _query("network") if is_active_physical(a)),
    )
