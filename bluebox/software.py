"""Installed programs from the Windows Uninstall registry keys."""

from collections.abc import Iterable

from .errors import PowerShellError
from .helpers import clean_str, parse_json_rows, ps_quote, run_ps
from .models import InstalledApplication

# Per-machine 64-bit, per-machine 32-bit on 64-bit, per-user.
UNINSTALL_LOCATIONS: tuple[str, ...] = (
    r"HKLM:\Software\Microsoft\Windows\CurrentVersion\Uninstall\*",
    r"HKLM:\Software\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall\*",
    r"HKCU:\Software\Microsoft\Windows\CurrentVersion\Uninstall\*",
)

_FIELDS = "DisplayName, DisplayVersion, Publisher, InstallDate, InstallLocation, UninstallString"


def build_query(locations: Iterable[str] = UNINSTALL_LOCATIONS) -> str:
    # One Get-ItemProperty per key so enumeration order follows UNINSTALL_LOCATIONS;
    # missing keys are skipped silently.
    reads = "; ".join(
        f"Get-ItemProperty -Path {ps_quote(loc)} -ErrorAction SilentlyContinue | Select-Object {_FIELDS}"
        for loc in locations
    )
    return (
        f"$rows = @({reads}); "
        "if ($rows.Count -eq 0) { '[]'; exit 0 }; "
        "ConvertTo-Json -InputObject $rows -Compress -Depth 2"
    )


def normalize_application(raw: dict) -> InstalledApplication | None:
    name = clean_str(raw.get("DisplayName"))
    # Skip entries without a name and unexpanded installer placeholders
    if not name or name.startswith("${{"):
        return None
    return InstalledApplication(
        name=name,
        version=clean_str(raw.get("DisplayVersion")),
        publisher=clean_str(raw.get("Publisher")),
        install_date=clean_str(raw.get("InstallDate")),
        install_location=clean_str(raw.get("InstallLocation")),
        uninstall_string=clean_str(raw.get("UninstallString")),
    )


def name_sort_key(app: InstalledApplication) -> tuple[str, str]:
    """Case-insensitive ordinal ordering, raw name as tiebreak."""
    return (app.name.casefold(), app.name)


def unique_by_name(apps: Iterable[InstalledApplication]) -> list[InstalledApplication]:
    """Sort by name and keep the first entry per case-folded name.

    The sort is stable, so among equal names the earliest enumerated entry wins.
    """
    out: list[InstalledApplication] = []
    seen: set[str] = set()
    for app in sorted(apps, key=name_sort_key):
        key = app.name.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(app)
    return out


def collect_applications(errors: list[str] | None = None) -> list[InstalledApplication]:
    """Enumerate installed applications, deduplicated by name.

    A failure of the query as a whole is recorded in *errors* (when given)
    and yields an empty list.
    """
    try:
        raw = run_ps(build_query(), check=True)
        rows = parse_json_rows(raw, check=True)
    except PowerShellError as e:
        if errors is None:
            raise
        errors.append(f"Installed applications: {e}")
        return []

    apps = [a for a in (normalize_application(r) for r in rows) if a is not None]
    return unique_by_name(apps)
