"""PowerShell plumbing and unit conversions shared by the collectors."""

import datetime
import json
import re
import subprocess

from .errors import PowerShellError

DEFAULT_TIMEOUT = 120

# Make PowerShell emit UTF-8 regardless of the console code page.
_PS_PREAMBLE = (
    "$ErrorActionPreference = 'Stop'; "
    "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; "
)

_CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0)


# ---------------------------------------------------------------------------
# PowerShell
# ---------------------------------------------------------------------------
def run_ps(command: str, *, timeout: int = DEFAULT_TIMEOUT, check: bool = False) -> str:
    """Run a PowerShell command and return stdout.

    With ``check=False`` a non-zero exit still returns whatever was printed,
    and a launch failure yields ``""``. With ``check=True`` failures raise
    :class:`PowerShellError`.
    """
    try:
        r = subprocess.run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", _PS_PREAMBLE + command],
            capture_output=True,
            timeout=timeout,
            creationflags=_CREATE_NO_WINDOW,
        )
    except (OSError, subprocess.SubprocessError) as e:
        if check:
            raise PowerShellError(f"could not run PowerShell: {e}") from e
        return ""

    out = _decode(r.stdout)
    if r.returncode != 0 and check:
        err = _decode(r.stderr) or f"exit status {r.returncode}"
        raise PowerShellError(err.splitlines()[0] if err else err)
    return out


def _decode(raw: bytes | None) -> str:
    if not raw:
        return ""
    try:
        out = raw.decode("utf-8")
    except UnicodeDecodeError:
        out = raw.decode("cp1252", errors="replace")
    return out.replace("\x00", "").lstrip("\ufeff").strip()


def ps_json(command: str, *, timeout: int = DEFAULT_TIMEOUT, check: bool = False) -> list[dict]:
    """Run a PowerShell command that outputs JSON, return parsed list."""
    raw = run_ps(
        f"{command} | ConvertTo-Json -Compress -Depth 4",
        timeout=timeout,
        check=check,
    )
    return parse_json_rows(raw, check=check)


def parse_json_rows(raw: str, *, check: bool = False) -> list[dict]:
    """Parse ``ConvertTo-Json`` output, which collapses one-element arrays."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        if check:
            raise PowerShellError(f"unreadable PowerShell output: {e}") from e
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []


def ps_quote(value: object) -> str:
    """Quote *value* as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------
def to_gib(n: object) -> float | None:
    """Bytes to binary GiB, rounded to 2 decimals. Absent stays absent."""
    if n is None or isinstance(n, bool):
        return None
    try:
        return round(float(n) / 1024**3, 2)
    except (TypeError, ValueError):
        return None


def to_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def clean_str(value: object) -> str | None:
    """Strip strings; empty and missing values become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


_PS_DATE = re.compile(r"/Date\((-?\d+)\)/")


def parse_ps_datetime(value: object) -> datetime.datetime | None:
    """Parse a PowerShell date (ISO-8601 or ``/Date(ms)/``) as an aware datetime."""
    if value is None:
        return None
    if isinstance(value, dict):
        # PowerShell 5.1 wraps DateTime values as {"value": "/Date(...)/", ...}
        value = value.get("value") or value.get("DateTime")
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    m = _PS_DATE.search(text)
    if m:
        return datetime.datetime.fromtimestamp(int(m.group(1)) / 1000, tz=datetime.timezone.utc)
    try:
        dt = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def format_bytes(n: int | float) -> str:
    """Format bytes to human-readable string."""
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(n) < 1024:
            return f"{n:.1f} {unit}"
        n /= 1024
    return f"{n:.1f} PB"
