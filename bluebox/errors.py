class BlueBoxError(Exception):
    """Base class for report generation failures."""


class PowerShellError(BlueBoxError):
    """A PowerShell query could not be run or reported an error."""


class HardwareQueryError(BlueBoxError):
    """Mandatory hardware inventory could not be read."""
