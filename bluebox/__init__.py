"""BlueBox: one-shot Windows diagnostics report (events, hardware, software)."""

__version__ = "1.0.0"
