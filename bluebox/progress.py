import sys
from typing import TextIO


class Progress:
    """Prints ``[ nn%] label`` lines for a fixed number of steps."""

    def __init__(self, total: int, *, stream: TextIO | None = None, enabled: bool = True):
        if total <= 0:
            raise ValueError("total must be positive")
        self.total = total
        self.done = 0
        self.stream = stream if stream is not None else sys.stdout
        self.enabled = enabled

    @property
    def percent(self) -> int:
        return min(100, self.done * 100 // self.total)

    def step(self, label: str) -> None:
        """Announce the step that is starting."""
        if self.enabled:
            print(f"  [{self.percent:3d}%] {label}...", file=self.stream)
        self.done = min(self.total, self.done + 1)

    def finish(self, label: str = "Done") -> None:
        self.done = self.total
        if self.enabled:
            print(f"  [{self.percent:3d}%] {label}", file=self.stream)
