"""
Progress Reporting

Long-running operations accept an optional single-argument callback
receiving a fraction in [0, 1]. The callback doubles as the cancellation
checkpoint: raising ExportCancelled from it aborts the operation.
"""

from typing import Callable, Optional

ProgressCallback = Callable[[float], None]


class ProgressRange:
    """
    Maps a phase-local fraction onto a sub-range of the overall progress.

    Example:
        >>> meshing = ProgressRange(callback, 0.0, 0.8)
        >>> meshing(0.5)   # reports 0.4
    """

    def __init__(self, callback: Optional[ProgressCallback], start: float = 0.0, end: float = 1.0):
        self.callback = callback
        self.start = start
        self.end = end

    def __call__(self, fraction: float):
        if self.callback is None:
            return
        fraction = min(max(fraction, 0.0), 1.0)
        self.callback(self.start + (self.end - self.start) * fraction)

    def sub(self, start: float, end: float) -> "ProgressRange":
        """Nested range covering [start, end] of this one."""
        span = self.end - self.start
        return ProgressRange(self.callback, self.start + span * start, self.start + span * end)


def report(callback: Optional[ProgressCallback], fraction: float):
    if callback is not None:
        callback(fraction)
