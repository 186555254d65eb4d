"""
Export Result Reporting

Top-level entry points never raise for format, I/O, configuration or
cancellation errors. They return an ExportResult that distinguishes full
success, partial success (geometry written, something cosmetic such as a
texture failed) and hard failure.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class ExportStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class ExportResult:
    """
    Outcome of one export or conversion.

    Attributes:
        status: Overall outcome
        outputs: Files written (possibly incomplete on failure)
        warnings: Non-fatal problems; non-empty implies PARTIAL
        error: The exception behind a FAILED status
        quad_count: Quads emitted (voxel exports)
        triangle_count: Triangles written
    """

    status: ExportStatus
    outputs: List[Path] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[BaseException] = None
    quad_count: int = 0
    triangle_count: int = 0

    @property
    def ok(self) -> bool:
        """True unless the export failed outright."""
        return self.status != ExportStatus.FAILED

    @classmethod
    def completed(
        cls,
        outputs: List[Path],
        warnings: Optional[List[str]] = None,
        quad_count: int = 0,
        triangle_count: int = 0
    ) -> "ExportResult":
        warnings = list(warnings or [])
        status = ExportStatus.PARTIAL if warnings else ExportStatus.SUCCESS
        return cls(status, list(outputs), warnings, None, quad_count, triangle_count)

    @classmethod
    def failed(cls, error: BaseException, outputs: Optional[List[Path]] = None) -> "ExportResult":
        return cls(ExportStatus.FAILED, list(outputs or []), [], error)
