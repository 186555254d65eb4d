"""
Exception Hierarchy

All errors raised by voxport derive from VoxportError so callers can catch
the whole family at once. The concrete classes also derive from the builtin
exception that best describes them (ValueError for bad input, OSError for
filesystem failures) so generic handlers keep working.
"""

from pathlib import Path
from typing import Optional, Union


class VoxportError(Exception):
    """Base class for every voxport error."""


class FormatError(VoxportError, ValueError):
    """Malformed STL, OBJ, MTL or GLB input."""


class ConfigurationError(VoxportError, ValueError):
    """Invalid static configuration (empty palette, unknown strategy, ...)."""


class ExportIOError(VoxportError, OSError):
    """
    Filesystem failure while reading or writing an export.

    Attributes:
        path: The file that could not be read or written
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{message} ({self.path})"
        return message


class ExportCancelled(VoxportError):
    """Raised from a progress callback to abort a running export."""
