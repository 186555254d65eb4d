"""
Export and Import Settings

Plain dataclasses holding every tunable of the pipeline. Values are
validated on construction; `from_dict` additionally rejects unknown keys so
typos in caller-supplied option maps surface as ConfigurationError.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Type, TypeVar

from .errors import ConfigurationError

T = TypeVar("T")

QUANTIZER_STRATEGIES = ("balanced", "hue")


class ObjMode(Enum):
    """Material representation in OBJ output."""
    COLOR = "color"
    TEXTURE = "texture"


def _from_mapping(cls: Type[T], values: Mapping[str, Any]) -> T:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown setting(s) for {cls.__name__}: {', '.join(unknown)}")
    try:
        return cls(**dict(values))
    except TypeError as exc:
        raise ConfigurationError(str(exc)) from exc


@dataclass
class ExportSettings:
    """
    Settings for voxel grid -> STL/OBJ export.

    Attributes:
        scale: Output units per voxel
        merge: Greedy-merge coplanar faces (False = one box per voxel)
        solidify: Fill hollow columns below the topmost solid cell
        repair_diagonals: Add connectors at diagonal edge junctions
        connector_half_thickness: Connector half-width in voxel units
        obj_mode: Color (Kd) or texture (map_Kd) materials
        texture_dir_suffix: Suffix of the texture directory next to the OBJ
    """

    scale: float = 1.0
    merge: bool = True
    solidify: bool = False
    repair_diagonals: bool = True
    connector_half_thickness: float = 0.02
    obj_mode: ObjMode = ObjMode.COLOR
    texture_dir_suffix: str = "_textures"

    def __post_init__(self):
        if isinstance(self.obj_mode, str):
            try:
                self.obj_mode = ObjMode(self.obj_mode.lower())
            except ValueError:
                raise ConfigurationError(f"Unknown OBJ mode: {self.obj_mode}") from None
        if not self.scale > 0:
            raise ConfigurationError(f"scale must be positive, got {self.scale}")
        if not 0 < self.connector_half_thickness < 0.5:
            raise ConfigurationError(
                f"connector_half_thickness must be in (0, 0.5), got {self.connector_half_thickness}"
            )
        if not self.texture_dir_suffix:
            raise ConfigurationError("texture_dir_suffix must not be empty")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ExportSettings":
        return _from_mapping(cls, values)

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["obj_mode"] = self.obj_mode.value
        return result


@dataclass
class ImportSettings:
    """
    Settings for mesh -> voxel conversion.

    Attributes:
        scale: Voxels per model unit
        fill_interior: Fill enclosed cavities after surface voxelization
        strategy: Palette matching strategy ("balanced" or "hue")
        samples_per_voxel: Surface sampling density along triangle edges
    """

    scale: float = 1.0
    fill_interior: bool = False
    strategy: str = "balanced"
    samples_per_voxel: int = 2

    def __post_init__(self):
        if not self.scale > 0:
            raise ConfigurationError(f"scale must be positive, got {self.scale}")
        if self.strategy not in QUANTIZER_STRATEGIES:
            raise ConfigurationError(
                f"Unknown quantizer strategy: {self.strategy!r}. "
                f"Valid: {', '.join(QUANTIZER_STRATEGIES)}"
            )
        if self.samples_per_voxel < 1:
            raise ConfigurationError("samples_per_voxel must be at least 1")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "ImportSettings":
        return _from_mapping(cls, values)
