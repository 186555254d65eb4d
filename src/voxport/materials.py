"""
Material Descriptors

A Material describes a kind of voxel (its id, map color, shape and
opacity). A VoxelMaterial is what a grid cell actually holds: a Material
plus the per-instance tint and per-position color sampled from the source.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

RGB = Tuple[int, int, int]
Box = Tuple[Tuple[float, float, float], Tuple[float, float, float]]

UNIT_BOX: Box = ((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
WHITE: RGB = (255, 255, 255)


class MaterialShape(Enum):
    """How a material occupies its cell."""
    CUBE = "cube"
    CROSS = "cross"  # flat or plant-like: rendered as two crossed thin boxes


@dataclass(frozen=True)
class Material:
    """
    Static description of a voxel kind.

    Attributes:
        id: Namespaced identifier, e.g. "minecraft:stone"
        map_color: Representative RGB color
        shape: Cube or cross
        opaque: True when the material is a fully opaque full cube
        boxes: Sub-boxes in unit cell space (cube shape only)
        texture: Optional path to the base texture PNG
    """

    id: str
    map_color: RGB = WHITE
    shape: MaterialShape = MaterialShape.CUBE
    opaque: bool = True
    boxes: Tuple[Box, ...] = (UNIT_BOX,)
    texture: Optional[Path] = None

    @property
    def name(self) -> str:
        """Identifier without its namespace."""
        return self.id.rsplit(":", 1)[-1]

    @property
    def is_flat(self) -> bool:
        return self.shape == MaterialShape.CROSS

    @property
    def is_opaque_full(self) -> bool:
        return self.opaque and not self.is_flat and self.boxes == (UNIT_BOX,)


@dataclass(frozen=True)
class VoxelMaterial:
    """
    The content of one grid cell.

    Attributes:
        material: Base material
        tint: Optional per-instance tint (e.g. biome grass color)
        color: Optional per-position color overriding material.map_color
    """

    material: Material
    tint: Optional[RGB] = None
    color: Optional[RGB] = None

    @property
    def display_color(self) -> RGB:
        return self.color if self.color is not None else self.material.map_color

    @property
    def is_flat(self) -> bool:
        return self.material.is_flat

    @property
    def is_opaque_full(self) -> bool:
        return self.material.is_opaque_full


STONE = Material("minecraft:stone", (125, 125, 125))

# Used for solidify and for diagonal connectors
FILLER = VoxelMaterial(STONE)


def hex_color(rgb: RGB) -> str:
    """Lowercase six-digit hex string for an RGB triple."""
    return "{:02x}{:02x}{:02x}".format(*rgb)
