"""
Triangle Mesh Container

Holds decoded model data (from GLB or OBJ) on its way to the voxelizer or
to another file format. UV coordinates use a top-left origin (glTF
convention); OBJ readers and writers flip v at the boundary.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .materials import RGB


@dataclass
class EmbeddedImage:
    """Raw image bytes extracted from a model container."""
    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        return ".png" if "png" in self.mime_type.lower() else ".jpg"


@dataclass
class Mesh:
    """
    Indexed triangle mesh.

    Attributes:
        positions: (N, 3) float32 vertex positions
        triangles: (M, 3) uint32 vertex indices
        uvs: Optional (N, 2) float32 texture coordinates
        image: Optional embedded base color texture
        triangle_materials: Optional per-triangle material names
        material_colors: Diffuse color per material name
    """

    positions: np.ndarray
    triangles: np.ndarray
    uvs: Optional[np.ndarray] = None
    image: Optional[EmbeddedImage] = None
    triangle_materials: Optional[List[Optional[str]]] = None
    material_colors: Dict[str, RGB] = field(default_factory=dict)

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.triangles = np.asarray(self.triangles, dtype=np.uint32).reshape(-1, 3)
        if self.uvs is not None:
            self.uvs = np.asarray(self.uvs, dtype=np.float32).reshape(-1, 2)
            if len(self.uvs) != len(self.positions):
                raise ValueError(
                    f"uv count {len(self.uvs)} does not match vertex count {len(self.positions)}"
                )
        if len(self.triangles) and int(self.triangles.max()) >= len(self.positions):
            raise ValueError("triangle index out of range")
        if self.triangle_materials is not None and len(self.triangle_materials) != len(self.triangles):
            raise ValueError("triangle_materials length does not match triangle count")

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def has_uvs(self) -> bool:
        return self.uvs is not None

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned (min, max) of the vertex positions."""
        if len(self.positions) == 0:
            zero = np.zeros(3, dtype=np.float32)
            return zero, zero
        return self.positions.min(axis=0), self.positions.max(axis=0)
