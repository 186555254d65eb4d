"""
Model Import

Loads triangle meshes from disk and voxelizes them onto the palette:
- .obj (with MTL colors and texture averages)
- .glb (embedded base color image sampled per triangle)
- .stl (geometry only; every voxel gets the closest match to white)
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .color import ColorQuantizer
from .config import ImportSettings
from .errors import FormatError
from .formats.glb import read_glb
from .formats.obj import read_obj
from .formats.stl import read_stl
from .mesh import Mesh
from .palette import Palette, default_palette
from .voxelizer import VoxelGrid, Voxelizer

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".obj", ".glb", ".stl")


def load_mesh(path: Union[str, Path]) -> Mesh:
    """
    Read a mesh file, choosing the reader by extension.

    Raises:
        FormatError: Unsupported extension or malformed file
        ExportIOError: The file cannot be read
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".obj":
        return read_obj(path)
    if suffix == ".glb":
        return read_glb(path)
    if suffix == ".stl":
        stl = read_stl(path)
        positions = stl.triangles.reshape(-1, 3)
        triangles = np.arange(len(positions), dtype=np.uint32).reshape(-1, 3)
        return Mesh(positions=positions, triangles=triangles)
    raise FormatError(
        f"Unsupported model format: {suffix or path.name}. "
        f"Valid: {', '.join(SUPPORTED_SUFFIXES)}"
    )


class ModelImporter:
    """
    Mesh file -> VoxelGrid conversion.

    Attributes:
        settings: Import settings
        quantizer: Palette matcher shared by every call
    """

    def __init__(self, settings: Optional[ImportSettings] = None, palette: Optional[Palette] = None):
        self.settings = settings or ImportSettings()
        self.quantizer = ColorQuantizer(palette or default_palette(), self.settings.strategy)
        self.voxelizer = Voxelizer(
            self.quantizer,
            scale=self.settings.scale,
            fill_interior=self.settings.fill_interior,
            samples_per_voxel=self.settings.samples_per_voxel,
        )

    def voxelize(self, mesh: Mesh) -> VoxelGrid:
        return self.voxelizer.voxelize(mesh)

    def load(self, path: Union[str, Path]) -> VoxelGrid:
        """
        Read and voxelize a model file.

        Args:
            path: .obj, .glb or .stl file

        Returns:
            VoxelGrid anchored at the origin
        """
        mesh = load_mesh(path)
        grid = self.voxelize(mesh)
        logger.info("Imported %s: %d triangles -> %d voxels", path, mesh.triangle_count, grid.count_voxels())
        return grid
