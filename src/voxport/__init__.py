"""
voxport
=======

Voxel <-> mesh export pipeline for 3D printing and external rendering.

This package converts a bounded region of a voxel grid into binary STL or
OBJ + MTL, and voxelizes triangle meshes (OBJ, GLB, STL) back onto a fixed
block palette.

Key Features:
- Greedy Meshing with Numba JIT compilation
- Manifold repair of diagonal edge junctions
- Two palette matching strategies (weighted RGB and hue-first)
- Tinted texture export for OBJ
- GLB decoding with embedded textures

Example Usage:
    from voxport import ModelImporter, VoxelExporter

    grid = ModelImporter().load("statue.glb")
    result = VoxelExporter().export_stl(grid, "statue.stl")
"""

__version__ = "1.0.0"

from .config import ExportSettings, ImportSettings, ObjMode
from .errors import ConfigurationError, ExportCancelled, ExportIOError, FormatError, VoxportError
from .exporter import VoxelExporter
from .geometry import Cuboid, FaceDirection, MergedQuad
from .greedy_mesh import BoxMesher, GreedyMesher
from .importer import ModelImporter
from .manifold import ManifoldRepair
from .materials import Material, MaterialShape, VoxelMaterial
from .mesh import EmbeddedImage, Mesh
from .palette import Category, Palette, PaletteEntry, default_palette
from .color import ColorQuantizer
from .result import ExportResult, ExportStatus
from .voxelizer import VoxelGrid, Voxelizer

__all__ = [
    "ExportSettings",
    "ImportSettings",
    "ObjMode",
    "ConfigurationError",
    "ExportCancelled",
    "ExportIOError",
    "FormatError",
    "VoxportError",
    "VoxelExporter",
    "Cuboid",
    "FaceDirection",
    "MergedQuad",
    "BoxMesher",
    "GreedyMesher",
    "ModelImporter",
    "ManifoldRepair",
    "Material",
    "MaterialShape",
    "VoxelMaterial",
    "EmbeddedImage",
    "Mesh",
    "Category",
    "Palette",
    "PaletteEntry",
    "default_palette",
    "ColorQuantizer",
    "ExportResult",
    "ExportStatus",
    "VoxelGrid",
    "Voxelizer",
]
