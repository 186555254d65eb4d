"""
Manifold Repair Pass

Two solid voxels that touch only along a vertical edge (a 2x2 checkerboard
footprint) produce non-manifold geometry that most slicers reject. This
pass finds every such junction and adds a thin filler post around the
shared edge so the two voxels become connected by a face.

Connectors are emitted as independent quads appended after the main mesh;
they are never merged with it.
"""

import logging
from typing import List, Optional

import numpy as np
from numba import njit

from .geometry import Cuboid, MergedQuad, box_faces
from .greedy_mesh import effective_labels
from .materials import FILLER, VoxelMaterial
from .voxelizer import VoxelGrid

logger = logging.getLogger(__name__)

DEFAULT_HALF_THICKNESS = 0.02


@njit(cache=True)
def _is_checkerboard(solid: np.ndarray, x: int, y: int, z: int) -> bool:
    b00 = solid[x, y, z]
    b10 = solid[x + 1, y, z]
    b01 = solid[x, y, z + 1]
    b11 = solid[x + 1, y, z + 1]
    return (b00 and b11 and not b10 and not b01) or (b10 and b01 and not b00 and not b11)


@njit(cache=True)
def _find_checkerboards(solid: np.ndarray) -> np.ndarray:
    """
    Origins (x, y, z) of every diagonal 2x2 footprint.

    Two passes: count, then fill a preallocated array.
    """
    sx, sy, sz = solid.shape
    count = 0
    for x in range(sx - 1):
        for z in range(sz - 1):
            for y in range(sy):
                if _is_checkerboard(solid, x, y, z):
                    count += 1

    found = np.zeros((count, 3), dtype=np.int32)
    i = 0
    for x in range(sx - 1):
        for z in range(sz - 1):
            for y in range(sy):
                if _is_checkerboard(solid, x, y, z):
                    found[i, 0] = x
                    found[i, 1] = y
                    found[i, 2] = z
                    i += 1
    return found


class ManifoldRepair:
    """
    Diagonal-junction repair.

    Uses the same solidify rule as the greedy mesher, so the repair sees
    exactly the geometry that will be exported.
    """

    def __init__(
        self,
        half_thickness: float = DEFAULT_HALF_THICKNESS,
        filler: VoxelMaterial = FILLER
    ):
        """
        Initialize the repair pass.

        Args:
            half_thickness: Connector half-width in voxel units
            filler: Material of connector faces
        """
        if not 0 < half_thickness < 0.5:
            raise ValueError(f"half_thickness must be in (0, 0.5), got {half_thickness}")
        self.half_thickness = half_thickness
        self.filler = filler

    def find_junctions(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        solidify: bool = False
    ) -> np.ndarray:
        """
        Locate diagonal junctions.

        Returns:
            (K, 3) int32 array of cuboid-relative footprint origins; the
            shared edge of each is at (x + 1, z + 1)
        """
        cuboid = cuboid or grid.cuboid
        volume = grid.to_labels(cuboid, extra=(self.filler,))
        labels = effective_labels(volume, solidify, volume.label_of(self.filler))
        solid = (labels != 0) & ~volume.flat[labels]
        return _find_checkerboards(solid)

    def connectors(self, junctions: np.ndarray) -> List[MergedQuad]:
        """Six filler quads per junction."""
        eps = self.half_thickness
        quads: List[MergedQuad] = []
        for x, y, z in junctions:
            cx = float(x) + 1.0
            cz = float(z) + 1.0
            y = float(y)
            quads.extend(box_faces(
                (cx - eps, y, cz - eps),
                (cx + eps, y + 1.0, cz + eps),
                self.filler
            ))
        return quads

    def repair(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        solidify: bool = False
    ) -> List[MergedQuad]:
        """
        Connector quads for every diagonal junction in the region.

        Args:
            grid: Source voxel grid
            cuboid: Region (defaults to the grid cuboid)
            solidify: Apply the solidify rule before testing solidity

        Returns:
            Quads to append after the main mesh
        """
        junctions = self.find_junctions(grid, cuboid, solidify)
        if len(junctions):
            logger.info("Adding %d diagonal connectors", len(junctions))
        return self.connectors(junctions)
