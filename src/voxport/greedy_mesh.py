"""
Greedy Meshing Algorithm with Numba JIT Compilation

This module implements the Greedy Meshing algorithm for polygon reduction
of voxel geometry. The algorithm merges runs of adjacent exposed faces with
the same material into longer rectangular quads.

Performance: the per-slice sweep is a Numba kernel over a dense int32
label array, so cost is O(voxels) per direction.

Algorithm Overview:
1. Labelling: Convert the sparse grid to a dense label volume
2. Solidify (optional): Fill hollow columns with a filler material
3. Greedy Sweep: For each direction and depth slice, merge runs along u
4. Emit Geometry: Map (u, v, d) runs back to cuboid-relative quads

A second mesher, BoxMesher, emits unmerged per-voxel boxes for the flat
export path.
"""

import logging
from typing import List, NamedTuple, Optional

import numpy as np
from numba import njit

from .geometry import FACE_AXES, Cuboid, FaceDirection, MergedQuad, Vec3, box_faces
from .materials import FILLER, VoxelMaterial
from .progress import ProgressCallback, report
from .voxelizer import LabelVolume, VoxelGrid

logger = logging.getLogger(__name__)


@njit(cache=True)
def _label_at(labels: np.ndarray, x: int, y: int, z: int) -> int:
    """Label at a cell, 0 (air) outside the volume."""
    sx, sy, sz = labels.shape
    if x < 0 or x >= sx or y < 0 or y >= sy or z < 0 or z >= sz:
        return 0
    return labels[x, y, z]


@njit(cache=True)
def _sweep_slice(
    labels: np.ndarray,
    opaque: np.ndarray,
    keys: np.ndarray,
    d: int,
    d_axis: int,
    u_axis: int,
    v_axis: int,
    nx: int, ny: int, nz: int
) -> np.ndarray:
    """
    Greedy runs of exposed faces on one depth slice.

    Args:
        labels: Effective label volume (X, Y, Z)
        opaque: Per-label opaque-full-cube flag
        keys: Per-label merge identity
        d: Slice index along d_axis
        d_axis, u_axis, v_axis: Axis assignment for this direction
        nx, ny, nz: Face normal

    Returns:
        (R, 4) int32 array of (v, start, end, label) runs
    """
    un = labels.shape[u_axis]
    vn = labels.shape[v_axis]

    # Preallocate for worst case: every cell its own run
    runs = np.zeros((un * vn, 4), dtype=np.int32)
    count = 0
    pos = np.zeros(3, dtype=np.int64)
    pos[d_axis] = d

    for v in range(vn):
        pos[v_axis] = v
        last = 0
        start = 0
        # u == un is the end-of-row sentinel
        for u in range(un + 1):
            current = 0
            if u < un:
                pos[u_axis] = u
                label = labels[pos[0], pos[1], pos[2]]
                if label != 0:
                    neighbor = _label_at(labels, pos[0] + nx, pos[1] + ny, pos[2] + nz)
                    if not opaque[neighbor]:
                        current = label

            if last != 0 and current != 0 and keys[last] == keys[current]:
                continue

            if last != 0:
                runs[count, 0] = v
                runs[count, 1] = start
                runs[count, 2] = u
                runs[count, 3] = last
                count += 1
            last = current
            start = u

    return runs[:count]


def column_heights(labels: np.ndarray, flat: np.ndarray) -> np.ndarray:
    """
    Topmost non-empty, non-flat y per (x, z) column.

    Returns:
        (X, Z) int64 array of relative heights, -1 for empty columns
    """
    solid = (labels != 0) & ~flat[labels]
    top = labels.shape[1] - 1 - np.argmax(solid[:, ::-1, :], axis=1)
    return np.where(solid.any(axis=1), top, -1)


def effective_labels(volume: LabelVolume, solidify: bool, filler_label: int) -> np.ndarray:
    """
    Labels as seen by the mesher.

    With solidify on, empty or flat cells strictly below the column height
    become the filler label. The source volume is never modified.
    """
    labels = volume.labels
    if not solidify:
        return labels
    heights = column_heights(labels, volume.flat)
    ys = np.arange(labels.shape[1])[np.newaxis, :, np.newaxis]
    fill = ((labels == 0) | volume.flat[labels]) & (ys < heights[:, np.newaxis, :])
    result = labels.copy()
    result[fill] = filler_label
    return result


def _run_to_quad(
    face: FaceDirection,
    d: int,
    v: int,
    start: int,
    end: int,
    material: VoxelMaterial
) -> MergedQuad:
    axes = FACE_AXES[face]
    lo = [0, 0, 0]
    hi = [0, 0, 0]
    lo[axes.u_axis], hi[axes.u_axis] = start, end
    lo[axes.v_axis], hi[axes.v_axis] = v, v + 1
    plane = d + 1 if axes.positive else d
    lo[axes.depth_axis] = hi[axes.depth_axis] = plane
    return MergedQuad(tuple(lo), tuple(hi), face, material, end - start, 1)


class GreedyMesher:
    """
    Greedy meshing for voxel grids.

    This class wraps the Numba-accelerated sweep kernel and provides a
    clean interface for quad generation.
    """

    def __init__(self, filler: VoxelMaterial = FILLER):
        """
        Initialize the mesher.

        Args:
            filler: Material used for solidified cells
        """
        self.filler = filler

    def mesh(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        color_merge: bool = False,
        solidify: bool = False,
        progress: Optional[ProgressCallback] = None
    ) -> List[MergedQuad]:
        """
        Generate merged quads for a grid region.

        Args:
            grid: Source voxel grid
            cuboid: Region to mesh (defaults to the grid cuboid)
            color_merge: Only merge voxels with the same display color
            solidify: Fill hollow columns below their topmost solid cell
            progress: Called with the completed fraction at each slice

        Returns:
            Quads in direction, then slice, then row order
        """
        cuboid = cuboid or grid.cuboid
        volume = grid.to_labels(cuboid, color_merge, extra=(self.filler,))
        labels = effective_labels(volume, solidify, volume.label_of(self.filler))

        total = sum(labels.shape[FACE_AXES[face].depth_axis] for face in FaceDirection)
        done = 0
        quads: List[MergedQuad] = []

        for face in FaceDirection:
            axes = FACE_AXES[face]
            nx, ny, nz = axes.normal
            for d in range(labels.shape[axes.depth_axis]):
                report(progress, done / total)
                done += 1
                runs = _sweep_slice(
                    labels, volume.opaque, volume.keys, d,
                    axes.depth_axis, axes.u_axis, axes.v_axis, nx, ny, nz
                )
                for v, start, end, label in runs:
                    quads.append(_run_to_quad(
                        face, d, int(v), int(start), int(end), volume.materials[label]
                    ))

        logger.debug("Greedy mesh: %d quads for %s", len(quads), cuboid)
        return quads


class VoxelBox(NamedTuple):
    """One axis-aligned box of flat-mode output, cuboid-relative."""
    min: Vec3
    max: Vec3
    material: VoxelMaterial


_NEIGHBORS = ((1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1))


class BoxMesher:
    """
    Unmerged per-voxel meshing.

    Emits every sub-box of a voxel's material, or two thin crossed boxes
    for flat/plant materials. Use GreedyMesher for compact output.
    """

    def __init__(
        self,
        cross_thickness: float = 0.01,
        cross_height: float = 1.0,
        cross_inset: float = 0.0,
        cull_hidden: bool = False
    ):
        """
        Initialize the mesher.

        Args:
            cross_thickness: Width of each plane of a cross
            cross_height: Height of the cross
            cross_inset: Horizontal inset of the cross ends
            cull_hidden: Skip voxels enclosed on all six sides
        """
        self.cross_thickness = cross_thickness
        self.cross_height = cross_height
        self.cross_inset = cross_inset
        self.cull_hidden = cull_hidden

    @classmethod
    def for_printing(cls) -> "BoxMesher":
        """Thicker, shorter crosses and hidden-voxel culling, for STL."""
        return cls(cross_thickness=0.2, cross_height=0.8, cross_inset=0.1, cull_hidden=True)

    def boxes(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        progress: Optional[ProgressCallback] = None
    ) -> List[VoxelBox]:
        """
        Boxes for every voxel in x, y, z order.

        Progress is reported once per x slice.
        """
        cuboid = cuboid or grid.cuboid
        volume = grid.to_labels(cuboid)
        sx = volume.labels.shape[0]
        result: List[VoxelBox] = []
        last_x = -1

        for x, y, z in np.argwhere(volume.labels != 0):
            x, y, z = int(x), int(y), int(z)
            if x != last_x:
                report(progress, x / sx)
                last_x = x
            if self.cull_hidden and self._is_hidden(volume, x, y, z):
                continue
            material = volume.materials[volume.labels[x, y, z]]
            if material.is_flat:
                result.extend(self._cross(x, y, z, material))
            else:
                for lo, hi in material.material.boxes:
                    result.append(VoxelBox(
                        (x + lo[0], y + lo[1], z + lo[2]),
                        (x + hi[0], y + hi[1], z + hi[2]),
                        material
                    ))
        return result

    def mesh(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        progress: Optional[ProgressCallback] = None
    ) -> List[MergedQuad]:
        """Six quads per box."""
        quads: List[MergedQuad] = []
        for box in self.boxes(grid, cuboid, progress):
            quads.extend(box_faces(box.min, box.max, box.material))
        return quads

    def _is_hidden(self, volume: LabelVolume, x: int, y: int, z: int) -> bool:
        labels = volume.labels
        sx, sy, sz = labels.shape
        for dx, dy, dz in _NEIGHBORS:
            nx, ny, nz = x + dx, y + dy, z + dz
            if not (0 <= nx < sx and 0 <= ny < sy and 0 <= nz < sz):
                return False
            if not volume.opaque[labels[nx, ny, nz]]:
                return False
        return True

    def _cross(self, x: int, y: int, z: int, material: VoxelMaterial) -> List[VoxelBox]:
        t = self.cross_thickness
        off = (1.0 - t) / 2.0
        h = self.cross_height
        inset = self.cross_inset
        return [
            VoxelBox((x + off, y, z + inset), (x + off + t, y + h, z + 1.0 - inset), material),
            VoxelBox((x + inset, y, z + off), (x + 1.0 - inset, y + h, z + off + t), material),
        ]


def compare_mesh_stats(merged: List[MergedQuad], flat: List[MergedQuad]) -> dict:
    """
    Compare statistics between greedy and flat meshing.

    Args:
        merged: Quads from GreedyMesher
        flat: Quads from BoxMesher

    Returns:
        Dictionary with comparison statistics
    """
    merged_tris = 2 * len(merged)
    flat_tris = 2 * len(flat)
    reduction = (1 - merged_tris / flat_tris) * 100 if flat_tris > 0 else 0

    return {
        "merged_quads": len(merged),
        "flat_quads": len(flat),
        "merged_triangles": merged_tris,
        "flat_triangles": flat_tris,
        "triangle_reduction_percent": reduction,
    }
