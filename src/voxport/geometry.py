"""
Core Geometry Types

This module provides:
- Cuboid: immutable integer bounding box of an export region
- FaceDirection: the six axis-aligned face normals
- FACE_AXES: per-direction axis table used by the greedy sweep
- MergedQuad: one planar axis-aligned rectangle of output geometry

Coordinate system: X-east, Y-up, Z-south (north is -Z).
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List, NamedTuple, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .materials import VoxelMaterial

Vec3 = Tuple[float, float, float]
IVec3 = Tuple[int, int, int]


@dataclass(frozen=True)
class Cuboid:
    """
    Axis-aligned integer box, inclusive on both ends.

    Corners are normalized on construction so that min <= max per axis.
    """

    min_x: int
    min_y: int
    min_z: int
    max_x: int
    max_y: int
    max_z: int

    def __post_init__(self):
        lo = (min(self.min_x, self.max_x), min(self.min_y, self.max_y), min(self.min_z, self.max_z))
        hi = (max(self.min_x, self.max_x), max(self.min_y, self.max_y), max(self.min_z, self.max_z))
        for name, value in zip(("min_x", "min_y", "min_z"), lo):
            object.__setattr__(self, name, int(value))
        for name, value in zip(("max_x", "max_y", "max_z"), hi):
            object.__setattr__(self, name, int(value))

    @classmethod
    def from_corners(cls, p1: IVec3, p2: IVec3) -> "Cuboid":
        """Build a cuboid from two opposite corners in any order."""
        return cls(p1[0], p1[1], p1[2], p2[0], p2[1], p2[2])

    @property
    def min(self) -> IVec3:
        return (self.min_x, self.min_y, self.min_z)

    @property
    def max(self) -> IVec3:
        return (self.max_x, self.max_y, self.max_z)

    @property
    def size(self) -> IVec3:
        """Number of cells along each axis."""
        return (
            self.max_x - self.min_x + 1,
            self.max_y - self.min_y + 1,
            self.max_z - self.min_z + 1,
        )

    @property
    def volume(self) -> int:
        sx, sy, sz = self.size
        return sx * sy * sz

    def contains(self, x: int, y: int, z: int) -> bool:
        return (
            self.min_x <= x <= self.max_x and
            self.min_y <= y <= self.max_y and
            self.min_z <= z <= self.max_z
        )

    def positions(self) -> Iterator[IVec3]:
        """Iterate all cells in x, y, z order."""
        for x in range(self.min_x, self.max_x + 1):
            for y in range(self.min_y, self.max_y + 1):
                for z in range(self.min_z, self.max_z + 1):
                    yield (x, y, z)


class FaceDirection(IntEnum):
    """Face normal directions, in sweep order."""
    DOWN = 0   # -Y
    UP = 1     # +Y
    NORTH = 2  # -Z
    SOUTH = 3  # +Z
    WEST = 4   # -X
    EAST = 5   # +X


class FaceAxes(NamedTuple):
    """Axis assignment for one face direction."""
    normal: IVec3
    depth_axis: int
    u_axis: int
    v_axis: int

    @property
    def positive(self) -> bool:
        return self.normal[self.depth_axis] > 0


# Sweep axes per direction: Y faces sweep x then z, X faces sweep y then z,
# Z faces sweep x then y.
FACE_AXES = {
    FaceDirection.DOWN: FaceAxes((0, -1, 0), 1, 0, 2),
    FaceDirection.UP: FaceAxes((0, 1, 0), 1, 0, 2),
    FaceDirection.NORTH: FaceAxes((0, 0, -1), 2, 0, 1),
    FaceDirection.SOUTH: FaceAxes((0, 0, 1), 2, 0, 1),
    FaceDirection.WEST: FaceAxes((-1, 0, 0), 0, 1, 2),
    FaceDirection.EAST: FaceAxes((1, 0, 0), 0, 1, 2),
}


@dataclass(frozen=True)
class MergedQuad:
    """
    A planar rectangle on one face direction.

    Attributes:
        min: Lower corner (cuboid-relative, voxel units)
        max: Upper corner; equal to min along the face normal axis
        face: Face direction
        material: Material of the voxels this quad covers
        width: Extent along the sweep axis, in voxels (UV tiling)
        length: Extent along the second axis, in voxels (UV tiling)
    """

    min: Vec3
    max: Vec3
    face: FaceDirection
    material: "VoxelMaterial"
    width: int = 1
    length: int = 1

    @property
    def normal(self) -> IVec3:
        return FACE_AXES[self.face].normal

    def corners(self) -> List[Vec3]:
        """
        Four corners ordered counter-clockwise around the outward normal.

        Triangles (0, 1, 2) and (0, 2, 3) both face outward.
        """
        x0, y0, z0 = self.min
        x1, y1, z1 = self.max
        face = self.face
        if face == FaceDirection.UP:
            return [(x0, y0, z1), (x1, y0, z1), (x1, y0, z0), (x0, y0, z0)]
        if face == FaceDirection.DOWN:
            return [(x0, y0, z0), (x1, y0, z0), (x1, y0, z1), (x0, y0, z1)]
        if face == FaceDirection.SOUTH:
            return [(x0, y0, z0), (x1, y0, z0), (x1, y1, z0), (x0, y1, z0)]
        if face == FaceDirection.NORTH:
            return [(x1, y0, z0), (x0, y0, z0), (x0, y1, z0), (x1, y1, z0)]
        if face == FaceDirection.EAST:
            return [(x0, y0, z1), (x0, y0, z0), (x0, y1, z0), (x0, y1, z1)]
        return [(x0, y0, z0), (x0, y0, z1), (x0, y1, z1), (x0, y1, z0)]

    def uv_repeat(self) -> Tuple[float, float]:
        """Lengths of corner edges 0->1 and 1->2, in cells."""
        c0, c1, c2, _ = self.corners()
        u = max(abs(a - b) for a, b in zip(c0, c1))
        v = max(abs(a - b) for a, b in zip(c1, c2))
        return float(u), float(v)


def box_faces(
    lo: Vec3,
    hi: Vec3,
    material: "VoxelMaterial",
) -> List[MergedQuad]:
    """
    Six outward-facing quads enclosing the box [lo, hi].

    Args:
        lo: Lower corner
        hi: Upper corner
        material: Material assigned to every face

    Returns:
        One quad per FaceDirection, in enum order
    """
    quads = []
    for face in FaceDirection:
        axes = FACE_AXES[face]
        q_lo = list(lo)
        q_hi = list(hi)
        plane = hi[axes.depth_axis] if axes.positive else lo[axes.depth_axis]
        q_lo[axes.depth_axis] = plane
        q_hi[axes.depth_axis] = plane
        quads.append(MergedQuad(tuple(q_lo), tuple(q_hi), face, material, 1, 1))
    return quads
