"""
Voxel Data Structures and Voxelization Engine

This module provides:
- VoxelSource: protocol for hosts that supply per-cell voxel lookups
- VoxelGrid: sparse position -> VoxelMaterial map bounded by a Cuboid
- LabelVolume: dense integer label array used by the meshing kernels
- Voxelizer: engine for converting triangle meshes to voxel grids

Memory consideration: the grid itself is sparse, but meshing works on a
dense int32 label array (4 bytes per cell of the export cuboid). A 512³
region is 512 MB of labels, so very large regions should be split.
"""

import dataclasses
import logging
from io import BytesIO
from typing import Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Protocol, Tuple

import numpy as np
from scipy import ndimage

from .color import ColorQuantizer, load_rgba, sample_texture
from .geometry import Cuboid, IVec3
from .materials import Material, MaterialShape, RGB, VoxelMaterial
from .mesh import Mesh

logger = logging.getLogger(__name__)


class VoxelSource(Protocol):
    """Host interface supplying the content of a voxel world."""

    def lookup(self, x: int, y: int, z: int) -> Optional[VoxelMaterial]:
        ...

    def is_opaque_full_cube(self, material: Material) -> bool:
        ...

    def map_color(self, material: Material, pos: IVec3) -> Optional[RGB]:
        ...

    def is_flat_or_plant(self, material: Material) -> bool:
        ...


class LabelVolume(NamedTuple):
    """
    Dense labelled view of a grid over one cuboid.

    Label 0 is air; label k indexes `materials[k]`. The per-label arrays
    are what the Numba kernels consume.
    """
    labels: np.ndarray          # (sx, sy, sz) int32
    materials: List[Optional[VoxelMaterial]]
    opaque: np.ndarray          # (n,) bool, opaque full cube
    flat: np.ndarray            # (n,) bool, cross-shaped
    keys: np.ndarray            # (n,) int32, merge identity

    def label_of(self, material: VoxelMaterial) -> int:
        return self.materials.index(material)


class VoxelGrid:
    """
    Sparse voxel grid.

    Cells outside the bounding cuboid are never stored; writes there are
    ignored and reads return None.
    """

    def __init__(self, cuboid: Cuboid, voxels: Optional[Mapping[IVec3, VoxelMaterial]] = None):
        self._cuboid = cuboid
        self._voxels: Dict[IVec3, VoxelMaterial] = {}
        if voxels:
            for (x, y, z), material in voxels.items():
                self.set_voxel(x, y, z, material)

    @classmethod
    def from_voxels(cls, voxels: Mapping[IVec3, VoxelMaterial]) -> "VoxelGrid":
        """Build a grid whose cuboid tightly bounds the given voxels."""
        if not voxels:
            raise ValueError("At least one voxel required")
        coords = np.array(list(voxels.keys()), dtype=np.int64)
        lo = coords.min(axis=0)
        hi = coords.max(axis=0)
        return cls(Cuboid.from_corners(tuple(int(v) for v in lo), tuple(int(v) for v in hi)), voxels)

    @classmethod
    def from_source(cls, source: VoxelSource, cuboid: Cuboid) -> "VoxelGrid":
        """
        Snapshot a host world region.

        Material capability flags are resolved once per distinct material.
        A failing lookup makes that cell air; a failing color query leaves
        the cell without a computed color. Neither aborts the snapshot.
        """
        grid = cls(cuboid)
        resolved: Dict[str, Material] = {}
        failures = 0

        for pos in cuboid.positions():
            try:
                raw = source.lookup(*pos)
            except Exception as exc:
                failures += 1
                logger.debug("Lookup failed at %s: %s", pos, exc)
                continue
            if raw is None:
                continue

            material = resolved.get(raw.material.id)
            if material is None:
                material = _resolve_material(source, raw.material)
                resolved[raw.material.id] = material

            color = raw.color
            if color is None:
                try:
                    color = source.map_color(raw.material, pos)
                except Exception as exc:
                    logger.debug("Color query failed at %s: %s", pos, exc)
                    color = None

            grid.set_voxel(*pos, VoxelMaterial(material, raw.tint, color))

        if failures:
            logger.warning("%d cell lookups failed and were treated as air", failures)
        return grid

    @property
    def cuboid(self) -> Cuboid:
        return self._cuboid

    def set_voxel(self, x: int, y: int, z: int, material: VoxelMaterial):
        if not self._cuboid.contains(x, y, z):
            return  # Silently ignore out-of-bounds
        self._voxels[(x, y, z)] = material

    def get_voxel(self, x: int, y: int, z: int) -> Optional[VoxelMaterial]:
        return self._voxels.get((x, y, z))

    def is_solid(self, x: int, y: int, z: int) -> bool:
        return (x, y, z) in self._voxels

    def clear_voxel(self, x: int, y: int, z: int):
        self._voxels.pop((x, y, z), None)

    def count_voxels(self) -> int:
        return len(self._voxels)

    def __len__(self) -> int:
        return len(self._voxels)

    def iterate_voxels(self) -> Iterator[Tuple[int, int, int, VoxelMaterial]]:
        """
        Iterate over all solid voxels in x, y, z order.

        Yields:
            Tuples of (x, y, z, material)
        """
        for pos in sorted(self._voxels):
            yield (pos[0], pos[1], pos[2], self._voxels[pos])

    def occupied_bounds(self) -> Optional[Cuboid]:
        """Tight cuboid around solid voxels, or None when empty."""
        if not self._voxels:
            return None
        return VoxelGrid.from_voxels(self._voxels).cuboid

    def to_labels(
        self,
        cuboid: Optional[Cuboid] = None,
        color_merge: bool = False,
        extra: Iterable[VoxelMaterial] = (),
    ) -> LabelVolume:
        """
        Convert to a dense label volume.

        Args:
            cuboid: Region to convert (defaults to the grid cuboid)
            color_merge: Include display color in the merge identity
            extra: Materials to register even if no cell uses them

        Returns:
            LabelVolume indexed relative to cuboid.min
        """
        cuboid = cuboid or self._cuboid
        labels = np.zeros(cuboid.size, dtype=np.int32)
        table: Dict[VoxelMaterial, int] = {}
        materials: List[Optional[VoxelMaterial]] = [None]

        def label_for(material: VoxelMaterial) -> int:
            label = table.get(material)
            if label is None:
                label = len(materials)
                table[material] = label
                materials.append(material)
            return label

        ox, oy, oz = cuboid.min
        for (x, y, z), material in self._voxels.items():
            if cuboid.contains(x, y, z):
                labels[x - ox, y - oy, z - oz] = label_for(material)
        for material in extra:
            label_for(material)

        key_table: Dict[object, int] = {}
        keys = np.zeros(len(materials), dtype=np.int32)
        opaque = np.zeros(len(materials), dtype=bool)
        flat = np.zeros(len(materials), dtype=bool)
        for label, material in enumerate(materials[1:], start=1):
            key = (material.material.id, material.display_color) if color_merge else material.material.id
            keys[label] = key_table.setdefault(key, len(key_table) + 1)
            opaque[label] = material.is_opaque_full
            flat[label] = material.is_flat

        return LabelVolume(labels, materials, opaque, flat, keys)


def _resolve_material(source: VoxelSource, material: Material) -> Material:
    try:
        flat = bool(source.is_flat_or_plant(material))
        opaque = bool(source.is_opaque_full_cube(material))
    except Exception as exc:
        logger.debug("Capability query failed for %s: %s", material.id, exc)
        return material
    shape = MaterialShape.CROSS if flat else material.shape
    return dataclasses.replace(material, shape=shape, opaque=opaque)


def _barycentric_weights(n: int) -> np.ndarray:
    """All (1 - i/n - j/n, i/n, j/n) with i + j <= n."""
    i, j = np.meshgrid(np.arange(n + 1), np.arange(n + 1), indexing="ij")
    mask = (i + j) <= n
    wi = i[mask] / n
    wj = j[mask] / n
    return np.stack([1.0 - wi - wj, wi, wj], axis=1)


class Voxelizer:
    """
    Engine for converting triangle meshes to voxel grids.

    The voxelizer handles:
    - Scaling model units to voxels
    - Surface sampling at sub-voxel spacing
    - Optional interior fill
    - Per-triangle color lookup and palette quantization
    """

    def __init__(
        self,
        quantizer: ColorQuantizer,
        scale: float = 1.0,
        fill_interior: bool = False,
        samples_per_voxel: int = 2,
    ):
        """
        Initialize the voxelizer.

        Args:
            quantizer: Maps triangle colors onto palette materials
            scale: Voxels per model unit
            fill_interior: Fill enclosed cavities after surface sampling
            samples_per_voxel: Samples per voxel along the longest edge
        """
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        if samples_per_voxel < 1:
            raise ValueError("samples_per_voxel must be at least 1")
        self.quantizer = quantizer
        self.scale = scale
        self.fill_interior = fill_interior
        self.samples_per_voxel = samples_per_voxel

    def voxelize(self, mesh: Mesh) -> VoxelGrid:
        """
        Convert a mesh to a voxel grid anchored at the origin.

        Args:
            mesh: Triangle mesh in model units

        Returns:
            VoxelGrid whose cuboid starts at (0, 0, 0)
        """
        if mesh.triangle_count == 0:
            logger.warning("Mesh has no triangles; returning an empty grid")
            return VoxelGrid(Cuboid(0, 0, 0, 0, 0, 0))

        pts = mesh.positions.astype(np.float64) * self.scale
        pts -= np.floor(pts.min(axis=0))
        size = np.maximum(np.ceil(pts.max(axis=0)).astype(np.int64), 1)

        tris = pts[mesh.triangles.astype(np.int64)]
        coords, owners = self._sample_surface(tris)
        coords = np.clip(coords, 0, size - 1)

        # First triangle to touch a cell owns it
        unique, first = np.unique(coords, axis=0, return_index=True)
        owner = owners[first]

        palette_index = self.quantizer.quantize(self._triangle_colors(mesh))

        occupied = np.zeros(tuple(size), dtype=bool)
        index = np.full(tuple(size), -1, dtype=np.int64)
        cells = tuple(unique.T)
        occupied[cells] = True
        index[cells] = palette_index[owner]

        if self.fill_interior:
            occupied, index = self._fill(occupied, index)

        entries = self.quantizer.palette
        voxel_materials = {i: VoxelMaterial(entries[i].material) for i in np.unique(index[occupied])}

        grid = VoxelGrid(Cuboid(0, 0, 0, int(size[0]) - 1, int(size[1]) - 1, int(size[2]) - 1))
        for x, y, z in np.argwhere(occupied):
            grid.set_voxel(int(x), int(y), int(z), voxel_materials[index[x, y, z]])

        logger.debug("Voxelized %d triangles into %d voxels", mesh.triangle_count, grid.count_voxels())
        return grid

    def _sample_surface(self, tris: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Sample every triangle on a barycentric lattice finer than one voxel.

        Returns:
            (K, 3) int64 cell coordinates and (K,) owning triangle indices,
            ordered by triangle
        """
        edges = np.stack([
            np.linalg.norm(tris[:, 1] - tris[:, 0], axis=1),
            np.linalg.norm(tris[:, 2] - tris[:, 1], axis=1),
            np.linalg.norm(tris[:, 0] - tris[:, 2], axis=1),
        ], axis=1)
        steps = np.maximum(np.ceil(edges.max(axis=1) * self.samples_per_voxel), 1).astype(np.int64)

        coords = []
        owners = []
        for n in np.unique(steps):
            selected = np.nonzero(steps == n)[0]
            weights = _barycentric_weights(int(n))
            points = np.einsum("sk,tkd->tsd", weights, tris[selected])
            coords.append(np.floor(points).astype(np.int64).reshape(-1, 3))
            owners.append(np.repeat(selected, len(weights)))

        coords = np.concatenate(coords)
        owners = np.concatenate(owners)
        order = np.argsort(owners, kind="stable")
        return coords[order], owners[order]

    def _triangle_colors(self, mesh: Mesh) -> np.ndarray:
        """Per-triangle RGB from OBJ materials or the embedded texture."""
        colors = np.full((mesh.triangle_count, 3), 255, dtype=np.uint8)

        if mesh.triangle_materials is not None:
            for i, name in enumerate(mesh.triangle_materials):
                rgb = mesh.material_colors.get(name) if name is not None else None
                if rgb is not None:
                    colors[i] = rgb
            return colors

        if mesh.image is not None and mesh.uvs is not None:
            try:
                rgba = load_rgba(BytesIO(mesh.image.data))
            except OSError as exc:
                logger.warning("Embedded texture could not be decoded: %s", exc)
                return colors
            centroid_uv = mesh.uvs[mesh.triangles.astype(np.int64)].mean(axis=1)
            colors = sample_texture(rgba, centroid_uv)

        return colors

    def _fill(self, occupied: np.ndarray, index: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Fill enclosed cavities, copying the nearest surface material."""
        filled = ndimage.binary_fill_holes(occupied)
        interior = filled & ~occupied
        if not interior.any():
            return occupied, index

        _, nearest = ndimage.distance_transform_edt(~occupied, return_indices=True)
        source = index[nearest[0], nearest[1], nearest[2]]
        index = index.copy()
        index[interior] = source[interior]
        logger.debug("Filled %d interior voxels", int(interior.sum()))
        return filled, index
