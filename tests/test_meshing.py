"""
Unit tests for grids, greedy meshing and manifold repair.
"""

import sys
from collections import Counter
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voxport.geometry import Cuboid, FaceDirection, MergedQuad, box_faces
from voxport.materials import FILLER, Material, MaterialShape, VoxelMaterial
from voxport.voxelizer import VoxelGrid
from voxport.greedy_mesh import BoxMesher, GreedyMesher, column_heights, compare_mesh_stats
from voxport.manifold import ManifoldRepair


RED = VoxelMaterial(Material("test:red", (200, 0, 0)))
BLUE = VoxelMaterial(Material("test:blue", (0, 0, 200)))
GLASS = VoxelMaterial(Material("test:glass", (220, 240, 255), opaque=False))
GRASS = VoxelMaterial(Material("test:grass", (80, 160, 40), shape=MaterialShape.CROSS, opaque=False))


def grid_of(cells, cuboid=None):
    """Grid from {(x, y, z): material}, tight cuboid unless given."""
    if cuboid is None:
        return VoxelGrid.from_voxels(cells)
    return VoxelGrid(cuboid, cells)


def exposed_faces(grid):
    """Reference count of exposed unit faces per direction."""
    normals = {
        FaceDirection.DOWN: (0, -1, 0), FaceDirection.UP: (0, 1, 0),
        FaceDirection.NORTH: (0, 0, -1), FaceDirection.SOUTH: (0, 0, 1),
        FaceDirection.WEST: (-1, 0, 0), FaceDirection.EAST: (1, 0, 0),
    }
    counts = Counter()
    for x, y, z, _ in grid.iterate_voxels():
        for face, (dx, dy, dz) in normals.items():
            neighbor = grid.get_voxel(x + dx, y + dy, z + dz)
            if neighbor is None or not neighbor.is_opaque_full:
                counts[face] += 1
    return counts


def quad_area(quad):
    size = [hi - lo for lo, hi in zip(quad.min, quad.max)]
    return np.prod([s for s in size if s != 0])


class TestCuboid(unittest.TestCase):
    """Tests for Cuboid."""

    def test_normalized(self):
        """Corners in any order give the same cuboid."""
        a = Cuboid.from_corners((5, 0, 3), (1, 4, -2))
        assert a.min == (1, 0, -2)
        assert a.max == (5, 4, 3)
        assert a.size == (5, 5, 6)
        assert a == Cuboid.from_corners((1, 4, -2), (5, 0, 3))

    def test_contains(self):
        c = Cuboid(0, 0, 0, 2, 2, 2)
        assert c.contains(2, 0, 1)
        assert not c.contains(3, 0, 0)
        assert len(list(c.positions())) == c.volume == 27


class TestVoxelGrid(unittest.TestCase):
    """Tests for VoxelGrid."""

    def test_out_of_bounds(self):
        """Writes outside the cuboid are ignored, reads return None."""
        grid = VoxelGrid(Cuboid(0, 0, 0, 3, 3, 3))
        grid.set_voxel(10, 0, 0, RED)
        assert grid.get_voxel(10, 0, 0) is None
        assert grid.count_voxels() == 0

    def test_iteration_sorted(self):
        grid = grid_of({(1, 0, 0): RED, (0, 0, 0): BLUE, (0, 1, 0): RED})
        coords = [(x, y, z) for x, y, z, _ in grid.iterate_voxels()]
        assert coords == sorted(coords)

    def test_labels(self):
        """Color merge splits one material by display color."""
        tinted = VoxelMaterial(RED.material, color=(190, 0, 0))
        grid = grid_of({(0, 0, 0): RED, (1, 0, 0): tinted})

        plain = grid.to_labels()
        assert plain.keys[plain.labels[0, 0, 0]] == plain.keys[plain.labels[1, 0, 0]]

        split = grid.to_labels(color_merge=True)
        assert split.keys[split.labels[0, 0, 0]] != split.keys[split.labels[1, 0, 0]]

    def test_from_source(self):
        """Failing lookups become air and flat materials become crosses."""
        leaves = Material("test:fern", (60, 140, 30))

        class Source:
            def lookup(self, x, y, z):
                if x == 1:
                    raise RuntimeError("chunk not loaded")
                if y == 0:
                    return VoxelMaterial(leaves)
                return None

            def is_opaque_full_cube(self, material):
                return False

            def map_color(self, material, pos):
                raise RuntimeError("no color provider")

            def is_flat_or_plant(self, material):
                return True

        grid = VoxelGrid.from_source(Source(), Cuboid(0, 0, 0, 2, 1, 0))
        assert grid.count_voxels() == 2
        assert grid.get_voxel(1, 0, 0) is None
        voxel = grid.get_voxel(0, 0, 0)
        assert voxel.is_flat
        assert voxel.color is None
        assert not voxel.is_opaque_full


class TestGreedyMesher(unittest.TestCase):
    """Tests for GreedyMesher."""

    def test_empty_grid(self):
        grid = VoxelGrid(Cuboid(0, 0, 0, 3, 3, 3))
        assert GreedyMesher().mesh(grid) == []

    def test_single_voxel(self):
        """One voxel gives six 1x1 quads, one per direction, in sweep order."""
        grid = grid_of({(0, 0, 0): RED})
        quads = GreedyMesher().mesh(grid)

        assert [q.face for q in quads] == list(FaceDirection)
        for quad in quads:
            assert quad.material == RED
            assert (quad.width, quad.length) == (1, 1)
            assert quad_area(quad) == 1

        up = quads[FaceDirection.UP]
        assert up.min == (0, 1, 0)
        assert up.max == (1, 1, 1)
        down = quads[FaceDirection.DOWN]
        assert down.min == (0, 0, 0)
        assert down.max == (1, 0, 1)

    def test_row_merges(self):
        """A 4x1x1 row merges along x."""
        grid = grid_of({(x, 0, 0): RED for x in range(4)})
        quads = GreedyMesher().mesh(grid)

        assert len(quads) == 6
        by_face = {q.face: q for q in quads}
        assert by_face[FaceDirection.UP].width == 4
        assert by_face[FaceDirection.SOUTH].width == 4
        assert by_face[FaceDirection.EAST].width == 1
        assert by_face[FaceDirection.EAST].min == (4, 0, 0)

    def test_material_breaks_run(self):
        grid = grid_of({(0, 0, 0): RED, (1, 0, 0): RED, (2, 0, 0): BLUE})
        up = [q for q in GreedyMesher().mesh(grid) if q.face == FaceDirection.UP]
        assert [(q.width, q.material) for q in up] == [(2, RED), (1, BLUE)]

    def test_color_merge(self):
        """Display color participates in merging only when requested."""
        shaded = VoxelMaterial(RED.material, color=(150, 0, 0))
        grid = grid_of({(0, 0, 0): RED, (1, 0, 0): shaded})

        merged = [q for q in GreedyMesher().mesh(grid) if q.face == FaceDirection.UP]
        split = [q for q in GreedyMesher().mesh(grid, color_merge=True) if q.face == FaceDirection.UP]
        assert len(merged) == 1
        assert len(split) == 2

    def test_covers_exposed_surface(self):
        """Quads cover exactly the exposed faces, for a jagged shape."""
        rng = np.random.default_rng(7)
        cells = {}
        for x, y, z in np.argwhere(rng.random((5, 4, 5)) < 0.5):
            cells[(int(x), int(y), int(z))] = RED if (x + z) % 3 else BLUE
        cells[(2, 3, 2)] = GLASS
        grid = grid_of(cells, Cuboid(0, 0, 0, 4, 3, 4))

        quads = GreedyMesher().mesh(grid)
        area = Counter()
        for quad in quads:
            area[quad.face] += quad_area(quad)

        assert area == exposed_faces(grid)

    def test_transparent_neighbor(self):
        """Faces next to non-opaque material stay exposed."""
        grid = grid_of({(0, 0, 0): RED, (1, 0, 0): GLASS})
        quads = GreedyMesher().mesh(grid)
        east = [q for q in quads if q.face == FaceDirection.EAST]
        west = [q for q in quads if q.face == FaceDirection.WEST]
        assert len(east) == 2
        assert len(west) == 1

    def test_deterministic(self):
        cells = {(x, y, z): RED for x in range(3) for y in range(2) for z in range(3) if (x, z) != (1, 1)}
        grid = grid_of(cells)
        assert GreedyMesher().mesh(grid) == GreedyMesher().mesh(grid)

    def test_solidify(self):
        """A floating block fills down to the floor with filler."""
        grid = grid_of({(0, 3, 0): RED}, Cuboid(0, 0, 0, 0, 3, 0))
        quads = GreedyMesher().mesh(grid, solidify=True)

        materials = Counter(q.material for q in quads)
        assert materials[FILLER] > 0
        down = [q for q in quads if q.face == FaceDirection.DOWN]
        assert len(down) == 1
        assert down[0].min[1] == 0

        # Grid itself is unchanged
        assert grid.count_voxels() == 1

    def test_column_heights(self):
        grid = grid_of({(0, 2, 0): RED, (1, 0, 0): GRASS, (1, 1, 0): RED}, Cuboid(0, 0, 0, 2, 3, 0))
        volume = grid.to_labels()
        heights = column_heights(volume.labels, volume.flat)
        assert heights[:, 0].tolist() == [2, 1, -1]

    def test_sub_cuboid(self):
        """Meshing a sub-region gives region-relative quads."""
        grid = grid_of({(5, 5, 5): RED, (9, 9, 9): BLUE})
        quads = GreedyMesher().mesh(grid, Cuboid(5, 5, 5, 6, 6, 6))
        assert len(quads) == 6
        assert all(q.material == RED for q in quads)
        assert quads[FaceDirection.DOWN].min == (0, 0, 0)

    def test_progress(self):
        calls = []
        grid = grid_of({(x, 0, 0): RED for x in range(3)})
        GreedyMesher().mesh(grid, progress=calls.append)
        assert calls[0] == 0.0
        assert calls == sorted(calls)
        assert all(0.0 <= c < 1.0 for c in calls)


class TestBoxMesher(unittest.TestCase):
    """Tests for the flat (unmerged) mesher."""

    def test_one_box_per_voxel(self):
        grid = grid_of({(0, 0, 0): RED, (1, 0, 0): RED})
        boxes = BoxMesher().boxes(grid)
        assert len(boxes) == 2
        assert boxes[1].min == (1, 0, 0)
        assert len(BoxMesher().mesh(grid)) == 12

    def test_cross(self):
        """Plant-like materials become two thin crossed boxes."""
        grid = grid_of({(0, 0, 0): GRASS})
        boxes = BoxMesher().boxes(grid)
        assert len(boxes) == 2
        for box in boxes:
            size = [hi - lo for lo, hi in zip(box.min, box.max)]
            assert abs(min(size) - 0.01) < 1e-9

    def test_printing_profile(self):
        grid = grid_of({(0, 0, 0): GRASS})
        boxes = BoxMesher.for_printing().boxes(grid)
        assert all(abs(b.max[1] - 0.8) < 1e-9 for b in boxes)

    def test_cull_hidden(self):
        """The center of a 3x3x3 block is skipped when culling."""
        grid = grid_of({p: RED for p in Cuboid(0, 0, 0, 2, 2, 2).positions()})
        assert len(BoxMesher().boxes(grid)) == 27
        assert len(BoxMesher(cull_hidden=True).boxes(grid)) == 26

    def test_sub_boxes(self):
        """Materials with several boxes emit each of them."""
        slab = VoxelMaterial(Material(
            "test:stairs", opaque=False,
            boxes=(((0.0, 0.0, 0.0), (1.0, 0.5, 1.0)), ((0.0, 0.5, 0.5), (1.0, 1.0, 1.0)))
        ))
        boxes = BoxMesher().boxes(grid_of({(2, 0, 0): slab}))
        assert [b.max for b in boxes] == [(1.0, 0.5, 1.0), (1.0, 1.0, 1.0)]

    def test_stats(self):
        grid = grid_of({(x, 0, 0): RED for x in range(4)})
        stats = compare_mesh_stats(GreedyMesher().mesh(grid), BoxMesher().mesh(grid))
        assert stats["merged_quads"] == 6
        assert stats["flat_quads"] == 24
        assert stats["triangle_reduction_percent"] == 75.0


class TestBoxFaces(unittest.TestCase):
    """Tests for quad geometry."""

    def test_box_faces_planar(self):
        quads = box_faces((0.0, 0.0, 0.0), (2.0, 1.0, 3.0), RED)
        assert [q.face for q in quads] == list(FaceDirection)
        for quad in quads:
            zero = [i for i in range(3) if quad.min[i] == quad.max[i]]
            assert len(zero) == 1

    def test_corners_wind_outward(self):
        """Corner order is counter-clockwise around the outward normal."""
        for quad in box_faces((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), RED):
            c = np.array(quad.corners(), dtype=float)
            n1 = np.cross(c[1] - c[0], c[2] - c[0])
            n2 = np.cross(c[2] - c[0], c[3] - c[0])
            expected = np.array(quad.normal, dtype=float)
            assert np.allclose(n1 / np.linalg.norm(n1), expected)
            assert np.allclose(n2 / np.linalg.norm(n2), expected)


class TestManifoldRepair(unittest.TestCase):
    """Tests for diagonal junction repair."""

    def test_checkerboard(self):
        """Two voxels touching on an edge get one connector at the shared corner."""
        grid = grid_of({(0, 0, 0): RED, (1, 0, 1): RED})
        quads = ManifoldRepair().repair(grid)

        assert len(quads) == 6
        assert all(q.material == FILLER for q in quads)
        points = np.array([c for q in quads for c in q.corners()])
        center = (points.min(axis=0) + points.max(axis=0)) / 2
        assert np.allclose(center, (1.0, 0.5, 1.0))
        assert np.allclose(points.max(axis=0) - points.min(axis=0), (0.04, 1.0, 0.04))

    def test_other_diagonal(self):
        grid = grid_of({(1, 0, 0): RED, (0, 0, 1): RED})
        junctions = ManifoldRepair().find_junctions(grid)
        assert junctions.tolist() == [[0, 0, 0]]

    def test_no_junction(self):
        """Face-connected and fully filled footprints need no connector."""
        assert len(ManifoldRepair().repair(grid_of({(0, 0, 0): RED, (1, 0, 0): RED}))) == 0
        full = grid_of({(x, 0, z): RED for x in range(2) for z in range(2)})
        assert len(ManifoldRepair().repair(full)) == 0

    def test_three_of_four(self):
        grid = grid_of({(0, 0, 0): RED, (1, 0, 1): RED, (1, 0, 0): RED})
        assert len(ManifoldRepair().repair(grid)) == 0

    def test_flat_not_solid(self):
        """Plant-like cells do not count as solid."""
        grid = grid_of({(0, 0, 0): RED, (1, 0, 1): GRASS})
        assert len(ManifoldRepair().repair(grid)) == 0

    def test_thickness(self):
        grid = grid_of({(0, 0, 0): RED, (1, 0, 1): RED})
        quads = ManifoldRepair(half_thickness=0.1).repair(grid)
        points = np.array([c for q in quads for c in q.corners()])
        assert np.allclose(points.min(axis=0), (0.9, 0.0, 0.9))

    def test_invalid_thickness(self):
        with self.assertRaises(ValueError):
            ManifoldRepair(half_thickness=0.5)

    def test_quad_type(self):
        grid = grid_of({(0, 0, 0): RED, (1, 0, 1): RED})
        assert all(isinstance(q, MergedQuad) for q in ManifoldRepair().repair(grid))


if __name__ == "__main__":
    unittest.main()
