#!/usr/bin/env python3
"""
voxport Demo Script

This script demonstrates the export pipeline by:
1. Building synthetic voxel scenes (no external models needed)
2. Exporting merged and flat STL/OBJ
3. Voxelizing a generated GLB back onto the palette
4. Printing statistics and comparisons

Run with: python examples/demo.py
"""

import logging
import sys
from pathlib import Path
import numpy as np
import time

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voxport import ExportSettings, ImportSettings, ModelImporter, VoxelExporter, VoxelGrid
from voxport.formats.glb import write_glb
from voxport.greedy_mesh import BoxMesher, GreedyMesher, compare_mesh_stats
from voxport.materials import Material, MaterialShape, VoxelMaterial
from voxport.mesh import Mesh

SANDSTONE = VoxelMaterial(Material("minecraft:sandstone", (216, 203, 155)))
OAK_LOG = VoxelMaterial(Material("minecraft:oak_log", (109, 85, 50)))
LEAVES = VoxelMaterial(Material("minecraft:oak_leaves", (60, 120, 30), opaque=False), tint=(72, 181, 24))
FERN = VoxelMaterial(Material("minecraft:fern", (90, 140, 60), shape=MaterialShape.CROSS, opaque=False))


def create_pyramid(size: int = 16) -> VoxelGrid:
    """Stepped pyramid, hollow inside (good solidify test)."""
    voxels = {}
    for y in range(size // 2):
        lo, hi = y, size - 1 - y
        for x in range(lo, hi + 1):
            for z in range(lo, hi + 1):
                if x in (lo, hi) or z in (lo, hi) or y == size // 2 - 1:
                    voxels[(x, y, z)] = SANDSTONE
    return VoxelGrid.from_voxels(voxels)


def create_checkerboard(size: int = 8) -> VoxelGrid:
    """Pillars touching only along edges (needs manifold repair)."""
    voxels = {}
    for x in range(size):
        for z in range(size):
            if (x + z) % 2 == 0:
                for y in range(3):
                    voxels[(x, y, z)] = SANDSTONE
    return VoxelGrid.from_voxels(voxels)


def create_tree() -> VoxelGrid:
    """Trunk, leaf ball and a few ferns."""
    voxels = {}
    for y in range(6):
        voxels[(4, y, 4)] = OAK_LOG
    for x in range(9):
        for y in range(4, 9):
            for z in range(9):
                if (x - 4) ** 2 + (y - 6) ** 2 + (z - 4) ** 2 <= 9 and (x, y, z) not in voxels:
                    voxels[(x, y, z)] = LEAVES
    for x, z in ((1, 1), (7, 2), (2, 7)):
        voxels[(x, 0, z)] = FERN
    return VoxelGrid.from_voxels(voxels)


def create_sphere_mesh(segments: int = 16) -> Mesh:
    """UV sphere of radius 1."""
    rings = segments // 2
    theta = np.linspace(0, np.pi, rings + 1)
    phi = np.linspace(0, 2 * np.pi, segments + 1)
    t, p = np.meshgrid(theta, phi, indexing="ij")
    positions = np.stack([np.sin(t) * np.cos(p), np.cos(t), np.sin(t) * np.sin(p)], axis=-1).reshape(-1, 3)

    triangles = []
    cols = segments + 1
    for r in range(rings):
        for s in range(segments):
            a = r * cols + s
            b = a + cols
            triangles.append((a, b, a + 1))
            triangles.append((a + 1, b, b + 1))
    return Mesh(positions=positions, triangles=np.array(triangles))


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("voxport - Demo")
    print("=" * 60)
    print()

    # Create output directory
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    scenes = [
        ("pyramid", create_pyramid(16)),
        ("checkerboard", create_checkerboard(8)),
        ("tree", create_tree()),
    ]

    total_start = time.time()

    for name, grid in scenes:
        print(f"\n--- Processing: {name} ---")
        print(f"Voxel count: {grid.count_voxels()}, region: {grid.cuboid.size}")

        stats = compare_mesh_stats(GreedyMesher().mesh(grid), BoxMesher().mesh(grid))
        print(f"  Merged quads: {stats['merged_quads']}")
        print(f"  Flat quads: {stats['flat_quads']}")
        print(f"  Triangle reduction: {stats['triangle_reduction_percent']:.1f}%")

        base_path = output_dir / name
        for label, settings in (
            ("merged", ExportSettings(scale=0.5, solidify=True)),
            ("flat", ExportSettings(scale=0.5, merge=False)),
        ):
            exporter = VoxelExporter(settings)
            for result in (
                exporter.export_stl(grid, base_path.with_name(f"{name}_{label}.stl")),
                exporter.export_obj(grid, base_path.with_name(f"{name}_{label}.obj")),
            ):
                print(f"  {label}: {result.status.value}, {result.triangle_count} triangles")
                for path in result.outputs:
                    print(f"    Saved: {path}")

    # GLB -> voxels -> STL
    print("\n--- Round trip: sphere.glb ---")
    glb_path = output_dir / "sphere.glb"
    write_glb(create_sphere_mesh(24), glb_path)
    for scale in (4, 8, 16):
        start = time.time()
        grid = ModelImporter(ImportSettings(scale=scale, fill_interior=True)).load(glb_path)
        result = VoxelExporter().export_stl(grid, output_dir / f"sphere_{scale}.stl")
        print(
            f"  scale {scale}: {grid.count_voxels()} voxels, {result.quad_count} quads "
            f"({(time.time() - start) * 1000:.1f}ms)"
        )

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)

    return 0


def benchmark_greedy_meshing():
    """Benchmark greedy meshing performance."""
    print("\n--- Greedy Meshing Benchmark ---\n")

    for size in [16, 32, 64]:
        # Solid cube with a checkered top layer
        voxels = {(x, y, z): SANDSTONE for x in range(size) for y in range(size - 1) for z in range(size)}
        for x in range(size):
            for z in range(size):
                voxels[(x, size - 1, z)] = OAK_LOG if (x + z) % 2 else SANDSTONE
        grid = VoxelGrid.from_voxels(voxels)

        start = time.time()
        merged = GreedyMesher().mesh(grid)
        merged_time = time.time() - start

        start = time.time()
        flat = BoxMesher().mesh(grid)
        flat_time = time.time() - start

        stats = compare_mesh_stats(merged, flat)

        print(f"Grid size: {size}x{size}x{size}")
        print(f"  Greedy: {merged_time*1000:.1f}ms, {stats['merged_quads']} quads")
        print(f"  Flat:   {flat_time*1000:.1f}ms, {stats['flat_quads']} quads")
        print(f"  Reduction: {stats['triangle_reduction_percent']:.1f}%")
        print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    run_demo()

    # Uncomment to run benchmark
    # benchmark_greedy_meshing()
