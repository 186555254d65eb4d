"""
Command-Line Interface for voxport

Usage:
    voxport glb2obj model.glb -o model.obj
    voxport voxelize model.obj -o model --format stl obj --scale 16
    voxport stl-info model.stl
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from .config import ExportSettings, ImportSettings, ObjMode, QUANTIZER_STRATEGIES
from .errors import VoxportError
from .exporter import VoxelExporter
from .formats.glb import glb_to_obj
from .formats.stl import read_stl
from .greedy_mesh import BoxMesher, GreedyMesher, compare_mesh_stats
from .importer import ModelImporter
from .result import ExportResult


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="voxport",
        description="voxport - Convert between voxel models, STL, OBJ and GLB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  voxport glb2obj model.glb -o model.obj
      Convert a GLB model (with its embedded texture) to OBJ

  voxport voxelize statue.obj --scale 32 --fill -o statue --format stl
      Voxelize an OBJ at 32 voxels per unit and write a printable STL

  voxport voxelize statue.glb --strategy hue --format obj --flat
      Voxelize with hue matching, one box per voxel

  voxport stl-info statue.stl
      Print triangle count and bounds of a binary STL
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose (debug) logging"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # glb2obj
    glb = sub.add_parser("glb2obj", help="Convert GLB to OBJ + MTL + texture")
    glb.add_argument("input", help="Input .glb file")
    glb.add_argument("-o", "--output", help="Output .obj file (default: input with .obj)")

    # voxelize
    vox = sub.add_parser("voxelize", help="Voxelize a mesh and export STL/OBJ")
    vox.add_argument("input", help="Input .obj, .glb or .stl file")
    vox.add_argument("-o", "--output", help="Output path without extension (default: input stem)")
    vox.add_argument(
        "-f", "--format",
        nargs="+",
        choices=["stl", "obj"],
        default=["stl"],
        help="Output formats (default: stl)"
    )
    vox.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Voxels per model unit (default: 1.0)"
    )
    vox.add_argument(
        "--output-scale",
        type=float,
        default=1.0,
        help="Output units per voxel (default: 1.0)"
    )
    vox.add_argument(
        "--strategy",
        choices=QUANTIZER_STRATEGIES,
        default="balanced",
        help="Palette matching strategy (default: balanced)"
    )
    vox.add_argument("--fill", action="store_true", help="Fill enclosed interior")
    vox.add_argument("--flat", action="store_true", help="One box per voxel instead of greedy merging")
    vox.add_argument("--solidify", action="store_true", help="Fill hollow columns below the top surface")
    vox.add_argument("--no-repair", action="store_true", help="Skip diagonal junction connectors")
    vox.add_argument("--stats", action="store_true", help="Print mesh statistics")

    # stl-info
    info = sub.add_parser("stl-info", help="Print information about a binary STL")
    info.add_argument("input", help="Input .stl file")

    return parser


def _print_result(result: ExportResult) -> int:
    for path in result.outputs:
        print(f"Exported: {path}")
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    return 0


def process_glb2obj(args) -> int:
    """Convert one GLB file."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1
    output_path = Path(args.output) if args.output else input_path.with_suffix(".obj")
    return _print_result(glb_to_obj(input_path.read_bytes(), output_path))


def process_voxelize(args) -> int:
    """Voxelize one model and export it."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1
    output_base = Path(args.output) if args.output else input_path.with_suffix("")

    start_time = time.time()
    try:
        importer = ModelImporter(ImportSettings(
            scale=args.scale,
            fill_interior=args.fill,
            strategy=args.strategy,
        ))
        grid = importer.load(input_path)
        settings = ExportSettings(
            scale=args.output_scale,
            merge=not args.flat,
            solidify=args.solidify,
            repair_diagonals=not args.no_repair,
            obj_mode=ObjMode.COLOR,
        )
    except VoxportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.stats:
        stats = compare_mesh_stats(GreedyMesher().mesh(grid), BoxMesher().mesh(grid))
        print("\nMesh Statistics:")
        print(f"  Voxels: {grid.count_voxels()}")
        print(f"  Grid size: {grid.cuboid.size}")
        print(f"  Merged quads: {stats['merged_quads']}")
        print(f"  Flat quads: {stats['flat_quads']}")
        print(f"  Triangle reduction: {stats['triangle_reduction_percent']:.1f}%")

    status = 0
    with VoxelExporter(settings) as exporter:
        for fmt in args.format:
            if fmt == "stl":
                result = exporter.export_stl(grid, output_base.with_suffix(".stl"))
            else:
                result = exporter.export_obj(grid, output_base.with_suffix(".obj"))
            status = max(status, _print_result(result))

    if args.verbose:
        print(f"\nCompleted in {time.time() - start_time:.2f}s")
    return status


def process_stl_info(args) -> int:
    """Summarize a binary STL file."""
    try:
        stl = read_stl(args.input)
    except VoxportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Triangles: {stl.triangle_count}")
    if stl.triangle_count:
        points = stl.triangles.reshape(-1, 3)
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        print(f"Bounds min: ({lo[0]:.3f}, {lo[1]:.3f}, {lo[2]:.3f})")
        print(f"Bounds max: ({hi[0]:.3f}, {hi[1]:.3f}, {hi[2]:.3f})")
    return 0


COMMANDS = {
    "glb2obj": process_glb2obj,
    "voxelize": process_voxelize,
    "stl-info": process_stl_info,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
