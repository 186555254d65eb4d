"""
Main VoxelExporter Class

This is the primary interface for the voxel export pipeline.
It orchestrates:
1. Region selection (grid cuboid or a caller-supplied sub-cuboid)
2. Mesh generation (Greedy Meshing or per-voxel boxes)
3. Manifold repair of diagonal junctions
4. Export to STL or OBJ + MTL (+ textures)

Entry points never raise for format, I/O, configuration or cancellation
errors; they return an ExportResult.

Example Usage:
    exporter = VoxelExporter(ExportSettings(scale=2.0, solidify=True))
    result = exporter.export_stl(grid, "castle.stl", progress=print)
    if not result.ok:
        print(result.error)
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Union

from .config import ExportSettings, ObjMode
from .errors import ExportCancelled, VoxportError
from .formats.obj import OBJExporter
from .formats.stl import STLExporter
from .geometry import Cuboid, MergedQuad
from .greedy_mesh import BoxMesher, GreedyMesher
from .manifold import ManifoldRepair
from .progress import ProgressCallback, ProgressRange
from .result import ExportResult
from .voxelizer import VoxelGrid

logger = logging.getLogger(__name__)

# Share of overall progress spent meshing; the rest is writing
MESH_PHASE = 0.8


class VoxelExporter:
    """
    High-level interface for exporting voxel regions.

    Attributes:
        settings: Export settings shared by every call
    """

    def __init__(self, settings: Optional[ExportSettings] = None, max_workers: int = 1):
        """
        Initialize the exporter.

        Args:
            settings: Export settings (defaults to ExportSettings())
            max_workers: Worker threads used by submit()
        """
        self.settings = settings or ExportSettings()
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def build_quads(
        self,
        grid: VoxelGrid,
        cuboid: Optional[Cuboid] = None,
        color_merge: bool = False,
        progress: Optional[ProgressCallback] = None,
        mesher: Optional[BoxMesher] = None
    ) -> List[MergedQuad]:
        """
        Mesh a region according to the settings.

        Merged mode runs the greedy mesher and appends diagonal connectors;
        flat mode emits six quads per voxel box.

        Args:
            grid: Source voxel grid
            cuboid: Region to mesh (defaults to the grid cuboid)
            color_merge: Split merges by display color
            progress: Progress callback for this phase
            mesher: Box mesher for flat mode

        Returns:
            Cuboid-relative quads in voxel units
        """
        s = self.settings
        if not s.merge:
            return (mesher or BoxMesher()).mesh(grid, cuboid, progress)

        quads = GreedyMesher().mesh(grid, cuboid, color_merge, s.solidify, progress)
        if s.repair_diagonals:
            repair = ManifoldRepair(s.connector_half_thickness)
            quads.extend(repair.repair(grid, cuboid, s.solidify))
        return quads

    def export_stl(
        self,
        grid: VoxelGrid,
        output_path: Union[str, Path],
        cuboid: Optional[Cuboid] = None,
        progress: Optional[ProgressCallback] = None
    ) -> ExportResult:
        """
        Export a region to binary STL.

        Args:
            grid: Source voxel grid
            output_path: Output file path (.stl)
            cuboid: Region to export (defaults to the grid cuboid)
            progress: Called with the completed fraction; may raise
                ExportCancelled to abort

        Returns:
            ExportResult
        """
        output_path = Path(output_path)
        overall = ProgressRange(progress)

        def run() -> ExportResult:
            quads = self.build_quads(
                grid, cuboid,
                progress=overall.sub(0.0, MESH_PHASE),
                mesher=BoxMesher.for_printing()
            )
            overall(MESH_PHASE)
            triangles = STLExporter(self.settings.scale).export(quads, output_path)
            return ExportResult.completed([output_path], quad_count=len(quads), triangle_count=triangles)

        return self._run("STL", output_path, run, progress)

    def export_obj(
        self,
        grid: VoxelGrid,
        output_path: Union[str, Path],
        cuboid: Optional[Cuboid] = None,
        progress: Optional[ProgressCallback] = None
    ) -> ExportResult:
        """
        Export a region to OBJ with an MTL library.

        In texture mode, tinted textures are written to
        `<stem><texture_dir_suffix>/` next to the OBJ. Texture failures fall
        back to diffuse colors and make the result PARTIAL.

        Args:
            grid: Source voxel grid
            output_path: Output file path (.obj)
            cuboid: Region to export (defaults to the grid cuboid)
            progress: Called with the completed fraction; may raise
                ExportCancelled to abort

        Returns:
            ExportResult
        """
        s = self.settings
        output_path = Path(output_path)
        overall = ProgressRange(progress)
        writer = OBJExporter(s.obj_mode, s.scale, s.texture_dir_suffix)

        def run() -> ExportResult:
            meshing = overall.sub(0.0, MESH_PHASE)
            if s.merge:
                quads = self.build_quads(grid, cuboid, s.obj_mode == ObjMode.COLOR, meshing)
                overall(MESH_PHASE)
                report = writer.export_quads(quads, output_path)
                quad_count = len(quads)
            else:
                boxes = BoxMesher().boxes(grid, cuboid, meshing)
                overall(MESH_PHASE)
                report = writer.export_boxes(boxes, output_path)
                quad_count = 6 * len(boxes)

            outputs = [report.obj_path, report.mtl_path] + report.textures
            return ExportResult.completed(outputs, report.warnings, quad_count, 2 * quad_count)

        return self._run("OBJ", output_path, run, progress)

    def _run(
        self,
        label: str,
        output_path: Path,
        run: Callable[[], ExportResult],
        progress: Optional[ProgressCallback]
    ) -> ExportResult:
        try:
            result = run()
        except ExportCancelled as exc:
            logger.info("%s export to %s cancelled", label, output_path)
            return ExportResult.failed(exc)
        except (VoxportError, OSError, ValueError) as exc:
            logger.error("%s export to %s failed: %s", label, output_path, exc)
            return ExportResult.failed(exc)

        if progress is not None:
            try:
                progress(1.0)
            except ExportCancelled as exc:
                return ExportResult.failed(exc, result.outputs)

        for warning in result.warnings:
            logger.debug("%s export warning: %s", label, warning)
        logger.info(
            "%s export to %s: %s, %d quads", label, output_path, result.status.value, result.quad_count
        )
        return result

    def submit(self, func: Callable[..., ExportResult], *args, **kwargs) -> "Future[ExportResult]":
        """
        Run an export method on a worker thread.

        Example:
            >>> future = exporter.submit(exporter.export_stl, grid, "out.stl")
            >>> result = future.result()
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="voxport")
        return self._executor.submit(func, *args, **kwargs)

    def close(self):
        """Wait for pending exports and release the worker threads."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "VoxelExporter":
        return self

    def __exit__(self, *exc_info):
        self.close()
