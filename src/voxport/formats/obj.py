"""
Wavefront OBJ/MTL Codec

OBJ is a universal text-based format supported by virtually all 3D
software. Colors travel in a companion MTL library, either as a diffuse
color (`Kd`) or as a texture map (`map_Kd`) exported next to the model.

Writing:
- Merged mode: one 4-vertex quad per MergedQuad, referenced with relative
  negative indices so quads can be appended independently
- Flat mode: one 8-vertex box per voxel sub-box, faces using absolute
  indices into a shared set of 4 UVs and 6 normals
- Plain triangle meshes (GLB conversion)

Reading: vertices, UVs, polygon faces (fan triangulated), `usemtl` and
`mtllib`, plus MTL diffuse colors and texture averages. The result feeds
the voxelizer.
"""

import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, TextIO, Tuple, Union

import numpy as np
from PIL import Image

from ..color import average_texture_color, load_rgba, tint_texture
from ..config import ObjMode
from ..errors import ExportIOError, FormatError
from ..geometry import FACE_AXES, FaceDirection, MergedQuad
from ..greedy_mesh import VoxelBox
from ..materials import RGB, WHITE, VoxelMaterial, hex_color
from ..mesh import Mesh

logger = logging.getLogger(__name__)

HEADER = "# Exported by voxport"

# Box vertex order: bottom ring at max-z first, then the same ring on top
# 1(x0,y0,z1) 2(x1,y0,z1) 3(x1,y0,z0) 4(x0,y0,z0), 5..8 the same at y1
BOX_FACES = (
    (FaceDirection.DOWN, (4, 3, 2, 1)),
    (FaceDirection.UP, (5, 6, 7, 8)),
    (FaceDirection.SOUTH, (1, 2, 6, 5)),
    (FaceDirection.NORTH, (3, 4, 8, 7)),
    (FaceDirection.WEST, (4, 1, 5, 8)),
    (FaceDirection.EAST, (2, 3, 7, 6)),
)


class ObjReport(NamedTuple):
    """Files written by one OBJ export."""
    obj_path: Path
    mtl_path: Path
    textures: List[Path]
    warnings: List[str]
    material_count: int


def material_name(material: VoxelMaterial, mode: ObjMode) -> str:
    """
    MTL material name for a voxel material.

    Textured output splits materials by tint; color output splits them by
    per-position display color.
    """
    name = "mat_" + material.material.name.replace("/", "_")
    if mode == ObjMode.TEXTURE:
        if material.tint is not None:
            name += "_" + hex_color(material.tint)
    elif material.color is not None and material.color != material.material.map_color:
        name += "_" + hex_color(material.color)
    return name


def texture_filename(material: VoxelMaterial) -> str:
    """PNG file name for a (texture, tint) pair."""
    stem = Path(material.material.texture).stem if material.material.texture else material.material.name
    if material.tint is not None:
        stem += "_tinted_" + hex_color(material.tint)
    return stem + ".png"


def _fmt(value: float) -> str:
    return f"{value:.6f}"


class _MaterialLibrary:
    """Writes MTL blocks and texture files on first use of each name."""

    def __init__(self, mtl: TextIO, mode: ObjMode, texture_dir: Path):
        self.mtl = mtl
        self.mode = mode
        self.texture_dir = texture_dir
        self.written: Set[str] = set()
        self.textures: List[Path] = []
        self.warnings: List[str] = []
        mtl.write("# Material Library\n\n")

    def use(self, material: VoxelMaterial) -> str:
        name = material_name(material, self.mode)
        if name not in self.written:
            self._write_material(name, material)
            self.written.add(name)
        return name

    def _write_material(self, name: str, material: VoxelMaterial):
        if self.mode == ObjMode.TEXTURE:
            texture = self._export_texture(material)
            if texture is not None:
                self.mtl.write(f"newmtl {name}\n")
                self.mtl.write("Kd 1.0 1.0 1.0\n")
                self.mtl.write(f"map_Kd {self.texture_dir.name}/{texture}\n\n")
                return

        r, g, b = (c / 255.0 for c in material.display_color)
        self.mtl.write(f"newmtl {name}\n")
        self.mtl.write(f"Kd {_fmt(r)} {_fmt(g)} {_fmt(b)}\n")
        self.mtl.write("d 1.0\n")
        self.mtl.write("illum 2\n\n")

    def _export_texture(self, material: VoxelMaterial) -> Optional[str]:
        source = material.material.texture
        if source is None:
            self._warn(f"{material.material.id}: no texture, using diffuse color")
            return None

        filename = texture_filename(material)
        target = self.texture_dir / filename
        if target in self.textures:
            return filename

        try:
            self.texture_dir.mkdir(parents=True, exist_ok=True)
            if material.tint is not None:
                image = tint_texture(source, material.tint)
            else:
                image = Image.fromarray(load_rgba(source))
            image.save(target, format="PNG")
        except (OSError, ValueError) as exc:
            self._warn(f"{material.material.id}: texture export failed ({exc}), using diffuse color")
            return None

        self.textures.append(target)
        return filename

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)


class OBJExporter:
    """
    Export quads or boxes to Wavefront OBJ with an MTL library.

    Supports:
    - Diffuse color materials (ObjMode.COLOR)
    - Textured materials with tinted PNG export (ObjMode.TEXTURE)
    """

    def __init__(
        self,
        mode: ObjMode = ObjMode.COLOR,
        scale: float = 1.0,
        texture_dir_suffix: str = "_textures"
    ):
        """
        Initialize the exporter.

        Args:
            mode: Material representation
            scale: Output units per voxel
            texture_dir_suffix: Appended to the OBJ stem to name the
                texture directory
        """
        self.mode = mode
        self.scale = scale
        self.texture_dir_suffix = texture_dir_suffix

    def export_quads(self, quads: Sequence[MergedQuad], output_path: Union[str, Path]) -> ObjReport:
        """
        Export merged quads.

        Args:
            quads: Quads to write
            output_path: Output file path (.obj)

        Returns:
            ObjReport describing the written files
        """
        def body(obj: TextIO, library: _MaterialLibrary):
            s = self.scale
            textured = self.mode == ObjMode.TEXTURE
            for quad in quads:
                name = library.use(quad.material)
                for x, y, z in quad.corners():
                    obj.write(f"v {_fmt(x * s)} {_fmt(y * s)} {_fmt(z * s)}\n")
                u, v = quad.uv_repeat() if textured else (1.0, 1.0)
                obj.write("vt 0.000000 0.000000\n")
                obj.write(f"vt {_fmt(u)} 0.000000\n")
                obj.write(f"vt {_fmt(u)} {_fmt(v)}\n")
                obj.write(f"vt 0.000000 {_fmt(v)}\n")
                nx, ny, nz = quad.normal
                obj.write(f"vn {nx} {ny} {nz}\n")
                obj.write(f"usemtl {name}\n")
                obj.write("f -4/-4/-1 -3/-3/-1 -2/-2/-1 -1/-1/-1\n")

        return self._export(output_path, body)

    def export_boxes(self, boxes: Sequence[VoxelBox], output_path: Union[str, Path]) -> ObjReport:
        """
        Export unmerged per-voxel boxes.

        Args:
            boxes: Boxes from BoxMesher
            output_path: Output file path (.obj)

        Returns:
            ObjReport describing the written files
        """
        def body(obj: TextIO, library: _MaterialLibrary):
            s = self.scale
            for uv in ("0 0", "1 0", "1 1", "0 1"):
                obj.write(f"vt {uv}\n")
            for face, _ in BOX_FACES:
                nx, ny, nz = FACE_AXES[face].normal
                obj.write(f"vn {nx} {ny} {nz}\n")

            uv_index = (1, 2, 3, 4)
            vertex_count = 0
            for box in boxes:
                name = library.use(box.material)
                x0, y0, z0 = (c * s for c in box.min)
                x1, y1, z1 = (c * s for c in box.max)
                for x, y, z in (
                    (x0, y0, z1), (x1, y0, z1), (x1, y0, z0), (x0, y0, z0),
                    (x0, y1, z1), (x1, y1, z1), (x1, y1, z0), (x0, y1, z0),
                ):
                    obj.write(f"v {_fmt(x)} {_fmt(y)} {_fmt(z)}\n")
                obj.write(f"usemtl {name}\n")
                for normal, (face, corners) in enumerate(BOX_FACES, start=1):
                    refs = " ".join(
                        f"{vertex_count + c}/{t}/{normal}" for c, t in zip(corners, uv_index)
                    )
                    obj.write(f"f {refs}\n")
                vertex_count += 8

        return self._export(output_path, body)

    def _export(self, output_path: Union[str, Path], body) -> ObjReport:
        obj_path = Path(output_path)
        mtl_path = obj_path.with_suffix(".mtl")
        texture_dir = obj_path.parent / (obj_path.stem + self.texture_dir_suffix)

        try:
            with open(obj_path, "w", encoding="utf-8") as obj, open(mtl_path, "w", encoding="utf-8") as mtl:
                library = _MaterialLibrary(mtl, self.mode, texture_dir)
                obj.write(f"{HEADER}\n")
                obj.write(f"mtllib {mtl_path.name}\n")
                body(obj, library)
        except OSError as exc:
            raise ExportIOError(
                f"Could not write OBJ export: {exc.strerror or exc}", exc.filename or obj_path
            ) from exc

        logger.info("Wrote %s with %d materials", obj_path, len(library.written))
        return ObjReport(obj_path, mtl_path, library.textures, library.warnings, len(library.written))


def write_mesh_obj(
    mesh: Mesh,
    output_path: Union[str, Path],
    mtl_name: Optional[str] = None,
    material: Optional[str] = None,
    comment: str = "# Converted by voxport"
):
    """
    Write a triangle mesh as OBJ.

    Args:
        mesh: Mesh to write; UVs are flipped to a bottom-left origin
        output_path: Output file path (.obj)
        mtl_name: Material library file to reference, if any
        material: Material to apply to every face (requires mtl_name)
        comment: Header comment line
    """
    output_path = Path(output_path)
    tris = mesh.triangles.astype(np.int64) + 1

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(f"{comment}\n")
            if mtl_name:
                f.write(f"mtllib {mtl_name}\n")
            for x, y, z in mesh.positions:
                f.write(f"v {_fmt(x)} {_fmt(y)} {_fmt(z)}\n")
            if mesh.uvs is not None:
                for u, v in mesh.uvs:
                    f.write(f"vt {_fmt(u)} {_fmt(1.0 - v)}\n")
            if mtl_name and material:
                f.write(f"usemtl {material}\n")
            if mesh.uvs is not None:
                for a, b, c in tris:
                    f.write(f"f {a}/{a} {b}/{b} {c}/{c}\n")
            else:
                for a, b, c in tris:
                    f.write(f"f {a} {b} {c}\n")
    except OSError as exc:
        raise ExportIOError(f"Could not write OBJ file: {exc.strerror or exc}", output_path) from exc


def write_texture_mtl(output_path: Union[str, Path], material: str, texture: str):
    """Write a single-material MTL library referencing one texture."""
    output_path = Path(output_path)
    try:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(f"newmtl {material}\n")
            f.write("Kd 1.0 1.0 1.0\n")
            f.write(f"map_Kd {texture}\n")
    except OSError as exc:
        raise ExportIOError(f"Could not write MTL file: {exc.strerror or exc}", output_path) from exc


def _floats(values: List[str], count: int, lineno: int, default: float = 0.0) -> List[float]:
    try:
        result = [float(v) for v in values[:count]]
    except ValueError:
        raise FormatError(f"line {lineno}: malformed number in {' '.join(values)!r}") from None
    if not result:
        raise FormatError(f"line {lineno}: missing coordinates")
    return result + [default] * (count - len(result))


def _resolve_index(token: str, count: int, lineno: int) -> int:
    try:
        index = int(token)
    except ValueError:
        raise FormatError(f"line {lineno}: malformed index {token!r}") from None
    resolved = count + index if index < 0 else index - 1
    if index == 0 or not 0 <= resolved < count:
        raise FormatError(f"line {lineno}: index {index} out of range (have {count})")
    return resolved


def read_mtl(path: Union[str, Path]) -> Dict[str, RGB]:
    """
    Read diffuse colors from an MTL library.

    A `map_Kd` texture's average color overrides `Kd`. Unreadable textures
    are logged and the `Kd` color is kept.
    """
    path = Path(path)
    diffuse: Dict[str, RGB] = {}
    textured: Dict[str, RGB] = {}
    current: Optional[str] = None

    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as exc:
        raise ExportIOError(f"Could not read MTL file: {exc.strerror or exc}", path) from exc

    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        tag, _, rest = line.partition(" ")
        rest = rest.strip()

        if tag == "newmtl":
            current = rest
            diffuse[current] = WHITE
        elif current is None:
            continue
        elif tag == "Kd":
            r, g, b = _floats(rest.split(), 3, lineno)
            diffuse[current] = tuple(int(min(max(c, 0.0), 1.0) * 255) for c in (r, g, b))
        elif tag == "map_Kd" and rest:
            texture = path.parent / rest.split()[-1]
            try:
                textured[current] = average_texture_color(texture)
            except OSError as exc:
                logger.warning("Texture %s for material %s unreadable: %s", texture, current, exc)

    diffuse.update(textured)
    return diffuse


def read_obj(path: Union[str, Path]) -> Mesh:
    """
    Read an OBJ file into a Mesh.

    Polygons are fan triangulated. Per-triangle material names come from
    `usemtl`, their colors from every `mtllib` that can be read.

    Raises:
        FormatError: Malformed numbers or out-of-range indices
        ExportIOError: The OBJ file cannot be read
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as exc:
        raise ExportIOError(f"Could not read OBJ file: {exc.strerror or exc}", path) from exc

    positions: List[List[float]] = []
    uvs: List[List[float]] = []
    triangles: List[Tuple[int, int, int]] = []
    uv_refs: Dict[int, int] = {}
    uv_conflicts: Set[int] = set()
    materials: List[Optional[str]] = []
    libraries: List[str] = []
    current: Optional[str] = None

    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()
        tag = parts[0]

        if tag == "v":
            positions.append(_floats(parts[1:], 3, lineno))
        elif tag == "vt":
            uvs.append(_floats(parts[1:], 2, lineno))
        elif tag == "f":
            corners = []
            for token in parts[1:]:
                pieces = token.split("/")
                vi = _resolve_index(pieces[0], len(positions), lineno)
                if len(pieces) > 1 and pieces[1]:
                    ti = _resolve_index(pieces[1], len(uvs), lineno)
                    if uv_refs.get(vi, ti) != ti:
                        uv_conflicts.add(vi)
                    uv_refs[vi] = ti
                corners.append(vi)
            if len(corners) < 3:
                raise FormatError(f"line {lineno}: face needs at least 3 vertices")
            for i in range(1, len(corners) - 1):
                triangles.append((corners[0], corners[i], corners[i + 1]))
                materials.append(current)
        elif tag == "usemtl":
            current = line[len(tag):].strip() or None
        elif tag == "mtllib":
            libraries.append(line[len(tag):].strip())

    colors: Dict[str, RGB] = {}
    for library in libraries:
        mtl_path = path.parent / library
        if not mtl_path.exists():
            logger.warning("Material library %s not found", mtl_path)
            continue
        colors.update(read_mtl(mtl_path))

    uv_array = None
    if uv_refs:
        uv_array = np.zeros((len(positions), 2), dtype=np.float32)
        source = np.asarray(uvs, dtype=np.float32)
        for vi, ti in uv_refs.items():
            uv_array[vi] = (source[ti, 0], 1.0 - source[ti, 1])
        if uv_conflicts:
            logger.debug(
                "%d vertices in %s have several texture coordinates; keeping the last one",
                len(uv_conflicts), path
            )

    logger.debug("Read %d vertices, %d triangles from %s", len(positions), len(triangles), path)
    return Mesh(
        positions=np.asarray(positions, dtype=np.float32).reshape(-1, 3),
        triangles=np.asarray(triangles, dtype=np.uint32).reshape(-1, 3),
        uvs=uv_array,
        triangle_materials=materials if any(m is not None for m in materials) else None,
        material_colors=colors,
    )
