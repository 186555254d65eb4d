"""
Unit tests for the STL, OBJ/MTL and GLB codecs.
"""

import base64
import io
import json
import struct
import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest

from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voxport.config import ObjMode
from voxport.errors import ExportIOError, FormatError
from voxport.geometry import FaceDirection, MergedQuad, box_faces
from voxport.greedy_mesh import GreedyMesher, VoxelBox
from voxport.materials import Material, VoxelMaterial
from voxport.mesh import EmbeddedImage, Mesh
from voxport.result import ExportStatus
from voxport.voxelizer import VoxelGrid
from voxport.formats.stl import STLExporter, decode_stl, encode_stl, read_stl
from voxport.formats.obj import OBJExporter, material_name, read_mtl, read_obj, write_mesh_obj
from voxport.formats.glb import decode_glb, encode_glb, glb_to_obj, read_glb, write_glb


RED = VoxelMaterial(Material("test:red", (200, 0, 0)))


def unit_cube_quads(material=RED):
    return box_faces((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), material)


def png_bytes(pixels):
    """Encode an (H, W, 4) uint8 array as PNG."""
    buf = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def quad_mesh(with_uvs=False, image=None):
    """Two triangles forming a unit square."""
    positions = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=np.float32)
    triangles = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.uint32)
    uvs = np.array([[0, 1], [1, 1], [1, 0], [0, 0]], dtype=np.float32) if with_uvs else None
    return Mesh(positions=positions, triangles=triangles, uvs=uvs, image=image)


def build_glb(gltf, binary, json_type=0x4E4F534A, bin_type=0x004E4942):
    """Assemble a GLB container from raw parts."""
    json_bytes = json.dumps(gltf).encode("utf-8")
    json_bytes += b" " * ((4 - len(json_bytes) % 4) % 4)
    binary += b"\x00" * ((4 - len(binary) % 4) % 4)
    total = 12 + 8 + len(json_bytes) + 8 + len(binary)
    return (
        struct.pack("<III", 0x46546C67, 2, total) +
        struct.pack("<II", len(json_bytes), json_type) + json_bytes +
        struct.pack("<II", len(binary), bin_type) + binary
    )


class TestSTL(unittest.TestCase):
    """Tests for the binary STL codec."""

    def test_size(self):
        """N quads give 84 + 2N * 50 bytes with count 2N."""
        data = encode_stl(unit_cube_quads())
        assert len(data) == 84 + 12 * 50
        assert struct.unpack_from("<I", data, 80)[0] == 12
        assert data[:80] == b"\x00" * 80

    def test_decode(self):
        stl = decode_stl(encode_stl(unit_cube_quads(), scale=2.0))
        assert stl.triangle_count == 12
        assert stl.triangles.shape == (12, 3, 3)
        assert stl.triangles.max() == 2.0
        assert stl.header == b"\x00" * 80

    def test_normals_match_winding(self):
        stl = decode_stl(encode_stl(unit_cube_quads()))
        for normal, tri in zip(stl.normals, stl.triangles):
            computed = np.cross(tri[1] - tri[0], tri[2] - tri[0])
            assert np.allclose(computed / np.linalg.norm(computed), normal)

    def test_empty(self):
        stl = decode_stl(encode_stl([]))
        assert stl.triangle_count == 0

    def test_truncated(self):
        with self.assertRaises(FormatError):
            decode_stl(b"\x00" * 40)

    def test_count_mismatch(self):
        data = encode_stl(unit_cube_quads())
        with self.assertRaises(FormatError):
            decode_stl(data[:-10])
        bad = data[:80] + struct.pack("<I", 13) + data[84:]
        with self.assertRaises(FormatError):
            decode_stl(bad)

    def test_export_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cube.stl"
            assert STLExporter(scale=0.5).export(unit_cube_quads(), path) == 12
            stl = read_stl(path)
            assert stl.triangle_count == 12
            assert np.isclose(stl.triangles.max(), 0.5)

    def test_unwritable(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ExportIOError) as ctx:
                STLExporter().export(unit_cube_quads(), Path(tmp) / "missing" / "cube.stl")
            assert ctx.exception.path.name == "cube.stl"


class TestOBJExport(unittest.TestCase):
    """Tests for OBJ/MTL writing."""

    def test_color_quads(self):
        with tempfile.TemporaryDirectory() as tmp:
            report = OBJExporter().export_quads(unit_cube_quads(), Path(tmp) / "cube.obj")
            lines = report.obj_path.read_text().splitlines()
            mtl = report.mtl_path.read_text()

        assert lines[0].startswith("#")
        assert lines[1] == "mtllib cube.mtl"
        assert sum(l.startswith("v ") for l in lines) == 24
        assert sum(l.startswith("vt ") for l in lines) == 24
        assert sum(l.startswith("vn ") for l in lines) == 6
        faces = [l for l in lines if l.startswith("f ")]
        assert faces == ["f -4/-4/-1 -3/-3/-1 -2/-2/-1 -1/-1/-1"] * 6
        assert "usemtl mat_red" in lines
        assert mtl.count("newmtl mat_red") == 1
        assert "Kd 0.784314 0.000000 0.000000" in mtl
        assert report.warnings == []
        assert report.material_count == 1

    def test_color_split(self):
        """Per-position colors get their own material."""
        shaded = VoxelMaterial(RED.material, color=(10, 20, 30))
        assert material_name(shaded, ObjMode.COLOR) == "mat_red_0a141e"
        assert material_name(RED, ObjMode.COLOR) == "mat_red"
        assert material_name(shaded, ObjMode.TEXTURE) == "mat_red"

    def test_scale(self):
        with tempfile.TemporaryDirectory() as tmp:
            report = OBJExporter(scale=2.5).export_quads(unit_cube_quads(), Path(tmp) / "cube.obj")
            text = report.obj_path.read_text()
        assert "v 2.500000 2.500000 2.500000" in text

    def test_texture_tinted(self):
        """Textured mode writes one tinted PNG per (material, tint)."""
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            texture = tmp / "leaves.png"
            pixels = np.array([[[255, 255, 255, 255], [100, 200, 50, 128]],
                               [[10, 10, 10, 0], [0, 0, 0, 255]]], dtype=np.uint8)
            Image.fromarray(pixels).save(texture)

            leaves = VoxelMaterial(Material("test:leaves", (60, 140, 30), texture=texture), tint=(128, 255, 0))
            quad = MergedQuad((0, 1, 0), (4, 1, 1), FaceDirection.UP, leaves, 4, 1)
            report = OBJExporter(ObjMode.TEXTURE).export_quads([quad, quad], tmp / "tree.obj")

            mtl = report.mtl_path.read_text()
            obj = report.obj_path.read_text()
            assert report.textures == [tmp / "tree_textures" / "leaves_tinted_80ff00.png"]
            assert "newmtl mat_leaves_80ff00" in mtl
            assert "map_Kd tree_textures/leaves_tinted_80ff00.png" in mtl
            assert "vt 4.000000 0.000000" in obj

            tinted = np.asarray(Image.open(report.textures[0]).convert("RGBA"))
            assert tinted[0, 0].tolist() == [128, 255, 0, 255]
            assert tinted[0, 1].tolist() == [100 * 128 // 255, 200, 0, 128]
            assert tinted[1, 0].tolist() == [0, 0, 0, 0]

    def test_texture_repeat_follows_edges(self):
        """Each textured quad edge repeats the texture once per cell it spans."""
        voxels = {(0, y, z): RED for y in range(3) for z in range(2)}
        quads = GreedyMesher().mesh(VoxelGrid.from_voxels(voxels))
        assert {q.face for q in quads} == set(FaceDirection)
        with tempfile.TemporaryDirectory() as tmp:
            report = OBJExporter(ObjMode.TEXTURE).export_quads(quads, Path(tmp) / "column.obj")
            lines = report.obj_path.read_text().splitlines()

        positions = [list(map(float, l.split()[1:])) for l in lines if l.startswith("v ")]
        uvs = [list(map(float, l.split()[1:])) for l in lines if l.startswith("vt ")]
        assert len(positions) == len(uvs) == 4 * len(quads)
        for start in range(0, len(positions), 4):
            for i in range(4):
                a, b = start + i, start + (i + 1) % 4
                edge = np.abs(np.subtract(positions[b], positions[a])).max()
                span = np.abs(np.subtract(uvs[b], uvs[a])).max()
                assert edge == span, (positions[a], positions[b], uvs[a], uvs[b])

    def test_missing_texture(self):
        """A material without texture falls back to Kd with a warning."""
        with tempfile.TemporaryDirectory() as tmp:
            report = OBJExporter(ObjMode.TEXTURE).export_quads(unit_cube_quads(), Path(tmp) / "cube.obj")
            mtl = report.mtl_path.read_text()
        assert len(report.warnings) == 1
        assert "Kd 0.784314" in mtl
        assert "map_Kd" not in mtl

    def test_boxes(self):
        """Flat mode shares uvs and normals and uses absolute indices."""
        boxes = [
            VoxelBox((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), RED),
            VoxelBox((1.0, 0.0, 0.0), (2.0, 1.0, 1.0), RED),
        ]
        with tempfile.TemporaryDirectory() as tmp:
            report = OBJExporter().export_boxes(boxes, Path(tmp) / "boxes.obj")
            lines = report.obj_path.read_text().splitlines()

        assert sum(l.startswith("vt ") for l in lines) == 4
        assert sum(l.startswith("vn ") for l in lines) == 6
        assert sum(l.startswith("v ") for l in lines) == 16
        faces = [l for l in lines if l.startswith("f ")]
        assert len(faces) == 12
        assert faces[6] == "f 12/1/1 11/2/1 10/3/1 9/4/1"
        refs = [int(tok.split("/")[0]) for f in faces for tok in f.split()[1:]]
        assert min(refs) == 1 and max(refs) == 16

    def test_unwritable(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ExportIOError):
                OBJExporter().export_quads(unit_cube_quads(), Path(tmp) / "nope" / "cube.obj")


class TestOBJRead(unittest.TestCase):
    """Tests for OBJ/MTL reading."""

    def write(self, tmp, name, text):
        path = Path(tmp) / name
        path.write_text(text)
        return path

    def test_polygons_and_materials(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.write(tmp, "m.mtl", "newmtl red\nKd 1.0 0.0 0.0\nnewmtl blank\n")
            path = self.write(tmp, "m.obj", "\n".join([
                "# test",
                "mtllib m.mtl",
                "v 0 0 0", "v 1 0 0", "v 1 1 0", "v 0 1 0",
                "vn 0 0 1",
                "usemtl red",
                "f -4//1 -3//1 -2//1 -1//1",
                "usemtl blank",
                "f 1 2 3",
            ]))
            mesh = read_obj(path)

        assert mesh.vertex_count == 4
        assert mesh.triangles.tolist() == [[0, 1, 2], [0, 2, 3], [0, 1, 2]]
        assert mesh.triangle_materials == ["red", "red", "blank"]
        assert mesh.material_colors == {"red": (255, 0, 0), "blank": (255, 255, 255)}
        assert mesh.uvs is None

    def test_uvs_flipped(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.write(tmp, "t.obj", "v 0 0 0\nv 1 0 0\nv 0 1 0\nvt 0.25 0.75\nvt 1 0\nvt 0 1\nf 1/1 2/2 3/3\n")
            mesh = read_obj(path)
        assert np.allclose(mesh.uvs[0], (0.25, 0.25))
        assert np.allclose(mesh.uvs[1], (1.0, 1.0))

    def test_uv_seam_logged(self):
        """A vertex shared across a UV seam keeps its last coordinate and is logged."""
        with tempfile.TemporaryDirectory() as tmp:
            path = self.write(tmp, "seam.obj", "\n".join([
                "v 0 0 0", "v 1 0 0", "v 0 1 0", "v 1 1 0",
                "vt 0 0", "vt 1 0", "vt 0 1", "vt 0.5 0.5",
                "f 1/1 2/2 3/3",
                "f 2/4 4/2 3/3",
            ]))
            with self.assertLogs("voxport.formats.obj", level="DEBUG") as logs:
                mesh = read_obj(path)
        assert np.allclose(mesh.uvs[1], (0.5, 0.5))
        assert any("1 vertices" in line for line in logs.output)

    def test_bad_index(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.write(tmp, "bad.obj", "v 0 0 0\nv 1 0 0\nf 1 2 3\n")
            with self.assertRaises(FormatError):
                read_obj(path)
            path = self.write(tmp, "zero.obj", "v 0 0 0\nv 1 0 0\nv 1 1 0\nf 0 1 2\n")
            with self.assertRaises(FormatError):
                read_obj(path)

    def test_bad_number(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.write(tmp, "bad.obj", "v 0 zero 0\n")
            with self.assertRaises(FormatError):
                read_obj(path)

    def test_missing_library(self):
        """A missing mtllib leaves materials without colors."""
        with tempfile.TemporaryDirectory() as tmp:
            path = self.write(tmp, "m.obj", "mtllib gone.mtl\nv 0 0 0\nv 1 0 0\nv 0 1 0\nusemtl x\nf 1 2 3\n")
            mesh = read_obj(path)
        assert mesh.triangle_materials == ["x"]
        assert mesh.material_colors == {}

    def test_texture_average(self):
        """map_Kd average color overrides Kd."""
        with tempfile.TemporaryDirectory() as tmp:
            pixels = np.zeros((2, 2, 4), dtype=np.uint8)
            pixels[0, 0] = (100, 0, 0, 255)
            pixels[0, 1] = (200, 50, 0, 255)
            Image.fromarray(pixels).save(Path(tmp) / "tex.png")
            path = self.write(tmp, "m.mtl", "newmtl a\nKd 0 0 1\nmap_Kd tex.png\nnewmtl b\nKd 0 1 0\nmap_Kd missing.png\n")
            colors = read_mtl(path)
        assert colors["a"] == (150, 25, 0)
        assert colors["b"] == (0, 255, 0)

    def test_unreadable(self):
        with self.assertRaises(ExportIOError):
            read_obj("/nonexistent/model.obj")


class TestGLB(unittest.TestCase):
    """Tests for the GLB codec and GLB -> OBJ conversion."""

    def test_roundtrip(self):
        mesh = quad_mesh(with_uvs=True, image=EmbeddedImage(png_bytes(np.full((2, 2, 4), 255)), "image/png"))
        decoded = decode_glb(encode_glb(mesh))
        assert np.array_equal(decoded.positions, mesh.positions)
        assert np.array_equal(decoded.triangles, mesh.triangles)
        assert np.allclose(decoded.uvs, mesh.uvs)
        assert decoded.image.data == mesh.image.data
        assert decoded.image.extension == ".png"

    def test_base64(self):
        data = base64.b64encode(encode_glb(quad_mesh())).decode("ascii")
        assert decode_glb(data).triangle_count == 2

    def test_uint32_indices(self):
        positions = np.zeros((70000, 3), dtype=np.float32)
        mesh = Mesh(positions=positions, triangles=np.array([[0, 1, 69999]], dtype=np.uint32))
        data = encode_glb(mesh)
        gltf = json.loads(data[20:20 + struct.unpack_from("<I", data, 12)[0]])
        assert gltf["accessors"][0]["componentType"] == 5125
        assert decode_glb(data).triangles.tolist() == [[0, 1, 69999]]

    def test_bad_magic(self):
        data = bytearray(encode_glb(quad_mesh()))
        data[0:4] = b"glTX"
        with self.assertRaises(FormatError):
            decode_glb(bytes(data))

    def test_truncated(self):
        data = encode_glb(quad_mesh())
        with self.assertRaises(FormatError):
            decode_glb(data[:-8])
        with self.assertRaises(FormatError):
            decode_glb(data[:8])

    def test_chunk_order(self):
        gltf = {"meshes": []}
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, b"", json_type=0x004E4942))
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, b"", bin_type=0x4E4F534A))

    def test_missing_parts(self):
        with self.assertRaises(FormatError):
            decode_glb(build_glb({"asset": {"version": "2.0"}}, b""))

        gltf = {
            "meshes": [{"primitives": [{"attributes": {}, "indices": 0}]}],
            "accessors": [{"bufferView": 0, "componentType": 5123, "count": 0, "type": "SCALAR"}],
            "bufferViews": [{"buffer": 0, "byteLength": 0}],
        }
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, b""))

    def test_index_type(self):
        positions = np.zeros((3, 3), dtype="<f4").tobytes()
        indices = np.array([0, 1, 2], dtype=np.uint8).tobytes()
        gltf = {
            "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "indices": 1}]}],
            "accessors": [
                {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3"},
                {"bufferView": 1, "componentType": 5121, "count": 3, "type": "SCALAR"},
            ],
            "bufferViews": [
                {"buffer": 0, "byteOffset": 0, "byteLength": 36},
                {"buffer": 0, "byteOffset": 36, "byteLength": 3},
            ],
        }
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, positions + indices))

    def test_attribute_component_type(self):
        """Vertex attributes other than float32 are rejected, not reinterpreted."""
        positions = np.zeros((3, 3), dtype="<f4").tobytes()
        indices = np.array([0, 1, 2, 0], dtype="<u2").tobytes()
        texcoords = np.array([[0, 255], [255, 255], [0, 0]], dtype=np.uint8).tobytes() + b"\x00" * 18
        gltf = {
            "meshes": [{"primitives": [{"attributes": {"POSITION": 0, "TEXCOORD_0": 2}, "indices": 1}]}],
            "accessors": [
                {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3"},
                {"bufferView": 1, "componentType": 5123, "count": 3, "type": "SCALAR"},
                {"bufferView": 2, "componentType": 5121, "normalized": True, "count": 3, "type": "VEC2"},
            ],
            "bufferViews": [
                {"buffer": 0, "byteOffset": 0, "byteLength": 36},
                {"buffer": 0, "byteOffset": 36, "byteLength": 8},
                {"buffer": 0, "byteOffset": 44, "byteLength": 24},
            ],
        }
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, positions + indices + texcoords))

        del gltf["meshes"][0]["primitives"][0]["attributes"]["TEXCOORD_0"]
        gltf["accessors"][0]["componentType"] = 5122
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, positions + indices + texcoords))

    def test_interleaved_offsets(self):
        """Accessor byteOffset adds to bufferView byteOffset; byteStride is honored."""
        vertices = np.array([
            [0, 0, 0, 0.0, 0.5],
            [1, 0, 0, 1.0, 0.5],
            [0, 1, 0, 0.0, 1.0],
        ], dtype="<f4")
        indices = np.array([0, 1, 2, 2], dtype="<u2")  # trailing index ignored
        binary = b"\xff" * 8 + vertices.tobytes() + indices.tobytes()
        gltf = {
            "meshes": [{"primitives": [{"attributes": {"POSITION": 0, "TEXCOORD_0": 1}, "indices": 2}]}],
            "accessors": [
                {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3"},
                {"bufferView": 0, "byteOffset": 12, "componentType": 5126, "count": 3, "type": "VEC2"},
                {"bufferView": 1, "componentType": 5123, "count": 4, "type": "SCALAR"},
            ],
            "bufferViews": [
                {"buffer": 0, "byteOffset": 8, "byteLength": 60, "byteStride": 20},
                {"buffer": 0, "byteOffset": 68, "byteLength": 8},
            ],
        }
        mesh = decode_glb(build_glb(gltf, binary))
        assert mesh.positions.tolist() == vertices[:, :3].tolist()
        assert mesh.uvs.tolist() == vertices[:, 3:].tolist()
        assert mesh.triangles.tolist() == [[0, 1, 2]]

    def test_index_out_of_range(self):
        positions = np.zeros((3, 3), dtype="<f4").tobytes()
        indices = np.array([0, 1, 7], dtype="<u2").tobytes()
        gltf = {
            "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "indices": 1}]}],
            "accessors": [
                {"bufferView": 0, "componentType": 5126, "count": 3, "type": "VEC3"},
                {"bufferView": 1, "componentType": 5123, "count": 3, "type": "SCALAR"},
            ],
            "bufferViews": [
                {"buffer": 0, "byteOffset": 0, "byteLength": 36},
                {"buffer": 0, "byteOffset": 36, "byteLength": 6},
            ],
        }
        with self.assertRaises(FormatError):
            decode_glb(build_glb(gltf, positions + indices))

    def test_jpeg_extension(self):
        assert EmbeddedImage(b"", "image/jpeg").extension == ".jpg"
        assert EmbeddedImage(b"", "image/webp").extension == ".jpg"

    def test_obj_without_texture(self):
        """4 vertices, 2 triangles, no UVs -> plain faces and no MTL."""
        with tempfile.TemporaryDirectory() as tmp:
            obj_path = Path(tmp) / "plain.obj"
            result = glb_to_obj(encode_glb(quad_mesh()), obj_path)
            lines = obj_path.read_text().splitlines()
            assert not (Path(tmp) / "plain.mtl").exists()

        assert result.status == ExportStatus.SUCCESS
        assert result.outputs == [obj_path]
        assert sum(l.startswith("v ") for l in lines) == 4
        assert sum(l.startswith("vt ") for l in lines) == 0
        faces = [l for l in lines if l.startswith("f ")]
        assert faces == ["f 1 2 3", "f 1 3 4"]
        assert not any(l.startswith("mtllib") for l in lines)

    def test_obj_with_texture(self):
        image = EmbeddedImage(png_bytes(np.full((2, 2, 4), 200)), "image/png")
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            result = glb_to_obj(encode_glb(quad_mesh(with_uvs=True, image=image)), tmp / "model.obj")
            lines = (tmp / "model.obj").read_text().splitlines()
            mtl = (tmp / "model.mtl").read_text()
            assert (tmp / "model.png").read_bytes() == image.data

            reread = read_obj(tmp / "model.obj")

        assert result.status == ExportStatus.SUCCESS
        assert set(p.name for p in result.outputs) == {"model.obj", "model.png", "model.mtl"}
        assert "mtllib model.mtl" in lines
        assert "vt 0.000000 0.000000" in lines
        assert [l for l in lines if l.startswith("f ")][0] == "f 1/1 2/2 3/3"
        assert "map_Kd model.png" in mtl

        assert reread.vertex_count == 4
        assert reread.triangle_count == 2
        assert np.allclose(reread.uvs, quad_mesh(with_uvs=True).uvs)
        assert reread.material_colors["default"] == (200, 200, 200)

    def test_texture_write_failure(self):
        """Geometry is still written when the texture cannot be."""
        image = EmbeddedImage(png_bytes(np.full((1, 1, 4), 255)), "image/png")
        with tempfile.TemporaryDirectory() as tmp:
            tmp = Path(tmp)
            (tmp / "model.png").mkdir()
            result = glb_to_obj(encode_glb(quad_mesh(with_uvs=True, image=image)), tmp / "model.obj")
            assert (tmp / "model.obj").exists()

        assert result.status == ExportStatus.PARTIAL
        assert result.ok
        assert len(result.warnings) == 1

    def test_invalid_input(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = glb_to_obj(b"not a glb file", Path(tmp) / "x.obj")
        assert result.status == ExportStatus.FAILED
        assert isinstance(result.error, FormatError)

    def test_file_roundtrip(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "quad.glb"
            write_glb(quad_mesh(), path)
            assert read_glb(path).vertex_count == 4

    def test_write_mesh_obj_material(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "m.obj"
            write_mesh_obj(quad_mesh(), path, mtl_name="m.mtl", material="stone")
            text = path.read_text()
        assert "mtllib m.mtl\n" in text
        assert "usemtl stone\n" in text


if __name__ == "__main__":
    unittest.main()
