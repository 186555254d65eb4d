"""
GLB (binary glTF 2.0) Codec

Only the subset produced by typical model generators is supported: the
first primitive of the first mesh, with POSITION (float32 VEC3), optional
TEXCOORD_0 (float32 VEC2), triangle indices (uint16 or uint32) and an
optional embedded base color image.

GLB Structure:
- 12-byte header: magic "glTF", version 2, total length
- JSON chunk describing accessors, buffer views, meshes and images
- BIN chunk holding all binary payloads
"""

import base64
import binascii
import json
import logging
import struct
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from ..errors import ExportIOError, FormatError, VoxportError
from ..mesh import EmbeddedImage, Mesh
from ..result import ExportResult
from .obj import write_mesh_obj, write_texture_mtl

logger = logging.getLogger(__name__)

# glTF constants
GLTF_VERSION = "2.0"
GENERATOR = "voxport"

GLB_MAGIC = 0x46546C67          # "glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A         # "JSON"
CHUNK_BIN = 0x004E4942          # "BIN\0"

# Component types
UNSIGNED_SHORT = 5123
UNSIGNED_INT = 5125
FLOAT = 5126

INDEX_DTYPES = {
    UNSIGNED_SHORT: np.dtype("<u2"),
    UNSIGNED_INT: np.dtype("<u4"),
}

FLOAT_DTYPES = {FLOAT: np.dtype("<f4")}

TYPE_COMPONENTS = {"SCALAR": 1, "VEC2": 2, "VEC3": 3}

# Buffer view targets
ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

# Primitive modes
TRIANGLES = 4

OBJ_MATERIAL = "default"


def _as_bytes(data: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(data, str):
        try:
            return base64.b64decode(data.strip(), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise FormatError(f"Invalid base64 GLB payload: {exc}") from exc
    return bytes(data)


def _read_chunks(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    """Split a GLB container into its JSON document and BIN payload."""
    if len(data) < 12:
        raise FormatError("Invalid GLB: data too small")

    magic, version, _ = struct.unpack_from("<III", data, 0)
    if magic != GLB_MAGIC:
        raise FormatError("Invalid GLB: bad magic")
    if version != GLB_VERSION:
        logger.warning("GLB version %d, expected %d", version, GLB_VERSION)

    offset = 12
    chunks = []
    for expected, label in ((CHUNK_JSON, "JSON"), (CHUNK_BIN, "BIN")):
        if offset + 8 > len(data):
            raise FormatError(f"Invalid GLB: truncated {label} chunk header")
        length, chunk_type = struct.unpack_from("<II", data, offset)
        if chunk_type != expected:
            raise FormatError(f"Invalid GLB: expected {label} chunk, found 0x{chunk_type:08x}")
        offset += 8
        if offset + length > len(data):
            raise FormatError(f"Invalid GLB: truncated {label} chunk data")
        chunks.append(data[offset:offset + length])
        offset += length

    try:
        gltf = json.loads(chunks[0].decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise FormatError(f"Invalid GLB JSON chunk: {exc}") from exc
    if not isinstance(gltf, dict):
        raise FormatError("Invalid GLB: JSON root is not an object")

    return gltf, chunks[1]


def _buffer_view(gltf: Dict[str, Any], index: Any) -> Dict[str, Any]:
    views = gltf.get("bufferViews", [])
    if not isinstance(index, int) or not 0 <= index < len(views):
        raise FormatError(f"bufferView index out of range: {index}")
    return views[index]


def _read_accessor(
    gltf: Dict[str, Any],
    bin_chunk: bytes,
    index: Any,
    name: str,
    expected_type: str,
    dtypes: Dict[int, np.dtype]
) -> np.ndarray:
    """
    Read one accessor into a (count, components) array.

    The byte offset is bufferView.byteOffset + accessor.byteOffset; both
    default to 0. Interleaved views (byteStride) are supported.
    Only the component types in `dtypes` are accepted.
    """
    accessors = gltf.get("accessors", [])
    if not isinstance(index, int) or not 0 <= index < len(accessors):
        raise FormatError(f"{name} accessor index out of range: {index}")
    accessor = accessors[index]

    if accessor.get("type") != expected_type:
        raise FormatError(f"Unsupported {name} accessor type: {accessor.get('type')} (expected {expected_type})")
    if "sparse" in accessor:
        raise FormatError(f"Sparse {name} accessors are not supported")

    component_type = accessor.get("componentType")
    if component_type not in dtypes:
        raise FormatError(f"Unsupported {name} componentType: {component_type}")
    dtype = dtypes[component_type]

    count = accessor.get("count")
    if not isinstance(count, int) or count < 0:
        raise FormatError(f"Invalid {name} accessor count")

    view = _buffer_view(gltf, accessor.get("bufferView"))
    components = TYPE_COMPONENTS[expected_type]
    element_size = components * dtype.itemsize
    stride = view.get("byteStride", element_size)
    if not isinstance(stride, int) or stride < element_size:
        raise FormatError(f"Invalid byteStride for {name}")

    offset = int(view.get("byteOffset", 0)) + int(accessor.get("byteOffset", 0))
    if count == 0:
        return np.zeros((0, components), dtype=dtype)
    if offset + (count - 1) * stride + element_size > len(bin_chunk):
        raise FormatError(f"{name} accessor points outside BIN chunk")

    array = np.ndarray(
        shape=(count, components),
        dtype=dtype,
        buffer=bin_chunk,
        offset=offset,
        strides=(stride, dtype.itemsize),
    )
    return array.copy()


def _read_image(gltf: Dict[str, Any], bin_chunk: bytes) -> Optional[EmbeddedImage]:
    images = gltf.get("images") or []
    if not images:
        return None
    image = images[0]
    if "bufferView" not in image:
        logger.warning("GLB image is not embedded (uri=%r); skipping texture", image.get("uri"))
        return None

    view = _buffer_view(gltf, image["bufferView"])
    start = int(view.get("byteOffset", 0))
    length = int(view.get("byteLength", 0))
    if start + length > len(bin_chunk):
        raise FormatError("Image bufferView points outside BIN chunk")
    return EmbeddedImage(bytes(bin_chunk[start:start + length]), image.get("mimeType", "image/png"))


def decode_glb(data: Union[bytes, bytearray, str]) -> Mesh:
    """
    Decode a GLB container.

    Args:
        data: Raw GLB bytes or a base64 string

    Returns:
        Mesh with positions, triangles, optional UVs and embedded image

    Raises:
        FormatError: Bad magic, unexpected chunk types, truncated data,
            missing mesh/POSITION/indices or unsupported component type
    """
    gltf, bin_chunk = _read_chunks(_as_bytes(data))

    try:
        primitive = gltf["meshes"][0]["primitives"][0]
        attributes = primitive["attributes"]
    except (KeyError, IndexError, TypeError):
        raise FormatError("GLB has no mesh primitive") from None

    if primitive.get("mode", TRIANGLES) != TRIANGLES:
        raise FormatError(f"Unsupported primitive mode: {primitive.get('mode')} (triangles only)")
    if "POSITION" not in attributes:
        raise FormatError("GLB primitive has no POSITION accessor")
    if "indices" not in primitive:
        raise FormatError("GLB primitive has no indices accessor")

    positions = _read_accessor(gltf, bin_chunk, attributes["POSITION"], "POSITION", "VEC3", FLOAT_DTYPES)

    uvs = None
    if "TEXCOORD_0" in attributes:
        uvs = _read_accessor(gltf, bin_chunk, attributes["TEXCOORD_0"], "TEXCOORD_0", "VEC2", FLOAT_DTYPES)

    indices = _read_accessor(gltf, bin_chunk, primitive["indices"], "indices", "SCALAR", INDEX_DTYPES)
    indices = indices.reshape(-1)
    indices = indices[:len(indices) - len(indices) % 3].astype(np.uint32)

    if len(indices) and int(indices.max()) >= len(positions):
        raise FormatError("Triangle index out of range")

    try:
        mesh = Mesh(
            positions=positions,
            triangles=indices.reshape(-1, 3),
            uvs=uvs,
            image=_read_image(gltf, bin_chunk),
        )
    except ValueError as exc:
        raise FormatError(f"Inconsistent GLB mesh: {exc}") from exc
    logger.debug("Decoded GLB: %d vertices, %d triangles", mesh.vertex_count, mesh.triangle_count)
    return mesh


def read_glb(path: Union[str, Path]) -> Mesh:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ExportIOError(f"Could not read GLB file: {exc.strerror or exc}", path) from exc
    return decode_glb(data)


def _pad(data: bytes, fill: bytes = b"\x00") -> bytes:
    return data + fill * ((4 - len(data) % 4) % 4)


def encode_glb(mesh: Mesh) -> bytes:
    """
    Encode a mesh as GLB, using the same subset decode_glb reads.

    Indices are uint16 when every index fits, uint32 otherwise.
    """
    positions = mesh.positions.astype("<f4")
    indices = mesh.triangles.reshape(-1)
    if len(indices) == 0 or int(indices.max()) < 65536:
        index_type = UNSIGNED_SHORT
        indices = indices.astype("<u2")
    else:
        index_type = UNSIGNED_INT
        indices = indices.astype("<u4")

    parts = []
    views = []

    def add_view(payload: bytes, target: Optional[int] = None) -> int:
        offset = sum(len(p) for p in parts)
        view = {"buffer": 0, "byteOffset": offset, "byteLength": len(payload)}
        if target is not None:
            view["target"] = target
        views.append(view)
        parts.append(_pad(payload))
        return len(views) - 1

    accessors = [
        {
            "bufferView": add_view(indices.tobytes(), ELEMENT_ARRAY_BUFFER),
            "componentType": index_type,
            "count": int(len(indices)),
            "type": "SCALAR",
        },
        {
            "bufferView": add_view(positions.tobytes(), ARRAY_BUFFER),
            "componentType": FLOAT,
            "count": int(len(positions)),
            "type": "VEC3",
        },
    ]
    if len(positions):
        accessors[1]["min"] = positions.min(axis=0).tolist()
        accessors[1]["max"] = positions.max(axis=0).tolist()

    attributes = {"POSITION": 1}
    if mesh.uvs is not None:
        accessors.append({
            "bufferView": add_view(mesh.uvs.astype("<f4").tobytes(), ARRAY_BUFFER),
            "componentType": FLOAT,
            "count": int(len(mesh.uvs)),
            "type": "VEC2",
        })
        attributes["TEXCOORD_0"] = 2

    gltf: Dict[str, Any] = {
        "asset": {"version": GLTF_VERSION, "generator": GENERATOR},
        "scene": 0,
        "scenes": [{"nodes": [0]}],
        "nodes": [{"mesh": 0}],
        "meshes": [{"primitives": [{"attributes": attributes, "indices": 0, "mode": TRIANGLES}]}],
        "accessors": accessors,
        "bufferViews": views,
    }

    if mesh.image is not None:
        gltf["images"] = [{"bufferView": add_view(mesh.image.data), "mimeType": mesh.image.mime_type}]
        gltf["textures"] = [{"source": 0}]
        gltf["materials"] = [{"pbrMetallicRoughness": {"baseColorTexture": {"index": 0}}}]
        gltf["meshes"][0]["primitives"][0]["material"] = 0

    buffer_data = b"".join(parts)
    gltf["buffers"] = [{"byteLength": len(buffer_data)}]

    json_bytes = _pad(json.dumps(gltf, separators=(",", ":")).encode("utf-8"), b" ")
    total_length = 12 + 8 + len(json_bytes) + 8 + len(buffer_data)

    return b"".join([
        struct.pack("<III", GLB_MAGIC, GLB_VERSION, total_length),
        struct.pack("<II", len(json_bytes), CHUNK_JSON),
        json_bytes,
        struct.pack("<II", len(buffer_data), CHUNK_BIN),
        buffer_data,
    ])


def write_glb(mesh: Mesh, output_path: Union[str, Path]):
    output_path = Path(output_path)
    try:
        with open(output_path, "wb") as f:
            f.write(encode_glb(mesh))
    except OSError as exc:
        raise ExportIOError(f"Could not write GLB file: {exc.strerror or exc}", output_path) from exc


def glb_to_obj(data: Union[bytes, bytearray, str], obj_path: Union[str, Path]) -> ExportResult:
    """
    Convert a GLB model to OBJ.

    The embedded image, if any, is written next to the OBJ as
    `<stem>.png` or `<stem>.jpg` and referenced from `<stem>.mtl`. A failed
    texture write still produces the geometry and reports PARTIAL.

    Args:
        data: Raw GLB bytes or a base64 string
        obj_path: Output OBJ path

    Returns:
        ExportResult
    """
    obj_path = Path(obj_path)
    outputs = []
    warnings = []
    try:
        mesh = decode_glb(data)

        mtl_name = None
        if mesh.image is not None:
            texture_path = obj_path.with_suffix(mesh.image.extension)
            mtl_path = obj_path.with_suffix(".mtl")
            try:
                texture_path.write_bytes(mesh.image.data)
                outputs.append(texture_path)
                write_texture_mtl(mtl_path, OBJ_MATERIAL, texture_path.name)
                outputs.append(mtl_path)
                mtl_name = mtl_path.name
            except OSError as exc:
                message = f"Texture could not be written: {exc}"
                logger.warning(message)
                warnings.append(message)

        write_mesh_obj(mesh, obj_path, mtl_name=mtl_name, material=OBJ_MATERIAL)
        outputs.insert(0, obj_path)
    except VoxportError as exc:
        logger.error("GLB conversion failed: %s", exc)
        return ExportResult.failed(exc, outputs)

    logger.info("Converted GLB to %s (%d vertices, %d triangles)", obj_path, mesh.vertex_count, mesh.triangle_count)
    return ExportResult.completed(outputs, warnings, triangle_count=mesh.triangle_count)
