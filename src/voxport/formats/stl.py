"""
Binary STL Codec

STL is the lingua franca of 3D printing slicers. The binary layout is:
- 80-byte header (zeros on write, preserved on read)
- uint32 little-endian triangle count
- per triangle a 50-byte record: normal (3 x float32), three vertices
  (9 x float32) and a uint16 attribute word (always 0)

Each MergedQuad becomes two triangles, corners (0, 1, 2) and (0, 2, 3),
both wound counter-clockwise around the outward normal.
"""

import logging
import struct
from pathlib import Path
from typing import NamedTuple, Sequence, Tuple, Union

import numpy as np

from ..errors import ExportIOError, FormatError
from ..geometry import MergedQuad

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
COUNT_SIZE = 4
RECORD_SIZE = 50

STL_RECORD = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attr", "<u2"),
])


class StlData(NamedTuple):
    """Decoded STL contents."""
    normals: np.ndarray     # (M, 3) float32
    triangles: np.ndarray   # (M, 3, 3) float32
    header: bytes

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)


def quad_triangles(quads: Sequence[MergedQuad], scale: float = 1.0) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split quads into scaled triangles.

    Args:
        quads: Quads to convert
        scale: Output units per voxel

    Returns:
        (2N, 3) normals and (2N, 3, 3) triangle vertices, float32
    """
    if not quads:
        return np.zeros((0, 3), dtype=np.float32), np.zeros((0, 3, 3), dtype=np.float32)

    corners = np.array([q.corners() for q in quads], dtype=np.float64) * scale
    normals = np.array([q.normal for q in quads], dtype=np.float32)

    triangles = np.empty((len(quads), 2, 3, 3), dtype=np.float32)
    triangles[:, 0] = corners[:, [0, 1, 2]]
    triangles[:, 1] = corners[:, [0, 2, 3]]

    return np.repeat(normals, 2, axis=0), triangles.reshape(-1, 3, 3)


def encode_stl(quads: Sequence[MergedQuad], scale: float = 1.0) -> bytes:
    """Encode quads as a binary STL document."""
    normals, triangles = quad_triangles(quads, scale)
    records = np.zeros(len(triangles), dtype=STL_RECORD)
    records["normal"] = normals
    records["vertices"] = triangles
    return b"\x00" * HEADER_SIZE + struct.pack("<I", len(records)) + records.tobytes()


def decode_stl(data: bytes) -> StlData:
    """
    Decode a binary STL document.

    Raises:
        FormatError: Data shorter than the header, or the declared triangle
            count disagrees with the payload length
    """
    if len(data) < HEADER_SIZE + COUNT_SIZE:
        raise FormatError(f"STL data too short: {len(data)} bytes")

    header = bytes(data[:HEADER_SIZE])
    (count,) = struct.unpack_from("<I", data, HEADER_SIZE)
    payload = len(data) - HEADER_SIZE - COUNT_SIZE
    if payload != count * RECORD_SIZE:
        raise FormatError(
            f"STL triangle count {count} does not match payload of {payload} bytes "
            f"(expected {count * RECORD_SIZE})"
        )

    if count == 0:
        return StlData(np.zeros((0, 3), dtype=np.float32), np.zeros((0, 3, 3), dtype=np.float32), header)

    records = np.frombuffer(data, dtype=STL_RECORD, count=count, offset=HEADER_SIZE + COUNT_SIZE)
    return StlData(records["normal"].copy(), records["vertices"].copy(), header)


def read_stl(path: Union[str, Path]) -> StlData:
    """Read a binary STL file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ExportIOError(f"Could not read STL file: {exc.strerror or exc}", path) from exc
    return decode_stl(data)


class STLExporter:
    """
    Export quads to binary STL.

    STL carries geometry only; materials and colors are dropped.
    """

    def __init__(self, scale: float = 1.0):
        """
        Initialize the exporter.

        Args:
            scale: Output units per voxel
        """
        self.scale = scale

    def export(self, quads: Sequence[MergedQuad], output_path: Union[str, Path]) -> int:
        """
        Write quads to an STL file.

        Args:
            quads: Quads to write
            output_path: Output file path (.stl)

        Returns:
            Number of triangles written
        """
        output_path = Path(output_path)
        data = encode_stl(quads, self.scale)
        try:
            with open(output_path, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise ExportIOError(f"Could not write STL file: {exc.strerror or exc}", output_path) from exc

        triangles = 2 * len(quads)
        logger.info("Wrote %d triangles to %s", triangles, output_path)
        return triangles
