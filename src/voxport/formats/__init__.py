"""
Codecs for various 3D formats.

Supported formats:
- Binary STL (.stl) - Optimal for 3D printing slicers
- Wavefront (.obj + .mtl) - Universal legacy support, colors and textures
- glTF 2.0 binary (.glb) - Input from model generators
"""

from .stl import STLExporter, decode_stl, encode_stl, read_stl
from .obj import OBJExporter, read_mtl, read_obj, write_mesh_obj
from .glb import decode_glb, encode_glb, glb_to_obj, read_glb, write_glb

__all__ = [
    "STLExporter",
    "decode_stl",
    "encode_stl",
    "read_stl",
    "OBJExporter",
    "read_mtl",
    "read_obj",
    "write_mesh_obj",
    "decode_glb",
    "encode_glb",
    "glb_to_obj",
    "read_glb",
    "write_glb",
]
