"""
Color Management Module

Handles:
- RGB to HSB conversion (scalar and vectorized)
- Palette quantization with two distance strategies
- Texture helpers: average color, tinting, UV sampling

Strategies:
- "balanced": luminance-weighted squared RGB distance plus a category
  penalty. Good general default.
- "hue": hue-first matching in HSB space. Keeps saturated inputs away from
  the near-gray bucket so colorful models stay colorful.
"""

from pathlib import Path
from typing import Callable, Dict, Tuple, Union, TYPE_CHECKING

import numpy as np
from PIL import Image

from .errors import ConfigurationError
from .materials import RGB, WHITE

if TYPE_CHECKING:
    from .palette import Palette, PaletteEntry


ImageSource = Union[str, Path, Image.Image]

BALANCED_WEIGHTS = np.array([0.30, 0.59, 0.11])
BALANCED_PENALTY_SCALE = 50.0
HUE_PENALTY_SCALE = 0.1
GRAY_SATURATION = 0.1        # below this the input is matched on brightness only
NEUTRAL_EXCLUSION_SATURATION = 0.05


def rgb_to_hsb_array(rgb: np.ndarray) -> np.ndarray:
    """
    Convert RGB colors to hue/saturation/brightness.

    Args:
        rgb: Array of shape (N, 3) with values in [0, 255]

    Returns:
        (N, 3) float64 array, every component in [0, 1]
    """
    rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3) / 255.0
    cmax = rgb.max(axis=1)
    cmin = rgb.min(axis=1)
    delta = cmax - cmin

    saturation = np.divide(delta, cmax, out=np.zeros_like(cmax), where=cmax > 0)

    chromatic = delta > 0
    safe = np.where(chromatic, delta, 1.0)
    rc = (cmax - rgb[:, 0]) / safe
    gc = (cmax - rgb[:, 1]) / safe
    bc = (cmax - rgb[:, 2]) / safe
    hue = np.where(
        rgb[:, 0] == cmax, bc - gc,
        np.where(rgb[:, 1] == cmax, 2.0 + rc - bc, 4.0 + gc - rc)
    )
    hue = np.where(chromatic, (hue / 6.0) % 1.0, 0.0)

    return np.stack([hue, saturation, cmax], axis=1)


def rgb_to_hsb(r: int, g: int, b: int) -> Tuple[float, float, float]:
    h, s, v = rgb_to_hsb_array(np.array([[r, g, b]]))[0]
    return (float(h), float(s), float(v))


def balanced_distances(rgb: np.ndarray, palette: "Palette") -> np.ndarray:
    """
    Weighted squared RGB distance plus category penalty.

    Args:
        rgb: (N, 3) input colors
        palette: Target palette

    Returns:
        (N, P) distance matrix
    """
    diff = palette.rgb[np.newaxis, :, :] - np.asarray(rgb, dtype=np.float64)[:, np.newaxis, :]
    dist = (diff * diff) @ BALANCED_WEIGHTS
    return dist + palette.penalties[np.newaxis, :] * BALANCED_PENALTY_SCALE


def hue_distances(rgb: np.ndarray, palette: "Palette") -> np.ndarray:
    """
    Hue-priority distance in HSB space.

    Near-gray inputs are matched on brightness and penalized toward
    saturated targets. Colorful inputs never match the neutral bucket while
    any non-neutral entry exists.
    """
    src = rgb_to_hsb_array(rgb)
    dst = palette.hsb

    dh = np.abs(src[:, np.newaxis, 0] - dst[np.newaxis, :, 0])
    dh = np.where(dh > 0.5, 1.0 - dh, dh)
    ds = np.abs(src[:, np.newaxis, 1] - dst[np.newaxis, :, 1])
    db = np.abs(src[:, np.newaxis, 2] - dst[np.newaxis, :, 2])

    gray_input = src[:, 1] < GRAY_SATURATION
    colored = 4.0 * dh + 2.0 * ds + db
    grayish = 2.0 * db + 5.0 * dst[np.newaxis, :, 1]
    dist = np.where(gray_input[:, np.newaxis], grayish, colored)
    dist = dist + palette.penalties[np.newaxis, :] * HUE_PENALTY_SCALE

    neutral = palette.neutral
    if neutral.any() and not neutral.all():
        exclude = (src[:, 1] > NEUTRAL_EXCLUSION_SATURATION)[:, np.newaxis] & neutral[np.newaxis, :]
        dist = np.where(exclude, np.inf, dist)
    return dist


DistanceFn = Callable[[np.ndarray, "Palette"], np.ndarray]

STRATEGIES: Dict[str, DistanceFn] = {
    "balanced": balanced_distances,
    "hue": hue_distances,
}


class ColorQuantizer:
    """
    Maps arbitrary colors onto the closest palette entry.

    The distance strategy is fixed at construction.
    """

    def __init__(self, palette: "Palette", strategy: str = "balanced"):
        """
        Initialize the quantizer.

        Args:
            palette: Non-empty palette to match against
            strategy: "balanced" or "hue"

        Raises:
            ConfigurationError: Empty palette or unknown strategy
        """
        if len(palette) == 0:
            raise ConfigurationError("Palette is empty")
        if strategy not in STRATEGIES:
            raise ConfigurationError(
                f"Unknown quantizer strategy: {strategy!r}. Valid: {', '.join(STRATEGIES)}"
            )
        self.palette = palette
        self.strategy = strategy
        self._distances = STRATEGIES[strategy]

    def quantize(self, colors: np.ndarray) -> np.ndarray:
        """
        Quantize colors to palette indices.

        Args:
            colors: Array of shape (N, 3) or (N, 4) with RGB(A) values

        Returns:
            (N,) int64 array of palette indices
        """
        colors = np.asarray(colors)
        if colors.size == 0:
            return np.zeros(0, dtype=np.int64)
        colors = colors.reshape(len(colors), -1)
        # Strip alpha if present
        rgb = colors[:, :3]

        unique, inverse = np.unique(rgb, axis=0, return_inverse=True)
        best = np.argmin(self._distances(unique, self.palette), axis=1)
        return best[inverse.reshape(-1)]

    def closest_material(self, r: int, g: int, b: int) -> "PaletteEntry":
        """Closest palette entry for one color."""
        index = int(self.quantize(np.array([[r, g, b]]))[0])
        return self.palette[index]

    def closest_for_texture(self, source: ImageSource) -> "PaletteEntry":
        """Closest palette entry for the average color of a texture."""
        return self.closest_material(*average_texture_color(source))


def load_rgba(source: ImageSource) -> np.ndarray:
    """Load an image as an (H, W, 4) uint8 array."""
    if isinstance(source, Image.Image):
        return np.asarray(source.convert("RGBA"), dtype=np.uint8)
    with Image.open(source) as img:
        return np.asarray(img.convert("RGBA"), dtype=np.uint8)


def average_texture_color(source: ImageSource) -> RGB:
    """
    Mean RGB over pixels with non-zero alpha.

    Returns white for fully transparent images.
    """
    pixels = load_rgba(source).reshape(-1, 4)
    visible = pixels[pixels[:, 3] > 0, :3].astype(np.int64)
    if len(visible) == 0:
        return WHITE
    r, g, b = visible.sum(axis=0) // len(visible)
    return (int(r), int(g), int(b))


def tint_texture(source: ImageSource, tint: RGB) -> Image.Image:
    """
    Multiply every pixel by a tint color.

    Each channel becomes (c * t) // 255, alpha is preserved and fully
    transparent pixels are zeroed.
    """
    rgba = load_rgba(source).astype(np.uint16)
    out = rgba.copy()
    out[..., :3] = (rgba[..., :3] * np.array(tint, dtype=np.uint16)) // 255
    out[rgba[..., 3] == 0] = 0
    return Image.fromarray(out.astype(np.uint8))


def sample_texture(rgba: np.ndarray, uvs: np.ndarray) -> np.ndarray:
    """
    Nearest-pixel texture lookup.

    Args:
        rgba: (H, W, 4) image array
        uvs: (N, 2) coordinates with a top-left origin, wrapped into [0, 1)

    Returns:
        (N, 3) uint8 RGB samples
    """
    h, w = rgba.shape[:2]
    uv = np.mod(np.asarray(uvs, dtype=np.float64), 1.0)
    px = np.clip((uv[:, 0] * w).astype(np.int64), 0, w - 1)
    py = np.clip((uv[:, 1] * h).astype(np.int64), 0, h - 1)
    return rgba[py, px, :3]
