"""
Material Palette

An immutable registry of palette entries used by the color quantizer.
Each entry carries its RGB color, its precomputed HSB triple, a category
(whose ordinal value is the matching penalty) and whether it belongs to
the near-gray "neutral" bucket.

The palette is built explicitly and injected into the quantizer; nothing
here is global or mutable after construction.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator, Tuple

import numpy as np

from .color import rgb_to_hsb
from .materials import Material, RGB


class Category(IntEnum):
    """Surface category, ordered from visually cleanest to most specific."""
    SMOOTH = 0
    MATTE = 1
    NATURAL = 2
    SPECIAL = 3

    @property
    def penalty(self) -> int:
        return int(self)


@dataclass(frozen=True)
class PaletteEntry:
    material: Material
    rgb: RGB
    category: Category = Category.SMOOTH
    neutral: bool = False
    hsb: Tuple[float, float, float] = field(init=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "hsb", rgb_to_hsb(*self.rgb))


class Palette:
    """
    Ordered, read-only collection of PaletteEntry.

    Entry order is significant: the quantizer breaks distance ties in favor
    of the entry registered first.
    """

    def __init__(self, entries: Iterable[PaletteEntry]):
        self._entries = tuple(entries)
        n = len(self._entries)
        self._rgb = np.array([e.rgb for e in self._entries], dtype=np.float64).reshape(n, 3)
        self._hsb = np.array([e.hsb for e in self._entries], dtype=np.float64).reshape(n, 3)
        self._penalties = np.array([e.category.penalty for e in self._entries], dtype=np.float64)
        self._neutral = np.array([e.neutral for e in self._entries], dtype=bool)
        for arr in (self._rgb, self._hsb, self._penalties, self._neutral):
            arr.setflags(write=False)

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[str, RGB, Category, bool]]) -> "Palette":
        """Build a palette from (material_id, rgb, category, neutral) rows."""
        return cls(
            PaletteEntry(Material(material_id, tuple(rgb)), tuple(rgb), category, neutral)
            for material_id, rgb, category, neutral in rows
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PaletteEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> PaletteEntry:
        return self._entries[index]

    @property
    def entries(self) -> Tuple[PaletteEntry, ...]:
        return self._entries

    @property
    def rgb(self) -> np.ndarray:
        """(P, 3) float64 RGB values."""
        return self._rgb

    @property
    def hsb(self) -> np.ndarray:
        """(P, 3) float64 hue, saturation, brightness in [0, 1]."""
        return self._hsb

    @property
    def penalties(self) -> np.ndarray:
        return self._penalties

    @property
    def neutral(self) -> np.ndarray:
        return self._neutral


_S, _M, _N, _X = Category.SMOOTH, Category.MATTE, Category.NATURAL, Category.SPECIAL

DEFAULT_ROWS = (
    # Browns, woods, earth
    ("minecraft:dirt", (134, 96, 67), _N, False),
    ("minecraft:coarse_dirt", (119, 85, 59), _N, False),
    ("minecraft:packed_mud", (140, 107, 86), _N, False),
    ("minecraft:mud_bricks", (138, 110, 89), _N, False),
    ("minecraft:bricks", (150, 97, 83), _N, False),
    ("minecraft:granite", (149, 103, 85), _N, False),
    ("minecraft:polished_granite", (154, 106, 89), _N, False),
    ("minecraft:terracotta", (152, 94, 67), _M, False),
    ("minecraft:brown_terracotta", (76, 50, 35), _M, False),
    ("minecraft:brown_concrete", (96, 59, 31), _S, False),
    ("minecraft:brown_wool", (114, 71, 40), _M, False),
    ("minecraft:spruce_planks", (114, 84, 56), _N, False),
    ("minecraft:dark_oak_planks", (66, 43, 20), _N, False),
    ("minecraft:oak_planks", (162, 130, 78), _N, False),
    ("minecraft:jungle_planks", (160, 115, 80), _N, False),
    ("minecraft:nether_bricks", (44, 21, 26), _N, False),
    # Warm grays
    ("minecraft:gray_terracotta", (57, 41, 35), _M, False),
    ("minecraft:light_gray_terracotta", (135, 107, 98), _M, False),
    # Greens, blues, teal
    ("minecraft:prismarine", (99, 156, 151), _X, False),
    ("minecraft:prismarine_bricks", (99, 171, 162), _X, False),
    ("minecraft:dark_prismarine", (51, 87, 82), _X, False),
    ("minecraft:warped_planks", (43, 104, 99), _X, False),
    ("minecraft:stripped_warped_hyphae", (58, 142, 140), _X, False),
    ("minecraft:oxidized_copper", (86, 163, 147), _X, False),
    ("minecraft:weathered_copper", (109, 160, 130), _X, False),
    ("minecraft:exposed_copper", (161, 125, 103), _X, False),
    ("minecraft:mossy_cobblestone", (108, 118, 92), _N, False),
    # Gold, yellow
    ("minecraft:gold_block", (246, 208, 61), _X, False),
    ("minecraft:raw_gold_block", (228, 178, 62), _X, False),
    ("minecraft:yellow_concrete", (240, 175, 21), _S, False),
    ("minecraft:orange_concrete", (224, 97, 0), _S, False),
    # Wools
    ("minecraft:cyan_wool", (21, 137, 145), _M, False),
    ("minecraft:green_wool", (84, 109, 27), _M, False),
    ("minecraft:lime_wool", (112, 185, 25), _M, False),
    ("minecraft:blue_wool", (53, 57, 157), _M, False),
    ("minecraft:light_blue_wool", (58, 175, 217), _M, False),
    ("minecraft:red_wool", (160, 39, 34), _M, False),
    # Concretes
    ("minecraft:cyan_concrete", (21, 119, 136), _S, False),
    ("minecraft:green_concrete", (73, 91, 36), _S, False),
    ("minecraft:lime_concrete", (94, 169, 24), _S, False),
    ("minecraft:blue_concrete", (44, 46, 143), _S, False),
    ("minecraft:light_blue_concrete", (35, 137, 198), _S, False),
    ("minecraft:red_concrete", (142, 32, 32), _S, False),
    # Terracotta
    ("minecraft:cyan_terracotta", (87, 92, 92), _M, False),
    ("minecraft:green_terracotta", (76, 83, 42), _M, False),
    ("minecraft:lime_terracotta", (103, 117, 53), _M, False),
    ("minecraft:light_blue_terracotta", (113, 108, 137), _M, False),
    ("minecraft:red_terracotta", (143, 61, 46), _M, False),
    # Neutrals
    ("minecraft:white_concrete", (207, 213, 214), _S, True),
    ("minecraft:gray_concrete", (54, 57, 61), _S, True),
    ("minecraft:light_gray_concrete", (125, 125, 115), _S, True),
    ("minecraft:black_concrete", (8, 10, 15), _S, True),
    ("minecraft:stone", (125, 125, 125), _N, True),
    ("minecraft:cobblestone", (100, 100, 100), _N, True),
    ("minecraft:iron_block", (220, 220, 220), _X, True),
)


def default_palette() -> Palette:
    """Build the stock block palette."""
    return Palette.from_rows(DEFAULT_ROWS)
