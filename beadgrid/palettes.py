"""Bead catalogs and palette lookups.

Catalogs are read once from the JSON files in ``data/`` and shared as
immutable tuples. A :class:`LookupPalette` caches the Lab/OKLab projection of
every entry so nearest-color scans only convert the target colors.
"""

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

import numpy as np

from .colors import (
    RGB, TRANSPARENT, color_distance, color_to_key, hex_to_rgb,
    normalize_color_key, parse_color, project, rgb_to_lab, rgb_to_oklab,
)
from .modes import Brand, ColorMethod

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
CATALOG_ORDER = (Brand.PERLER, Brand.MARD)
UNCONSTRAINED_COLOR_COUNT = 256
_LOOKUP_CHUNK = 4096


# ---------------------------------------------------------------------------
# Catalogs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BrandColor:
    id: str
    name: str
    rgb: RGB
    brand: str

    @property
    def key(self) -> str:
        return color_to_key(self.rgb)


@lru_cache(maxsize=None)
def load_catalog(brand: Brand | str) -> tuple[BrandColor, ...]:
    """Load a brand's bead colors. Transparent beads are always excluded."""
    brand = Brand.parse(brand)
    if brand is Brand.NONE:
        return ()
    json_path = DATA_DIR / f"{brand.value}.json"
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    transparent = set(data.get("transparent", []))
    names = data.get("names", {})
    entries = tuple(
        BrandColor(id=label, name=names.get(label, label),
                   rgb=hex_to_rgb(hexval), brand=brand.value)
        for label, hexval in data["label_to_hex"].items()
        if label not in transparent
    )
    logger.debug("Loaded %d %s colors from %s", len(entries), brand.value, json_path)
    return entries


def _active_brands(brands: Iterable[Brand | str]) -> list[Brand]:
    selected = {Brand.parse(b) for b in brands}
    return [b for b in CATALOG_ORDER if b in selected]


@lru_cache(maxsize=None)
def catalog_id_map() -> Mapping[str, str]:
    """Color key -> catalog id over every catalog; later catalogs win on clashes."""
    ids: dict[str, str] = {}
    for brand in CATALOG_ORDER:
        for c in load_catalog(brand):
            ids[c.key] = c.id
    return MappingProxyType(ids)


def find_brand_color(color_key: str,
                     brands: Iterable[Brand | str] = CATALOG_ORDER) -> BrandColor | None:
    """Catalog entry whose color equals ``color_key``, searching brands in order."""
    key = normalize_color_key(color_key)
    if key is None or key == TRANSPARENT:
        return None
    for brand in _active_brands(brands):
        for c in load_catalog(brand):
            if c.key == key:
                return c
    return None


def get_active_brand_palette(brands: Iterable[Brand | str],
                             excluded_colors: Iterable[str] = ()) -> list[BrandColor]:
    """Union of the selected catalogs minus excluded color keys.

    An empty selection (or only ``none``) returns [] meaning "no constraint".
    """
    active = _active_brands(brands)
    if not active:
        return []
    excluded = {normalize_color_key(c) for c in excluded_colors}
    excluded.discard(None)
    source: list[BrandColor] = []
    for brand in active:
        source.extend(load_catalog(brand))
    return [c for c in source if c.key not in excluded]


def total_available_colors(brands: Iterable[Brand | str]) -> int:
    """Upper bound for the max-colors setting under the given brand selection."""
    active = _active_brands(brands)
    if not active:
        return UNCONSTRAINED_COLOR_COUNT
    return sum(len(load_catalog(b)) for b in active)


# ---------------------------------------------------------------------------
# Lookup palettes
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class CachedPaletteColor:
    rgb: RGB
    lab: np.ndarray
    oklab: np.ndarray


class LookupPalette(Sequence):
    """Palette entries with precomputed Lab and OKLab rows.

    Rebuild it whenever the palette changes; it holds no reference to the
    list it was built from.
    """

    def __init__(self, colors: Iterable[RGB]):
        rgbs = [tuple(int(v) for v in c[:3]) for c in colors]
        self.rgb = np.array(rgbs, dtype=np.int64).reshape(-1, 3)
        self.lab = rgb_to_lab(self.rgb)
        self.oklab = rgb_to_oklab(self.rgb)
        self._entries = tuple(
            CachedPaletteColor(rgb, self.lab[i], self.oklab[i])
            for i, rgb in enumerate(rgbs))
        for arr in (self.rgb, self.lab, self.oklab):
            arr.setflags(write=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index):
        return self._entries[index]

    def keys(self) -> list[str]:
        return [color_to_key(e.rgb) for e in self._entries]

    def projection(self, method: ColorMethod) -> np.ndarray:
        method = ColorMethod.parse(method)
        if method is ColorMethod.LAB_CIEDE2000:
            return self.lab
        if method is ColorMethod.OKLAB:
            return self.oklab
        raise ValueError(f"Unknown color method: {method!r}")

    def distances(self, rgb_values, method: ColorMethod) -> np.ndarray:
        """Distances from (..., 3) target colors to every entry: shape (..., P)."""
        method = ColorMethod.parse(method)
        target = np.asarray(rgb_values, dtype=np.float64)[..., np.newaxis, :]
        return color_distance(project(target, method), self.projection(method), method)

    def nearest(self, rgb_values, method: ColorMethod) -> np.ndarray | int:
        """Index of the nearest entry for each (..., 3) target; first entry wins ties."""
        if len(self) == 0:
            raise ValueError("Cannot search an empty palette")
        values = np.asarray(rgb_values, dtype=np.float64)
        if values.ndim == 1:
            return int(self.distances(values, method).argmin())
        flat = values.reshape(-1, 3)
        out = np.empty(len(flat), dtype=np.int64)
        for start in range(0, len(flat), _LOOKUP_CHUNK):
            chunk = flat[start:start + _LOOKUP_CHUNK]
            out[start:start + len(chunk)] = self.distances(chunk, method).argmin(axis=-1)
        return out.reshape(values.shape[:-1])


def create_lookup_palette(colors: Iterable[RGB]) -> LookupPalette:
    """Cache Lab/OKLab for a palette, dropping repeated colors (first kept)."""
    unique: dict[RGB, None] = {}
    for c in colors:
        unique.setdefault(tuple(int(v) for v in c[:3]), None)
    return LookupPalette(unique)


# ---------------------------------------------------------------------------
# Brand mapping
# ---------------------------------------------------------------------------

def map_palette_to_brands(base_palette: Sequence[RGB],
                          candidates: Sequence[BrandColor],
                          method: ColorMethod | str) -> list[RGB]:
    """Snap every palette color onto its nearest catalog candidate.

    Several palette colors may land on the same candidate, so the result can
    contain repeats. No candidates leaves the palette unchanged.
    """
    if not candidates:
        return list(base_palette)
    if not base_palette:
        return []
    method = ColorMethod.parse(method)
    lookup = LookupPalette(c.rgb for c in candidates)
    indices = lookup.nearest(np.array(base_palette, dtype=np.float64), method)
    return [candidates[int(i)].rgb for i in indices]


def find_closest_palette_color(target: str, candidates: Sequence[BrandColor],
                               method: ColorMethod | str = ColorMethod.LAB_CIEDE2000
                               ) -> BrandColor | None:
    """Nearest catalog color for a hex or rgb(...) string.

    Returns None for "transparent", unparseable input or no candidates.
    """
    if not candidates or not isinstance(target, str):
        return None
    if target.strip().lower() == TRANSPARENT:
        return None
    rgb = parse_color(target)
    if rgb is None:
        return None
    lookup = LookupPalette(c.rgb for c in candidates)
    return candidates[lookup.nearest(rgb, ColorMethod.parse(method))]
