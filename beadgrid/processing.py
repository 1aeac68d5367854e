"""Image -> bead color grid pipeline.

sample_image_colors wires resampling, median-cut quantization, the optional
brand constraint and dithered nearest-color mapping into one synchronous call.
Everything after it (user overrides, single-cell edits, statistics) works on
the immutable ProcessedData it returns.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np

from .colors import TRANSPARENT, normalize_color_key, round_half_up
from .dithering import (
    ALPHA_THRESHOLD, diffuse_error, diffusion_kernel, ordered_offsets,
)
from .errors import SurfaceError
from .image_utils import get_image_data, image_size
from .modes import Brand, ColorMethod, DitherMethod, SamplingMode
from .palettes import (
    CATALOG_ORDER, create_lookup_palette, find_brand_color,
    get_active_brand_palette, map_palette_to_brands,
)
from .quantization import quantize
from .settings import DEFAULT_MAX_COLORS, PatternSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProcessedData:
    """Row-major grid of color keys ("rgb(r,g,b)") or "transparent"."""

    colors: tuple[str, ...]
    rows: int
    cols: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "colors", tuple(self.colors))
        if self.rows < 0 or self.cols < 0:
            raise ValueError(f"Invalid grid size {self.cols}x{self.rows}")
        if len(self.colors) != self.rows * self.cols:
            raise ValueError(
                f"Grid of {self.cols}x{self.rows} needs {self.rows * self.cols} "
                f"colors, got {len(self.colors)}")

    def index_of(self, col: int, row: int) -> int:
        if not (0 <= col < self.cols and 0 <= row < self.rows):
            raise IndexError(f"Cell ({col}, {row}) outside {self.cols}x{self.rows} grid")
        return row * self.cols + col

    def cell(self, col: int, row: int) -> str:
        return self.colors[self.index_of(col, row)]

    def to_dict(self) -> dict:
        return {"colors": list(self.colors), "rows": self.rows, "cols": self.cols}

    @classmethod
    def from_dict(cls, data: Mapping) -> "ProcessedData":
        return cls(tuple(data["colors"]), int(data["rows"]), int(data["cols"]))


def target_rows(cols: int, width: int, height: int) -> int:
    """Grid rows that keep the source aspect ratio at ``cols`` columns."""
    aspect = height / width
    return int(round_half_up(cols * aspect))


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def sample_image_colors(
    image,
    cols: int,
    max_colors: int = DEFAULT_MAX_COLORS,
    color_method: ColorMethod | str = ColorMethod.LAB_CIEDE2000,
    dither_method: DitherMethod | str = DitherMethod.NONE,
    sampling_mode: SamplingMode | str = SamplingMode.DEFAULT,
    brands: Iterable[Brand | str] = (),
    excluded_colors: Iterable[str] = (),
) -> ProcessedData:
    """Convert a decoded image (PIL image or (H, W, 4) array) to a color grid.

    Rows follow the source aspect ratio. Pixels with alpha below 25 become
    "transparent"; every other pixel gets the key of its nearest palette
    color. The result depends only on the arguments.
    """
    color_method = ColorMethod.parse(color_method)
    dither_method = DitherMethod.parse(dither_method)
    sampling_mode = SamplingMode.parse(sampling_mode)
    if cols < 1:
        raise ValueError(f"cols must be >= 1, got {cols}")
    if max_colors < 1:
        raise ValueError(f"max_colors must be >= 1, got {max_colors}")

    width, height = image_size(image)
    if width < 1 or height < 1:
        raise SurfaceError(f"Source image has no pixels ({width}x{height})")
    rows = target_rows(cols, width, height)

    # 1. Pixel buffer at grid resolution
    data = get_image_data(image, cols, rows, sampling_mode)
    opaque = data[..., 3] >= ALPHA_THRESHOLD

    # 2. Base palette from the opaque population
    palette = quantize(data[opaque][:, :3], max_colors)

    # 3. Brand constraint
    candidates = get_active_brand_palette(brands, excluded_colors)
    if candidates:
        palette = map_palette_to_brands(palette, candidates, color_method)
    lookup = create_lookup_palette(palette)
    logger.debug("Grid %dx%d: %d opaque pixels, %d palette colors (%d candidates)",
                 cols, rows, int(opaque.sum()), len(lookup), len(candidates))

    colors = [TRANSPARENT] * (rows * cols)
    if len(lookup) == 0:
        return ProcessedData(tuple(colors), rows, cols)
    keys = lookup.keys()

    # 4. Dithered nearest-color mapping
    kernel = diffusion_kernel(dither_method)
    if kernel:
        _map_with_diffusion(data, opaque, lookup, keys, kernel, color_method, colors)
    else:
        offsets = ordered_offsets(dither_method, rows, cols)
        values = np.clip(data[..., :3].astype(np.float64) + offsets[..., np.newaxis],
                         0, 255)
        targets = values[opaque]
        unique, inverse = np.unique(targets, axis=0, return_inverse=True)
        nearest = lookup.nearest(unique, color_method)[inverse.reshape(-1)]
        for flat_index, palette_index in zip(np.flatnonzero(opaque), nearest):
            colors[int(flat_index)] = keys[int(palette_index)]

    return ProcessedData(tuple(colors), rows, cols)


def _map_with_diffusion(data, opaque, lookup, keys, kernel, method, colors) -> None:
    """Row-major mapping that spreads each pixel's error to later neighbors."""
    rows, cols = opaque.shape
    work = data.astype(np.float32)
    cache: dict[tuple[float, float, float], int] = {}
    for y in range(rows):
        for x in range(cols):
            if not opaque[y, x]:
                continue
            old = np.clip(work[y, x, :3].astype(np.float64), 0, 255)
            cache_key = (float(old[0]), float(old[1]), float(old[2]))
            index = cache.get(cache_key)
            if index is None:
                index = lookup.nearest(old, method)
                cache[cache_key] = index
            colors[y * cols + x] = keys[index]
            diffuse_error(work, x, y, old - lookup.rgb[index], kernel, opaque)


def process_image(image, settings: PatternSettings) -> ProcessedData:
    """sample_image_colors driven by a PatternSettings record."""
    return sample_image_colors(
        image, settings.target_width, settings.max_colors,
        settings.color_method, settings.dither_method, settings.sampling_mode,
        settings.brands, settings.excluded_colors)


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def _require_key(color: str) -> str:
    key = normalize_color_key(color)
    if key is None:
        raise ValueError(f"Invalid color: {color!r}")
    return key


def apply_overrides(grid: ProcessedData, overrides: Mapping[str, str]) -> ProcessedData:
    """Replace colors by an explicit from -> to map; returns a new grid.

    Keys and values may be hex or rgb(...) strings, or "transparent".
    """
    if not overrides:
        return grid
    mapping = {_require_key(k): _require_key(v) for k, v in overrides.items()}
    return ProcessedData(tuple(mapping.get(c, c) for c in grid.colors),
                         grid.rows, grid.cols)


def set_cell(grid: ProcessedData, col: int, row: int, color: str) -> ProcessedData:
    """Paint one cell ("transparent" erases it); returns a new grid."""
    index = grid.index_of(col, row)
    colors = list(grid.colors)
    colors[index] = _require_key(color)
    return ProcessedData(tuple(colors), grid.rows, grid.cols)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColorStat:
    id: int
    color: str
    count: int


def color_stats(grid: ProcessedData) -> list[ColorStat]:
    """Per-color bead counts, most used first.

    ``id`` numbers colors in order of first appearance, starting at 1.
    """
    counts: dict[str, int] = {}
    for color in grid.colors:
        if color != TRANSPARENT:
            counts[color] = counts.get(color, 0) + 1
    stats = [ColorStat(i + 1, color, count)
             for i, (color, count) in enumerate(counts.items())]
    return sorted(stats, key=lambda s: -s.count)


def total_beads(grid: ProcessedData) -> int:
    return sum(1 for c in grid.colors if c != TRANSPARENT)


_GROUP_TITLES = {
    Brand.PERLER: "Perler Beads",
    Brand.MARD: "Mard Beads",
}
OTHER_GROUP_TITLE = "Other / Custom"


def group_color_stats(stats: Iterable[ColorStat],
                      brands: Iterable[Brand | str]) -> list[tuple[str, list[ColorStat]]]:
    """Group stats by the catalog each color belongs to.

    Colors from an unselected catalog, or from none, land in "Other / Custom".
    Empty groups are dropped.
    """
    selected = {Brand.parse(b) for b in brands}
    groups: dict[str, list[ColorStat]] = {t: [] for t in _GROUP_TITLES.values()}
    groups[OTHER_GROUP_TITLE] = []
    for stat in stats:
        info = find_brand_color(stat.color, CATALOG_ORDER)
        brand = Brand.parse(info.brand) if info else None
        if brand in selected:
            groups[_GROUP_TITLES[brand]].append(stat)
        else:
            groups[OTHER_GROUP_TITLE].append(stat)
    return [(title, data) for title, data in groups.items() if data]
