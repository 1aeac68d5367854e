"""Raster rendering of a color grid, plus pointer -> cell hit-testing."""

import math
from dataclasses import dataclass, replace
from functools import lru_cache

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .colors import TRANSPARENT, contrast_text_color, normalize_color_key, parse_color
from .errors import SurfaceError
from .modes import CellShape
from .palettes import catalog_id_map
from .processing import ProcessedData

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
BASE_CELL_SIZE = 20          # preview cell size; line widths and fonts scale from it
EDITOR_OFFSET = 2            # empty cells kept around the design in the editor
DEFAULT_PEGBOARD_SIZE = 52
MAX_CANVAS_DIMENSION = 8192
MAX_EXPORT_SCALE = 5
MIN_CODE_CELL_SIZE = 12      # smaller cells get no color-code labels

BG_COLOR = (255, 255, 255)
CHECKER_COLOR = (243, 244, 246)
MAJOR_LINE_COLOR = (239, 68, 68, 204)
NORMAL_LINE_COLOR = (0, 0, 0, 77)
SEAM_COLOR = (37, 99, 235, 230)

LINE_SOLID = "solid"     # every 10th line
LINE_DASHED = "dashed"   # every 5th line that is not a 10th
LINE_FAINT = "faint"


@dataclass(frozen=True)
class RenderOptions:
    cell_size: int = BASE_CELL_SIZE
    cell_shape: CellShape = CellShape.SQUARE
    show_grid: bool = True
    show_major_grid: bool = True
    show_coordinates: bool = False
    show_color_codes: bool = True
    pegboard_size: int = 0
    coord_bg_color: str = "#f1f5f9"
    coord_text_color: str = "#64748b"
    coord_font_size: int = 10
    offset_cells: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cell_shape", CellShape.parse(self.cell_shape))
        if self.cell_size < 1:
            raise ValueError(f"cell_size must be >= 1, got {self.cell_size}")
        if self.pegboard_size < 0:
            raise ValueError(f"pegboard_size must be >= 0, got {self.pegboard_size}")
        if self.offset_cells is not None and self.offset_cells < 0:
            raise ValueError(f"offset_cells must be >= 0, got {self.offset_cells}")
        for name in ("coord_bg_color", "coord_text_color"):
            if parse_color(getattr(self, name)) is None:
                raise ValueError(f"{name} is not a valid color: {getattr(self, name)!r}")


def line_tier(index: int, show_major_grid: bool = True) -> str:
    """Visual tier of gridline ``index``: solid / dashed / faint."""
    if show_major_grid and index % 5 == 0:
        return LINE_SOLID if index % 10 == 0 else LINE_DASHED
    return LINE_FAINT


def seam_indices(count: int, board_size: int) -> list[int]:
    """Interior line indices where one physical pegboard meets the next."""
    if board_size <= 0:
        return []
    return list(range(board_size, count, board_size))


def _px(v: float) -> int:
    return max(1, int(math.floor(v + 0.5)))


@lru_cache(maxsize=64)
def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Try to load a bold sans-serif system font, fall back to default."""
    candidates = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
        "/System/Library/Fonts/Helvetica.ttc",
        "/Library/Fonts/Arial Bold.ttf",
        "arialbd.ttf",
        "DejaVuSans-Bold.ttf",
    ]
    for path in candidates:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    try:
        return ImageFont.load_default(size)
    except TypeError:
        # Pillow < 10.1 has no sized default font
        return ImageFont.load_default()


def _draw_centered_text(draw: ImageDraw.ImageDraw, cx: float, cy: float,
                        text: str, font, fill) -> None:
    bbox = draw.textbbox((0, 0), text, font=font)
    tw = bbox[2] - bbox[0]
    th = bbox[3] - bbox[1]
    draw.text((cx - tw / 2 - bbox[0], cy - th / 2 - bbox[1]), text, fill=fill, font=font)


def _draw_dashed_line(draw: ImageDraw.ImageDraw, start: tuple[float, float],
                      end: tuple[float, float], dash: float, gap: float,
                      fill, width: int) -> None:
    """Axis-aligned dashed line from start to end."""
    (x0, y0), (x1, y1) = start, end
    length = math.hypot(x1 - x0, y1 - y0)
    if length == 0:
        return
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    pos = 0.0
    while pos < length:
        seg_end = min(pos + dash, length)
        draw.line([(x0 + ux * pos, y0 + uy * pos), (x0 + ux * seg_end, y0 + uy * seg_end)],
                  fill=fill, width=width)
        pos = seg_end + gap


# ---------------------------------------------------------------------------
# Rasterizer
# ---------------------------------------------------------------------------

class GridRasterizer:
    """Draws a ProcessedData grid onto a Pillow image and maps points back to cells.

    The grid sits inside an ``offset`` band of empty space (one cell when axis
    numbers are shown, EDITOR_OFFSET cells in the editor, else none).
    """

    def __init__(self, grid: ProcessedData, options: RenderOptions | None = None):
        self.grid = grid
        self.options = options or RenderOptions()
        offset_cells = self.options.offset_cells
        if offset_cells is None:
            offset_cells = 1 if self.options.show_coordinates else 0
        self.cell_size = self.options.cell_size
        self.offset = offset_cells * self.cell_size
        self.scale_factor = max(self.cell_size / BASE_CELL_SIZE, 1.0)

    @property
    def surface_size(self) -> tuple[int, int]:
        return (self.grid.cols * self.cell_size + self.offset * 2,
                self.grid.rows * self.cell_size + self.offset * 2)

    def cell_rect(self, col: int, row: int) -> tuple[int, int, int, int]:
        """(x0, y0, x1, y1) of a cell, x1/y1 exclusive."""
        x = self.offset + col * self.cell_size
        y = self.offset + row * self.cell_size
        return x, y, x + self.cell_size, y + self.cell_size

    # -- hit testing --------------------------------------------------------

    def cell_at(self, px: float, py: float) -> tuple[int, int] | None:
        """(col, row) under surface point (px, py), or None outside the design."""
        col = math.floor((px - self.offset) / self.cell_size)
        row = math.floor((py - self.offset) / self.cell_size)
        if 0 <= col < self.grid.cols and 0 <= row < self.grid.rows:
            return col, row
        return None

    def index_at(self, px: float, py: float) -> int | None:
        cell = self.cell_at(px, py)
        if cell is None:
            return None
        return self.grid.index_of(*cell)

    # -- rendering ----------------------------------------------------------

    def render(self) -> Image.Image:
        width, height = self.surface_size
        if width < 1 or height < 1:
            raise SurfaceError(f"Cannot render a {width}x{height} surface")
        img = Image.new("RGB", (width, height), BG_COLOR)
        draw = ImageDraw.Draw(img, "RGBA")

        self._draw_checkerboard(draw)
        if self.options.show_coordinates and self.offset > 0:
            self._draw_coordinate_bands(draw, width, height)
        self._draw_cells(draw)
        if self.options.show_coordinates and self.offset > 0:
            self._draw_axis_numbers(draw, width, height)
        if self.options.show_grid:
            self._draw_gridlines(draw, width, height)
        if self.options.pegboard_size > 0:
            self._draw_seams(draw, width, height)
        return img

    def to_array(self) -> np.ndarray:
        """Rendered pixels as an (H, W, 3) uint8 array."""
        return np.array(self.render())

    def _draw_checkerboard(self, draw: ImageDraw.ImageDraw) -> None:
        for r in range(self.grid.rows):
            for c in range(self.grid.cols):
                if (r + c) % 2 == 1:
                    x0, y0, x1, y1 = self.cell_rect(c, r)
                    draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=CHECKER_COLOR)

    def _draw_coordinate_bands(self, draw: ImageDraw.ImageDraw, width: int, height: int) -> None:
        fill = parse_color(self.options.coord_bg_color)
        off = self.offset
        draw.rectangle([0, 0, width - 1, off - 1], fill=fill)
        draw.rectangle([0, height - off, width - 1, height - 1], fill=fill)
        draw.rectangle([0, off, off - 1, height - off - 1], fill=fill)
        draw.rectangle([width - off, off, width - 1, height - off - 1], fill=fill)

    def _draw_cells(self, draw: ImageDraw.ImageDraw) -> None:
        cols = self.grid.cols
        cell = self.cell_size
        shape = self.options.cell_shape
        show_codes = self.options.show_color_codes and cell >= MIN_CODE_CELL_SIZE
        ids = catalog_id_map() if show_codes else {}
        font = _load_font(max(1, int(cell * 0.35))) if show_codes else None

        for index, color in enumerate(self.grid.colors):
            if color == TRANSPARENT or not color:
                continue
            rgb = parse_color(color)
            if rgb is None:
                continue
            x0, y0, x1, y1 = self.cell_rect(index % cols, index // cols)
            cx, cy = (x0 + x1) / 2, (y0 + y1) / 2

            if shape is CellShape.CIRCLE:
                radius = cell / 2 + 0.2 * self.scale_factor
                draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=rgb)
            elif shape is CellShape.HEXAGON:
                radius = cell / 2
                points = [(cx + radius * math.cos(math.radians(60 * k - 90)),
                           cy + radius * math.sin(math.radians(60 * k - 90)))
                          for k in range(6)]
                draw.polygon(points, fill=rgb)
            elif shape is CellShape.SQUARE:
                draw.rectangle([x0, y0, x1 - 1, y1 - 1], fill=rgb)
            else:
                raise ValueError(f"Unknown cell shape: {shape!r}")

            if show_codes:
                code = ids.get(normalize_color_key(color))
                if code:
                    _draw_centered_text(draw, cx, cy, code, font, contrast_text_color(rgb))

    def _draw_axis_numbers(self, draw: ImageDraw.ImageDraw, width: int, height: int) -> None:
        size = int(max(self.options.coord_font_size * self.scale_factor, 10))
        font = _load_font(size)
        fill = parse_color(self.options.coord_text_color)
        half = self.offset / 2
        cell = self.cell_size
        for c in range(self.grid.cols):
            x = math.floor(self.offset + c * cell + cell / 2)
            _draw_centered_text(draw, x, half, str(c + 1), font, fill)
            _draw_centered_text(draw, x, height - half, str(c + 1), font, fill)
        for r in range(self.grid.rows):
            y = math.floor(self.offset + r * cell + cell / 2)
            _draw_centered_text(draw, half, y, str(r + 1), font, fill)
            _draw_centered_text(draw, width - half, y, str(r + 1), font, fill)

    def _draw_line(self, draw: ImageDraw.ImageDraw, start, end, tier: str) -> None:
        s = self.scale_factor
        if tier == LINE_SOLID:
            draw.line([start, end], fill=MAJOR_LINE_COLOR, width=_px(1.5 * s))
        elif tier == LINE_DASHED:
            _draw_dashed_line(draw, start, end, 4 * s, 2 * s, MAJOR_LINE_COLOR, _px(s))
        else:
            draw.line([start, end], fill=NORMAL_LINE_COLOR, width=_px(s))

    def _draw_gridlines(self, draw: ImageDraw.ImageDraw, width: int, height: int) -> None:
        off = self.offset
        major = self.options.show_major_grid
        for c in range(self.grid.cols + 1):
            x = off + c * self.cell_size
            self._draw_line(draw, (x, off), (x, height - off), line_tier(c, major))
        for r in range(self.grid.rows + 1):
            y = off + r * self.cell_size
            self._draw_line(draw, (off, y), (width - off, y), line_tier(r, major))

    def _draw_seams(self, draw: ImageDraw.ImageDraw, width: int, height: int) -> None:
        off = self.offset
        seam_width = _px(2 * self.scale_factor)
        board = self.options.pegboard_size
        for c in seam_indices(self.grid.cols, board):
            x = off + c * self.cell_size
            draw.line([(x, off), (x, height - off)], fill=SEAM_COLOR, width=seam_width)
        for r in seam_indices(self.grid.rows, board):
            y = off + r * self.cell_size
            draw.line([(off, y), (width - off, y)], fill=SEAM_COLOR, width=seam_width)


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------

def max_export_scale(grid: ProcessedData, cell_size: int = BASE_CELL_SIZE) -> int:
    """Largest scale multiple whose export stays within MAX_CANVAS_DIMENSION.

    Budgets a one-cell band on every side for axis numbers.
    """
    if cell_size < 1:
        raise ValueError(f"cell_size must be >= 1, got {cell_size}")
    max_dimension = max(grid.cols, grid.rows)
    limit = MAX_CANVAS_DIMENSION // ((max_dimension + 2) * cell_size)
    return min(max(limit, 1), MAX_EXPORT_SCALE)


def render_pattern(grid: ProcessedData, options: RenderOptions | None = None,
                   scale: int = 1) -> Image.Image:
    """Render at ``scale`` times the configured cell size."""
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")
    options = options or RenderOptions()
    if scale != 1:
        options = replace(options, cell_size=options.cell_size * scale)
    return GridRasterizer(grid, options).render()


def editor_rasterizer(grid: ProcessedData, cell_size: int = BASE_CELL_SIZE,
                      **options) -> GridRasterizer:
    """Rasterizer for the interactive editor: fixed 2-cell indent, no axis numbers."""
    opts = RenderOptions(cell_size=cell_size, show_coordinates=False,
                         offset_cells=EDITOR_OFFSET, **options)
    return GridRasterizer(grid, opts)
