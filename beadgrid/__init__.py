"""beadgrid - turn images into bead (perler / fuse bead) patterns."""

from .errors import BeadgridError, ImageDecodeError, SurfaceError
from .image_utils import get_image_data, load_image
from .modes import Brand, CellShape, ColorMethod, DitherMethod, SamplingMode
from .palettes import (
    BrandColor, find_closest_palette_color, get_active_brand_palette, load_catalog,
)
from .processing import (
    ColorStat, ProcessedData, apply_overrides, color_stats, process_image,
    sample_image_colors, set_cell,
)
from .rasterizer import GridRasterizer, RenderOptions, editor_rasterizer, render_pattern
from .settings import PatternSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "BeadgridError", "ImageDecodeError", "SurfaceError",
    "get_image_data", "load_image",
    "Brand", "CellShape", "ColorMethod", "DitherMethod", "SamplingMode",
    "BrandColor", "find_closest_palette_color", "get_active_brand_palette", "load_catalog",
    "ColorStat", "ProcessedData", "apply_overrides", "color_stats", "process_image",
    "sample_image_colors", "set_cell",
    "GridRasterizer", "RenderOptions", "editor_rasterizer", "render_pattern",
    "PatternSettings", "load_settings",
]
