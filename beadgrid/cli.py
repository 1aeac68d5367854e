"""Command-line bead pattern generator."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .colors import parse_color, rgb_to_hex
from .errors import BeadgridError
from .image_utils import load_image
from .modes import Brand, CellShape, ColorMethod, DitherMethod, SamplingMode
from .palettes import catalog_id_map, total_available_colors
from .processing import (
    apply_overrides, color_stats, group_color_stats, process_image, total_beads,
)
from .rasterizer import (
    BASE_CELL_SIZE, DEFAULT_PEGBOARD_SIZE, RenderOptions, max_export_scale,
    render_pattern,
)
from .settings import PatternSettings, load_settings


def _parse_replacement(value: str) -> tuple[str, str]:
    src, sep, dst = value.partition("=")
    if not sep or not src.strip() or not dst.strip():
        raise argparse.ArgumentTypeError(f"expected FROM=TO, got {value!r}")
    return src.strip(), dst.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beadgrid",
        description="Bead Pattern Generator - turn an image into a bead grid",
    )
    parser.add_argument("input", help="Input image path")
    parser.add_argument("-o", "--output", default=None,
                        help="Output image path (default: <input>_beads.png)")
    parser.add_argument("-w", "--width", type=int, default=None,
                        help="Grid width in beads (default: 40)")
    parser.add_argument("-n", "--max-colors", type=int, default=None,
                        help="Maximum number of palette colors (default: 24)")
    parser.add_argument("--metric", choices=ColorMethod.choices(), default=None,
                        help="Color distance metric (default: lab-ciede2000)")
    parser.add_argument("--dither", choices=DitherMethod.choices(), default=None,
                        help="Dithering method (default: none)")
    parser.add_argument("--sampling", choices=SamplingMode.choices(), default=None,
                        help="Downsampling mode (default: default)")
    parser.add_argument("--brand", action="append", default=None,
                        choices=[Brand.PERLER.value, Brand.MARD.value],
                        help="Restrict colors to a bead brand (repeatable, default: perler)")
    parser.add_argument("--no-brand", action="store_true",
                        help="Use free colors instead of a bead catalog")
    parser.add_argument("--exclude", action="append", default=None, metavar="COLOR",
                        help="Catalog color to leave out, hex or rgb(...) (repeatable)")
    parser.add_argument("--replace", action="append", default=[], metavar="FROM=TO",
                        type=_parse_replacement,
                        help="Replace a grid color after processing (repeatable)")
    parser.add_argument("--config", default=None,
                        help="JSON settings file; command-line flags override it")
    parser.add_argument("-c", "--cell-size", type=int, default=BASE_CELL_SIZE,
                        help=f"Output cell size in pixels (default: {BASE_CELL_SIZE})")
    parser.add_argument("--shape", choices=CellShape.choices(), default=CellShape.SQUARE.value,
                        help="Bead shape (default: square)")
    parser.add_argument("--no-grid", action="store_true", help="Hide gridlines")
    parser.add_argument("--no-major-grid", action="store_true",
                        help="Draw every gridline faint (no 5/10 guides)")
    parser.add_argument("--coords", action="store_true",
                        help="Draw row/column numbers around the grid")
    parser.add_argument("--no-codes", action="store_true",
                        help="Hide catalog ids inside cells")
    parser.add_argument("--board-size", type=int, nargs="?", default=0,
                        const=DEFAULT_PEGBOARD_SIZE,
                        help="Pegboard size for seam lines, e.g. 29 or 52 "
                             f"(bare flag: {DEFAULT_PEGBOARD_SIZE}, default: off)")
    parser.add_argument("--scale", type=int, default=1,
                        help="Export scale multiplier (clamped to what fits 8192px)")
    parser.add_argument("--json", default=None, metavar="PATH",
                        help="Also write the color grid as JSON")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    return parser


def _settings_from_args(args: argparse.Namespace) -> PatternSettings:
    settings = load_settings(args.config) if args.config else PatternSettings()
    overrides = {}
    if args.width is not None:
        overrides["target_width"] = args.width
    if args.max_colors is not None:
        overrides["max_colors"] = args.max_colors
    if args.metric is not None:
        overrides["color_method"] = args.metric
    if args.dither is not None:
        overrides["dither_method"] = args.dither
    if args.sampling is not None:
        overrides["sampling_mode"] = args.sampling
    if args.no_brand:
        overrides["brands"] = ()
    elif args.brand:
        overrides["brands"] = tuple(dict.fromkeys(args.brand))
    if args.exclude is not None:
        overrides["excluded_colors"] = tuple(args.exclude)
    return replace(settings, **overrides) if overrides else settings


def run(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if args.output is None:
        output_path = input_path.parent / f"{input_path.stem}_beads.png"
    else:
        output_path = Path(args.output)

    settings = _settings_from_args(args)
    available = total_available_colors(settings.brands)
    if settings.max_colors > available:
        print(f"  Note: only {available} colors available, max colors capped")
        settings = replace(settings, max_colors=available)

    # 1. Load image
    print(f"Loading image: {input_path}")
    image = load_image(input_path)
    print(f"  Image size: {image.width}x{image.height}")

    # 2. Build grid
    brand_names = ", ".join(b.value for b in settings.brands) or "none"
    print(f"Sampling colors (metric={settings.color_method}, dither={settings.dither_method}, "
          f"sampling={settings.sampling_mode}, brands={brand_names})...")
    grid = process_image(image, settings)
    print(f"  Grid: {grid.cols}x{grid.rows} cells")

    if args.replace:
        print(f"Applying {len(args.replace)} color replacement(s)...")
        grid = apply_overrides(grid, dict(args.replace))

    # 3. Render
    scale = max(1, min(args.scale, max_export_scale(grid, args.cell_size)))
    if scale != args.scale:
        print(f"  Export scale clamped to {scale}")
    options = RenderOptions(
        cell_size=args.cell_size,
        cell_shape=args.shape,
        show_grid=not args.no_grid,
        show_major_grid=not args.no_major_grid,
        show_coordinates=args.coords,
        show_color_codes=not args.no_codes,
        pegboard_size=args.board_size,
    )
    print("Rendering output...")
    result = render_pattern(grid, options, scale=scale)
    result.save(str(output_path))
    print(f"Saved: {output_path}")

    if args.json:
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump({"settings": settings.to_dict(), **grid.to_dict()}, f, indent=2)
        print(f"Saved grid: {args.json}")

    # Summary
    stats = color_stats(grid)
    ids = catalog_id_map()
    print(f"\nColor usage ({len(stats)} colors, {total_beads(grid)} beads total):")
    for title, group in group_color_stats(stats, settings.brands):
        print(f"  {title}:")
        for stat in group:
            label = ids.get(stat.color, f"#{stat.id}")
            print(f"    {label:>5s}: {stat.count:4d}  {rgb_to_hex(parse_color(stat.color))}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(levelname)s %(name)s: %(message)s")
    try:
        return run(args)
    except (BeadgridError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
