import numpy as np
import pytest

from beadgrid.errors import SurfaceError
from beadgrid.processing import ProcessedData
from beadgrid.rasterizer import (
    EDITOR_OFFSET, LINE_DASHED, LINE_FAINT, LINE_SOLID, GridRasterizer,
    RenderOptions, editor_rasterizer, line_tier, max_export_scale,
    render_pattern, seam_indices,
)

RED = "rgb(255,0,0)"
T = "transparent"


def _grid(cols=3, rows=2, colors=None):
    if colors is None:
        colors = [RED] * (cols * rows)
    return ProcessedData(tuple(colors), rows, cols)


def _plain(**kwargs):
    kwargs.setdefault("show_grid", False)
    kwargs.setdefault("show_color_codes", False)
    return RenderOptions(**kwargs)


def test_surface_size_and_offset():
    r = GridRasterizer(_grid(), RenderOptions())
    assert r.offset == 0 and r.surface_size == (60, 40)
    r = GridRasterizer(_grid(), RenderOptions(show_coordinates=True))
    assert r.offset == 20 and r.surface_size == (100, 80)
    r = editor_rasterizer(_grid(), 10)
    assert r.offset == EDITOR_OFFSET * 10 and r.surface_size == (70, 60)


def test_scale_factor():
    assert GridRasterizer(_grid(), RenderOptions(cell_size=10)).scale_factor == 1.0
    assert GridRasterizer(_grid(), RenderOptions(cell_size=60)).scale_factor == 3.0


def test_hit_testing():
    r = editor_rasterizer(_grid(), 20)
    assert r.cell_at(40, 40) == (0, 0)
    assert r.cell_at(39.9, 40) is None
    assert r.cell_at(40 + 59, 40 + 39) == (2, 1)
    assert r.cell_at(40 + 60, 45) is None
    assert r.index_at(40 + 25, 40 + 25) == 4
    assert r.index_at(0, 0) is None


def test_hit_testing_without_offset():
    r = GridRasterizer(_grid(), RenderOptions())
    assert r.cell_at(0, 0) == (0, 0)
    assert r.cell_at(-1, 5) is None


def test_line_tiers():
    assert line_tier(0) == LINE_SOLID
    assert line_tier(10) == LINE_SOLID
    assert line_tier(5) == LINE_DASHED
    assert line_tier(15) == LINE_DASHED
    assert line_tier(3) == LINE_FAINT
    assert line_tier(10, show_major_grid=False) == LINE_FAINT


def test_seam_indices():
    assert seam_indices(60, 29) == [29, 58]
    assert seam_indices(58, 29) == [29]
    assert seam_indices(20, 0) == []


def test_render_cells_and_checkerboard():
    grid = _grid(colors=[RED, T, RED, T, RED, T])
    img = GridRasterizer(grid, _plain()).render()
    assert img.mode == "RGB" and img.size == (60, 40)
    assert img.getpixel((10, 10)) == (255, 0, 0)
    assert img.getpixel((30, 10)) == (243, 244, 246)
    assert img.getpixel((50, 30)) == (243, 244, 246)
    assert img.getpixel((50, 10)) == (255, 0, 0)


def test_circle_and_hexagon_leave_corners_empty():
    grid = _grid(1, 1)
    for shape in ("circle", "hexagon"):
        img = GridRasterizer(grid, _plain(cell_shape=shape)).render()
        assert img.getpixel((10, 10)) == (255, 0, 0)
        assert img.getpixel((0, 0)) == (255, 255, 255)


def test_gridlines_change_pixels():
    grid = _grid(12, 1)
    plain = np.array(GridRasterizer(grid, _plain()).render())
    lined = np.array(GridRasterizer(grid, _plain(show_grid=True)).render())
    assert not np.array_equal(plain, lined)
    assert np.array_equal(plain[8:12, 5:15], lined[8:12, 5:15])


def test_major_grid_toggle():
    grid = _grid(12, 1)
    major = np.array(GridRasterizer(grid, _plain(show_grid=True)).render())
    faint = np.array(GridRasterizer(grid, _plain(show_grid=True, show_major_grid=False)).render())
    assert not np.array_equal(major, faint)


def test_board_seams_drawn_at_boundaries():
    grid = _grid(4, 1)
    base = np.array(GridRasterizer(grid, _plain()).render())
    seams = np.array(GridRasterizer(grid, _plain(pegboard_size=2)).render())
    changed = np.argwhere((base != seams).any(axis=2))
    assert len(changed) > 0
    assert changed[:, 1].min() >= 37 and changed[:, 1].max() <= 42


def test_color_codes():
    grid = _grid(1, 1, ["rgb(46,47,50)"])
    without = np.array(GridRasterizer(grid, _plain()).render())
    with_codes = np.array(GridRasterizer(grid, _plain(show_color_codes=True)).render())
    assert not np.array_equal(without, with_codes)
    small = _plain(show_color_codes=True, cell_size=10)
    assert np.array_equal(np.array(GridRasterizer(grid, small).render()),
                          np.array(GridRasterizer(grid, _plain(cell_size=10)).render()))


def test_uncataloged_colors_get_no_code():
    grid = _grid(1, 1, ["rgb(1,2,3)"])
    a = np.array(GridRasterizer(grid, _plain()).render())
    b = np.array(GridRasterizer(grid, _plain(show_color_codes=True)).render())
    assert np.array_equal(a, b)


def test_coordinate_bands():
    img = GridRasterizer(_grid(), _plain(show_coordinates=True)).render()
    assert img.size == (100, 80)
    assert img.getpixel((1, 1)) == (241, 245, 249)
    assert img.getpixel((30, 30)) == (255, 0, 0)


def test_render_pattern_scale():
    grid = _grid()
    assert render_pattern(grid).size == (60, 40)
    assert render_pattern(grid, scale=3).size == (180, 120)
    with pytest.raises(ValueError):
        render_pattern(grid, scale=0)


def test_max_export_scale():
    assert max_export_scale(_grid(40, 40, [T] * 1600)) == 5
    assert max_export_scale(ProcessedData((T,) * 200, 1, 200)) == 2
    assert max_export_scale(ProcessedData((T,) * 1000, 1, 1000)) == 1


def test_invalid_options_and_empty_surface():
    with pytest.raises(ValueError):
        RenderOptions(cell_size=0)
    with pytest.raises(ValueError):
        RenderOptions(cell_shape="triangle")
    with pytest.raises(SurfaceError):
        GridRasterizer(ProcessedData((), 0, 0)).render()


def test_max_export_scale_follows_cell_size():
    grid = _grid(40, 40, [T] * 1600)
    assert max_export_scale(grid, 60) == 3
    assert max_export_scale(grid, 300) == 1
    for cell in (10, 20, 60, 100):
        assert 42 * cell * max_export_scale(grid, cell) <= 8192
    with pytest.raises(ValueError):
        max_export_scale(grid, 0)


@pytest.mark.parametrize("field", ["coord_bg_color", "coord_text_color"])
def test_invalid_coordinate_colors_rejected(field):
    with pytest.raises(ValueError, match=field):
        RenderOptions(**{field: "slate"})
    assert RenderOptions(**{field: "rgb(1, 2, 3)"})


def test_to_array():
    r = GridRasterizer(_grid(), _plain(show_coordinates=True))
    arr = r.to_array()
    assert arr.shape == (80, 100, 3)
    assert arr.dtype == np.uint8
    assert tuple(arr[30, 30]) == (255, 0, 0)
