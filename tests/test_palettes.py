import numpy as np
import pytest

from beadgrid.modes import Brand, ColorMethod
from beadgrid.palettes import (
    UNCONSTRAINED_COLOR_COUNT, BrandColor, LookupPalette, catalog_id_map,
    create_lookup_palette, find_brand_color, find_closest_palette_color,
    get_active_brand_palette, load_catalog, map_palette_to_brands,
    total_available_colors,
)

BLACK = BrandColor("K1", "Black", (0, 0, 0), "test")
WHITE = BrandColor("W1", "White", (255, 255, 255), "test")
METHODS = [ColorMethod.LAB_CIEDE2000, ColorMethod.OKLAB]


def test_catalogs_skip_transparent_beads():
    perler = load_catalog(Brand.PERLER)
    assert perler
    assert "P19" not in {c.id for c in perler}
    assert "H1" not in {c.id for c in load_catalog("mard")}
    assert load_catalog(Brand.NONE) == ()


def test_catalog_entry_fields():
    white = next(c for c in load_catalog("perler") if c.id == "P01")
    assert white.name == "White"
    assert white.rgb == (241, 241, 241)
    assert white.key == "rgb(241,241,241)"
    assert white.brand == "perler"


def test_active_palette_union_and_exclusion():
    both = get_active_brand_palette(["perler", "mard"])
    assert len(both) == len(load_catalog("perler")) + len(load_catalog("mard"))
    excluded = get_active_brand_palette(["perler"], ["#F1F1F1"])
    assert "rgb(241,241,241)" not in {c.key for c in excluded}
    assert len(excluded) == len(load_catalog("perler")) - 1


def test_no_brand_means_unconstrained():
    assert get_active_brand_palette([]) == []
    assert get_active_brand_palette(["none"]) == []
    assert total_available_colors([]) == UNCONSTRAINED_COLOR_COUNT
    assert total_available_colors(["perler"]) == len(load_catalog("perler"))


def test_find_brand_color():
    assert find_brand_color("#2E2F32").id == "P18"
    assert find_brand_color("rgb(46,47,50)", ["mard"]) is None
    assert find_brand_color("transparent") is None


def test_catalog_id_map():
    ids = catalog_id_map()
    assert ids["rgb(241,241,241)"] == "P01"
    with pytest.raises(TypeError):
        ids["rgb(0,0,0)"] = "X"


@pytest.mark.parametrize("method", METHODS)
def test_map_palette_to_brands_snaps_dark_and_light(method):
    mapped = map_palette_to_brands([(10, 10, 10), (245, 245, 245)], [BLACK, WHITE], method)
    assert mapped == [(0, 0, 0), (255, 255, 255)]


def test_map_palette_without_candidates_is_unchanged():
    base = [(1, 2, 3), (4, 5, 6)]
    assert map_palette_to_brands(base, [], ColorMethod.OKLAB) == base


@pytest.mark.parametrize("method", METHODS)
def test_find_closest_palette_color(method):
    assert find_closest_palette_color("rgb(10,10,10)", [BLACK, WHITE], method) is BLACK
    assert find_closest_palette_color("#F5F5F5", [BLACK, WHITE], method) is WHITE


def test_find_closest_palette_color_rejects():
    assert find_closest_palette_color("transparent", [BLACK]) is None
    assert find_closest_palette_color("not a color", [BLACK]) is None
    assert find_closest_palette_color("#000000", []) is None


def test_catalog_color_maps_to_itself():
    perler = load_catalog("perler")
    for entry in perler[:10]:
        assert find_closest_palette_color(entry.key, perler) == entry


def test_lookup_palette_dedupes_and_caches():
    lookup = create_lookup_palette([(255, 0, 0), (0, 0, 255), (255, 0, 0)])
    assert len(lookup) == 2
    assert lookup.keys() == ["rgb(255,0,0)", "rgb(0,0,255)"]
    assert lookup.lab.shape == (2, 3)
    assert not lookup.lab.flags.writeable


@pytest.mark.parametrize("method", METHODS)
def test_lookup_nearest_shapes(method):
    lookup = LookupPalette([(0, 0, 0), (255, 255, 255)])
    assert lookup.nearest([250, 250, 250], method) == 1
    result = lookup.nearest(np.array([[5, 5, 5], [200, 200, 200]]), method)
    assert list(result) == [0, 1]


def test_lookup_nearest_ties_pick_first():
    lookup = LookupPalette([(10, 10, 10), (10, 10, 10)])
    assert lookup.nearest([10, 10, 10], ColorMethod.OKLAB) == 0


def test_empty_lookup_raises():
    with pytest.raises(ValueError):
        LookupPalette([]).nearest([0, 0, 0], ColorMethod.OKLAB)
