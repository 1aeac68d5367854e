import numpy as np
import pytest

from beadgrid.colors import (
    ciede2000, color_to_key, contrast_text_color, euclidean_oklab, hex_to_rgb,
    key_to_color, normalize_color_key, parse_color, rgb_to_hex, rgb_to_lab,
    rgb_to_oklab, round_half_up,
)


def test_white_and_black_lab():
    white = rgb_to_lab([255, 255, 255])
    assert white[0] == pytest.approx(100.0, abs=0.05)
    assert white[1] == pytest.approx(0.0, abs=0.05)
    assert white[2] == pytest.approx(0.0, abs=0.05)
    assert np.allclose(rgb_to_lab([0, 0, 0]), 0.0)


def test_white_oklab_lightness():
    ok = rgb_to_oklab([255, 255, 255])
    assert ok[0] == pytest.approx(1.0, abs=0.01)
    assert abs(ok[1]) < 0.01 and abs(ok[2]) < 0.01


def test_batch_matches_single():
    colors = np.array([[12, 200, 99], [255, 0, 0], [3, 3, 3]])
    batch = rgb_to_lab(colors)
    for i, c in enumerate(colors):
        assert np.array_equal(batch[i], rgb_to_lab(c))


def test_ciede2000_reference_pair():
    # Sharma et al. test data, pair 1
    d = ciede2000([50.0, 2.6772, -79.7751], [50.0, 0.0, -82.7485])
    assert float(d) == pytest.approx(2.0425, abs=1e-4)


def test_ciede2000_identity_and_symmetry():
    a = rgb_to_lab([200, 30, 60])
    b = rgb_to_lab([20, 130, 210])
    assert float(ciede2000(a, a)) == pytest.approx(0.0, abs=1e-9)
    assert float(ciede2000(a, b)) == pytest.approx(float(ciede2000(b, a)))
    assert float(ciede2000(a, b)) > 0


def test_ciede2000_greys():
    # zero chroma on both sides
    d = ciede2000(rgb_to_lab([100, 100, 100]), rgb_to_lab([120, 120, 120]))
    assert np.isfinite(d) and d > 0


def test_euclidean_oklab():
    assert float(euclidean_oklab([0, 0, 0], [0.3, 0.4, 0])) == pytest.approx(0.5)


def test_round_half_up():
    assert list(round_half_up([0.5, 1.5, 2.5, 2.4])) == [1, 2, 3, 2]


def test_color_keys():
    assert color_to_key((1, 2, 3)) == "rgb(1,2,3)"
    assert key_to_color("rgb(1,2,3)") == (1, 2, 3)
    assert key_to_color("garbage") == (0, 0, 0)
    assert color_to_key((300, -4, 7)) == "rgb(255,0,7)"


def test_parse_color():
    assert parse_color("  #ABC ") == (170, 187, 204)
    assert parse_color("#ff0080") == (255, 0, 128)
    assert parse_color("rgb( 1, 2 ,3 )") == (1, 2, 3)
    assert parse_color("rgb(1,2)") is None
    assert parse_color("blue") is None
    assert parse_color(None) is None


def test_normalize_color_key():
    assert normalize_color_key("#FF0000") == "rgb(255,0,0)"
    assert normalize_color_key("Transparent") == "transparent"
    assert normalize_color_key("nope") is None


def test_hex_helpers():
    assert hex_to_rgb("#FFF") == (255, 255, 255)
    assert rgb_to_hex((10, 171, 255)) == "#0AABFF"


def test_contrast_text_color():
    assert contrast_text_color((255, 255, 255)) == (0, 0, 0)
    assert contrast_text_color((0, 0, 0)) == (255, 255, 255)
    assert contrast_text_color((255, 255, 0)) == (0, 0, 0)
