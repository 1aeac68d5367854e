import json

import pytest

from beadgrid.modes import Brand, ColorMethod, DitherMethod, SamplingMode
from beadgrid.settings import PatternSettings, load_settings


def test_defaults():
    s = PatternSettings()
    assert s.target_width == 40
    assert s.max_colors == 24
    assert s.color_method is ColorMethod.LAB_CIEDE2000
    assert s.dither_method is DitherMethod.NONE
    assert s.sampling_mode is SamplingMode.DEFAULT
    assert s.brands == (Brand.PERLER,)
    assert s.excluded_colors == ()


def test_strings_are_normalized():
    s = PatternSettings(color_method="oklab", dither_method="Bayer",
                        brands=["mard", "perler"], excluded_colors=["#FFF"])
    assert s.color_method is ColorMethod.OKLAB
    assert s.dither_method is DitherMethod.BAYER
    assert s.brands == (Brand.MARD, Brand.PERLER)
    assert s.excluded_colors == ("rgb(255,255,255)",)


@pytest.mark.parametrize("kwargs", [
    {"target_width": 0},
    {"max_colors": 0},
    {"target_width": 2.5},
    {"dither_method": "sparkle"},
    {"brands": ["lego"]},
    {"excluded_colors": ["not-a-color"]},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        PatternSettings(**kwargs)


def test_from_dict_accepts_camel_case():
    s = PatternSettings.from_dict({"targetWidth": 29, "maxColors": 8,
                                   "ditherMethod": "atkinson", "brands": []})
    assert (s.target_width, s.max_colors) == (29, 8)
    assert s.dither_method is DitherMethod.ATKINSON
    assert s.brands == ()


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown setting"):
        PatternSettings.from_dict({"zoom": 2})


def test_to_dict_round_trip():
    s = PatternSettings(max_colors=5, sampling_mode="cartoon", brands=["mard"])
    d = s.to_dict()
    assert d["sampling_mode"] == "cartoon"
    assert d["brands"] == ["mard"]
    assert PatternSettings.from_dict(d) == s


def test_load_settings(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"width": 52, "colorMethod": "oklab"}), encoding="utf-8")
    s = load_settings(path)
    assert s.target_width == 52
    assert s.color_method is ColorMethod.OKLAB

    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path)
