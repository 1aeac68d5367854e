"""Pipeline configuration record and its JSON loader."""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .colors import normalize_color_key
from .modes import Brand, ColorMethod, DitherMethod, SamplingMode

DEFAULT_TARGET_WIDTH = 40
DEFAULT_MAX_COLORS = 24

# camelCase keys accepted in settings files -> field names
_ALIASES = {
    "targetWidth": "target_width",
    "width": "target_width",
    "maxColors": "max_colors",
    "colorMethod": "color_method",
    "ditherMethod": "dither_method",
    "samplingMode": "sampling_mode",
    "excludedColors": "excluded_colors",
}


@dataclass(frozen=True)
class PatternSettings:
    target_width: int = DEFAULT_TARGET_WIDTH
    max_colors: int = DEFAULT_MAX_COLORS
    color_method: ColorMethod = ColorMethod.LAB_CIEDE2000
    dither_method: DitherMethod = DitherMethod.NONE
    sampling_mode: SamplingMode = SamplingMode.DEFAULT
    brands: tuple[Brand, ...] = (Brand.PERLER,)
    excluded_colors: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Normalize loosely typed input (strings, lists) in place
        set_ = object.__setattr__
        if isinstance(self.target_width, bool) or int(self.target_width) != self.target_width:
            raise ValueError(f"target_width must be an integer, got {self.target_width!r}")
        if self.target_width < 1:
            raise ValueError(f"target_width must be >= 1, got {self.target_width}")
        if isinstance(self.max_colors, bool) or int(self.max_colors) != self.max_colors:
            raise ValueError(f"max_colors must be an integer, got {self.max_colors!r}")
        if self.max_colors < 1:
            raise ValueError(f"max_colors must be >= 1, got {self.max_colors}")
        set_(self, "target_width", int(self.target_width))
        set_(self, "max_colors", int(self.max_colors))
        set_(self, "color_method", ColorMethod.parse(self.color_method))
        set_(self, "dither_method", DitherMethod.parse(self.dither_method))
        set_(self, "sampling_mode", SamplingMode.parse(self.sampling_mode))
        brands = [self.brands] if isinstance(self.brands, str) else self.brands
        set_(self, "brands", tuple(Brand.parse(b) for b in brands))
        excluded = []
        for c in self.excluded_colors:
            key = normalize_color_key(c)
            if key is None:
                raise ValueError(f"Invalid excluded color: {c!r}")
            excluded.append(key)
        set_(self, "excluded_colors", tuple(excluded))

    @classmethod
    def from_dict(cls, data: dict) -> "PatternSettings":
        """Build settings from a dict using snake_case or camelCase keys."""
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown setting: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["color_method"] = self.color_method.value
        d["dither_method"] = self.dither_method.value
        d["sampling_mode"] = self.sampling_mode.value
        d["brands"] = [b.value for b in self.brands]
        d["excluded_colors"] = list(self.excluded_colors)
        return d


def load_settings(path: str | Path) -> PatternSettings:
    """Read PatternSettings from a JSON object file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return PatternSettings.from_dict(data)
