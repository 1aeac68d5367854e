"""Closed sets of pipeline and rendering modes.

Values are the exact strings used in settings files and on the command line.
"""

from enum import Enum


class _StrMode(str, Enum):
    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | _StrMode"):
        """Return the member for ``value``, raising ValueError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown {cls.__name__} {value!r} (expected one of: {choices})"
            ) from None

    @classmethod
    def choices(cls) -> list[str]:
        return [m.value for m in cls]


class ColorMethod(_StrMode):
    LAB_CIEDE2000 = "lab-ciede2000"
    OKLAB = "oklab"


class DitherMethod(_StrMode):
    NONE = "none"
    BAYER = "bayer"
    BLUE_NOISE = "blue-noise"
    FLOYD_STEINBERG = "floyd-steinberg"
    ATKINSON = "atkinson"


class SamplingMode(_StrMode):
    DEFAULT = "default"
    AVERAGE = "average"
    CARTOON = "cartoon"


class Brand(_StrMode):
    PERLER = "perler"
    MARD = "mard"
    NONE = "none"


class CellShape(_StrMode):
    SQUARE = "square"
    CIRCLE = "circle"
    HEXAGON = "hexagon"
