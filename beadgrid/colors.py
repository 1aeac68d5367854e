"""Color science helpers: sRGB -> XYZ -> CIE Lab / OKLab, distances, color keys.

Every conversion is vectorized over numpy arrays shaped ``(..., 3)``; a single
color is simply a ``(3,)`` array (or any sequence of three numbers).
"""

import re

import numpy as np

from .modes import ColorMethod

RGB = tuple[int, int, int]

TRANSPARENT = "transparent"

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# sRGB to XYZ (D65)
_SRGB_TO_XYZ = (
    (0.4124, 0.3576, 0.1805),
    (0.2126, 0.7152, 0.0722),
    (0.0193, 0.1192, 0.9505),
)

# D65 reference white, 0-100 scale
_D65_WHITE = np.array([95.047, 100.000, 108.883], dtype=np.float64)

# XYZ -> LMS and LMS' -> OKLab (Ottosson). Applied row by row with explicit
# sums so a single color and a batch of colors round identically.
_XYZ_TO_LMS = (
    (0.8189330101, 0.3618667424, -0.1288597137),
    (0.0329845436, 0.9293118715, 0.0361456387),
    (0.0482003018, 0.2643662700, 0.6338517070),
)

_LMS_TO_OKLAB = (
    (0.2104542553, 0.7936177850, -0.0040720468),
    (1.9779984951, -2.4285922050, 0.4505937099),
    (0.0259040371, 0.7827717662, -0.8086757660),
)

_POW25_7 = 25.0 ** 7


def round_half_up(x):
    """Round halves towards +inf (0.5 -> 1, 2.5 -> 3), unlike Python's round()."""
    return np.floor(np.asarray(x, dtype=np.float64) + 0.5)


def _deg_to_rad(deg):
    return deg * (np.pi / 180.0)


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def _apply_matrix(m, v: np.ndarray) -> np.ndarray:
    return np.stack(
        [row[0] * v[..., 0] + row[1] * v[..., 1] + row[2] * v[..., 2] for row in m],
        axis=-1)


def rgb_to_xyz(rgb) -> np.ndarray:
    """Convert sRGB (0-255) to CIE XYZ on the 0-100 scale. Input shape: (..., 3).

    Uses the 4-decimal sRGB matrix (0.4124, 0.3576, 0.1805, ...).
    """
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    # Gamma decode
    linear = np.where(c > 0.04045, ((c + 0.055) / 1.055) ** 2.4, c / 12.92)
    return _apply_matrix(_SRGB_TO_XYZ, linear) * 100.0


def xyz_to_lab(xyz) -> np.ndarray:
    """Convert XYZ (0-100) to CIE Lab against the D65 white point."""
    t = np.asarray(xyz, dtype=np.float64) / _D65_WHITE
    f = np.where(t > 0.008856, np.cbrt(t), 7.787 * t + 16.0 / 116.0)
    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return np.stack([L, a, b], axis=-1)


def xyz_to_oklab(xyz) -> np.ndarray:
    """Convert XYZ (0-100) to OKLab (L in 0-1)."""
    t = np.asarray(xyz, dtype=np.float64) / 100.0
    lms = _apply_matrix(_XYZ_TO_LMS, t)
    return _apply_matrix(_LMS_TO_OKLAB, np.cbrt(lms))


def rgb_to_lab(rgb) -> np.ndarray:
    return xyz_to_lab(rgb_to_xyz(rgb))


def rgb_to_oklab(rgb) -> np.ndarray:
    return xyz_to_oklab(rgb_to_xyz(rgb))


# ---------------------------------------------------------------------------
# Distance metrics
# ---------------------------------------------------------------------------

def euclidean_oklab(ok1, ok2) -> np.ndarray:
    """Plain L2 distance in OKLab. Same interface as ciede2000."""
    d = np.asarray(ok1, dtype=np.float64) - np.asarray(ok2, dtype=np.float64)
    return np.sqrt((d ** 2).sum(axis=-1))


def ciede2000(lab1, lab2) -> np.ndarray:
    """CIEDE2000 color difference. Inputs: (..., 3) Lab arrays. Returns (...).

    kL = kC = kH = 1. When either primed chroma is zero the hue difference is
    taken as 0 and the mean hue is the plain sum of both angles.
    """
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    C1 = np.sqrt(a1 * a1 + b1 * b1)
    C2 = np.sqrt(a2 * a2 + b2 * b2)
    C_bar = (C1 + C2) / 2.0
    C_bar7 = C_bar ** 7
    G = 0.5 * (1.0 - np.sqrt(C_bar7 / (C_bar7 + _POW25_7)))

    a1p = a1 * (1.0 + G)
    a2p = a2 * (1.0 + G)
    C1p = np.sqrt(a1p * a1p + b1 * b1)
    C2p = np.sqrt(a2p * a2p + b2 * b2)

    h1 = np.arctan2(b1, a1p) * 180.0 / np.pi
    h1 = np.where(h1 >= 0, h1, h1 + 360.0)
    h2 = np.arctan2(b2, a2p) * 180.0 / np.pi
    h2 = np.where(h2 >= 0, h2, h2 + 360.0)

    dLp = L2 - L1
    dCp = C2p - C1p

    zero_chroma = (C1p * C2p) == 0
    diff = h2 - h1
    dhp = np.where(
        zero_chroma, 0.0,
        np.where(np.abs(diff) <= 180, diff,
                 np.where(diff > 180, diff - 360.0, diff + 360.0)))
    dHp = 2.0 * np.sqrt(C1p * C2p) * np.sin(_deg_to_rad(dhp / 2.0))

    Lp_bar = (L1 + L2) / 2.0
    Cp_bar = (C1p + C2p) / 2.0

    h_sum = h1 + h2
    hp_bar = np.where(
        zero_chroma, h_sum,
        np.where(np.abs(h1 - h2) <= 180, h_sum / 2.0,
                 np.where(h_sum < 360, (h_sum + 360.0) / 2.0,
                          (h_sum - 360.0) / 2.0)))

    T = (1.0
         - 0.17 * np.cos(_deg_to_rad(hp_bar - 30))
         + 0.24 * np.cos(_deg_to_rad(2 * hp_bar))
         + 0.32 * np.cos(_deg_to_rad(3 * hp_bar + 6))
         - 0.20 * np.cos(_deg_to_rad(4 * hp_bar - 63)))

    d_theta = 30.0 * np.exp(-((hp_bar - 275) / 25.0) ** 2)
    Cp_bar7 = Cp_bar ** 7
    RC = 2.0 * np.sqrt(Cp_bar7 / (Cp_bar7 + _POW25_7))
    SL = 1.0 + 0.015 * (Lp_bar - 50) ** 2 / np.sqrt(20 + (Lp_bar - 50) ** 2)
    SC = 1.0 + 0.045 * Cp_bar
    SH = 1.0 + 0.015 * Cp_bar * T
    RT = -np.sin(_deg_to_rad(2 * d_theta)) * RC

    return np.sqrt(
        (dLp / SL) ** 2 + (dCp / SC) ** 2 + (dHp / SH) ** 2
        + RT * (dCp / SC) * (dHp / SH))


def project(rgb, method: ColorMethod) -> np.ndarray:
    """Map sRGB colors into the space ``method`` measures distances in."""
    if method is ColorMethod.LAB_CIEDE2000:
        return rgb_to_lab(rgb)
    if method is ColorMethod.OKLAB:
        return rgb_to_oklab(rgb)
    raise ValueError(f"Unknown color method: {method!r}")


def color_distance(p1, p2, method: ColorMethod) -> np.ndarray:
    """Distance between colors already projected with ``project(..., method)``."""
    if method is ColorMethod.LAB_CIEDE2000:
        return ciede2000(p1, p2)
    if method is ColorMethod.OKLAB:
        return euclidean_oklab(p1, p2)
    raise ValueError(f"Unknown color method: {method!r}")


# ---------------------------------------------------------------------------
# Color keys and parsing
# ---------------------------------------------------------------------------

_INT_RE = re.compile(r"\d+")
_HEX_RE = re.compile(r"^#?([0-9a-f]{3}|[0-9a-f]{6})$")


def _clamp8(v) -> int:
    return max(0, min(255, int(v)))


def color_to_key(rgb) -> str:
    """Canonical color key, e.g. ``rgb(12,34,56)``."""
    r, g, b = (_clamp8(v) for v in rgb[:3])
    return f"rgb({r},{g},{b})"


def key_to_color(key: str) -> RGB:
    """Inverse of color_to_key. Unparseable keys give black."""
    match = _INT_RE.findall(key)
    if len(match) < 3:
        return 0, 0, 0
    r, g, b = (_clamp8(v) for v in match[:3])
    return r, g, b


def hex_to_rgb(h: str) -> RGB:
    """Convert '#RRGGBB' or '#RGB' to (R, G, B)."""
    h = h.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(ch * 2 for ch in h)
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def rgb_to_hex(rgb) -> str:
    r, g, b = (_clamp8(v) for v in rgb[:3])
    return f"#{r:02X}{g:02X}{b:02X}"


def parse_color(text: str) -> RGB | None:
    """Parse '#RRGGBB', '#RGB' or 'rgb(r, g, b)'. Returns None if unparseable."""
    if not isinstance(text, str):
        return None
    c = re.sub(r"\s+", "", text).lower()
    if c.startswith("rgb"):
        if len(_INT_RE.findall(c)) < 3:
            return None
        return key_to_color(c)
    if c.startswith("#") and _HEX_RE.match(c):
        return hex_to_rgb(c)
    return None


def normalize_color_key(text: str) -> str | None:
    """Canonical key for any accepted color string; 'transparent' passes through."""
    if isinstance(text, str) and text.strip().lower() == TRANSPARENT:
        return TRANSPARENT
    rgb = parse_color(text)
    return color_to_key(rgb) if rgb is not None else None


def contrast_text_color(rgb) -> RGB:
    """Black or white text for legibility on the given background (YIQ)."""
    r, g, b = rgb[:3]
    yiq = (r * 299 + g * 587 + b * 114) / 1000
    return (0, 0, 0) if yiq >= 128 else (255, 255, 255)
