"""Block-based downscaling of RGBA buffers before quantization."""

import math

import numpy as np

from .colors import round_half_up
from .modes import SamplingMode

ALPHA_THRESHOLD = 25
CARTOON_BIN = 10          # color bin width for the majority vote
CARTOON_DARK_SUM = 100    # r+g+b below this counts as a dark (outline) pixel
CARTOON_DARK_RATIO = 0.15  # dark share above this forces the cell to black

_EMPTY_CELL = (255, 255, 255, 0)


def block_bounds(index: int, block: float) -> tuple[int, int]:
    """[start, end) source range for target cell ``index``; never empty."""
    start = math.floor(index * block)
    end = math.floor((index + 1) * block)
    if end <= start:
        start = math.floor((index + 0.5) * block)
        end = start + 1
    return start, end


def _average(block: np.ndarray) -> tuple[int, int, int, int]:
    mean = round_half_up(block.reshape(-1, 4).sum(axis=0) / (block.size // 4))
    r, g, b, a = (int(v) for v in np.clip(mean, 0, 255))
    return r, g, b, a


def _cartoon(block: np.ndarray) -> tuple[int, int, int, int]:
    pixels = block.reshape(-1, 4).astype(np.int64)
    total = len(pixels)
    opaque = pixels[pixels[:, 3] >= ALPHA_THRESHOLD][:, :3]

    dark = int((opaque.sum(axis=1) < CARTOON_DARK_SUM).sum())
    if dark / total > CARTOON_DARK_RATIO:
        return 0, 0, 0, 255

    if len(opaque) == 0:
        return _EMPTY_CELL

    bins = np.clip(round_half_up(opaque / CARTOON_BIN) * CARTOON_BIN, 0, 255)
    counts: dict[tuple[int, int, int], int] = {}
    for r, g, b in bins.astype(np.int64).tolist():
        key = (r, g, b)
        counts[key] = counts.get(key, 0) + 1
    # dict keeps insertion order, so the first bin to reach the top count wins
    best_key = max(counts, key=counts.__getitem__)
    return best_key[0], best_key[1], best_key[2], 255


def manual_downscale(source: np.ndarray, cols: int, rows: int,
                     mode: SamplingMode | str) -> np.ndarray:
    """Downscale an (H, W, 4) uint8 buffer to (rows, cols, 4) block by block.

    average: mean of R, G, B and A over the block.
    cartoon: majority 10-unit color bin of the opaque pixels, except that a
        block with more than 15% dark pixels becomes pure black (keeps
        outlines of line art). Blocks without opaque pixels stay transparent.
    """
    mode = SamplingMode.parse(mode)
    if mode is SamplingMode.AVERAGE:
        reduce_block = _average
    elif mode is SamplingMode.CARTOON:
        reduce_block = _cartoon
    elif mode is SamplingMode.DEFAULT:
        raise ValueError("manual_downscale does not handle the default sampling mode")
    else:
        raise ValueError(f"Unknown sampling mode: {mode!r}")

    if cols < 1 or rows < 1:
        raise ValueError(f"Target size must be positive, got {cols}x{rows}")

    h, w = source.shape[:2]
    block_w = w / cols
    block_h = h / rows
    out = np.empty((rows, cols, 4), dtype=np.uint8)

    for y in range(rows):
        y0, y1 = block_bounds(y, block_h)
        y1 = min(y1, h)
        for x in range(cols):
            x0, x1 = block_bounds(x, block_w)
            x1 = min(x1, w)
            block = source[y0:y1, x0:x1]
            if block.size == 0:
                out[y, x] = _EMPTY_CELL
            else:
                out[y, x] = reduce_block(block)
    return out
