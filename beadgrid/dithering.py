"""Ordered and error-diffusion dithering helpers.

Ordered methods perturb each pixel by a fixed threshold-matrix offset before
the nearest-color lookup. Error-diffusion methods push the quantization error
of a pixel onto its not-yet-visited neighbors (row-major scan order).
"""

import numpy as np

from .modes import DitherMethod

ALPHA_THRESHOLD = 25
DITHER_INTENSITY = 40

# ---------------------------------------------------------------------------
# Threshold matrices
# ---------------------------------------------------------------------------

BAYER_8X8 = np.array([
    [0, 32, 8, 40, 2, 34, 10, 42],
    [48, 16, 56, 24, 50, 18, 58, 26],
    [12, 44, 4, 36, 14, 46, 6, 38],
    [60, 28, 52, 20, 62, 30, 54, 22],
    [3, 35, 11, 43, 1, 33, 9, 41],
    [51, 19, 59, 27, 49, 17, 57, 25],
    [15, 47, 7, 39, 13, 45, 5, 37],
    [63, 31, 55, 23, 61, 29, 53, 21],
], dtype=np.int64)
BAYER_8X8.setflags(write=False)


def generate_blue_noise(size: int = 16, seed: int = 42) -> np.ndarray:
    """Rank matrix (values 0..size*size-1) with a blue-noise-like layout.

    Farthest-point ordering on a torus: each step takes the cell farthest from
    everything already ranked, ties going to the earliest cell of a seeded
    shuffle. The torus distance keeps the matrix seamless when tiled.
    """
    n = size * size
    rng = np.random.RandomState(seed)
    order = np.arange(n)
    rng.shuffle(order)

    rows, cols = np.divmod(np.arange(n), size)
    min_dist = np.full(n, np.inf)
    taken = np.zeros(n, dtype=bool)
    ranks = np.empty(n, dtype=np.int64)

    for rank in range(n):
        candidates = np.where(taken[order], -1.0, min_dist[order])
        best = order[int(np.argmax(candidates))]
        ranks[best] = rank
        taken[best] = True
        dr = np.abs(rows - rows[best])
        dc = np.abs(cols - cols[best])
        dr = np.minimum(dr, size - dr)
        dc = np.minimum(dc, size - dc)
        min_dist = np.minimum(min_dist, (dr * dr + dc * dc).astype(np.float64))
    return ranks.reshape(size, size)


BLUE_NOISE_16X16 = generate_blue_noise(16)
BLUE_NOISE_16X16.setflags(write=False)


# ---------------------------------------------------------------------------
# Error diffusion kernels: (dx, dy, weight)
# ---------------------------------------------------------------------------

FLOYD_STEINBERG = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)

# Passes on 6/8 of the error; the remaining quarter is dropped.
ATKINSON = (
    (1, 0, 1 / 8),
    (2, 0, 1 / 8),
    (-1, 1, 1 / 8),
    (0, 1, 1 / 8),
    (1, 1, 1 / 8),
    (0, 2, 1 / 8),
)

DIFFUSION_KERNELS = {
    DitherMethod.FLOYD_STEINBERG: FLOYD_STEINBERG,
    DitherMethod.ATKINSON: ATKINSON,
}


def is_ordered(method: DitherMethod) -> bool:
    return DitherMethod.parse(method) in (DitherMethod.BAYER, DitherMethod.BLUE_NOISE)


def is_error_diffusion(method: DitherMethod) -> bool:
    return DitherMethod.parse(method) in DIFFUSION_KERNELS


def diffusion_kernel(method: DitherMethod) -> tuple[tuple[int, int, float], ...]:
    return DIFFUSION_KERNELS.get(DitherMethod.parse(method), ())


# ---------------------------------------------------------------------------
# Ordered dithering
# ---------------------------------------------------------------------------

def ordered_offset(method: DitherMethod, x: int, y: int) -> float:
    """Signed per-channel perturbation for pixel (x, y)."""
    method = DitherMethod.parse(method)
    if method is DitherMethod.BAYER:
        threshold = int(BAYER_8X8[y % 8, x % 8])
        return (threshold - 32) / 64 * DITHER_INTENSITY
    if method is DitherMethod.BLUE_NOISE:
        threshold = int(BLUE_NOISE_16X16[y % 16, x % 16])
        return (threshold - 128) / 255 * DITHER_INTENSITY
    if method in (DitherMethod.NONE, DitherMethod.FLOYD_STEINBERG, DitherMethod.ATKINSON):
        return 0.0
    raise ValueError(f"Unknown dither method: {method!r}")


def ordered_offsets(method: DitherMethod, rows: int, cols: int) -> np.ndarray:
    """(rows, cols) map of ordered_offset for every pixel."""
    method = DitherMethod.parse(method)
    if method is DitherMethod.BAYER:
        matrix, center, span = BAYER_8X8, 32, 64
    elif method is DitherMethod.BLUE_NOISE:
        matrix, center, span = BLUE_NOISE_16X16, 128, 255
    else:
        return np.zeros((rows, cols), dtype=np.float64)
    n = matrix.shape[0]
    ys = np.arange(rows) % n
    xs = np.arange(cols) % n
    tiled = matrix[ys[:, np.newaxis], xs[np.newaxis, :]]
    return (tiled - center) / span * DITHER_INTENSITY


# ---------------------------------------------------------------------------
# Error diffusion
# ---------------------------------------------------------------------------

def diffuse_error(work: np.ndarray, x: int, y: int, error,
                  kernel, opaque: np.ndarray) -> None:
    """Add weighted ``error`` (r, g, b) to the neighbors of (x, y) in place.

    ``work`` is the (rows, cols, C) working buffer; ``opaque`` marks pixels
    whose original alpha is at least 25. Transparent neighbors never receive
    error.
    """
    rows, cols = opaque.shape
    err = np.asarray(error, dtype=np.float64)
    for dx, dy, weight in kernel:
        nx = x + dx
        ny = y + dy
        if 0 <= nx < cols and 0 <= ny < rows and opaque[ny, nx]:
            work[ny, nx, :3] += err * weight
