"""Median-cut color quantization in RGB space."""

import logging

import numpy as np

from .colors import RGB, round_half_up

logger = logging.getLogger(__name__)


def _as_pixel_array(pixels) -> np.ndarray:
    arr = np.asarray(pixels, dtype=np.int64)
    if arr.size == 0:
        return arr.reshape(0, 3)
    return arr.reshape(-1, 3)


def unique_colors(pixels) -> list[RGB]:
    """Distinct colors in first-seen order."""
    seen: dict[RGB, None] = {}
    for r, g, b in _as_pixel_array(pixels).tolist():
        seen.setdefault((r, g, b), None)
    return list(seen)


def find_biggest_range(bucket: np.ndarray) -> tuple[int, int]:
    """Return (channel, range) of the widest channel; r beats g beats b on ties."""
    ranges = bucket.max(axis=0) - bucket.min(axis=0)
    channel = int(np.argmax(ranges))  # argmax keeps the first maximum
    return channel, int(ranges[channel])


def quantize(pixels, max_colors: int) -> list[RGB]:
    """Reduce ``pixels`` ((N, 3) array or RGB sequence) to at most max_colors colors.

    When there are no more distinct colors than ``max_colors`` the distinct set
    is returned as is. Otherwise the bucket whose widest channel has the
    largest range is split at its pixel-count median until ``max_colors``
    buckets exist; ties go to the earliest bucket. Each bucket contributes
    its rounded mean color.
    """
    if max_colors < 1:
        raise ValueError(f"max_colors must be >= 1, got {max_colors}")
    arr = _as_pixel_array(pixels)
    if len(arr) == 0:
        return []

    distinct = unique_colors(arr)
    if max_colors >= len(distinct):
        logger.debug("quantize: %d distinct colors fit in %d, no split",
                     len(distinct), max_colors)
        return distinct

    buckets: list[np.ndarray] = [arr]
    while len(buckets) < max_colors:
        max_range = -1
        split_index = -1
        split_channel = 0
        for i, bucket in enumerate(buckets):
            if len(bucket) <= 1:
                continue
            channel, rng = find_biggest_range(bucket)
            if rng > max_range:
                max_range = rng
                split_index = i
                split_channel = channel

        if split_index == -1:
            break

        bucket = buckets[split_index]
        order = np.argsort(bucket[:, split_channel], kind="stable")
        bucket = bucket[order]
        median = len(bucket) // 2
        buckets[split_index:split_index + 1] = [bucket[:median], bucket[median:]]

    palette: list[RGB] = []
    for bucket in buckets:
        mean = round_half_up(bucket.sum(axis=0) / len(bucket)).astype(np.int64)
        palette.append((int(mean[0]), int(mean[1]), int(mean[2])))
    logger.debug("quantize: %d pixels -> %d buckets", len(arr), len(palette))
    return palette
