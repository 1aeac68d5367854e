"""Image decoding and resampling to the target grid size."""

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from .downscaling import manual_downscale
from .errors import ImageDecodeError, SurfaceError
from .modes import SamplingMode

logger = logging.getLogger(__name__)


def load_image(source) -> Image.Image:
    """Decode ``source`` (path, bytes, file object or PIL image) to RGBA.

    Raises ImageDecodeError if the data cannot be read or decoded.
    """
    if isinstance(source, Image.Image):
        img = source
    else:
        try:
            if isinstance(source, (bytes, bytearray, memoryview)):
                img = Image.open(io.BytesIO(bytes(source)))
            elif isinstance(source, (str, Path)):
                img = Image.open(Path(source))
            else:
                img = Image.open(source)
            img.load()
        except (OSError, UnidentifiedImageError, ValueError,
                Image.DecompressionBombError) as e:
            raise ImageDecodeError(f"Cannot decode image: {e}") from e
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return img


def image_to_array(image) -> np.ndarray:
    """(H, W, 4) uint8 RGBA array for a PIL image or an existing array."""
    if isinstance(image, Image.Image):
        return np.array(image.convert("RGBA") if image.mode != "RGBA" else image)
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError(f"Expected an (H, W, 4) RGBA array, got shape {arr.shape}")
    return arr.astype(np.uint8, copy=False)


def image_size(image) -> tuple[int, int]:
    """(width, height) of a PIL image or an (H, W, 4) array."""
    if isinstance(image, Image.Image):
        return image.size
    arr = np.asarray(image)
    return int(arr.shape[1]), int(arr.shape[0])


def get_image_data(image, cols: int, rows: int,
                   sampling_mode: SamplingMode | str = SamplingMode.DEFAULT) -> np.ndarray:
    """Resample ``image`` to a (rows, cols, 4) uint8 RGBA buffer.

    default: bilinear resize on premultiplied alpha, the way a browser canvas
    draws a scaled image. average / cartoon: block downscaling.
    """
    sampling_mode = SamplingMode.parse(sampling_mode)
    width, height = image_size(image)
    if width < 1 or height < 1:
        raise SurfaceError(f"Source image has no pixels ({width}x{height})")
    if cols < 1 or rows < 1:
        raise SurfaceError(f"Cannot create a {cols}x{rows} pixel surface")

    if sampling_mode is SamplingMode.DEFAULT:
        if (width, height) == (cols, rows):
            return image_to_array(image).copy()
        if isinstance(image, Image.Image):
            src = image.convert("RGBA") if image.mode != "RGBA" else image
        else:
            src = Image.fromarray(image_to_array(image), "RGBA")
        resized = src.convert("RGBa").resize(
            (cols, rows), Image.Resampling.BILINEAR).convert("RGBA")
        data = np.array(resized)
    else:
        data = manual_downscale(image_to_array(image), cols, rows, sampling_mode)

    logger.debug("Sampled %dx%d image to %dx%d (%s)",
                 width, height, cols, rows, sampling_mode.value)
    return data
