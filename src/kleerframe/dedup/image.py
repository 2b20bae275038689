"""Decode and resample images into the fixed-size grayscale grids the fingerprint engine consumes."""

from pathlib import Path
from typing import Union
from urllib.parse import unquote, urlparse

import numpy as np
from PIL import Image, ImageOps

from ..errors import DecodeFailure
from ..logging import get_logger

logger = get_logger(__name__)

ImageSource = Union[str, Path, Image.Image]

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def resolve_path(source: Union[str, Path]) -> Path:
    """Turn a filesystem path or a ``file://`` URI into a Path."""
    if isinstance(source, Path):
        return source
    if source.startswith("file://"):
        return Path(unquote(urlparse(source).path))
    return Path(source)


def to_grayscale_grid(img: Image.Image, size: int = 32) -> np.ndarray:
    """
    Resample an already-open image to ``size`` x ``size`` luminance values.

    The image is resized in RGB first and converted to luminance afterwards,
    so colour information contributes through the luma weights rather than
    Pillow's integer ``L`` conversion.
    """
    if img.mode != 'RGB':
        img = img.convert('RGB')

    resized = img.resize((size, size), Image.Resampling.BILINEAR)
    rgb = np.asarray(resized, dtype=np.float64)
    return rgb @ LUMA_WEIGHTS


def load_grid(source: ImageSource, size: int = 32) -> np.ndarray:
    """
    Load an image and produce its grayscale pixel grid.

    Args:
        source: Filesystem path, ``file://`` URI, or an open PIL image
        size: Edge length of the square output grid

    Returns:
        ``size`` x ``size`` float64 array, row-major

    Raises:
        DecodeFailure: If the image cannot be opened or decoded
    """
    if isinstance(source, Image.Image):
        return to_grayscale_grid(source, size)

    path = resolve_path(source)
    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            grid = to_grayscale_grid(img, size)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(f"Failed to decode {path}: {exc}") from exc

    logger.debug(f"Decoded {path} into a {size}x{size} grid")
    return grid
