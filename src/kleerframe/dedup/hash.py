"""
Perceptual fingerprint computation.

A fingerprint is the sign pattern of the 63 lowest-frequency AC coefficients
of an image's 2-D type-II DCT, compared against their median and packed into
16 uppercase hex digits. The 64th bit is padding and is always zero.
"""

import os
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import cv2
import imagehash
import numpy as np

from ..errors import InvalidGridError
from ..logging import get_logger
from .image import ImageSource, load_grid

logger = get_logger(__name__)

BLOCK_SIZE = 8
MIN_GRID_SIZE = 16
SIGNIFICANT_BITS = BLOCK_SIZE * BLOCK_SIZE - 1
FINGERPRINT_LENGTH = 16

# Coefficients below this fraction of the block magnitude are rounding noise
ZERO_TOLERANCE = 1e-9

BACKEND_ENV_VAR = "KLEERFRAME_DCT_BACKEND"


class DctBackend(ABC):
    """Computes the top-left corner of a 2-D type-II DCT."""

    name: str = "abstract"

    @abstractmethod
    def low_frequency_block(self, grid: np.ndarray, block: int = BLOCK_SIZE) -> np.ndarray:
        """Return the ``block`` x ``block`` lowest-frequency coefficients of ``grid``."""

    def supports(self, size: int) -> bool:
        return True


@lru_cache(maxsize=8)
def _dct_basis(size: int, block: int) -> np.ndarray:
    """Scaled cosine basis ``alpha(u) * cos((2x+1) u pi / 2N)`` for u < block."""
    x = np.arange(size)
    u = np.arange(block)[:, np.newaxis]
    basis = np.cos((2 * x + 1) * u * np.pi / (2 * size))
    basis[0] *= 1.0 / np.sqrt(2.0)
    basis.setflags(write=False)
    return basis


class PortableDctBackend(DctBackend):
    """
    Separable NumPy DCT restricted to the coefficients actually consumed.

    Rows are transformed first, then the resulting ``block`` columns, so the
    cost is O(block * N^2) instead of the O(N^4) of the direct double sum.
    """

    name = "portable"

    def low_frequency_block(self, grid: np.ndarray, block: int = BLOCK_SIZE) -> np.ndarray:
        size = grid.shape[0]
        basis = _dct_basis(size, block)
        return (2.0 / size) * (basis @ grid @ basis.T)


class AcceleratedDctBackend(DctBackend):
    """
    OpenCV DCT.

    ``cv2.dct`` uses the orthonormal scaling ``sqrt(alpha_u alpha_v) / N``,
    which equals ``(2/N) * alpha(u) * alpha(v)`` with alpha(0) = 1/sqrt(2),
    so its output can be cropped directly.
    """

    name = "accelerated"

    def low_frequency_block(self, grid: np.ndarray, block: int = BLOCK_SIZE) -> np.ndarray:
        coefficients = cv2.dct(np.ascontiguousarray(grid, dtype=np.float64))
        return coefficients[:block, :block]

    def supports(self, size: int) -> bool:
        # cv2.dct only handles even-sized arrays
        return size % 2 == 0


def is_accelerated_available() -> bool:
    """Check whether OpenCV reports its optimized code paths as enabled."""
    return bool(cv2.useOptimized())


def select_backend(size: int = 32, preference: Optional[str] = None) -> DctBackend:
    """
    Pick a DCT backend for grids of edge length ``size``.

    Args:
        size: Grid edge length the backend will be used with
        preference: "accelerated" or "portable"; defaults to the
            KLEERFRAME_DCT_BACKEND environment variable, then autodetection

    Returns:
        A DctBackend instance
    """
    preference = (preference or os.getenv(BACKEND_ENV_VAR, "")).strip().lower()
    accelerated = AcceleratedDctBackend()

    if preference == "portable":
        return PortableDctBackend()
    if preference == "accelerated":
        if accelerated.supports(size):
            return accelerated
        logger.warning(f"Accelerated DCT requested but unsupported for {size}x{size} grids, using portable")
        return PortableDctBackend()
    if preference:
        logger.warning(f"Unknown {BACKEND_ENV_VAR} value '{preference}', autodetecting")

    if is_accelerated_available() and accelerated.supports(size):
        return accelerated
    return PortableDctBackend()


def _validate_grid(grid) -> np.ndarray:
    array = np.asarray(grid, dtype=np.float64)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise InvalidGridError(f"Pixel grid must be square and 2-D, got shape {array.shape}")
    if array.shape[0] < MIN_GRID_SIZE:
        raise InvalidGridError(f"Pixel grid must be at least {MIN_GRID_SIZE}x{MIN_GRID_SIZE}, got {array.shape}")
    return array


def bits_to_hex(bits: np.ndarray) -> str:
    """
    Pack a bit sequence into uppercase hex, four bits per digit.

    A trailing partial group is right-padded with zero bits.
    """
    bits = np.asarray(bits, dtype=bool).flatten()
    padding = (-len(bits)) % 4
    if padding:
        bits = np.concatenate([bits, np.zeros(padding, dtype=bool)])
    return str(imagehash.ImageHash(bits.reshape(-1, 4))).upper()


def hex_to_hash(fingerprint: str) -> imagehash.ImageHash:
    """
    Unpack a hex fingerprint into an ImageHash of shape (digits, 4).

    Raises:
        ValueError: If the string contains a non-hex character
    """
    nibbles = np.array([int(digit, 16) for digit in fingerprint], dtype=np.uint8)
    bits = np.unpackbits(nibbles.reshape(-1, 1), axis=1)[:, 4:]
    return imagehash.ImageHash(bits.astype(bool))


def snap_to_zero(block: np.ndarray) -> np.ndarray:
    """
    Zero out coefficients that are floating-point residue.

    Flat and single-axis images have AC terms that are exactly zero in theory;
    the backends leave different residue there, which the median test would
    otherwise turn into arbitrary bits.
    """
    block = np.asarray(block, dtype=np.float64)
    scale = max(1.0, float(np.abs(block).max()))
    return np.where(np.abs(block) < ZERO_TOLERANCE * scale, 0.0, block)


def fingerprint_bits(coefficients: np.ndarray) -> np.ndarray:
    """
    Threshold the 8x8 block (DC term excluded) against its median.

    The median is the element at index n // 2 of the ascending sort, so a
    coefficient equal to it always yields a 0 bit.
    """
    values = np.asarray(coefficients).flatten()[1:]
    median = np.sort(values)[len(values) // 2]
    return values > median


def compute_fingerprint(grid, backend: Optional[DctBackend] = None) -> str:
    """
    Compute the perceptual fingerprint of a square grayscale grid.

    Args:
        grid: N x N numeric array-like (N >= 16; all compared fingerprints
            must share N)
        backend: DCT backend; selected automatically when omitted

    Returns:
        16-character uppercase hex string

    Raises:
        InvalidGridError: If the grid is not square, not 2-D, or too small
    """
    array = _validate_grid(grid)
    size = array.shape[0]

    if backend is None:
        backend = select_backend(size)
    elif not backend.supports(size):
        raise InvalidGridError(f"{backend.name} DCT backend cannot process {size}x{size} grids")

    block = snap_to_zero(backend.low_frequency_block(array, BLOCK_SIZE))
    return bits_to_hex(fingerprint_bits(block))


def fingerprint_image(source: ImageSource, grid_size: int = 32, backend: Optional[DctBackend] = None) -> str:
    """
    Decode an image and compute its fingerprint.

    Raises:
        DecodeFailure: If the image cannot be decoded
    """
    grid = load_grid(source, grid_size)
    fingerprint = compute_fingerprint(grid, backend)
    logger.debug(f"Computed fingerprint for {source}: {fingerprint}")
    return fingerprint
