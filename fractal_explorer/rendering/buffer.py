"""
RGBA pixel buffers and exclusive row-band views.

A render fans out over several workers that all write into one buffer. Each
worker receives a ``BandView`` onto its own rows; views are only handed out
by ``PixelBuffer.claim_bands``, which refuses band sets that overlap or leave
gaps, so concurrent writes never touch the same row.
"""

import numpy as np
from typing import List, Sequence, Union
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

CHANNELS = 4


@dataclass(frozen=True)
class RowBand:
    """Half-open range of rows [y_start, y_end) assigned to one worker."""
    band_id: int
    y_start: int
    y_end: int

    @property
    def height(self) -> int:
        return self.y_end - self.y_start

    def __len__(self) -> int:
        return self.height


def partition_rows(height: int, count: int) -> List[RowBand]:
    """
    Split ``[0, height)`` into ``count`` contiguous bands.

    Every band gets ``height // count`` rows and the final band absorbs the
    remainder, so the bands cover the range exactly. Bands may be empty when
    there are more workers than rows.

    Args:
        height: Total number of rows
        count: Number of bands (at least 1)

    Returns:
        List of RowBand objects in row order
    """
    if count < 1:
        raise ValueError(f"band count must be at least 1, got {count}")
    if height < 0:
        raise ValueError(f"height must be non-negative, got {height}")

    rows_per_band = height // count
    bands = []
    for band_id in range(count):
        y_start = band_id * rows_per_band
        y_end = height if band_id == count - 1 else (band_id + 1) * rows_per_band
        bands.append(RowBand(band_id, y_start, y_end))
    return bands


@dataclass(frozen=True)
class BandView:
    """Writable window onto the rows of one band."""
    band: RowBand
    pixels: np.ndarray  # (band.height, width, 4) view into the parent buffer
    image_width: int
    image_height: int


class PixelBuffer:
    """Row-major RGBA image of ``height`` x ``width`` x 4 bytes."""

    def __init__(self, width: int, height: int, pixels: Union[np.ndarray, bytearray, None] = None):
        """
        Wrap (or allocate) pixel storage.

        Args:
            width, height: Image dimensions in pixels
            pixels: Existing storage of exactly width * height * 4 bytes;
                a new zeroed buffer is allocated when omitted
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}")

        self.width = int(width)
        self.height = int(height)

        if pixels is None:
            self.pixels = np.zeros((self.height, self.width, CHANNELS), dtype=np.uint8)
        else:
            self.pixels = as_pixel_array(pixels, self.width, self.height)

    @classmethod
    def wrap(cls, pixels: Union[np.ndarray, bytearray, 'PixelBuffer'], width: int, height: int) -> 'PixelBuffer':
        """Wrap caller storage, checking it against the requested size."""
        if isinstance(pixels, PixelBuffer):
            if (pixels.width, pixels.height) != (width, height):
                raise ValueError(
                    f"Buffer is {pixels.width}x{pixels.height}, render requested {width}x{height}"
                )
            return pixels
        return cls(width, height, pixels)

    @property
    def shape(self):
        return self.pixels.shape

    def claim_bands(self, bands: Sequence[RowBand]) -> List[BandView]:
        """
        Hand out one exclusive view per band.

        Raises:
            ValueError: if the bands do not tile ``[0, height)`` exactly
        """
        ordered = sorted(bands, key=lambda band: (band.y_start, band.y_end))
        expected = 0
        for band in ordered:
            if band.y_start != expected or band.y_end < band.y_start:
                raise ValueError(
                    f"Row bands must partition [0, {self.height}) without gaps or overlaps; "
                    f"band {band.band_id} covers [{band.y_start}, {band.y_end}) after row {expected}"
                )
            expected = band.y_end
        if expected != self.height:
            raise ValueError(f"Row bands end at row {expected}, buffer has {self.height} rows")

        return [
            BandView(band, self.pixels[band.y_start:band.y_end], self.width, self.height)
            for band in bands
        ]

    def full_view(self) -> BandView:
        """Single view over the whole image."""
        return self.claim_bands([RowBand(0, 0, self.height)])[0]

    def fill(self, rgba) -> None:
        self.pixels[:, :] = rgba

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def rgb(self) -> np.ndarray:
        """Copy of the image without the alpha channel."""
        return self.pixels[:, :, :3].copy()


def as_pixel_array(pixels: Union[np.ndarray, bytearray], width: int, height: int) -> np.ndarray:
    """
    View caller storage as a (height, width, 4) uint8 array without copying.

    Raises:
        ValueError: on size, dtype, writability or layout mismatch
    """
    if isinstance(pixels, (bytearray, memoryview)):
        array = np.frombuffer(pixels, dtype=np.uint8)
    else:
        array = np.asarray(pixels)

    expected = width * height * CHANNELS
    if array.dtype != np.uint8:
        raise ValueError(f"Pixel buffer must be uint8, got {array.dtype}")
    if array.size != expected:
        raise ValueError(
            f"Pixel buffer holds {array.size} bytes, {width}x{height} RGBA needs {expected}"
        )
    # Shaped storage must already match the requested layout
    if array.ndim == 3 and array.shape != (height, width, CHANNELS):
        raise ValueError(f"Pixel buffer has shape {array.shape}, expected {(height, width, CHANNELS)}")
    if array.ndim == 2 and array.shape != (height, width * CHANNELS):
        raise ValueError(f"Pixel buffer has shape {array.shape}, expected {(height, width * CHANNELS)}")
    if array.ndim > 3:
        raise ValueError(f"Pixel buffer must have at most 3 dimensions, got {array.ndim}")
    if not array.flags.c_contiguous:
        raise ValueError("Pixel buffer must be C-contiguous")
    if not array.flags.writeable:
        raise ValueError("Pixel buffer must be writable")

    return array.reshape(height, width, CHANNELS)
