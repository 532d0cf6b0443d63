"""
Palette management and escape-time color mapping.

This module holds the fixed set of cyclic palettes and the compiled color
mapper that turns a sample (smooth iteration count or stripe average) into
an RGB color by interpolating between neighbouring palette entries.
"""

import numpy as np
from typing import List, Tuple, Union, Optional
from dataclasses import dataclass
import logging

from numba import jit

from ..core.fractal_types import RenderState
from ..core.math_functions import SampleResult, Interior, INTERIOR_ITERATION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorRGB:
    """8-bit RGB color."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        """Validate RGB values."""
        for component in (self.r, self.g, self.b):
            if not 0 <= component <= 255:
                raise ValueError("RGB components must be between 0 and 255")

    def to_tuple(self) -> Tuple[int, int, int]:
        """Convert to RGB tuple."""
        return (self.r, self.g, self.b)


INTERIOR_COLOR = ColorRGB(0, 0, 0)


@jit(nopython=True, nogil=True, cache=True)
def interpolate_palette(position, palette):
    """
    Color at a real-valued position on a cyclic palette.

    Args:
        position: Palette coordinate; integer part selects the entry, the
            fractional part blends towards the next one
        palette: float64 array of shape (n, 3)

    Returns:
        Tuple of (r, g, b) integers
    """
    if not np.isfinite(position):
        position = 0.0
    n = palette.shape[0]
    base = np.floor(position)
    index = int(base % n)
    if index >= n:
        index = 0
    nxt = (index + 1) % n
    fract = position - base

    r = int(palette[index, 0] + fract * (palette[nxt, 0] - palette[index, 0]))
    g = int(palette[index, 1] + fract * (palette[nxt, 1] - palette[index, 1]))
    b = int(palette[index, 2] + fract * (palette[nxt, 2] - palette[index, 2]))
    return r, g, b


@jit(nopython=True, nogil=True, cache=True)
def map_color(iteration, smooth, stripe_sum, color_density, stripes, stripe_intensity, palette):
    """
    Compiled color mapper for one raw sample.

    Interior samples map to black; stripe coloring uses the stripe average,
    otherwise the smooth iteration count scaled by the color density.
    """
    if iteration == INTERIOR_ITERATION:
        return 0, 0, 0

    if stripes:
        if iteration > 0:
            position = stripe_intensity * (stripe_sum / iteration)
        else:
            position = 0.0
    else:
        position = smooth * color_density

    return interpolate_palette(position, palette)


class Palette:
    """Cyclic color ramp."""

    def __init__(self, colors: List[Union[ColorRGB, Tuple[int, int, int]]], name: str = "Custom"):
        """
        Initialize color palette.

        Args:
            colors: Colors in ramp order; the last entry blends back into the first
            name: Human-readable name for the palette
        """
        self.name = name
        self.colors = []

        for color in colors:
            if isinstance(color, ColorRGB):
                self.colors.append(color)
            elif isinstance(color, (tuple, list)) and len(color) == 3:
                self.colors.append(ColorRGB(*color))
            else:
                raise ValueError(f"Invalid color format: {color}")

        if not self.colors:
            raise ValueError("Palette must contain at least one color")

        self._array = np.array([c.to_tuple() for c in self.colors], dtype=np.float64)
        self._array.setflags(write=False)

    def __len__(self) -> int:
        return len(self.colors)

    def __repr__(self) -> str:
        return f"Palette({self.name!r}, {len(self.colors)} colors)"

    def as_array(self) -> np.ndarray:
        """Read-only (n, 3) float64 array for the compiled kernels."""
        return self._array

    def color_at(self, position: float) -> ColorRGB:
        """Interpolated color at a palette position (wraps cyclically)."""
        return ColorRGB(*interpolate_palette(float(position), self._array))


PALETTES: Tuple[Palette, ...] = (
    Palette([
        (66, 30, 15), (25, 7, 26), (9, 1, 47),
        (4, 4, 73), (0, 7, 100), (12, 44, 138),
        (24, 82, 177), (57, 125, 209), (134, 181, 229),
        (211, 236, 248), (241, 233, 191), (248, 201, 95),
        (255, 170, 0), (204, 128, 0), (153, 87, 0),
    ], name="Classic"),
    Palette([
        (0, 0, 0), (20, 0, 0), (40, 0, 0),
        (80, 0, 0), (120, 20, 0), (160, 40, 0),
        (200, 80, 0), (240, 120, 0), (255, 160, 0),
        (255, 200, 0), (255, 240, 40), (255, 255, 100),
        (255, 255, 170), (255, 255, 220), (255, 255, 255),
    ], name="Fire"),
    Palette([
        (0, 0, 0), (32, 32, 32), (64, 64, 64),
        (96, 96, 96), (128, 128, 128), (160, 160, 160),
        (192, 192, 192), (224, 224, 224), (255, 255, 255),
    ], name="Grayscale"),
    Palette([
        (3, 13, 30), (6, 26, 48), (9, 38, 67),
        (17, 55, 92), (25, 71, 116), (33, 88, 140),
        (41, 105, 165), (50, 138, 193), (64, 174, 224),
        (110, 197, 233), (158, 218, 241), (198, 236, 248),
        (214, 249, 255), (225, 252, 255), (240, 255, 255),
    ], name="Ocean"),
    Palette([
        (15, 20, 40), (20, 30, 65), (30, 40, 90),
        (40, 60, 120), (65, 90, 150), (95, 130, 180),
        (135, 175, 205), (175, 205, 225), (200, 225, 240),
        (220, 235, 245), (230, 243, 250), (240, 250, 253),
        (245, 253, 255), (250, 255, 255), (255, 255, 255),
    ], name="Arctic"),
)


def get_palette(index: int) -> Palette:
    """Palette for any integer index, reduced modulo the palette count."""
    return PALETTES[index % len(PALETTES)]


def list_palettes() -> List[str]:
    """Get list of available color palette names, in index order."""
    return [palette.name for palette in PALETTES]


def color_of(result: SampleResult, state: RenderState, palette: Optional[Palette] = None) -> ColorRGB:
    """
    Map a sample to its display color.

    Args:
        result: Sample produced by ``sample``
        state: Supplies color density and stripe settings
        palette: Palette override; defaults to the state's palette

    Returns:
        ColorRGB (black for interior samples)
    """
    if isinstance(result, Interior):
        return INTERIOR_COLOR

    if palette is None:
        palette = get_palette(state.palette_index)

    rgb = map_color(
        int(result.iterations),
        float(result.smooth_value),
        float(result.stripe_sum),
        float(state.color_density),
        bool(state.stripes),
        float(state.stripe_intensity),
        palette.as_array(),
    )
    return ColorRGB(*rgb)
