"""
Tile renderer: fills regions of a pixel buffer from the sampler and color mapper.

Two modes share the same pixel-to-plane mapping so that a preview block and
the full-resolution pixel at its top-left corner always agree:

- full resolution: every pixel of a row band is sampled,
- preview: one sample per ``stride`` x ``stride`` block, replicated across
  the block and clipped at the image edges.
"""

import numpy as np
from typing import Tuple
import logging

from numba import jit

from ..core.fractal_types import RenderState
from ..core.math_functions import sample_point, kernel_arguments
from .coloring import map_color, get_palette
from .buffer import BandView, PixelBuffer

logger = logging.getLogger(__name__)

PREVIEW_STRIDE = 12


@jit(nopython=True, nogil=True, cache=True)
def render_rows_kernel(pixels, y_offset, image_width,
                       center_x, center_y, view_width,
                       jr, ji, max_iter, julia, formula, stripes, stripe_frequency, interior_detection,
                       color_density, stripe_intensity, palette):
    """
    Sample and color every pixel of a band.

    ``pixels`` is the (rows, width, 4) band view; ``y_offset`` is the image
    row of its first line. The pixel size is derived from the image width
    and used on both axes.
    """
    pixel_size = view_width / image_width
    half_size = view_width / 2.0
    rows = pixels.shape[0]
    width = pixels.shape[1]

    for row in range(rows):
        ci = center_y - half_size + (y_offset + row) * pixel_size
        for x in range(width):
            cr = center_x - half_size + x * pixel_size
            iteration, smooth, stripe_sum = sample_point(
                cr, ci, jr, ji, max_iter, julia, formula, stripes, stripe_frequency, interior_detection
            )
            r, g, b = map_color(iteration, smooth, stripe_sum, color_density, stripes, stripe_intensity, palette)
            pixels[row, x, 0] = r
            pixels[row, x, 1] = g
            pixels[row, x, 2] = b
            pixels[row, x, 3] = 255


@jit(nopython=True, nogil=True, cache=True)
def render_preview_kernel(pixels, stride,
                          center_x, center_y, view_width,
                          jr, ji, max_iter, julia, formula, stripes, stripe_frequency, interior_detection,
                          color_density, stripe_intensity, palette):
    """Sample the top-left pixel of each block and replicate its color."""
    height = pixels.shape[0]
    width = pixels.shape[1]
    pixel_size = view_width / width
    half_size = view_width / 2.0

    for y in range(0, height, stride):
        ci = center_y - half_size + y * pixel_size
        y_end = min(y + stride, height)
        for x in range(0, width, stride):
            cr = center_x - half_size + x * pixel_size
            iteration, smooth, stripe_sum = sample_point(
                cr, ci, jr, ji, max_iter, julia, formula, stripes, stripe_frequency, interior_detection
            )
            r, g, b = map_color(iteration, smooth, stripe_sum, color_density, stripes, stripe_intensity, palette)
            x_end = min(x + stride, width)
            for by in range(y, y_end):
                for bx in range(x, x_end):
                    pixels[by, bx, 0] = r
                    pixels[by, bx, 1] = g
                    pixels[by, bx, 2] = b
                    pixels[by, bx, 3] = 255


def _view_arguments(state: RenderState) -> Tuple[float, float, float]:
    return float(state.center_x), float(state.center_y), float(state.view_width)


def _color_arguments(state: RenderState) -> Tuple[float, float]:
    return float(state.color_density), float(state.stripe_intensity)


def render_band(state: RenderState, view: BandView) -> None:
    """
    Full-resolution render of one band.

    Args:
        state: Render state snapshot
        view: Exclusive band view obtained from ``PixelBuffer.claim_bands``
    """
    if view.band.height == 0:
        return

    palette = get_palette(state.palette_index).as_array()
    render_rows_kernel(
        view.pixels, view.band.y_start, view.image_width,
        *_view_arguments(state),
        *kernel_arguments(state),
        *_color_arguments(state),
        palette,
    )


def render_preview(state: RenderState, buffer: PixelBuffer, stride: int = PREVIEW_STRIDE) -> None:
    """
    Low-fidelity render of the whole buffer, one sample per block.

    Args:
        state: Render state snapshot
        buffer: Target buffer
        stride: Block edge length in pixels
    """
    if stride < 1:
        raise ValueError(f"Preview stride must be at least 1, got {stride}")

    palette = get_palette(state.palette_index).as_array()
    render_preview_kernel(
        buffer.pixels, int(stride),
        *_view_arguments(state),
        *kernel_arguments(state),
        *_color_arguments(state),
        palette,
    )
