"""
Escape-time fractal rendering engine for interactive exploration.

This library renders Mandelbrot-family and Julia-family sets with smooth and
stripe-average coloring, fast block previews for interaction, parallel
full-resolution renders, and zoom-adaptive iteration budgets.

Key Features:
- Standard and Burning Ship formulas, Mandelbrot and Julia dynamics
- Smooth iteration and stripe-average coloring over cyclic palettes
- Row-band parallel rendering on Numba kernels that release the GIL
- Block previews and same-viewport high-resolution renders
- PNG screenshots with embedded render state

Example usage:
    >>> from fractal_explorer import RenderState, PixelBuffer, render
    >>> state = RenderState()
    >>> buffer = PixelBuffer(800, 800)
    >>> elapsed = render(state, buffer, 800, 800)
"""

__version__ = "1.0.0"
__author__ = "Fractal Explorer Team"

from fractal_explorer.core.fractal_types import RenderState, FractalFormula, JULIA_PRESETS
from fractal_explorer.core.math_functions import sample, Escaped, Interior, INTERIOR, SampleResult
from fractal_explorer.core.iteration_budget import adjust_iterations
from fractal_explorer.rendering.coloring import color_of, ColorRGB, Palette, PALETTES
from fractal_explorer.rendering.buffer import PixelBuffer, RowBand, partition_rows
from fractal_explorer.rendering.image_output import ImageExporter
from fractal_explorer.acceleration.parallel import RenderScheduler
from fractal_explorer.io.config import ExplorerConfig, load_config

# Main API
from fractal_explorer.api import render, render_high_resolution, FractalRenderer, FractalExplorer

__all__ = [
    "render",
    "render_high_resolution",
    "adjust_iterations",
    "sample",
    "color_of",
    "RenderState",
    "FractalFormula",
    "JULIA_PRESETS",
    "Escaped",
    "Interior",
    "INTERIOR",
    "SampleResult",
    "ColorRGB",
    "Palette",
    "PALETTES",
    "PixelBuffer",
    "RowBand",
    "partition_rows",
    "ImageExporter",
    "RenderScheduler",
    "ExplorerConfig",
    "load_config",
    "FractalRenderer",
    "FractalExplorer",
]
