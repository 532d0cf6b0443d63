"""
Main API for fractal rendering and exploration.

This module exposes the engine's operations (render, high-resolution render,
adaptive iterations, single-point sampling and coloring) and combines them
into a renderer with screenshot export and an interactive exploration
session.
"""

import logging
from pathlib import Path
from typing import Optional, Union, Dict, Any, List, Tuple

import numpy as np

from .core.fractal_types import RenderState
from .core.iteration_budget import adjust_iterations
from .core.math_functions import sample, SampleResult
from .core import navigation
from .rendering.buffer import PixelBuffer
from .rendering.coloring import color_of, PALETTES
from .rendering.image_output import ImageExporter, RenderMetadata, screenshot_filename
from .acceleration.parallel import RenderScheduler, get_render_scheduler
from .io.config import ExplorerConfig

logger = logging.getLogger(__name__)

__all__ = [
    "render",
    "render_high_resolution",
    "adjust_iterations",
    "sample",
    "color_of",
    "FractalRenderer",
    "FractalExplorer",
]


def render(state: RenderState, buffer: Union[PixelBuffer, np.ndarray, bytearray],
           width: int, height: int, use_preview: bool = False) -> float:
    """
    Fill ``buffer`` in place using the shared scheduler.

    Returns:
        Elapsed render time in seconds
    """
    return get_render_scheduler().render(state, buffer, width, height, use_preview)


def render_high_resolution(state: RenderState, width: int, height: int, scale: int) -> PixelBuffer:
    """Allocate and fill a ``scale`` times larger buffer showing the same viewport."""
    return get_render_scheduler().render_high_resolution(state, width, height, scale)


class FractalRenderer:
    """Configured renderer with screenshot export."""

    def __init__(self, config: Optional[ExplorerConfig] = None):
        """
        Initialize fractal renderer.

        Args:
            config: Engine configuration (uses defaults if None)
        """
        self.config = config or ExplorerConfig()
        self.config.validate()

        self.scheduler = RenderScheduler(self.config.num_workers, self.config.preview_stride)
        self.image_exporter = ImageExporter()

        logger.info(f"FractalRenderer initialized: {self.config.display_width}x{self.config.display_height}, "
                    f"{self.scheduler.num_workers} workers")

    def __enter__(self) -> 'FractalRenderer':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.scheduler.close()

    def render(self, state: RenderState, buffer: Union[PixelBuffer, np.ndarray, bytearray],
               width: Optional[int] = None, height: Optional[int] = None,
               use_preview: bool = False) -> float:
        """Render into ``buffer`` (display size by default); returns elapsed seconds."""
        width = width or self.config.display_width
        height = height or self.config.display_height
        return self.scheduler.render(state, buffer, width, height, use_preview)

    def render_image(self, state: RenderState, width: Optional[int] = None,
                     height: Optional[int] = None, use_preview: bool = False) -> Tuple[PixelBuffer, float]:
        """Render into a new buffer; returns (buffer, elapsed seconds)."""
        buffer = PixelBuffer(width or self.config.display_width, height or self.config.display_height)
        elapsed = self.scheduler.render(state, buffer, buffer.width, buffer.height, use_preview)
        return buffer, elapsed

    def render_high_resolution(self, state: RenderState, scale: Optional[int] = None) -> PixelBuffer:
        scale = scale or self.config.screenshot_scale
        return self.scheduler.render_high_resolution(
            state, self.config.display_width, self.config.display_height, scale
        )

    def save_screenshot(self, state: RenderState, buffer: PixelBuffer,
                        output_path: Optional[Union[str, Path]] = None,
                        render_time: Optional[float] = None) -> Path:
        """
        Save an already rendered buffer.

        Args:
            state: State the buffer was rendered from
            buffer: Rendered pixels
            output_path: Target file; a location-based name in ``output_dir`` if None
            render_time: Elapsed render time to record in the metadata
        """
        if output_path is None:
            output_path = Path(self.config.output_dir) / screenshot_filename(state)
        metadata = RenderMetadata.for_render(state, buffer, render_time_seconds=render_time)
        path = self.image_exporter.save_image(buffer, output_path, metadata)
        logger.info(f"Screenshot saved: {path}")
        return path

    def save_high_resolution_screenshot(self, state: RenderState, scale: Optional[int] = None,
                                        output_path: Optional[Union[str, Path]] = None) -> Path:
        """Render at ``scale`` times the display size and save the result."""
        scale = scale or self.config.screenshot_scale
        hires = self.render_high_resolution(state, scale)

        if output_path is None:
            name = screenshot_filename(state, hires_size=(hires.width, hires.height))
            output_path = Path(self.config.output_dir) / name
        metadata = RenderMetadata.for_render(state, hires, scale=scale)
        path = self.image_exporter.save_image(hires, output_path, metadata)
        logger.info(f"High-resolution screenshot saved: {path}")
        return path

    def benchmark_performance(self, state: Optional[RenderState] = None,
                              width: int = 400, height: int = 400) -> Dict[str, Any]:
        """Preview vs. full-resolution timing for ``state`` (default view if None)."""
        state = state or adjust_iterations(RenderState())
        logger.info("Starting performance benchmark")
        return self.scheduler.benchmark(state, width, height)


class FractalExplorer:
    """
    Interactive exploration session.

    Holds the canonical mutable view state and a persistent display buffer.
    Interaction methods derive a new state, push the previous one onto the
    history, and redraw with a cheap preview; ``settle`` draws the full
    quality image once interaction stops.
    """

    def __init__(self, renderer: Optional[FractalRenderer] = None,
                 initial_state: Optional[RenderState] = None):
        """
        Initialize exploration session.

        Args:
            renderer: Renderer to draw with (a default one if None)
            initial_state: Starting view (the default view if None)
        """
        self.renderer = renderer or FractalRenderer()
        self.width = self.renderer.config.display_width
        self.height = self.renderer.config.display_height
        self.buffer = PixelBuffer(self.width, self.height)

        self.state = adjust_iterations(initial_state or RenderState())
        self.history: List[RenderState] = []
        self.last_render_time: Optional[float] = None
        self.needs_full_render = False

    def render_current(self, use_preview: bool = False) -> PixelBuffer:
        """Redraw the display buffer from the current state."""
        self.last_render_time = self.renderer.render(
            self.state, self.buffer, self.width, self.height, use_preview
        )
        self.needs_full_render = use_preview
        logger.info(f"Render time: {self.last_render_time * 1000:.0f}ms"
                    f"{'' if use_preview else ' (high quality)'}")
        return self.buffer

    def settle(self) -> PixelBuffer:
        """Full-quality redraw if the last one was a preview."""
        if self.needs_full_render:
            return self.render_current(use_preview=False)
        return self.buffer

    def _apply(self, new_state: RenderState, use_preview: bool) -> PixelBuffer:
        self.history.append(self.state)
        self.state = new_state
        return self.render_current(use_preview)

    def pointer_position(self, x: float, y: float) -> Tuple[float, float]:
        """Plane coordinates under display pixel (x, y)."""
        return navigation.pixel_to_complex(self.state, x, y, self.width, self.height)

    def zoom_to_point(self, x: float, y: float, zoom_in: bool = True) -> PixelBuffer:
        """Zoom about display pixel (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ValueError(f"Pixel ({x}, {y}) is outside the {self.width}x{self.height} display")
        new_state = navigation.zoom_at(self.state, x, y, self.width, self.height, zoom_in)
        return self._apply(new_state, use_preview=True)

    def pan(self, dx: float, dy: float) -> PixelBuffer:
        """Drag by a pixel delta (previous pointer position minus current)."""
        new_state = navigation.pan(self.state, dx, dy, self.width, self.height)
        return self._apply(new_state, use_preview=True)

    def reset_view(self) -> PixelBuffer:
        return self._apply(navigation.reset_view(self.state), use_preview=False)

    def toggle_julia(self, x: Optional[float] = None, y: Optional[float] = None) -> PixelBuffer:
        """Toggle Julia mode, seeding it from display pixel (x, y) when given."""
        seed = self.pointer_position(x, y) if x is not None and y is not None else None
        return self._apply(navigation.toggle_julia(self.state, seed), use_preview=False)

    def cycle_palette(self) -> PixelBuffer:
        return self._apply(navigation.cycle_palette(self.state, len(PALETTES)), use_preview=False)

    def increase_iterations(self) -> PixelBuffer:
        return self._apply(navigation.increase_iterations(self.state), use_preview=False)

    def decrease_iterations(self) -> PixelBuffer:
        return self._apply(navigation.decrease_iterations(self.state), use_preview=False)

    def toggle_adaptive_iterations(self) -> PixelBuffer:
        return self._apply(navigation.toggle_adaptive_iterations(self.state), use_preview=False)

    def scale_color_density(self, increase: bool = True) -> PixelBuffer:
        return self._apply(navigation.scale_color_density(self.state, increase), use_preview=False)

    def cycle_formula(self) -> PixelBuffer:
        return self._apply(navigation.cycle_formula(self.state), use_preview=False)

    def toggle_stripes(self) -> PixelBuffer:
        return self._apply(navigation.toggle_stripes(self.state), use_preview=False)

    def nudge_stripe_frequency(self, steps: int = 1) -> PixelBuffer:
        return self._apply(navigation.nudge_stripe_frequency(self.state, steps), use_preview=False)

    def nudge_stripe_intensity(self, steps: int = 1) -> PixelBuffer:
        return self._apply(navigation.nudge_stripe_intensity(self.state, steps), use_preview=False)

    def go_back(self) -> PixelBuffer:
        """Return to the previous state."""
        if not self.history:
            logger.warning("No history available")
            return self.buffer
        self.state = self.history.pop()
        logger.info("Returned to previous view")
        return self.render_current(use_preview=False)

    def sample_at(self, x: float, y: float) -> SampleResult:
        """Sample the plane point under display pixel (x, y)."""
        return sample(self.pointer_position(x, y), self.state)

    def screenshot(self, output_path: Optional[Union[str, Path]] = None) -> Path:
        """Save the display buffer as it currently is."""
        return self.renderer.save_screenshot(self.state, self.buffer, output_path, self.last_render_time)

    def high_resolution_screenshot(self, output_path: Optional[Union[str, Path]] = None) -> Path:
        return self.renderer.save_high_resolution_screenshot(self.state, output_path=output_path)

    def get_exploration_info(self, pointer: Optional[Tuple[float, float]] = None) -> str:
        """Status text for the current view."""
        return navigation.describe(self.state, len(PALETTES), pointer)
