"""
Zoom-dependent iteration budget.

Deeper zooms reveal finer structure that needs more iterations to resolve;
this module derives the iteration cap from the current viewport width when
the adaptive mode is enabled.
"""

import math
import logging

from .fractal_types import RenderState, BASE_VIEW_WIDTH, MIN_ITERATIONS, MAX_ITERATIONS

logger = logging.getLogger(__name__)


def iterations_for_width(view_width: float) -> int:
    """
    Iteration cap recommended for a viewport of the given width.

    Args:
        view_width: Current viewport span (must be positive)

    Returns:
        Cap in [MIN_ITERATIONS, MAX_ITERATIONS], non-decreasing as the
        viewport narrows
    """
    if not view_width > 0:
        raise ValueError(f"view_width must be positive, got {view_width}")

    zoom_factor = BASE_VIEW_WIDTH / view_width
    budget = 100 * math.log10(1 + zoom_factor)
    if not math.isfinite(budget) or budget >= MAX_ITERATIONS:
        return MAX_ITERATIONS
    return max(MIN_ITERATIONS, int(budget))


def adjust_iterations(state: RenderState) -> RenderState:
    """
    Update the iteration cap of ``state`` for its zoom level.

    States with adaptive iterations disabled are returned unchanged; the
    user controls the cap manually in that mode.
    """
    if not state.adaptive_iterations:
        return state

    cap = iterations_for_width(state.view_width)
    if cap != state.max_iterations:
        logger.debug(f"Adaptive iteration cap {state.max_iterations} -> {cap} at zoom {state.zoom:.3g}x")
        return state.evolve(max_iterations=cap)
    return state
