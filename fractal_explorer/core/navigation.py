"""
Viewport and parameter transitions for interactive exploration.

Every function maps a RenderState to a new RenderState; event handling is
left to the caller.
"""

from typing import Optional, Tuple

from .fractal_types import RenderState, BASE_VIEW_WIDTH, DEFAULT_CENTER
from .iteration_budget import adjust_iterations, iterations_for_width, MIN_ITERATIONS, MAX_ITERATIONS

ZOOM_IN_FACTOR = 0.5
ZOOM_OUT_FACTOR = 2.0
COLOR_DENSITY_STEP = 1.1
STRIPE_FREQUENCY_STEP = 0.1
STRIPE_INTENSITY_STEP = 1.0


def pixel_to_complex(state: RenderState, x: float, y: float, width: int, height: int) -> Tuple[float, float]:
    """Plane coordinates under display pixel (x, y)."""
    half_size = state.view_width / 2
    return (
        state.center_x - half_size + x * state.view_width / width,
        state.center_y - half_size + y * state.view_width / height,
    )


def zoom_at(state: RenderState, x: float, y: float, width: int, height: int,
            zoom_in: bool = True) -> RenderState:
    """
    Zoom about a display pixel, keeping the point under it fixed.

    The iteration cap is re-derived afterwards when adaptive mode is on.
    """
    factor = ZOOM_IN_FACTOR if zoom_in else ZOOM_OUT_FACTOR
    mx, my = pixel_to_complex(state, x, y, width, height)
    zoomed = state.evolve(
        center_x=mx + (state.center_x - mx) * factor,
        center_y=my + (state.center_y - my) * factor,
        view_width=state.view_width * factor,
    )
    return adjust_iterations(zoomed)


def pan(state: RenderState, dx: float, dy: float, width: int, height: int) -> RenderState:
    """
    Shift the view by a pixel delta.

    ``(dx, dy)`` is the previous pointer position minus the current one, so
    dragging right moves the view left.
    """
    return state.evolve(
        center_x=state.center_x + dx * state.view_width / width,
        center_y=state.center_y + dy * state.view_width / height,
    )


def reset_view(state: RenderState) -> RenderState:
    """Back to the initial viewport; other settings are kept."""
    return adjust_iterations(state.evolve(
        center_x=DEFAULT_CENTER[0],
        center_y=DEFAULT_CENTER[1],
        view_width=BASE_VIEW_WIDTH,
    ))


def toggle_julia(state: RenderState, seed: Optional[Tuple[float, float]] = None) -> RenderState:
    """
    Switch between the Mandelbrot-style and Julia-style dynamics.

    When switching Julia mode on, ``seed`` (typically the plane point under
    the pointer) becomes the Julia constant.
    """
    if not state.julia and seed is not None:
        return state.evolve(julia=True, julia_x=float(seed[0]), julia_y=float(seed[1]))
    return state.evolve(julia=not state.julia)


def cycle_palette(state: RenderState, palette_count: int) -> RenderState:
    return state.evolve(palette_index=(state.palette_index + 1) % palette_count)


def increase_iterations(state: RenderState) -> RenderState:
    """Double the cap; takes the cap under manual control."""
    return state.evolve(
        adaptive_iterations=False,
        max_iterations=min(MAX_ITERATIONS, state.max_iterations * 2),
    )


def decrease_iterations(state: RenderState) -> RenderState:
    """Halve the cap; takes the cap under manual control."""
    return state.evolve(
        adaptive_iterations=False,
        max_iterations=max(MIN_ITERATIONS, state.max_iterations // 2),
    )


def toggle_adaptive_iterations(state: RenderState) -> RenderState:
    """Switching adaptive mode on re-derives the cap from the zoom; switching off keeps it."""
    if state.adaptive_iterations:
        return state.evolve(adaptive_iterations=False)
    return state.evolve(adaptive_iterations=True, max_iterations=iterations_for_width(state.view_width))


def scale_color_density(state: RenderState, increase: bool = True) -> RenderState:
    if increase:
        return state.evolve(color_density=state.color_density * COLOR_DENSITY_STEP)
    return state.evolve(color_density=state.color_density / COLOR_DENSITY_STEP)


def cycle_formula(state: RenderState) -> RenderState:
    return state.evolve(formula=state.formula.next())


def toggle_stripes(state: RenderState) -> RenderState:
    return state.evolve(stripes=not state.stripes)


def nudge_stripe_frequency(state: RenderState, steps: int = 1) -> RenderState:
    return state.evolve(stripe_frequency=state.stripe_frequency + steps * STRIPE_FREQUENCY_STEP)


def nudge_stripe_intensity(state: RenderState, steps: int = 1) -> RenderState:
    return state.evolve(stripe_intensity=state.stripe_intensity + steps * STRIPE_INTENSITY_STEP)


def describe(state: RenderState, palette_count: int,
             pointer: Optional[Tuple[float, float]] = None) -> str:
    """Multi-line human-readable status of the current view."""
    lines = [
        f"Mode: {'Julia' if state.julia else 'Mandelbrot'}",
        f"Formula: {state.formula.value}",
        f"Position: ({state.center_x:.10f}, {state.center_y:.10f})",
        f"Zoom: {state.zoom:.2f}x",
        f"Iterations: {state.max_iterations}{' (auto)' if state.adaptive_iterations else ''}",
    ]
    if state.julia:
        lines.append(f"Julia seed: ({state.julia_x:.6f}, {state.julia_y:.6f})")
    lines.append(f"Color scheme: {state.palette_index % palette_count + 1}/{palette_count}")
    if state.stripes:
        lines.append(f"Stripes: frequency {state.stripe_frequency:.1f}, intensity {state.stripe_intensity:.1f}")
    if pointer is not None:
        lines.append(f"Mouse: ({pointer[0]:.6f}, {pointer[1]:.6f})")
    return "\n".join(lines)
