"""
Core mathematical functions for fractal iteration.

This module provides the per-point escape-time kernel shared by every render
path, together with the result types describing a single sample. The kernel
is JIT-compiled with Numba and releases the GIL, so worker threads can sample
disjoint regions of the same image concurrently.
"""

import math
from dataclasses import dataclass
from typing import Tuple, Union
import logging

from numba import jit

from .fractal_types import RenderState

logger = logging.getLogger(__name__)

ESCAPE_RADIUS = 100.0
ESCAPE_RADIUS_SQ = ESCAPE_RADIUS * ESCAPE_RADIUS

# Kernel sentinel for points classified as interior
INTERIOR_ITERATION = -1

FORMULA_STANDARD = 0
FORMULA_BURNING_SHIP = 1

_LOG2 = math.log(2.0)


@jit(nopython=True, nogil=True, cache=True)
def smooth_iteration(iteration, magnitude_sq):
    """
    Continuous iteration estimate using the log-log correction.

    Falls back to the integer count where the correction is undefined
    (magnitude at or below 1 after a capped, non-escaping orbit).
    """
    log_zn = math.log(magnitude_sq) / 2.0 if magnitude_sq > 0.0 else 0.0
    if log_zn <= 0.0:
        return float(iteration)
    return iteration + 1.0 - math.log(log_zn) / _LOG2


@jit(nopython=True, nogil=True, cache=True)
def in_main_bulbs(cr, ci):
    """Closed-form membership test for the main cardioid and period-2 bulb."""
    x = cr - 0.25
    q = x * x + ci * ci
    if q * (q + x) < 0.25 * ci * ci:
        return True
    return (cr + 1.0) * (cr + 1.0) + ci * ci < 0.0625


@jit(nopython=True, nogil=True, cache=True)
def sample_point(cr, ci, jr, ji, max_iter, julia, formula,
                 stripes, stripe_frequency, interior_detection):
    """
    Iterate a single point of the complex plane.

    Args:
        cr, ci: Point coordinates
        jr, ji: Julia seed (additive constant in Julia mode)
        max_iter: Iteration cap
        julia: Iterate the point itself with the seed as constant
        formula: FORMULA_STANDARD or FORMULA_BURNING_SHIP
        stripes: Accumulate the stripe-average signal
        stripe_frequency: Angular frequency of the stripe signal
        interior_detection: Skip known interior regions and shade capped points

    Returns:
        Tuple of (iteration, smooth_iteration, stripe_sum); iteration is
        INTERIOR_ITERATION for points treated as interior.
    """
    if julia:
        zr = cr
        zi = ci
        add_r = jr
        add_i = ji
    else:
        zr = 0.0
        zi = 0.0
        add_r = cr
        add_i = ci

    if interior_detection and not julia and formula == FORMULA_STANDARD:
        if in_main_bulbs(cr, ci):
            return INTERIOR_ITERATION, 0.0, 0.0

    zr2 = zr * zr
    zi2 = zi * zi
    stripe_sum = 0.0
    i = 0

    while zr2 + zi2 < ESCAPE_RADIUS_SQ:
        if formula == FORMULA_STANDARD:
            zi = 2.0 * zr * zi
        else:
            zi = 2.0 * abs(zr * zi)
        zi += add_i
        zr = zr2 - zi2 + add_r
        zr2 = zr * zr
        zi2 = zi * zi
        if stripes:
            s = math.sin(math.atan2(zi, zr) * stripe_frequency)
            stripe_sum += s * s
        i += 1
        if i == max_iter:
            if interior_detection:
                # Capped orbits are shaded like escapes near the boundary
                return i, smooth_iteration(i, zr2 + zi2), stripe_sum
            return INTERIOR_ITERATION, 0.0, 0.0

    return i, smooth_iteration(i, zr2 + zi2), stripe_sum


@dataclass(frozen=True)
class Escaped:
    """Sample that left the escape radius (or was capped with interior shading)."""

    iterations: int
    smooth_value: float
    stripe_sum: float

    @property
    def is_interior(self) -> bool:
        return False

    @property
    def stripe_average(self) -> float:
        """Mean stripe signal per iteration."""
        if self.iterations <= 0:
            return 0.0
        return self.stripe_sum / self.iterations


@dataclass(frozen=True)
class Interior:
    """Sample treated as part of the set; no color gradient applies."""

    @property
    def is_interior(self) -> bool:
        return True


INTERIOR = Interior()

SampleResult = Union[Escaped, Interior]


def kernel_arguments(state: RenderState) -> Tuple:
    """
    Flatten the sampler-relevant fields of a state for the compiled kernels.

    Order: (jr, ji, max_iter, julia, formula, stripes, stripe_frequency,
    interior_detection).
    """
    return (
        float(state.julia_x),
        float(state.julia_y),
        int(state.max_iterations),
        bool(state.julia),
        state.formula.code,
        bool(state.stripes),
        float(state.stripe_frequency),
        bool(state.interior_detection),
    )


def sample(point: Union[complex, Tuple[float, float]], state: RenderState) -> SampleResult:
    """
    Evaluate one complex-plane coordinate under ``state``.

    Args:
        point: Complex number or (real, imag) pair
        state: Render state supplying formula, cap, seed and flags

    Returns:
        Escaped or INTERIOR
    """
    if isinstance(point, complex):
        cr, ci = point.real, point.imag
    else:
        cr, ci = point

    iteration, smooth, stripe_sum = sample_point(float(cr), float(ci), *kernel_arguments(state))
    return result_from_kernel(iteration, smooth, stripe_sum)


def result_from_kernel(iteration: int, smooth: float, stripe_sum: float) -> SampleResult:
    """Convert a raw kernel triple into a SampleResult."""
    if iteration == INTERIOR_ITERATION:
        return INTERIOR
    return Escaped(int(iteration), float(smooth), float(stripe_sum))
