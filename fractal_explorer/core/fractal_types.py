"""
Fractal formula selection and render state definitions.

This module defines the closed set of supported escape-time formulas and the
immutable render state snapshot that every render call consumes.
"""

import math
import numbers
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)

# Initial viewport span; zoom is measured relative to it
BASE_VIEW_WIDTH = 3.0
DEFAULT_CENTER = (-0.5, 0.0)

# Bounds of the zoom-derived iteration cap
MIN_ITERATIONS = 100
MAX_ITERATIONS = 10000


class FractalFormula(Enum):
    """Supported iteration formulas."""

    STANDARD = "standard"
    BURNING_SHIP = "burning-ship"

    @property
    def code(self) -> int:
        """Integer code understood by the compiled kernels."""
        return _FORMULA_CODES[self]

    @property
    def description(self) -> str:
        if self is FractalFormula.STANDARD:
            return "z_{n+1} = z_n^2 + c"
        return "z_{n+1} = (Re(z_n)^2 - Im(z_n)^2) + 2i|Re(z_n) Im(z_n)| + c"

    def next(self) -> 'FractalFormula':
        """Return the following formula, wrapping around."""
        members = list(FractalFormula)
        return members[(members.index(self) + 1) % len(members)]


_FORMULA_CODES = {
    FractalFormula.STANDARD: 0,
    FractalFormula.BURNING_SHIP: 1,
}


@dataclass(frozen=True)
class RenderState:
    """
    Immutable snapshot of everything a render depends on.

    The input layer owns the canonical copy and derives new snapshots with
    ``dataclasses.replace``; a render never mutates the state it was given.
    """

    center_x: float = DEFAULT_CENTER[0]
    center_y: float = DEFAULT_CENTER[1]
    view_width: float = BASE_VIEW_WIDTH
    max_iterations: int = 128
    color_density: float = 0.2
    julia: bool = False
    julia_x: float = -0.8
    julia_y: float = 0.156
    palette_index: int = 0
    adaptive_iterations: bool = True
    formula: FractalFormula = FractalFormula.STANDARD
    stripes: bool = True
    stripe_frequency: float = 5.0
    stripe_intensity: float = 10.0
    interior_detection: bool = False

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Reject degenerate states before they reach the sampler."""
        if not isinstance(self.formula, FractalFormula):
            raise ValueError(f"formula must be a FractalFormula, got {self.formula!r}")
        if not math.isfinite(self.view_width) or self.view_width <= 0:
            raise ValueError(f"view_width must be positive and finite, got {self.view_width}")
        if not (math.isfinite(self.center_x) and math.isfinite(self.center_y)):
            raise ValueError(f"center must be finite, got ({self.center_x}, {self.center_y})")
        if not isinstance(self.max_iterations, numbers.Integral) or self.max_iterations < 1:
            raise ValueError(f"max_iterations must be a positive integer, got {self.max_iterations}")
        if self.adaptive_iterations and not MIN_ITERATIONS <= self.max_iterations <= MAX_ITERATIONS:
            raise ValueError(
                f"adaptive max_iterations must be in [{MIN_ITERATIONS}, {MAX_ITERATIONS}], "
                f"got {self.max_iterations}"
            )
        if not isinstance(self.palette_index, numbers.Integral):
            raise ValueError(f"palette_index must be an integer, got {self.palette_index}")

    @property
    def zoom(self) -> float:
        """Magnification relative to the initial view."""
        return BASE_VIEW_WIDTH / self.view_width

    @property
    def julia_seed(self) -> complex:
        return complex(self.julia_x, self.julia_y)

    def evolve(self, **changes) -> 'RenderState':
        """Return a copy with ``changes`` applied (and revalidated)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to a JSON-friendly dictionary."""
        data = asdict(self)
        data['formula'] = self.formula.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RenderState':
        """Create state from dictionary, accepting formula names."""
        data = dict(data)
        if 'formula' in data and not isinstance(data['formula'], FractalFormula):
            data['formula'] = FractalFormula(data['formula'])
        return cls(**data)


# Predefined interesting Julia set seeds
JULIA_PRESETS: Dict[str, Tuple[float, float]] = {
    'dragon': (-0.75, 0.1),
    'spiral': (-0.4, 0.6),
    'dendrite': (-0.235125, 0.827215),
    'lightning': (-0.8, 0.156),
    'rabbit': (-0.123, 0.745),
    'airplane': (-1.25, 0.0),
    'san_marco': (-0.75, 0.0),
    'siegel_disk': (-0.391, -0.587),
}
