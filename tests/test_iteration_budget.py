import pytest

from fractal_explorer.core.fractal_types import RenderState
from fractal_explorer.core.iteration_budget import (
    iterations_for_width, adjust_iterations, MIN_ITERATIONS, MAX_ITERATIONS,
)


class TestIterationsForWidth:

    def test_initial_view_gets_floor(self):
        assert iterations_for_width(3.0) == MIN_ITERATIONS == 100

    @pytest.mark.parametrize("width, expected", [(3e-5, 500), (3e-10, 1000)])
    def test_logarithmic_growth(self, width, expected):
        assert iterations_for_width(width) == expected

    def test_ceiling(self):
        assert iterations_for_width(1e-200) == MAX_ITERATIONS == 10000
        assert iterations_for_width(5e-324) == MAX_ITERATIONS

    def test_wide_views_stay_at_floor(self):
        assert iterations_for_width(1e6) == MIN_ITERATIONS

    def test_non_decreasing_as_view_narrows(self):
        widths = [3.0 * 0.5 ** k for k in range(0, 400, 3)]
        caps = [iterations_for_width(w) for w in widths]
        assert caps == sorted(caps)
        assert all(MIN_ITERATIONS <= cap <= MAX_ITERATIONS for cap in caps)

    @pytest.mark.parametrize("width", [0.0, -1.0, float('nan')])
    def test_rejects_non_positive_width(self, width):
        with pytest.raises(ValueError):
            iterations_for_width(width)


class TestAdjustIterations:

    def test_sets_cap_when_adaptive(self):
        state = RenderState(view_width=3e-5, max_iterations=128, adaptive_iterations=True)
        adjusted = adjust_iterations(state)
        assert adjusted.max_iterations == 500
        assert adjusted.view_width == state.view_width
        assert state.max_iterations == 128

    def test_manual_cap_untouched(self):
        state = RenderState(view_width=3e-5, max_iterations=128, adaptive_iterations=False)
        assert adjust_iterations(state) is state

    def test_idempotent(self):
        once = adjust_iterations(RenderState(view_width=0.001))
        assert adjust_iterations(once) is once
