import pytest

from fractal_explorer.core.fractal_types import RenderState
from fractal_explorer.acceleration.parallel import RenderScheduler
from fractal_explorer.io.config import ExplorerConfig


@pytest.fixture
def state():
    """Default view with a fixed, small iteration cap."""
    return RenderState(max_iterations=64, adaptive_iterations=False)


@pytest.fixture
def smooth_state():
    """Default view colored by smooth iteration count."""
    return RenderState(max_iterations=64, adaptive_iterations=False, stripes=False)


@pytest.fixture
def scheduler():
    with RenderScheduler(num_workers=3, preview_stride=4) as sched:
        yield sched


@pytest.fixture
def small_config(tmp_path):
    return ExplorerConfig(
        num_workers=2,
        preview_stride=4,
        display_width=32,
        display_height=24,
        screenshot_scale=2,
        output_dir=str(tmp_path),
    )
