"""
Parallel row-band render scheduling.

Full-resolution renders are split into contiguous row bands, one per worker,
and executed on a fixed-size thread pool. The compiled tile kernels release
the GIL, so bands run truly in parallel while writing into disjoint views of
the same buffer. Preview renders stay on the calling thread; their cost is
already bounded by the block stride.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional, Union, Dict, Any

import numpy as np
import psutil

from ..core.fractal_types import RenderState
from ..rendering.buffer import PixelBuffer, partition_rows
from ..rendering.tiles import render_band, render_preview, PREVIEW_STRIDE

logger = logging.getLogger(__name__)

# Used when the hardware parallelism cannot be determined
DEFAULT_WORKER_COUNT = 8


def get_optimal_worker_count() -> int:
    """Number of render workers for this machine (logical CPU count)."""
    count = psutil.cpu_count(logical=True)
    if not count:
        logger.warning(f"Could not determine CPU count, using {DEFAULT_WORKER_COUNT} workers")
        return DEFAULT_WORKER_COUNT
    return count


class RenderScheduler:
    """Row-band parallel renderer backed by a persistent thread pool."""

    def __init__(self, num_workers: Optional[int] = None, preview_stride: int = PREVIEW_STRIDE):
        """
        Initialize scheduler.

        Args:
            num_workers: Number of worker threads and bands (None for CPU count)
            preview_stride: Block size for preview renders
        """
        if num_workers is None:
            num_workers = get_optimal_worker_count()
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        if preview_stride < 1:
            raise ValueError(f"preview_stride must be at least 1, got {preview_stride}")

        self.num_workers = int(num_workers)
        self.preview_stride = int(preview_stride)
        self._executor = None
        self._executor_lock = threading.Lock()
        logger.info(f"Render scheduler: {self.num_workers} workers, preview stride {self.preview_stride}")

    def __enter__(self) -> 'RenderScheduler':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.num_workers, thread_name_prefix="fractal-band"
                )
            return self._executor

    def close(self) -> None:
        """Shut down the worker pool; it is recreated on the next render."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def render(self, state: RenderState, buffer: Union[PixelBuffer, np.ndarray, bytearray],
               width: int, height: int, use_preview: bool = False) -> float:
        """
        Fill ``buffer`` with the image described by ``state``.

        Args:
            state: Render state snapshot (not modified)
            buffer: Target storage of width * height * 4 bytes, filled in place
            width, height: Image dimensions
            use_preview: Render the coarse block preview instead

        Returns:
            Elapsed wall-clock time in seconds
        """
        state.validate()
        target = PixelBuffer.wrap(buffer, width, height)

        start_time = time.time()
        if use_preview:
            render_preview(state, target, self.preview_stride)
        else:
            self._render_bands(state, target)
        elapsed = time.time() - start_time

        logger.debug(f"{'Preview' if use_preview else 'Full'} render {width}x{height} "
                     f"took {elapsed * 1000:.1f}ms")
        return elapsed

    def _render_bands(self, state: RenderState, target: PixelBuffer) -> None:
        bands = partition_rows(target.height, self.num_workers)
        views = target.claim_bands(bands)

        executor = self._get_executor()
        futures = {executor.submit(render_band, state, view): view.band
                   for view in views if view.band.height > 0}
        logger.debug(f"Dispatched {len(futures)} bands for {target.width}x{target.height}")

        # Every band must finish before the buffer is reported complete,
        # including when one of them fails
        wait(futures)
        for future, band in futures.items():
            error = future.exception()
            if error is not None:
                logger.error(f"Band {band.band_id} [{band.y_start}, {band.y_end}) failed: {error}")
                raise error

    def render_high_resolution(self, state: RenderState, width: int, height: int,
                               scale: int) -> PixelBuffer:
        """
        Render the same viewport into a buffer ``scale`` times larger.

        Args:
            state: Render state snapshot
            width, height: Display dimensions
            scale: Integer supersampling factor

        Returns:
            Newly allocated PixelBuffer of (width * scale) x (height * scale)
        """
        if int(scale) != scale or scale < 1:
            raise ValueError(f"scale must be a positive integer, got {scale}")

        hires = PixelBuffer(width * scale, height * scale)
        logger.info(f"Rendering high-resolution image ({hires.width}x{hires.height})")
        elapsed = self.render(state, hires, hires.width, hires.height)
        logger.info(f"High-resolution render complete: {elapsed:.2f}s")
        return hires

    def benchmark(self, state: RenderState, width: int = 400, height: int = 400) -> Dict[str, Any]:
        """
        Compare preview and full-resolution render times.

        Args:
            state: State to render
            width, height: Benchmark image size

        Returns:
            Timing data
        """
        target = PixelBuffer(width, height)

        # Warm-up compiles the kernels outside the timed region
        self.render(state, PixelBuffer(8, 8), 8, 8)
        self.render(state, PixelBuffer(8, 8), 8, 8, use_preview=True)

        preview_time = self.render(state, target, width, height, use_preview=True)
        full_time = self.render(state, target, width, height)

        return {
            'resolution': f'{width}x{height}',
            'max_iterations': state.max_iterations,
            'num_workers': self.num_workers,
            'preview_stride': self.preview_stride,
            'preview_time': preview_time,
            'full_time': full_time,
            'full_pixels_per_second': (width * height) / full_time if full_time > 0 else float('inf'),
            'preview_speedup': full_time / preview_time if preview_time > 0 else float('inf'),
        }


# Global scheduler used by the module-level API
_scheduler = None
_scheduler_lock = threading.Lock()


def get_render_scheduler(num_workers: Optional[int] = None) -> RenderScheduler:
    """Get the shared render scheduler, recreating it if the worker count changes."""
    global _scheduler
    wanted = num_workers or get_optimal_worker_count()
    with _scheduler_lock:
        if _scheduler is None or _scheduler.num_workers != wanted:
            if _scheduler is not None:
                _scheduler.close()
            _scheduler = RenderScheduler(wanted)
        return _scheduler
