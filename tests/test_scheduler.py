import threading
import time

import numpy as np
import pytest

from fractal_explorer.core.fractal_types import RenderState
from fractal_explorer.rendering.buffer import PixelBuffer
from fractal_explorer.rendering.tiles import render_band
from fractal_explorer.acceleration import parallel
from fractal_explorer.acceleration.parallel import (
    RenderScheduler, get_optimal_worker_count, get_render_scheduler, DEFAULT_WORKER_COUNT,
)


def render_with(workers, state, width, height, use_preview=False):
    buffer = PixelBuffer(width, height)
    with RenderScheduler(num_workers=workers, preview_stride=4) as scheduler:
        scheduler.render(state, buffer, width, height, use_preview)
    return buffer


class TestRender:

    def test_fills_whole_buffer(self, scheduler, state):
        buffer = PixelBuffer(31, 17)
        elapsed = scheduler.render(state, buffer, 31, 17)
        assert elapsed >= 0.0
        assert (buffer.pixels[:, :, 3] == 255).all()

    def test_result_independent_of_worker_count(self, state):
        reference = render_with(1, state, 29, 23)
        for workers in (2, 3, 7, 40):
            assert np.array_equal(render_with(workers, state, 29, 23).pixels, reference.pixels)

    def test_matches_single_band_render(self, scheduler, state):
        buffer = PixelBuffer(24, 18)
        scheduler.render(state, buffer, 24, 18)

        single = PixelBuffer(24, 18)
        render_band(state, single.full_view())
        assert np.array_equal(buffer.pixels, single.pixels)

    def test_repeat_renders_identical(self, scheduler, state):
        first = PixelBuffer(20, 20)
        second = PixelBuffer(20, 20)
        scheduler.render(state, first, 20, 20)
        scheduler.render(state, second, 20, 20)
        assert np.array_equal(first.pixels, second.pixels)

    def test_accepts_caller_storage(self, scheduler, state):
        storage = bytearray(12 * 8 * 4)
        scheduler.render(state, storage, 12, 8)
        array = np.frombuffer(storage, dtype=np.uint8).reshape(8, 12, 4)
        assert (array[:, :, 3] == 255).all()

        flat = np.zeros(12 * 8 * 4, dtype=np.uint8)
        scheduler.render(state, flat, 12, 8)
        assert np.array_equal(flat.reshape(8, 12, 4), array)

    def test_rejects_size_mismatch(self, scheduler, state):
        with pytest.raises(ValueError):
            scheduler.render(state, PixelBuffer(10, 10), 12, 10)
        with pytest.raises(ValueError):
            scheduler.render(state, bytearray(99), 5, 5)
        storage = np.zeros((10, 8, 4), dtype=np.uint8)
        with pytest.raises(ValueError):
            scheduler.render(state, storage, 10, 8)
        assert not storage.any()

    def test_fewer_rows_than_workers(self, state):
        buffer = render_with(8, state, 6, 3)
        assert (buffer.pixels[:, :, 3] == 255).all()

    def test_state_left_unchanged(self, scheduler, state):
        snapshot = state.to_dict()
        scheduler.render(state, PixelBuffer(10, 10), 10, 10)
        assert state.to_dict() == snapshot

    def test_preview_uses_configured_stride(self, state):
        preview = render_with(3, state, 16, 16, use_preview=True)
        assert np.array_equal(preview.pixels[0:4, 0:4], np.broadcast_to(preview.pixels[0, 0], (4, 4, 4)))
        assert (preview.pixels[:, :, 3] == 255).all()

    def test_band_failure_propagates_after_all_bands(self, monkeypatch, state):
        finished = []

        def flaky_render_band(render_state, view):
            if view.band.band_id == 1:
                raise RuntimeError("band exploded")
            render_band(render_state, view)
            finished.append(view.band.band_id)

        monkeypatch.setattr(parallel, "render_band", flaky_render_band)
        with RenderScheduler(num_workers=4) as scheduler:
            with pytest.raises(RuntimeError, match="band exploded"):
                scheduler.render(state, PixelBuffer(8, 16), 8, 16)
        assert sorted(finished) == [0, 2, 3]


class TestHighResolution:

    def test_dimensions(self, scheduler, state):
        hires = scheduler.render_high_resolution(state, 8, 6, 3)
        assert (hires.width, hires.height) == (24, 18)
        assert (hires.pixels[:, :, 3] == 255).all()

    def test_unit_scale_equals_display_render(self, scheduler, state):
        display = PixelBuffer(14, 10)
        scheduler.render(state, display, 14, 10)
        hires = scheduler.render_high_resolution(state, 14, 10, 1)
        assert np.array_equal(hires.pixels, display.pixels)

    @pytest.mark.parametrize("scale", [0, -2, 1.5])
    def test_rejects_bad_scale(self, scheduler, state, scale):
        with pytest.raises(ValueError):
            scheduler.render_high_resolution(state, 8, 8, scale)


class TestScheduler:

    def test_rejects_bad_worker_count(self):
        with pytest.raises(ValueError):
            RenderScheduler(num_workers=0)

    def test_rejects_bad_stride(self):
        with pytest.raises(ValueError):
            RenderScheduler(num_workers=1, preview_stride=0)

    def test_worker_count_falls_back(self, monkeypatch):
        monkeypatch.setattr(parallel.psutil, "cpu_count", lambda logical=True: None)
        assert get_optimal_worker_count() == DEFAULT_WORKER_COUNT

    def test_worker_count_from_cpu_count(self, monkeypatch):
        monkeypatch.setattr(parallel.psutil, "cpu_count", lambda logical=True: 6)
        assert get_optimal_worker_count() == 6

    def test_reusable_after_close(self, state):
        scheduler = RenderScheduler(num_workers=2)
        scheduler.render(state, PixelBuffer(4, 4), 4, 4)
        scheduler.close()
        scheduler.render(state, PixelBuffer(4, 4), 4, 4)
        scheduler.close()

    def test_shared_scheduler(self):
        first = get_render_scheduler(2)
        assert get_render_scheduler(2) is first
        assert get_render_scheduler(3).num_workers == 3

    def test_benchmark_report(self, scheduler):
        state = RenderState(max_iterations=50, adaptive_iterations=False)
        report = scheduler.benchmark(state, 16, 16)
        assert report['resolution'] == '16x16'
        assert report['num_workers'] == 3
        assert report['preview_stride'] == 4
        assert report['max_iterations'] == 50
        assert report['full_time'] >= 0.0


class TestConcurrentStartup:

    def test_first_renders_share_one_pool(self, monkeypatch, state):
        created = []
        real_executor = parallel.ThreadPoolExecutor

        def slow_executor(*args, **kwargs):
            time.sleep(0.05)
            executor = real_executor(*args, **kwargs)
            created.append(executor)
            return executor

        monkeypatch.setattr(parallel, "ThreadPoolExecutor", slow_executor)
        scheduler = RenderScheduler(num_workers=2)
        barrier = threading.Barrier(6)
        errors = []

        def render_once():
            barrier.wait()
            try:
                scheduler.render(state, PixelBuffer(8, 8), 8, 8)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=render_once) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        scheduler.close()

        assert errors == []
        assert len(created) == 1

    def test_shared_scheduler_created_once(self, monkeypatch):
        created = []
        real_scheduler = parallel.RenderScheduler

        def slow_scheduler(*args, **kwargs):
            time.sleep(0.05)
            scheduler = real_scheduler(*args, **kwargs)
            created.append(scheduler)
            return scheduler

        monkeypatch.setattr(parallel, "_scheduler", None)
        monkeypatch.setattr(parallel, "RenderScheduler", slow_scheduler)
        barrier = threading.Barrier(6)
        results = []

        def fetch():
            barrier.wait()
            results.append(get_render_scheduler(2))

        threads = [threading.Thread(target=fetch) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert all(result is created[0] for result in results)
        created[0].close()
