"""Tests for request dispatch, staleness and synchronous fallback."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from py_mapgen.core.options import GenerationOptions
from py_mapgen.core.terrain_generator import generate
from py_mapgen.workers.dispatcher import Dispatcher
from py_mapgen.workers.generation_worker import GenerationWorker


@pytest.fixture
def small_options():
    return GenerationOptions(seed="dispatch-seed", cells_x=48, cells_y=32)


class BlockingWorker(GenerationWorker):
    """Holds the first request until released."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()
        self.handled = []

    def handle(self, request):
        self.handled.append(request.request_id)
        if request.request_id == 1:
            self.started.set()
            self.release.wait(timeout=30)
        return super().handle(request)


class FailingWorker(GenerationWorker):
    def handle(self, request):
        raise ValueError("generation failed")


class TrackingWorker(GenerationWorker):
    """Records how many threads generate layers at once."""

    def __init__(self):
        super().__init__()
        self._count_lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def layers(self, options):
        with self._count_lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.01)
            return super().layers(options)
        finally:
            with self._count_lock:
                self.active -= 1


class TestStaleSuppression:
    """Only the latest request of a consumer is delivered."""

    def test_last_request_wins(self, small_options):
        worker = BlockingWorker()
        dispatcher = Dispatcher(worker=worker, use_background=True)
        delivered = []

        def on_result(response):
            delivered.append(response.request_id)

        first = dispatcher.request_layers(small_options, on_result)
        assert worker.started.wait(timeout=30)
        second = dispatcher.request_layers(small_options, on_result)
        third = dispatcher.request_layers(small_options, on_result)

        worker.release.set()
        dispatcher.shutdown(wait=True)

        assert first.result().request_id == 1
        assert second.result().request_id == 2
        assert third.result().request_id == 3
        assert worker.handled == [1, 2, 3]
        assert delivered == [3]

    def test_consumers_are_independent(self, small_options):
        with Dispatcher(use_background=False) as dispatcher:
            dispatcher.request_layers(small_options, consumer="left")
            dispatcher.request_layers(small_options, consumer="left")
            dispatcher.request_layers(small_options, consumer="right")
            assert dispatcher.latest_request_id("left") == 2
            assert dispatcher.latest_request_id("right") == 1
            assert dispatcher.is_current("left", 2)
            assert not dispatcher.is_current("left", 1)
            assert dispatcher.latest_request_id("unused") == 0


class TestSynchronousFallback:
    """Work runs in the caller's thread when no background thread is available."""

    def test_matches_background(self, small_options):
        with Dispatcher(use_background=False) as inline, Dispatcher(use_background=True) as background:
            assert not inline.has_background
            assert background.has_background
            first = inline.generate(small_options)
            second = background.generate(small_options)
        np.testing.assert_array_equal(first.height, second.height)
        np.testing.assert_array_equal(first.biome, second.biome)
        np.testing.assert_array_equal(first.river, second.river)

    def test_unavailable_executor(self, small_options):
        """A shut down executor falls back to inline execution."""
        executor = ThreadPoolExecutor(max_workers=1)
        executor.shutdown()
        dispatcher = Dispatcher(executor=executor)
        delivered = []

        future = dispatcher.request_layers(small_options, delivered.append)
        assert future.done()
        assert delivered == [future.result()]
        assert future.result().result.height.shape == (32, 48)

    def test_shutdown_keeps_serving(self, small_options):
        dispatcher = Dispatcher(use_background=True)
        dispatcher.shutdown()
        assert not dispatcher.has_background
        assert dispatcher.generate(small_options).cells_x == 48

    def test_inline_callback_runs_immediately(self, small_options):
        delivered = []
        with Dispatcher(use_background=False) as dispatcher:
            dispatcher.request_layers(small_options, delivered.append)
        assert len(delivered) == 1
        assert delivered[0].cache_hit is False


class TestResponses:
    """Test response contents and errors."""

    def test_mesh_request_uses_cache(self, small_options):
        with Dispatcher(use_background=False) as dispatcher:
            first = dispatcher.request_mesh(small_options, 160, 80).result()
            second = dispatcher.request_mesh(small_options, 160, 80).result()
        assert not first.cache_hit
        assert second.cache_hit
        assert second.result is first.result
        assert "mesh-polygons-v1" in second.cache_key

    def test_build_mesh(self, small_options):
        with Dispatcher(use_background=True) as dispatcher:
            mesh = dispatcher.build_mesh(small_options, 160, 80)
        assert mesh.cells

    def test_errors_reach_the_future(self, small_options):
        """Failures are raised from the future and skip the callback."""
        delivered = []
        with Dispatcher(worker=FailingWorker(), use_background=False) as dispatcher:
            future = dispatcher.request_layers(small_options, delivered.append)
        with pytest.raises(ValueError):
            future.result()
        assert delivered == []

    def test_errors_from_background(self, small_options):
        with Dispatcher(worker=FailingWorker(), use_background=True) as dispatcher:
            future = dispatcher.request_layers(small_options)
            with pytest.raises(ValueError):
                future.result(timeout=30)


class TestConcurrency:
    """Overlapping callers and executors share one worker safely."""

    def test_blocking_callers_all_resolve(self, small_options):
        """Callers waiting on superseded requests still get their layers."""
        results = []
        errors = []

        with Dispatcher(use_background=True) as dispatcher:

            def call():
                try:
                    results.append(dispatcher.generate(small_options))
                except Exception as exc:
                    errors.append(exc)

            threads = [threading.Thread(target=call) for _ in range(3)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=60)

        assert errors == []
        assert len(results) == 3
        assert all(layers.height.shape == (32, 48) for layers in results)

    def test_multi_thread_executor_serializes_worker(self, small_options):
        worker = TrackingWorker()
        executor = ThreadPoolExecutor(max_workers=4)
        dispatcher = Dispatcher(worker=worker, executor=executor)

        futures = [
            dispatcher.request_layers(small_options.model_copy(update={"seed": f"seed-{i}"}), consumer=f"view-{i}")
            for i in range(6)
        ]
        responses = [future.result(timeout=60) for future in futures]
        executor.shutdown(wait=True)

        assert worker.peak == 1
        assert len(worker.layer_cache) == 6
        assert [response.request_id for response in responses] == [1] * 6

    def test_inline_and_background_overlap(self, small_options):
        """Inline work after a non-waiting shutdown waits for the worker lock."""
        worker = TrackingWorker()
        dispatcher = Dispatcher(worker=worker, use_background=True)
        pending = dispatcher.request_layers(small_options.model_copy(update={"seed": "background"}))
        dispatcher.shutdown(wait=False)

        inline = dispatcher.generate(small_options)
        background = pending.result(timeout=60).result
        assert worker.peak == 1
        np.testing.assert_array_equal(inline.height, generate(small_options).height)
        assert not np.array_equal(background.height, inline.height)
