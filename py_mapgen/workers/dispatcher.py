"""
Request dispatch with last-request-wins delivery.

Callers ("consumers", e.g. a preview panel and a simulation view) issue
requests through the dispatcher. Each consumer has its own increasing
request-id sequence and only the response to its latest request is ever
delivered to the callback. Superseded requests still run to completion and
resolve their futures; their responses are dropped at delivery.

Work runs on a single background thread. When no thread is available the
request is handled in the caller's thread instead, with the same result.
The worker serializes access to its caches, so both paths may overlap.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Dict, Optional

import structlog

from ..config import settings
from ..core.options import GenerationOptions
from ..core.terrain_generator import TerrainLayers
from ..core.mesh import MeshResult
from .cache import cache_key
from .generation_worker import GenerationWorker, Request
from .messages import GenerationRequest, MeshInput, MeshRequest, WorkerResponse

logger = structlog.get_logger()

ResponseCallback = Callable[[WorkerResponse], None]

LAYERS_CONSUMER = "layers"
MESH_CONSUMER = "mesh"


class Dispatcher:
    """Routes requests to a GenerationWorker and suppresses stale responses."""

    def __init__(
        self,
        worker: Optional[GenerationWorker] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        use_background: Optional[bool] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            worker: Worker answering requests (built from settings if omitted)
            executor: Executor to run requests on; one single-thread pool is
                created when omitted and background work is enabled
            use_background: Run requests off the caller's thread (defaults to
                ``settings.use_background_worker``)
        """
        if use_background is None:
            use_background = settings.use_background_worker

        self.worker = worker or GenerationWorker.from_settings()
        self._owns_executor = executor is None and use_background
        if executor is not None:
            self._executor: Optional[ThreadPoolExecutor] = executor
        elif use_background:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mapgen-worker")
        else:
            self._executor = None

        self._lock = threading.Lock()
        self._latest: Dict[str, int] = {}

    @property
    def has_background(self) -> bool:
        return self._executor is not None

    def latest_request_id(self, consumer: str) -> int:
        with self._lock:
            return self._latest.get(consumer, 0)

    def is_current(self, consumer: str, request_id: int) -> bool:
        """True while ``request_id`` is the consumer's most recent request."""
        return self.latest_request_id(consumer) == request_id

    def request_layers(
        self,
        options: GenerationOptions,
        on_result: Optional[ResponseCallback] = None,
        consumer: str = LAYERS_CONSUMER,
    ) -> Future:
        """
        Request terrain layers.

        Returns:
            Future resolving to the WorkerResponse; the callback only fires
            if this is still the consumer's latest request when it completes
        """
        request_id = self._issue_id(consumer)
        request = GenerationRequest(request_id=request_id, cache_key=cache_key(options), options=options)
        return self._dispatch(consumer, request, on_result)

    def request_mesh(
        self,
        options: GenerationOptions,
        viewport_width: float,
        viewport_height: float,
        on_result: Optional[ResponseCallback] = None,
        consumer: str = MESH_CONSUMER,
    ) -> Future:
        """Request the render mesh of a map; see ``request_layers``."""
        mesh_input = MeshInput(options=options, viewport_width=viewport_width, viewport_height=viewport_height)
        request_id = self._issue_id(consumer)
        request = MeshRequest(
            request_id=request_id,
            cache_key=GenerationWorker.mesh_key(mesh_input),
            mesh_input=mesh_input,
        )
        return self._dispatch(consumer, request, on_result)

    def generate(self, options: GenerationOptions) -> TerrainLayers:
        """Blocking convenience: layers for the options."""
        return self.request_layers(options).result().result

    def build_mesh(self, options: GenerationOptions, viewport_width: float, viewport_height: float) -> MeshResult:
        """Blocking convenience: mesh for the options at a viewport size."""
        return self.request_mesh(options, viewport_width, viewport_height).result().result

    def shutdown(self, wait: bool = True) -> None:
        """Release the background thread; later requests run synchronously."""
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None and self._owns_executor:
            executor.shutdown(wait=wait)
            logger.debug("Dispatcher executor shut down")

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _issue_id(self, consumer: str) -> int:
        with self._lock:
            request_id = self._latest.get(consumer, 0) + 1
            self._latest[consumer] = request_id
            return request_id

    def _dispatch(self, consumer: str, request: Request, on_result: Optional[ResponseCallback]) -> Future:
        future = self._submit(request)
        future.add_done_callback(partial(self._deliver, consumer, request.request_id, on_result))
        return future

    def _submit(self, request: Request) -> Future:
        executor = self._executor
        if executor is not None:
            try:
                return executor.submit(self.worker.handle, request)
            except RuntimeError as error:
                logger.warning(
                    "Background worker unavailable, running synchronously",
                    request_id=request.request_id,
                    error=str(error),
                )
        return self._run_inline(request)

    def _run_inline(self, request: Request) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(self.worker.handle(request))
        except Exception as error:
            # Surfaced to the caller through future.result(), as on the executor
            future.set_exception(error)
        return future

    def _deliver(
        self,
        consumer: str,
        request_id: int,
        on_result: Optional[ResponseCallback],
        future: Future,
    ) -> None:
        if future.cancelled():
            return
        if not self.is_current(consumer, request_id):
            logger.debug(
                "Dropped stale response",
                consumer=consumer,
                request_id=request_id,
                latest=self.latest_request_id(consumer),
            )
            return

        error = future.exception()
        if error is not None:
            logger.error(
                "Generation request failed",
                consumer=consumer,
                request_id=request_id,
                error=repr(error),
            )
            return

        if on_result is not None:
            on_result(future.result())
