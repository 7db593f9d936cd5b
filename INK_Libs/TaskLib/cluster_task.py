"""
Cancellable background palette clustering.

Clustering scans a whole (sampled) image, so it runs off the caller's thread
as an isolated unit of work. The caller hands over one ClusterRequest that
owns a private copy of the samples, gets back a ClusterTaskHandle, and
receives exactly one ClusterResult through its completion callback unless
the task is cancelled first. Stale work can simply be cancelled or
superseded by a newer request; no shared state is touched by the worker.

Classes:
    ClusterRequest: Message carrying samples, k and iteration count
    ClusterResult: Message carrying the resulting centers (or an error)
    ClusterTaskHandle: Handle to cancel or wait for one submitted request
    ClusterTaskRunner: Submits requests to an executor

Example:
    >>> runner = ClusterTaskRunner()
    >>> handle = runner.submit(ClusterRequest.from_samples(samples, k=8), on_complete=print)
    >>> handle.cancel()  # the user loaded a different image
    >>> runner.shutdown()
"""

import concurrent.futures
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import numpy as np

from INK_Libs.ColorLib.palette_clusterer import RgbCenter, cluster_palette
from INK_Libs.constants import DEFAULT_CLUSTER_ITERATIONS

logger = logging.getLogger(__name__)

CompletionCallback = Callable[["ClusterResult"], None]

_task_ids = itertools.count(1)


@dataclass(frozen=True)
class ClusterRequest:
    """
    Clustering request message.

    Attributes:
        samples: Flat RGBA bytes (4 bytes per sample), owned by the request
        k: Number of centers
        iterations: Fixed iteration count
    """
    samples: bytes
    k: int
    iterations: int = DEFAULT_CLUSTER_ITERATIONS

    @classmethod
    def from_samples(cls, samples: Any, k: int, iterations: int = DEFAULT_CLUSTER_ITERATIONS) -> "ClusterRequest":
        """Copy an RGBA sample array into a new request."""
        array = np.ascontiguousarray(samples, dtype=np.uint8)
        if array.size % 4 != 0:
            raise ValueError(f"Sample buffer must hold RGBA quadruples, got {array.size} bytes")
        return cls(samples=array.tobytes(), k=int(k), iterations=int(iterations))


@dataclass(frozen=True)
class ClusterResult:
    task_id: int
    centers: Tuple[RgbCenter, ...] = ()
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_cluster_request(
    task_id: int,
    request: ClusterRequest,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> ClusterResult:
    """Execute one request; the only data read is the request itself."""
    samples = np.frombuffer(request.samples, dtype=np.uint8).reshape(-1, 4)
    try:
        centers = cluster_palette(samples, request.k, request.iterations, should_cancel=should_cancel)
    except (ValueError, MemoryError) as e:
        logger.error(f"Clustering task {task_id} failed: {e}")
        return ClusterResult(task_id=task_id, error=str(e))
    return ClusterResult(task_id=task_id, centers=tuple(centers))


class ClusterTaskHandle:
    """Handle for one submitted ClusterRequest."""

    def __init__(self, task_id: int, on_complete: Optional[CompletionCallback] = None):
        self.task_id = task_id
        self._on_complete = on_complete
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._delivered = False
        self._future: Optional[concurrent.futures.Future] = None

    def _attach(self, future: concurrent.futures.Future) -> None:
        self._future = future

    def _deliver(self, result: ClusterResult) -> None:
        with self._lock:
            if self._cancel_event.is_set() or self._delivered:
                return
            self._delivered = True
        if self._on_complete is not None:
            try:
                self._on_complete(result)
            except Exception:
                logger.exception(f"Completion callback for clustering task {self.task_id} raised")

    def cancel(self) -> bool:
        """
        Cancel the task.

        Returns:
            True if the result will never be delivered, False if it already was
        """
        with self._lock:
            if self._delivered:
                return False
            self._cancel_event.set()
        if self._future is not None:
            self._future.cancel()
        logger.debug(f"Cancelled clustering task {self.task_id}")
        return True

    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self, timeout: Optional[float] = None) -> ClusterResult:
        """
        Block until the task finishes.

        Raises:
            concurrent.futures.CancelledError: If the task was cancelled
            concurrent.futures.TimeoutError: If timeout elapses first
        """
        if self.cancelled() or self._future is None:
            raise concurrent.futures.CancelledError(f"Clustering task {self.task_id} was cancelled")
        result = self._future.result(timeout=timeout)
        if self.cancelled():
            raise concurrent.futures.CancelledError(f"Clustering task {self.task_id} was cancelled")
        return result


class ClusterTaskRunner:
    """
    Runs clustering requests on a background executor.

    A newer submission supersedes (cancels) the previous one if it has not
    delivered yet.

    Args:
        executor: Executor to use; a single-worker ThreadPoolExecutor is
                  created (and owned) when omitted
    """

    def __init__(self, executor: Optional[concurrent.futures.Executor] = None):
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="palette-cluster"
        )
        self._latest: Optional[ClusterTaskHandle] = None
        self._lock = threading.Lock()

    def submit(self, request: ClusterRequest, on_complete: Optional[CompletionCallback] = None) -> ClusterTaskHandle:
        """
        Submit a request.

        Args:
            request: ClusterRequest message
            on_complete: Called once with the ClusterResult unless cancelled

        Returns:
            ClusterTaskHandle for the submitted work
        """
        handle = ClusterTaskHandle(next(_task_ids), on_complete)

        with self._lock:
            previous = self._latest
            self._latest = handle
        if previous is not None and not previous.done():
            previous.cancel()

        def work() -> ClusterResult:
            result = run_cluster_request(handle.task_id, request, should_cancel=handle.cancelled)
            handle._deliver(result)
            return result

        handle._attach(self._executor.submit(work))
        logger.debug(f"Submitted clustering task {handle.task_id} (k={request.k}, iterations={request.iterations})")
        return handle

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ClusterTaskRunner":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
