"""
Tests for cancellable background clustering.

Tests cover:
- Request message construction
- Completion delivered exactly once
- Cancellation before and after delivery
- Superseding a pending request
"""

import concurrent.futures
import threading
import unittest

import numpy as np

from INK_Libs.TaskLib.cluster_task import (
    ClusterRequest,
    ClusterResult,
    ClusterTaskRunner,
    run_cluster_request,
)


def sample_pixels():
    return np.array(
        [[10, 20, 30, 255], [20, 40, 60, 255], [30, 60, 90, 255]],
        dtype=np.uint8,
    )


class TestClusterRequest(unittest.TestCase):
    """Request message."""

    def test_request_owns_a_copy(self):
        samples = sample_pixels()
        request = ClusterRequest.from_samples(samples, k=1)
        samples[:] = 0
        result = run_cluster_request(1, request)
        self.assertEqual(result.centers, ((20, 40, 60),))
        self.assertTrue(result.ok)

    def test_rejects_partial_pixels(self):
        with self.assertRaises(ValueError):
            ClusterRequest.from_samples(np.zeros(6, dtype=np.uint8), k=2)

    def test_result_error_flag(self):
        self.assertFalse(ClusterResult(task_id=1, error="boom").ok)


class BlockedExecutorTestCase(unittest.TestCase):
    """Runs tasks on a single worker that can be held busy."""

    def setUp(self):
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        self.gate = threading.Event()
        self.runner = ClusterTaskRunner(self.executor)

    def tearDown(self):
        self.gate.set()
        self.runner.shutdown()
        self.executor.shutdown(wait=True)

    def hold_worker(self):
        self.executor.submit(self.gate.wait, 5)


class TestClusterTaskRunner(BlockedExecutorTestCase):
    """Completion and cancellation."""

    def test_callback_fires_once(self):
        results = []
        done = threading.Event()

        def on_complete(result):
            results.append(result)
            done.set()

        handle = self.runner.submit(ClusterRequest.from_samples(sample_pixels(), k=1), on_complete)
        self.assertTrue(done.wait(5))
        self.assertEqual(handle.result(timeout=5).centers, ((20, 40, 60),))
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].task_id, handle.task_id)
        self.assertFalse(handle.cancel())

    def test_cancel_before_run(self):
        results = []
        self.hold_worker()
        handle = self.runner.submit(ClusterRequest.from_samples(sample_pixels(), k=1), results.append)

        self.assertTrue(handle.cancel())
        self.assertTrue(handle.cancelled())
        self.gate.set()
        self.executor.shutdown(wait=True)

        self.assertEqual(results, [])
        with self.assertRaises(concurrent.futures.CancelledError):
            handle.result(timeout=5)

    def test_newer_request_supersedes_pending(self):
        first_results = []
        second_results = []
        self.hold_worker()
        first = self.runner.submit(ClusterRequest.from_samples(sample_pixels(), k=1), first_results.append)
        second = self.runner.submit(ClusterRequest.from_samples(sample_pixels(), k=2), second_results.append)
        self.gate.set()

        self.assertEqual(len(second.result(timeout=5).centers), 2)
        self.assertTrue(first.cancelled())
        self.assertEqual(first_results, [])
        self.assertEqual(len(second_results), 1)

    def test_callback_errors_do_not_escape(self):
        def broken(result):
            raise RuntimeError("listener failed")

        handle = self.runner.submit(ClusterRequest.from_samples(sample_pixels(), k=1), broken)
        self.assertTrue(handle.result(timeout=5).ok)


class TestOwnedExecutor(unittest.TestCase):
    """Runner that creates its own executor."""

    def test_context_manager(self):
        with ClusterTaskRunner() as runner:
            handle = runner.submit(ClusterRequest.from_samples(sample_pixels(), k=1))
            result = handle.result(timeout=5)
        self.assertEqual(result.centers, ((20, 40, 60),))
        self.assertTrue(handle.done())


if __name__ == "__main__":
    unittest.main()
