# ============================================================================
# QUEUE REGISTRY TESTS
# ============================================================================
# STATUS: Tests - Lazy named queue handles and the in-memory backend
# PURPOSE: Verify disabled/failed/concurrent initialization and dedup
# ============================================================================
"""
Queue Registry Tests

Tests infrastructure/queue_registry.py and infrastructure/memory_queue.py.

Run with:
    pytest tests/test_queue_registry.py -v
"""

import threading
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from core.errors import DuplicateJobError
from infrastructure import build_queue_registry
from infrastructure.memory_queue import InMemoryQueue, memory_queue_factory
from infrastructure.queue_registry import QueueRegistry


# ============================================================================
# REGISTRY
# ============================================================================

class TestQueueRegistry:
    """Tests for QueueRegistry lookup-or-init."""

    def test_disabled_never_calls_factory(self):
        factory = MagicMock()
        registry = QueueRegistry(factory, enabled=False)

        assert registry.is_enabled is False
        assert registry.get_queue("catalog-processing-queue") is None
        assert registry.initialize_all(["catalog-processing-queue"]) == []
        factory.assert_not_called()

    def test_no_factory_is_disabled(self):
        assert QueueRegistry(None, enabled=True).is_enabled is False

    def test_handle_reused(self):
        factory = MagicMock(side_effect=memory_queue_factory)
        registry = QueueRegistry(factory)

        first = registry.get_queue("q")
        second = registry.get_queue("q")

        assert first is second
        factory.assert_called_once_with("q")

    def test_failed_init_not_cached(self):
        handle = InMemoryQueue("q")
        factory = MagicMock(side_effect=[ConnectionError("namespace unreachable"), handle])
        registry = QueueRegistry(factory)

        assert registry.get_queue("q") is None
        assert registry.last_error("q") == "ConnectionError: namespace unreachable"

        assert registry.get_queue("q") is handle
        assert registry.last_error("q") is None
        assert factory.call_count == 2

    def test_initialize_all_reports_failures(self):
        def factory(name):
            if name == "bad":
                raise RuntimeError("boom")
            return InMemoryQueue(name)

        registry = QueueRegistry(factory, backend="memory")

        assert registry.initialize_all(["good", "bad"]) == ["bad"]
        assert registry.initialized_queues() == ["good"]
        assert registry.status() == {
            "enabled": True,
            "backend": "memory",
            "initialized": ["good"],
            "errors": {"bad": "RuntimeError: boom"},
        }

    def test_concurrent_first_use_initializes_once(self):
        calls = []

        def slow_factory(name):
            calls.append(name)
            time.sleep(0.05)
            return InMemoryQueue(name)

        registry = QueueRegistry(slow_factory)
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(registry.get_queue("q"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == ["q"]
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_close_all_closes_handles_then_broker(self):
        order = []
        handle = MagicMock()
        handle.close.side_effect = lambda: order.append("handle")
        registry = QueueRegistry(lambda name: handle, on_close=lambda: order.append("broker"))
        registry.get_queue("q")

        registry.close_all()

        assert order == ["handle", "broker"]
        assert registry.initialized_queues() == []

    def test_close_error_does_not_stop_teardown(self):
        bad = MagicMock()
        bad.close.side_effect = RuntimeError("already closed")
        on_close = MagicMock()
        registry = QueueRegistry(lambda name: bad, on_close=on_close)
        registry.get_queue("q")

        registry.close_all()

        on_close.assert_called_once()


# ============================================================================
# BACKEND SELECTION
# ============================================================================

class TestBuildQueueRegistry:
    """Tests for build_queue_registry()."""

    def test_memory_backend(self):
        config = SimpleNamespace(queue_backend="memory", queue_enabled=True)
        registry = build_queue_registry(config)

        assert registry.backend == "memory"
        assert isinstance(registry.get_queue("q"), InMemoryQueue)

    def test_memory_backend_disabled(self):
        config = SimpleNamespace(queue_backend="memory", queue_enabled=False)
        assert build_queue_registry(config).is_enabled is False


# ============================================================================
# IN-MEMORY QUEUE
# ============================================================================

class TestInMemoryQueue:
    """Tests for the in-process QueueHandle."""

    def test_anonymous_jobs_get_distinct_ids(self):
        queue = InMemoryQueue("q")

        first = queue.add("Job", {"a": 1})
        second = queue.add("Job", {"a": 1})

        assert first != second
        assert [j.job_id for j in queue.pending()] == [first, second]

    def test_identity_used_as_job_id(self):
        queue = InMemoryQueue("q")
        assert queue.add("Job", {}, identity="manual-single-product-1") == "manual-single-product-1"

    def test_live_identity_is_duplicate(self):
        queue = InMemoryQueue("q")
        queue.add("Job", {}, identity="same")

        with pytest.raises(DuplicateJobError) as exc_info:
            queue.add("Job", {}, identity="same")
        assert exc_info.value.job_id == "same"

    def test_completed_identity_reusable(self):
        queue = InMemoryQueue("q")
        queue.add("Job", {"n": 1}, identity="same")
        queue.complete("same")

        assert queue.add("Job", {"n": 2}, identity="same") == "same"
        pending = queue.pending()
        assert len(pending) == 1
        assert pending[0].spec.payload == {"n": 2}

    def test_completed_jobs_pruned_beyond_cap(self):
        queue = InMemoryQueue("q", max_completed=2)
        ids = [queue.add("Job", {"n": n}) for n in range(5)]
        for job_id in ids[:4]:
            queue.complete(job_id)

        assert queue.size() == 3
        assert queue.get(ids[0]) is None
        assert queue.get(ids[1]) is None
        assert queue.get(ids[2]).completed is True
        assert queue.get(ids[3]).completed is True
        assert [j.job_id for j in queue.pending()] == [ids[4]]

    def test_pending_jobs_never_pruned(self):
        queue = InMemoryQueue("q", max_completed=0)
        live = queue.add("Job", {}, identity="live")
        done = queue.add("Job", {})
        queue.complete(done)

        assert queue.get(done) is None
        assert [j.job_id for j in queue.pending()] == [live]
        with pytest.raises(DuplicateJobError):
            queue.add("Job", {}, identity="live")

    def test_reused_identity_leaves_completed_retention(self):
        queue = InMemoryQueue("q", max_completed=1)
        queue.add("Job", {"n": 1}, identity="same")
        queue.complete("same")
        queue.add("Job", {"n": 2}, identity="same")

        other = queue.add("Job", {})
        queue.complete(other)

        assert queue.get("same").completed is False
        assert queue.get(other).completed is True

    def test_complete_twice_is_noop(self):
        queue = InMemoryQueue("q", max_completed=1)
        first = queue.add("Job", {})
        queue.complete(first)
        queue.complete(first)

        assert queue.get(first).completed is True
        assert queue.size() == 1

    def test_payload_copied(self):
        queue = InMemoryQueue("q")
        payload = {"bunjangPid": "1"}
        job_id = queue.add("Job", payload)
        payload["bunjangPid"] = "2"

        assert queue.get(job_id).spec.payload == {"bunjangPid": "1"}

    def test_complete_unknown_raises(self):
        with pytest.raises(KeyError):
            InMemoryQueue("q").complete("missing")

    def test_closed_queue_rejects(self):
        queue = InMemoryQueue("q")
        queue.close()

        with pytest.raises(RuntimeError):
            queue.add("Job", {})
