"""Unit tests for thread pool provisioning.

Tests the ref-counted ThreadManager and the ScheduledExecutor.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from identity_admin_sdk import executors
from identity_admin_sdk.executors import (
    BoundedThreadManager,
    DefaultThreadManager,
    ScheduledExecutor,
    detect_thread_manager,
)
from identity_admin_sdk.tasks import TaskCancelledError


class TestThreadManager:
    """Tests for acquire/release bookkeeping."""

    def test_first_acquire_creates_pools(self) -> None:
        manager = DefaultThreadManager()
        assert not manager.is_active

        pools = manager.acquire("app-1")
        try:
            assert manager.is_active
            assert manager.registered_apps == frozenset({"app-1"})
            assert isinstance(pools.executor, ThreadPoolExecutor)
            assert isinstance(pools.scheduled_executor, ScheduledExecutor)
        finally:
            manager.release("app-1")

    def test_apps_share_pools(self) -> None:
        manager = DefaultThreadManager()
        first = manager.acquire("app-1")
        second = manager.acquire("app-2")
        try:
            assert first is second
        finally:
            manager.release("app-1")
            manager.release("app-2")

    def test_same_name_is_counted_per_acquire(self) -> None:
        manager = DefaultThreadManager()
        first = manager.acquire("app-1")
        second = manager.acquire("app-1")

        assert first is second
        assert manager.registered_apps == frozenset({"app-1"})

        manager.release("app-1")
        assert manager.is_active
        assert not first.scheduled_executor.is_shutdown

        manager.release("app-1")
        assert not manager.is_active
        assert first.scheduled_executor.is_shutdown

    def test_release_last_app_shuts_down_pools(self) -> None:
        manager = DefaultThreadManager()
        pools = manager.acquire("app-1")
        manager.acquire("app-2")

        manager.release("app-1")
        assert manager.is_active
        assert not pools.scheduled_executor.is_shutdown

        manager.release("app-2")
        assert not manager.is_active
        assert pools.scheduled_executor.is_shutdown
        with pytest.raises(RuntimeError):
            pools.executor.submit(lambda: None)

    def test_release_unknown_app_is_noop(self) -> None:
        manager = DefaultThreadManager()
        pools = manager.acquire("app-1")
        try:
            manager.release("unknown")
            assert manager.is_active
            assert not pools.scheduled_executor.is_shutdown
        finally:
            manager.release("app-1")

    def test_pools_recreated_after_full_release(self) -> None:
        manager = DefaultThreadManager()
        first = manager.acquire("app-1")
        manager.release("app-1")

        second = manager.acquire("app-1")
        try:
            assert second is not first
        finally:
            manager.release("app-1")

    def test_empty_app_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            DefaultThreadManager().acquire("")

    def test_concurrent_acquire_creates_single_pool(self) -> None:
        manager = DefaultThreadManager()
        results = []
        barrier = threading.Barrier(8)

        def acquire(i: int) -> None:
            barrier.wait()
            results.append(manager.acquire(f"app-{i}"))

        threads = [threading.Thread(target=acquire, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(pools) for pools in results}) == 1
        for i in range(8):
            manager.release(f"app-{i}")
        assert not manager.is_active


class TestBoundedThreadManager:
    """Tests for the bounded manager used on sandboxed hosts."""

    def test_rejects_non_positive_workers(self) -> None:
        with pytest.raises(ValueError):
            BoundedThreadManager(max_workers=0)

    def test_scheduled_work_runs_on_bounded_pool(self) -> None:
        manager = BoundedThreadManager(max_workers=2)
        pools = manager.acquire("app")
        try:
            task = pools.scheduled_executor.schedule(
                lambda: threading.current_thread().name, 0
            )
            assert "bounded" in task.get(timeout=5)
        finally:
            manager.release("app")


class TestDetectThreadManager:
    """Tests for environment detection."""

    def test_sandboxed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GAE_ENV", "standard")
        assert isinstance(detect_thread_manager(), BoundedThreadManager)

    def test_regular_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GAE_ENV", raising=False)
        assert isinstance(detect_thread_manager(), DefaultThreadManager)

    def test_default_manager_is_singleton(self) -> None:
        assert executors.get_default_thread_manager() is executors.get_default_thread_manager()


class TestScheduledExecutor:
    """Tests for delayed execution."""

    def test_runs_after_delay(self) -> None:
        scheduler = ScheduledExecutor()
        try:
            task = scheduler.schedule(lambda: "ran", 0.01)
            assert task.get(timeout=5) == "ran"
        finally:
            scheduler.shutdown_now()

    def test_runs_in_due_order(self) -> None:
        order: list[str] = []
        scheduler = ScheduledExecutor()
        try:
            late = scheduler.schedule(lambda: order.append("late"), 0.2)
            early = scheduler.schedule(lambda: order.append("early"), 0.01)
            early.get(timeout=5)
            late.get(timeout=5)
        finally:
            scheduler.shutdown_now()

        assert order == ["early", "late"]

    def test_failure_is_delivered_through_task(self) -> None:
        def boom() -> None:
            raise ValueError("scheduled failure")

        scheduler = ScheduledExecutor()
        try:
            task = scheduler.schedule(boom, 0)
            with pytest.raises(Exception) as exc_info:
                task.get(timeout=5)
            assert isinstance(exc_info.value.__cause__, ValueError)
        finally:
            scheduler.shutdown_now()

    def test_negative_delay_rejected(self) -> None:
        scheduler = ScheduledExecutor()
        try:
            with pytest.raises(ValueError):
                scheduler.schedule(lambda: None, -1)
        finally:
            scheduler.shutdown_now()

    def test_shutdown_now_cancels_pending(self) -> None:
        scheduler = ScheduledExecutor()
        fn = lambda: "never"  # noqa: E731
        task = scheduler.schedule(fn, 60)
        assert scheduler.pending_count == 1

        discarded = scheduler.shutdown_now()

        assert discarded == [fn]
        assert isinstance(task.exception(), TaskCancelledError)
        assert scheduler.pending_count == 0

    def test_schedule_after_shutdown_raises(self) -> None:
        scheduler = ScheduledExecutor()
        scheduler.shutdown_now()

        with pytest.raises(RuntimeError):
            scheduler.schedule(lambda: None, 0)
