"""Thread pools shared by every app in the process.

A :class:`ThreadManager` hands out the same :class:`ThreadPools` to every
registered app. Pools are created when the first app registers and shut down
when the last one is released.
"""

from __future__ import annotations

import heapq
import itertools
import os
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from . import tasks
from .tasks import Task, TaskCancelledError
from .telemetry import get_logger

DEFAULT_THREAD_PREFIX = "identity-admin-default"
DEFAULT_BOUNDED_WORKERS = 10


class ScheduledExecutor:
    """Runs callables after a delay on a single timer thread.

    Due work runs on the timer thread itself, or on ``dispatch_executor``
    when one is given.
    """

    def __init__(
        self,
        *,
        name: str = f"{DEFAULT_THREAD_PREFIX}-scheduler",
        dispatch_executor: Executor | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._dispatch_executor = dispatch_executor or tasks.DirectExecutor()
        self._condition = threading.Condition()
        self._queue: list[tuple[float, int, Callable[[], Any], Task[Any]]] = []
        self._sequence = itertools.count()
        self._shutdown = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def is_shutdown(self) -> bool:
        """True once :meth:`shutdown_now` has been called."""
        with self._condition:
            return self._shutdown

    @property
    def pending_count(self) -> int:
        """Number of scheduled callables that have not run yet."""
        with self._condition:
            return len(self._queue)

    def schedule(self, fn: Callable[[], Any], delay_seconds: float) -> Task[Any]:
        """Schedule ``fn`` to run after ``delay_seconds``.

        Raises:
            ValueError: If the delay is negative.
            RuntimeError: If the executor has been shut down.
        """
        if delay_seconds < 0:
            msg = f"delay_seconds must be non-negative, got {delay_seconds}"
            raise ValueError(msg)

        task: Task[Any] = Task()
        with self._condition:
            if self._shutdown:
                raise RuntimeError("Scheduled executor has been shut down")
            due = self._clock() + delay_seconds
            heapq.heappush(self._queue, (due, next(self._sequence), fn, task))
            self._condition.notify()
        return task

    def shutdown_now(self) -> list[Callable[[], Any]]:
        """Stop the timer thread and discard pending work.

        Tasks of discarded callables fail with :class:`TaskCancelledError`.

        Returns:
            The callables that never ran.
        """
        with self._condition:
            self._shutdown = True
            pending = self._queue
            self._queue = []
            self._condition.notify_all()

        for _, _, _, task in pending:
            task.fail(TaskCancelledError("Scheduled executor shut down before the task ran"))
        return [fn for _, _, fn, _ in pending]

    def _run(self) -> None:
        while True:
            with self._condition:
                while True:
                    if self._shutdown:
                        return
                    if not self._queue:
                        self._condition.wait()
                        continue
                    remaining = self._queue[0][0] - self._clock()
                    if remaining <= 0:
                        _, _, fn, task = heapq.heappop(self._queue)
                        break
                    self._condition.wait(remaining)

            self._dispatch(fn, task)

    def _dispatch(self, fn: Callable[[], Any], task: Task[Any]) -> None:
        try:
            result = tasks.call(fn, self._dispatch_executor)
        except RuntimeError as e:
            # Backing pool already shut down
            task.fail(TaskCancelledError(str(e)))
            return
        result.add_listener(task.complete, task.fail)


@dataclass(frozen=True)
class ThreadPools:
    """General-purpose executor plus scheduled executor handed to an app."""

    executor: Executor
    scheduled_executor: ScheduledExecutor


class ThreadManager(ABC):
    """Process-scoped registry of apps sharing one set of thread pools."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._apps: Counter[str] = Counter()
        self._pools: ThreadPools | None = None
        self._logger = get_logger()

    @property
    def registered_apps(self) -> frozenset[str]:
        """Names of apps currently holding the pools."""
        with self._lock:
            return frozenset(self._apps)

    @property
    def is_active(self) -> bool:
        """True while pools exist."""
        with self._lock:
            return self._pools is not None

    def acquire(self, app_name: str) -> ThreadPools:
        """Register ``app_name`` and return the shared pools.

        Pools are created on the first registration. Each call must be
        paired with one :meth:`release`; apps sharing a name are counted
        separately.
        """
        if not app_name:
            raise ValueError("app_name must not be empty")

        with self._lock:
            if self._pools is None:
                self._pools = self._create_pools()
                self._logger.debug(
                    "Thread pools created",
                    manager=type(self).__name__,
                    app=app_name,
                )
            self._apps[app_name] += 1
            return self._pools

    def release(self, app_name: str) -> None:
        """Drop one registration of ``app_name``; shut pools down when none remain."""
        with self._lock:
            if app_name not in self._apps:
                return
            self._apps[app_name] -= 1
            if not self._apps[app_name]:
                del self._apps[app_name]
            if self._apps or self._pools is None:
                return

            pools = self._pools
            self._pools = None
            self._shutdown_pools(pools)
            self._logger.debug(
                "Thread pools shut down",
                manager=type(self).__name__,
                app=app_name,
            )

    @abstractmethod
    def _create_pools(self) -> ThreadPools:
        """Create a fresh set of pools."""

    def _shutdown_pools(self, pools: ThreadPools) -> None:
        pools.scheduled_executor.shutdown_now()
        pools.executor.shutdown(wait=False, cancel_futures=True)


class DefaultThreadManager(ThreadManager):
    """Unbounded worker pool plus a dedicated scheduler thread."""

    def _create_pools(self) -> ThreadPools:
        executor = ThreadPoolExecutor(thread_name_prefix=DEFAULT_THREAD_PREFIX)
        return ThreadPools(executor=executor, scheduled_executor=ScheduledExecutor())


class BoundedThreadManager(ThreadManager):
    """Single bounded pool for hosts that restrict thread creation.

    Scheduled work is handed to the same bounded pool.
    """

    def __init__(self, max_workers: int = DEFAULT_BOUNDED_WORKERS) -> None:
        if max_workers < 1:
            msg = f"max_workers must be positive, got {max_workers}"
            raise ValueError(msg)
        super().__init__()
        self.max_workers = max_workers

    def _create_pools(self) -> ThreadPools:
        executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix=f"{DEFAULT_THREAD_PREFIX}-bounded",
        )
        scheduled = ScheduledExecutor(dispatch_executor=executor)
        return ThreadPools(executor=executor, scheduled_executor=scheduled)


def is_sandboxed_environment() -> bool:
    """Check whether the process runs on a sandboxed hosting platform."""
    return os.environ.get("GAE_ENV", "").startswith("standard")


def detect_thread_manager() -> ThreadManager:
    """Create the thread manager suited to the current environment."""
    if is_sandboxed_environment():
        return BoundedThreadManager()
    return DefaultThreadManager()


_default_manager: ThreadManager | None = None
_default_manager_lock = threading.Lock()


def get_default_thread_manager() -> ThreadManager:
    """Return the process-wide thread manager, creating it on first use."""
    global _default_manager
    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = detect_thread_manager()
        return _default_manager
