"""Single-assignment task primitive.

A :class:`Task` is settled exactly once, either with a value or with an
error. Callers can block on it with :meth:`Task.get` or observe it through
listeners. Blocking work is turned into a task with :func:`call`.
"""

from __future__ import annotations

import threading
from concurrent.futures import Executor, Future
from enum import StrEnum
from typing import Any, Callable, Generic, TypeVar

from .telemetry import get_logger

T = TypeVar("T")

SuccessListener = Callable[[Any], None]
FailureListener = Callable[[Exception], None]


class TaskState(StrEnum):
    """Lifecycle states of a task."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskStateError(RuntimeError):
    """Task was settled more than once."""


class TaskTimeoutError(TimeoutError):
    """Task did not settle within the requested timeout."""


class TaskCancelledError(RuntimeError):
    """Work backing a task was discarded before it ran."""


class TaskAbortedError(RuntimeError):
    """Work backing a task was interrupted by a ``BaseException``.

    The interrupting exception is available as ``__cause__``.
    """


class ExecutionError(Exception):
    """Raised by :meth:`Task.get` when the task failed.

    The original error is available as ``__cause__``.
    """

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.__cause__ = cause


class Task(Generic[T]):
    """Thread-safe, single-assignment result container."""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._state = TaskState.PENDING
        self._result: T | None = None
        self._error: Exception | None = None
        self._listeners: list[tuple[SuccessListener, FailureListener | None]] = []

    @property
    def state(self) -> TaskState:
        """Current state of the task."""
        with self._condition:
            return self._state

    @property
    def is_done(self) -> bool:
        """True once the task has been settled."""
        return self.state != TaskState.PENDING

    @property
    def is_successful(self) -> bool:
        """True if the task completed with a value."""
        return self.state == TaskState.COMPLETED

    def exception(self) -> Exception | None:
        """Stored error of a failed task, ``None`` otherwise. Never blocks."""
        with self._condition:
            return self._error

    def complete(self, value: T) -> None:
        """Settle the task with a value.

        Raises:
            TaskStateError: If the task is already settled.
        """
        self._settle(TaskState.COMPLETED, value, None)

    def fail(self, error: Exception) -> None:
        """Settle the task with an error.

        Raises:
            TypeError: If ``error`` is not an exception instance.
            TaskStateError: If the task is already settled.
        """
        if not isinstance(error, Exception):
            msg = f"Task can only fail with an Exception, got {type(error).__name__}"
            raise TypeError(msg)
        self._settle(TaskState.FAILED, None, error)

    def _settle(self, state: TaskState, value: T | None, error: Exception | None) -> None:
        with self._condition:
            if self._state != TaskState.PENDING:
                msg = f"Task is already {self._state}"
                raise TaskStateError(msg)
            self._state = state
            self._result = value
            self._error = error
            listeners = self._listeners
            self._listeners = []
            self._condition.notify_all()

        for on_success, on_failure in listeners:
            self._notify(on_success, on_failure)

    def get(self, timeout: float | None = None) -> T:
        """Block until the task settles and return its value.

        Args:
            timeout: Seconds to wait, or ``None`` to wait indefinitely.

        Raises:
            ExecutionError: If the task failed; the cause is the stored error.
            TaskTimeoutError: If the task did not settle in time.
        """
        with self._condition:
            if not self._condition.wait_for(
                lambda: self._state != TaskState.PENDING, timeout=timeout
            ):
                msg = f"Task did not complete within {timeout} seconds"
                raise TaskTimeoutError(msg)
            if self._state == TaskState.FAILED:
                raise ExecutionError(self._error)  # type: ignore[arg-type]
            return self._result  # type: ignore[return-value]

    def add_listener(
        self,
        on_success: SuccessListener,
        on_failure: FailureListener | None = None,
    ) -> Task[T]:
        """Register callbacks invoked once the task settles.

        Listeners registered on a settled task run immediately on the
        calling thread. Otherwise they run on the thread that settles the
        task, in registration order.
        """
        with self._condition:
            if self._state == TaskState.PENDING:
                self._listeners.append((on_success, on_failure))
                return self

        self._notify(on_success, on_failure)
        return self

    def _notify(self, on_success: SuccessListener, on_failure: FailureListener | None) -> None:
        try:
            if self._state == TaskState.COMPLETED:
                on_success(self._result)
            elif on_failure is not None:
                on_failure(self._error)  # type: ignore[arg-type]
        except Exception:
            get_logger().exception("Task listener raised", state=str(self._state))

    def __repr__(self) -> str:
        return f"Task(state={self.state!s})"


class DirectExecutor(Executor):
    """Executor that runs submitted work inline on the calling thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        future.set_running_or_notify_cancel()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


def call(fn: Callable[[], T], executor: Executor) -> Task[T]:
    """Run ``fn`` on ``executor`` and return a task for its outcome.

    Args:
        fn: Blocking callable taking no arguments.
        executor: Executor the callable is submitted to.

    Returns:
        Task settled with the return value or raised exception of ``fn``.
        A ``BaseException`` such as ``KeyboardInterrupt`` fails the task with
        :class:`TaskAbortedError` and is re-raised on the executor thread.
    """
    if fn is None:
        raise TypeError("callable must not be None")
    if executor is None:
        raise TypeError("executor must not be None")

    task: Task[T] = Task()

    def run() -> None:
        try:
            result = fn()
        except Exception as e:
            task.fail(e)
        except BaseException as e:
            aborted = TaskAbortedError(f"Task aborted by {type(e).__name__}")
            aborted.__cause__ = e
            task.fail(aborted)
            raise
        else:
            task.complete(result)

    def on_done(future: Future[Any]) -> None:
        if future.cancelled():
            task.fail(TaskCancelledError("Executor shut down before the task ran"))

    future = executor.submit(run)
    future.add_done_callback(on_done)
    return task


def for_result(value: T) -> Task[T]:
    """Return a task already completed with ``value``."""
    task: Task[T] = Task()
    task.complete(value)
    return task


def for_exception(error: Exception) -> Task[Any]:
    """Return a task already failed with ``error``."""
    task: Task[Any] = Task()
    task.fail(error)
    return task
