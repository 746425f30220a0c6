"""Property tests for Task settlement."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from identity_admin_sdk.tasks import (
    DirectExecutor,
    ExecutionError,
    Task,
    TaskState,
    TaskStateError,
    call,
    for_exception,
    for_result,
)

values = st.one_of(st.none(), st.integers(), st.text(max_size=20), st.lists(st.integers()))
messages = st.text(max_size=50)


class TestTaskSettlementProperties:
    """A task settles exactly once and reports that outcome forever after."""

    @given(first=values, second=values)
    @settings(max_examples=100)
    def test_second_complete_rejected(self, first: object, second: object) -> None:
        """Property: completing a settled task raises and keeps the first value."""
        task: Task[object] = Task()
        task.complete(first)

        with pytest.raises(TaskStateError):
            task.complete(second)
        with pytest.raises(TaskStateError):
            task.fail(RuntimeError("late"))

        assert task.get(0) == first
        assert task.state == TaskState.COMPLETED

    @given(message=messages, value=values)
    @settings(max_examples=100)
    def test_failed_task_stays_failed(self, message: str, value: object) -> None:
        """Property: a failed task keeps its error and rejects completion."""
        error = ValueError(message)
        task = for_exception(error)

        with pytest.raises(TaskStateError):
            task.complete(value)
        with pytest.raises(ExecutionError) as exc_info:
            task.get(0)

        assert exc_info.value.__cause__ is error
        assert task.exception() is error

    @given(value=values, listener_count=st.integers(min_value=0, max_value=10))
    @settings(max_examples=50)
    def test_listeners_run_once_in_order(self, value: object, listener_count: int) -> None:
        """Property: each listener runs exactly once, in registration order."""
        seen: list[tuple[int, object]] = []
        task: Task[object] = Task()
        for index in range(listener_count):
            task.add_listener(lambda result, i=index: seen.append((i, result)))

        task.complete(value)

        assert seen == [(i, value) for i in range(listener_count)]

    @given(value=values)
    @settings(max_examples=50)
    def test_late_listener_runs_immediately(self, value: object) -> None:
        """Property: listeners added after settlement still observe the outcome."""
        seen: list[object] = []

        for_result(value).add_listener(seen.append)

        assert seen == [value]

    @given(value=values, should_fail=st.booleans())
    @settings(max_examples=100)
    def test_call_mirrors_callable_outcome(self, value: object, should_fail: bool) -> None:
        """Property: call() settles with whatever the callable returned or raised."""

        def work() -> object:
            if should_fail:
                raise KeyError(value)
            return value

        task = call(work, DirectExecutor())

        assert task.is_done
        if should_fail:
            assert isinstance(task.exception(), KeyError)
        else:
            assert task.get(0) == value
