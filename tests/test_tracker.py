"""Tests for OperationTracker."""

from __future__ import annotations

import anyio
import pytest
from hypothesis import given
from hypothesis import strategies as st
from klaw_state import (
    AsyncValue,
    Err,
    Loaded,
    Loading,
    Network,
    NetworkKind,
    NotFound,
    Ok,
    OperationTracker,
    Server,
    Unknown,
)

from tests.strategies import Op, operation_keys

pytestmark = pytest.mark.anyio

TIMEOUT = Network(NetworkKind.TIMEOUT)


class TestStartCompleteFail:
    """Tests for the bookkeeping primitives."""

    def test_operations_are_independent(self, tracker: OperationTracker[Op]) -> None:
        """Completing one key leaves the others active."""
        tracker.start(Op.FETCH)
        tracker.start(Op.SAVE)
        tracker.complete(Op.FETCH)

        assert tracker.is_active(Op.FETCH) is False
        assert tracker.is_active(Op.SAVE) is True
        assert tracker.active_keys == frozenset({Op.SAVE})
        assert tracker.has_active_operations

    def test_start_clears_stale_error(self, tracker: OperationTracker[Op]) -> None:
        """Restarting a failed key clears its error."""
        tracker.start(Op.SAVE)
        tracker.fail(Op.SAVE, TIMEOUT)
        assert tracker.error_for(Op.SAVE) is not None

        tracker.start(Op.SAVE)

        assert tracker.error_for(Op.SAVE) is None
        assert tracker.is_active(Op.SAVE) is True

    def test_fail_records_error_and_deactivates(self, tracker: OperationTracker[Op]) -> None:
        """fail() removes the key from active and records the error."""
        tracker.start(Op.DELETE)
        tracker.fail(Op.DELETE, Server(500, 'boom'))

        assert tracker.is_active(Op.DELETE) is False
        assert tracker.error_for(Op.DELETE) == Server(500, 'boom')
        assert tracker.has_errors

    def test_fail_normalizes_raw_errors(self, tracker: OperationTracker[Op]) -> None:
        """fail() accepts raw exceptions."""
        tracker.fail(Op.FETCH, ValueError('nope'))

        assert tracker.error_for(Op.FETCH) == Unknown('nope')

    def test_complete_keeps_error(self, tracker: OperationTracker[Op]) -> None:
        """complete() does not touch recorded errors."""
        tracker.fail(Op.FETCH, TIMEOUT)
        tracker.complete(Op.FETCH)

        assert tracker.error_for(Op.FETCH) == TIMEOUT

    def test_snapshots_are_copies(self, tracker: OperationTracker[Op]) -> None:
        """active_keys and all_errors do not alias internal state."""
        tracker.start(Op.FETCH)
        tracker.fail(Op.SAVE, TIMEOUT)

        errors = tracker.all_errors
        errors.clear()
        keys = tracker.active_keys
        tracker.complete(Op.FETCH)

        assert tracker.all_errors == {Op.SAVE: TIMEOUT}
        assert keys == frozenset({Op.FETCH})

    def test_clear_error(self, tracker: OperationTracker[Op]) -> None:
        """clear_error() removes a single error."""
        tracker.fail(Op.FETCH, TIMEOUT)
        tracker.fail(Op.SAVE, TIMEOUT)
        tracker.clear_error(Op.FETCH)

        assert tracker.all_errors == {Op.SAVE: TIMEOUT}

    def test_clear_all_errors(self, tracker: OperationTracker[Op]) -> None:
        """clear_all_errors() removes every error."""
        tracker.fail(Op.FETCH, TIMEOUT)
        tracker.fail(Op.SAVE, NotFound('x'))
        tracker.clear_all_errors()

        assert tracker.has_errors is False
        assert tracker.all_errors == {}

    def test_repr(self, tracker: OperationTracker[Op]) -> None:
        """repr() lists active keys and counts errors."""
        tracker.start(Op.FETCH)
        tracker.fail(Op.SAVE, TIMEOUT)

        assert repr(tracker) == 'OperationTracker(active=[<Op.FETCH: \'fetch\'>], errors=1)'

    def test_accepts_any_hashable_key(self) -> None:
        """Keys are not limited to enums."""
        tracker = OperationTracker[str]()
        tracker.start('upload')

        assert tracker.is_active('upload')

    @given(st.lists(st.tuples(st.sampled_from(['start', 'complete', 'fail']), operation_keys), max_size=30))
    def test_started_key_never_has_error(self, steps) -> None:
        """Right after start(k), k is active and has no error."""
        tracker = OperationTracker[Op]()
        for action, key in steps:
            if action == 'start':
                tracker.start(key)
                assert tracker.is_active(key)
                assert tracker.error_for(key) is None
            elif action == 'complete':
                tracker.complete(key)
                assert not tracker.is_active(key)
            else:
                tracker.fail(key, TIMEOUT)
                assert not tracker.is_active(key)
                assert tracker.error_for(key) == TIMEOUT


class TestNotification:
    """Tests for tracker change notification."""

    def test_observer_receives_tracker(self, tracker: OperationTracker[Op]) -> None:
        """Observers receive the tracker after each change."""
        seen = []
        tracker.subscribe(lambda t: seen.append(t.active_keys))

        tracker.start(Op.FETCH)
        tracker.complete(Op.FETCH)

        assert seen == [frozenset({Op.FETCH}), frozenset()]

    def test_no_op_changes_do_not_notify(self, tracker: OperationTracker[Op]) -> None:
        """Completing an inactive key or clearing absent errors does not notify."""
        tracker.complete(Op.FETCH)
        tracker.clear_error(Op.FETCH)
        tracker.clear_all_errors()

        assert tracker.version == 0


class TestRun:
    """Tests for run() and run_into()."""

    async def test_run_success(self, tracker: OperationTracker[Op]) -> None:
        """run() returns Ok and deactivates the key."""

        async def action() -> str:
            assert tracker.is_active(Op.SAVE)
            return 'saved'

        result = await tracker.run(Op.SAVE, action)

        assert result == Ok('saved')
        assert tracker.is_active(Op.SAVE) is False
        assert tracker.error_for(Op.SAVE) is None

    async def test_run_failure_returns_err(self, tracker: OperationTracker[Op]) -> None:
        """run() never raises for action failures."""

        async def action() -> str:
            raise TimeoutError

        result = await tracker.run(Op.SAVE, action)

        assert result == Err(TIMEOUT)
        assert result.is_err()
        assert tracker.error_for(Op.SAVE) == TIMEOUT
        assert tracker.is_active(Op.SAVE) is False

    async def test_concurrent_runs_are_independent(self, tracker: OperationTracker[Op]) -> None:
        """Several keys can be active at once and finish independently."""
        release_save = anyio.Event()
        fetch_done = anyio.Event()
        results = {}

        async def save() -> int:
            await release_save.wait()
            return 1

        async def fetch() -> int:
            return 2

        async def run_save() -> None:
            results['save'] = await tracker.run(Op.SAVE, save)

        async def run_fetch() -> None:
            results['fetch'] = await tracker.run(Op.FETCH, fetch)
            fetch_done.set()

        async with anyio.create_task_group() as tg:
            tg.start_soon(run_save)
            tg.start_soon(run_fetch)
            await fetch_done.wait()
            assert tracker.active_keys == frozenset({Op.SAVE})
            release_save.set()

        assert results == {'save': Ok(1), 'fetch': Ok(2)}
        assert not tracker.has_active_operations

    async def test_run_into_success(self, tracker: OperationTracker[Op]) -> None:
        """run_into() drives the container and the tracker."""
        target = AsyncValue[int]()

        async def action() -> int:
            assert target.state == Loading(None)
            assert tracker.is_active(Op.FETCH)
            return 7

        result = await tracker.run_into(Op.FETCH, target, action)

        assert result == Ok(7)
        assert tracker.is_active(Op.FETCH) is False
        assert target.current_value == 7

    async def test_run_into_failure(self, tracker: OperationTracker[Op]) -> None:
        """run_into() records the same error in both places."""
        target = AsyncValue(3)

        async def action() -> int:
            raise NotFound('Workout').to_exception()

        result = await tracker.run_into(Op.FETCH, target, action)

        assert result == Err(NotFound('Workout'))
        assert target.error == NotFound('Workout')
        assert tracker.error_for(Op.FETCH) == NotFound('Workout')

    async def test_cancelled_run_deactivates_without_error(self, tracker: OperationTracker[Op]) -> None:
        """Cancelling the caller drops the key and records nothing."""
        started = anyio.Event()
        target = AsyncValue(1)

        async def never() -> int:
            started.set()
            await anyio.sleep_forever()
            return 0

        async with anyio.create_task_group() as tg:
            tg.start_soon(tracker.run_into, Op.SAVE, target, never)
            await started.wait()
            assert tracker.is_active(Op.SAVE)
            tg.cancel_scope.cancel()

        assert tracker.is_active(Op.SAVE) is False
        assert tracker.error_for(Op.SAVE) is None
        assert target.state == Loaded(1)

    async def test_cancelled_overlapping_run_into_settles(self, tracker: OperationTracker[Op]) -> None:
        """Two cancelled run_into calls on one container leave it Loaded, not Loading."""
        target = AsyncValue(1)
        fetch_started = anyio.Event()
        save_started = anyio.Event()

        async def hang(started: anyio.Event) -> int:
            started.set()
            await anyio.sleep_forever()
            return 0

        async with anyio.create_task_group() as tg:
            tg.start_soon(tracker.run_into, Op.FETCH, target, lambda: hang(fetch_started))
            await fetch_started.wait()
            tg.start_soon(tracker.run_into, Op.SAVE, target, lambda: hang(save_started))
            await save_started.wait()
            tg.cancel_scope.cancel()

        assert target.state == Loaded(1)
        assert not tracker.has_active_operations

    async def test_watch_wakes_on_run(self, tracker: OperationTracker[Op]) -> None:
        """A watcher observes the tracker changing during run()."""
        watcher = tracker.watch()

        async def action() -> None:
            return None

        await tracker.run(Op.FETCH, action)

        assert watcher.has_changed()
        await watcher.changed()
        assert watcher.has_changed() is False
