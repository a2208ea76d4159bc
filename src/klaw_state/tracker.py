"""OperationTracker: progress and last error for several named operations.

Example:
    ```python
    class Op(Enum):
        SAVE = 'save'
        DELETE = 'delete'

    ops = OperationTracker[Op]()

    result = await ops.run(Op.SAVE, lambda: api.save(draft))
    if ops.is_active(Op.DELETE):
        show_spinner()
    if (error := ops.error_for(Op.SAVE)) is not None:
        show_error(error.message)
    ```
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable
from typing import Any

import msgspec

from klaw_state._context import OwnerGuard
from klaw_state._logging import get_logger
from klaw_state.errors import StructuredError, normalize_error
from klaw_state.result import Err, Ok, Result
from klaw_state.signal import ChangeSignal, ChangeWatcher
from klaw_state.value import AsyncValue

__all__ = ['OperationTracker']

_log = get_logger(__name__)


class OperationTracker[K: Hashable]:
    """Tracks concurrently active operations and the last error of each.

    Keys are caller-defined, typically members of a small Enum. Each key is
    independently idle, active or errored; starting a key clears its stale
    error. Mutations must come from one owning thread.
    """

    __slots__ = ('__weakref__', '_active', '_errors', '_guard', '_signal')

    def __init__(self) -> None:
        self._active: set[K] = set()
        self._errors: dict[K, StructuredError] = {}
        self._guard = OwnerGuard(type(self).__name__)
        self._signal: ChangeSignal[OperationTracker[K]] = ChangeSignal(lambda: self)

    # --- Operation management ---

    def start(self, key: K) -> None:
        """Mark ``key`` active and drop any error left by a previous attempt."""
        self._guard.check()
        self._active.add(key)
        self._errors.pop(key, None)
        _log.debug('operation.started', key=repr(key))
        self._signal.notify()

    def complete(self, key: K) -> None:
        """Mark ``key`` no longer active. Recorded errors are left alone."""
        self._guard.check()
        if key not in self._active:
            return
        self._active.discard(key)
        _log.debug('operation.completed', key=repr(key))
        self._signal.notify()

    def fail(self, key: K, error: StructuredError | BaseException) -> None:
        """Mark ``key`` no longer active and record ``error`` for it.

        Args:
            key: The failed operation.
            error: A structured error, or any exception to be normalized.
        """
        self._guard.check()
        structured = normalize_error(error)
        self._active.discard(key)
        self._errors[key] = structured
        _log.debug('operation.failed', key=repr(key), error=msgspec.to_builtins(structured))
        self._signal.notify()

    def _abandon(self, key: K) -> None:
        self._guard.check()
        if key not in self._active:
            return
        self._active.discard(key)
        _log.debug('operation.abandoned', key=repr(key))
        self._signal.notify()

    # --- Queries ---

    def is_active(self, key: K) -> bool:
        return key in self._active

    @property
    def has_active_operations(self) -> bool:
        return bool(self._active)

    @property
    def active_keys(self) -> frozenset[K]:
        """Snapshot of the active keys."""
        return frozenset(self._active)

    def error_for(self, key: K) -> StructuredError | None:
        """Last error recorded for ``key``, if any."""
        return self._errors.get(key)

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def all_errors(self) -> dict[K, StructuredError]:
        """Snapshot of every recorded error."""
        return dict(self._errors)

    @property
    def version(self) -> int:
        """Number of committed mutations."""
        return self._signal.version

    # --- Error management ---

    def clear_error(self, key: K) -> None:
        self._guard.check()
        if self._errors.pop(key, None) is not None:
            self._signal.notify()

    def clear_all_errors(self) -> None:
        self._guard.check()
        if self._errors:
            self._errors.clear()
            self._signal.notify()

    # --- Convenience ---

    async def run[T](self, key: K, action: Callable[[], Awaitable[T]]) -> Result[T, StructuredError]:
        """Run ``action`` as operation ``key`` and return its outcome.

        Failures are recorded for ``key`` and returned as Err; they are never
        raised. If the calling task is cancelled, ``key`` stops being active
        without an error and the cancellation propagates.

        Args:
            key: Operation identifier.
            action: Zero-argument async callable, awaited exactly once.

        Returns:
            Ok(result) on success, Err(StructuredError) on failure.
        """
        self.start(key)
        try:
            value = await action()
        except Exception as exc:
            error = normalize_error(exc)
            self.fail(key, error)
            return Err(error)
        except BaseException:
            self._abandon(key)
            raise
        self.complete(key)
        return Ok(value)

    async def run_into[T](
        self,
        key: K,
        target: AsyncValue[T],
        action: Callable[[], Awaitable[T]],
    ) -> Result[T, StructuredError]:
        """Like run(), additionally driving ``target`` through its load states.

        The tracker and the container are updated one after the other, not as
        a single transaction. Ownership of both is checked before either is
        mutated, so a call from a foreign thread leaves both untouched.

        Args:
            key: Operation identifier.
            target: Container that receives Loading, then Loaded or Failed.
            action: Zero-argument async callable, awaited exactly once.

        Returns:
            Ok(result) on success, Err(StructuredError) on failure.
        """
        self._guard.check()
        before, loading = target._begin_load()  # noqa: SLF001
        try:
            self.start(key)
            value = await action()
        except Exception as exc:
            error = normalize_error(exc)
            target.set_error(error)
            self.fail(key, error)
            return Err(error)
        except BaseException:
            target._abandon(loading, before)  # noqa: SLF001
            self._abandon(key)
            raise
        finally:
            target._end_load()  # noqa: SLF001
        target.set(value)
        self.complete(key)
        return Ok(value)

    # --- Observation ---

    def subscribe(self, observer: Callable[[OperationTracker[K]], Any]) -> Callable[[], None]:
        """Call ``observer`` with this tracker after every mutation.

        Returns:
            A callable that removes the observer.
        """
        return self._signal.subscribe(observer)

    def watch(self) -> ChangeWatcher[OperationTracker[K]]:
        """Create a watcher that wakes on every tracker change."""
        return self._signal.watch()

    def __repr__(self) -> str:
        active = ', '.join(repr(key) for key in self._active)
        return f'OperationTracker(active=[{active}], errors={len(self._errors)})'
