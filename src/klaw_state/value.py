"""AsyncValue: an observable holder of one AsyncState.

Example:
    ```python
    profile = AsyncValue[Profile]()

    await profile.load(api.fetch_profile)

    if profile.is_failed and profile.error.is_retryable:
        show_retry_button()
    ```
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import msgspec

from klaw_state._context import OwnerGuard
from klaw_state._logging import get_logger
from klaw_state._sentinel import MISSING
from klaw_state.errors import StructuredError, normalize_error
from klaw_state.signal import ChangeSignal, ChangeWatcher
from klaw_state.state import AsyncState, Idle, Loaded

__all__ = ['AsyncValue']

_log = get_logger(__name__)



class AsyncValue[T]:
    """Mutable, observable container wrapping exactly one AsyncState.

    Every mutation replaces the state and then notifies observers. All
    mutations must come from one owning thread (see OwnerGuard); reads are
    safe at any time from that thread, including while a load is suspended.

    Attributes:
        state: The current AsyncState, for pattern matching.
    """

    __slots__ = ('__weakref__', '_guard', '_loads', '_signal', '_state')

    def __init__(self, initial: T = MISSING) -> None:
        """Create an Idle container, or a Loaded one when ``initial`` is given.

        Args:
            initial: Optional value to start in the Loaded state.
        """
        self._state: AsyncState = Idle() if initial is MISSING else Loaded(initial)
        self._guard = OwnerGuard(type(self).__name__)
        self._loads = 0
        self._signal: ChangeSignal[AsyncState] = ChangeSignal(lambda: self._state)

    @classmethod
    def from_state(cls, state: AsyncState) -> AsyncValue[Any]:
        """Create a container starting in an explicit state."""
        container: AsyncValue[Any] = cls()
        container._state = state
        return container

    # --- Projections ---

    @property
    def state(self) -> AsyncState:
        return self._state

    @property
    def current_value(self) -> T | None:
        """Loaded value, or the previous value while reloading, else None."""
        return self._state.current_value

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def is_idle(self) -> bool:
        return self._state.is_idle

    @property
    def is_failed(self) -> bool:
        return self._state.is_failed

    @property
    def has_value(self) -> bool:
        return self._state.has_value

    @property
    def error(self) -> StructuredError | None:
        return self._state.error

    @property
    def version(self) -> int:
        """Number of committed mutations."""
        return self._signal.version

    # --- Transitions ---

    def _commit(self, state: AsyncState) -> None:
        self._guard.check()
        self._state = state
        _log.debug('async_value.transition', status=type(state).__name__, version=self._signal.version + 1)
        self._signal.notify()

    def set(self, value: T) -> None:
        """Force the Loaded state with ``value``."""
        self._commit(self._state.succeed(value))

    def set_error(self, error: StructuredError) -> None:
        """Force the Failed state with ``error``."""
        self._commit(self._state.fail(error))

    def set_error_from(self, error: BaseException | StructuredError) -> None:
        """Normalize ``error`` into the structured taxonomy, then set it."""
        self.set_error(normalize_error(error))

    def start_loading(self) -> None:
        """Enter Loading, keeping the current value as ``previous``."""
        self._commit(self._state.start_loading())

    def reset(self) -> None:
        """Return to Idle."""
        self._commit(self._state.reset())

    def _begin_load(self) -> tuple[AsyncState, AsyncState]:
        """Enter Loading on behalf of load() or run_into(); return (before, loading)."""
        before = self._state
        self.start_loading()
        self._loads += 1
        return before, self._state

    def _end_load(self) -> None:
        self._loads -= 1

    def _abandon(self, loading: AsyncState, before: AsyncState) -> None:
        """Roll back the Loading state entered by a cancelled load.

        Must run before the matching _end_load(), so the cancelled load is
        still counted in ``_loads``.
        """
        # Only undo our own Loading; a newer transition has already won.
        if self._state is not loading:
            return
        if before.is_loading and self._loads == 1:
            # No load owns ``before`` any more; settle on the value it carried.
            previous = before.current_value
            before = Idle() if previous is None else Loaded(previous)
        self._commit(before)

    # --- Convenience loading ---

    async def load(self, operation: Callable[[], Awaitable[T]]) -> None:
        """Run ``operation`` and reflect its outcome in the state.

        Enters Loading before the operation starts, then Loaded with its
        result or Failed with the normalized error. Failures never propagate.
        If the calling task is cancelled, the Loading state this call entered
        is rolled back and the cancellation propagates. A rollback never
        restores a Loading state that no running load owns.

        Args:
            operation: Zero-argument async callable, awaited exactly once.
        """
        before, loading = self._begin_load()
        try:
            value = await operation()
        except Exception as exc:
            error = normalize_error(exc)
            _log.debug('async_value.load_failed', error=msgspec.to_builtins(error))
            self.set_error(error)
        except BaseException:
            self._abandon(loading, before)
            raise
        else:
            self.set(value)
        finally:
            self._end_load()

    async def load_if_needed(self, operation: Callable[[], Awaitable[T]]) -> None:
        """Load unless a value is already loaded; ``operation`` is not called then."""
        if self.has_value:
            return
        await self.load(operation)

    async def reload(self, operation: Callable[[], Awaitable[T]]) -> None:
        """Load even while another load is in flight.

        The earlier call is not cancelled: whichever operation finishes last
        decides the final state.
        """
        await self.load(operation)

    # --- Observation ---

    def subscribe(self, observer: Callable[[AsyncState], Any]) -> Callable[[], None]:
        """Call ``observer`` with the new state after every mutation.

        Returns:
            A callable that removes the observer.
        """
        return self._signal.subscribe(observer)

    def watch(self) -> ChangeWatcher[AsyncState]:
        """Create a watcher yielding the latest state on each change."""
        return self._signal.watch()

    def __repr__(self) -> str:
        return f'AsyncValue({self._state!r})'
