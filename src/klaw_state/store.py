"""Store composition: forward a container (and tracker) to a user-defined class.

A store *holds* an AsyncValue and optionally an OperationTracker and forwards
their contract 1:1, so views talk to the store while the state machine lives
in the held objects.

Example:
    ```python
    class Op(Enum):
        FETCH = 'fetch'
        RECORD = 'record'

    class WorkoutStore(OperationStore[list[Workout], Op]):
        def __init__(self, api: WorkoutApi) -> None:
            super().__init__(initial=[])
            self.api = api

        @tracked(Op.FETCH, into='value')
        async def refresh(self) -> list[Workout]:
            return await self.api.list_workouts()
    ```
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Protocol, runtime_checkable

from klaw_state._sentinel import MISSING
from klaw_state.errors import StructuredError
from klaw_state.state import AsyncState
from klaw_state.tracker import OperationTracker
from klaw_state.value import AsyncValue

__all__ = [
    'AsyncStateProvider',
    'OperationStore',
    'OperationTrackable',
    'Store',
    'any_loading',
    'first_error',
]


@runtime_checkable
class AsyncStateProvider(Protocol):
    """A store exposing aggregate loading and error state."""

    @property
    def is_loading(self) -> bool: ...

    @property
    def first_error(self) -> StructuredError | None: ...

    def clear_errors(self) -> None: ...


@runtime_checkable
class OperationTrackable[K: Hashable](Protocol):
    """A store exposing per-operation progress and errors."""

    def is_operation_active(self, key: K) -> bool: ...

    @property
    def has_active_operations(self) -> bool: ...

    def operation_error(self, key: K) -> StructuredError | None: ...


def any_loading(*values: AsyncValue[Any]) -> bool:
    """Return True if any of ``values`` is loading."""
    return any(value.is_loading for value in values)


def first_error(*values: AsyncValue[Any]) -> StructuredError | None:
    """Return the error of the first failed container among ``values``."""
    for value in values:
        if value.error is not None:
            return value.error
    return None


class Store[T]:
    """Base for stores holding a single AsyncValue as ``self.value``."""

    def __init__(self, initial: T = MISSING) -> None:
        self.value: AsyncValue[T] = AsyncValue(initial)

    @property
    def state(self) -> AsyncState:
        return self.value.state

    @property
    def current_value(self) -> T | None:
        return self.value.current_value

    @property
    def is_loading(self) -> bool:
        return self.value.is_loading

    @property
    def is_idle(self) -> bool:
        return self.value.is_idle

    @property
    def is_failed(self) -> bool:
        return self.value.is_failed

    @property
    def has_value(self) -> bool:
        return self.value.has_value

    @property
    def error(self) -> StructuredError | None:
        return self.value.error

    @property
    def first_error(self) -> StructuredError | None:
        return self.value.error

    def set(self, value: T) -> None:
        self.value.set(value)

    def set_error(self, error: StructuredError) -> None:
        self.value.set_error(error)

    def set_error_from(self, error: BaseException | StructuredError) -> None:
        self.value.set_error_from(error)

    def start_loading(self) -> None:
        self.value.start_loading()

    def reset(self) -> None:
        self.value.reset()

    def clear_errors(self) -> None:
        """Return a failed value to Idle."""
        if self.value.is_failed:
            self.value.reset()

    async def load(self, operation: Callable[[], Awaitable[T]]) -> None:
        await self.value.load(operation)

    async def load_if_needed(self, operation: Callable[[], Awaitable[T]]) -> None:
        await self.value.load_if_needed(operation)

    async def reload(self, operation: Callable[[], Awaitable[T]]) -> None:
        await self.value.reload(operation)

    def __repr__(self) -> str:
        return f'{type(self).__name__}(value={self.value!r})'


class OperationStore[T, K: Hashable](Store[T]):
    """Store that also tracks named operations as ``self.operations``."""

    def __init__(self, initial: T = MISSING) -> None:
        super().__init__(initial)
        self.operations: OperationTracker[K] = OperationTracker()

    @property
    def is_loading(self) -> bool:
        """True while the value loads or any operation is active."""
        return self.value.is_loading or self.operations.has_active_operations

    @property
    def first_error(self) -> StructuredError | None:
        if self.value.error is not None:
            return self.value.error
        return next(iter(self.operations.all_errors.values()), None)

    def clear_errors(self) -> None:
        """Clear operation errors and return a failed value to Idle."""
        super().clear_errors()
        self.operations.clear_all_errors()

    def is_operation_active(self, key: K) -> bool:
        return self.operations.is_active(key)

    @property
    def has_active_operations(self) -> bool:
        return self.operations.has_active_operations

    def operation_error(self, key: K) -> StructuredError | None:
        return self.operations.error_for(key)

    def __repr__(self) -> str:
        return f'{type(self).__name__}(value={self.value!r}, operations={self.operations!r})'
