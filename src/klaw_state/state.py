"""AsyncState: Idle | Loading[T] | Loaded[T] | Failed for asynchronously obtained values.

Each variant is a frozen struct, so a state can never be "loading" and "failed"
at the same time. Transitions are pure methods that return the next state.

Example:
    ```python
    match container.state:
        case Idle():
            render_placeholder()
        case Loading(previous):
            render_spinner(stale=previous)
        case Loaded(value):
            render(value)
        case Failed(error):
            render_error(error.message)
    ```
"""

from __future__ import annotations

from typing import Any

import msgspec

from klaw_state.errors import StructuredError

__all__ = ['AsyncState', 'Failed', 'Idle', 'Loaded', 'Loading']


class AsyncState(msgspec.Struct, frozen=True, gc=False, tag_field='status'):
    """Base of the four exclusive states.

    Accessors default to the "nothing here" answer; each variant overrides
    only what it holds. Transition methods are total and never raise.
    """

    @property
    def current_value(self) -> Any | None:
        """The loaded value, or the value carried through a reload, else None."""
        return None

    @property
    def is_idle(self) -> bool:
        return False

    @property
    def is_loading(self) -> bool:
        return False

    @property
    def has_value(self) -> bool:
        """True only for Loaded; a Loading state with a previous value is not loaded."""
        return False

    @property
    def is_failed(self) -> bool:
        return False

    def start_loading(self) -> Loading[Any]:
        """Enter Loading, carrying forward whatever value is currently available."""
        return Loading(self.current_value)

    def succeed[T](self, value: T) -> Loaded[T]:
        """Enter Loaded with ``value``."""
        return Loaded(value)

    def fail(self, error: StructuredError) -> Failed:
        """Enter Failed with ``error``."""
        return Failed(error)

    def reset(self) -> Idle:
        """Return to Idle."""
        return Idle()


class Idle(AsyncState, frozen=True, gc=False, tag='idle'):
    """Nothing requested yet."""

    @property
    def is_idle(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


class Loading[T](AsyncState, frozen=True, gc=False, tag='loading'):
    """Request in flight.

    Attributes:
        previous: Last known value, kept so stale content can be shown while
            refreshing. None when nothing was available.
    """

    previous: T | None = None

    @property
    def current_value(self) -> T | None:
        return self.previous

    @property
    def is_loading(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


class Loaded[T](AsyncState, frozen=True, gc=False, tag='loaded'):
    """Value available."""

    value: T

    @property
    def current_value(self) -> T:
        return self.value

    @property
    def has_value(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


class Failed(AsyncState, frozen=True, gc=False, tag='failed'):
    """Last request failed."""

    error: StructuredError

    @property
    def is_failed(self) -> bool:
        return True
