"""Change notification: observer callbacks plus latest-value watching.

ChangeSignal is emitted by AsyncValue and OperationTracker after every committed
mutation. Synchronous observers suit rendering layers with their own
invalidation; ChangeWatcher suits async consumers that only care about the
latest value.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import anyio

from klaw_state._logging import get_logger

__all__ = ['ChangeSignal', 'ChangeWatcher']

_log = get_logger(__name__)


class ChangeSignal[T]:
    """Observer registry with version tracking for change detection.

    The version advances on every notify(); watchers compare it with the
    version they have already seen.
    """

    __slots__ = ('_observers', '_read', '_version', '_waiters')

    def __init__(self, read: Callable[[], T]) -> None:
        self._read = read
        self._version: int = 0
        self._observers: list[Callable[[T], Any]] = []
        self._waiters: list[anyio.Event] = []

    @property
    def version(self) -> int:
        """Number of notifications emitted so far."""
        return self._version

    def current(self) -> T:
        """Read the payload observers would receive now."""
        return self._read()

    def subscribe(self, observer: Callable[[T], Any]) -> Callable[[], None]:
        """Register ``observer`` to be called with the payload after each change.

        Args:
            observer: Callable receiving the committed payload.

        Returns:
            A callable that removes the observer. Calling it twice is harmless.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def notify(self) -> None:
        """Announce a committed change to watchers and observers.

        An observer that raises is logged and skipped; the others still run.
        """
        self._version += 1

        waiters = self._waiters
        self._waiters = []
        for event in waiters:
            event.set()

        if not self._observers:
            return

        payload = self._read()
        for observer in list(self._observers):
            try:
                observer(payload)
            except Exception:
                _log.exception('signal.observer_failed', observer=repr(observer), version=self._version)

    async def wait_beyond(self, seen: int) -> int:
        """Wait until the version differs from ``seen`` and return the new version."""
        while self._version == seen:
            event = anyio.Event()
            self._waiters.append(event)
            await event.wait()
        return self._version

    def watch(self) -> ChangeWatcher[T]:
        """Create a watcher that has already seen the current version."""
        return ChangeWatcher(self, self._version)


class ChangeWatcher[T]:
    """Observes the latest payload of a ChangeSignal.

    Each watcher tracks its own seen version. Use borrow() to read the
    current payload, borrow_and_update() to read and mark as seen, or
    changed() to wait for newer values. Intermediate changes coalesce.
    """

    __slots__ = ('_seen', '_signal')

    def __init__(self, signal: ChangeSignal[T], seen_version: int) -> None:
        self._signal = signal
        self._seen: int = seen_version

    def borrow(self) -> T:
        """Return the current payload without marking it as seen."""
        return self._signal.current()

    def borrow_and_update(self) -> T:
        """Return the current payload and mark the current version as seen."""
        self._seen = self._signal.version
        return self._signal.current()

    def has_changed(self) -> bool:
        """Check whether a change happened since the last observation."""
        return self._seen != self._signal.version

    async def changed(self) -> None:
        """Wait until a change newer than the last observed one is committed.

        Returns immediately if such a change already happened. After
        returning, the new version is marked as seen.
        """
        self._seen = await self._signal.wait_beyond(self._seen)

    def __aiter__(self) -> ChangeWatcher[T]:
        """Enable ``async for state in watcher:``; iteration never ends on its own."""
        return self

    async def __anext__(self) -> T:
        """Wait for the next change and return the payload at that point."""
        await self.changed()
        return self._signal.current()
