"""Single-owner confinement for containers and trackers."""

from __future__ import annotations

import threading

from klaw_state._config import get_config
from klaw_state.errors import OwnershipError

__all__ = ['OwnerGuard']


class OwnerGuard:
    """Bind an object to the first thread that mutates it.

    Containers and trackers assume every mutation happens on one serialized
    context, normally the thread running the event loop. Reads are not checked.
    """

    __slots__ = ('_name', '_thread')

    def __init__(self, name: str) -> None:
        self._name = name
        self._thread: int | None = None

    @property
    def owner(self) -> int | None:
        """Thread identifier of the owner, or None before the first mutation."""
        return self._thread

    def check(self) -> None:
        """Claim ownership on first call, then reject mutations from other threads.

        Raises:
            OwnershipError: If called from a thread other than the owner.
        """
        if not get_config().check_ownership:
            return

        ident = threading.get_ident()
        if self._thread is None:
            self._thread = ident
        elif self._thread != ident:
            msg = f'{self._name} is owned by thread {self._thread} but was mutated from thread {ident}'
            raise OwnershipError(msg)

    def release(self) -> None:
        """Forget the owner so the next mutating thread claims the object."""
        self._thread = None
