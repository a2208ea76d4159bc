"""@tracked decorator: route async store methods through an OperationTracker."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable
from typing import Any

import wrapt

from klaw_state.result import Result

__all__ = ['tracked']


def tracked(
    key: Hashable,
    *,
    into: str | None = None,
    tracker: str = 'operations',
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Result[Any]]]]:
    """Decorator that runs an async method as a tracked operation.

    The decorated method's body becomes the action of
    ``OperationTracker.run(key, ...)`` on the instance's tracker, so callers
    receive a Result instead of an exception. With ``into``, the named
    AsyncValue attribute is driven too, as with ``run_into``.

    Args:
        key: Operation identifier recorded in the tracker.
        into: Name of an AsyncValue attribute on the instance to update.
        tracker: Name of the OperationTracker attribute on the instance.

    Returns:
        A decorator for async methods.

    Example:
        ```python
        class DraftStore(OperationStore[Draft, Op]):
            @tracked(Op.SAVE)
            async def save(self, draft: Draft) -> Draft:
                return await self.api.save(draft)

        result = await store.save(draft)  # Ok(draft) or Err(StructuredError)
        ```
    """

    @wrapt.decorator
    async def wrapper(
        wrapped: Callable[..., Awaitable[Any]],
        instance: Any,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Result[Any]:
        if instance is None:
            msg = f'@tracked({key!r}) must decorate a method'
            raise TypeError(msg)

        operations = getattr(instance, tracker)

        def action() -> Awaitable[Any]:
            return wrapped(*args, **kwargs)

        if into is None:
            return await operations.run(key, action)
        return await operations.run_into(key, getattr(instance, into), action)

    return wrapper
