"""
Main endpoint for users.
Exposes a `batcher` function that wraps a target into a batched function,
and a `batched` decorator doing the same at definition time.
"""

import functools
import typing as t

from callbatch.core import Batcher
from callbatch.options import BatchOptions, OptionsLike
from callbatch.scheduler import Scheduler


class BatchedFunction(t.Protocol):
    """
    Callable returned by ``batcher``.

    Attributes
    ----------
    batcher : Batcher
        Engine holding the pending groups.
    """

    batcher: Batcher

    def __call__(self, arg: t.Any = None, callback: t.Any = None) -> None: ...

    def flush(self, *callbacks: t.Any) -> None: ...

    async def close(self) -> None: ...


def batcher(
    target: t.Callable[[list[t.Any]], t.Any],
    options: OptionsLike = None,
    *,
    scheduler: Scheduler | None = None,
) -> BatchedFunction:
    """
    Wrap ``target`` so calls made close together reach it as one list.

    Parameters
    ----------
    target : typing.Callable[[list[typing.Any]], typing.Any]
        Function receiving the accumulated arguments of a group.
    options : BatchOptions | Mapping[str, typing.Any] | int | None, optional
        ``None`` for defaults, an ``int`` interval in milliseconds, or a mapping
        with ``interval`` and ``maximum`` keys.
    scheduler : Scheduler | None, optional
        Timer capability. Defaults to the running asyncio loop.

    Returns
    -------
    BatchedFunction
        Function taking ``(arg=None, callback=None)``. Calls sharing the same
        ``callback`` object are batched together.

    Raises
    ------
    NotCallableError
        If ``target`` is not callable.
    InvalidOptionsError
        If ``options`` fail validation.

    Notes
    -----
    >>> from callbatch import batcher
    >>> save = batcher(store_many, {"interval": 10, "maximum": 100})
    >>> save({"id": 1}, on_saved)
    >>> save({"id": 2}, on_saved)  # store_many([{"id": 1}, {"id": 2}]) 10ms later
    """
    engine = Batcher(target=target, options=options, scheduler=scheduler)

    @functools.wraps(wrapped=target)
    def batched_function(arg: t.Any = None, callback: t.Any = None) -> None:
        """
        Queue ``arg`` in the batch of ``callback``.

        Parameters
        ----------
        arg : typing.Any, optional
            Value appended to the batch.
        callback : typing.Any, optional
            Completion callback selecting the batch group.
        """
        engine.submit(arg=arg, callback=callback)

    # Same shape as functools.lru_cache's helpers.
    batched_function.batcher = engine  # type: ignore[attr-defined]
    batched_function.flush = engine.flush  # type: ignore[attr-defined]
    batched_function.close = engine.close  # type: ignore[attr-defined]
    return t.cast(BatchedFunction, batched_function)


def batched(
    options: OptionsLike = None,
    *,
    scheduler: Scheduler | None = None,
) -> t.Callable[[t.Callable[[list[t.Any]], t.Any]], BatchedFunction]:
    """
    Decorator form of ``batcher``.

    Parameters
    ----------
    options : BatchOptions | Mapping[str, typing.Any] | int | None, optional
        Flush policy, validated when the decorator is built.
    scheduler : Scheduler | None, optional
        Timer capability shared by the decorated function.

    Returns
    -------
    typing.Callable
        Decorator turning a list-consuming function into a batched function.
    """
    resolved = BatchOptions.coerce(value=options)

    def decorator(target: t.Callable[[list[t.Any]], t.Any]) -> BatchedFunction:
        return batcher(target, resolved, scheduler=scheduler)

    return decorator
