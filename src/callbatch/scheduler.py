"""
Timer capability used by the batcher to defer group flushes.
The batcher never touches the host timer primitives directly: it only asks a
``Scheduler`` to run a callback later and, occasionally, to cancel it.
"""

from __future__ import annotations

import asyncio
import typing as t

import structlog

log = structlog.get_logger(__name__)


@t.runtime_checkable
class Scheduler(t.Protocol):
    """
    Deferred-execution primitive injected into a ``Batcher``.

    Notes
    -----
    ``schedule`` must never run ``callback`` synchronously, even for a zero
    delay: a zero delay means "on the next scheduler turn".
    """

    def schedule(self, delay_ms: int, callback: t.Callable[[], None]) -> t.Any:
        """
        Run ``callback`` once, no sooner than ``delay_ms`` milliseconds from now.

        Parameters
        ----------
        delay_ms : int
            Delay in milliseconds.
        callback : typing.Callable[[], None]
            Function to run when the timer fires.

        Returns
        -------
        typing.Any
            Opaque handle accepted by ``cancel``.
        """
        ...

    def cancel(self, handle: t.Any) -> None:
        """
        Cancel a handle returned by ``schedule``.

        Parameters
        ----------
        handle : typing.Any
            Handle to cancel. Cancelling a fired handle is a no-op.
        """
        ...


class AsyncioScheduler:
    """
    ``Scheduler`` backed by an asyncio event loop.

    Parameters
    ----------
    loop : asyncio.AbstractEventLoop | None, optional
        Loop to schedule on. When omitted, the running loop at schedule time
        is used, which means the batched function must be called from a
        coroutine or a loop callback.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """
        Loop timers and coroutine flushes run on.

        Raises
        ------
        RuntimeError
            If no loop was given and none is running.
        """
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def schedule(self, delay_ms: int, callback: t.Callable[[], None]) -> asyncio.Handle:
        """
        Register ``callback`` on the event loop.

        Parameters
        ----------
        delay_ms : int
            Delay in milliseconds. Zero defers to the next loop iteration.
        callback : typing.Callable[[], None]
            Function to run when the timer fires.

        Returns
        -------
        asyncio.Handle
            Loop handle for the deferred call.
        """
        loop = self.loop
        if delay_ms <= 0:
            return loop.call_soon(callback)
        return loop.call_later(delay_ms / 1000, callback)

    def cancel(self, handle: asyncio.Handle) -> None:
        """
        Cancel a pending loop callback.

        Parameters
        ----------
        handle : asyncio.Handle
            Handle returned by ``schedule``.
        """
        if not handle.cancelled():
            handle.cancel()
            log.debug(event="Cancelled scheduled flush", handle=repr(handle))
