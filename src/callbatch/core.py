"""
Core engine coalescing calls into batched target invocations.
Calls are partitioned by the identity of their completion callback; each
partition accumulates arguments until its timer fires or it reaches the
configured maximum, then the target receives the whole list at once.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import inspect
import types
import typing as t
from dataclasses import dataclass, field

import structlog

from callbatch.exceptions import NotCallableError
from callbatch.options import BatchOptions, OptionsLike
from callbatch.scheduler import AsyncioScheduler, Scheduler

log = structlog.get_logger(__name__)
GroupKey = tuple[int, ...]


class _Sentinel(enum.Enum):
    NO_CALLBACK = "NO_CALLBACK"

    def __repr__(self) -> str:
        return self.value


NO_CALLBACK: t.Final = _Sentinel.NO_CALLBACK
"""Group shared by every call made without a completion callback."""


def _group_key(*, callback: t.Any) -> GroupKey:
    """
    Compute the identity key of a completion callback.

    Parameters
    ----------
    callback : typing.Any
        Completion callback, or ``NO_CALLBACK``.

    Returns
    -------
    GroupKey
        Identity tuple. Bound methods are keyed by their function and
        instance since every attribute access builds a new method object.
    """
    if isinstance(callback, types.MethodType):
        return id(callback.__func__), id(callback.__self__)
    return (id(callback),)


@dataclass
class _Group:
    """Arguments accumulated for one callback since its last flush."""

    key: GroupKey
    # Keeps the callback alive so its id() cannot be reused while pending.
    callback: t.Any
    items: list[t.Any] = field(default_factory=list)
    timer_handle: t.Any | None = None


class Batcher:
    """
    Accumulate call arguments per callback group and flush them to a target.

    A group is flushed when either:
    - it reaches ``maximum`` items (synchronously, inside the triggering call), OR
    - its ``interval`` elapses (on the scheduler, never inside the call)

    Parameters
    ----------
    target : typing.Callable[[list[typing.Any]], typing.Any]
        Function receiving the accumulated arguments of a group.
    options : BatchOptions | Mapping[str, typing.Any] | int | None, optional
        Flush policy; an ``int`` is an interval in milliseconds.
    scheduler : Scheduler | None, optional
        Timer capability. Defaults to an ``AsyncioScheduler`` on the running loop.

    Raises
    ------
    NotCallableError
        If ``target`` is not callable.
    InvalidOptionsError
        If ``options`` fail validation.
    """

    def __init__(
        self,
        target: t.Callable[[list[t.Any]], t.Any],
        options: OptionsLike = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not callable(target):
            raise NotCallableError()
        self._target = target
        self._coroutine_target = inspect.iscoroutinefunction(target)
        self._options = BatchOptions.coerce(value=options)
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._groups: dict[GroupKey, _Group] = {}
        self._inflight: set[asyncio.Future[t.Any]] = set()

        log.debug(
            event="Initialized Batcher",
            target=getattr(target, "__qualname__", repr(target)),
            interval_ms=self._options.interval,
            maximum=self._options.maximum,
            scheduler=type(self._scheduler).__name__,
        )

    @property
    def options(self) -> BatchOptions:
        return self._options

    @staticmethod
    def _format_group(*, group: _Group) -> str:
        """
        Format a group for readability in logs.

        Parameters
        ----------
        group : _Group
            Group to describe.

        Returns
        -------
        str
            Callback qualified name, or ``NO_CALLBACK``.
        """
        if group.callback is NO_CALLBACK:
            return repr(NO_CALLBACK)
        return getattr(group.callback, "__qualname__", type(group.callback).__name__)

    def submit(self, arg: t.Any = None, callback: t.Any = None) -> None:
        """
        Queue one argument into the group of ``callback``.

        Parameters
        ----------
        arg : typing.Any, optional
            Value appended to the group's batch.
        callback : typing.Any, optional
            Completion callback whose identity selects the group. ``None`` maps
            to ``NO_CALLBACK``.

        Notes
        -----
        Errors raised by the target during a size-triggered flush propagate
        from this call.
        """
        if self._coroutine_target:
            # Fail before queueing when there is no loop to run flushes on.
            self._task_loop()
        if callback is None:
            callback = NO_CALLBACK
        key = _group_key(callback=callback)
        group = self._groups.get(key)
        if group is None:
            group = _Group(key=key, callback=callback)
            self._groups[key] = group

        group.items.append(arg)
        pending_count = len(group.items)
        group_name = self._format_group(group=group)
        log.debug(
            event="Queued call for batch",
            group=group_name,
            pending_count=pending_count,
        )

        maximum = self._options.maximum
        if maximum is not None and pending_count >= maximum:
            log.debug(event="Batch maximum reached", group=group_name, maximum=maximum)
            self._flush_group(group=group)
            return

        if group.timer_handle is None:
            try:
                group.timer_handle = self._scheduler.schedule(
                    delay_ms=self._options.interval,
                    callback=functools.partial(self._on_timer, group=group),
                )
            except Exception:
                group.items.pop()
                if not group.items:
                    del self._groups[key]
                raise
            log.debug(
                event="Started batch interval timer",
                group=group_name,
                interval_ms=self._options.interval,
            )

    def _on_timer(self, *, group: _Group) -> None:
        """
        Flush a group whose interval elapsed.

        Parameters
        ----------
        group : _Group
            Group the timer was scheduled for.
        """
        if self._groups.get(group.key) is not group:
            log.debug(event="Ignoring stale batch timer", group=self._format_group(group=group))
            return
        group.timer_handle = None
        log.debug(event="Batch interval elapsed", group=self._format_group(group=group))
        self._flush_group(group=group)

    def _flush_group(self, *, group: _Group) -> None:
        """
        Detach a group and hand its items to the target.

        Parameters
        ----------
        group : _Group
            Group to flush. It is removed before the target runs, so a failing
            target does not leave items behind.
        """
        if group.timer_handle is not None:
            self._scheduler.cancel(handle=group.timer_handle)
            group.timer_handle = None
        if self._groups.get(group.key) is group:
            del self._groups[group.key]

        group_name = self._format_group(group=group)
        log.info(event="Flushing batch", group=group_name, item_count=len(group.items))
        try:
            result = self._target(group.items)
        except Exception as e:
            log.error(
                event="Batch target failed",
                group=group_name,
                item_count=len(group.items),
                error=str(object=e),
            )
            raise

        if inspect.isawaitable(result):
            self._track(awaitable=result, group_name=group_name)

    def _track(self, *, awaitable: t.Awaitable[t.Any], group_name: str) -> None:
        """
        Run an awaitable flush result as a task until ``close`` collects it.

        Parameters
        ----------
        awaitable : typing.Awaitable[typing.Any]
            Value returned by a coroutine target.
        group_name : str
            Group label for logs.
        """
        try:
            loop = self._task_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise
        if inspect.iscoroutine(awaitable):
            task = loop.create_task(awaitable)
        else:
            task = asyncio.ensure_future(awaitable, loop=loop)
        self._inflight.add(task)

        def _on_done(done: asyncio.Future[t.Any]) -> None:
            if done.cancelled() or done.exception() is None:
                self._inflight.discard(done)
                return
            # Failed tasks stay tracked so close() re-raises them.
            log.error(
                event="Batch coroutine failed",
                group=group_name,
                error=str(object=done.exception()),
            )

        task.add_done_callback(_on_done)
        log.debug(event="Tracking batch coroutine", group=group_name, inflight=len(self._inflight))

    def _task_loop(self) -> asyncio.AbstractEventLoop:
        """
        Resolve the loop coroutine flushes are scheduled on.

        Returns
        -------
        asyncio.AbstractEventLoop
            The scheduler's loop when it exposes one, else the running loop.

        Raises
        ------
        RuntimeError
            If neither is available.
        """
        loop = getattr(self._scheduler, "loop", None)
        if loop is not None:
            return loop
        return asyncio.get_running_loop()

    def _select(self, *, callbacks: tuple[t.Any, ...]) -> list[_Group]:
        if not callbacks:
            return list(self._groups.values())
        keys = dict.fromkeys(
            _group_key(callback=NO_CALLBACK if cb is None else cb) for cb in callbacks
        )
        return [self._groups[key] for key in keys if key in self._groups]

    def pending_count(self, *callbacks: t.Any) -> int:
        """
        Count unflushed items.

        Parameters
        ----------
        *callbacks : typing.Any
            Groups to count. All groups when omitted.

        Returns
        -------
        int
            Number of queued items in the selected groups.
        """
        return sum(len(group.items) for group in self._select(callbacks=callbacks))

    def flush(self, *callbacks: t.Any) -> None:
        """
        Flush groups immediately instead of waiting for their timers.

        Parameters
        ----------
        *callbacks : typing.Any
            Groups to flush, in creation order when omitted. Callbacks without
            a pending group are ignored.
        """
        for group in self._select(callbacks=callbacks):
            if self._groups.get(group.key) is group:
                self._flush_group(group=group)

    async def close(self) -> None:
        """
        Flush every pending group and await coroutine flushes still running.

        Notes
        -----
        The first error raised by an awaited flush propagates.
        """
        self.flush()
        if not self._inflight:
            log.debug(event="Batcher closed")
            return
        tasks = list(self._inflight)
        self._inflight.clear()
        log.info(event="Awaiting in-flight batches on close", inflight=len(tasks))
        await asyncio.gather(*tasks)
        log.debug(event="Batcher closed")
