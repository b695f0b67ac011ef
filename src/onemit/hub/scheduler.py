"""Scheduling strategies used by emitters.

An emitter never looks up timers or futures on its own. Everything that
happens "later" (``emit_after``, ``emit_async``, ``when`` timeouts and
never-called notifications) goes through a ``Scheduler``, so hosts can swap
in their own loop or a deterministic test double.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from loguru import logger

from .core import SchedulerUnavailableError


class TimerHandle(Protocol):
    """Anything returned by a scheduler that can cancel a pending callback."""

    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Delay scheduler and future factory consumed by emitters."""

    @abstractmethod
    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback`` as soon as possible, never synchronously."""

    @abstractmethod
    def call_later(self, delay_ms: float | None, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        """Run ``callback`` after ``delay_ms`` milliseconds.

        A delay of ``0`` or ``None`` behaves like ``call_soon``.
        """

    @abstractmethod
    def create_future(self) -> asyncio.Future:
        """Return a new pending future."""

    @abstractmethod
    def gather(self, futures: Iterable[asyncio.Future]) -> asyncio.Future:
        """Aggregate ``futures`` into one future of their ordered results.

        The aggregate rejects with the first error raised by any input.
        """


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    When no loop is given, the running loop is looked up the first time it is
    needed and kept afterwards. Without a running loop every operation raises
    ``SchedulerUnavailableError``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise SchedulerUnavailableError("AsyncioScheduler needs a running event loop") from e
            logger.trace(f"AsyncioScheduler attached to loop {self._loop!r}")
        return self._loop

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        return self.loop.call_soon(callback, *args)

    def call_later(self, delay_ms: float | None, callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
        if not delay_ms or delay_ms <= 0:
            return self.call_soon(callback, *args)
        return self.loop.call_later(delay_ms / 1000, callback, *args)

    def create_future(self) -> asyncio.Future:
        return self.loop.create_future()

    def gather(self, futures: Iterable[asyncio.Future]) -> asyncio.Future:
        return asyncio.gather(*futures)


def chain_future(source: asyncio.Future, destination: asyncio.Future) -> None:
    """Settle ``destination`` with the outcome of ``source`` once it is done."""

    def _copy(done: asyncio.Future) -> None:
        if destination.done():
            return
        if done.cancelled():
            destination.cancel()
            return
        error = done.exception()
        if error is not None:
            destination.set_exception(error)
        else:
            destination.set_result(done.result())

    source.add_done_callback(_copy)
