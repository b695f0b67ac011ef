"""Event Emitter Implementation.

This module provides ``EventEmitterMixin``, the class that owns the listener
registry and implements every registration, removal and dispatch operation.
It is used three ways:

- as the base of ``EventHub`` (standalone hub),
- as a base class of any host class (``class User(EventEmitterMixin)``),
- as the source of the function set copied by ``mixin()``.

The registry is created lazily, so host classes never have to call
``EventEmitterMixin.__init__``.

## Dispatch modes

```python
hub = EventHub()
hub.on("saved", lambda event, path: f"saved {path}")
hub.on("*", lambda event, *args: event.type)

hub.emit("saved", "/tmp/a").result        # ['saved /tmp/a', 'saved']
await hub.emit_after(50, "saved", "/b")   # handlers run 50ms later
await hub.emit_async("saved", "/c")       # handlers run on the next loop tick
event = await hub.when("saved", timeout_ms=1000)
```

"""

import asyncio
import inspect
from numbers import Real
from typing import Any, Self

from loguru import logger

from .core import (
    WILDCARD,
    EmitEvent,
    EventEmissionError,
    HandlerRegistrationError,
    Listener,
    ListenerRemovedError,
    ListenerView,
    T_Handler,
    T_NeverCalled,
    WhenTimeoutError,
    event_name_of,
)
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle, chain_future

# Public capability set, in the order bind() and mixin() attach it
EVENT_SOURCE_METHODS = (
    "on",
    "only",
    "once",
    "when",
    "emit",
    "emit_after",
    "emit_async",
    "bind",
    "listeners",
    "has_listeners",
    "has_listener",
    "listener_count",
    "registered_events",
    "off",
)


class EventEmitterMixin:
    """Listener registry with synchronous, delayed and asynchronous dispatch.

    Handlers are called as ``handler(event, *args, **kwargs)`` where ``event``
    is the ``EmitEvent`` record of the emission. Listeners registered under
    ``"*"`` receive every emission after the listeners of the concrete name.
    """

    # Optional per-instance overrides, looked up lazily
    _scheduler: Scheduler | None = None
    _when_timeout_ms: float | None = None

    def _registry(self) -> dict[str, list[Listener]]:
        registry = getattr(self, "_event_listeners", None)
        if registry is None:
            registry = {}
            self._event_listeners = registry
        return registry

    def _slot(self, event_name: Any, create: bool = False) -> list[Listener]:
        name = event_name_of(event_name)
        if create:
            return self._registry().setdefault(name, [])
        registry = getattr(self, "_event_listeners", None) or {}
        return registry.get(name) or []

    def _get_scheduler(self) -> Scheduler:
        scheduler = getattr(self, "_scheduler", None)
        if scheduler is None:
            scheduler = AsyncioScheduler()
            self._scheduler = scheduler
        return scheduler

    def _dispatch_list(self, event: EmitEvent) -> list[Listener]:
        registry = getattr(self, "_event_listeners", None) or {}
        specific = registry.get(event.type) or []
        wildcard = registry.get(WILDCARD) or []
        return [*specific, *wildcard]

    def _notify_never_called(self, removals: list[tuple[str, list[Listener]]]) -> None:
        # Callers finish updating the registry before notifying
        callbacks = [
            (listener.on_never_called, event_name)
            for event_name, removed in removals
            for listener in removed
            if listener.on_never_called is not None
        ]
        if not callbacks:
            return
        scheduler = self._get_scheduler()
        for callback, event_name in callbacks:
            logger.trace(f"Scheduling never-called notification for '{event_name}': {callback}")
            scheduler.call_soon(callback, event_name)

    def on(self, event_name: str, handler: T_Handler) -> Self:
        """Register ``handler`` for ``event_name``.

        The same handler may be registered several times; it is then called
        once per registration.

        Raises:
            HandlerRegistrationError: If handler is not callable
        """
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        self._slot(event_name, create=True).append(Listener(invoke=handler))
        logger.debug(f"Registered handler for '{event_name_of(event_name)}': {handler}")
        return self

    def only(self, event_name: str, handler: T_Handler) -> Self:
        """Register ``handler`` unless it is already registered for ``event_name``."""
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        slot = self._slot(event_name, create=True)
        if any(listener.invoke == handler for listener in slot):
            logger.trace(f"Handler already registered for '{event_name_of(event_name)}': {handler}")
            return self
        slot.append(Listener(invoke=handler))
        logger.debug(f"Registered handler for '{event_name_of(event_name)}': {handler}")
        return self

    def once(self, event_name: str, handler: T_Handler, on_never_called: T_NeverCalled | None = None) -> Self:
        """Register a single-shot ``handler``.

        The listener removes itself right before ``handler`` runs. If it is
        removed by ``off()`` without having fired, ``on_never_called`` is
        scheduled with the event name.
        """
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        def _fire_once(*args: Any, **kwargs: Any) -> Any:
            listener.on_never_called = None
            self.off(event_name, _fire_once)
            return handler(*args, **kwargs)

        listener = Listener(invoke=_fire_once, original_handler=handler, on_never_called=on_never_called)
        self._slot(event_name, create=True).append(listener)
        logger.debug(f"Registered one-shot handler for '{event_name_of(event_name)}': {handler}")
        return self

    def when(self, event_name: str, timeout_ms: float | None = None) -> asyncio.Future:
        """Return a future resolved with the record of the next ``event_name`` emission.

        Args:
            event_name: Event to wait for
            timeout_ms: Reject with ``WhenTimeoutError`` if nothing is emitted
                within this many milliseconds. Falls back to the emitter's
                default; ``None`` or a non-positive value waits forever.

        The future is rejected with ``ListenerRemovedError`` if the listener is
        removed with ``off()`` first. Cancelling the future removes the
        listener.
        """
        scheduler = self._get_scheduler()
        future = scheduler.create_future()
        timer: TimerHandle | None = None
        name = event_name_of(event_name)

        if timeout_ms is None:
            timeout_ms = getattr(self, "_when_timeout_ms", None)

        def _reject(reason: Any) -> None:
            if future.done():
                return
            if not isinstance(reason, BaseException):
                reason = ListenerRemovedError(name)
            future.set_exception(reason)

        def _resolve(event: EmitEvent, *args: Any, **kwargs: Any) -> None:
            if timer is not None:
                timer.cancel()
            if future.done():
                return
            event.args = args
            event.kwargs = kwargs
            future.set_result(event)

        def _expire() -> None:
            logger.warning(f"Timed out after {timeout_ms}ms waiting for '{name}'")
            _reject(WhenTimeoutError(name, timeout_ms))
            self.off(name, _resolve)

        def _on_done(done: asyncio.Future) -> None:
            if done.cancelled():
                if timer is not None:
                    timer.cancel()
                self.off(name, _resolve)

        self.once(name, _resolve, _reject)
        if timeout_ms is not None and timeout_ms > 0:
            timer = scheduler.call_later(timeout_ms, _expire)
        future.add_done_callback(_on_done)
        return future

    def off(self, event_name: str | None = None, handler: T_Handler | None = None) -> Self:
        """Remove listeners.

        - ``off()`` removes every listener of every event.
        - ``off(name)`` removes every listener of ``name``.
        - ``off(name, handler)`` removes every registration of ``handler``
          (including ``once()`` wrappers around it) from ``name``.

        Removed listeners that never fired get their never-called callback
        scheduled. Unknown names and handlers are ignored.

        Raises:
            SchedulerUnavailableError: If a removed listener has a never-called
                callback and the scheduler has no running loop. The listeners
                are removed before this is raised.
        """
        registry = getattr(self, "_event_listeners", None)
        if not registry:
            return self

        if event_name is None:
            removals = list(registry.items())
            registry.clear()
            logger.debug("Removed all listeners")
            self._notify_never_called(removals)
            return self

        name = event_name_of(event_name)
        slot = registry.get(name)
        if slot is None:
            return self

        if handler is None:
            del registry[name]
            logger.debug(f"Removed {len(slot)} listener(s) for '{name}'")
            self._notify_never_called([(name, slot)])
            return self

        removed = []
        for index in range(len(slot) - 1, -1, -1):
            if slot[index].matches(handler):
                removed.append(slot.pop(index))
        if removed:
            logger.debug(f"Removed {len(removed)} listener(s) for '{name}': {handler}")
            self._notify_never_called([(name, removed)])
        return self

    def emit(self, event: Any, *args: Any, **kwargs: Any) -> EmitEvent:
        """Call every listener of ``event`` now and return the event record.

        ``event`` is an event name, a mapping with a ``type`` key (extra keys
        become record attributes) or an ``EmitEvent``. ``record.result``
        collects the handler return values that are not ``None``.

        Exceptions raised by a handler propagate and stop the dispatch.
        """
        record = EmitEvent.coerce(event)
        record.result = []

        listeners = self._dispatch_list(record)
        if not listeners:
            logger.trace(f"No listeners for '{record.type}'")
            return record

        logger.trace(f"Emitting '{record.type}' to {len(listeners)} listener(s)")
        for listener in listeners:
            listener.on_never_called = None
            value = listener.invoke(record, *args, **kwargs)
            if value is not None:
                record.result.append(value)
        return record

    def emit_after(self, delay_ms: Any, *args: Any, **kwargs: Any) -> asyncio.Future:
        """Call every listener of an event after ``delay_ms`` milliseconds.

        Called as ``emit_after(delay_ms, event, *args)``. The delay may be left
        out: when the first argument is not a number it is the event and the
        listeners run on the next loop iteration.

        Each listener runs in its own scheduled callback. The returned future
        resolves with the event record once all listeners are done;
        ``record.result`` then holds every return value in order, ``None``
        included. Awaitable return values are awaited. The future fails with
        the first exception raised by a listener.

        Raises:
            EventEmissionError: If a delay is given without an event
        """
        if isinstance(delay_ms, Real) and not isinstance(delay_ms, bool):
            if not args:
                raise EventEmissionError("emit_after() needs an event after the delay")
            event, args = args[0], args[1:]
        else:
            event, delay_ms = delay_ms, 0

        scheduler = self._get_scheduler()
        record = EmitEvent.coerce(event)
        record.result = []

        listeners = self._dispatch_list(record)
        if not listeners:
            logger.trace(f"No listeners for '{record.type}'")
            future = scheduler.create_future()
            future.set_result(record)
            return future

        logger.trace(f"Scheduling '{record.type}' for {len(listeners)} listener(s) after {delay_ms}ms")
        pending = [self._schedule_listener(scheduler, delay_ms, listener, record, args, kwargs) for listener in listeners]
        outcome = scheduler.create_future()

        def _settle(gathered: asyncio.Future) -> None:
            if outcome.done():
                return
            if gathered.cancelled():
                outcome.cancel()
                return
            error = gathered.exception()
            if error is not None:
                outcome.set_exception(error)
                return
            record.result = list(gathered.result())
            logger.trace(f"Event '{record.type}' processed, {len(record.result)} results")
            outcome.set_result(record)

        scheduler.gather(pending).add_done_callback(_settle)
        return outcome

    def emit_async(self, event: Any, *args: Any, **kwargs: Any) -> asyncio.Future:
        """Call every listener of ``event`` on the next loop iteration.

        Same semantics as ``emit_after`` without a delay.
        """
        return self.emit_after(0, event, *args, **kwargs)

    def _schedule_listener(
        self,
        scheduler: Scheduler,
        delay_ms: float | None,
        listener: Listener,
        record: EmitEvent,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> asyncio.Future:
        future = scheduler.create_future()

        def _run() -> None:
            if future.done():
                return
            listener.on_never_called = None
            try:
                value = listener.invoke(record, *args, **kwargs)
            except Exception as e:
                logger.error(f"Handler {listener.handler} failed for '{record.type}': {e}")
                future.set_exception(e)
                return
            if inspect.isawaitable(value):
                chain_future(asyncio.ensure_future(value), future)
            else:
                future.set_result(value)

        scheduler.call_later(delay_ms, _run)
        return future

    def listeners(self, event_name: Any) -> ListenerView:
        """Return a live view of the handlers registered for ``event_name``, in dispatch order.

        The view follows later ``on()`` and ``off()`` calls. Handlers
        registered with ``once()`` are listed as the original handler.
        Wildcard listeners are only listed for ``"*"`` itself.
        """
        name = event_name_of(event_name)
        return ListenerView(lambda: self._slot(name), name)

    def has_listeners(self, event_name: Any) -> bool:
        """Check if ``event_name`` has any listener."""
        return bool(self._slot(event_name))

    def has_listener(self, event_name: Any, handler: T_Handler | None = None) -> bool:
        """Check if ``handler`` listens on ``event_name``.

        With a single argument, or with ``"*"`` as event name, every event is
        searched.
        """
        if handler is None and callable(event_name):
            event_name, handler = WILDCARD, event_name
        if handler is None:
            return False

        name = event_name_of(event_name)
        if name != WILDCARD:
            return any(listener.matches(handler) for listener in self._slot(name))

        registry = getattr(self, "_event_listeners", None) or {}
        return any(listener.matches(handler) for slot in registry.values() for listener in slot)

    def listener_count(self, event_name: Any) -> int:
        """Get the number of listeners registered for ``event_name``."""
        return len(self._slot(event_name))

    def registered_events(self) -> list[str]:
        """Get all event names that currently have a listener slot."""
        registry = getattr(self, "_event_listeners", None) or {}
        return list(registry.keys())

    def bind(self, target: Any) -> Any:
        """Attach this emitter's capability set to ``target``.

        After ``emitter.bind(obj)``, ``obj.on(...)`` is ``emitter.on(...)``.

        Raises:
            MixinError: If ``target`` does not accept new attributes
        """
        from .mixin import attach_bound_methods

        return attach_bound_methods(self, target)
