"""Core Event Hub Components.

This module contains the fundamental abstractions shared by every emitter in
the package. They carry no scheduling logic and can be used from plain
synchronous code.

## Key Components

- **EventSource**: Protocol describing the emitter capability set
- **Listener**: Registry entry that wraps a handler together with its tags
- **ListenerView**: Live read-only sequence returned by ``listeners()``
- **EmitEvent**: The event record passed as first argument to every handler
- **EventHubError**: Base exception for all event hub related errors

## Usage Example

```python
from onemit.hub.core import EmitEvent

event = EmitEvent.coerce({"type": "user.created", "user_id": 7})
assert event.type == "user.created"
assert event.user_id == 7
assert str(event) == "user.created"
```

"""

import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

WILDCARD = "*"

T_Handler = Callable[..., Any]
T_NeverCalled = Callable[[str], Any]

# Set by the emitter itself, never taken from caller-supplied records
_RESERVED_KEYS = frozenset({"time_stamp", "result"})


def _now_ms() -> float:
    return time.time() * 1000


class EmitEvent(BaseModel):
    """Event record created for every emission.

    Caller-supplied keys are kept as extra attributes, so an emission of
    ``{"type": "saved", "path": "/tmp/x"}`` gives handlers ``event.path``.
    """

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    type: str = Field(default=WILDCARD, description="Event name")
    time_stamp: float = Field(default_factory=_now_ms, description="Creation time in milliseconds since epoch")
    result: list[Any] = Field(default_factory=list, description="Values returned by the handlers")
    args: tuple[Any, ...] = Field(default=(), description="Positional emission arguments (set by when())")
    kwargs: dict[str, Any] = Field(default_factory=dict, description="Keyword emission arguments (set by when())")

    @classmethod
    def coerce(cls, value: Any) -> "EmitEvent":
        """Build a record from an event name, a mapping or an existing record.

        Raises:
            EventEmissionError: If ``value`` cannot describe an event
        """
        if isinstance(value, EmitEvent):
            return value
        if value is None:
            return cls(type="")
        if isinstance(value, str):
            return cls(type=value)
        if isinstance(value, Mapping):
            props = {key: item for key, item in value.items() if key not in _RESERVED_KEYS}
            try:
                return cls(**props)
            except ValidationError as e:
                raise EventEmissionError(f"Invalid event record: {e}") from e
        raise EventEmissionError(f"Event must be a name, a mapping or an EmitEvent, got: {type(value).__name__}")

    def __str__(self) -> str:
        return self.type


def event_name_of(event: str | EmitEvent | None) -> str:
    """Return the registry key for a name or a record."""
    if isinstance(event, EmitEvent):
        return event.type
    return "" if event is None else str(event)


@dataclass(eq=False, slots=True)
class Listener:
    """A registered handler and its tags.

    ``invoke`` is what dispatch calls. ``original_handler`` is set for
    wrappers created by ``once()`` so ``off(name, handler)`` can still find
    them. ``on_never_called`` is called with the event name when the listener
    is removed without ever having fired.
    """

    invoke: T_Handler
    original_handler: T_Handler | None = None
    on_never_called: T_NeverCalled | None = None

    @property
    def handler(self) -> T_Handler:
        return self.invoke if self.original_handler is None else self.original_handler

    def matches(self, handler: T_Handler) -> bool:
        if self.invoke == handler:
            return True
        return self.original_handler is not None and self.original_handler == handler


class ListenerView(Sequence):
    """Live read-only sequence of the handlers registered for one event.

    The slot is looked up on every access, so a view taken before the first
    ``on()`` or after ``off()`` follows later registrations.
    """

    __slots__ = ("_resolve", "_name")
    __hash__ = None

    def __init__(self, resolve: Callable[[], list[Listener]], name: str):
        self._resolve = resolve
        self._name = name

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [listener.handler for listener in self._resolve()[index]]
        return self._resolve()[index].handler

    def __len__(self) -> int:
        return len(self._resolve())

    def __iter__(self) -> Iterator[T_Handler]:
        return iter([listener.handler for listener in self._resolve()])

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (ListenerView, list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ListenerView({self._name!r}, {list(self)!r})"


@runtime_checkable
class EventSource(Protocol):
    """Capability set shared by hubs, mixin subclasses and mixed-in objects."""

    def on(self, event_name: str, handler: T_Handler) -> Any: ...

    def only(self, event_name: str, handler: T_Handler) -> Any: ...

    def once(self, event_name: str, handler: T_Handler, on_never_called: T_NeverCalled | None = None) -> Any: ...

    def when(self, event_name: str, timeout_ms: float | None = None) -> Any: ...

    def off(self, event_name: str | None = None, handler: T_Handler | None = None) -> Any: ...

    def emit(self, event: Any, *args: Any, **kwargs: Any) -> EmitEvent: ...

    def emit_after(self, delay_ms: Any, *args: Any, **kwargs: Any) -> Any: ...

    def emit_async(self, event: Any, *args: Any, **kwargs: Any) -> Any: ...

    def listeners(self, event_name: str) -> Sequence[T_Handler]: ...

    def has_listeners(self, event_name: str) -> bool: ...

    def has_listener(self, event_name: Any, handler: T_Handler | None = None) -> bool: ...


class EventHubError(Exception):
    """Base exception for all event hub related errors.

    Use this for catching any event hub related error:
        ```python
        try:
            await hub.when("ready", timeout_ms=500)
        except EventHubError as e:
            logger.error(f"Event hub error: {e}")
        ```
    """


class HandlerRegistrationError(EventHubError):
    """Raised when a handler cannot be registered because it is not callable."""


class EventEmissionError(EventHubError):
    """Raised when the emitted value cannot be turned into an event record."""


class ListenerRemovedError(EventHubError):
    """Raised into a pending ``when()`` future whose listener was removed before firing."""

    kind = "removed"

    def __init__(self, event_name: str):
        self.event_name = event_name
        super().__init__(f"Listener for '{event_name}' was removed before the event fired")


class WhenTimeoutError(EventHubError, TimeoutError):
    """Raised into a pending ``when()`` future when no emission happened in time."""

    kind = "timeout"

    def __init__(self, event_name: str, timeout_ms: float):
        self.event_name = event_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after {timeout_ms}ms waiting for '{event_name}'")


class SchedulerUnavailableError(EventHubError, RuntimeError):
    """Raised when deferred work is requested but the scheduler has no running loop.

    ``off()`` raises it only after every listener has been removed, so the
    registry is consistent even though the never-called callbacks were not
    scheduled.
    """


class MixinError(EventHubError, TypeError):
    """Raised when a target object cannot receive the emitter capability set."""
