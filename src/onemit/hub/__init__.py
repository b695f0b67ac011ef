"""Event Hub System for Decoupled Component Communication.

This package provides a small embeddable publish/subscribe utility. An
emitter lets callers register handlers for named events, remove them and
trigger them synchronously, after a delay or on the next loop tick,
collecting the handlers' return values. It supports:

- **Standalone hubs**: ``EventHub`` instances
- **Mixins**: ``EventEmitterMixin`` as a base class, or ``mixin()`` on any
  existing class or object
- **Wildcard listeners**: handlers on ``"*"`` receive every event
- **Awaitable events**: ``when()`` returns a future for the next emission
- **Singleton Pattern**: Global hub instance via @lru_cache

## Quick Start

```python
from onemit.hub import EventHub

hub = EventHub()

def greet(event, name):
    return f"hello {name}"

hub.on("greet", greet)
event = hub.emit("greet", "ada")
assert event.result == ["hello ada"]
```

## Architecture

- **Core** (`core.py`): event record, listener record, protocol, errors
- **Scheduler** (`scheduler.py`): timers and futures used for delayed work
- **Emitter** (`emitter.py`): registry and dispatch
- **Hub** (`hub.py`): standalone hub and the shared instance
- **Mixin** (`mixin.py`): composition onto existing classes and objects

"""

from .core import (
    WILDCARD,
    EmitEvent,
    EventEmissionError,
    EventHubError,
    EventSource,
    HandlerRegistrationError,
    Listener,
    ListenerRemovedError,
    ListenerView,
    MixinError,
    SchedulerUnavailableError,
    WhenTimeoutError,
)
from .emitter import EventEmitterMixin
from .hub import EventHub, get_event_hub
from .mixin import mixin
from .scheduler import AsyncioScheduler, Scheduler

__all__ = [
    "WILDCARD",
    "AsyncioScheduler",
    "EmitEvent",
    "EventEmissionError",
    "EventEmitterMixin",
    "EventHub",
    "EventHubError",
    "EventSource",
    "HandlerRegistrationError",
    "Listener",
    "ListenerRemovedError",
    "ListenerView",
    "MixinError",
    "SchedulerUnavailableError",
    "Scheduler",
    "WhenTimeoutError",
    "get_event_hub",
    "mixin",
]
