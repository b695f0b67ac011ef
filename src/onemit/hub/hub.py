"""Event Hub Implementation.

This module provides ``EventHub``, the standalone emitter, and the shared
hub returned by ``get_event_hub()``.

## Key Features

- **Registration**: ``on``, ``only``, ``once`` and the awaitable ``when``
- **Removal**: ``off`` for one handler, one event or everything
- **Dispatch**: synchronous ``emit``, delayed ``emit_after``, ``emit_async``
- **Wildcard**: listeners on ``"*"`` receive every event
- **Injected Scheduling**: delayed work goes through a ``Scheduler``
- **Singleton Pattern**: Global hub instance via @lru_cache

## Advanced Usage

```python
from onemit.hub import get_event_hub

hub = get_event_hub()
hub.on("order.created", reserve_stock)
hub.on("order.created", send_confirmation)

# Collect return values
event = hub.emit({"type": "order.created", "order_id": "123"})
print(event.result)

# Wait for the next payment, at most two seconds
payment = await hub.when("payment.processed", timeout_ms=2000)
```

"""

from functools import lru_cache

from loguru import logger

from onemit.settings import get_settings

from .emitter import EventEmitterMixin
from .scheduler import Scheduler


class EventHub(EventEmitterMixin):
    """Standalone event emitter.

    Example:
        ```python
        hub = EventHub()
        hub.on("x", lambda event: 1).on("x", lambda event: 2)
        assert hub.emit("x").result == [1, 2]
        ```
    """

    def __init__(self, scheduler: Scheduler | None = None, when_timeout_ms: float | None = None) -> None:
        """Initialize a new EventHub instance.

        Args:
            scheduler: Scheduler for delayed dispatch, ``when`` timeouts and
                       never-called notifications. Defaults to an
                       ``AsyncioScheduler`` on the running loop.
            when_timeout_ms: Default timeout applied by ``when()`` when the
                             caller gives none. ``None`` waits forever.
        """
        self._scheduler = scheduler
        self._when_timeout_ms = when_timeout_ms
        logger.debug(f"EventHub initialized (when_timeout_ms={when_timeout_ms})")

    @property
    def scheduler(self) -> Scheduler:
        return self._get_scheduler()

    @scheduler.setter
    def scheduler(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler

    def __repr__(self) -> str:
        return f"EventHub(events={self.registered_events()!r})"


@lru_cache
def get_event_hub() -> EventHub:
    """Get or create the singleton EventHub instance.

    The default ``when()`` timeout comes from ``ONEMIT_WHEN_TIMEOUT_MS``.

    Example:
        ```python
        hub = get_event_hub()
        hub.on("ready", on_ready)
        hub.emit("ready")
        ```
    """
    settings = get_settings()
    return EventHub(when_timeout_ms=settings.when_timeout_ms)
