"""Composition helpers.

``mixin()`` turns an existing class or object into an event source without
subclassing. ``attach_bound_methods()`` backs ``EventEmitterMixin.bind()``:
it forwards a target's capability methods to a fixed emitter.

```python
class User:
    pass

mixin(User)                     # every User instance gets its own registry
user = User()
user.on("login", on_login)

config = SimpleNamespace()
mixin(config)                   # this object alone becomes an emitter

hub = EventHub()
facade = hub.bind(SimpleNamespace())
facade.on("saved", on_saved)    # registers on hub
```
"""

import inspect
import types
from typing import Any

from loguru import logger

from .core import MixinError
from .emitter import EVENT_SOURCE_METHODS, EventEmitterMixin
from .scheduler import Scheduler

# Every function of the emitter, private helpers included, since the public
# methods call them through ``self``
_EMITTER_FUNCTIONS = {name: value for name, value in vars(EventEmitterMixin).items() if inspect.isfunction(value)}


def _set(target: Any, name: str, value: Any) -> None:
    try:
        setattr(target, name, value)
    except (AttributeError, TypeError) as e:
        raise MixinError(f"Cannot attach '{name}' to {type(target).__name__}: {e}") from e


def mixin(target: Any, scheduler: Scheduler | None = None, when_timeout_ms: float | None = None) -> Any:
    """Copy the emitter capability set onto ``target`` and return it.

    For a class, the methods are added to the class so each instance owns its
    own registry. For any other object, the methods are bound to that object.

    Args:
        target: Class or object to extend
        scheduler: Scheduler used by the target's delayed dispatch
        when_timeout_ms: Default timeout for the target's ``when()``

    Raises:
        MixinError: If ``target`` does not accept new attributes
    """
    is_class = isinstance(target, type)
    for name, function in _EMITTER_FUNCTIONS.items():
        _set(target, name, function if is_class else types.MethodType(function, target))

    if scheduler is not None:
        _set(target, "_scheduler", scheduler)
    if when_timeout_ms is not None:
        _set(target, "_when_timeout_ms", when_timeout_ms)

    logger.debug(f"Mixed event source into {'class ' + target.__name__ if is_class else type(target).__name__}")
    return target


def attach_bound_methods(emitter: EventEmitterMixin, target: Any) -> Any:
    """Point ``target``'s capability methods at ``emitter`` and return ``target``."""
    for name in EVENT_SOURCE_METHODS:
        _set(target, name, getattr(emitter, name))
    logger.debug(f"Bound {type(target).__name__} to {type(emitter).__name__}")
    return target
