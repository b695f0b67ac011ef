"""The onemit event emitter package."""

from loguru import logger

from .hub import EmitEvent, EventEmitterMixin, EventHub, get_event_hub, mixin  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401

logger.disable(__name__)

__all__ = ["EmitEvent", "EventEmitterMixin", "EventHub", "get_event_hub", "get_settings", "mixin", "Settings"]
