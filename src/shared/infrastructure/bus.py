"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Any, Dict, List

import structlog

from shared.domain.bus import IEventBus, IEventHandler

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Handler exceptions propagate to the publisher so the outbox relay can
    mark the event as failed.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[IEventHandler]] = {}

    def subscribe(self, event_name: str, handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_name, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        handlers = self._handlers.get(event_name, [])
        if not handlers:
            logger.debug("event_bus.no_handlers", event_name=event_name)
        for handler in handlers:
            handler.handle(payload)


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
