"""Domain bus interfaces for in-process event handling."""

from __future__ import annotations

from typing import Any, Dict, Protocol


class IEventHandler(Protocol):
    """Handler interface for published events."""

    def handle(self, payload: Dict[str, Any]) -> None: ...


class IEventBus(Protocol):
    """Event bus interface keyed by event name."""

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None: ...

    def subscribe(self, event_name: str, handler: IEventHandler) -> None: ...


class IEventSink(Protocol):
    """Fire-and-forget destination for business events.

    Callers must not let a failing sink fail their own operation.
    """

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None: ...
