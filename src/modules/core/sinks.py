"""Event sinks backed by the transactional outbox."""

from __future__ import annotations

from typing import Any, Dict

import structlog
from django.db import transaction

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)


class OutboxEventSink:
    """Persist emitted events as ``OutboxEvent`` rows.

    The insert runs in its own savepoint: a failed write is rolled back
    without poisoning the caller's transaction, and the error is raised
    for the caller to log.
    """

    def __init__(self, topic: str = "orders") -> None:
        self._topic = topic

    def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        with transaction.atomic():
            event = OutboxEvent.objects.create(
                event_type=event_name,
                aggregate_id=str(payload.get("aggregate_id", "")),
                payload=payload,
                topic=self._topic,
            )
        logger.info(
            "outbox.event_stored",
            event_type=event_name,
            outbox_id=str(event.id),
            topic=self._topic,
        )
