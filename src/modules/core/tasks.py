"""Asynchronous tasks for the core module."""

from __future__ import annotations

from typing import Dict, Optional

import structlog
from celery import shared_task
from django.conf import settings
from django.db import models, transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


def claim_relay_batch(limit: int, max_retries: int) -> models.QuerySet:
    """Oldest pending events plus failed ones still under the retry cap.

    Rows are locked with ``SKIP LOCKED`` so overlapping relay runs split
    the backlog instead of publishing the same event twice.  Must be
    evaluated inside a transaction.
    """
    return (
        OutboxEvent.objects.select_for_update(skip_locked=True)
        .filter(
            models.Q(status=EventStatus.PENDING)
            | models.Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
        )
        .order_by("created_at", "id")[:limit]
    )


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(
    batch_size: Optional[int] = None, max_retries: Optional[int] = None
) -> Dict[str, int]:
    """Publish outbox events to the in-process bus, oldest first.

    A handler failure marks only that event as ``FAILED`` and bumps its
    ``retry_count``; it is picked up again by later runs until the count
    reaches ``OUTBOX_RELAY_MAX_RETRIES``.
    """
    limit = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    retries = max_retries or settings.OUTBOX_RELAY_MAX_RETRIES

    published = failed = 0
    with transaction.atomic():
        for event in claim_relay_batch(limit, retries):
            log = logger.bind(
                outbox_id=str(event.id), event_type=event.event_type, attempt=event.retry_count + 1
            )
            try:
                with transaction.atomic():
                    event_bus.publish(event.event_type, event.payload)
            except Exception as exc:
                event.mark_as_failed(str(exc))
                failed += 1
                log.exception("outbox.relay_failed")
                continue
            event.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
