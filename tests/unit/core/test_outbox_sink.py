"""Tests for the outbox-backed event sink and the OutboxEvent model."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.sinks import OutboxEventSink

pytestmark = pytest.mark.unit


def test_emit_stores_pending_event():
    aggregate_id = str(uuid4())

    OutboxEventSink().emit("OrderDeleted", {"aggregate_id": aggregate_id, "order_number": "X"})

    event = OutboxEvent.objects.get()
    assert event.event_type == "OrderDeleted"
    assert event.aggregate_id == aggregate_id
    assert event.topic == "orders"
    assert event.status == EventStatus.PENDING
    assert event.payload["order_number"] == "X"


def test_custom_topic():
    OutboxEventSink(topic="audit").emit("E", {"aggregate_id": "1"})
    assert OutboxEvent.objects.get().topic == "audit"


def test_mark_as_failed_increments_retry_count():
    event = OutboxEvent.objects.create(
        event_type="E", aggregate_id="1", payload={}, topic="orders"
    )

    event.mark_as_failed("first")
    event.mark_as_failed("second")

    event.refresh_from_db()
    assert event.status == EventStatus.FAILED
    assert event.retry_count == 2
    assert event.error_message == "second"


def test_mark_as_published_sets_processed_at():
    event = OutboxEvent.objects.create(
        event_type="E", aggregate_id="1", payload={}, topic="orders"
    )

    event.mark_as_published()

    event.refresh_from_db()
    assert event.status == EventStatus.PUBLISHED
    assert event.processed_at is not None
