"""Order DRF serializers for admin API input.

Serializers validate request bodies at the Interface layer (API Views).
Responses are produced from the Pydantic DTOs in ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentStatus


class StatusUpdateSerializer(serializers.Serializer):
    """Validates ``PUT|PATCH /admin/orders/{id}/status/``."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class PaymentUpdateSerializer(serializers.Serializer):
    """Validates ``PUT|PATCH /admin/orders/{id}/payment/``."""

    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    transaction_id = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=100
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class StatsQuerySerializer(serializers.Serializer):
    period = serializers.IntegerField(required=False, min_value=1, max_value=3650)
