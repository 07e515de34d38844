"""Admin order API views.

Exposes the ``AdminOrderFacade`` via HTTP using a DRF ViewSet.
Domain exceptions are caught by their base kind and translated into
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.core.exceptions import (
    Conflict,
    DependencyFailure,
    DomainError,
    InvalidInput,
    InvalidState,
    NotFound,
)
from modules.orders.dtos import OrderQuerySpec
from modules.orders.facade import build_admin_order_facade
from modules.orders.serializers import (
    PaymentUpdateSerializer,
    StatsQuerySerializer,
    StatusUpdateSerializer,
)

logger = structlog.get_logger(__name__)

QUERY_PARAMS = (
    "page",
    "limit",
    "status",
    "payment_status",
    "date_from",
    "date_to",
    "search",
    "sort_by",
    "sort_order",
)

ERROR_STATUS = (
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (InvalidState, status.HTTP_400_BAD_REQUEST),
    (Conflict, status.HTTP_409_CONFLICT),
    (DependencyFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_response(exc: DomainError) -> Response:
    """Translate a domain error into ``{"detail": ...}`` with its status code."""
    for kind, code in ERROR_STATUS:
        if isinstance(exc, kind):
            break
    else:
        raise exc

    if code >= 500:
        logger.error("order.admin_dependency_failure", error=str(exc), exc_info=exc)
        return Response({"detail": "Service temporarily unavailable."}, status=code)
    return Response({"detail": str(exc)}, status=code)


def _parse_order_id(pk: Optional[str]) -> Optional[UUID]:
    if pk is None:
        return None
    try:
        return UUID(pk)
    except ValueError:
        return None


class AdminOrderViewSet(ViewSet):
    """Staff-only order administration.

    Uses ``AdminOrderFacade`` wired with the Django repositories (DIP).
    All ORM access goes through the facade/repository layer.
    """

    permission_classes = [IsAdminUser]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._facade = build_admin_order_facade()

    def get_throttles(self) -> list[BaseThrottle]:
        if self.action in {"list", "retrieve", "stats"}:
            self.throttle_scope = "order_admin_reads"
        else:
            self.throttle_scope = "order_admin_writes"
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/"""
        params: Dict[str, Any] = {
            key: request.query_params.get(key) for key in QUERY_PARAMS
        }
        if params["limit"] is None:
            params["limit"] = settings.ORDERS_DEFAULT_PAGE_SIZE
        try:
            spec = OrderQuerySpec.from_params(**params)
            page = self._facade.list_orders(spec)
        except DomainError as exc:
            return error_response(exc)

        body = page.model_dump(mode="json")
        return Response({"orders": body["items"], "pagination": body["pagination"]})

    def retrieve(self, request: Request, pk: Optional[str] = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/"""
        order_id = _parse_order_id(pk)
        if order_id is None:
            return Response(
                {"detail": "Invalid order ID format."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            detail = self._facade.get_order(order_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(detail.model_dump(mode="json"))

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/stats/?period=30"""
        serializer = StatsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        try:
            summary = self._facade.get_stats(serializer.validated_data.get("period"))
        except DomainError as exc:
            return error_response(exc)
        return Response(summary.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def change_status(self, request: Request, pk: Optional[str] = None) -> Response:
        """PUT|PATCH /api/v1/admin/orders/{pk}/status/"""
        order_id = _parse_order_id(pk)
        if order_id is None:
            return Response(
                {"detail": "Invalid order ID format."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._facade.transition_status(
                order_id, data["status"], notes=data["notes"]
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(result.model_dump(mode="json"))

    @action(detail=True, methods=["put", "patch"], url_path="payment")
    def change_payment(self, request: Request, pk: Optional[str] = None) -> Response:
        """PUT|PATCH /api/v1/admin/orders/{pk}/payment/"""
        order_id = _parse_order_id(pk)
        if order_id is None:
            return Response(
                {"detail": "Invalid order ID format."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = PaymentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = self._facade.update_payment(
                order_id,
                data["payment_status"],
                transaction_id=data.get("transaction_id") or None,
                notes=data["notes"],
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(result.model_dump(mode="json"))

    def destroy(self, request: Request, pk: Optional[str] = None) -> Response:
        """DELETE /api/v1/admin/orders/{pk}/

        Responds 200 with the deletion summary so callers can see any
        stock that could not be returned.
        """
        order_id = _parse_order_id(pk)
        if order_id is None:
            return Response(
                {"detail": "Invalid order ID format."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            deletion = self._facade.delete_order(order_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(deletion.model_dump(mode="json"))
