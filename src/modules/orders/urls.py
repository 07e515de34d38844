"""Admin order URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import AdminOrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("admin/orders", AdminOrderViewSet, basename="admin-order")

urlpatterns = router.urls
