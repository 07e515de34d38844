from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.handlers import (
            compensation_alert_handler,
            order_deleted_handler,
            order_payment_updated_handler,
            order_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe("OrderStatusChanged", order_status_changed_handler)
        event_bus.subscribe("OrderStatusChanged", compensation_alert_handler)
        event_bus.subscribe("OrderPaymentUpdated", order_payment_updated_handler)
        event_bus.subscribe("OrderDeleted", order_deleted_handler)
        event_bus.subscribe("OrderDeleted", compensation_alert_handler)
