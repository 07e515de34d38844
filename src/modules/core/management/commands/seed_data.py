from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.customers.models import Customer
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.products.models import Product


class Command(BaseCommand):
    help = "Seed database with realistic order back-office data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=50)
        parser.add_argument("--days", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        customers = self._seed_customers()
        products = self._seed_products()
        orders_created = self._seed_orders(
            customers, products, options["orders"], options["days"]
        )

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"customers={len(customers)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1
        return created

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        customers: list[Customer] = []
        seed_customers = [
            ("Ana Souza", "ana@example.com", "+1 555 010 1001"),
            ("Bruno Lima", "bruno@example.com", "+1 555 010 1002"),
            ("Carla Mendes", "carla@example.com", "+1 555 010 1003"),
            ("Daniel Costa", "daniel@example.com", ""),
            ("Eduardo Alves", "eduardo@example.com", "+1 555 010 1005"),
            ("Fernanda Rocha", "fernanda@example.com", "+1 555 010 1006"),
            ("Gabriel Santos", "gabriel@example.com", ""),
            ("Helena Ferreira", "helena@example.com", "+1 555 010 1008"),
        ]
        for name, email, phone in seed_customers:
            customer, _ = Customer.objects.get_or_create(
                email=email,
                defaults={"name": name, "phone": phone},
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("ELEC-001", 'Monitor 27"', Decimal("1299.90")),
            ("ELEC-002", "Mechanical Keyboard", Decimal("399.90")),
            ("ELEC-003", "Gaming Mouse", Decimal("249.90")),
            ("ELEC-004", "Headset", Decimal("299.90")),
            ("FURN-001", "Office Desk", Decimal("899.00")),
            ("FURN-002", "Ergonomic Chair", Decimal("1499.00")),
            ("OFF-001", "A4 Paper", Decimal("29.90")),
            ("OFF-002", "Notebook", Decimal("19.90")),
            ("OFF-003", "Desk Lamp", Decimal("59.90")),
            ("OFF-004", "Laptop Stand", Decimal("149.90")),
        ]
        for sku, name, price in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "price": price,
                    "stock_quantity": random.randint(10, 200),
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(
        self,
        customers: Iterable[Customer],
        products: list[Product],
        count: int,
        days: int,
    ) -> int:
        self.stdout.write("Creating orders...")
        customers_list = list(customers)
        if not customers_list or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        status_weights = [
            (OrderStatus.PENDING, 0.20),
            (OrderStatus.CONFIRMED, 0.15),
            (OrderStatus.PROCESSING, 0.10),
            (OrderStatus.SHIPPED, 0.15),
            (OrderStatus.DELIVERED, 0.25),
            (OrderStatus.CANCELLED, 0.15),
        ]
        statuses = [s for s, _ in status_weights]
        weights = [w for _, w in status_weights]
        now = timezone.now()

        for i in range(count):
            status = random.choices(statuses, weights=weights, k=1)[0]
            # Roughly one order in five is placed by a guest.
            customer = random.choice(customers_list) if random.random() > 0.2 else None
            paid = status in {OrderStatus.SHIPPED, OrderStatus.DELIVERED} or (
                status != OrderStatus.CANCELLED and random.random() < 0.3
            )
            created_at = now - timedelta(
                days=random.randint(0, days), minutes=random.randint(0, 1439)
            )

            order = Order.objects.create(
                customer=customer,
                guest_name="" if customer else f"Guest Buyer {i + 1}",
                guest_email="" if customer else f"guest{i + 1}@example.com",
                shipping_name=customer.name if customer else f"Guest Buyer {i + 1}",
                shipping_address=f"{100 + i} Market Street",
                status=status,
                payment_status=PaymentStatus.COMPLETED if paid else PaymentStatus.PENDING,
                is_paid=paid,
                paid_at=created_at if paid else None,
                is_delivered=status == OrderStatus.DELIVERED,
                delivered_at=created_at + timedelta(days=2)
                if status == OrderStatus.DELIVERED
                else None,
            )

            total = Decimal("0.00")
            item_count = random.randint(1, 4)
            for product in random.sample(products, k=min(item_count, len(products))):
                item = OrderItem.objects.create(
                    order=order,
                    product=product,
                    quantity=random.randint(1, 3),
                    unit_price=product.price,
                )
                total += item.subtotal

            OrderStatusHistory.objects.create(
                order=order, old_status=None, new_status=status, notes="Seeded"
            )
            Order.objects.filter(id=order.id).update(total_price=total, created_at=created_at)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
