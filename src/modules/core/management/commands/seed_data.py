from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.cart.dtos import AddCartItemDTO
from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.cart.services import CartService
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, ShippingAddressDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.inventory import InventoryLedger
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

CATALOG = [
    ("Handloom Cotton Saree", "Apparel", Decimal("2499.00")),
    ("Kurta Set", "Apparel", Decimal("1299.00")),
    ("Brass Diya (pair)", "Home", Decimal("449.00")),
    ("Terracotta Planter", "Home", Decimal("599.00")),
    ("Masala Chai Blend 250g", "Grocery", Decimal("249.00")),
    ("Darjeeling Tea 100g", "Grocery", Decimal("399.00")),
    ("Leather Journal", "Stationery", Decimal("699.00")),
    ("Block-print Notebook", "Stationery", Decimal("199.00")),
    ("Wireless Earbuds", "Electronics", Decimal("1999.00")),
    ("Power Bank 10000mAh", "Electronics", Decimal("1199.00")),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=5,
            help="Number of cash-on-delivery orders to place for the demo customer.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created, customer = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(customer, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="staff").exists():
            User.objects.create_user("staff", password="staff123", is_staff=True)
            created += 1
        customer = User.objects.filter(username="customer").first()
        if customer is None:
            customer = User.objects.create_user(
                "customer", email="customer@example.com", password="customer123"
            )
            created += 1
        return created, customer

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for index, (name, category, price) in enumerate(CATALOG, start=1):
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "category": category,
                    "description": f"{name} ({category})",
                    "images": [f"https://cdn.example.com/products/{index}.jpg"],
                    "price": price,
                    "stock_quantity": random.randint(10, 200),
                    "is_active": True,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, customer, products: list[Product], count: int) -> int:
        """Place orders through the cart and order services, as a shopper would."""
        self.stdout.write("Creating orders...")
        if Order.objects.filter(user=customer).exists():
            self.stdout.write(self.style.WARNING("Skipping orders (customer already has some)."))
            return 0

        product_repo = ProductDjangoRepository()
        cart_repo = CartDjangoRepository()
        cart_service = CartService(cart_repository=cart_repo, product_repository=product_repo)
        order_service = OrderService(
            order_repository=OrderDjangoRepository(),
            cart_repository=cart_repo,
            inventory=InventoryLedger(product_repo),
        )
        address = ShippingAddressDTO(
            full_name="Demo Customer",
            address_line1="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            postal_code="560001",
            phone_number="+91 98450 00000",
        )

        for _ in range(count):
            for product in random.sample(products, k=random.randint(1, 3)):
                cart_service.add_item(
                    customer.id,
                    AddCartItemDTO(product_id=product.id, quantity=random.randint(1, 2)),
                )
            order_service.create_order(
                CreateOrderDTO(
                    user_id=customer.id,
                    shipping_address=address,
                    payment_method=random.choice(
                        [PaymentMethod.COD, PaymentMethod.BANK_TRANSFER]
                    ),
                    shipping_price=Decimal("49.00"),
                )
            )
        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return count
