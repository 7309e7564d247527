from decimal import Decimal
import logging

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from store.models import Category, PaymentMethod, Product, ProductVariant, Tag

logger = logging.getLogger(__name__)

CATEGORIES = [
    ("Electronics", "electronics", "Electronic devices"),
    ("Clothing", "clothing", "Clothing and accessories"),
    ("Home", "home", "Home goods"),
    ("Sports", "sports", "Sports equipment"),
]

TAGS = [
    ("Sale", "sale"),
    ("New", "new"),
    ("Trending", "trending"),
    ("Popular", "popular"),
]

PRODUCTS = [
    {
        "name": "Smartphone XYZ",
        "slug": "smartphone-xyz",
        "description": "Latest generation smartphone with a high resolution camera",
        "category": "electronics",
        "tags": ["new", "popular"],
        "views": 120,
        "variants": [("Black", "599.99", 15), ("White", "599.99", 10)],
    },
    {
        "name": "Sports T-Shirt",
        "slug": "sports-t-shirt",
        "description": "High quality sports t-shirt",
        "category": "clothing",
        "tags": ["sale"],
        "views": 85,
        "variants": [("Red", "29.99", 50), ("Blue", "29.99", 45)],
    },
    {
        "name": "Ergonomic Chair",
        "slug": "ergonomic-chair",
        "description": "Ergonomic office chair for long working days",
        "category": "home",
        "tags": ["trending"],
        "views": 45,
        "variants": [("Black", "199.99", 8)],
    },
    {
        "name": "Football",
        "slug": "football",
        "description": "Professional football",
        "category": "sports",
        "tags": ["popular"],
        "views": 60,
        "variants": [("White/Black", "49.99", 30)],
    },
]

PAYMENT_METHODS = [
    {"type": "pago_movil", "bank": "Banco de Venezuela", "phone": "555-9876", "dni": "98765432"},
    {
        "type": "transferencia", "bank": "Banesco", "account_number": "1234567890",
        "dni": "87654321", "holder_name": "Vitrina", "account_type": "corriente",
    },
    {
        "type": "transferencia", "bank": "Mercantil", "account_number": "0987654321",
        "dni": "76543210", "holder_name": "Vitrina", "account_type": "ahorro",
    },
]

USERS = [
    {
        "email": "admin@example.com", "password": "admin123", "name": "Administrator",
        "dni": "12345678", "phone": "+58123456789", "address": "Calle Principal 123",
        "city": "Caracas", "is_staff": True, "is_superuser": True,
    },
    {
        "email": "cliente@example.com", "password": "cliente123", "name": "Demo Customer",
        "dni": "87654321", "phone": "+58987654321", "address": "Avenida Libertador 456",
        "city": "Valencia", "is_staff": False, "is_superuser": False,
    },
]


class Command(BaseCommand):
    help = "Load the demo catalog, payment methods and demo accounts. Safe to run twice."

    def add_arguments(self, parser):
        parser.add_argument("--no-users", action="store_true", help="Skip the demo accounts.")

    @transaction.atomic
    def handle(self, *args, **options):
        categories = {}
        for name, slug, description in CATEGORIES:
            categories[slug], _ = Category.objects.get_or_create(
                slug=slug, defaults={"name": name, "description": description}
            )

        tags = {}
        for name, slug in TAGS:
            tags[slug], _ = Tag.objects.get_or_create(slug=slug, defaults={"name": name})

        created = 0
        for data in PRODUCTS:
            product, was_created = Product.objects.get_or_create(
                slug=data["slug"],
                defaults={
                    "name": data["name"],
                    "description": data["description"],
                    "category": categories[data["category"]],
                    "views": data["views"],
                },
            )
            if not was_created:
                continue
            created += 1
            product.tags.set([tags[t] for t in data["tags"]])
            for color, price, stock in data["variants"]:
                ProductVariant.objects.create(
                    product=product, color=color, price=Decimal(price), stock=stock
                )

        for data in PAYMENT_METHODS:
            lookup = {"type": data["type"], "bank": data["bank"]}
            PaymentMethod.objects.get_or_create(**lookup, defaults=data)

        if not options["no_users"]:
            User = get_user_model()
            for data in USERS:
                data = dict(data)
                password = data.pop("password")
                if User.objects.filter(email=data["email"]).exists():
                    continue
                user = User(username=data["email"], **data)
                user.set_password(password)
                user.save()

        logger.info("Seeded %d new product(s)", created)
        self.stdout.write(self.style.SUCCESS(f"Demo store ready ({created} new product(s))."))
