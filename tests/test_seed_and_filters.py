from decimal import Decimal

from django.core.management import call_command

from store.models import Category, Customer, PaymentMethod, Product, ProductVariant
from store.templatetags.currency_filters import money, price_range


def test_seed_store_is_idempotent(db):
    call_command("seed_store")
    call_command("seed_store")

    assert Category.objects.count() == 4
    assert Product.objects.count() == 4
    assert ProductVariant.objects.count() == 6
    assert PaymentMethod.objects.count() == 3
    assert Customer.objects.filter(is_staff=True).count() == 1
    assert Product.objects.get(slug="ergonomic-chair").tags.filter(slug="trending").exists()


def test_seed_store_without_users(db):
    call_command("seed_store", "--no-users")

    assert Customer.objects.count() == 0


def test_money_filter():
    assert money(Decimal("1234.5")) == "$1,234.50"
    assert money("29.99") == "$29.99"
    assert money(None) == ""


def test_price_range_filter(make_product):
    single = make_product("Ball", variants=(("White", "49.99", 1),))
    ranged = make_product("Shirt", variants=(("Red", "19.99", 1), ("Blue", "39.99", 1)))

    assert price_range(single) == "$49.99"
    assert price_range(ranged) == "$19.99 - $39.99"
