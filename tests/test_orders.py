from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from store import orders
from store.exceptions import DuplicatePaymentReference, EmptyCart, InsufficientStock, InvalidTransition
from store.models import Order, OrderItem, PaymentReference, ProductVariant


@pytest.fixture
def filled_cart(cart, phone):
    black, white = phone.variants.order_by("id")
    cart.add(black, 2)
    cart.add(white, 1)
    return cart


def place(customer, cart, payment_method):
    return orders.create_order(customer, cart, payment_method, "Avenida Libertador 456", "Valencia")


def test_create_order_totals_and_snapshots(customer, filled_cart, payment_method):
    order = place(customer, filled_cart, payment_method)

    assert order.status == Order.PENDING
    assert order.total == Decimal("1849.97")
    assert order.total == order.get_total_price()
    assert order.user == customer
    assert order.payment_method == payment_method

    items = list(order.items.all())
    assert [(i.product_name, i.color, i.quantity, i.price) for i in items] == [
        ("Smartphone XYZ", "Black", 2, Decimal("599.99")),
        ("Smartphone XYZ", "White", 1, Decimal("649.99")),
    ]


def test_create_order_takes_units_out_of_stock(customer, filled_cart, payment_method, phone):
    place(customer, filled_cart, payment_method)

    black, white = phone.variants.order_by("id")
    assert black.stock == 13
    assert white.stock == 2


def test_create_order_rechecks_stock(customer, filled_cart, payment_method, phone):
    white = phone.variants.get(color="White")
    ProductVariant.objects.filter(pk=white.pk).update(stock=0)

    with pytest.raises(InsufficientStock):
        place(customer, filled_cart, payment_method)

    assert Order.objects.count() == 0
    assert OrderItem.objects.count() == 0
    assert phone.variants.get(color="Black").stock == 15


def test_create_order_from_empty_cart(customer, cart, payment_method):
    with pytest.raises(EmptyCart):
        place(customer, cart, payment_method)


def test_order_keeps_checkout_price(customer, filled_cart, payment_method, phone):
    order = place(customer, filled_cart, payment_method)
    phone.variants.update(price=Decimal("1.00"))

    order.refresh_from_db()
    assert order.get_total_price() == Decimal("1849.97")


def test_add_payment_reference(customer, filled_cart, payment_method, receipt, fake_cloudinary_upload):
    order = place(customer, filled_cart, payment_method)

    reference = orders.add_payment_reference(
        order, None, "000123456", "Mercantil", date(2024, 5, 2), receipt
    )

    reference.refresh_from_db()
    assert reference.status == PaymentReference.PENDING
    assert reference.payment_method == payment_method
    assert reference.image.public_id == "payment_proofs/receipt"
    assert fake_cloudinary_upload[0][0] == "receipt.png"
    assert order.get_payment_reference() == reference


def test_only_one_payment_reference_per_order(customer, filled_cart, payment_method):
    order = place(customer, filled_cart, payment_method)
    orders.add_payment_reference(order, payment_method, "1", "Banesco", date.today())

    with pytest.raises(DuplicatePaymentReference):
        orders.add_payment_reference(order, payment_method, "2", "Banesco", date.today())


def test_user_orders_newest_first(customer, staff_user, cart, phone, payment_method):
    black = phone.variants.get(color="Black")
    cart.add(black, 1)
    first = place(customer, cart, payment_method)
    Order.objects.filter(pk=first.pk).update(created_at=timezone.now() - timedelta(days=2))
    second = place(customer, cart, payment_method)
    place(staff_user, cart, payment_method)

    assert [o.pk for o in orders.user_orders(customer)] == [second.pk, first.pk]


def test_cancel_order_restocks(customer, filled_cart, payment_method, phone):
    order = place(customer, filled_cart, payment_method)

    orders.cancel_order(order)

    assert order.status == Order.CANCELLED
    assert sorted(phone.variants.values_list("stock", flat=True)) == [3, 15]


def test_stale_copy_cannot_cancel_twice(customer, filled_cart, payment_method, phone):
    order = place(customer, filled_cart, payment_method)
    first = Order.objects.get(pk=order.pk)
    second = Order.objects.get(pk=order.pk)

    orders.cancel_order(first)
    with pytest.raises(InvalidTransition):
        orders.cancel_order(second)

    assert sorted(phone.variants.values_list("stock", flat=True)) == [3, 15]
    assert second.status == Order.CANCELLED
