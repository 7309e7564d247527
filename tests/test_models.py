from datetime import date
from decimal import Decimal

import pytest

from store.exceptions import InvalidTransition
from store.models import Category, Order, OrderItem, PaymentReference, Product, Tag


def make_order(customer, payment_method, status=Order.PENDING):
    order = Order.objects.create(
        user=customer, payment_method=payment_method, status=status,
        shipping_address="Calle 1", shipping_city="Caracas",
    )
    OrderItem.objects.create(order=order, product_name="Football", color="White",
                             price=Decimal("49.99"), quantity=3)
    OrderItem.objects.create(order=order, product_name="Chair", color="Black",
                             price=Decimal("10.00"), quantity=1)
    return order


def test_slugs_are_generated_and_unique(db):
    first = Product.objects.create(name="Ergonomic Chair")
    second = Product.objects.create(name="Ergonomic Chair")

    assert first.slug == "ergonomic-chair"
    assert second.slug == "ergonomic-chair-2"
    assert Category.objects.create(name="Home & Garden").slug == "home-garden"
    assert Tag.objects.create(name="Best Seller").slug == "best-seller"


def test_default_variant_prefers_stock(make_product):
    product = make_product(variants=(("Red", "10.00", 0), ("Blue", "12.00", 4)))

    assert product.default_variant.color == "Blue"


def test_product_without_variants(db):
    product = Product.objects.create(name="Placeholder")

    assert product.min_price is None
    assert product.default_variant is None
    assert product.primary_image is None


def test_order_total_is_sum_of_subtotals(customer, payment_method):
    order = make_order(customer, payment_method)

    assert order.get_total_price() == Decimal("159.97")
    assert [item.subtotal for item in order.items.all()] == [Decimal("149.97"), Decimal("10.00")]


@pytest.mark.parametrize("current,target", [
    (Order.PENDING, Order.PROCESSING),
    (Order.PENDING, Order.CANCELLED),
    (Order.PROCESSING, Order.SHIPPED),
    (Order.PROCESSING, Order.DELIVERED),
    (Order.SHIPPED, Order.DELIVERED),
])
def test_allowed_transitions(customer, payment_method, current, target):
    order = make_order(customer, payment_method, status=current)

    order.transition_to(target)

    order.refresh_from_db()
    assert order.status == target


@pytest.mark.parametrize("current,target", [
    (Order.PENDING, Order.SHIPPED),
    (Order.SHIPPED, Order.CANCELLED),
    (Order.DELIVERED, Order.PENDING),
    (Order.CANCELLED, Order.PROCESSING),
])
def test_rejected_transitions(customer, payment_method, current, target):
    order = make_order(customer, payment_method, status=current)

    with pytest.raises(InvalidTransition):
        order.transition_to(target)

    order.refresh_from_db()
    assert order.status == current


def test_verifying_payment_moves_order_to_processing(customer, payment_method):
    order = make_order(customer, payment_method)
    reference = PaymentReference.objects.create(
        order=order, payment_method=payment_method, reference_number="42",
        bank_origin="Banesco", date=date(2024, 1, 10),
    )

    reference.verify()

    order.refresh_from_db()
    assert reference.status == PaymentReference.VERIFIED
    assert reference.reviewed_at is not None
    assert order.status == Order.PROCESSING


def test_rejecting_payment_keeps_order_pending(customer, payment_method):
    order = make_order(customer, payment_method)
    reference = PaymentReference.objects.create(
        order=order, reference_number="42", bank_origin="Banesco", date=date(2024, 1, 10),
    )

    reference.reject()

    order.refresh_from_db()
    assert reference.status == PaymentReference.REJECTED
    assert order.status == Order.PENDING


def test_customer_is_admin_mirrors_staff(customer, staff_user):
    assert not customer.is_admin
    assert staff_user.is_admin
    assert str(customer) == "Demo Customer"
