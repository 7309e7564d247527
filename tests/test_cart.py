from decimal import Decimal

import pytest

from store.cart import SessionCart
from store.exceptions import InsufficientStock, InvalidQuantity
from store.models import ProductVariant


def variants_of(product):
    return list(product.variants.order_by("id"))


def test_add_creates_line_with_snapshot(cart, session, phone):
    black, _ = variants_of(phone)

    cart.add(black, 2)

    entry = session["cart"]["items"][0]
    assert entry["variant_id"] == black.pk
    assert entry["product_id"] == phone.pk
    assert entry["name"] == "Smartphone XYZ"
    assert entry["color"] == "Black"
    assert entry["price"] == "599.99"
    assert entry["quantity"] == 2
    assert session.modified


def test_add_same_variant_merges_quantities(cart, phone):
    black, _ = variants_of(phone)

    cart.add(black, 2)
    cart.add(black, 3)

    assert len(cart) == 1
    assert cart.quantity_of(black.pk) == 5


def test_count_and_total(cart, phone):
    black, white = variants_of(phone)

    cart.add(black, 2)
    cart.add(white, 1)

    assert cart.count == 3
    assert cart.total == Decimal("1849.97")


def test_add_beyond_stock_leaves_cart_unchanged(cart, phone):
    _, white = variants_of(phone)
    cart.add(white, 2)

    with pytest.raises(InsufficientStock):
        cart.add(white, 2)

    assert cart.quantity_of(white.pk) == 2


def test_add_rejects_non_positive_quantity(cart, phone):
    black, _ = variants_of(phone)

    with pytest.raises(InvalidQuantity):
        cart.add(black, 0)

    assert not cart


def test_update_quantity(cart, phone):
    black, _ = variants_of(phone)
    cart.add(black, 1)

    assert cart.update_quantity(black.pk, 4) == 4
    assert cart.quantity_of(black.pk) == 4


def test_update_quantity_zero_removes_line(cart, phone):
    black, _ = variants_of(phone)
    cart.add(black, 1)

    cart.update_quantity(black.pk, 0)

    assert len(cart) == 0
    assert cart.total == Decimal("0.00")


def test_update_quantity_checks_current_stock(cart, phone):
    _, white = variants_of(phone)
    cart.add(white, 1)

    with pytest.raises(InsufficientStock):
        cart.update_quantity(white.pk, 4)

    assert cart.quantity_of(white.pk) == 1


def test_update_unknown_variant_is_ignored(cart, phone):
    black, _ = variants_of(phone)
    cart.add(black, 1)

    assert cart.update_quantity(999999, 3) == 0
    assert cart.count == 1


def test_remove(cart, phone):
    black, white = variants_of(phone)
    cart.add(black, 1)
    cart.add(white, 1)

    cart.remove(black.pk)
    cart.remove(123456)

    assert [line.variant_id for line in cart.lines()] == [white.pk]


def test_clear(cart, phone):
    black, _ = variants_of(phone)
    cart.add(black, 1)

    cart.clear()

    assert cart.count == 0
    assert list(cart) == []


def test_total_uses_live_price(cart, phone):
    black, _ = variants_of(phone)
    cart.add(black, 2)

    ProductVariant.objects.filter(pk=black.pk).update(price=Decimal("500.00"))

    assert SessionCart(cart.session).total == Decimal("1000.00")


def test_lines_drop_deleted_variants(cart, session, phone):
    black, white = variants_of(phone)
    cart.add(black, 1)
    cart.add(white, 1)

    white.delete()
    fresh = SessionCart(session)

    assert [line.variant_id for line in fresh.lines()] == [black.pk]
    assert len(session["cart"]["items"]) == 1


def test_cart_survives_reload_from_session(cart, session, phone):
    black, _ = variants_of(phone)
    cart.add(black, 3)
    session.save()

    reloaded = type(session)(session_key=session.session_key)

    assert SessionCart(reloaded).quantity_of(black.pk) == 3


def test_corrupt_session_data_starts_empty(session):
    session["cart"] = {"1": 2}

    assert SessionCart(session).count == 0
