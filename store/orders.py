"""
Checkout and order history.

Orders are placed from the session cart in a single transaction: stock is
re-checked against locked variant rows, the order lines copy the price at
checkout time and the reserved units are taken out of stock.
"""
from decimal import Decimal
import logging

from django.db import transaction
from django.db.models import F, Prefetch

from .exceptions import DuplicatePaymentReference, EmptyCart, InsufficientStock
from .models import Order, OrderItem, PaymentReference, ProductVariant

logger = logging.getLogger(__name__)


def create_order(user, cart, payment_method, shipping_address, shipping_city):
    lines = cart.lines()
    if not lines:
        raise EmptyCart()

    with transaction.atomic():
        ids = [line.variant_id for line in lines]
        variants = ProductVariant.objects.select_for_update().select_related('product').in_bulk(ids)

        for line in lines:
            variant = variants.get(line.variant_id)
            if variant is None or line.quantity > variant.stock:
                raise InsufficientStock(variant or line.variant, line.quantity)

        order = Order.objects.create(
            user=user,
            payment_method=payment_method,
            shipping_address=shipping_address,
            shipping_city=shipping_city,
            status=Order.PENDING,
        )

        total = Decimal('0.00')
        items = []
        for line in lines:
            variant = variants[line.variant_id]
            items.append(OrderItem(
                order=order,
                product=variant.product,
                variant=variant,
                product_name=variant.product.name,
                color=variant.color,
                price=variant.price,
                quantity=line.quantity,
            ))
            total += variant.price * line.quantity
            ProductVariant.objects.filter(pk=variant.pk).update(stock=F('stock') - line.quantity)
        OrderItem.objects.bulk_create(items)

        order.total = total.quantize(Decimal('0.01'))
        order.save(update_fields=['total'])

    logger.info("Created order %s for customer %s (total %s)", order.pk, user.pk if user else None, order.total)
    return order


def add_payment_reference(order, payment_method, reference_number, bank_origin, date, image=None):
    if PaymentReference.objects.filter(order=order).exists():
        raise DuplicatePaymentReference()

    reference = PaymentReference.objects.create(
        order=order,
        payment_method=payment_method or order.payment_method,
        reference_number=reference_number,
        bank_origin=bank_origin,
        date=date,
        image=image,
    )
    logger.info("Payment reference %s recorded for order %s", reference.pk, order.pk)
    return reference


def user_orders(user):
    return (
        Order.objects.filter(user=user)
        .select_related('payment_method', 'payment_reference')
        .prefetch_related(Prefetch('items', queryset=OrderItem.objects.order_by('id')))
        .order_by('-created_at')
    )


def cancel_order(order):
    return order.transition_to(Order.CANCELLED)


def order_matches_cart(order, cart):
    ordered = {item.variant_id: item.quantity for item in order.items.all()}
    return ordered == {line.variant_id: line.quantity for line in cart.lines()}
