# store/store_utils.py
from decimal import Decimal, InvalidOperation

from .cart import SessionCart


def get_cart(request):
    cart = getattr(request, 'cart', None)
    if cart is None:
        cart = SessionCart(request.session)
    return cart


def get_cart_count(request):
    """
    Returns the total item count in the session cart.
    """
    return get_cart(request).count


def parse_positive_int(value, default=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def to_decimal(value):
    try:
        return Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal('0.00')
