from django import template

from ..store_utils import to_decimal

register = template.Library()


@register.filter
def money(value):
    if value is None or value == '':
        return ""
    return f"${to_decimal(value):,.2f}"


@register.filter
def price_range(product):
    low, high = product.min_price, product.max_price
    if low is None:
        return ""
    if low == high:
        return money(low)
    return f"{money(low)} - {money(high)}"
