from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from store import reports
from store.models import Order, OrderItem


def order_with(customer, status, created_at, *lines):
    order = Order.objects.create(user=customer, status=status, shipping_address="a", shipping_city="b")
    total = Decimal("0.00")
    for name, price, quantity in lines:
        OrderItem.objects.create(order=order, product_name=name, price=Decimal(price), quantity=quantity)
        total += Decimal(price) * quantity
    Order.objects.filter(pk=order.pk).update(total=total, created_at=created_at)
    return order


def test_sales_report(customer):
    now = timezone.now()
    order_with(customer, Order.DELIVERED, now - timedelta(days=60), ("Chair", "100.00", 1))
    order_with(customer, Order.PENDING, now - timedelta(days=1), ("Shirt", "20.00", 3), ("Chair", "100.00", 1))
    order_with(customer, Order.PROCESSING, now - timedelta(days=2), ("Shirt", "20.00", 1))
    order_with(customer, Order.CANCELLED, now - timedelta(days=1), ("Shirt", "20.00", 10))

    report = reports.sales_report(start=now - timedelta(days=30), end=now)

    assert report.total_sales == Decimal("280.00")
    assert report.period_sales == Decimal("180.00")
    assert [(p.product_name, p.quantity, p.total) for p in report.top_products] == [
        ("Shirt", 4, Decimal("80.00")),
        ("Chair", 1, Decimal("100.00")),
    ]


def test_sales_report_without_orders(db):
    report = reports.sales_report()

    assert report.total_sales == Decimal("0.00")
    assert report.top_products == []
    assert report.period_end - report.period_start == timedelta(days=30)


def test_views_report(make_product):
    make_product("Quiet", views=1)
    make_product("Loud", views=99)

    report = reports.views_report(limit=1)

    assert [(v.product_name, v.views) for v in report.top_viewed] == [("Loud", 99)]


def test_dashboard_summary(customer, staff_user):
    now = timezone.now()
    first = order_with(customer, Order.PENDING, now - timedelta(days=1), ("Shirt", "20.00", 1))
    second = order_with(customer, Order.SHIPPED, now, ("Shirt", "20.00", 1))

    summary = reports.dashboard_summary()

    assert summary["orders"] == 2
    assert summary["pending_orders"] == 1
    assert summary["customers"] == 1
    assert summary["recent_orders"] == [second, first]
