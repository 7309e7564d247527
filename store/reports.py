from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import DecimalField, ExpressionWrapper, F, Sum
from django.utils import timezone

from .models import Order, OrderItem, Product


@dataclass
class TopProduct:
    product_id: Optional[int]
    product_name: str
    quantity: int
    total: Decimal


@dataclass
class SalesReport:
    total_sales: Decimal
    period_sales: Decimal
    period_start: datetime
    period_end: datetime
    top_products: List[TopProduct] = field(default_factory=list)


@dataclass
class ViewedProduct:
    product_id: int
    product_name: str
    views: int


@dataclass
class ViewsReport:
    top_viewed: List[ViewedProduct] = field(default_factory=list)


def _billable_orders():
    return Order.objects.exclude(status=Order.CANCELLED)


def _sum_totals(qs):
    return qs.aggregate(s=Sum('total'))['s'] or Decimal('0.00')


def sales_report(start=None, end=None, limit=5):
    end = end or timezone.now()
    start = start or end - timedelta(days=settings.STORE_REPORT_DAYS)

    period_orders = _billable_orders().filter(created_at__gte=start, created_at__lte=end)

    line_total = ExpressionWrapper(
        F('price') * F('quantity'),
        output_field=DecimalField(max_digits=12, decimal_places=2),
    )
    rows = (
        OrderItem.objects.filter(order__in=period_orders)
        .values('product_id', 'product_name')
        # aliases must not shadow the columns line_total reads
        .annotate(units_sold=Sum('quantity'), revenue=Sum(line_total))
        .order_by('-units_sold', 'product_name')[:limit]
    )

    return SalesReport(
        total_sales=_sum_totals(_billable_orders()),
        period_sales=_sum_totals(period_orders),
        period_start=start,
        period_end=end,
        top_products=[
            TopProduct(
                product_id=row['product_id'],
                product_name=row['product_name'],
                quantity=row['units_sold'],
                total=row['revenue'] or Decimal('0.00'),
            )
            for row in rows
        ],
    )


def views_report(limit=5):
    products = Product.objects.order_by('-views', 'name')[:limit]
    return ViewsReport(top_viewed=[
        ViewedProduct(product_id=p.pk, product_name=p.name, views=p.views)
        for p in products
    ])


def dashboard_summary(recent=5):
    User = get_user_model()
    return {
        'orders': Order.objects.count(),
        'pending_orders': Order.objects.filter(status=Order.PENDING).count(),
        'customers': User.objects.filter(is_staff=False).count(),
        'recent_orders': list(Order.objects.select_related('user').order_by('-created_at')[:recent]),
    }
