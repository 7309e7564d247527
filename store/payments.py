from django.conf import settings

from .models import PaymentMethod


def active_payment_methods(type=None):
    qs = PaymentMethod.objects.filter(active=True)
    if type:
        qs = qs.filter(type=type)
    return qs


def get_payment_method(method_id):
    try:
        return active_payment_methods().get(pk=int(method_id))
    except (PaymentMethod.DoesNotExist, TypeError, ValueError):
        return None


def payment_types():
    available = set(active_payment_methods().values_list('type', flat=True))
    return [(value, label) for value, label in PaymentMethod.TYPE_CHOICES if value in available]


def origin_banks():
    return list(settings.STORE_BANKS)
