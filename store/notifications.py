import logging
import threading

from anymail.message import AnymailMessage
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .models import Order

logger = logging.getLogger(__name__)


def admin_recipients():
    """
    ADMIN_NOTIFICATION_EMAILS may be a comma separated string or a list.
    Falls back to DEFAULT_FROM_EMAIL; duplicates are dropped ignoring case.
    """
    raw_admins = getattr(settings, "ADMIN_NOTIFICATION_EMAILS", None)
    if isinstance(raw_admins, str):
        recipient_list = [e.strip() for e in raw_admins.split(",") if e.strip()]
    elif isinstance(raw_admins, (list, tuple)):
        recipient_list = [e.strip() for e in raw_admins if e and e.strip()]
    else:
        recipient_list = []

    if not recipient_list:
        recipient_list = [settings.DEFAULT_FROM_EMAIL]

    seen = set()
    clean_recipients = []
    for r in recipient_list:
        low = r.lower()
        if low not in seen:
            clean_recipients.append(r)
            seen.add(low)
    return clean_recipients


def notify_admins_payment_reference(order, reference):
    recipient_list = admin_recipients()
    customer = order.user
    logger.info("Sending admin payment reference notification for order %s to %s", order.id, recipient_list)
    send_mail(
        subject=f"New Payment Reference - Order #{order.id}",
        message=(
            f"A new payment reference has been submitted.\n\n"
            f"Order ID: {order.id}\n"
            f"Customer: {customer or 'Guest'}\n"
            f"Email: {getattr(customer, 'email', '') or 'Unknown'}\n"
            f"Payment Method: {reference.payment_method or 'Unknown'}\n"
            f"Bank of origin: {reference.bank_origin}\n"
            f"Reference number: {reference.reference_number}\n"
            f"Transfer date: {reference.date}\n"
            f"Total: {order.total}\n"
            f"---\n"
            f"Please review it in the admin panel."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=recipient_list,
        fail_silently=False,
    )
    logger.info("Admin notification sent for order %s", order.id)


def send_order_confirmation(order_id):
    try:
        o = Order.objects.select_related('user', 'payment_method').get(pk=order_id)
        email = o.user.email if o.user else None
        if not email:
            return

        ctx = {
            "order": o,
            "items": list(o.items.all()),
            "name": (o.user.name if o.user else "") or "Customer",
            "site_url": settings.SITE_URL,
            "store_name": settings.STORE_NAME,
        }

        plain = render_to_string("store/emails/order_confirmation.txt", ctx)
        html = render_to_string("store/emails/order_confirmation.html", ctx)

        msg = AnymailMessage(
            subject=f"Order confirmation - {settings.STORE_NAME} #{o.id}",
            body=plain,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[email],
        )
        msg.attach_alternative(html, "text/html")
        msg.send()
        logger.info("Order confirmation sent for order %s", order_id)
    except Exception:
        logger.exception("Order confirmation send failed for order %s", order_id)


def dispatch_order_confirmation(order_id):
    if not settings.STORE_ASYNC_EMAILS:
        send_order_confirmation(order_id)
        return
    try:
        threading.Thread(target=send_order_confirmation, args=(order_id,), daemon=True).start()
        logger.info("Started customer confirmation thread for order %s", order_id)
    except RuntimeError:
        logger.exception("Failed to start customer confirmation thread for order %s", order_id)
