from django.shortcuts import render, redirect, reverse, get_object_or_404
from django.contrib import messages
from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth import login, logout, update_session_auth_hash
from django.contrib.auth.decorators import login_required
from django.http import Http404, JsonResponse
from django.utils.dateparse import parse_date
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST
import json
import logging

from . import accounts, catalog, notifications, orders, payments, reports
from .exceptions import AccountError, CartError, OrderError
from .models import Order, Product, ProductVariant
from .store_utils import get_cart, get_cart_count, parse_positive_int

logger = logging.getLogger(__name__)


def _safe_next(request, fallback):
    next_url = request.POST.get('next') or request.GET.get('next')
    if next_url and url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return next_url
    return fallback


# -------------------------------
# Catalog Pages
# -------------------------------
def home(request):
    return render(request, 'store/home.html', {
        'featured_products': catalog.featured_products(),
        'new_products': catalog.new_products(),
        'popular_products': catalog.popular_products(),
        'categories': catalog.all_categories(),
        'cart_count': get_cart_count(request),
    })


def products_view(request):
    search = request.GET.get('search', '').strip()
    categories = [c for c in request.GET.getlist('category') if c]
    tags = [t for t in request.GET.getlist('tag') if t]
    sort = request.GET.get('sort', 'default')

    products = catalog.filter_products(search=search, categories=categories, tags=tags, sort=sort)
    return render(request, 'store/products.html', {
        'products': products,
        'title': catalog.listing_title(search=search, categories=categories, tags=tags),
        'categories': catalog.all_categories(),
        'tags': catalog.all_tags(),
        'sort_options': catalog.SORT_OPTIONS,
        'search': search,
        'selected_categories': categories,
        'selected_tags': tags,
        'sort': sort,
        'cart_count': get_cart_count(request),
    })


def product_detail(request, id_or_slug):
    try:
        product = catalog.get_product(id_or_slug)
    except Product.DoesNotExist:
        raise Http404("Product not found")

    variants = list(product.variants.all())
    selected = None
    variant_id = parse_positive_int(request.GET.get('variant'))
    if variant_id:
        selected = next((v for v in variants if v.pk == variant_id), None)
    if selected is None:
        selected = product.default_variant

    return render(request, 'store/product_details.html', {
        'product': product,
        'variants': variants,
        'selected_variant': selected,
        'related_products': catalog.related_products(product),
        'cart_count': get_cart_count(request),
    })


# -------------------------------
# CART SYSTEM
# -------------------------------
@require_POST
def add_to_cart(request):
    cart = get_cart(request)
    variant = get_object_or_404(
        ProductVariant.objects.select_related('product'),
        pk=parse_positive_int(request.POST.get('variant_id'), 0),
    )
    try:
        quantity = int(request.POST.get('quantity') or 1)
    except ValueError:
        quantity = 0
    next_url = _safe_next(request, reverse('product_detail', args=[variant.product.slug]))

    try:
        cart.add(variant, quantity)
    except CartError as e:
        messages.error(request, e.message)
        return redirect(next_url)

    messages.success(request, f"{variant.product.name} added to your cart.")
    return redirect(next_url)


@require_POST
def remove_from_cart(request):
    variant_id = parse_positive_int(request.POST.get('variant_id'))
    if variant_id:
        get_cart(request).remove(variant_id)
        messages.info(request, "Item removed from your cart.")
    return redirect('cart')


def update_cart_item(request):
    if request.method != 'POST':
        return JsonResponse({'status': 'error', 'message': 'Invalid request'}, status=400)

    try:
        data = json.loads(request.body or b'{}')
    except ValueError:
        return JsonResponse({'status': 'error', 'message': 'Malformed JSON body'}, status=400)

    variant_id = parse_positive_int(data.get('variant_id'))
    action = data.get('action')
    if not variant_id:
        return JsonResponse({'status': 'error', 'message': 'variant_id is required'}, status=400)

    cart = get_cart(request)
    current = cart.quantity_of(variant_id)
    try:
        if action == 'increase':
            cart.update_quantity(variant_id, current + 1)
        elif action == 'decrease':
            cart.update_quantity(variant_id, current - 1)
        elif action == 'remove':
            cart.remove(variant_id)
        elif action == 'set':
            try:
                quantity = int(data.get('quantity'))
            except (TypeError, ValueError):
                return JsonResponse({'status': 'error', 'message': 'quantity must be a number'}, status=400)
            cart.update_quantity(variant_id, quantity)
        else:
            return JsonResponse({'status': 'error', 'message': 'Unknown action'}, status=400)
    except CartError as e:
        return JsonResponse({
            'status': 'error',
            'message': e.message,
            'quantity': cart.quantity_of(variant_id),
        }, status=400)

    return JsonResponse({
        'status': 'success',
        'quantity': cart.quantity_of(variant_id),
        'cart_count': cart.count,
        'total': str(cart.total),
    })


def cart_view(request):
    cart = get_cart(request)
    return render(request, 'store/cart.html', {
        'cart_items': cart.lines(),
        'total_price': cart.total,
        'cart_count': cart.count,
    })


# -------------------------------
# CHECKOUT
# -------------------------------
@login_required
def checkout(request):
    cart = get_cart(request)
    if not cart:
        messages.info(request, "Your cart is empty.")
        return redirect('products')

    user = request.user
    payment_type = request.POST.get('payment_type') or request.GET.get('payment_type', '')
    form = {
        'shipping_address': request.POST.get('shipping_address', user.address).strip(),
        'shipping_city': request.POST.get('shipping_city', user.city).strip(),
        'payment_method': request.POST.get('payment_method', ''),
    }

    if request.method == 'POST':
        method = payments.get_payment_method(form['payment_method'])
        if not form['shipping_address'] or not form['shipping_city'] or method is None:
            messages.error(request, "Please fill in all the required fields.")
        else:
            try:
                previous = _session_pending_order(request)
                if previous is not None:
                    if orders.order_matches_cart(previous, cart):
                        messages.info(request, "Your order is already placed. Upload the payment reference to finish.")
                        return redirect('upload_payment_reference')
                    # cart changed since; release the old reservation first
                    orders.cancel_order(previous)
                    logger.info("Replaced pending order %s at checkout", previous.id)
                order = orders.create_order(
                    user, cart, method, form['shipping_address'], form['shipping_city']
                )
            except (CartError, OrderError) as e:
                messages.error(request, e.message)
                return redirect('cart')

            # Save order ID for the next step
            request.session['last_order_id'] = order.id
            # Do NOT clear cart here. Wait for the payment reference.
            return redirect('upload_payment_reference')

    return render(request, 'store/checkout.html', {
        'cart_items': cart.lines(),
        'total_price': cart.total,
        'payment_types': payments.payment_types(),
        'payment_type': payment_type,
        'payment_methods': payments.active_payment_methods(payment_type or None),
        'form': form,
        'cart_count': cart.count,
    })


def _session_pending_order(request):
    order_id = request.session.get('last_order_id')
    if not order_id:
        return None
    return Order.objects.filter(
        id=order_id, user=request.user, status=Order.PENDING, payment_reference__isnull=True
    ).first()


def _pending_order_for(request):
    order = _session_pending_order(request)

    # Fallback in case the session lost track of the order
    if order is None:
        order = (
            Order.objects.filter(user=request.user, status=Order.PENDING, payment_reference__isnull=True)
            .order_by('-created_at')
            .first()
        )
    return order


@login_required
def upload_payment_reference(request):
    order = _pending_order_for(request)
    if order is None:
        messages.error(request, "Could not find your order. Please try placing it again.")
        return redirect('cart')

    method = order.payment_method
    form = {
        'reference_number': request.POST.get('reference_number', '').strip(),
        'bank_origin': request.POST.get('bank_origin', '').strip(),
        'date': request.POST.get('date', '').strip(),
    }

    if request.method == 'POST':
        image = request.FILES.get('image')
        try:
            date = parse_date(form['date']) if form['date'] else None
        except ValueError:
            date = None
        if not form['reference_number'] or not form['bank_origin'] or date is None or not image:
            messages.error(request, "Please complete the payment information.")
        else:
            try:
                reference = orders.add_payment_reference(
                    order, method, form['reference_number'], form['bank_origin'], date, image
                )
            except OrderError as e:
                messages.error(request, e.message)
                return redirect('my_orders')

            try:
                notifications.notify_admins_payment_reference(order, reference)
            except Exception:
                logger.exception("Admin notification failed for order %s", order.id)
                messages.warning(request, "Your payment was recorded but the store could not be notified yet.")

            notifications.dispatch_order_confirmation(order.id)

            # Clear cart and session data only after the reference is stored
            get_cart(request).clear()
            request.session.pop('last_order_id', None)
            request.session['completed_order_id'] = order.id

            messages.success(request, "Payment received. Your order is being processed.")
            return redirect('checkout_success')

    return render(request, 'store/upload_payment_reference.html', {
        'order': order,
        'payment_method': method,
        'banks': payments.origin_banks(),
        'form': form,
        'cart_count': get_cart_count(request),
    })


def checkout_success(request):
    order = None
    order_id = request.session.get('completed_order_id')
    if order_id and request.user.is_authenticated:
        order = Order.objects.filter(id=order_id, user=request.user).first()
    return render(request, 'store/checkout_success.html', {
        'order': order,
        'cart_count': get_cart_count(request),
    })


# -------------------------------
# ORDERS
# -------------------------------
@login_required
def my_orders(request):
    return render(request, 'store/my_orders.html', {
        'orders': orders.user_orders(request.user),
        'cart_count': get_cart_count(request),
    })


# -------------------------------
# ACCOUNT
# -------------------------------
def login_view(request):
    if request.user.is_authenticated:
        return redirect(_safe_next(request, reverse('home')))

    email = request.POST.get('email', '').strip()
    if request.method == 'POST':
        user = accounts.authenticate_customer(request, email, request.POST.get('password', ''))
        if user is None:
            messages.error(request, "Invalid credentials.")
        else:
            login(request, user)
            messages.success(request, "Signed in successfully.")
            return redirect(_safe_next(request, reverse('home')))

    return render(request, 'store/login.html', {
        'email': email,
        'next': request.GET.get('next', ''),
        'cart_count': get_cart_count(request),
    })


def register_view(request):
    if request.user.is_authenticated:
        return redirect('home')

    fields = ('name', 'email', 'dni', 'phone', 'address', 'city')
    form = {f: request.POST.get(f, '').strip() for f in fields}

    if request.method == 'POST':
        password = request.POST.get('password', '')
        if password != request.POST.get('password_confirm', ''):
            messages.error(request, "The passwords do not match.")
        else:
            try:
                user = accounts.register(password=password, **form)
            except AccountError as e:
                messages.error(request, e.message)
            else:
                login(request, user, backend='django.contrib.auth.backends.ModelBackend')
                messages.success(request, "Your account was created.")
                return redirect(_safe_next(request, reverse('home')))

    return render(request, 'store/register.html', {
        'form': form,
        'next': request.GET.get('next', ''),
        'cart_count': get_cart_count(request),
    })


@require_POST
def logout_view(request):
    # logout() flushes the session, the cart goes with it
    logout(request)
    messages.success(request, "Signed out.")
    return redirect('home')


@login_required
def profile(request):
    user = request.user
    if request.method == 'POST':
        action = request.POST.get('action', 'profile')
        try:
            if action == 'password':
                accounts.change_password(
                    user,
                    request.POST.get('current_password', ''),
                    request.POST.get('new_password', ''),
                    request.POST.get('confirm_password', ''),
                )
                update_session_auth_hash(request, user)
                messages.success(request, "Password updated.")
            else:
                accounts.update_profile(user, **{
                    f: request.POST.get(f) for f in accounts.PROFILE_FIELDS
                })
                messages.success(request, "Profile updated.")
        except AccountError as e:
            messages.error(request, e.message)
        return redirect('profile')

    return render(request, 'store/profile.html', {
        'profile_user': user,
        'cart_count': get_cart_count(request),
    })


# -------------------------------
# ADMIN DASHBOARD
# -------------------------------
@staff_member_required
def admin_dashboard(request):
    return render(request, 'store/admin/dashboard.html', {
        'sales': reports.sales_report(),
        'views_report': reports.views_report(),
        'summary': reports.dashboard_summary(),
        'cart_count': get_cart_count(request),
    })
