# store/middleware.py
from django.utils.deprecation import MiddlewareMixin
from django.utils.functional import SimpleLazyObject

from .cart import SessionCart


class CartMiddleware(MiddlewareMixin):
    """
    Attach the visitor's session cart as ``request.cart``.
    Must run after SessionMiddleware.
    """
    def process_request(self, request):
        request.cart = SimpleLazyObject(lambda: SessionCart(request.session))
