"""
Session-backed shopping cart.

The cart lives in ``request.session['cart']`` so it survives between visits
for as long as the session does. Each line keeps a small snapshot of the
product (name, colour, price, image) so the navbar and cart page can render
without a query, while totals are always recomputed from the live variant
prices.
"""
from decimal import Decimal
import logging

from .exceptions import InsufficientStock, InvalidQuantity
from .models import ProductVariant

logger = logging.getLogger(__name__)

CART_SESSION_KEY = 'cart'


class CartLine:
    """A cart line joined to its current variant."""

    def __init__(self, variant, quantity):
        self.variant = variant
        self.product = variant.product
        self.quantity = quantity

    @property
    def price(self):
        return self.variant.price

    @property
    def subtotal(self):
        return self.variant.price * self.quantity

    @property
    def exceeds_stock(self):
        return self.quantity > self.variant.stock

    def __repr__(self):
        return f"<CartLine {self.variant_id} x{self.quantity}>"

    @property
    def variant_id(self):
        return self.variant.pk


class SessionCart:
    def __init__(self, session):
        self.session = session
        data = session.get(CART_SESSION_KEY) or {}
        if not isinstance(data, dict) or not isinstance(data.get('items'), list):
            data = {'items': []}
        self._items = data['items']
        self._lines = None

    # -------------------------------
    # Persistence
    # -------------------------------
    def _save(self):
        self.session[CART_SESSION_KEY] = {'items': self._items}
        self.session.modified = True
        self._lines = None

    def _find(self, variant_id):
        variant_id = int(variant_id)
        for entry in self._items:
            if int(entry['variant_id']) == variant_id:
                return entry
        return None

    @staticmethod
    def _snapshot(variant, quantity):
        product = variant.product
        image = product.primary_image
        return {
            'product_id': product.pk,
            'variant_id': variant.pk,
            'quantity': quantity,
            'name': product.name,
            'slug': product.slug,
            'color': variant.color,
            'price': str(variant.price),
            'image': str(image) if image else '',
        }

    # -------------------------------
    # Mutations
    # -------------------------------
    def add(self, variant, quantity=1):
        quantity = int(quantity)
        if quantity < 1:
            raise InvalidQuantity()

        entry = self._find(variant.pk)
        new_quantity = quantity + (entry['quantity'] if entry else 0)
        if new_quantity > variant.stock:
            raise InsufficientStock(variant, new_quantity)

        if entry:
            entry['quantity'] = new_quantity
        else:
            self._items.append(self._snapshot(variant, quantity))
        self._save()
        logger.debug("Cart: variant %s now x%s", variant.pk, new_quantity)
        return new_quantity

    def remove(self, variant_id):
        entry = self._find(variant_id)
        if entry is not None:
            self._items.remove(entry)
            self._save()

    def update_quantity(self, variant_id, quantity):
        """
        Set the quantity of an existing line. Zero or less removes it.
        Unknown variants are ignored.
        """
        entry = self._find(variant_id)
        if entry is None:
            return 0

        quantity = int(quantity)
        if quantity <= 0:
            self.remove(variant_id)
            return 0

        variant = ProductVariant.objects.select_related('product').filter(pk=entry['variant_id']).first()
        if variant is None:
            self.remove(variant_id)
            return 0
        if quantity > variant.stock:
            raise InsufficientStock(variant, quantity)

        entry['quantity'] = quantity
        entry['price'] = str(variant.price)
        self._save()
        return quantity

    def clear(self):
        self._items = []
        self._save()

    # -------------------------------
    # Reads
    # -------------------------------
    def __iter__(self):
        return iter(self.lines())

    def __len__(self):
        return len(self._items)

    def __bool__(self):
        return bool(self._items)

    def quantity_of(self, variant_id):
        entry = self._find(variant_id)
        return entry['quantity'] if entry else 0

    def lines(self):
        if self._lines is not None:
            return self._lines

        ids = [int(entry['variant_id']) for entry in self._items]
        variants = ProductVariant.objects.select_related('product').prefetch_related(
            'product__variants__images', 'images'
        ).in_bulk(ids)

        lines = []
        stale = []
        for entry in self._items:
            variant = variants.get(int(entry['variant_id']))
            if variant is None:
                stale.append(entry)
                continue
            lines.append(CartLine(variant, int(entry['quantity'])))

        if stale:
            logger.info("Dropping %d cart line(s) for removed variants", len(stale))
            for entry in stale:
                self._items.remove(entry)
            self._save()

        self._lines = lines
        return lines

    @property
    def total(self):
        total = Decimal('0.00')
        for line in self.lines():
            total += line.subtotal
        return total.quantize(Decimal('0.01'))

    @property
    def count(self):
        return sum(int(entry['quantity']) for entry in self._items)
