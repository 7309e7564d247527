from decimal import Decimal

from cloudinary.models import CloudinaryField
from django.contrib.auth.models import AbstractUser, UserManager
from django.core.validators import MinValueValidator
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.text import slugify

from .exceptions import InvalidTransition


def unique_slug(model, value, instance_pk=None):
    base = slugify(value) or "item"
    slug = base
    n = 2
    qs = model.objects.all()
    if instance_pk:
        qs = qs.exclude(pk=instance_pk)
    while qs.filter(slug=slug).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


# ------------------------------
# CUSTOMER MODEL
# ------------------------------
class CustomerManager(UserManager):
    def get_by_natural_key(self, username):
        return self.get(**{f"{self.model.USERNAME_FIELD}__iexact": username})


class Customer(AbstractUser):
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    dni = models.CharField("DNI", max_length=20, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    objects = CustomerManager()

    def __str__(self):
        return self.name or self.email

    @property
    def is_admin(self):
        return self.is_staff


# ------------------------------
# CATEGORY & TAG MODELS
# ------------------------------
class Category(models.Model):
    name = models.CharField(max_length=100)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Category, self.name, self.pk)
        super().save(*args, **kwargs)


class Tag(models.Model):
    name = models.CharField(max_length=60)
    slug = models.SlugField(max_length=80, unique=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Tag, self.name, self.pk)
        super().save(*args, **kwargs)


# ------------------------------
# PRODUCT MODELS
# ------------------------------
class Product(models.Model):
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True)

    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products"
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="products")

    featured_image = CloudinaryField('image', folder='products/', null=True, blank=True)
    views = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(Product, self.name, self.pk)
        super().save(*args, **kwargs)

    # variants are usually prefetched, so these work off .all()
    @property
    def min_price(self):
        prices = [v.price for v in self.variants.all()]
        return min(prices) if prices else None

    @property
    def max_price(self):
        prices = [v.price for v in self.variants.all()]
        return max(prices) if prices else None

    @property
    def total_stock(self):
        return sum(v.stock for v in self.variants.all())

    @property
    def default_variant(self):
        variants = list(self.variants.all())
        in_stock = [v for v in variants if v.stock > 0]
        if in_stock:
            return in_stock[0]
        return variants[0] if variants else None

    @property
    def primary_image(self):
        if self.featured_image:
            return self.featured_image
        for variant in self.variants.all():
            for image in variant.images.all():
                return image.image
        return None


class ProductVariant(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="variants")
    color = models.CharField(max_length=60)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))]
    )
    stock = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product.name} ({self.color})"

    @property
    def in_stock(self):
        return self.stock > 0

    @property
    def image_urls(self):
        return [img.image.url for img in self.images.all() if img.image]


class VariantImage(models.Model):
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, related_name="images")
    image = CloudinaryField('image', folder='products/')
    position = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"Image {self.position} of {self.variant}"


# ------------------------------
# PAYMENT METHOD MODEL
# ------------------------------
class PaymentMethod(models.Model):
    MOBILE_PAYMENT = 'pago_movil'
    BANK_TRANSFER = 'transferencia'
    TYPE_CHOICES = [
        (MOBILE_PAYMENT, 'Mobile payment (Pago Móvil)'),
        (BANK_TRANSFER, 'Bank transfer'),
    ]
    ACCOUNT_TYPE_CHOICES = [
        ('ahorro', 'Savings'),
        ('corriente', 'Checking'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    bank = models.CharField(max_length=100)
    account_number = models.CharField(max_length=30, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    dni = models.CharField("DNI", max_length=20)
    holder_name = models.CharField(max_length=150, blank=True)
    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPE_CHOICES, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        ordering = ["type", "bank"]

    def __str__(self):
        return f"{self.get_type_display()} - {self.bank}"


# ------------------------------
# ORDER MODELS
# ------------------------------
class Order(models.Model):
    PENDING = 'pending'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (PENDING, 'Pending (awaiting payment review)'),
        (PROCESSING, 'Processing'),
        (SHIPPED, 'Shipped'),
        (DELIVERED, 'Delivered'),
        (CANCELLED, 'Cancelled'),
    ]

    TRANSITIONS = {
        PENDING: {PROCESSING, CANCELLED},
        PROCESSING: {SHIPPED, DELIVERED, CANCELLED},
        SHIPPED: {DELIVERED},
        DELIVERED: set(),
        CANCELLED: set(),
    }

    user = models.ForeignKey(
        'Customer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders"
    )

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=PENDING
    )

    total = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00')
    )

    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders"
    )
    shipping_address = models.CharField(max_length=255)
    shipping_city = models.CharField(max_length=100)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        display_name = str(self.user) if self.user else "Guest"
        return f"Order #{self.id or 'unsaved'} - {display_name}"

    def get_total_price(self):
        total = Decimal('0.00')
        for item in self.items.all():
            total += item.subtotal
        return total.quantize(Decimal('0.01'))

    def get_payment_reference(self):
        try:
            return self.payment_reference
        except PaymentReference.DoesNotExist:
            return None

    def can_transition_to(self, status):
        return status in self.TRANSITIONS.get(self.status, set())

    def transition_to(self, status):
        """
        Move the order along its lifecycle.

        Cancelling puts the reserved units back into stock.
        """
        with transaction.atomic():
            # check against the locked row, not a possibly stale instance
            self.status = Order.objects.select_for_update().values_list(
                'status', flat=True
            ).get(pk=self.pk)
            if not self.can_transition_to(status):
                raise InvalidTransition(self.status, status)

            if status == self.CANCELLED:
                for item in self.items.exclude(variant=None):
                    ProductVariant.objects.filter(pk=item.variant_id).update(
                        stock=F('stock') + item.quantity
                    )
            self.status = status
            self.save(update_fields=['status', 'updated_at'])
        return self


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name='+')
    variant = models.ForeignKey(ProductVariant, on_delete=models.SET_NULL, null=True, related_name='+')

    # snapshot taken at checkout
    product_name = models.CharField(max_length=255)
    color = models.CharField(max_length=60, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product_name} ({self.color}) × {self.quantity}"

    @property
    def subtotal(self):
        return (self.price or Decimal('0.00')) * self.quantity


# ------------------------------
# PAYMENT REFERENCE MODEL
# ------------------------------
class PaymentReference(models.Model):
    PENDING = 'pending'
    VERIFIED = 'verified'
    REJECTED = 'rejected'

    STATUS_CHOICES = [
        (PENDING, 'Pending review'),
        (VERIFIED, 'Verified'),
        (REJECTED, 'Rejected'),
    ]

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='payment_reference')
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="references"
    )
    reference_number = models.CharField(max_length=60)
    bank_origin = models.CharField(max_length=100)
    date = models.DateField()
    image = CloudinaryField('image', folder='payment_proofs/', null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    uploaded_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return f"{self.reference_number} - Order #{self.order_id}"

    def verify(self):
        """
        A verified reference is the single source of truth for payment:
        a pending order moves on to processing.
        """
        with transaction.atomic():
            self.status = self.VERIFIED
            self.reviewed_at = timezone.now()
            self.save(update_fields=['status', 'reviewed_at'])
            if self.order.status == Order.PENDING:
                self.order.transition_to(Order.PROCESSING)

    def reject(self):
        self.status = self.REJECTED
        self.reviewed_at = timezone.now()
        self.save(update_fields=['status', 'reviewed_at'])
