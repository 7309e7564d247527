from decimal import Decimal

import cloudinary
import pytest
from cloudinary import CloudinaryResource
from django.contrib.auth import get_user_model
from django.contrib.sessions.backends.db import SessionStore
from django.core.files.uploadedfile import SimpleUploadedFile

from store.cart import SessionCart
from store.models import Category, PaymentMethod, Product, ProductVariant, Tag

PASSWORD = "Tienda-2024!x"


@pytest.fixture(autouse=True)
def store_settings(settings):
    settings.STORE_ASYNC_EMAILS = False
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.ADMIN_NOTIFICATION_EMAILS = "orders@example.com"
    settings.DEFAULT_FROM_EMAIL = "Vitrina <no-reply@example.com>"
    settings.STORE_FEATURED_TAG = "trending"
    settings.STORE_NEW_TAG = "new"
    cloudinary.config(cloud_name="vitrina-test", api_key="key", api_secret="secret")
    return settings


@pytest.fixture(autouse=True)
def fake_cloudinary_upload(monkeypatch):
    """Uploads never leave the test process."""
    uploads = []

    def upload_resource(file, **options):
        uploads.append((file.name, options))
        public_id = f"{options.get('folder', '')}{file.name.rsplit('.', 1)[0]}"
        return CloudinaryResource(public_id, format="png", version="1", type="upload", resource_type="image")

    monkeypatch.setattr("cloudinary.uploader.upload_resource", upload_resource)
    return uploads


@pytest.fixture
def receipt():
    return SimpleUploadedFile("receipt.png", b"\x89PNG\r\n\x1a\nfake", content_type="image/png")


@pytest.fixture
def customer(db):
    User = get_user_model()
    user = User(
        username="cliente@example.com",
        email="cliente@example.com",
        name="Demo Customer",
        dni="87654321",
        phone="+58987654321",
        address="Avenida Libertador 456",
        city="Valencia",
    )
    user.set_password(PASSWORD)
    user.save()
    return user


@pytest.fixture
def staff_user(db):
    User = get_user_model()
    user = User(username="admin@example.com", email="admin@example.com", name="Administrator",
                is_staff=True, is_superuser=True)
    user.set_password(PASSWORD)
    user.save()
    return user


@pytest.fixture
def category(db):
    return Category.objects.create(name="Electronics", description="Electronic devices")


@pytest.fixture
def tags(db):
    return {
        slug: Tag.objects.create(name=name, slug=slug)
        for name, slug in [("Sale", "sale"), ("New", "new"), ("Trending", "trending")]
    }


@pytest.fixture
def make_product(db, category):
    def _make(name="Smartphone XYZ", variants=(("Black", "599.99", 15),), category=category,
              tags=(), views=0, description=None):
        product = Product.objects.create(
            name=name,
            description=description if description is not None else f"{name} description",
            category=category,
            views=views,
        )
        product.tags.set(tags)
        for color, price, stock in variants:
            ProductVariant.objects.create(product=product, color=color, price=Decimal(price), stock=stock)
        return product
    return _make


@pytest.fixture
def phone(make_product):
    return make_product(variants=(("Black", "599.99", 15), ("White", "649.99", 3)))


@pytest.fixture
def payment_method(db):
    return PaymentMethod.objects.create(
        type=PaymentMethod.BANK_TRANSFER,
        bank="Banesco",
        account_number="1234567890",
        dni="87654321",
        holder_name="Vitrina",
        account_type="corriente",
    )


@pytest.fixture
def session(db):
    store = SessionStore()
    store.create()
    return store


@pytest.fixture
def cart(session):
    return SessionCart(session)
