"""
Product lookups for the storefront pages.
"""
import logging

from django.conf import settings
from django.db.models import F, Max, Min, Prefetch, Q

from .models import Category, Product, ProductVariant, Tag, VariantImage

logger = logging.getLogger(__name__)

SORT_OPTIONS = [
    ('default', 'Newest'),
    ('price-asc', 'Price: low to high'),
    ('price-desc', 'Price: high to low'),
    ('name-asc', 'Name: A to Z'),
    ('name-desc', 'Name: Z to A'),
    ('popular', 'Most popular'),
]


def _with_relations(queryset):
    return queryset.select_related('category').prefetch_related(
        'tags',
        Prefetch(
            'variants',
            queryset=ProductVariant.objects.prefetch_related(
                Prefetch('images', queryset=VariantImage.objects.order_by('position', 'id'))
            ),
        ),
    )


def all_products():
    return _with_relations(Product.objects.all())


def all_categories():
    return Category.objects.all()


def all_tags():
    return Tag.objects.all()


def filter_products(search=None, categories=(), tags=(), sort=None):
    qs = Product.objects.all()

    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))

    category_ids = [int(c) for c in categories if str(c).isdigit()]
    if categories and not category_ids:
        return _with_relations(qs.none())
    if category_ids:
        qs = qs.filter(category_id__in=category_ids)

    tag_slugs = [t for t in tags if t]
    if tag_slugs:
        qs = qs.filter(tags__slug__in=tag_slugs).distinct()

    if sort == 'price-asc':
        qs = qs.annotate(lowest_price=Min('variants__price')).order_by(
            F('lowest_price').asc(nulls_last=True), 'name'
        )
    elif sort == 'price-desc':
        qs = qs.annotate(highest_price=Max('variants__price')).order_by(
            F('highest_price').desc(nulls_last=True), 'name'
        )
    elif sort == 'name-asc':
        qs = qs.order_by('name')
    elif sort == 'name-desc':
        qs = qs.order_by('-name')
    elif sort == 'popular':
        qs = qs.order_by('-views', 'name')
    else:
        qs = qs.order_by('-created_at', '-id')

    return _with_relations(qs)


def listing_title(search=None, categories=(), tags=()):
    title = "All products"
    if search:
        title = f'Results for "{search}"'
    if len(categories) == 1:
        category = Category.objects.filter(pk=categories[0]).first() if str(categories[0]).isdigit() else None
        if category:
            title = category.name
    if len(tags) == 1:
        tag = Tag.objects.filter(slug=tags[0]).first()
        if tag:
            title = f'Products tagged "{tag.name}"'
    return title


def get_product(id_or_slug, count_view=True):
    """
    Look a product up by id first, then by slug.

    Raises Product.DoesNotExist when neither matches.
    """
    qs = all_products()
    product = None
    if str(id_or_slug).isdigit():
        product = qs.filter(pk=int(id_or_slug)).first()
    if product is None:
        product = qs.filter(slug=str(id_or_slug)).first()
    if product is None:
        raise Product.DoesNotExist(f"No product matches {id_or_slug!r}")

    if count_view:
        Product.objects.filter(pk=product.pk).update(views=F('views') + 1)
        product.views += 1
    return product


def related_products(product, limit=4):
    if not product.category_id:
        return []
    qs = all_products().filter(category_id=product.category_id).exclude(pk=product.pk)
    return list(qs[:limit])


def products_with_tag(slug, limit=None):
    qs = all_products().filter(tags__slug=slug).distinct()
    return list(qs[:limit]) if limit else list(qs)


def featured_products(limit=8):
    return products_with_tag(settings.STORE_FEATURED_TAG, limit)


def new_products(limit=8):
    return products_with_tag(settings.STORE_NEW_TAG, limit)


def popular_products(limit=4):
    return list(all_products().order_by('-views', 'name')[:limit])
