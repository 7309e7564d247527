from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin
from django.utils.html import format_html

from .exceptions import InvalidTransition
from .models import (
    Category, Customer, Order, OrderItem, PaymentMethod, PaymentReference,
    Product, ProductVariant, Tag, VariantImage,
)


def preview(image, width=80):
    if image:
        return format_html('<img src="{}" width="{}" style="border-radius:8px;" />', image.url, width)
    return "No Image"


@admin.register(Customer)
class CustomerAdmin(UserAdmin):
    list_display = ('email', 'name', 'dni', 'phone', 'city', 'is_staff', 'date_joined')
    search_fields = ('email', 'name', 'dni', 'phone')
    ordering = ('-date_joined',)
    fieldsets = UserAdmin.fieldsets + (
        ("Customer", {'fields': ('name', 'dni', 'phone', 'address', 'city')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('email', 'username', 'password1', 'password2')}),
    )


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug')
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug')
    prepopulated_fields = {'slug': ('name',)}


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 1
    show_change_link = True


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'views', 'created_at')
    list_filter = ('category', 'tags')
    search_fields = ('name', 'description', 'slug')
    prepopulated_fields = {'slug': ('name',)}
    filter_horizontal = ('tags',)
    inlines = [ProductVariantInline]


class VariantImageInline(admin.TabularInline):
    model = VariantImage
    extra = 1


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ('product', 'color', 'price', 'stock')
    list_filter = ('product__category',)
    search_fields = ('product__name', 'color')
    inlines = [VariantImageInline]


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ('bank', 'type', 'account_number', 'phone', 'dni', 'holder_name', 'active')
    list_filter = ('type', 'active')


@admin.register(PaymentReference)
class PaymentReferenceAdmin(admin.ModelAdmin):
    list_display = ('reference_number', 'order', 'bank_origin', 'date', 'status', 'uploaded_at', 'preview_image')
    readonly_fields = ('status', 'uploaded_at', 'reviewed_at')
    search_fields = ('reference_number', 'bank_origin', 'order__user__email')
    list_filter = ('status', 'payment_method')

    actions = ['mark_as_verified', 'mark_as_rejected']

    def preview_image(self, obj):
        return preview(obj.image)
    preview_image.short_description = "Receipt"

    def mark_as_verified(self, request, queryset):
        for reference in queryset.select_related('order'):
            reference.verify()
    mark_as_verified.short_description = "Mark payment as verified"

    def mark_as_rejected(self, request, queryset):
        for reference in queryset:
            reference.reject()
    mark_as_rejected.short_description = "Mark payment as rejected"


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'variant', 'product_name', 'color', 'price', 'quantity')
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'total', 'status', 'shipping_city', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('user__email', 'user__name', 'id')
    # status only moves through the actions below
    readonly_fields = ('status', 'total', 'created_at', 'updated_at')
    inlines = [OrderItemInline]

    actions = ['mark_as_processing', 'mark_as_shipped', 'mark_as_delivered', 'mark_as_cancelled']

    def _transition(self, request, queryset, status):
        moved = 0
        for order in queryset:
            try:
                order.transition_to(status)
                moved += 1
            except InvalidTransition as e:
                self.message_user(request, f"Order #{order.id}: {e.message}", messages.WARNING)
        if moved:
            self.message_user(request, f"{moved} order(s) marked as {status}.", messages.SUCCESS)

    def mark_as_processing(self, request, queryset):
        self._transition(request, queryset, Order.PROCESSING)
    mark_as_processing.short_description = "Mark as Processing"

    def mark_as_shipped(self, request, queryset):
        self._transition(request, queryset, Order.SHIPPED)
    mark_as_shipped.short_description = "Mark as Shipped"

    def mark_as_delivered(self, request, queryset):
        self._transition(request, queryset, Order.DELIVERED)
    mark_as_delivered.short_description = "Mark as Delivered"

    def mark_as_cancelled(self, request, queryset):
        self._transition(request, queryset, Order.CANCELLED)
    mark_as_cancelled.short_description = "Cancel (restocks items)"
