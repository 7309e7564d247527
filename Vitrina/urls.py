from django.conf import settings
from django.conf.urls.i18n import i18n_patterns
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

admin.site.site_header = f"{settings.STORE_NAME} admin"
admin.site.site_title = settings.STORE_NAME
admin.site.index_title = "Catalog, orders and payments"

urlpatterns = [
    path('i18n/', include('django.conf.urls.i18n')),  # language switcher
    path('admin/', admin.site.urls),
]

# Storefront pages carry the language prefix (/en/, /es/)
urlpatterns += i18n_patterns(
    path('', include('store.urls')),
)

if settings.DEBUG:
    urlpatterns += [path("__reload__/", include("django_browser_reload.urls"))]
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
