"""
WSGI config for the Vitrina storefront.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "Vitrina.settings")

application = get_wsgi_application()
