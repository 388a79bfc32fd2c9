"""
WSGI config for the checkout back end.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "checkout_backend.settings")

application = get_wsgi_application()
