"""WSGI config for the ballsale project."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ballsale.settings")

application = get_wsgi_application()
