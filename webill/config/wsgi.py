"""
WSGI config for the WeBill backend.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'webill.config.settings')

application = get_wsgi_application()
