"""
WSGI config for guarded_commerce.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'guarded_commerce.settings')

application = get_wsgi_application()
