"""
WSGI config for tradebook project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tradebook.settings')

application = get_wsgi_application()
