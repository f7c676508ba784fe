"""
WSGI config for the audiorelay project.

Run under a threaded server so jobs proceed concurrently, e.g.:
    gunicorn audiorelay.wsgi --threads 8
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'audiorelay.settings')

application = get_wsgi_application()
