"""
ASGI config for the clinic project.

Only plain HTTP is served; clients poll the queue endpoints instead of
holding a socket open.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinic.settings")

application = get_asgi_application()
