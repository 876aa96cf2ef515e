"""
WSGI config for Lavandería Cobre project.

Expone el callable WSGI como una variable a nivel de módulo llamada ``application``.
Se usa para deployment en servidores de producción.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lavanderia.settings')

application = get_wsgi_application()
