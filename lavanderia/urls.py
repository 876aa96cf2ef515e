"""
Lavandería Cobre URL Configuration

Este archivo define todas las rutas principales del proyecto.
Cada app tiene su propio archivo urls.py que se incluye aquí.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def api_root(request):
    """Vista raíz de la API"""
    return JsonResponse({
        'message': 'API de Lavandería Cobre funcionando correctamente',
        'version': '1.0.0',
        'endpoints': {
            'auth': '/api/auth/',
            'productos': '/api/productos/',
            'proveedores': '/api/proveedores/',
            'historial': '/api/historial/',
            'dashboard': '/api/dashboard/',
        }
    })


urlpatterns = [
    path('', api_root, name='api-root'),
    path('api/', api_root, name='api-root-with-prefix'),
    path('admin/', admin.site.urls),

    # Apps
    path('api/auth/', include('apps.autenticacion.urls')),
    path('api/productos/', include('apps.productos.urls')),
    path('api/proveedores/', include('apps.proveedores.urls')),
    path('api/historial/', include('apps.historial.urls')),
    path('api/dashboard/', include('apps.dashboard.urls')),
]
