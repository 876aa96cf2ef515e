"""URLs del módulo de proveedores"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

router = SimpleRouter()
router.register(r'', views.ProveedorViewSet, basename='proveedor')

urlpatterns = [
    path('', include(router.urls)),
]
