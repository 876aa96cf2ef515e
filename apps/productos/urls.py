"""URLs del módulo de productos"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

router = SimpleRouter()
router.register(r'', views.ProductoViewSet, basename='producto')

urlpatterns = [
    path('', include(router.urls)),
]
