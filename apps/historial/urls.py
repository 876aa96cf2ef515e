"""URLs del módulo de historial"""

from django.urls import path
from . import views

urlpatterns = [
    path('', views.listar_historial, name='historial-list'),
    path('resumen/', views.resumen_historial, name='historial-resumen'),
    path('reporte/', views.reporte_historial, name='historial-reporte'),
]
