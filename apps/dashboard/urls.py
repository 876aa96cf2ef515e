"""URLs del módulo de dashboard"""

from django.urls import path
from . import views

urlpatterns = [
    path('', views.get_dashboard, name='dashboard'),
    path('kpis/', views.get_kpis, name='dashboard-kpis'),
]
