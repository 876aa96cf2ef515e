"""
URLs del módulo de autenticación
"""

from django.urls import path
from . import views

urlpatterns = [
    path('login/', views.login, name='login'),
    path('token/', views.login_con_token, name='login-token'),
    path('logout/', views.logout, name='logout'),
    path('me/', views.get_current_user, name='current-user'),
]
