"""
Permisos personalizados para Lavandería Cobre

Define los permisos basados en roles:
- ADMIN: Acceso total
- OPERARIO: Lectura y movimientos de stock
- INVITADO: Solo lectura
"""

from rest_framework import permissions
from .roles import puede, LEER


def _usuario(request):
    return getattr(request, 'usuario', None)


class IsAuthenticated(permissions.BasePermission):
    """
    Permiso que verifica que haya un usuario resuelto en la request.
    """

    message = 'No autenticado'

    def has_permission(self, request, view):
        return _usuario(request) is not None


class IsAdmin(permissions.BasePermission):
    """
    Permiso que solo permite acceso a usuarios con rol admin.
    """

    message = 'Se requiere rol administrador'

    def has_permission(self, request, view):
        usuario = _usuario(request)
        return usuario is not None and usuario.es_admin


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Permiso que permite lectura a todos los autenticados,
    pero solo admin puede crear/editar/eliminar.
    """

    message = 'No tienes permisos para modificar este recurso'

    def has_permission(self, request, view):
        usuario = _usuario(request)
        if usuario is None:
            return False

        # Métodos de lectura permitidos para todos
        if request.method in permissions.SAFE_METHODS:
            return puede(usuario, LEER)

        return usuario.es_admin
