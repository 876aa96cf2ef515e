"""
Roles y permisos

Define el mapeo rol almacenado -> rol interno y la matriz de permisos:
- admin: acceso total
- operario: lectura y movimientos de stock (entradas y salidas)
- invitado: solo lectura
"""

from typing import Iterable, Optional

from django.conf import settings

from apps.comun.excepciones import PermisoDenegado, IdentidadNoResuelta
from .models import Rol, Usuario

LEER = 'leer'
CREAR = 'crear'
EDITAR = 'editar'
ELIMINAR = 'eliminar'
AGREGAR_STOCK = 'agregar_stock'
RETIRAR_STOCK = 'retirar_stock'

MATRIZ_PERMISOS = {
    Rol.ADMIN: {'*'},
    Rol.OPERARIO: {LEER, AGREGAR_STOCK, RETIRAR_STOCK},
}
PERMISOS_INVITADO = {LEER}


def mapear_rol(rol_almacenado: Optional[str], roles_admin: Optional[Iterable[str]] = None) -> Rol:
    """
    Traduce el campo "rol" del perfil al rol interno.

    Función pura: el resultado depende solo del texto almacenado y del
    conjunto de valores que elevan a admin (por defecto settings.ROLES_ADMIN).

    Example:
        >>> mapear_rol('administrador')
        <Rol.ADMIN: 'admin'>
        >>> mapear_rol(None)
        <Rol.OPERARIO: 'operario'>
    """
    if roles_admin is None:
        roles_admin = settings.ROLES_ADMIN
    elevados = {r.strip().lower() for r in roles_admin if r and r.strip()}

    rol = (rol_almacenado or '').strip().lower()
    if rol and rol in elevados:
        return Rol.ADMIN
    return Rol.OPERARIO


def puede(usuario: Optional[Usuario], permiso: str) -> bool:
    if usuario is None:
        return False
    if usuario.invitado:
        return permiso in PERMISOS_INVITADO

    permitidos = MATRIZ_PERMISOS.get(usuario.role, set())
    return '*' in permitidos or permiso in permitidos


def exigir_permiso(usuario: Optional[Usuario], permiso: str) -> Usuario:
    """Lanza una excepción si el usuario no puede realizar `permiso`."""
    if usuario is None:
        raise IdentidadNoResuelta()
    if not puede(usuario, permiso):
        raise PermisoDenegado()
    return usuario
