"""
Resolución de sesión

Determina el usuario actuante antes de cualquier operación protegida.

Flujos:
1. Sesión autenticada por Firebase: se busca el perfil por uid en la
   colección `usuarios`, se mapea el rol y se guarda en la sesión local.
2. Vinculación por token: el token se trata como id de perfil; si no
   existe se aplica la política configurada (rechazar o invitado).
3. Cierre de sesión explícito: única operación que borra la sesión local.
"""

import logging
from typing import MutableMapping, Optional

from django.conf import settings
from django.utils import timezone

from .models import Rol, Usuario
from .roles import mapear_rol
from apps.comun.excepciones import ErrorInventario

logger = logging.getLogger(__name__)

COLECCION_USUARIOS = 'usuarios'

POLITICA_RECHAZAR = 'rechazar'
POLITICA_INVITADO = 'invitado'

EMAIL_VINCULADO = 'usuario@intranet.cl'
NOMBRE_VINCULADO = 'Usuario Vinculado'


class ResolvedorSesion:
    """
    Resuelve y persiste la identidad del usuario actuante.

    Args:
        store: Almacén de documentos (FirestoreStore o equivalente)
        almacen: Persistencia local de la sesión (mapping mutable;
                 en requests HTTP es `request.session`)
        politica_token: "rechazar" o "invitado"
        roles_admin: Valores del campo rol que elevan a admin
    """

    def __init__(self, store, almacen: MutableMapping, politica_token=None, roles_admin=None):
        self.store = store
        self.almacen = almacen
        self.politica_token = politica_token or settings.TOKEN_LINK_POLICY
        self.roles_admin = roles_admin
        self.clave = settings.LOCAL_SESSION_KEY
        self.clave_huella = f"{self.clave}_token"

    def usuario_actual(self) -> Optional[Usuario]:
        """Lee el snapshot guardado en la sesión local."""
        return Usuario.desde_dict(self.almacen.get(self.clave))

    def _guardar(self, usuario: Usuario) -> Usuario:
        self.almacen[self.clave] = usuario.a_dict()
        return usuario

    def _buscar_perfil(self, uid: str, email: str, nombre: str) -> Optional[Usuario]:
        try:
            perfil = self.store.obtener(COLECCION_USUARIOS, uid)
        except ErrorInventario as e:
            logger.error(f"Error obteniendo perfil de {uid}: {e.mensaje}")
            return None

        if not perfil:
            logger.warning(f"Perfil {uid} no encontrado en {COLECCION_USUARIOS}")
            return None

        self._tocar_ultimo_acceso(uid)

        rol = perfil.get('rol') or perfil.get('role') or Rol.OPERARIO.value
        return Usuario(
            uid=uid,
            email=perfil.get('correo') or perfil.get('email') or email,
            displayName=perfil.get('nombre') or perfil.get('displayName') or nombre,
            role=mapear_rol(rol, self.roles_admin),
        )

    def _tocar_ultimo_acceso(self, uid: str) -> None:
        # Un fallo aquí no debe impedir el login
        try:
            self.store.actualizar(COLECCION_USUARIOS, uid, {'ultimo_acceso': timezone.now()})
        except ErrorInventario as e:
            logger.warning(f"No se pudo actualizar ultimo_acceso de {uid}: {e.mensaje}")

    def resolver_autenticado(
        self,
        uid: str,
        email: str = '',
        nombre: str = '',
        huella: Optional[str] = None,
    ) -> Optional[Usuario]:
        """
        Resuelve una sesión autenticada por el proveedor de identidad.

        Args:
            huella: Identifica el ID token verificado; si la sesión ya fue
                    resuelta con ese mismo token se reutiliza sin consultar

        Returns:
            Usuario resuelto, o None si el perfil no existe o falló la
            consulta. En ese caso la sesión local no se modifica.
        """
        actual = self.usuario_actual()
        if (huella and actual is not None and actual.uid == uid
                and self.almacen.get(self.clave_huella) == huella):
            return actual

        usuario = self._buscar_perfil(uid, email, nombre)
        if usuario is None:
            return None

        logger.debug(f"Usuario autenticado: {usuario.email} ({usuario.role.value})")
        if huella:
            self.almacen[self.clave_huella] = huella
        return self._guardar(usuario)

    def vincular_token(self, token: str) -> Optional[Usuario]:
        """
        Establece la sesión confiando en un identificador externo.

        Si la sesión local ya corresponde a ese id no se consulta nada.
        """
        token = (token or '').strip()
        if not token:
            return None

        actual = self.usuario_actual()
        if actual is not None and actual.uid == token:
            return actual

        usuario = self._buscar_perfil(token, EMAIL_VINCULADO, NOMBRE_VINCULADO)
        if usuario is not None:
            logger.info(f"Sesión vinculada por token para {usuario.displayName}")
            return self._guardar(usuario)

        # Una sesión ya resuelta no se reemplaza por un invitado
        if actual is not None:
            logger.warning(f"Token {token} sin perfil; se conserva la sesión de {actual.uid}")
            return None

        if self.politica_token == POLITICA_INVITADO:
            logger.info(f"Token {token} sin perfil, se establece sesión de invitado")
            invitado = Usuario(
                uid=token,
                email='',
                displayName='Invitado',
                role=Rol.OPERARIO,
                invitado=True,
            )
            return self._guardar(invitado)

        logger.warning(f"Token {token} rechazado: no corresponde a ningún perfil")
        return None

    def cerrar_sesion(self) -> None:
        self.almacen.pop(self.clave, None)
        self.almacen.pop(self.clave_huella, None)
