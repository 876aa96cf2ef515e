"""Modelos de Autenticación - Usuario resuelto a partir de la colección usuarios"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional


class Rol(str, Enum):
    ADMIN = 'admin'
    OPERARIO = 'operario'


@dataclass(frozen=True)
class Usuario:
    """Usuario actuante; se guarda tal cual en la sesión local."""

    uid: str
    email: str
    displayName: str
    role: Rol = Rol.OPERARIO
    invitado: bool = False

    @property
    def es_admin(self) -> bool:
        return self.role == Rol.ADMIN and not self.invitado

    def a_dict(self) -> Dict:
        datos = asdict(self)
        datos['role'] = self.role.value
        return datos

    @classmethod
    def desde_dict(cls, datos: Optional[Dict]) -> Optional['Usuario']:
        if not datos or not datos.get('uid'):
            return None
        return cls(
            uid=datos['uid'],
            email=datos.get('email', ''),
            displayName=datos.get('displayName', ''),
            role=Rol(datos.get('role', Rol.OPERARIO.value)),
            invitado=bool(datos.get('invitado', False)),
        )
