"""
Modelos de Historial - Mapea colección historial_{sufijo} de Firestore

Cada registro es inmutable. El contenido de `changes` depende de la acción,
por eso se modela como una unión etiquetada: una clase por acción, cada una
con sus campos fijos, y `cambios_desde_documento` como único punto de
lectura del mapa guardado.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class Accion(str, Enum):
    CREAR = 'create'
    ACTUALIZAR = 'update'
    ELIMINAR = 'delete'
    AGREGAR_STOCK = 'add_stock'
    RETIRAR_STOCK = 'remove_stock'


class TipoEntidad(str, Enum):
    PRODUCTO = 'product'
    PROVEEDOR = 'supplier'
    USUARIO = 'user'


@dataclass(frozen=True)
class CambiosCreacion:
    campos: Dict[str, Any]
    accion = Accion.CREAR

    def a_documento(self) -> Dict[str, Any]:
        return dict(self.campos)


@dataclass(frozen=True)
class CambiosActualizacion:
    campos: Dict[str, Any]
    accion = Accion.ACTUALIZAR

    def a_documento(self) -> Dict[str, Any]:
        return dict(self.campos)


@dataclass(frozen=True)
class CambiosEntradaStock:
    cantidad_anterior: int
    cantidad_nueva: int
    accion = Accion.AGREGAR_STOCK

    @property
    def cantidad_agregada(self) -> int:
        return self.cantidad_nueva - self.cantidad_anterior

    def a_documento(self) -> Dict[str, Any]:
        return {
            'previousQuantity': self.cantidad_anterior,
            'newQuantity': self.cantidad_nueva,
            'quantityAdded': self.cantidad_agregada,
        }


@dataclass(frozen=True)
class CambiosSalidaStock:
    cantidad_anterior: int
    cantidad_nueva: int
    accion = Accion.RETIRAR_STOCK

    @property
    def cantidad_retirada(self) -> int:
        return self.cantidad_anterior - self.cantidad_nueva

    def a_documento(self) -> Dict[str, Any]:
        return {
            'previousQuantity': self.cantidad_anterior,
            'newQuantity': self.cantidad_nueva,
            'quantityRemoved': self.cantidad_retirada,
        }


Cambios = Union[CambiosCreacion, CambiosActualizacion, CambiosEntradaStock, CambiosSalidaStock]


def cambios_desde_documento(accion: Accion, datos: Optional[Dict[str, Any]]) -> Optional[Cambios]:
    """
    Reconstruye la variante de `changes` que corresponde a la acción.

    Las eliminaciones no llevan payload y devuelven None.
    """
    if accion == Accion.ELIMINAR or datos is None:
        return None
    if accion == Accion.CREAR:
        return CambiosCreacion(dict(datos))
    if accion == Accion.ACTUALIZAR:
        return CambiosActualizacion(dict(datos))

    anterior = int(datos.get('previousQuantity', 0))
    nueva = int(datos.get('newQuantity', 0))
    if accion == Accion.AGREGAR_STOCK:
        return CambiosEntradaStock(anterior, nueva)
    return CambiosSalidaStock(anterior, nueva)


@dataclass(frozen=True)
class RegistroHistorial:
    """Entrada del historial tal como se lee de Firestore."""

    id: str
    action: Accion
    entityType: TipoEntidad
    entityId: str
    userId: str
    userName: str
    timestamp: Optional[datetime] = None
    entityName: Optional[str] = None
    changes: Optional[Cambios] = field(default=None)

    @classmethod
    def desde_documento(cls, doc: Dict[str, Any]) -> 'RegistroHistorial':
        accion = Accion(doc['action'])
        return cls(
            id=doc.get('id', ''),
            action=accion,
            entityType=TipoEntidad(doc['entityType']),
            entityId=doc.get('entityId', ''),
            userId=doc.get('userId', ''),
            userName=doc.get('userName', ''),
            timestamp=doc.get('timestamp'),
            entityName=doc.get('entityName'),
            changes=cambios_desde_documento(accion, doc.get('changes')),
        )

    def a_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'action': self.action.value,
            'entityType': self.entityType.value,
            'entityId': self.entityId,
            'entityName': self.entityName,
            'userId': self.userId,
            'userName': self.userName,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'changes': self.changes.a_documento() if self.changes else None,
        }
