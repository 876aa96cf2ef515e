"""Modelos de Proveedores - Mapea colección proveedores_{sufijo} de Firestore"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

CAMPOS_EDITABLES = ('name', 'email', 'phone', 'address')


@dataclass(frozen=True)
class Proveedor:
    """
    Proveedor de insumos.

    Los productos lo referencian por nombre (Producto.supplier), sin
    integridad referencial: renombrar un proveedor no modifica productos.
    """

    id: str
    name: str
    email: str = ''
    phone: str = ''
    address: str = ''
    createdAt: Optional[datetime] = None

    @classmethod
    def desde_documento(cls, doc: Dict[str, Any]) -> 'Proveedor':
        return cls(
            id=doc['id'],
            name=doc.get('name', ''),
            email=doc.get('email', ''),
            phone=doc.get('phone', ''),
            address=doc.get('address', ''),
            createdAt=doc.get('createdAt'),
        )

    def a_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'createdAt': self.createdAt.isoformat() if self.createdAt else None,
        }
