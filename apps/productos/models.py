"""Modelos de Productos - Mapea colección productos_{sufijo} de Firestore"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

# Campos que asigna el sistema y no forman parte de los datos de negocio
CAMPOS_SISTEMA = ('id', 'createdAt', 'updatedAt')

CAMPOS_EDITABLES = (
    'name', 'brand', 'unitQuantity', 'unit', 'quantity',
    'price', 'category', 'supplier',
)


@dataclass(frozen=True)
class Producto:
    """Producto del inventario. `quantity` nunca es negativa."""

    id: str
    name: str
    quantity: int
    price: float
    category: str
    supplier: str
    brand: Optional[str] = None
    unitQuantity: Optional[float] = None
    unit: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def desde_documento(cls, doc: Dict[str, Any]) -> 'Producto':
        return cls(
            id=doc['id'],
            name=doc.get('name', ''),
            quantity=int(doc.get('quantity') or 0),
            price=doc.get('price') or 0,
            category=doc.get('category', ''),
            supplier=doc.get('supplier', ''),
            brand=doc.get('brand') or None,
            unitQuantity=doc.get('unitQuantity'),
            unit=doc.get('unit') or None,
            createdAt=doc.get('createdAt'),
            updatedAt=doc.get('updatedAt'),
        )

    def a_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'brand': self.brand,
            'unitQuantity': self.unitQuantity,
            'unit': self.unit,
            'quantity': self.quantity,
            'price': self.price,
            'category': self.category,
            'supplier': self.supplier,
            'createdAt': self.createdAt.isoformat() if self.createdAt else None,
            'updatedAt': self.updatedAt.isoformat() if self.updatedAt else None,
        }
