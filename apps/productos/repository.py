"""
Repositorio de Productos

Único componente autorizado a modificar productos y fuente de verdad del
stock actual. Cada operación valida, verifica permisos del usuario
actuante, escribe en Firestore y, si la escritura tuvo éxito, deja un
registro en el historial.

Operaciones:
- crear(usuario, datos)
- actualizar(usuario, producto_id, datos, es_reposicion=False)
- agregar_stock(usuario, producto_id, cantidad, nombre=None)
- retirar_stock(usuario, producto_id, cantidad, nombre=None)
- eliminar(usuario, producto_id, nombre=None)
"""

import logging
from numbers import Real
from typing import Any, Dict, List, Optional

from apps.autenticacion.models import Usuario
from apps.autenticacion.roles import (
    exigir_permiso, LEER, CREAR, EDITAR, ELIMINAR, AGREGAR_STOCK, RETIRAR_STOCK,
)
from apps.comun.excepciones import ErrorValidacion, EntidadNoEncontrada, StockInsuficiente
from apps.historial.auditoria import RegistroAuditoria
from apps.historial.models import (
    Accion, TipoEntidad, CambiosCreacion, CambiosActualizacion,
    CambiosEntradaStock, CambiosSalidaStock,
)
from .models import Producto, CAMPOS_EDITABLES

logger = logging.getLogger(__name__)

COLECCION_PRODUCTOS = 'productos'


def _es_entero(valor) -> bool:
    return isinstance(valor, int) and not isinstance(valor, bool)


def validar_cantidad_movimiento(cantidad) -> int:
    if not _es_entero(cantidad) or cantidad <= 0:
        raise ErrorValidacion('La cantidad debe ser un entero positivo', campo='quantity')
    return cantidad


def validar_datos_producto(datos: Dict[str, Any], parcial: bool = False) -> Dict[str, Any]:
    """
    Verifica los invariantes duros de un producto y devuelve solo los
    campos de negocio.

    Raises:
        ErrorValidacion: campo desconocido, faltante o fuera de rango
    """
    desconocidos = set(datos) - set(CAMPOS_EDITABLES)
    if desconocidos:
        raise ErrorValidacion(f"Campos no permitidos: {', '.join(sorted(desconocidos))}")

    limpios = dict(datos)

    if not parcial or 'name' in limpios:
        nombre = (limpios.get('name') or '').strip()
        if not nombre:
            raise ErrorValidacion('El nombre es requerido', campo='name')
        limpios['name'] = nombre

    if 'quantity' in limpios:
        cantidad = limpios['quantity']
        if not _es_entero(cantidad) or cantidad < 0:
            raise ErrorValidacion('El stock debe ser un entero mayor o igual a 0', campo='quantity')

    if 'price' in limpios:
        precio = limpios['price']
        if not isinstance(precio, Real) or isinstance(precio, bool) or precio < 0:
            raise ErrorValidacion('El precio debe ser mayor o igual a 0', campo='price')

    if not parcial:
        limpios.setdefault('quantity', 0)
        limpios.setdefault('price', 0)
        limpios.setdefault('category', '')
        limpios.setdefault('supplier', '')

    return limpios


class ProductoRepository:
    """
    Args:
        store: Almacén de documentos
        auditoria: Registro de auditoría (único escritor del historial)
    """

    def __init__(self, store, auditoria: Optional[RegistroAuditoria] = None):
        self.store = store
        self.auditoria = auditoria or RegistroAuditoria(store)

    def _auditar(self, usuario: Usuario, accion, producto_id, nombre=None, cambios=None):
        self.auditoria.registrar(
            accion,
            TipoEntidad.PRODUCTO,
            producto_id,
            usuario.uid,
            usuario.displayName,
            entidad_nombre=nombre,
            cambios=cambios,
        )

    def listar(self, usuario: Usuario) -> List[Producto]:
        exigir_permiso(usuario, LEER)
        documentos = self.store.consultar(COLECCION_PRODUCTOS, orden='createdAt', descendente=True)
        return [Producto.desde_documento(doc) for doc in documentos]

    def obtener(self, usuario: Usuario, producto_id: str) -> Producto:
        exigir_permiso(usuario, LEER)
        doc = self.store.obtener(COLECCION_PRODUCTOS, producto_id)
        if doc is None:
            raise EntidadNoEncontrada('Producto no encontrado')
        return Producto.desde_documento(doc)

    def crear(self, usuario: Usuario, datos: Dict[str, Any]) -> str:
        """
        Crea un producto y registra `create` con los campos iniciales.

        Returns:
            Id del nuevo documento
        """
        exigir_permiso(usuario, CREAR)
        campos = validar_datos_producto(datos)

        ahora = self.store.marca_tiempo()
        producto_id = self.store.agregar(
            COLECCION_PRODUCTOS,
            {**campos, 'createdAt': ahora, 'updatedAt': ahora},
        )
        logger.info(f"Producto creado: {producto_id} - {campos['name']} (stock {campos['quantity']})")

        self._auditar(usuario, Accion.CREAR, producto_id, campos['name'], CambiosCreacion(campos))
        return producto_id

    def actualizar(
        self,
        usuario: Usuario,
        producto_id: str,
        datos: Dict[str, Any],
        es_reposicion: bool = False,
    ) -> None:
        """
        Combina `datos` con el producto guardado.

        Con `es_reposicion` y `quantity` presente se registra como entrada
        de stock (`add_stock`), calculando el delta contra el documento
        leído en la misma transacción que la escritura.
        """
        if not datos:
            raise ErrorValidacion('No hay cambios para guardar')

        reposicion = es_reposicion and 'quantity' in datos
        solo_stock = reposicion and set(datos) == {'quantity'}
        exigir_permiso(usuario, AGREGAR_STOCK if solo_stock else EDITAR)

        campos = validar_datos_producto(datos, parcial=True)

        def _validar_reposicion(anterior):
            previa = int(anterior.get('quantity') or 0)
            if campos['quantity'] < previa:
                raise ErrorValidacion(
                    'Una reposición no puede disminuir el stock',
                    campo='quantity',
                )

        anterior = self.store.actualizar_con_snapshot(
            COLECCION_PRODUCTOS,
            producto_id,
            {**campos, 'updatedAt': self.store.marca_tiempo()},
            validar=_validar_reposicion if reposicion else None,
        )
        nombre = campos.get('name') or anterior.get('name')

        if reposicion:
            previa = int(anterior.get('quantity') or 0)
            cambios = CambiosEntradaStock(previa, campos['quantity'])
            logger.info(
                f"Reposición de {nombre}: {previa} -> {campos['quantity']} "
                f"(+{cambios.cantidad_agregada})"
            )
            self._auditar(usuario, Accion.AGREGAR_STOCK, producto_id, nombre, cambios)
        else:
            logger.info(f"Producto actualizado: {producto_id} ({', '.join(sorted(campos))})")
            self._auditar(usuario, Accion.ACTUALIZAR, producto_id, nombre, CambiosActualizacion(campos))

    def agregar_stock(
        self,
        usuario: Usuario,
        producto_id: str,
        cantidad: int,
        nombre: Optional[str] = None,
    ) -> int:
        """
        Suma `cantidad` al stock de forma atómica.

        Returns:
            Stock resultante
        """
        exigir_permiso(usuario, AGREGAR_STOCK)
        validar_cantidad_movimiento(cantidad)

        ajuste = self.store.ajustar_cantidad(
            COLECCION_PRODUCTOS,
            producto_id,
            'quantity',
            cantidad,
            extra={'updatedAt': self.store.marca_tiempo()},
        )
        nombre = nombre or ajuste.documento.get('name')
        logger.info(f"Stock IN: {nombre} +{cantidad} ({ajuste.anterior} -> {ajuste.nueva})")

        self._auditar(
            usuario, Accion.AGREGAR_STOCK, producto_id, nombre,
            CambiosEntradaStock(ajuste.anterior, ajuste.nueva),
        )
        return ajuste.nueva

    def retirar_stock(
        self,
        usuario: Usuario,
        producto_id: str,
        cantidad: int,
        nombre: Optional[str] = None,
    ) -> int:
        """
        Resta `cantidad` del stock de forma atómica.

        Si la cantidad supera el stock actual no se escribe nada ni se
        registra historial.

        Raises:
            StockInsuficiente: el stock quedaría negativo
        """
        exigir_permiso(usuario, RETIRAR_STOCK)
        validar_cantidad_movimiento(cantidad)

        try:
            ajuste = self.store.ajustar_cantidad(
                COLECCION_PRODUCTOS,
                producto_id,
                'quantity',
                -cantidad,
                extra={'updatedAt': self.store.marca_tiempo()},
            )
        except StockInsuficiente as e:
            logger.warning(
                f"Retiro rechazado en {producto_id}: disponible {e.disponible}, "
                f"solicitado {e.solicitado}"
            )
            raise

        nombre = nombre or ajuste.documento.get('name')
        logger.info(f"Stock OUT: {nombre} -{cantidad} ({ajuste.anterior} -> {ajuste.nueva})")

        self._auditar(
            usuario, Accion.RETIRAR_STOCK, producto_id, nombre,
            CambiosSalidaStock(ajuste.anterior, ajuste.nueva),
        )
        return ajuste.nueva

    def eliminar(self, usuario: Usuario, producto_id: str, nombre: Optional[str] = None) -> None:
        """Borrado definitivo; un id inexistente se rechaza sin registrar historial."""
        exigir_permiso(usuario, ELIMINAR)

        try:
            eliminado = self.store.eliminar(COLECCION_PRODUCTOS, producto_id)
        except EntidadNoEncontrada:
            raise EntidadNoEncontrada('Producto no encontrado')

        nombre = nombre or eliminado.get('name')
        logger.info(f"Producto eliminado: {producto_id} - {nombre}")
        self._auditar(usuario, Accion.ELIMINAR, producto_id, nombre)
