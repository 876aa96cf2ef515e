"""
Repositorio de Proveedores

CRUD con el mismo patrón de auditoría que productos, sin lógica de stock.
"""

import logging
from typing import Any, Dict, List, Optional

from apps.autenticacion.models import Usuario
from apps.autenticacion.roles import exigir_permiso, LEER, CREAR, EDITAR, ELIMINAR
from apps.comun.excepciones import ErrorValidacion, EntidadNoEncontrada
from apps.historial.auditoria import RegistroAuditoria
from apps.historial.models import Accion, TipoEntidad, CambiosCreacion, CambiosActualizacion
from .models import Proveedor, CAMPOS_EDITABLES

logger = logging.getLogger(__name__)

COLECCION_PROVEEDORES = 'proveedores'


def validar_datos_proveedor(datos: Dict[str, Any], parcial: bool = False) -> Dict[str, Any]:
    desconocidos = set(datos) - set(CAMPOS_EDITABLES)
    if desconocidos:
        raise ErrorValidacion(f"Campos no permitidos: {', '.join(sorted(desconocidos))}")

    limpios = dict(datos)
    if not parcial or 'name' in limpios:
        nombre = (limpios.get('name') or '').strip()
        if not nombre:
            raise ErrorValidacion('El nombre es requerido', campo='name')
        limpios['name'] = nombre

    if not parcial:
        for campo in ('email', 'phone', 'address'):
            limpios.setdefault(campo, '')
    return limpios


class ProveedorRepository:

    def __init__(self, store, auditoria: Optional[RegistroAuditoria] = None):
        self.store = store
        self.auditoria = auditoria or RegistroAuditoria(store)

    def _auditar(self, usuario: Usuario, accion, proveedor_id, nombre=None, cambios=None):
        self.auditoria.registrar(
            accion,
            TipoEntidad.PROVEEDOR,
            proveedor_id,
            usuario.uid,
            usuario.displayName,
            entidad_nombre=nombre,
            cambios=cambios,
        )

    def listar(self, usuario: Usuario) -> List[Proveedor]:
        exigir_permiso(usuario, LEER)
        documentos = self.store.consultar(COLECCION_PROVEEDORES, orden='createdAt', descendente=True)
        return [Proveedor.desde_documento(doc) for doc in documentos]

    def obtener(self, usuario: Usuario, proveedor_id: str) -> Proveedor:
        exigir_permiso(usuario, LEER)
        doc = self.store.obtener(COLECCION_PROVEEDORES, proveedor_id)
        if doc is None:
            raise EntidadNoEncontrada('Proveedor no encontrado')
        return Proveedor.desde_documento(doc)

    def crear(self, usuario: Usuario, datos: Dict[str, Any]) -> str:
        exigir_permiso(usuario, CREAR)
        campos = validar_datos_proveedor(datos)

        proveedor_id = self.store.agregar(
            COLECCION_PROVEEDORES,
            {**campos, 'createdAt': self.store.marca_tiempo()},
        )
        logger.info(f"Proveedor creado: {proveedor_id} - {campos['name']}")

        self._auditar(usuario, Accion.CREAR, proveedor_id, campos['name'], CambiosCreacion(campos))
        return proveedor_id

    def actualizar(self, usuario: Usuario, proveedor_id: str, datos: Dict[str, Any]) -> None:
        """
        Actualiza un proveedor.

        Un cambio de nombre no se propaga a los productos que lo referencian.
        """
        exigir_permiso(usuario, EDITAR)
        if not datos:
            raise ErrorValidacion('No hay cambios para guardar')
        campos = validar_datos_proveedor(datos, parcial=True)

        try:
            anterior = self.store.actualizar_con_snapshot(COLECCION_PROVEEDORES, proveedor_id, campos)
        except EntidadNoEncontrada:
            raise EntidadNoEncontrada('Proveedor no encontrado')

        nombre = campos.get('name') or anterior.get('name')
        if 'name' in campos and campos['name'] != anterior.get('name'):
            logger.info(
                f"Proveedor renombrado: '{anterior.get('name')}' -> '{campos['name']}' "
                f"(los productos conservan el nombre anterior)"
            )

        self._auditar(usuario, Accion.ACTUALIZAR, proveedor_id, nombre, CambiosActualizacion(campos))

    def eliminar(self, usuario: Usuario, proveedor_id: str, nombre: Optional[str] = None) -> None:
        exigir_permiso(usuario, ELIMINAR)

        try:
            eliminado = self.store.eliminar(COLECCION_PROVEEDORES, proveedor_id)
        except EntidadNoEncontrada:
            raise EntidadNoEncontrada('Proveedor no encontrado')

        nombre = nombre or eliminado.get('name')
        logger.info(f"Proveedor eliminado: {proveedor_id} - {nombre}")
        self._auditar(usuario, Accion.ELIMINAR, proveedor_id, nombre)
