"""
Registro de auditoría

Único escritor de la colección de historial. Agrega un registro inmutable
por cada mutación de productos o proveedores; nunca actualiza ni borra.

Si la escritura del registro falla, la mutación del negocio ya quedó
confirmada: el error se registra en el log y no se propaga al llamador.
"""

import logging
from datetime import datetime
from typing import List, Optional

from django.conf import settings

from .models import Accion, TipoEntidad, Cambios, RegistroHistorial

logger = logging.getLogger(__name__)

COLECCION_HISTORIAL = 'historial'


class RegistroAuditoria:

    def __init__(self, store):
        self.store = store

    def registrar(
        self,
        accion: Accion,
        tipo_entidad: TipoEntidad,
        entidad_id: str,
        usuario_id: str,
        usuario_nombre: str,
        entidad_nombre: Optional[str] = None,
        cambios: Optional[Cambios] = None,
    ) -> Optional[str]:
        """
        Agrega un registro al historial con timestamp del servidor.

        Returns:
            Id del registro creado, o None si la escritura falló
        """
        if cambios is not None and cambios.accion != accion:
            raise ValueError(f"Cambios de tipo {cambios.accion.value} no corresponden a {accion.value}")

        documento = {
            'action': accion.value,
            'entityType': tipo_entidad.value,
            'entityId': entidad_id,
            'userId': usuario_id,
            'userName': usuario_nombre,
            'timestamp': self.store.marca_tiempo(),
        }
        if entidad_nombre:
            documento['entityName'] = entidad_nombre
        if cambios is not None:
            documento['changes'] = cambios.a_documento()

        try:
            registro_id = self.store.agregar(COLECCION_HISTORIAL, documento)
        except Exception:
            logger.exception(
                f"Error agregando registro de historial ({accion.value} "
                f"{tipo_entidad.value} {entidad_id})"
            )
            return None

        logger.debug(f"Historial: {usuario_nombre} {accion.value} {tipo_entidad.value} {entidad_id}")
        return registro_id

    def recientes(self, limite: Optional[int] = None) -> List[RegistroHistorial]:
        """Últimos registros, del más nuevo al más antiguo."""
        return self.consultar(limite=limite or settings.HISTORIAL_LIMITE_DEFECTO)

    def consultar(
        self,
        desde: Optional[datetime] = None,
        accion: Optional[Accion] = None,
        tipo_entidad: Optional[TipoEntidad] = None,
        limite: Optional[int] = None,
    ) -> List[RegistroHistorial]:
        """
        Registros del historial filtrados en Firestore, del más nuevo al más antiguo.

        Args:
            desde: Timestamp mínimo (inclusive)
            accion: Solo registros de esta acción
            tipo_entidad: Solo registros de este tipo de entidad
            limite: Máximo de registros; None lee todos los que cumplen el filtro

        Los documentos que no se pueden interpretar se omiten con una advertencia.
        """
        filtros = []
        if accion is not None:
            filtros.append(('action', '==', accion.value))
        if tipo_entidad is not None:
            filtros.append(('entityType', '==', tipo_entidad.value))
        if desde is not None:
            filtros.append(('timestamp', '>=', desde))

        documentos = self.store.consultar(
            COLECCION_HISTORIAL,
            filtros=filtros,
            orden='timestamp',
            descendente=True,
            limite=limite,
        )

        registros = []
        for doc in documentos:
            try:
                registros.append(RegistroHistorial.desde_documento(doc))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Registro de historial {doc.get('id')} ilegible, se omite: {str(e)}")
        return registros
