"""
Firestore Service

Almacén de documentos del sistema. Todas las lecturas y escrituras de
productos, proveedores, historial y perfiles de usuario pasan por aquí.

Las colecciones se separan por instancia con un sufijo fijo
(FIRESTORE_COLLECTION_SUFFIX), por ejemplo `productos_4` o `historial_4`,
para que varias instalaciones compartan un mismo proyecto de Firebase.
La colección de perfiles `usuarios` es compartida y no lleva sufijo.

Los ajustes de cantidad se ejecutan dentro de una transacción de Firestore
(lectura + escritura con reintento ante conflicto), así dos movimientos
simultáneos sobre el mismo producto no pisan el delta del otro.
"""

import functools
import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from django.conf import settings
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from apps.comun.excepciones import (
    EntidadNoEncontrada,
    ErrorAlmacenamiento,
    StockInsuficiente,
)
from services.firebase_service import get_firestore_client

logger = logging.getLogger(__name__)

COLECCIONES_COMPARTIDAS = {'usuarios'}

# Variable global para mantener el almacén
_store = None


class Ajuste(NamedTuple):
    """Resultado de un ajuste atómico de cantidad."""

    anterior: int
    nueva: int
    documento: Dict


def _traducir_errores(metodo):
    """Convierte errores de google-api-core en errores del dominio."""

    @functools.wraps(metodo)
    def envoltura(self, coleccion, *args, **kwargs):
        try:
            return metodo(self, coleccion, *args, **kwargs)
        except google_exceptions.NotFound as e:
            logger.warning(f"Documento no encontrado en {coleccion}: {str(e)}")
            raise EntidadNoEncontrada() from e
        except (google_exceptions.GoogleAPICallError, google_exceptions.RetryError) as e:
            logger.error(f"Error de Firestore en {coleccion}.{metodo.__name__}: {str(e)}")
            raise ErrorAlmacenamiento() from e

    return envoltura


class FirestoreStore:
    """
    Colaborador de almacenamiento respaldado por Cloud Firestore.

    Los documentos se devuelven como diccionarios con su `id` incluido.
    """

    def __init__(self, client=None, sufijo: Optional[str] = None):
        self._client = client
        self.sufijo = settings.FIRESTORE_COLLECTION_SUFFIX if sufijo is None else sufijo

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = get_firestore_client()
            except RuntimeError as e:
                logger.error(f"Firestore no disponible: {str(e)}")
                raise ErrorAlmacenamiento() from e
        return self._client

    def nombre_coleccion(self, coleccion: str) -> str:
        if coleccion in COLECCIONES_COMPARTIDAS:
            return coleccion
        return f"{coleccion}{self.sufijo}"

    def marca_tiempo(self):
        """Timestamp asignado por el servidor al escribir."""
        return firestore.SERVER_TIMESTAMP

    def _coleccion(self, coleccion: str):
        return self.client.collection(self.nombre_coleccion(coleccion))

    @staticmethod
    def _a_dict(snapshot) -> Dict:
        return {'id': snapshot.id, **(snapshot.to_dict() or {})}

    def _query(self, coleccion, filtros=None, orden=None, descendente=True, limite=None):
        query = self._coleccion(coleccion)
        for campo, operador, valor in filtros or []:
            query = query.where(filter=FieldFilter(campo, operador, valor))
        if orden:
            direccion = firestore.Query.DESCENDING if descendente else firestore.Query.ASCENDING
            query = query.order_by(orden, direction=direccion)
        if limite:
            query = query.limit(limite)
        return query

    @_traducir_errores
    def obtener(self, coleccion: str, doc_id: str) -> Optional[Dict]:
        snapshot = self._coleccion(coleccion).document(doc_id).get()
        if not snapshot.exists:
            return None
        return self._a_dict(snapshot)

    @_traducir_errores
    def consultar(
        self,
        coleccion: str,
        filtros: Optional[List[Tuple]] = None,
        orden: Optional[str] = None,
        descendente: bool = True,
        limite: Optional[int] = None,
    ) -> List[Dict]:
        """
        Consulta puntual sobre una colección.

        Args:
            coleccion: Nombre base (sin sufijo)
            filtros: Lista de tuplas (campo, operador, valor)
            orden: Campo por el cual ordenar
            descendente: Dirección del orden
            limite: Máximo de documentos

        Example:
            >>> store.consultar('historial', orden='timestamp', limite=50)
        """
        query = self._query(coleccion, filtros, orden, descendente, limite)
        return [self._a_dict(doc) for doc in query.stream()]

    @_traducir_errores
    def agregar(self, coleccion: str, datos: Dict) -> str:
        _, ref = self._coleccion(coleccion).add(datos)
        return ref.id

    @_traducir_errores
    def actualizar(self, coleccion: str, doc_id: str, campos: Dict) -> None:
        # update() de Firestore falla con NotFound si el documento no existe
        self._coleccion(coleccion).document(doc_id).update(campos)

    @_traducir_errores
    def actualizar_con_snapshot(
        self,
        coleccion: str,
        doc_id: str,
        campos: Dict,
        validar: Optional[Callable[[Dict], None]] = None,
    ) -> Dict:
        """
        Aplica `campos` y devuelve el documento tal como estaba antes,
        leído en la misma transacción que la escritura.

        `validar` recibe ese documento previo; si lanza una excepción la
        transacción se aborta sin escribir.
        """
        ref = self._coleccion(coleccion).document(doc_id)
        transaction = self.client.transaction()

        @firestore.transactional
        def _actualizar(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise EntidadNoEncontrada()
            anterior = self._a_dict(snapshot)
            if validar is not None:
                validar(anterior)
            transaction.update(ref, campos)
            return anterior

        return _actualizar(transaction)

    @_traducir_errores
    def ajustar_cantidad(
        self,
        coleccion: str,
        doc_id: str,
        campo: str,
        delta: int,
        extra: Optional[Dict] = None,
    ) -> "Ajuste":
        """
        Suma `delta` al campo numérico de forma atómica.

        Returns:
            Ajuste(anterior, nueva, documento) con el documento previo a la escritura

        Raises:
            EntidadNoEncontrada: el documento no existe
            StockInsuficiente: el resultado sería negativo (no se escribe nada)
        """
        ref = self._coleccion(coleccion).document(doc_id)
        transaction = self.client.transaction()

        @firestore.transactional
        def _ajustar(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise EntidadNoEncontrada()
            anterior = int((snapshot.to_dict() or {}).get(campo) or 0)
            nueva = anterior + delta
            if nueva < 0:
                raise StockInsuficiente(anterior, -delta)
            transaction.update(ref, {campo: nueva, **(extra or {})})
            return Ajuste(anterior, nueva, self._a_dict(snapshot))

        return _ajustar(transaction)

    @_traducir_errores
    def eliminar(self, coleccion: str, doc_id: str) -> Dict:
        """Borra el documento y devuelve su último estado."""
        ref = self._coleccion(coleccion).document(doc_id)
        transaction = self.client.transaction()

        @firestore.transactional
        def _eliminar(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise EntidadNoEncontrada()
            transaction.delete(ref)
            return self._a_dict(snapshot)

        return _eliminar(transaction)

    def suscribir(
        self,
        coleccion: str,
        callback: Callable[[List[Dict]], None],
        orden: Optional[str] = None,
        descendente: bool = True,
        limite: Optional[int] = None,
    ) -> Callable[[], None]:
        """
        Escucha cambios en vivo de una consulta.

        El callback recibe la lista completa de documentos cada vez que
        cambia algo. Devuelve la función para cancelar la suscripción.
        """
        query = self._query(coleccion, None, orden, descendente, limite)

        def _on_snapshot(docs, changes, read_time):
            callback([self._a_dict(doc) for doc in docs])

        watch = query.on_snapshot(_on_snapshot)
        logger.debug(f"Suscripción en vivo abierta sobre {self.nombre_coleccion(coleccion)}")
        return watch.unsubscribe


def get_document_store() -> FirestoreStore:
    """
    Obtiene o crea el almacén de documentos.

    Mantiene una única instancia para reutilizar el cliente de Firestore
    entre requests.
    """
    global _store

    if _store is None:
        _store = FirestoreStore()
        logger.info("Almacén Firestore inicializado")

    return _store
