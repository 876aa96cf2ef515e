"""
Fixtures compartidas

`FakeStore` reemplaza a FirestoreStore con colecciones en memoria y la
misma interfaz, incluidos los ajustes transaccionales de cantidad.
"""

import copy
import itertools
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.autenticacion.models import Rol, Usuario
from apps.comun.excepciones import EntidadNoEncontrada, ErrorAlmacenamiento, StockInsuficiente
from services import firestore_service
from services.firestore_service import Ajuste


def _cumple(actual, operador, valor):
    if operador == '==':
        return actual == valor
    if actual is None:
        return False
    if operador == '>=':
        return actual >= valor
    raise AssertionError(f"Operador no soportado: {operador}")


class FakeStore:

    def __init__(self, sufijo='_4'):
        self.sufijo = sufijo
        self.colecciones = {}
        self.suscripciones = []
        self.fallar_en = set()
        self._ids = itertools.count(1)
        self._ultima_marca = None

    def nombre_coleccion(self, coleccion):
        if coleccion in firestore_service.COLECCIONES_COMPARTIDAS:
            return coleccion
        return f"{coleccion}{self.sufijo}"

    def marca_tiempo(self):
        # estrictamente creciente para que el orden por timestamp sea estable
        ahora = timezone.now()
        if self._ultima_marca is not None and ahora <= self._ultima_marca:
            ahora = self._ultima_marca + timedelta(microseconds=1)
        self._ultima_marca = ahora
        return ahora

    def _docs(self, coleccion):
        if coleccion in self.fallar_en:
            raise ErrorAlmacenamiento(f"Fallo simulado en {coleccion}")
        return self.colecciones.setdefault(self.nombre_coleccion(coleccion), {})

    def _notificar(self, coleccion):
        for nombre, callback in self.suscripciones:
            if nombre == coleccion:
                callback(self.consultar(coleccion))

    def sembrar(self, coleccion, doc_id, datos):
        self._docs(coleccion)[doc_id] = dict(datos)

    def documentos(self, coleccion):
        return [{'id': k, **copy.deepcopy(v)} for k, v in self._docs(coleccion).items()]

    def obtener(self, coleccion, doc_id):
        datos = self._docs(coleccion).get(doc_id)
        if datos is None:
            return None
        return {'id': doc_id, **copy.deepcopy(datos)}

    def consultar(self, coleccion, filtros=None, orden=None, descendente=True, limite=None):
        docs = self.documentos(coleccion)
        for campo, operador, valor in filtros or []:
            docs = [d for d in docs if _cumple(d.get(campo), operador, valor)]
        if orden:
            docs.sort(key=lambda d: d.get(orden) or timezone.now(), reverse=descendente)
        if limite:
            docs = docs[:limite]
        return docs

    def agregar(self, coleccion, datos):
        doc_id = f"doc{next(self._ids)}"
        self._docs(coleccion)[doc_id] = copy.deepcopy(datos)
        self._notificar(coleccion)
        return doc_id

    def actualizar(self, coleccion, doc_id, campos):
        docs = self._docs(coleccion)
        if doc_id not in docs:
            raise EntidadNoEncontrada()
        docs[doc_id].update(copy.deepcopy(campos))
        self._notificar(coleccion)

    def actualizar_con_snapshot(self, coleccion, doc_id, campos, validar=None):
        anterior = self.obtener(coleccion, doc_id)
        if anterior is None:
            raise EntidadNoEncontrada()
        if validar is not None:
            validar(anterior)
        self.actualizar(coleccion, doc_id, campos)
        return anterior

    def ajustar_cantidad(self, coleccion, doc_id, campo, delta, extra=None):
        documento = self.obtener(coleccion, doc_id)
        if documento is None:
            raise EntidadNoEncontrada()
        anterior = int(documento.get(campo) or 0)
        nueva = anterior + delta
        if nueva < 0:
            raise StockInsuficiente(anterior, -delta)
        self.actualizar(coleccion, doc_id, {campo: nueva, **(extra or {})})
        return Ajuste(anterior, nueva, documento)

    def eliminar(self, coleccion, doc_id):
        documento = self.obtener(coleccion, doc_id)
        if documento is None:
            raise EntidadNoEncontrada()
        del self._docs(coleccion)[doc_id]
        self._notificar(coleccion)
        return documento

    def suscribir(self, coleccion, callback, orden=None, descendente=True, limite=None):
        entrada = (coleccion, callback)
        self.suscripciones.append(entrada)
        callback(self.consultar(coleccion, orden=orden, descendente=descendente, limite=limite))
        return lambda: self.suscripciones.remove(entrada)


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    monkeypatch.setattr(firestore_service, '_store', fake)
    return fake


@pytest.fixture
def admin():
    return Usuario(uid='admin-1', email='ana@lavanderia.cl', displayName='Ana', role=Rol.ADMIN)


@pytest.fixture
def operario():
    return Usuario(uid='op-1', email='luis@lavanderia.cl', displayName='Luis', role=Rol.OPERARIO)


@pytest.fixture
def invitado():
    return Usuario(uid='tok-1', email='', displayName='Invitado', invitado=True)


@pytest.fixture
def perfiles(store):
    store.sembrar('usuarios', 'admin-1', {'nombre': 'Ana', 'correo': 'ana@lavanderia.cl', 'rol': 'administrador'})
    store.sembrar('usuarios', 'op-1', {'nombre': 'Luis', 'correo': 'luis@lavanderia.cl', 'rol': 'operario'})
    return store


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def token_firebase(monkeypatch):
    """Hace que cualquier Bearer <uid> sea un ID token válido para ese uid."""

    def _verificar(token):
        return {'uid': token, 'email': f'{token}@lavanderia.cl'}

    monkeypatch.setattr('apps.autenticacion.middleware.verificar_token', _verificar)


@pytest.fixture
def cliente_admin(api_client, perfiles, token_firebase):
    api_client.credentials(HTTP_AUTHORIZATION='Bearer admin-1')
    return api_client


@pytest.fixture
def cliente_operario(api_client, perfiles, token_firebase):
    api_client.credentials(HTTP_AUTHORIZATION='Bearer op-1')
    return api_client
