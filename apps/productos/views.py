"""
Vistas de Productos

CRUD de productos y movimientos de stock. Los permisos por rol los
aplica el repositorio con el usuario actuante de cada request.
"""

import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.comun.excepciones import ErrorInventario
from apps.comun.respuestas import respuesta_error, respuesta_validacion
from services.firestore_service import get_document_store
from .repository import ProductoRepository
from .serializers import ProductoSerializer, MovimientoStockSerializer

logger = logging.getLogger(__name__)


def get_repositorio():
    return ProductoRepository(get_document_store())


class ProductoViewSet(viewsets.ViewSet):
    """
    ViewSet para gestionar productos en Firestore.

    Endpoints:
        GET /api/productos/ - Lista productos (más nuevos primero)
        POST /api/productos/ - Crea un producto (solo admin)
        GET /api/productos/{id}/ - Obtiene un producto
        PATCH /api/productos/{id}/ - Edita un producto (admin; reposición también operario)
        DELETE /api/productos/{id}/ - Elimina un producto (solo admin)
        POST /api/productos/{id}/agregar-stock/ - Entrada de stock
        POST /api/productos/{id}/retirar-stock/ - Salida de stock
    """

    def list(self, request):
        """Lista todos los productos"""
        try:
            productos = get_repositorio().listar(request.usuario)
            logger.info(f"Productos obtenidos: {len(productos)}")
            return Response([p.a_dict() for p in productos])
        except ErrorInventario as e:
            logger.error(f"Error al obtener productos: {e.mensaje}")
            return respuesta_error(e)

    def retrieve(self, request, pk=None):
        """Obtiene un producto específico"""
        try:
            producto = get_repositorio().obtener(request.usuario, pk)
            return Response(producto.a_dict())
        except ErrorInventario as e:
            logger.warning(f"Error al obtener producto {pk}: {e.mensaje}")
            return respuesta_error(e)

    def create(self, request):
        """Crea un nuevo producto"""
        serializer = ProductoSerializer(data=request.data)
        if not serializer.is_valid():
            return respuesta_validacion(serializer.errors)

        datos = dict(serializer.validated_data)
        datos.pop('es_reposicion', None)

        try:
            producto_id = get_repositorio().crear(request.usuario, datos)
            return Response({'id': producto_id}, status=status.HTTP_201_CREATED)
        except ErrorInventario as e:
            logger.warning(f"Error al crear producto: {e.mensaje}")
            return respuesta_error(e)

    def partial_update(self, request, pk=None):
        """Actualiza campos de un producto; con es_reposicion registra entrada de stock"""
        serializer = ProductoSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return respuesta_validacion(serializer.errors)

        datos = dict(serializer.validated_data)
        es_reposicion = datos.pop('es_reposicion', False)

        try:
            get_repositorio().actualizar(request.usuario, pk, datos, es_reposicion=es_reposicion)
            return Response({'id': pk})
        except ErrorInventario as e:
            logger.warning(f"Error al actualizar producto {pk}: {e.mensaje}")
            return respuesta_error(e)

    def destroy(self, request, pk=None):
        """Elimina un producto"""
        try:
            get_repositorio().eliminar(request.usuario, pk, request.data.get('nombre'))
            return Response(status=status.HTTP_204_NO_CONTENT)
        except ErrorInventario as e:
            logger.warning(f"Error al eliminar producto {pk}: {e.mensaje}")
            return respuesta_error(e)

    def _movimiento(self, request, pk, operacion):
        serializer = MovimientoStockSerializer(data=request.data)
        if not serializer.is_valid():
            return respuesta_validacion(serializer.errors)

        try:
            nueva = operacion(
                request.usuario,
                pk,
                serializer.validated_data['cantidad'],
                serializer.validated_data.get('nombre'),
            )
            return Response({'id': pk, 'quantity': nueva})
        except ErrorInventario as e:
            logger.warning(f"Movimiento de stock rechazado en {pk}: {e.mensaje}")
            return respuesta_error(e)

    @action(detail=True, methods=['post'], url_path='agregar-stock')
    def agregar_stock(self, request, pk=None):
        """Registra una entrada (reposición) de stock"""
        return self._movimiento(request, pk, get_repositorio().agregar_stock)

    @action(detail=True, methods=['post'], url_path='retirar-stock')
    def retirar_stock(self, request, pk=None):
        """Registra una salida (consumo) de stock"""
        return self._movimiento(request, pk, get_repositorio().retirar_stock)
