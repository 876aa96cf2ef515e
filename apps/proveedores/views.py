"""Vistas de Proveedores - CRUD con permisos de admin"""

import logging

from rest_framework import viewsets, status
from rest_framework.response import Response

from apps.autenticacion.permissions import IsAdminOrReadOnly
from apps.comun.excepciones import ErrorInventario
from apps.comun.respuestas import respuesta_error, respuesta_validacion
from services.firestore_service import get_document_store
from .repository import ProveedorRepository
from .serializers import ProveedorSerializer

logger = logging.getLogger(__name__)


def get_repositorio():
    return ProveedorRepository(get_document_store())


class ProveedorViewSet(viewsets.ViewSet):
    """ViewSet para gestionar proveedores desde Firestore - escritura solo admin"""

    permission_classes = [IsAdminOrReadOnly]

    def list(self, request):
        try:
            proveedores = get_repositorio().listar(request.usuario)
            logger.info(f"Proveedores obtenidos: {len(proveedores)}")
            return Response([p.a_dict() for p in proveedores])
        except ErrorInventario as e:
            logger.error(f"Error al obtener proveedores: {e.mensaje}")
            return respuesta_error(e)

    def retrieve(self, request, pk=None):
        try:
            return Response(get_repositorio().obtener(request.usuario, pk).a_dict())
        except ErrorInventario as e:
            logger.warning(f"Error al obtener proveedor {pk}: {e.mensaje}")
            return respuesta_error(e)

    def create(self, request):
        serializer = ProveedorSerializer(data=request.data)
        if not serializer.is_valid():
            return respuesta_validacion(serializer.errors)

        try:
            proveedor_id = get_repositorio().crear(request.usuario, dict(serializer.validated_data))
            return Response({'id': proveedor_id}, status=status.HTTP_201_CREATED)
        except ErrorInventario as e:
            logger.warning(f"Error al crear proveedor: {e.mensaje}")
            return respuesta_error(e)

    def partial_update(self, request, pk=None):
        serializer = ProveedorSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return respuesta_validacion(serializer.errors)

        try:
            get_repositorio().actualizar(request.usuario, pk, dict(serializer.validated_data))
            return Response({'id': pk})
        except ErrorInventario as e:
            logger.warning(f"Error al actualizar proveedor {pk}: {e.mensaje}")
            return respuesta_error(e)

    def destroy(self, request, pk=None):
        try:
            get_repositorio().eliminar(request.usuario, pk, request.data.get('nombre'))
            return Response(status=status.HTTP_204_NO_CONTENT)
        except ErrorInventario as e:
            logger.warning(f"Error al eliminar proveedor {pk}: {e.mensaje}")
            return respuesta_error(e)
