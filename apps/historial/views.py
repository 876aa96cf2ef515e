"""
Vistas de Historial

Consulta del historial de actividades con filtros, resumen por tipo de
acción y datos para exportar el reporte.
"""

import logging

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from apps.autenticacion.roles import exigir_permiso, LEER
from apps.comun.excepciones import ErrorInventario
from apps.comun.respuestas import respuesta_error
from apps.productos.repository import ProductoRepository
from services.firestore_service import get_document_store
from .auditoria import RegistroAuditoria
from .models import Accion, TipoEntidad
from .reportes import (
    filtrar, inicio_rango, resumir, construir_reporte, frase_actividad, resumen_textual,
)

logger = logging.getLogger(__name__)

LIMITE_MAXIMO = 500


def _registros_filtrados(request, con_limite=True):
    """
    Lee los registros que cumplen los filtros de la query string.

    Acción, tipo de entidad y rango se resuelven en Firestore; la búsqueda
    de texto se aplica sobre el resultado.

    Query params:
        accion: create | update | delete | add_stock | remove_stock
        tipo: product | supplier | user
        q: texto a buscar en usuario o nombre de la entidad
        rango: today | week | month | all
        limite: cantidad máxima de registros (máx. 500); solo con `con_limite`

    Raises:
        ValueError: parámetro con valor desconocido
    """
    exigir_permiso(request.usuario, LEER)

    params = request.query_params
    accion = Accion(params['accion']) if params.get('accion') else None
    tipo_entidad = TipoEntidad(params['tipo']) if params.get('tipo') else None
    rango = params.get('rango') or 'all'
    ahora = timezone.now()

    limite = None
    if con_limite:
        limite = int(params.get('limite') or settings.HISTORIAL_LIMITE_DEFECTO)
        limite = max(1, min(limite, LIMITE_MAXIMO))

    registros = RegistroAuditoria(get_document_store()).consultar(
        desde=inicio_rango(rango, ahora),
        accion=accion,
        tipo_entidad=tipo_entidad,
        limite=limite,
    )
    return filtrar(
        registros,
        accion=accion,
        tipo_entidad=tipo_entidad,
        texto=params.get('q'),
        rango=rango,
        ahora=ahora,
    )


@api_view(['GET'])
def listar_historial(request):
    """
    Lista el historial filtrado, del más reciente al más antiguo.

    GET /api/historial/?accion=add_stock&rango=week
    """
    try:
        registros = _registros_filtrados(request)
    except ValueError as e:
        return Response({'error': f'Filtro inválido: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)
    except ErrorInventario as e:
        logger.error(f"Error al obtener historial: {e.mensaje}")
        return respuesta_error(e)

    datos = []
    for registro in registros:
        fila = registro.a_dict()
        fila['descripcion'] = frase_actividad(registro)
        fila['detalle'] = resumen_textual(registro.action, registro.changes)
        datos.append(fila)

    logger.info(f"Registros de historial obtenidos: {len(datos)}")
    return Response(datos)


@api_view(['GET'])
def resumen_historial(request):
    """Conteos por tipo de acción sobre el historial filtrado"""
    try:
        registros = _registros_filtrados(request, con_limite=False)
    except ValueError as e:
        return Response({'error': f'Filtro inválido: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)
    except ErrorInventario as e:
        logger.error(f"Error al resumir historial: {e.mensaje}")
        return respuesta_error(e)

    return Response(resumir(registros).a_dict())


@api_view(['GET'])
def reporte_historial(request):
    """
    Datos del reporte exportable: historial filtrado + estado del stock.

    El renderizado (PDF) lo hace el cliente.
    """
    try:
        registros = _registros_filtrados(request, con_limite=False)
        productos = ProductoRepository(get_document_store()).listar(request.usuario)
    except ValueError as e:
        return Response({'error': f'Filtro inválido: {str(e)}'}, status=status.HTTP_400_BAD_REQUEST)
    except ErrorInventario as e:
        logger.error(f"Error al generar reporte: {e.mensaje}")
        return respuesta_error(e)

    return Response(construir_reporte(registros, productos))
