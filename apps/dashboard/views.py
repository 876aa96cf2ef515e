"""
Vistas de Dashboard

Proporciona KPIs de stock, alertas de bajo stock y actividad reciente.
"""

import logging

from rest_framework.decorators import api_view
from rest_framework.response import Response

from apps.comun.excepciones import ErrorInventario
from apps.comun.respuestas import respuesta_error
from apps.historial.auditoria import RegistroAuditoria
from apps.historial.reportes import analizar_stock, frase_actividad
from apps.productos.repository import ProductoRepository
from services.firestore_service import get_document_store

logger = logging.getLogger(__name__)

# Alertas que se muestran en el dashboard según el rol
ALERTAS_ADMIN = 5
ALERTAS_OPERARIO = 10
ACTIVIDAD_RECIENTE = 10


def _kpis(productos):
    analisis = analizar_stock(productos)
    conteos = analisis.conteos()
    return analisis, {
        'total_productos': len(productos),
        'bajo_stock': conteos['critico'],
        'stock_medio': conteos['medio'],
        'stock_ok': conteos['ok'],
    }


@api_view(['GET'])
def get_kpis(request):
    """
    Obtiene los KPIs de stock.

    GET /api/dashboard/kpis/

    Returns:
        {
            "total_productos": 42,
            "bajo_stock": 3,
            "stock_medio": 7,
            "stock_ok": 32
        }
    """
    try:
        productos = ProductoRepository(get_document_store()).listar(request.usuario)
    except ErrorInventario as e:
        logger.error(f"Error al obtener KPIs: {e.mensaje}")
        return respuesta_error(e)

    _, kpis = _kpis(productos)
    return Response(kpis)


@api_view(['GET'])
def get_dashboard(request):
    """
    Datos completos del dashboard.

    GET /api/dashboard/

    Todos los usuarios ven KPIs y productos con bajo stock; el admin
    además recibe la actividad reciente del historial.
    """
    usuario = request.usuario
    store = get_document_store()

    try:
        productos = ProductoRepository(store).listar(usuario)
        actividad = []
        if usuario.es_admin:
            actividad = RegistroAuditoria(store).recientes(ACTIVIDAD_RECIENTE)
    except ErrorInventario as e:
        logger.error(f"Error al obtener dashboard: {e.mensaje}")
        return respuesta_error(e)

    analisis, kpis = _kpis(productos)
    limite_alertas = ALERTAS_ADMIN if usuario.es_admin else ALERTAS_OPERARIO

    return Response({
        'kpis': kpis,
        'bajo_stock': [p.a_dict() for p in analisis.criticos[:limite_alertas]],
        'hay_mas_bajo_stock': len(analisis.criticos) > limite_alertas,
        'actividad_reciente': [
            {
                'id': registro.id,
                'descripcion': frase_actividad(registro),
                'timestamp': registro.timestamp.isoformat() if registro.timestamp else None,
            }
            for registro in actividad
        ],
    })
