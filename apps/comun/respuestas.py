"""Traducción de errores del dominio a respuestas de la API."""

from rest_framework import status
from rest_framework.response import Response
from .excepciones import (
    ErrorValidacion,
    EntidadNoEncontrada,
    PermisoDenegado,
    IdentidadNoResuelta,
    ErrorAlmacenamiento,
)

ESTADOS_HTTP = [
    (ErrorValidacion, status.HTTP_400_BAD_REQUEST),
    (EntidadNoEncontrada, status.HTTP_404_NOT_FOUND),
    (PermisoDenegado, status.HTTP_403_FORBIDDEN),
    (IdentidadNoResuelta, status.HTTP_401_UNAUTHORIZED),
    (ErrorAlmacenamiento, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def respuesta_error(error):
    """
    Construye la respuesta JSON para un `ErrorInventario`.

    Example:
        >>> respuesta_error(EntidadNoEncontrada('Producto no encontrado')).status_code
        404
    """
    codigo = status.HTTP_500_INTERNAL_SERVER_ERROR
    for clase, estado in ESTADOS_HTTP:
        if isinstance(error, clase):
            codigo = estado
            break

    cuerpo = {'error': error.mensaje}
    campo = getattr(error, 'campo', None)
    if campo:
        cuerpo['campo'] = campo
    return Response(cuerpo, status=codigo)


def respuesta_validacion(errores):
    """Respuesta para errores de un serializer de DRF."""
    return Response(
        {'error': 'Datos inválidos', 'detalle': errores},
        status=status.HTTP_400_BAD_REQUEST,
    )
