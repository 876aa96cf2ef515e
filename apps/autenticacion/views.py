"""
Vistas de Autenticación

Endpoints para iniciar sesión (email/password o token vinculado),
cerrar sesión y obtener el usuario actual.
"""

import logging

from firebase_admin.exceptions import FirebaseError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from services.firebase_service import (
    iniciar_sesion_con_password,
    revocar_sesiones,
    ErrorProveedorIdentidad,
)
from .serializers import LoginSerializer, TokenVinculoSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([])  # No requiere autenticación previa
def login(request):
    """
    Inicia sesión con email y password contra Firebase Authentication.

    Request:
        {"email": "ana@lavanderia.cl", "password": "..."}

    Response:
        {"user": {...}, "idToken": "...", "refreshToken": "..."}

    Errors:
        400: Datos incompletos
        401: Credenciales inválidas o perfil inexistente
    """
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Email y contraseña son requeridos'},
                        status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email']

    try:
        sesion = iniciar_sesion_con_password(email, serializer.validated_data['password'])
    except ErrorProveedorIdentidad:
        return Response({'error': 'Credenciales inválidas'},
                        status=status.HTTP_401_UNAUTHORIZED)

    usuario = request.resolvedor.resolver_autenticado(
        sesion['localId'],
        sesion.get('email', email),
        sesion.get('displayName', ''),
    )
    if usuario is None:
        return Response({'error': 'Usuario no encontrado en el sistema'},
                        status=status.HTTP_401_UNAUTHORIZED)

    logger.info(f"Login exitoso: {usuario.email} ({usuario.role.value})")
    return Response({
        'user': usuario.a_dict(),
        'idToken': sesion.get('idToken'),
        'refreshToken': sesion.get('refreshToken'),
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([])
def login_con_token(request):
    """
    Establece la sesión a partir de un identificador externo (intranet).

    Request:
        {"token": "<id de perfil>"}
    """
    serializer = TokenVinculoSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Token no proporcionado'},
                        status=status.HTTP_400_BAD_REQUEST)

    usuario = request.resolvedor.vincular_token(serializer.validated_data['token'])
    if usuario is None:
        return Response({'error': 'Token inválido'},
                        status=status.HTTP_401_UNAUTHORIZED)

    return Response({'user': usuario.a_dict()}, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([])
def logout(request):
    """Cierra la sesión en el proveedor y borra la sesión local."""
    usuario = request.usuario
    if usuario is not None and not usuario.invitado:
        try:
            revocar_sesiones(usuario.uid)
        except (FirebaseError, ValueError) as e:
            logger.warning(f"No se pudieron revocar sesiones de {usuario.uid}: {str(e)}")

    request.resolvedor.cerrar_sesion()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_current_user(request):
    """
    Obtiene información del usuario actualmente autenticado.

    Response:
        {
            "user": {
                "uid": "firebase_uid",
                "email": "usuario@example.com",
                "displayName": "Ana Pérez",
                "role": "admin",
                "invitado": false
            }
        }
    """
    return Response({'user': request.usuario.a_dict()}, status=status.HTTP_200_OK)
