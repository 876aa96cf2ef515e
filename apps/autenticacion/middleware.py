"""
Firebase Authentication Middleware

Este middleware intercepta todas las requests y resuelve el usuario actuante.

Flujo:
1. Si hay header Authorization Bearer, valida el ID token con Firebase
2. Con el uid busca el perfil en Firestore (colección usuarios) y mapea el rol,
   una vez por token: mientras el token no cambie se usa la sesión local
3. Si no hay token, usa el snapshot guardado en la sesión local
4. Deja el resultado en request.usuario (None si no hay identidad)
"""

import logging

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from firebase_admin import auth as firebase_auth

from services.firebase_service import verificar_token
from services.firestore_service import get_document_store
from .resolver import ResolvedorSesion

logger = logging.getLogger(__name__)


class FirebaseAuthMiddleware(MiddlewareMixin):
    """
    Middleware para autenticación con Firebase.

    Valida el token JWT de Firebase en cada request y carga los datos
    del usuario desde Firestore.
    """

    # Rutas que no requieren autenticación
    EXEMPT_PREFIXES = [
        '/admin/',
        '/api/auth/',
    ]
    EXEMPT_EXACT = ['/', '/api/']

    def es_exenta(self, path):
        return path in self.EXEMPT_EXACT or any(path.startswith(p) for p in self.EXEMPT_PREFIXES)

    def process_request(self, request):
        """
        Procesa cada request para resolver la identidad.

        Returns:
            None si la request puede continuar
            JsonResponse 401 si el token es inválido en una ruta protegida
        """
        resolvedor = ResolvedorSesion(get_document_store(), request.session)
        request.resolvedor = resolvedor
        is_exempt = self.es_exenta(request.path)

        auth_header = request.META.get('HTTP_AUTHORIZATION', '')

        if not auth_header.startswith('Bearer '):
            # Sin token: confiamos en la sesión local (incluye login por token)
            request.usuario = resolvedor.usuario_actual()
            return None

        token = auth_header.split('Bearer ')[1]

        try:
            decoded_token = verificar_token(token)
        except firebase_auth.ExpiredIdTokenError:
            logger.warning("Token de Firebase expirado")
            request.usuario = None
            if is_exempt:
                return None
            return JsonResponse({'error': 'Token expirado'}, status=401)
        except (firebase_auth.InvalidIdTokenError, ValueError):
            logger.warning("Token de Firebase inválido")
            request.usuario = None
            if is_exempt:
                return None
            return JsonResponse({'error': 'Token inválido'}, status=401)

        uid = decoded_token['uid']
        # Un mismo ID token se resuelve una sola vez; al renovarse (iat) se relee el perfil
        usuario = resolvedor.resolver_autenticado(
            uid,
            decoded_token.get('email', ''),
            decoded_token.get('name', ''),
            huella=f"{uid}:{decoded_token.get('iat')}",
        )

        if usuario is None:
            # Un fallo de consulta no degrada una sesión ya resuelta del mismo uid
            actual = resolvedor.usuario_actual()
            if actual is not None and actual.uid == uid:
                usuario = actual

        request.usuario = usuario
        return None
