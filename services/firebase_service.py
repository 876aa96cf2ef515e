"""
Firebase Service

Este módulo centraliza todas las interacciones con Firebase Admin SDK
y con el proveedor de identidad (Firebase Authentication).

Funciones principales:
- initialize_firebase(): Inicializa Firebase Admin SDK
- get_firestore_client(): Cliente de Cloud Firestore
- verificar_token(id_token): Valida un ID token y devuelve sus claims
- iniciar_sesion_con_password(email, password): Login email/password
- revocar_sesiones(uid): Cierra las sesiones del usuario en el proveedor
"""

import os
import logging
from typing import Dict, Optional

import firebase_admin
import requests
from firebase_admin import credentials, firestore, auth as firebase_auth
from django.conf import settings

logger = logging.getLogger(__name__)

# Variable global para mantener la instancia de Firebase
_firebase_initialized = False

IDENTITY_TOOLKIT_URL = 'https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword'


class ErrorProveedorIdentidad(Exception):
    """El proveedor de identidad rechazó la operación o no respondió."""


def initialize_firebase():
    """
    Inicializa Firebase Admin SDK con las credenciales del proyecto.

    Esta función debe ser llamada antes de usar cualquier otra función
    de este módulo. Es seguro llamarla múltiples veces.

    Returns:
        bool: True si la inicialización fue exitosa
    """
    global _firebase_initialized

    if _firebase_initialized:
        return True

    try:
        # Intentar usar archivo de credenciales si existe
        creds_path = getattr(settings, 'FIREBASE_CREDENTIALS_PATH', None)
        if creds_path:
            full_path = os.path.join(settings.BASE_DIR, creds_path)
            if os.path.exists(full_path):
                cred = credentials.Certificate(full_path)
                firebase_admin.initialize_app(cred)
                _firebase_initialized = True
                logger.info("Firebase Admin SDK inicializado desde archivo JSON")
                return True

        # Si no hay archivo, usar variables de entorno
        config = settings.FIREBASE_CONFIG

        if not config.get('project_id'):
            logger.warning("FIREBASE_PROJECT_ID no está configurado - Firebase deshabilitado")
            return False

        cred_dict = {
            "type": "service_account",
            "project_id": config['project_id'],
            "private_key_id": config.get('private_key_id', ''),
            "private_key": config.get('private_key', ''),
            "client_email": config.get('client_email', ''),
            "client_id": config.get('client_id', ''),
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        }

        cred = credentials.Certificate(cred_dict)
        firebase_admin.initialize_app(cred, {'projectId': config['project_id']})

        _firebase_initialized = True
        logger.info("Firebase Admin SDK inicializado correctamente")
        return True

    except Exception as e:
        logger.error(f"Error al inicializar Firebase: {str(e)}")
        return False


def get_firestore_client():
    """
    Obtiene el cliente de Cloud Firestore.

    Raises:
        RuntimeError: Si Firebase no pudo inicializarse
    """
    if not initialize_firebase():
        raise RuntimeError("Firebase no está configurado")
    return firestore.client()


def verificar_token(id_token: str) -> Dict:
    """
    Verifica un ID token de Firebase.

    Args:
        id_token: JWT emitido por Firebase Authentication

    Returns:
        Dict con los claims decodificados (uid, email, name, ...)

    Raises:
        firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError
    """
    initialize_firebase()
    return firebase_auth.verify_id_token(id_token)


def iniciar_sesion_con_password(email: str, password: str) -> Dict:
    """
    Autentica email/password contra Firebase Authentication.

    El Admin SDK no verifica contraseñas, por eso se usa el endpoint REST
    de Identity Toolkit con la API key web del proyecto.

    Returns:
        Dict con idToken, localId (uid), email y displayName

    Raises:
        ErrorProveedorIdentidad: credenciales inválidas o proveedor caído
    """
    api_key = settings.FIREBASE_CONFIG.get('web_api_key')
    if not api_key:
        raise ErrorProveedorIdentidad("FIREBASE_WEB_API_KEY no configurada")

    try:
        response = requests.post(
            IDENTITY_TOOLKIT_URL,
            params={'key': api_key},
            json={'email': email, 'password': password, 'returnSecureToken': True},
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error(f"Error de red al autenticar {email}: {str(e)}")
        raise ErrorProveedorIdentidad("No se pudo contactar al proveedor de identidad") from e

    if response.status_code != 200:
        try:
            motivo = response.json().get('error', {}).get('message', 'desconocido')
        except ValueError:
            motivo = f'HTTP {response.status_code}'
        logger.warning(f"Login rechazado para {email}: {motivo}")
        raise ErrorProveedorIdentidad(motivo)

    return response.json()


def revocar_sesiones(uid: str) -> Optional[bool]:
    """
    Revoca los refresh tokens del usuario (sign-out del lado del proveedor).

    Los usuarios vinculados por token pueden no existir en Firebase Auth;
    en ese caso solo se registra una advertencia.
    """
    try:
        initialize_firebase()
        firebase_auth.revoke_refresh_tokens(uid)
        logger.info(f"Sesiones revocadas para {uid}")
        return True
    except firebase_auth.UserNotFoundError:
        logger.warning(f"Usuario {uid} no existe en Firebase Auth, nada que revocar")
        return False
