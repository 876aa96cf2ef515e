"""
Excepciones del dominio de inventario.

Los repositorios lanzan estas excepciones; las vistas las traducen a
respuestas HTTP con `respuesta_error`.
"""


class ErrorInventario(Exception):
    """Raíz de todos los errores del dominio."""

    mensaje = 'Error en la operación'

    def __init__(self, mensaje=None):
        super().__init__(mensaje or self.mensaje)
        self.mensaje = mensaje or self.mensaje


class ErrorValidacion(ErrorInventario):
    """Datos inválidos; se rechaza antes de escribir."""

    mensaje = 'Datos inválidos'

    def __init__(self, mensaje=None, campo=None):
        super().__init__(mensaje)
        self.campo = campo


class StockInsuficiente(ErrorValidacion):
    """Un retiro dejaría el stock negativo."""

    def __init__(self, disponible: int, solicitado: int):
        super().__init__(
            f'Stock insuficiente: disponible {disponible}, solicitado {solicitado}',
            campo='quantity',
        )
        self.disponible = disponible
        self.solicitado = solicitado


class EntidadNoEncontrada(ErrorInventario):
    mensaje = 'Registro no encontrado'


class PermisoDenegado(ErrorInventario):
    mensaje = 'No tienes permisos para realizar esta acción'


class IdentidadNoResuelta(ErrorInventario):
    mensaje = 'No autenticado'


class ErrorAlmacenamiento(ErrorInventario):
    """Fallo de E/S contra Firestore (inalcanzable, permiso denegado, ...)."""

    mensaje = 'Error de comunicación con la base de datos'
