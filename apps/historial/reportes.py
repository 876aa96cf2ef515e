"""
Consultas y reportes sobre el historial

Lado de lectura: filtra registros, los resume por tipo de acción, los
describe en lenguaje natural para exportar, y clasifica el stock de los
productos en tres niveles (crítico, medio, ok).

La clasificación de stock se usa en alertas del dashboard, resaltado de
filas y colores del reporte; debe calcularse siempre con `clasificar_stock`.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from django.utils import timezone

from .models import (
    Accion, TipoEntidad, RegistroHistorial, Cambios,
    CambiosCreacion, CambiosActualizacion, CambiosEntradaStock, CambiosSalidaStock,
    cambios_desde_documento,
)

UMBRAL_CRITICO = 10
UMBRAL_MEDIO = 25


class NivelStock(str, Enum):
    CRITICO = 'critico'
    MEDIO = 'medio'
    OK = 'ok'


class RangoTiempo(str, Enum):
    HOY = 'today'
    SEMANA = 'week'
    MES = 'month'
    TODO = 'all'


TEXTO_ACCION = {
    Accion.CREAR: 'creó',
    Accion.ACTUALIZAR: 'editó',
    Accion.ELIMINAR: 'eliminó',
    Accion.RETIRAR_STOCK: 'retiró del inventario',
    Accion.AGREGAR_STOCK: 'agregó al inventario',
}

TEXTO_ENTIDAD = {
    TipoEntidad.PRODUCTO: 'producto',
    TipoEntidad.PROVEEDOR: 'proveedor',
    TipoEntidad.USUARIO: 'usuario',
}

ETIQUETAS_CAMPO = {
    'name': 'nombre',
    'brand': 'marca',
    'unitQuantity': 'contenido',
    'unit': 'unidad',
    'quantity': 'stock',
    'price': 'precio',
    'category': 'categoría',
    'supplier': 'proveedor',
    'email': 'correo',
    'phone': 'teléfono',
    'address': 'dirección',
}


# ============================================
# CLASIFICACIÓN DE STOCK
# ============================================

def clasificar_stock(cantidad: int) -> NivelStock:
    """
    Nivel de stock de un producto.

    < 10 -> crítico, 10 a 24 -> medio, >= 25 -> ok

    Raises:
        ValueError: si la cantidad es negativa
    """
    if cantidad < 0:
        raise ValueError(f"Cantidad negativa: {cantidad}")
    if cantidad < UMBRAL_CRITICO:
        return NivelStock.CRITICO
    if cantidad < UMBRAL_MEDIO:
        return NivelStock.MEDIO
    return NivelStock.OK


@dataclass
class AnalisisStock:
    """Productos agrupados por nivel de stock."""

    por_nivel: Dict[NivelStock, list] = field(
        default_factory=lambda: {nivel: [] for nivel in NivelStock}
    )

    @property
    def criticos(self) -> list:
        return self.por_nivel[NivelStock.CRITICO]

    @property
    def medios(self) -> list:
        return self.por_nivel[NivelStock.MEDIO]

    def conteos(self) -> Dict[str, int]:
        return {nivel.value: len(productos) for nivel, productos in self.por_nivel.items()}


def analizar_stock(productos: Iterable) -> AnalisisStock:
    """
    Agrupa productos por nivel; dentro de cada nivel, menor stock primero.

    Acepta cualquier objeto con atributo `quantity` (Producto).
    """
    analisis = AnalisisStock()
    for producto in productos:
        analisis.por_nivel[clasificar_stock(producto.quantity)].append(producto)
    for lista in analisis.por_nivel.values():
        lista.sort(key=lambda p: p.quantity)
    return analisis


# ============================================
# FILTROS
# ============================================

def inicio_rango(rango: Union[RangoTiempo, str], ahora: Optional[datetime] = None) -> Optional[datetime]:
    """
    Primer instante incluido por el rango, en la zona horaria local.

    La semana comienza el lunes. `all` no tiene límite (None).
    """
    rango = RangoTiempo(rango)
    if rango == RangoTiempo.TODO:
        return None

    ahora = timezone.localtime(_como_aware(ahora) if ahora else timezone.now())
    inicio_dia = ahora.replace(hour=0, minute=0, second=0, microsecond=0)

    if rango == RangoTiempo.HOY:
        return inicio_dia
    if rango == RangoTiempo.SEMANA:
        return inicio_dia - timedelta(days=inicio_dia.weekday())
    return inicio_dia.replace(day=1)


def _como_aware(fecha: datetime) -> datetime:
    if timezone.is_naive(fecha):
        return timezone.make_aware(fecha)
    return fecha


def filtrar(
    registros: Iterable[RegistroHistorial],
    accion: Optional[Union[Accion, str]] = None,
    tipo_entidad: Optional[Union[TipoEntidad, str]] = None,
    texto: Optional[str] = None,
    rango: Union[RangoTiempo, str] = RangoTiempo.TODO,
    ahora: Optional[datetime] = None,
) -> List[RegistroHistorial]:
    """
    Filtra registros del historial. Todos los filtros se combinan con AND.

    Args:
        registros: Registros a filtrar
        accion: create, update, delete, add_stock o remove_stock
        tipo_entidad: product, supplier o user
        texto: Búsqueda sin distinguir mayúsculas en userName o entityName
        rango: today, week, month o all, relativo a `ahora`
        ahora: Instante de evaluación (por defecto, el actual)

    Example:
        >>> filtrar(registros, accion='add_stock', rango='week')
    """
    accion = Accion(accion) if accion else None
    tipo_entidad = TipoEntidad(tipo_entidad) if tipo_entidad else None
    texto = (texto or '').strip().lower()
    desde = inicio_rango(rango, ahora)

    resultado = []
    for registro in registros:
        if accion and registro.action != accion:
            continue
        if tipo_entidad and registro.entityType != tipo_entidad:
            continue
        if texto:
            usuario = (registro.userName or '').lower()
            entidad = (registro.entityName or '').lower()
            if texto not in usuario and texto not in entidad:
                continue
        if desde is not None:
            # Registros sin timestamp aún no fueron confirmados por el servidor
            if registro.timestamp is None or _como_aware(registro.timestamp) < desde:
                continue
        resultado.append(registro)
    return resultado


# ============================================
# RESUMEN Y TEXTOS
# ============================================

@dataclass(frozen=True)
class ResumenHistorial:
    total: int = 0
    creaciones: int = 0
    actualizaciones: int = 0
    eliminaciones: int = 0
    movimientos_stock: int = 0

    def a_dict(self) -> Dict[str, int]:
        return {
            'total': self.total,
            'creates': self.creaciones,
            'updates': self.actualizaciones,
            'deletes': self.eliminaciones,
            'stockChanges': self.movimientos_stock,
        }


def resumir(registros: Iterable[RegistroHistorial]) -> ResumenHistorial:
    conteo = {accion: 0 for accion in Accion}
    for registro in registros:
        conteo[registro.action] += 1

    return ResumenHistorial(
        total=sum(conteo.values()),
        creaciones=conteo[Accion.CREAR],
        actualizaciones=conteo[Accion.ACTUALIZAR],
        eliminaciones=conteo[Accion.ELIMINAR],
        movimientos_stock=conteo[Accion.AGREGAR_STOCK] + conteo[Accion.RETIRAR_STOCK],
    )


def _formato_precio(valor) -> str:
    return '$' + f"{valor:,.0f}".replace(',', '.')


def _formato_valor(campo, valor) -> str:
    if campo == 'price' and isinstance(valor, (int, float)):
        return _formato_precio(valor)
    return str(valor)


def resumen_textual(accion: Union[Accion, str], cambios: Optional[Union[Cambios, dict]] = None) -> str:
    """
    Descripción de una línea para reportes exportados.

    Example:
        >>> resumen_textual('add_stock', CambiosEntradaStock(0, 50))
        'Entrada: +50 unids. (0 -> 50)'
    """
    accion = Accion(accion)
    if isinstance(cambios, dict):
        cambios = cambios_desde_documento(accion, cambios)

    if isinstance(cambios, CambiosEntradaStock):
        return (f"Entrada: +{cambios.cantidad_agregada} unids. "
                f"({cambios.cantidad_anterior} -> {cambios.cantidad_nueva})")

    if isinstance(cambios, CambiosSalidaStock):
        return (f"Salida: -{cambios.cantidad_retirada} unids. "
                f"({cambios.cantidad_anterior} -> {cambios.cantidad_nueva})")

    if isinstance(cambios, CambiosCreacion):
        partes = []
        if 'quantity' in cambios.campos:
            partes.append(f"stock inicial {cambios.campos['quantity']} unids.")
        if 'price' in cambios.campos:
            partes.append(f"precio {_formato_valor('price', cambios.campos['price'])}")
        if not partes:
            return 'Creación del registro'
        return 'Creación: ' + ', '.join(partes)

    if isinstance(cambios, CambiosActualizacion) and cambios.campos:
        partes = [
            f"{ETIQUETAS_CAMPO.get(campo, campo)}: {_formato_valor(campo, valor)}"
            for campo, valor in cambios.campos.items()
        ]
        return 'Edición: ' + ', '.join(partes)

    if accion == Accion.ELIMINAR:
        return 'Eliminación del registro'
    if accion == Accion.ACTUALIZAR:
        return 'Edición'
    if accion == Accion.CREAR:
        return 'Creación del registro'
    return TEXTO_ACCION[accion].capitalize()


def texto_accion(accion: Union[Accion, str]) -> str:
    return TEXTO_ACCION.get(Accion(accion), str(accion))


def texto_entidad(tipo: Union[TipoEntidad, str]) -> str:
    return TEXTO_ENTIDAD.get(TipoEntidad(tipo), str(tipo))


def frase_actividad(registro: RegistroHistorial) -> str:
    """Frase del feed de actividad: 'Ana agregó al inventario "Detergente"'"""
    if registro.entityName:
        objeto = f'"{registro.entityName}"'
    else:
        objeto = texto_entidad(registro.entityType)
    return f"{registro.userName} {texto_accion(registro.action)} {objeto}"


# ============================================
# REPORTE EXPORTABLE
# ============================================

def _formato_fecha(fecha: Optional[datetime]) -> str:
    if fecha is None:
        return ''
    return timezone.localtime(_como_aware(fecha)).strftime('%d/%m/%Y %H:%M')


def construir_reporte(
    registros: List[RegistroHistorial],
    productos: Iterable,
    generado_en: Optional[datetime] = None,
) -> Dict:
    """
    Datos listos para el renderizador de reportes (PDF u otro).

    Returns:
        Dict con:
            - generadoEn (str)
            - resumen: conteos por tipo de acción
            - filas: fecha, usuario, acción, entidad, nombre y detalle
            - stock: productos con su nivel, menor stock primero
            - conteosStock: cantidad de productos por nivel
    """
    generado_en = generado_en or timezone.now()
    analisis = analizar_stock(productos)

    filas = [
        {
            'fecha': _formato_fecha(registro.timestamp),
            'usuario': registro.userName,
            'accion': texto_accion(registro.action),
            'entidad': texto_entidad(registro.entityType),
            'nombre': registro.entityName or '',
            'detalle': resumen_textual(registro.action, registro.changes),
        }
        for registro in registros
    ]

    stock = [
        {
            'id': producto.id,
            'name': producto.name,
            'quantity': producto.quantity,
            'nivel': nivel.value,
        }
        for nivel in NivelStock
        for producto in analisis.por_nivel[nivel]
    ]

    return {
        'generadoEn': _formato_fecha(generado_en),
        'resumen': resumir(registros).a_dict(),
        'filas': filas,
        'stock': stock,
        'conteosStock': analisis.conteos(),
    }
