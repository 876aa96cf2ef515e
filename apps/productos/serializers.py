"""Serializers de Productos"""

import re

from rest_framework import serializers

STOCK_MAXIMO = 10000
PRECIO_MAXIMO = 10000000


class ProductoSerializer(serializers.Serializer):
    """Validación del formulario de producto (crear/editar)"""

    name = serializers.CharField(max_length=100)
    brand = serializers.CharField(max_length=50, required=False, allow_blank=True)
    unitQuantity = serializers.FloatField(required=False, allow_null=True, min_value=0)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=0, max_value=STOCK_MAXIMO)
    price = serializers.FloatField(min_value=0, max_value=PRECIO_MAXIMO)
    category = serializers.CharField(max_length=60)
    supplier = serializers.CharField(max_length=100)
    es_reposicion = serializers.BooleanField(required=False, default=False, write_only=True)

    def validate_name(self, value):
        if re.search(r'\d', value):
            raise serializers.ValidationError('El nombre no puede contener números')
        return value


class MovimientoStockSerializer(serializers.Serializer):
    """Entrada o salida de stock desde la pantalla de registro"""

    cantidad = serializers.IntegerField(min_value=1, max_value=STOCK_MAXIMO)
    nombre = serializers.CharField(max_length=100, required=False)
