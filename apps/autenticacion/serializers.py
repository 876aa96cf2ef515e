"""Serializers de Autenticación"""

from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class TokenVinculoSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128)
