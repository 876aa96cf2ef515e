"""
Módulo común

Excepciones del dominio y respuestas de error compartidas por todas las apps.
"""
