"""
Módulo de Historial

Registro de auditoría (append-only) de todas las mutaciones de productos
y proveedores, y el motor de consultas y reportes que lo lee.
"""
