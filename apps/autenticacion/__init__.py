"""
Módulo de Autenticación

Resuelve quién está actuando (usuario registrado, usuario vinculado por
token o invitado), le asigna un rol y decide qué operaciones puede invocar.
"""
