from django.apps import AppConfig


class ComunConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.comun'
