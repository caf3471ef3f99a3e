from django.apps import AppConfig


class GuardAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'guard'
    verbose_name = 'Request Guard'
