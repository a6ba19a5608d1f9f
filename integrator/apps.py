from django.apps import AppConfig


class IntegratorConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'integrator'
