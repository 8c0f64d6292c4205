from django.apps import AppConfig


class QahwacupConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "qahwacup"
    verbose_name = "Qahwa Cup - Loyalty & Orders"
