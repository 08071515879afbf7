from django.apps import AppConfig


class CartConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.cart"
    label = "cart"
    verbose_name = "Shopping cart"
