from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.payments"
    label = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        from modules.payments.config import get_gateway_config

        # Missing gateway credentials stop the process here.
        get_gateway_config()
