"""App configuration for the payment processor."""

from django.apps import AppConfig


class PaymentProcessorConfig(AppConfig):
    """MercadoPago checkout and webhook handling."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payment_processor'
    verbose_name = 'Payment Processor'
