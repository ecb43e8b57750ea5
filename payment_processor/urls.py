"""
Payment gateway URLs.
"""

from django.urls import path

from .views import MercadoPagoWebhookView, PaymentReturnView

app_name = 'payment_processor'

urlpatterns = [
    path('api/v1/payments/webhooks/mercadopago/', MercadoPagoWebhookView.as_view(), name='mercadopago-webhook'),
    path('api/v1/payments/return/<str:outcome>/', PaymentReturnView.as_view(), name='payment-return'),
]
