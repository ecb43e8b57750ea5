"""
Payment gateway models.
"""

from django.db import models
from django.utils import timezone

from core.models import BaseModel


class PaymentWebhook(BaseModel):
    """
    Every notification received from the payment gateway, kept for audit and
    reprocessing.
    """
    WEBHOOK_STATUS = [
        ('received', 'Received'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
        ('ignored', 'Ignored'),
    ]

    provider = models.CharField(max_length=50, default='mercadopago')

    # Webhook data
    event_type = models.CharField(max_length=100, blank=True)
    action = models.CharField(max_length=100, blank=True)
    resource_id = models.CharField(max_length=255, blank=True, help_text="Gateway resource id (data.id)")
    request_id = models.CharField(max_length=255, blank=True, help_text="x-request-id header")
    order_ref = models.CharField(max_length=64, blank=True, help_text="External reference resolved from the payment")

    # Raw data
    headers = models.JSONField(default=dict)
    payload = models.JSONField(default=dict)
    signature_valid = models.BooleanField(null=True, help_text="None when no secret is configured")

    # Processing
    status = models.CharField(max_length=20, choices=WEBHOOK_STATUS, default='received')
    attempts = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['resource_id'], name='payment_pro_resourc_0c9d4e_idx'),
            models.Index(fields=['status', 'created_at'], name='payment_pro_status_7a21f3_idx'),
        ]

    def __str__(self):
        return f"{self.provider} {self.event_type} {self.resource_id} - {self.status}"

    def mark(self, status, error_message='', order_ref=None):
        self.status = status
        self.error_message = error_message
        self.processed_at = timezone.now()
        if order_ref is not None:
            self.order_ref = order_ref
        self.save(update_fields=['status', 'error_message', 'processed_at', 'order_ref', 'updated_at'])
