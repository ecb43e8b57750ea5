from django.contrib import admin

from .models import PaymentWebhook


@admin.register(PaymentWebhook)
class PaymentWebhookAdmin(admin.ModelAdmin):
    list_display = ('provider', 'event_type', 'resource_id', 'order_ref', 'status', 'attempts', 'created_at')
    search_fields = ('resource_id', 'order_ref', 'request_id')
    list_filter = ('provider', 'status', 'event_type', 'signature_valid')
    readonly_fields = (
        'provider', 'event_type', 'action', 'resource_id', 'request_id', 'order_ref', 'headers',
        'payload', 'signature_valid', 'status', 'attempts', 'processed_at', 'error_message',
        'created_at', 'updated_at'
    )
    ordering = ('-created_at',)
