"""
Payment gateway endpoints: MercadoPago notifications and browser back-urls.
"""

import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import Http404, HttpResponseRedirect
from django.utils import timezone
from django.views import View
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import PaymentWebhook
from .services import process_webhook, verify_webhook_signature

logger = logging.getLogger(__name__)

STORED_HEADERS = ('HTTP_X_SIGNATURE', 'HTTP_X_REQUEST_ID', 'HTTP_USER_AGENT', 'CONTENT_TYPE')


class MercadoPagoWebhookView(APIView):
    """
    MercadoPago notifications.

    Every notification is stored. Once the signature checks out the gateway
    always gets a 200, even if processing fails, so it does not retry forever;
    failed rows are picked up by the reprocessing task.
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({
            'status': 'ready',
            'endpoint': request.path,
            'timestamp': timezone.now().isoformat(),
        }, status=status.HTTP_200_OK)

    def post(self, request):
        payload = request.data if isinstance(request.data, dict) else {}
        data = payload.get('data') or {}
        resource_id = str(
            data.get('id') or request.query_params.get('data.id') or request.query_params.get('id') or ''
        )
        event_type = payload.get('type') or request.query_params.get('type') or request.query_params.get('topic') or ''

        webhook = PaymentWebhook.objects.create(
            event_type=event_type,
            action=payload.get('action') or '',
            resource_id=resource_id,
            request_id=request.META.get('HTTP_X_REQUEST_ID', ''),
            headers={key: request.META[key] for key in STORED_HEADERS if key in request.META},
            payload=payload,
        )
        logger.info(f"[WEBHOOK] Received {event_type} {webhook.action} for {resource_id}")

        secret = settings.MERCADOPAGO_WEBHOOK_SECRET
        if secret:
            webhook.signature_valid = verify_webhook_signature(
                resource_id, request.META.get('HTTP_X_SIGNATURE'), secret
            )
            webhook.save(update_fields=['signature_valid', 'updated_at'])
            if not webhook.signature_valid:
                logger.error(f"[WEBHOOK] Invalid signature for notification {webhook.id}")
                webhook.mark('ignored', error_message='Invalid signature')
                return Response({'error': 'Invalid signature'}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            process_webhook(webhook)
        except Exception:
            # Already recorded on the webhook row
            return Response({
                'received': True,
                'error': 'Internal processing error (logged)',
            }, status=status.HTTP_200_OK)

        return Response({
            'received': True,
            'request_id': webhook.request_id,
            'timestamp': timezone.now().isoformat(),
        }, status=status.HTTP_200_OK)


class PaymentReturnView(View):
    """Checkout back-urls: send the browser back to the frontend with the outcome."""

    OUTCOMES = ('success', 'pending', 'failure')

    def get(self, request, outcome):
        if outcome not in self.OUTCOMES:
            raise Http404
        purchase = request.GET.get('external_reference', '')
        payment_id = request.GET.get('payment_id') or request.GET.get('collection_id') or ''
        logger.info(f"[WEBHOOK] Browser returned from checkout: {outcome} purchase={purchase} payment={payment_id}")

        query = urlencode({'payment': outcome, 'purchase': purchase, 'payment_id': payment_id})
        return HttpResponseRedirect(f"{settings.FRONTEND_URL.rstrip('/')}/?{query}")
