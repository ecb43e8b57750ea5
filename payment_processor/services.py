"""
Payment gateway services.

MercadoPago Checkout Pro client plus the mapping from gateway payment status
to raffle settlement.
"""

import hashlib
import hmac
import logging
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from django.utils import timezone

from apps.raffles.models import Order
from apps.raffles.services import get_engine

logger = logging.getLogger(__name__)


class PaymentServiceException(Exception):
    """Custom exception for payment service errors"""
    pass


class MercadoPagoService:
    """
    MercadoPago REST client.

    Requests are retried with exponential backoff on timeouts and connection
    errors; HTTP error responses are returned as failures without retrying.
    """

    def __init__(self, access_token: Optional[str] = None):
        self.access_token = access_token or settings.MERCADOPAGO_ACCESS_TOKEN
        self.base_url = settings.MERCADOPAGO_API_URL.rstrip('/')
        self.timeout = settings.MERCADOPAGO_TIMEOUT_SECONDS
        self.retry_attempts = max(1, settings.MERCADOPAGO_RETRY_ATTEMPTS)

        if not self.access_token:
            raise PaymentServiceException("MercadoPago configuration missing: MERCADOPAGO_ACCESS_TOKEN")

    def _make_request(self, method: str, endpoint: str, data: Dict = None,
                      idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if idempotency_key:
            headers['X-Idempotency-Key'] = idempotency_key

        start_time = time.time()
        last_exception = None

        for attempt in range(self.retry_attempts):
            try:
                logger.info(f"[MERCADOPAGO] {method} {url} (attempt {attempt + 1})")
                response = requests.request(
                    method=method,
                    url=url,
                    headers=headers,
                    json=data,
                    timeout=self.timeout
                )
                duration_ms = int((time.time() - start_time) * 1000)

                if response.status_code in (200, 201):
                    logger.info(f"[MERCADOPAGO] Success in {duration_ms}ms")
                    return {
                        'success': True,
                        'data': response.json(),
                        'duration_ms': duration_ms,
                        'status_code': response.status_code
                    }

                try:
                    error_data = response.json()
                except ValueError:
                    error_data = response.text
                logger.error(f"[MERCADOPAGO] HTTP {response.status_code} - {error_data}")
                return {
                    'success': False,
                    'error': error_data,
                    'duration_ms': duration_ms,
                    'status_code': response.status_code
                }

            except requests.exceptions.Timeout:
                last_exception = f"Timeout after {self.timeout}s"
                logger.warning(f"[MERCADOPAGO] Timeout on attempt {attempt + 1}")

            except requests.exceptions.ConnectionError:
                last_exception = "Connection error"
                logger.warning(f"[MERCADOPAGO] Connection error on attempt {attempt + 1}")

            # Wait before retry (exponential backoff)
            if attempt < self.retry_attempts - 1:
                time.sleep(2 ** attempt)

        return {
            'success': False,
            'error': f"All {self.retry_attempts} attempts failed. Last error: {last_exception}",
            'duration_ms': int((time.time() - start_time) * 1000),
            'status_code': 0
        }

    def _back_url(self, outcome: str) -> str:
        return f"{settings.BACKEND_URL.rstrip('/')}/api/v1/payments/return/{outcome}/"

    def create_checkout_session(self, order: Order, numbers: Optional[List[int]] = None) -> Dict[str, Any]:
        """
        Create a Checkout Pro preference for an order.

        Returns preference_id, init_point and sandbox_init_point, and stores the
        preference id on the order.
        """
        numbers = numbers if numbers is not None else order.held_numbers()
        now = timezone.now()
        body = {
            'items': [{
                'id': order.id,
                'title': f"Rifa - Números: {', '.join(str(n) for n in numbers)}",
                'quantity': 1,
                'unit_price': float(order.total_amount),
                'currency_id': settings.MERCADOPAGO_CURRENCY,
            }],
            'payer': {
                'name': order.buyer_name,
                'email': order.email,
            },
            'back_urls': {
                'success': self._back_url('success'),
                'failure': self._back_url('failure'),
                'pending': self._back_url('pending'),
            },
            'auto_return': 'approved',
            'external_reference': order.id,
            'notification_url': f"{settings.BACKEND_URL.rstrip('/')}/api/v1/payments/webhooks/mercadopago/",
            'statement_descriptor': settings.MERCADOPAGO_STATEMENT_DESCRIPTOR,
            'payment_methods': {
                'installments': 1,
                'default_installments': 1,
            },
            'expires': True,
            'expiration_date_from': now.isoformat(),
            'expiration_date_to': (now + timedelta(minutes=settings.RAFFLE_HOLD_MINUTES)).isoformat(),
        }

        result = self._make_request('POST', 'checkout/preferences', body, idempotency_key=order.id)
        if not result['success']:
            raise PaymentServiceException(f"Failed to create payment preference: {result['error']}")

        data = result['data']
        Order.objects.filter(pk=order.pk).update(preference_id=data['id'], updated_at=now)
        order.preference_id = data['id']
        logger.info(f"[MERCADOPAGO] Preference {data['id']} created for order {order.id}")

        return {
            'preference_id': data['id'],
            'init_point': data.get('init_point'),
            'sandbox_init_point': data.get('sandbox_init_point'),
        }

    def get_payment(self, payment_id: str) -> Dict[str, Any]:
        result = self._make_request('GET', f'v1/payments/{payment_id}')
        if not result['success']:
            raise PaymentServiceException(f"Failed to get payment {payment_id}: {result['error']}")

        data = result['data']
        return {
            'id': str(data.get('id')),
            'status': data.get('status'),
            'status_detail': data.get('status_detail'),
            'external_reference': data.get('external_reference'),
            'amount': data.get('transaction_amount'),
            'payment_method': data.get('payment_method_id') or (data.get('payment_method') or {}).get('id'),
            'payer_email': (data.get('payer') or {}).get('email'),
        }


def verify_webhook_signature(resource_id: str, signature: Optional[str], secret: str) -> bool:
    """
    Check an ``x-signature: ts=<ts>,v1=<hex>`` header.

    The signed message is ``"<data.id>.<ts>"`` under HMAC-SHA256.
    """
    if not signature or not resource_id:
        return False

    parts = dict(
        part.strip().split('=', 1) for part in signature.split(',') if '=' in part
    )
    timestamp = parts.get('ts')
    received = parts.get('v1')
    if not timestamp or not received:
        return False

    expected = hmac.new(
        secret.encode(),
        f"{resource_id}.{timestamp}".encode(),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(received, expected)


def apply_payment_status(payment_info: Dict[str, Any]) -> Optional[str]:
    """
    Settle the order referenced by a gateway payment.

    approved -> confirm; rejected / cancelled -> cancel with that status;
    anything else leaves the order pending. Returns the action taken;
    'mismatch' when the signal contradicts an already settled order.
    """
    order_id = payment_info.get('external_reference')
    status = payment_info.get('status')
    if not order_id:
        logger.error(f"[WEBHOOK] Payment {payment_info.get('id')} has no external reference")
        return None

    engine = get_engine()
    if status == 'approved':
        result = engine.confirm_payment(order_id, {
            'payment_id': payment_info.get('id'),
            'payment_method': payment_info.get('payment_method') or 'mercadopago',
            'status_detail': payment_info.get('status_detail'),
            'amount': payment_info.get('amount'),
            'payer_email': payment_info.get('payer_email'),
        })
        if result.changed:
            return 'confirmed'
        return 'mismatch' if result.mismatch else 'noop'

    if status in (Order.STATUS_REJECTED, Order.STATUS_CANCELLED):
        result = engine.cancel_payment(order_id, status=status, reason=payment_info.get('status_detail') or '')
        if result.changed:
            return status
        return 'mismatch' if result.mismatch else 'noop'

    logger.info(f"[WEBHOOK] Payment {payment_info.get('id')} status {status}, no action taken")
    return None


def process_webhook(webhook) -> None:
    """
    Handle one stored notification and record the outcome on it.

    Errors are recorded on the webhook row and re-raised.
    """
    webhook.attempts += 1
    webhook.save(update_fields=['attempts', 'updated_at'])

    if webhook.event_type != 'payment' or not webhook.resource_id:
        logger.info(f"[WEBHOOK] Ignoring {webhook.event_type or 'unknown'} notification {webhook.resource_id}")
        webhook.mark('ignored')
        return

    try:
        payment_info = MercadoPagoService().get_payment(webhook.resource_id)
        action = apply_payment_status(payment_info)
    except Exception as exc:
        logger.error(f"[WEBHOOK] Error processing payment {webhook.resource_id}: {exc}")
        webhook.mark('failed', error_message=str(exc))
        raise

    webhook.mark(
        'processed' if action else 'ignored',
        order_ref=payment_info.get('external_reference') or '',
    )
    logger.info(f"[WEBHOOK] Payment {webhook.resource_id} handled: {action or 'no action'}")
