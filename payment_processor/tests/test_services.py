"""
Tests for the MercadoPago client and payment status mapping.
"""

import hashlib
import hmac
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase, override_settings

from apps.raffles.models import EventLog, Order, RaffleNumber
from apps.raffles.services import get_engine
from apps.raffles.tests.utils import BUYER, make_raffle
from payment_processor.services import (
    MercadoPagoService,
    PaymentServiceException,
    apply_payment_status,
    verify_webhook_signature,
)


def _response(status_code, payload):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = str(payload)
    return response


class MercadoPagoServiceTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=20)
        engine = get_engine()
        hold = engine.reserve([3, 4])
        self.order = engine.create_order(hold.reservation_id, BUYER, [3, 4], 2000)

    @patch('payment_processor.services.requests.request')
    def test_create_checkout_session(self, mock_request):
        mock_request.return_value = _response(201, {
            'id': 'pref-123',
            'init_point': 'https://mp/checkout',
            'sandbox_init_point': 'https://sandbox.mp/checkout',
        })

        session = MercadoPagoService().create_checkout_session(self.order)

        self.assertEqual(session['preference_id'], 'pref-123')
        self.assertEqual(session['init_point'], 'https://mp/checkout')
        body = mock_request.call_args.kwargs['json']
        self.assertEqual(body['external_reference'], self.order.id)
        self.assertEqual(body['items'][0]['title'], 'Rifa - Números: 3, 4')
        self.assertEqual(body['items'][0]['unit_price'], 2000.0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.preference_id, 'pref-123')

    @patch('payment_processor.services.requests.request')
    def test_http_error_raises(self, mock_request):
        mock_request.return_value = _response(400, {'message': 'bad request'})
        with self.assertRaises(PaymentServiceException):
            MercadoPagoService().create_checkout_session(self.order)

    @override_settings(MERCADOPAGO_RETRY_ATTEMPTS=3)
    @patch('payment_processor.services.time.sleep')
    @patch('payment_processor.services.requests.request')
    def test_retries_on_timeout(self, mock_request, mock_sleep):
        mock_request.side_effect = [
            requests.exceptions.Timeout(),
            requests.exceptions.ConnectionError(),
            _response(200, {'id': 99, 'status': 'approved', 'external_reference': self.order.id}),
        ]

        payment = MercadoPagoService().get_payment('99')

        self.assertEqual(payment['id'], '99')
        self.assertEqual(mock_request.call_count, 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [1, 2])

    @override_settings(MERCADOPAGO_ACCESS_TOKEN='')
    def test_missing_token(self):
        with self.assertRaises(PaymentServiceException):
            MercadoPagoService()


class WebhookSignatureTestCase(TestCase):

    def _sign(self, resource_id, ts, secret='s3cret'):
        return hmac.new(secret.encode(), f"{resource_id}.{ts}".encode(), hashlib.sha256).hexdigest()

    def test_valid_signature(self):
        header = f"ts=1700000000,v1={self._sign('123', '1700000000')}"
        self.assertTrue(verify_webhook_signature('123', header, 's3cret'))

    def test_invalid_signature(self):
        header = f"ts=1700000000,v1={self._sign('123', '1700000000', 'other')}"
        self.assertFalse(verify_webhook_signature('123', header, 's3cret'))
        self.assertFalse(verify_webhook_signature('123', None, 's3cret'))
        self.assertFalse(verify_webhook_signature('123', 'garbage', 's3cret'))


class ApplyPaymentStatusTestCase(TestCase):

    def setUp(self):
        self.raffle = make_raffle(total_numbers=20)
        engine = get_engine()
        hold = engine.reserve([5])
        self.order = engine.create_order(hold.reservation_id, BUYER, [5], 1000)

    def _number(self):
        return RaffleNumber.objects.get(raffle=self.raffle, number=5)

    def test_approved_confirms(self):
        action = apply_payment_status({
            'id': '77', 'status': 'approved', 'external_reference': self.order.id, 'payment_method': 'visa',
        })
        self.assertEqual(action, 'confirmed')
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_APPROVED)
        self.assertEqual(self.order.payment_id, '77')
        self.assertEqual(self._number().status, RaffleNumber.STATUS_SOLD)

    def test_rejected_cancels_with_status(self):
        action = apply_payment_status({'id': '77', 'status': 'rejected', 'external_reference': self.order.id})
        self.assertEqual(action, 'rejected')
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_REJECTED)
        self.assertEqual(self._number().status, RaffleNumber.STATUS_AVAILABLE)

    def test_rejection_of_approved_order_is_a_mismatch(self):
        apply_payment_status({'id': '77', 'status': 'approved', 'external_reference': self.order.id})

        action = apply_payment_status({
            'id': '77', 'status': 'cancelled', 'status_detail': 'refunded', 'external_reference': self.order.id,
        })

        self.assertEqual(action, 'mismatch')
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_APPROVED)
        self.assertEqual(self._number().status, RaffleNumber.STATUS_SOLD)
        self.assertTrue(
            EventLog.objects.filter(event_type=EventLog.PAYMENT_MISMATCH, order_ref=self.order.id).exists()
        )

    def test_pending_does_nothing(self):
        self.assertIsNone(apply_payment_status({'id': '77', 'status': 'in_process', 'external_reference': self.order.id}))
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.STATUS_PENDING)

    def test_missing_reference(self):
        self.assertIsNone(apply_payment_status({'id': '77', 'status': 'approved'}))
