"""
Raffle API views: configuration, number grid, reservations, purchases and
maintenance.
"""

import logging

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.raffles.services import get_engine
from core.permissions import IsMaintenanceRequest, IsStaffOrMaintenanceRequest
from payment_processor.services import MercadoPagoService

from .error_handlers import RaffleErrorMixin
from .serializers import (
    CancelPaymentSerializer,
    ConfirmPaymentSerializer,
    CreatePurchaseSerializer,
    NumbersSerializer,
    OrderSerializer,
    RaffleConfigSerializer,
)

logger = logging.getLogger(__name__)


class RaffleConfigView(RaffleErrorMixin, APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        config = get_engine().get_config()
        return Response(RaffleConfigSerializer(config).data)


class RaffleNumbersView(RaffleErrorMixin, APIView):
    """Full number grid, ordered by number."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        numbers = get_engine().list_numbers()
        return Response({'numbers': numbers, 'count': len(numbers)})


class RaffleStatsView(RaffleErrorMixin, APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response(get_engine().get_stats())


class VerifyNumbersView(RaffleErrorMixin, APIView):
    """Advisory check; does not reserve anything."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = NumbersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_engine().verify_availability(serializer.validated_data['numbers'])
        return Response({
            'available': result.available,
            'unavailableNumbers': result.unavailable_numbers,
        })


class ReservationView(RaffleErrorMixin, APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = NumbersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_engine().reserve(serializer.validated_data['numbers'])
        return Response({
            'success': True,
            'reservationId': result.reservation_id,
            'reservedNumbers': result.reserved_numbers,
            'failedNumbers': result.failed_numbers,
        }, status=status.HTTP_201_CREATED)


class PurchaseViewSet(RaffleErrorMixin, viewsets.ViewSet):
    """
    Orders built from a reservation.

    create: bind a hold to the buyer's order.
    retrieve: order status.
    confirm / cancel: settle the order.
    checkout: open a MercadoPago checkout session.
    """
    permission_classes = [permissions.AllowAny]
    lookup_value_regex = r'[A-Za-z0-9\-]+'

    def create(self, request):
        serializer = CreatePurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = get_engine().create_order(
            data['reservationId'],
            serializer.buyer_details(),
            data['numbers'],
            data['totalAmount'],
        )
        logger.info(f"[RAFFLE_API] Purchase {order.id} created for {data['numbers']}")
        return Response({
            'success': True,
            'purchaseId': order.id,
            'purchase': OrderSerializer(order, context={'numbers': data['numbers']}).data,
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        order = get_engine().get_order(pk)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'], permission_classes=[IsStaffOrMaintenanceRequest])
    def confirm(self, request, pk=None):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_engine().confirm_payment(pk, {
            'payment_id': serializer.validated_data['paymentId'],
            'payment_method': serializer.validated_data['paymentMethod'],
        })
        return Response({
            'success': True,
            'changed': result.changed,
            'paymentStatus': result.payment_status,
            'numbers': result.numbers,
            'mismatch': str(result.mismatch) if result.mismatch else None,
        })

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        serializer = CancelPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = get_engine().cancel_payment(
            pk,
            status=serializer.validated_data['status'],
            reason=serializer.validated_data['reason'],
        )
        return Response({
            'success': True,
            'changed': result.changed,
            'paymentStatus': result.payment_status,
            'releasedNumbers': result.numbers,
            'mismatch': str(result.mismatch) if result.mismatch else None,
        })

    @action(detail=True, methods=['post'])
    def checkout(self, request, pk=None):
        order = get_engine().get_order(pk)
        if not order.is_pending:
            return Response({
                'success': False,
                'error': 'order_not_pending',
                'message': f"Order is {order.payment_status}",
            }, status=status.HTTP_409_CONFLICT)

        session = MercadoPagoService().create_checkout_session(order)
        return Response({
            'success': True,
            'preferenceId': session['preference_id'],
            'initPoint': session['init_point'],
            'sandboxInitPoint': session['sandbox_init_point'],
        }, status=status.HTTP_201_CREATED)


class SweepExpiredView(RaffleErrorMixin, APIView):
    """
    Scheduler-triggered sweep of expired holds.

    Idempotent; requires the CRON_SECRET bearer token when one is configured.
    """
    authentication_classes = []
    permission_classes = [IsMaintenanceRequest]

    def get(self, request):
        return self.post(request)

    def post(self, request):
        result = get_engine().sweep_expired()
        return Response({
            'success': True,
            'releasedCount': result.released_count,
            'cancelledOrderCount': result.cancelled_order_count,
            'failedOrderIds': result.failed_order_ids,
        })
