"""
Error handling for the raffle API.

Maps allocation engine failures to structured responses:
conflicts -> 409 with the blocking numbers, not found -> 404,
storage outages -> 503, gateway failures -> 502.
"""

import logging

from rest_framework import status
from rest_framework.response import Response

from apps.raffles.exceptions import (
    NoActiveRaffle,
    NumbersUnavailable,
    OrderNotFound,
    RaffleError,
    ReservationInvalid,
    StorageUnavailable,
)
from payment_processor.services import PaymentServiceException

logger = logging.getLogger(__name__)


class RaffleErrorHandler:

    @staticmethod
    def handle_conflict(error):
        logger.info(f"[RAFFLE_API] Conflict: {error}")
        body = {
            'success': False,
            'error': error.code,
            'message': str(error),
            'unavailableNumbers': error.numbers,
        }
        if isinstance(error, NumbersUnavailable):
            body['failedNumbers'] = error.numbers
        return Response(body, status=status.HTTP_409_CONFLICT)

    @staticmethod
    def handle_not_found(error):
        return Response(
            {'success': False, 'error': error.code, 'message': str(error)},
            status=status.HTTP_404_NOT_FOUND
        )

    @staticmethod
    def handle_storage_error(error):
        logger.error(f"[RAFFLE_API] Storage unavailable: {error}")
        return Response(
            {
                'success': False,
                'error': error.code,
                'message': 'El servicio no está disponible en este momento. Intenta nuevamente.',
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    @staticmethod
    def handle_gateway_error(error):
        logger.error(f"[RAFFLE_API] Payment gateway error: {error}")
        return Response(
            {'success': False, 'error': 'payment_gateway_error', 'message': 'No se pudo iniciar el pago'},
            status=status.HTTP_502_BAD_GATEWAY
        )

    @staticmethod
    def handle_exception(error):
        """Return a response for known errors, or None to fall back to DRF's handling."""
        if isinstance(error, (NumbersUnavailable, ReservationInvalid)):
            return RaffleErrorHandler.handle_conflict(error)
        if isinstance(error, (OrderNotFound, NoActiveRaffle)):
            return RaffleErrorHandler.handle_not_found(error)
        if isinstance(error, StorageUnavailable):
            return RaffleErrorHandler.handle_storage_error(error)
        if isinstance(error, PaymentServiceException):
            return RaffleErrorHandler.handle_gateway_error(error)
        if isinstance(error, RaffleError):
            return Response(
                {'success': False, 'error': error.code, 'message': str(error)},
                status=status.HTTP_400_BAD_REQUEST
            )
        return None


class RaffleErrorMixin:
    """Route engine exceptions through RaffleErrorHandler."""

    def handle_exception(self, exc):
        response = RaffleErrorHandler.handle_exception(exc)
        if response is not None:
            return response
        return super().handle_exception(exc)
