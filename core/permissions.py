"""Custom DRF permissions for the Rifa Escolar platform."""

import hmac
import logging

from django.conf import settings
from rest_framework import permissions

from core.utils import parse_bearer_token

logger = logging.getLogger(__name__)


def _has_cron_secret(request):
    secret = settings.CRON_SECRET
    token = parse_bearer_token(request)
    if not secret or not token:
        return False
    return hmac.compare_digest(token, secret)


class IsMaintenanceRequest(permissions.BasePermission):
    """
    Scheduler-triggered maintenance calls.

    When CRON_SECRET is configured the request must carry it as a bearer token.
    Without a secret the endpoint stays open, which is only acceptable because
    the sweep is idempotent.
    """

    def has_permission(self, request, view):
        if not settings.CRON_SECRET:
            return True
        allowed = _has_cron_secret(request)
        if not allowed:
            logger.warning(f"[MAINTENANCE] Rejected maintenance call from {request.META.get('REMOTE_ADDR')}")
        return allowed


class IsStaffOrMaintenanceRequest(permissions.BasePermission):
    """Staff users, or back-office automation holding the CRON_SECRET bearer token."""

    def has_permission(self, request, view):
        if request.user and request.user.is_authenticated and request.user.is_staff:
            return True
        return _has_cron_secret(request)
