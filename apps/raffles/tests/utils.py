"""Shared fixtures for raffle tests."""

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from apps.raffles.models import Raffle

BUYER = {
    'buyer_name': 'María Gómez',
    'student_name': 'Lucas Gómez',
    'division': 'A',
    'course': '3',
    'email': 'maria@example.com',
    'phone': '1144445555',
}


def make_raffle(total_numbers=200, is_active=True, price='1000.00'):
    now = timezone.now()
    raffle = Raffle.objects.create(
        title='Rifa de prueba',
        total_numbers=total_numbers,
        price_per_number=Decimal(price),
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=30),
        is_active=is_active,
    )
    raffle.populate_numbers()
    return raffle
