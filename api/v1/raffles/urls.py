from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    PurchaseViewSet,
    RaffleConfigView,
    RaffleNumbersView,
    RaffleStatsView,
    ReservationView,
    SweepExpiredView,
    VerifyNumbersView,
)

router = DefaultRouter()
router.include_root_view = False
router.register(r'raffle/purchases', PurchaseViewSet, basename='raffle-purchase')

urlpatterns = [
    path('raffle/config/', RaffleConfigView.as_view(), name='raffle-config'),
    path('raffle/numbers/', RaffleNumbersView.as_view(), name='raffle-numbers'),
    path('raffle/numbers/verify/', VerifyNumbersView.as_view(), name='raffle-numbers-verify'),
    path('raffle/stats/', RaffleStatsView.as_view(), name='raffle-stats'),
    path('raffle/reservations/', ReservationView.as_view(), name='raffle-reservations'),
    path('raffle/maintenance/sweep/', SweepExpiredView.as_view(), name='raffle-maintenance-sweep'),
    path('', include(router.urls)),
]
