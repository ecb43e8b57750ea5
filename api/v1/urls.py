"""URL Configuration for API v1."""

from django.urls import path, include

urlpatterns = [
    path('', include('api.v1.raffles.urls')),
]
