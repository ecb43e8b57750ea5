"""URL Configuration for the Rifa Escolar platform."""

from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from django.http import HttpResponse

urlpatterns = [
    # Health endpoint (no DB/Redis access) - MUST BE FIRST
    path('healthz/', lambda request: HttpResponse('ok', content_type='text/plain')),

    # Django Admin
    path('admin/', admin.site.urls),

    # API URLs
    path('api/v1/', include('api.v1.urls')),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # Payment gateway callbacks
    path('', include('payment_processor.urls')),
]
