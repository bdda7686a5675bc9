"""
URL configuration for the careflow project.

The `urlpatterns` list routes URLs to views.  This module includes
the Django admin, the Prometheus metrics endpoint and the API routes
provided by the casework app.  OpenAPI documentation is exposed at
``/swagger/`` and ``/redoc/``.
"""
from django.contrib import admin
from django.urls import path, include

from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

# API metadata for Swagger/OpenAPI documentation
api_info = openapi.Info(
    title="CareFlow API",
    default_version='v1',
    description="Patient journey and professional account linking services.",
)

schema_view = get_schema_view(
    api_info,
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # Prometheus exposes /metrics
    path('', include('django_prometheus.urls')),
    # Django admin site (useful for development)
    path('admin/', admin.site.urls),
    # API routes from the casework app
    path('', include('casework.routers')),
    # Swagger and ReDoc
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
