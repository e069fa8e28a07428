"""
URL configuration for studio_panel project.

Всё API организаций живёт под /api/organizations/<org_id>/.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import health

urlpatterns = [
    path('admin/', admin.site.urls),

    # Health
    path('api/health/', health.health_check, name='health'),
    path('api/health/live/', health.live_check, name='health-live'),

    # JWT
    path('api/jwt/token/', TokenObtainPairView.as_view(), name='jwt-obtain-pair'),
    path('api/jwt/refresh/', TokenRefreshView.as_view(), name='jwt-refresh'),

    # Организации
    path('api/organizations/', include('tenants.urls')),
    path('api/organizations/<uuid:org_id>/', include('schedule.urls')),
]
