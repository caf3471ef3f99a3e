"""
URL configuration for guarded_commerce.

This module defines URL patterns for the API including:
- Product ViewSet routes
- Card ViewSet routes
- Request guard administration routes
- Admin interface
- JWT token endpoints
"""

from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from cards.views import UserCardViewSet
from guard.views import GuardRecordViewSet
from products.views import ProductViewSet

# Create router for ViewSets
router = DefaultRouter()
router.register(r'products', ProductViewSet, basename='product')
router.register(r'cards', UserCardViewSet, basename='card')
router.register(r'guard/records', GuardRecordViewSet, basename='guard-record')

urlpatterns = [
    # Admin interface
    path('admin/', admin.site.urls),

    # API routes
    path('api/', include(router.urls)),

    # JWT token endpoints
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),
]
