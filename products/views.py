"""
Product ViewSets for the guarded e-commerce API.

This module provides the Product ViewSet with:
- Public read access (active, in-stock products)
- Lookup by id or by slug
- Staff-only create/update/delete
- Rate limiting on write operations
"""

import logging

from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django_filters.rest_framework import DjangoFilterBackend
from django_ratelimit.decorators import ratelimit
from rest_framework import filters, status, viewsets
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from .models import Product
from .serializers import ProductListSerializer, ProductSerializer

logger = logging.getLogger(__name__)


class ProductViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Product model.

    `/api/products/<id>/` and `/api/products/<slug>/` address the same
    product. Deleting a product only deactivates it.
    """

    queryset = Product.objects.all()
    lookup_value_regex = '[^/]+'
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['name', 'description', 'slug']
    ordering_fields = ['name', 'price', 'created_at', 'stock']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductListSerializer
        return ProductSerializer

    def get_queryset(self):
        """
        Staff see every product; everyone else only active ones, and only
        in-stock ones when listing.
        """
        queryset = super().get_queryset()
        user = self.request.user
        if user.is_authenticated and user.is_staff:
            return queryset

        queryset = queryset.filter(is_active=True)
        if self.action == 'list':
            queryset = queryset.filter(stock__gt=0)
        return queryset

    def get_permissions(self):
        if self.action in ['create', 'update', 'partial_update', 'destroy']:
            return [IsAdminUser()]
        return [AllowAny()]

    def get_object(self):
        """
        Look the product up by slug, then by numeric id.

        Slugs win: a product named "1984" stays reachable at /1984/ even when
        another product has pk 1984.
        """
        queryset = self.filter_queryset(self.get_queryset())
        value = self.kwargs[self.lookup_url_kwarg or self.lookup_field]
        obj = queryset.filter(slug=value).first()
        if obj is None:
            if not value.isdigit():
                raise Http404
            obj = get_object_or_404(queryset, pk=int(value))
        self.check_object_permissions(self.request, obj)
        return obj

    @method_decorator(ratelimit(key='user', rate='10/m', method='POST'))
    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        logger.info("Product %s created by user %s", response.data.get('slug'), request.user.pk)
        return response

    @method_decorator(ratelimit(key='user', rate='20/m', method=['PUT', 'PATCH']))
    def update(self, request, *args, **kwargs):
        return super().update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        """Soft delete: set is_active=False instead of deleting the row."""
        instance = self.get_object()
        instance.is_active = False
        instance.save(update_fields=['is_active', 'updated_at'])
        logger.info("Product %s deactivated by user %s", instance.slug, request.user.pk)
        return Response(
            {'detail': 'Product deactivated successfully.'},
            status=status.HTTP_200_OK
        )
