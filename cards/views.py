"""
Card ViewSets for the guarded e-commerce API.

Security Features:
- Authentication required for every action
- Users only ever see and modify their own cards
- Rate limiting on write operations
- Card values are never logged
"""

import logging

from django.utils.decorators import method_decorator
from django_ratelimit.decorators import ratelimit
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import UserCard
from .serializers import UserCardSerializer

logger = logging.getLogger(__name__)


class UserCardViewSet(viewsets.ModelViewSet):
    """
    ViewSet for the requesting user's saved cards.

    Responses carry card fields decoded from the stored row. A card that
    belongs to someone else is reported as not found.
    """

    serializer_class = UserCardSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return UserCard.objects.filter(user=self.request.user)

    @method_decorator(ratelimit(key='user', rate='10/m', method='POST'))
    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        logger.info("Card %s created for user %s", response.data.get('id'), request.user.pk)
        return response

    @method_decorator(ratelimit(key='user', rate='20/m', method=['PUT', 'PATCH']))
    def update(self, request, *args, **kwargs):
        response = super().update(request, *args, **kwargs)
        logger.info("Card %s updated for user %s", kwargs.get('pk'), request.user.pk)
        return response

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        card_id = instance.pk
        instance.delete()
        logger.info("Card %s deleted for user %s", card_id, request.user.pk)
        return Response(
            {'detail': 'Card deleted successfully.'},
            status=status.HTTP_200_OK
        )
