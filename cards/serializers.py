"""
Card serializers for the guarded e-commerce API.

The serializer is the only place card fields cross the encoder:
- create/update encode the sensitive fields before the row is written
- to_representation decodes the stored tokens, so responses (including
  the create/update responses) always reflect what was persisted
"""

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.validators import RegexValidator
from django.db import transaction
from rest_framework import serializers, status
from rest_framework.exceptions import APIException

from core.field_encoder import decode_field, encode_field

from .models import UserCard

SENSITIVE_FIELDS = ('card_number', 'card_expire', 'card_cvv')

DEFAULT_CARD_LIMIT = 4


class CardLimitExceeded(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Card limit exceeded.'
    default_code = 'card_limit_exceeded'


def card_limit() -> int:
    return getattr(settings, 'CARD_LIMIT_PER_USER', DEFAULT_CARD_LIMIT)


class UserCardSerializer(serializers.ModelSerializer):
    """
    Serializer for UserCard.

    Security Features:
    - Sensitive fields are encoded on write and decoded on read
    - Owner is taken from request.user, never from the payload
    - Card count per user is enforced under a row lock on the user
    """

    card_number = serializers.CharField(
        min_length=16,
        max_length=16,
        validators=[RegexValidator(r'^\d{16}$', 'Card number must be 16 digits.')],
    )
    card_expire = serializers.CharField(min_length=3, max_length=15)
    card_cvv = serializers.CharField(
        min_length=3,
        max_length=4,
        validators=[RegexValidator(r'^\d{3,4}$', 'CVV must be 3 or 4 digits.')],
    )
    card_name = serializers.CharField(min_length=2, max_length=45)

    class Meta:
        model = UserCard
        fields = [
            'id',
            'card_number',
            'card_expire',
            'card_cvv',
            'card_name',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_card_expire(self, value):
        """Expiry must contain a '/' separator, e.g. 12/27."""
        if '/' not in value:
            raise serializers.ValidationError("Card expiry date format is invalid.")
        return value

    def _encode(self, validated_data):
        for field in SENSITIVE_FIELDS:
            if field in validated_data:
                validated_data[field] = encode_field(validated_data[field])
        return validated_data

    def create(self, validated_data):
        """
        Create a card for the requesting user.

        Raises:
            CardLimitExceeded: If the user already holds the maximum
        """
        user = self.context['request'].user
        validated_data = self._encode(validated_data)

        with transaction.atomic():
            # serialize concurrent creates for the same user
            get_user_model().objects.select_for_update().filter(pk=user.pk).first()
            if UserCard.objects.filter(user=user).count() >= card_limit():
                raise CardLimitExceeded()
            validated_data['user'] = user
            return super().create(validated_data)

    def update(self, instance, validated_data):
        return super().update(instance, self._encode(validated_data))

    def to_representation(self, instance):
        data = super().to_representation(instance)
        for field in SENSITIVE_FIELDS:
            data[field] = decode_field(getattr(instance, field))
        return data
