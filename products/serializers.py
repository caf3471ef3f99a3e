"""
Product serializers for the guarded e-commerce API.
"""

from rest_framework import serializers

from core.timesince import humanize_elapsed

from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer for Product model.

    - slug is generated server-side and read-only
    - created_ago / updated_ago give humanized timestamps ("3 hours ago")
    """

    is_in_stock = serializers.BooleanField(read_only=True)
    created_ago = serializers.SerializerMethodField()
    updated_ago = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'slug',
            'description',
            'price',
            'stock',
            'is_active',
            'is_in_stock',
            'created_at',
            'updated_at',
            'created_ago',
            'updated_ago',
        ]
        read_only_fields = [
            'id',
            'slug',
            'created_at',
            'updated_at',
        ]

    def get_created_ago(self, obj):
        return humanize_elapsed(obj.created_at)

    def get_updated_ago(self, obj):
        return humanize_elapsed(obj.updated_at)

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price must be greater than zero.")
        return value

    def create(self, validated_data):
        validated_data['created_by'] = self.context['request'].user
        return super().create(validated_data)

    def update(self, instance, validated_data):
        """Renaming a product regenerates its slug."""
        new_name = validated_data.get('name')
        if new_name is not None and new_name != instance.name:
            instance.name = new_name
            instance.assign_slug()
        return super().update(instance, validated_data)


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for product listings."""

    is_in_stock = serializers.BooleanField(read_only=True)
    created_ago = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'slug',
            'price',
            'stock',
            'is_in_stock',
            'created_ago',
        ]
        read_only_fields = fields

    def get_created_ago(self, obj):
        return humanize_elapsed(obj.created_at)
