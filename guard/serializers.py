"""
Request guard serializers for the admin API.
"""

from rest_framework import serializers

from .models import GuardEvent, GuardRecord


class GuardEventSerializer(serializers.ModelSerializer):
    """Serializer for GuardEvent."""

    class Meta:
        model = GuardEvent
        fields = [
            'id',
            'kind',
            'rule',
            'severity',
            'verdict',
            'detail',
            'ip_address',
            'request_method',
            'request_path',
            'timestamp',
        ]
        read_only_fields = fields


class GuardRecordSerializer(serializers.ModelSerializer):
    """Serializer for GuardRecord."""

    recent_events = serializers.SerializerMethodField()

    class Meta:
        model = GuardRecord
        fields = [
            'id',
            'identity_key',
            'state',
            'score',
            'violation_count',
            'last_rule',
            'blocked_at',
            'created_at',
            'updated_at',
            'recent_events',
        ]
        read_only_fields = fields

    def get_recent_events(self, obj):
        events = GuardEvent.objects.filter(identity_key=obj.identity_key)[:10]
        return GuardEventSerializer(events, many=True).data
