"""
Request guard admin API.

Lets administrators inspect guard state and lift blocks. Nothing here is
reachable by regular users.
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from .conf import GuardConfig
from .models import GuardRecord
from .serializers import GuardRecordSerializer
from .store import GuardStore


class GuardRecordViewSet(viewsets.ReadOnlyModelViewSet):
    """ViewSet for GuardRecord (read-only, plus reset)."""
    queryset = GuardRecord.objects.all()
    serializer_class = GuardRecordSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['state']
    search_fields = ['identity_key']
    ordering = ['-updated_at']

    @action(detail=True, methods=['post'])
    def reset(self, request, pk=None):
        """Clear the state of an identity, lifting a block."""
        record = self.get_object()
        GuardStore(GuardConfig.from_settings()).reset(record.identity_key)
        record.refresh_from_db()
        return Response(
            {
                'detail': 'Identity reset successfully.',
                'record': GuardRecordSerializer(record).data,
            },
            status=status.HTTP_200_OK,
        )
