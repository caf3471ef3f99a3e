"""
Django admin configuration for request guard models.
"""

from django.contrib import admin

from .conf import GuardConfig
from .models import GuardEvent, GuardRecord
from .store import GuardStore


@admin.register(GuardRecord)
class GuardRecordAdmin(admin.ModelAdmin):
    """Admin interface for GuardRecord."""
    list_display = ['identity_key', 'state', 'score', 'violation_count', 'last_rule', 'blocked_at', 'updated_at']
    list_filter = ['state', 'blocked_at']
    search_fields = ['identity_key', 'last_rule']
    readonly_fields = ['identity_key', 'state', 'score', 'violation_count', 'last_rule',
                       'blocked_at', 'created_at', 'updated_at']

    actions = ['reset_identities']

    def has_add_permission(self, request):
        """Records are only created by the guard itself."""
        return False

    @admin.action(description="Reset selected identities")
    def reset_identities(self, request, queryset):
        store = GuardStore(GuardConfig.from_settings())
        count = sum(1 for record in queryset if store.reset(record.identity_key))
        self.message_user(request, f"{count} identities reset.")


@admin.register(GuardEvent)
class GuardEventAdmin(admin.ModelAdmin):
    """Admin interface for GuardEvent (read-only)."""
    list_display = ['kind', 'identity_key', 'rule', 'severity', 'verdict', 'ip_address', 'timestamp']
    list_filter = ['kind', 'severity', 'verdict', 'timestamp']
    search_fields = ['identity_key', 'rule', 'ip_address', 'request_path']
    readonly_fields = [f.name for f in GuardEvent._meta.fields]
    date_hierarchy = 'timestamp'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
