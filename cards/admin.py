"""
Django admin configuration for card models.
"""

from django.contrib import admin

from .models import UserCard


@admin.register(UserCard)
class UserCardAdmin(admin.ModelAdmin):
    """
    Admin interface for UserCard.

    Only the owner and label are shown; encoded fields are left out entirely.
    """
    list_display = ['id', 'user', 'card_name', 'created_at', 'updated_at']
    search_fields = ['user__username', 'user__email', 'card_name']
    fields = ['user', 'card_name', 'created_at', 'updated_at']
    readonly_fields = ['user', 'card_name', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False
