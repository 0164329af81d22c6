# ==========================================
# apps/friends/admin.py
# ==========================================

from django.contrib import admin
from apps.friends.models import Friendship


@admin.register(Friendship)
class FriendshipAdmin(admin.ModelAdmin):
    """Admin interface for friend requests and friendships."""

    list_display = ['requester', 'addressee', 'status', 'created_at', 'responded_at']
    list_filter = ['status', 'created_at']
    search_fields = ['requester__email', 'addressee__email']
    readonly_fields = ['created_at', 'responded_at']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('requester', 'addressee')
