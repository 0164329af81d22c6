from django.contrib import admin
from .models import Visit, VisitImage, Participation


class VisitImageInline(admin.TabularInline):
    model = VisitImage
    extra = 0


class ParticipationInline(admin.TabularInline):
    model = Participation
    extra = 0
    raw_id_fields = ['user']
    readonly_fields = ['invited_at', 'responded_at']


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    """Admin interface for Visits."""

    list_display = ['cafe', 'creator', 'visited_at', 'rating', 'status', 'max_participants']
    list_filter = ['status', 'rating', 'visited_at']
    search_fields = ['cafe__name', 'creator__email', 'creator__display_name', 'comment']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['creator', 'cafe']
    inlines = [VisitImageInline, ParticipationInline]


@admin.register(Participation)
class ParticipationAdmin(admin.ModelAdmin):
    """Admin interface for Participations."""

    list_display = ['visit', 'user', 'role', 'status', 'invited_at', 'responded_at']
    list_filter = ['role', 'status']
    search_fields = ['user__email', 'visit__cafe__name']
    raw_id_fields = ['visit', 'user']
