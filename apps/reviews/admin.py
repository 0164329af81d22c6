from django.contrib import admin
from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin interface for Reviews."""

    list_display = ['author', 'get_cafe_name', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['author__email', 'author__display_name', 'visit__cafe__name', 'comment']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['visit', 'author']

    def get_cafe_name(self, obj):
        return obj.visit.cafe.name
    get_cafe_name.short_description = 'Café'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('author', 'visit__cafe')
