from django.contrib import admin
from apps.cafes.models import Cafe


@admin.register(Cafe)
class CafeAdmin(admin.ModelAdmin):
    list_display = ['name', 'address', 'created_at']
    search_fields = ['name', 'address']
    readonly_fields = ['created_at']
    ordering = ['name']
