from rest_framework import serializers
from .models import Cafe


class CafeMinimalSerializer(serializers.ModelSerializer):
    """Display summary of a café for nested serialization."""

    class Meta:
        model = Cafe
        fields = ['id', 'name', 'address', 'image_url']
        read_only_fields = fields
