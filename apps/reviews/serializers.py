from rest_framework import serializers
from .models import Review
from apps.accounts.serializers import UserMinimalSerializer
from apps.cafes.serializers import CafeMinimalSerializer


class ReviewSerializer(serializers.ModelSerializer):
    """Main review serializer."""

    author = UserMinimalSerializer(read_only=True)
    visit_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'visit_id', 'author', 'rating', 'comment', 'created_at', 'updated_at']
        read_only_fields = fields


class MyReviewSerializer(ReviewSerializer):
    """Review with the café it was written about, for the personal list."""

    cafe = CafeMinimalSerializer(source='visit.cafe', read_only=True)
    visited_at = serializers.DateTimeField(source='visit.visited_at', read_only=True)

    class Meta(ReviewSerializer.Meta):
        fields = ReviewSerializer.Meta.fields + ['cafe', 'visited_at']
        read_only_fields = fields


class ReviewCreateSerializer(serializers.Serializer):
    """Payload for reviewing a visit after accepting it."""

    visit_id = serializers.UUIDField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, default='')


class ReviewUpdateSerializer(serializers.Serializer):
    """
    Payload for changing an existing review.

    PUT sends both fields; PATCH (``partial=True``) may omit either and the
    omitted one stays as it is.
    """

    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(allow_blank=True)
